"""Static data and constants for the memory vault."""

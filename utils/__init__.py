"""
Utils Package
Shared infrastructure for the memory vault: JSON, logging, retries.
"""

from .monitoring.logger import setup_smart_logging

__all__ = [
    # Logger
    "setup_smart_logging",
]

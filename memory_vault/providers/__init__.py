"""Concrete providers for the embedding, extraction, and adjudication seams."""

from .gemini import GeminiProvider

"""
Token estimation for the retrieval budget.
"""

from __future__ import annotations

import logging
import math

# Try to import tiktoken for accurate token counting
try:
    import tiktoken

    TIKTOKEN_AVAILABLE = True
except ImportError:
    TIKTOKEN_AVAILABLE = False

_ENCODER = None
_ENCODER_FAILED = False


def _get_encoder():
    """cl100k_base is loaded on first use (it may need to fetch its BPE file)."""
    global _ENCODER, _ENCODER_FAILED
    if _ENCODER is not None or _ENCODER_FAILED or not TIKTOKEN_AVAILABLE:
        return _ENCODER
    try:
        _ENCODER = tiktoken.get_encoding("cl100k_base")
    except (OSError, ValueError) as e:
        _ENCODER_FAILED = True
        logging.warning("⚠️ tiktoken encoder unavailable, using estimate: %s", e)
    return _ENCODER


def estimate_tokens_fallback(text: str) -> int:
    """ASCII at ~4 chars per token, everything else at ~2.5."""
    ascii_chars = sum(1 for c in text if ord(c) < 128)
    other_chars = len(text) - ascii_chars
    return max(1, math.ceil(ascii_chars / 4 + other_chars / 2.5))


def estimate_tokens(text: str | None) -> int:
    if not text:
        return 0
    encoder = _get_encoder()
    if encoder is not None:
        return len(encoder.encode(text))
    return estimate_tokens_fallback(text)

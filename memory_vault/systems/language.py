"""Phrase detection used as extraction hints."""

from __future__ import annotations

import re


def compile_phrases(phrases: list[str]) -> list[re.Pattern]:
    return [re.compile(re.escape(p), re.IGNORECASE) for p in phrases]


def find_phrases(text: str | None, patterns: list[re.Pattern]) -> list[str]:
    """Every matched phrase as written in ``text``, deduplicated in order of discovery."""
    if not text:
        return []
    detected: list[str] = []
    for pattern in patterns:
        for match in pattern.findall(text):
            if match not in detected:
                detected.append(match)
    return detected

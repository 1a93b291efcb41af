"""Shared helpers for vault records."""

from __future__ import annotations

import random
import string
import time
from typing import Any

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(prefix: str) -> str:
    """Unique id in the form ``<prefix>_<epoch ms>_<9 random chars>``."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def is_number(value: Any) -> bool:
    """True for int/float but not bool."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def unique_strings(values: Any) -> list[str]:
    """Normalize a list-ish payload into de-duplicated, order-preserving names."""
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    if not isinstance(values, (list, tuple, set, frozenset)):
        return []
    result: list[str] = []
    for value in values:
        if isinstance(value, str):
            value = value.strip()
            if value and value not in result:
                result.append(value)
    return result


def known_fields(cls: type) -> set[str]:
    return set(cls.__dataclass_fields__)

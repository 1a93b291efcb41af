"""
Pairwise relationship dimensions between characters.
"""

from __future__ import annotations

import re
import time
from dataclasses import asdict, dataclass, field
from typing import Any

from ..data.constants import (
    DEFAULT_RELATIONSHIP_TYPE,
    DIMENSION_MAX,
    DIMENSION_MIN,
    RELATIONSHIP_DEFAULTS,
    RELATIONSHIP_DIMENSIONS,
)
from .base import clamp, is_number, known_fields

# "Alice->Bob" (whitespace around the arrow tolerated)
_DIRECTED_KEY_RE = re.compile(r"^(.+?)\s*->\s*(.+)$")


def parse_directed_key(key: str) -> tuple[str, str] | None:
    """Split ``"A->B"`` into ``("A", "B")``; None when malformed."""
    match = _DIRECTED_KEY_RE.match(key.strip()) if isinstance(key, str) else None
    if not match:
        return None
    source, target = match.group(1).strip(), match.group(2).strip()
    if not source or not target:
        return None
    return source, target


def canonical_pair(a: str, b: str) -> tuple[str, str]:
    first, second = sorted((a, b))
    return first, second


def relationship_key(a: str, b: str) -> str:
    """Unordered pair key, ``"A<->B"`` with names sorted."""
    first, second = canonical_pair(a, b)
    return f"{first}<->{second}"


@dataclass
class RelationshipHistoryEntry:
    """One impact applied to a relationship."""

    event_id: str
    impact: Any
    direction: str
    message_id: int | None = None
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RelationshipHistoryEntry:
        return cls(**{k: v for k, v in data.items() if k in known_fields(cls)})


@dataclass
class Relationship:
    """Bounded relationship dimensions for an unordered character pair."""

    character_a: str
    character_b: str
    trust_level: float = RELATIONSHIP_DEFAULTS["trust"]
    tension_level: float = RELATIONSHIP_DEFAULTS["tension"]
    respect_level: float = RELATIONSHIP_DEFAULTS["respect"]
    attraction_level: float = RELATIONSHIP_DEFAULTS["attraction"]
    fear_level: float = RELATIONSHIP_DEFAULTS["fear"]
    loyalty_level: float = RELATIONSHIP_DEFAULTS["loyalty"]
    familiarity_level: float = RELATIONSHIP_DEFAULTS["familiarity"]
    relationship_type: str = DEFAULT_RELATIONSHIP_TYPE
    history: list[RelationshipHistoryEntry] = field(default_factory=list)
    last_updated_message_id: int | None = None

    def __post_init__(self):
        self.character_a, self.character_b = canonical_pair(self.character_a, self.character_b)
        for dimension in RELATIONSHIP_DIMENSIONS:
            attr = f"{dimension}_level"
            value = getattr(self, attr)
            if not is_number(value):
                value = RELATIONSHIP_DEFAULTS[dimension]
            setattr(self, attr, clamp(value, DIMENSION_MIN, DIMENSION_MAX))

    @property
    def key(self) -> str:
        return relationship_key(self.character_a, self.character_b)

    def involves(self, name: str) -> bool:
        return name in (self.character_a, self.character_b)

    def other(self, name: str) -> str | None:
        if name == self.character_a:
            return self.character_b
        if name == self.character_b:
            return self.character_a
        return None

    def get_dimension(self, dimension: str) -> float:
        return getattr(self, f"{dimension}_level")

    def adjust(self, dimension: str, delta: float) -> float:
        """Add ``delta`` to a dimension and clamp it to [0, 10]."""
        if dimension not in RELATIONSHIP_DIMENSIONS:
            raise KeyError(f"Unknown relationship dimension: {dimension}")
        attr = f"{dimension}_level"
        value = clamp(getattr(self, attr) + delta, DIMENSION_MIN, DIMENSION_MAX)
        setattr(self, attr, value)
        return value

    def dimensions(self) -> dict[str, float]:
        return {d: self.get_dimension(d) for d in RELATIONSHIP_DIMENSIONS}

    def forget(self, memory_ids: set[str]) -> int:
        """Drop history entries of removed memories. Returns how many were dropped."""
        kept = [h for h in self.history if h.event_id not in memory_ids]
        removed = len(self.history) - len(kept)
        if removed:
            self.history = kept
            message_ids = [h.message_id for h in kept if h.message_id is not None]
            self.last_updated_message_id = max(message_ids) if message_ids else None
        return removed

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Relationship:
        values = {k: v for k, v in data.items() if k in known_fields(cls)}
        values["history"] = [
            RelationshipHistoryEntry.from_dict(h)
            for h in values.get("history") or []
            if isinstance(h, dict)
        ]
        return cls(**values)

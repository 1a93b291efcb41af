"""
Memory records: discrete narrative events extracted from the conversation.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from ..data.constants import (
    DEFAULT_IMPORTANCE,
    MAX_EVENTS_PER_MESSAGE,
    MAX_IMPORTANCE,
    MIN_IMPORTANCE,
)
from ..errors import ExtractionError
from .base import clamp, generate_id, is_number, known_fields, unique_strings


class EventType(Enum):
    """Kinds of extracted events."""

    ACTION = "action"
    REVELATION = "revelation"
    EMOTION_SHIFT = "emotion_shift"
    RELATIONSHIP_CHANGE = "relationship_change"

    @classmethod
    def values(cls) -> set[str]:
        return {member.value for member in cls}


def clamp_importance(value: Any) -> int:
    """Clamp an importance rating into [1, 5]; non-numbers become the default."""
    if not is_number(value):
        return DEFAULT_IMPORTANCE
    return int(clamp(round(value), MIN_IMPORTANCE, MAX_IMPORTANCE))


def clamp_valence(value: Any) -> float:
    if not is_number(value):
        return 0.0
    return float(clamp(value, -1.0, 1.0))


def compute_sequence(message_ids: list[int], index_in_batch: int) -> int:
    """Chronological sort key: earliest source message, then extraction order."""
    return min(message_ids) * MAX_EVENTS_PER_MESSAGE + index_in_batch


@dataclass
class Memory:
    """A discrete extracted narrative event."""

    id: str
    summary: str
    event_type: str = EventType.ACTION.value
    characters_involved: list[str] = field(default_factory=list)
    witnesses: list[str] = field(default_factory=list)
    location: str | None = None
    is_secret: bool = False
    known_by: list[str] | None = None
    importance: int = DEFAULT_IMPORTANCE
    emotional_tone: list[str] = field(default_factory=list)
    emotional_valence: float = 0.0
    emotional_impact: dict[str, str] = field(default_factory=dict)
    relationship_impact: dict[str, Any] = field(default_factory=dict)
    embedding: list[float] | None = None
    pinned: bool = False
    message_ids: list[int] = field(default_factory=list)
    sequence: int = 0
    created_at: float = field(default_factory=time.time)
    batch_id: str | None = None
    # Raw world-state payloads the event was extracted with
    promise: dict[str, Any] | None = None
    goal: dict[str, Any] | None = None
    skill: dict[str, Any] | None = None

    def __post_init__(self):
        self.importance = clamp_importance(self.importance)
        self.emotional_valence = clamp_valence(self.emotional_valence)
        if self.event_type not in EventType.values():
            self.event_type = EventType.ACTION.value
        # known_by is non-null iff the memory is secret
        if self.is_secret:
            self.known_by = unique_strings(self.known_by)
        else:
            self.known_by = None

    @property
    def first_message_id(self) -> int | None:
        return min(self.message_ids) if self.message_ids else None

    @property
    def last_message_id(self) -> int | None:
        return max(self.message_ids) if self.message_ids else None

    @property
    def message_range(self) -> dict[str, int] | None:
        if not self.message_ids:
            return None
        return {"min": min(self.message_ids), "max": max(self.message_ids)}

    def is_known_by(self, character: str | None) -> bool:
        """Whether a POV character may see this memory (None means no POV filter)."""
        if character is None or not self.is_secret:
            return True
        return character in (self.known_by or [])

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Memory:
        """Load a persisted memory, ignoring unknown keys."""
        allowed = known_fields(cls)
        values = {k: v for k, v in data.items() if k in allowed}
        if not isinstance(values.get("id"), str) or not isinstance(values.get("summary"), str):
            raise ExtractionError("Persisted memory needs string 'id' and 'summary'")
        for key in ("characters_involved", "witnesses", "emotional_tone"):
            values[key] = unique_strings(values.get(key))
        values["message_ids"] = [int(m) for m in values.get("message_ids") or []]
        return cls(**values)

    @classmethod
    def from_event(
        cls, event: dict[str, Any], index_in_batch: int, batch_id: str | None = None
    ) -> Memory:
        """
        Build a memory from one extracted event payload.

        The payload must carry a non-empty ``summary`` and ``message_ids``
        (attached by the parser). Optional fields get the defaults of the
        extraction contract: witnesses fall back to the characters involved,
        a secret's ``known_by`` falls back to the witnesses, importance to 3.

        Raises:
            ExtractionError: the payload is not usable.
        """
        if not isinstance(event, dict):
            raise ExtractionError(f"Event is {type(event).__name__}, expected object")

        summary = event.get("summary")
        if not isinstance(summary, str) or not summary.strip():
            raise ExtractionError("Event has no summary")

        raw_ids = event.get("message_ids")
        if not isinstance(raw_ids, list) or not raw_ids:
            raise ExtractionError("Event has no source message ids")
        try:
            message_ids = sorted({int(m) for m in raw_ids})
        except (TypeError, ValueError) as e:
            raise ExtractionError(f"Bad message ids: {raw_ids!r}") from e

        characters = unique_strings(event.get("characters_involved"))
        witnesses = unique_strings(event.get("witnesses")) or list(characters)
        is_secret = bool(event.get("is_secret", False))
        known_by = None
        if is_secret:
            known_by = unique_strings(event.get("known_by")) or list(witnesses)

        emotional_impact = event.get("emotional_impact") or {}
        if not isinstance(emotional_impact, dict):
            emotional_impact = {}
        relationship_impact = event.get("relationship_impact") or {}
        if not isinstance(relationship_impact, dict):
            relationship_impact = {}

        location = event.get("location")
        if not isinstance(location, str) or not location.strip():
            location = None

        def _payload(key: str) -> dict[str, Any] | None:
            value = event.get(key)
            return value if isinstance(value, dict) else None

        return cls(
            id=event["id"] if isinstance(event.get("id"), str) else generate_id("mem"),
            summary=summary.strip(),
            event_type=str(event.get("event_type") or EventType.ACTION.value),
            characters_involved=characters,
            witnesses=witnesses,
            location=location,
            is_secret=is_secret,
            known_by=known_by,
            importance=event.get("importance", DEFAULT_IMPORTANCE),
            emotional_tone=unique_strings(event.get("emotional_tone")),
            emotional_valence=event.get("emotional_valence", 0.0),
            emotional_impact={
                str(k): v.strip()
                for k, v in emotional_impact.items()
                if isinstance(v, str) and v.strip()
            },
            relationship_impact={str(k): v for k, v in relationship_impact.items()},
            message_ids=message_ids,
            sequence=compute_sequence(message_ids, index_in_batch),
            batch_id=batch_id,
            promise=_payload("promise"),
            goal=_payload("goal"),
            skill=_payload("skill"),
        )

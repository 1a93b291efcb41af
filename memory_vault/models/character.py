"""
Character emotional state and knowledge.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Any

from ..data.constants import (
    DEFAULT_EMOTION,
    DEFAULT_EMOTION_INTENSITY,
    MAX_EMOTION_HISTORY,
    MAX_EMOTION_INTENSITY,
)
from .base import clamp, is_number, known_fields


@dataclass
class EmotionHistoryEntry:
    """One emotion change caused by a memory."""

    emotion: str
    event_id: str
    timestamp: float = field(default_factory=time.time)
    message_range: dict[str, int] | None = None
    event_type: str | None = None
    emotional_tone: list[str] = field(default_factory=list)
    valence: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EmotionHistoryEntry:
        return cls(**{k: v for k, v in data.items() if k in known_fields(cls)})


@dataclass
class CharacterState:
    """Current emotional state of a character plus the events they witnessed."""

    name: str
    current_emotion: str = DEFAULT_EMOTION
    emotion_intensity: int = DEFAULT_EMOTION_INTENSITY
    known_events: list[str] = field(default_factory=list)
    emotion_history: list[EmotionHistoryEntry] = field(default_factory=list)
    last_updated: float | None = None
    emotion_from_messages: dict[str, int] | None = None

    def __post_init__(self):
        if not is_number(self.emotion_intensity):
            self.emotion_intensity = DEFAULT_EMOTION_INTENSITY
        self.emotion_intensity = int(clamp(self.emotion_intensity, 0, MAX_EMOTION_INTENSITY))

    def record_emotion(self, entry: EmotionHistoryEntry) -> None:
        """Append to the bounded history and make it the current emotion."""
        self.emotion_history.append(entry)
        if len(self.emotion_history) > MAX_EMOTION_HISTORY:
            del self.emotion_history[: len(self.emotion_history) - MAX_EMOTION_HISTORY]
        self.current_emotion = entry.emotion
        self.last_updated = entry.timestamp
        if entry.message_range:
            self.emotion_from_messages = dict(entry.message_range)

    def learn(self, memory_id: str) -> bool:
        """Add a witnessed event. Returns False when it was already known."""
        if memory_id in self.known_events:
            return False
        self.known_events.append(memory_id)
        return True

    def forget(self, memory_ids: set[str]) -> int:
        """
        Drop references to removed memories from knowledge and emotion history.

        The current emotion falls back to the latest remaining history entry.
        Returns the number of references removed.
        """
        before = len(self.known_events) + len(self.emotion_history)
        self.known_events = [m for m in self.known_events if m not in memory_ids]
        history = [e for e in self.emotion_history if e.event_id not in memory_ids]
        if len(history) != len(self.emotion_history):
            self.emotion_history = history
            if history:
                self.current_emotion = history[-1].emotion
                self.emotion_from_messages = history[-1].message_range
            else:
                self.current_emotion = DEFAULT_EMOTION
                self.emotion_from_messages = None
        return before - len(self.known_events) - len(self.emotion_history)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CharacterState:
        values = {k: v for k, v in data.items() if k in known_fields(cls)}
        values["known_events"] = list(dict.fromkeys(values.get("known_events") or []))
        values["emotion_history"] = [
            EmotionHistoryEntry.from_dict(e)
            for e in values.get("emotion_history") or []
            if isinstance(e, dict)
        ]
        return cls(**values)

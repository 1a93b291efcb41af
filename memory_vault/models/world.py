"""
Auxiliary world-state records: secrets, locations, promises, goals, skills.

Each record links back to memories by id only. Deleting a memory never
touches these records; orphans stay visible for manual cleanup.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from ..data.constants import DEFAULT_IMPORTANCE
from .base import known_fields


class PromiseStatus(Enum):
    PENDING = "pending"
    FULFILLED = "fulfilled"
    BROKEN = "broken"
    FORGIVEN = "forgiven"
    EXPIRED = "expired"


class GoalPriority(Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class GoalStatus(Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    FAILED = "failed"
    ON_HOLD = "on_hold"


class SkillProficiency(Enum):
    """Ordered from weakest to strongest."""

    NOVICE = "novice"
    BEGINNER = "beginner"
    COMPETENT = "competent"
    SKILLED = "skilled"
    EXPERT = "expert"
    MASTER = "master"

    @property
    def rank(self) -> int:
        return list(SkillProficiency).index(self) + 1


class SkillCategory(Enum):
    COMBAT = "combat"
    MAGIC = "magic"
    SOCIAL = "social"
    CRAFT = "craft"
    KNOWLEDGE = "knowledge"
    PHYSICAL = "physical"
    STEALTH = "stealth"
    SURVIVAL = "survival"
    ARTISTIC = "artistic"
    OTHER = "other"


def _filter(cls: type, data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k in known_fields(cls)}


@dataclass
class Secret:
    """Information only some characters know."""

    id: str
    content: str
    known_by: list[str] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)
    source_memory_id: str | None = None
    memory_ids: list[str] = field(default_factory=list)
    revealed_at: float | None = None
    importance: int = DEFAULT_IMPORTANCE
    tags: list[str] = field(default_factory=list)

    @property
    def is_revealed(self) -> bool:
        return self.revealed_at is not None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Secret:
        return cls(**_filter(cls, data))


@dataclass
class Location:
    """A place, keyed in the vault by its normalized name."""

    id: str
    name: str
    aliases: list[str] = field(default_factory=list)
    description: str = ""
    first_visit: float = field(default_factory=time.time)
    last_visit: float = field(default_factory=time.time)
    visit_count: int = 1
    memory_ids: list[str] = field(default_factory=list)
    parent_location: str | None = None
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Location:
        return cls(**_filter(cls, data))


@dataclass
class Promise:
    """A commitment one character made to another."""

    id: str
    from_character: str
    to_character: str
    content: str
    context: str = ""
    made_at: float = field(default_factory=time.time)
    made_at_message: int = 0
    deadline: str | None = None
    status: str = PromiseStatus.PENDING.value
    status_changed_at: float | None = None
    importance: int = DEFAULT_IMPORTANCE
    source_memory_id: str | None = None
    tags: list[str] = field(default_factory=list)

    def involves(self, a: str, b: str) -> bool:
        return {self.from_character, self.to_character} == {a, b}

    def to_dict(self) -> dict[str, Any]:
        """Serialized with ``from``/``to`` keys."""
        data = asdict(self)
        data["from"] = data.pop("from_character")
        data["to"] = data.pop("to_character")
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Promise:
        data = dict(data)
        if "from" in data:
            data["from_character"] = data.pop("from")
        if "to" in data:
            data["to_character"] = data.pop("to")
        return cls(**_filter(cls, data))


@dataclass
class Goal:
    """Something a character wants."""

    id: str
    goal: str
    motivation: str = ""
    priority: str = GoalPriority.MEDIUM.value
    status: str = GoalStatus.ACTIVE.value
    created_at: float = field(default_factory=time.time)
    status_changed_at: float | None = None
    deadline: str | None = None
    progress_notes: list[dict[str, Any]] = field(default_factory=list)
    related_memory_ids: list[str] = field(default_factory=list)
    obstacles: list[str] = field(default_factory=list)
    source_memory_id: str | None = None
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Goal:
        return cls(**_filter(cls, data))


@dataclass
class Skill:
    """An ability a character has learned or used."""

    id: str
    skill: str
    category: str = SkillCategory.OTHER.value
    description: str = ""
    proficiency: str = SkillProficiency.NOVICE.value
    learned_at: float = field(default_factory=time.time)
    last_used: float | None = None
    use_count: int = 0
    source: str = "unknown"
    teacher: str | None = None
    source_memory_id: str | None = None
    related_memory_ids: list[str] = field(default_factory=list)
    notes: list[dict[str, Any]] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    @property
    def proficiency_rank(self) -> int:
        try:
            return SkillProficiency(self.proficiency).rank
        except ValueError:
            return 1

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Skill:
        return cls(**_filter(cls, data))

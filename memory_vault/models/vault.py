"""
The vault: per-conversation persisted memory state.

A single JSON-serializable object keyed by named sections. It is passed
explicitly to every operation; there is no process-wide vault.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

from utils.fast_json import json_dumps, json_loads

from ..data.constants import (
    CHARACTERS_KEY,
    GOALS_KEY,
    LAST_PROCESSED_KEY,
    LOCATIONS_KEY,
    MEMORIES_KEY,
    PROMISES_KEY,
    RELATIONSHIPS_KEY,
    SECRETS_KEY,
    SKILLS_KEY,
)
from ..errors import MemoryVaultError, VaultCorruptedError
from .character import CharacterState
from .memory import EventType, Memory, clamp_importance
from .relationship import Relationship, canonical_pair, relationship_key
from .world import Goal, Location, Promise, Secret, Skill

T = TypeVar("T")


def _load_records(
    section: str, items: Any, loader: Callable[[dict[str, Any]], T]
) -> list[T]:
    """Load a list of records, skipping (and logging) entries that fail validation."""
    loaded: list[T] = []
    for item in items:
        if not isinstance(item, dict):
            logging.warning("⚠️ Skipping non-object entry in vault section '%s'", section)
            continue
        try:
            loaded.append(loader(item))
        except (MemoryVaultError, TypeError, ValueError, KeyError) as e:
            logging.warning("⚠️ Skipping invalid entry in vault section '%s': %s", section, e)
    return loaded


def _require(data: Mapping[str, Any], key: str, kind: type) -> Any:
    value = data.get(key)
    if value is None:
        return kind()
    if not isinstance(value, kind):
        raise VaultCorruptedError(
            f"Vault section '{key}' must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


@dataclass
class Vault:
    """Memories, character states, relationships, and world state for one conversation."""

    memories: list[Memory] = field(default_factory=list)
    characters: dict[str, CharacterState] = field(default_factory=dict)
    relationships: dict[str, Relationship] = field(default_factory=dict)
    secrets: dict[str, Secret] = field(default_factory=dict)
    locations: dict[str, Location] = field(default_factory=dict)
    promises: dict[str, Promise] = field(default_factory=dict)
    goals: dict[str, list[Goal]] = field(default_factory=dict)
    skills: dict[str, list[Skill]] = field(default_factory=dict)
    last_processed_message_id: int = -1

    # ==================== Memories ====================

    def get_memory(self, memory_id: str) -> Memory | None:
        for memory in self.memories:
            if memory.id == memory_id:
                return memory
        return None

    def add_memory(self, memory: Memory) -> bool:
        """Store a memory; returns False if one with the same id exists."""
        if self.get_memory(memory.id) is not None:
            return False
        self.memories.append(memory)
        return True

    def update_memory(
        self,
        memory_id: str,
        *,
        summary: str | None = None,
        importance: int | None = None,
        event_type: str | None = None,
    ) -> Memory | None:
        """Apply a user edit. Importance is re-clamped; unknown event types are rejected."""
        memory = self.get_memory(memory_id)
        if memory is None:
            return None
        if event_type is not None and event_type not in EventType.values():
            raise ValueError(f"Unknown event type: {event_type}")
        if summary is not None and summary.strip():
            memory.summary = summary.strip()
        if importance is not None:
            memory.importance = clamp_importance(importance)
        if event_type is not None:
            memory.event_type = event_type
        return memory

    def toggle_pin(self, memory_id: str) -> bool | None:
        """Flip the pinned flag. Returns the new value, None if not found."""
        memory = self.get_memory(memory_id)
        if memory is None:
            return None
        memory.pinned = not memory.pinned
        return memory.pinned

    def delete_memory(self, memory_id: str) -> bool:
        """Remove a memory. Linked world-state records are left as they are."""
        for index, memory in enumerate(self.memories):
            if memory.id == memory_id:
                del self.memories[index]
                return True
        return False

    def memories_in_order(self) -> list[Memory]:
        return sorted(self.memories, key=lambda m: m.sequence)

    # ==================== Characters / Relationships ====================

    def get_or_create_character(self, name: str) -> CharacterState:
        state = self.characters.get(name)
        if state is None:
            state = CharacterState(name=name)
            self.characters[name] = state
        return state

    def get_relationship(self, a: str, b: str) -> Relationship | None:
        return self.relationships.get(relationship_key(a, b))

    def get_or_create_relationship(self, a: str, b: str) -> Relationship:
        key = relationship_key(a, b)
        rel = self.relationships.get(key)
        if rel is None:
            first, second = canonical_pair(a, b)
            rel = Relationship(character_a=first, character_b=second)
            self.relationships[key] = rel
        return rel

    def relationships_for(self, name: str) -> list[Relationship]:
        return [rel for rel in self.relationships.values() if rel.involves(name)]

    # ==================== Serialization ====================

    def to_dict(self) -> dict[str, Any]:
        return {
            MEMORIES_KEY: [m.to_dict() for m in self.memories],
            CHARACTERS_KEY: {k: v.to_dict() for k, v in self.characters.items()},
            RELATIONSHIPS_KEY: {k: v.to_dict() for k, v in self.relationships.items()},
            SECRETS_KEY: {k: v.to_dict() for k, v in self.secrets.items()},
            LOCATIONS_KEY: {k: v.to_dict() for k, v in self.locations.items()},
            PROMISES_KEY: {k: v.to_dict() for k, v in self.promises.items()},
            GOALS_KEY: {k: [g.to_dict() for g in v] for k, v in self.goals.items()},
            SKILLS_KEY: {k: [s.to_dict() for s in v] for k, v in self.skills.items()},
            LAST_PROCESSED_KEY: self.last_processed_message_id,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Vault:
        """
        Validate and load a persisted vault.

        Missing sections load empty and invalid records are skipped.

        Raises:
            VaultCorruptedError: the object is not a mapping or a section has
                the wrong container type.
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise VaultCorruptedError(f"Vault must be an object, got {type(data).__name__}")

        memories = _require(data, MEMORIES_KEY, list)
        characters = _require(data, CHARACTERS_KEY, dict)
        relationships = _require(data, RELATIONSHIPS_KEY, dict)
        secrets = _require(data, SECRETS_KEY, dict)
        locations = _require(data, LOCATIONS_KEY, dict)
        promises = _require(data, PROMISES_KEY, dict)
        goals = _require(data, GOALS_KEY, dict)
        skills = _require(data, SKILLS_KEY, dict)

        last_processed = data.get(LAST_PROCESSED_KEY, -1)
        if not isinstance(last_processed, int) or isinstance(last_processed, bool):
            raise VaultCorruptedError(f"'{LAST_PROCESSED_KEY}' must be an integer")

        vault = cls(last_processed_message_id=last_processed)
        for memory in _load_records(MEMORIES_KEY, memories, Memory.from_dict):
            if not vault.add_memory(memory):
                logging.warning("⚠️ Skipping duplicate memory id %s", memory.id)

        vault.characters = {
            c.name: c
            for c in _load_records(CHARACTERS_KEY, characters.values(), CharacterState.from_dict)
        }
        vault.relationships = {
            r.key: r
            for r in _load_records(RELATIONSHIPS_KEY, relationships.values(), Relationship.from_dict)
        }
        vault.secrets = {
            s.id: s for s in _load_records(SECRETS_KEY, secrets.values(), Secret.from_dict)
        }
        vault.locations = {
            loc.id: loc
            for loc in _load_records(LOCATIONS_KEY, locations.values(), Location.from_dict)
        }
        vault.promises = {
            p.id: p for p in _load_records(PROMISES_KEY, promises.values(), Promise.from_dict)
        }
        for section, source, loader, target in (
            (GOALS_KEY, goals, Goal.from_dict, vault.goals),
            (SKILLS_KEY, skills, Skill.from_dict, vault.skills),
        ):
            for character, items in source.items():
                if not isinstance(items, list):
                    raise VaultCorruptedError(f"'{section}' for {character!r} must be a list")
                target[character] = _load_records(section, items, loader)
        return vault

    def to_json(self) -> str:
        return json_dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str | bytes) -> Vault:
        try:
            data = json_loads(text)
        except ValueError as e:
            raise VaultCorruptedError(f"Vault JSON is unreadable: {e}") from e
        return cls.from_dict(data)

    def get_stats(self) -> dict[str, Any]:
        """Counts per section, for status displays."""
        return {
            "memories": len(self.memories),
            "pinned": sum(1 for m in self.memories if m.pinned),
            "secret_memories": sum(1 for m in self.memories if m.is_secret),
            "embedded": sum(1 for m in self.memories if m.embedding),
            "characters": len(self.characters),
            "relationships": len(self.relationships),
            "secrets": len(self.secrets),
            "locations": len(self.locations),
            "promises": len(self.promises),
            "goals": sum(len(v) for v in self.goals.values()),
            "skills": sum(len(v) for v in self.skills.values()),
            "last_processed_message_id": self.last_processed_message_id,
        }

"""
Prompt rendering of retrieval results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..models.character import CharacterState
from ..models.memory import Memory
from ..models.relationship import Relationship
from .scorer import ScoredMemory


def format_memory_line(memory: Memory) -> str:
    """``- [4★] Alice hid the key (Alice, Bob; the cellar)``"""
    details = ", ".join(memory.characters_involved)
    if memory.location:
        details = f"{details}; {memory.location}" if details else memory.location
    line = f"- [{memory.importance}★] {memory.summary}"
    if details:
        line += f" ({details})"
    if memory.is_secret:
        line += " [secret]"
    return line


def format_character_line(state: CharacterState) -> str:
    return f"- {state.name}: {state.current_emotion} (intensity {state.emotion_intensity}/10)"


def format_relationship_line(rel: Relationship) -> str:
    dims = ", ".join(f"{name} {value:g}" for name, value in rel.dimensions().items())
    return f"- {rel.character_a} & {rel.character_b} ({rel.relationship_type}): {dims}"


@dataclass
class RetrievalResult:
    """Memories selected for injection plus the state of the characters they mention."""

    memories: list[Memory] = field(default_factory=list)
    characters: dict[str, CharacterState] = field(default_factory=dict)
    relationships: list[Relationship] = field(default_factory=list)
    scores: list[ScoredMemory] = field(default_factory=list)
    adjudicated: bool = False

    @property
    def memory_ids(self) -> list[str]:
        return [m.id for m in self.memories]

    def __len__(self) -> int:
        return len(self.memories)

    def to_prompt_text(self) -> str:
        """Memories in story order, then emotional states, then relationships."""
        if not self.memories:
            return ""

        sections = ["[Memories]"]
        sections.extend(
            format_memory_line(m) for m in sorted(self.memories, key=lambda m: m.sequence)
        )
        if self.characters:
            sections.append("")
            sections.append("[Emotional states]")
            sections.extend(
                format_character_line(s) for _, s in sorted(self.characters.items())
            )
        if self.relationships:
            sections.append("")
            sections.append("[Relationships]")
            sections.extend(format_relationship_line(r) for r in self.relationships)
        return "\n".join(sections)

    def to_dict(self) -> dict[str, Any]:
        return {
            "memory_ids": self.memory_ids,
            "characters": sorted(self.characters),
            "relationships": [r.key for r in self.relationships],
            "scores": [s.to_dict() for s in self.scores],
            "adjudicated": self.adjudicated,
        }

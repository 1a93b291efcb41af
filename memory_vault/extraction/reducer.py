"""
Event Reducer: folds freshly extracted events into the vault.

Each event becomes one memory and then updates character emotions,
witness knowledge, relationship dimensions, and the world-state stores.
A malformed event is skipped on its own; events already applied in the
same batch stay applied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..errors import ExtractionError
from ..models.character import EmotionHistoryEntry
from ..models.memory import Memory
from ..models.relationship import RelationshipHistoryEntry, parse_directed_key
from ..models.vault import Vault
from ..systems import goals as goal_system
from ..systems import locations as location_system
from ..systems import promises as promise_system
from ..systems import skills as skill_system
from .impact import apply_impact


@dataclass
class ReductionReport:
    """What one ``reduce`` call changed."""

    memories: list[Memory] = field(default_factory=list)
    skipped: int = 0
    characters_touched: set[str] = field(default_factory=set)
    relationships_touched: set[str] = field(default_factory=set)
    promises_created: int = 0
    goals_created: int = 0
    skills_created: int = 0
    skills_used: int = 0
    locations_linked: int = 0

    @property
    def memory_ids(self) -> list[str]:
        return [m.id for m in self.memories]


class EventReducer:
    """Applies extracted event payloads to a vault."""

    def __init__(self):
        self.logger = logging.getLogger("EventReducer")

    def reduce(self, events: list[dict[str, Any]], vault: Vault) -> ReductionReport:
        report = ReductionReport()
        for index, event in enumerate(events):
            try:
                memory = Memory.from_event(event, index, event.get("batch_id"))
            except ExtractionError as e:
                report.skipped += 1
                self.logger.warning("⚠️ Skipping extracted event %d: %s", index, e)
                continue

            if not vault.add_memory(memory):
                report.skipped += 1
                self.logger.warning("⚠️ Skipping event with duplicate id %s", memory.id)
                continue

            report.memories.append(memory)
            self._apply_emotions(memory, vault, report)
            self._apply_witnesses(memory, vault, report)
            self._apply_relationships(memory, vault, report)
            self._spin_off_promise(memory, vault, report)
            self._spin_off_goal(memory, vault, report)
            self._spin_off_skill(memory, vault, report)
            self._link_location(memory, vault, report)

        if report.memories or report.skipped:
            self.logger.info(
                "🧠 Reduced %d events into memories (%d skipped)",
                len(report.memories),
                report.skipped,
            )
        return report

    # ==================== Characters ====================

    def _apply_emotions(self, memory: Memory, vault: Vault, report: ReductionReport) -> None:
        for character, emotion in memory.emotional_impact.items():
            state = vault.get_or_create_character(character)
            state.record_emotion(
                EmotionHistoryEntry(
                    emotion=emotion,
                    event_id=memory.id,
                    message_range=memory.message_range,
                    event_type=memory.event_type,
                    emotional_tone=list(memory.emotional_tone),
                    valence=memory.emotional_valence,
                )
            )
            report.characters_touched.add(character)

    def _apply_witnesses(self, memory: Memory, vault: Vault, report: ReductionReport) -> None:
        for witness in memory.witnesses:
            vault.get_or_create_character(witness).learn(memory.id)
            report.characters_touched.add(witness)

    # ==================== Relationships ====================

    def _apply_relationships(self, memory: Memory, vault: Vault, report: ReductionReport) -> None:
        message_id = memory.last_message_id
        for directed_key, impact in memory.relationship_impact.items():
            pair = parse_directed_key(directed_key)
            if pair is None:
                self.logger.debug("Ignoring malformed relationship key %r", directed_key)
                continue
            if impact is None:
                continue
            source, target = pair
            rel = vault.get_or_create_relationship(source, target)
            apply_impact(rel, impact)
            rel.history.append(
                RelationshipHistoryEntry(
                    event_id=memory.id,
                    impact=impact,
                    direction=f"{source}->{target}",
                    message_id=message_id,
                )
            )
            if message_id is not None:
                rel.last_updated_message_id = message_id
            report.relationships_touched.add(rel.key)

    # ==================== World state ====================

    def _spin_off_promise(self, memory: Memory, vault: Vault, report: ReductionReport) -> None:
        payload = memory.promise
        if not payload:
            return
        from_character = payload.get("from")
        to_character = payload.get("to")
        content = payload.get("content")
        if not (from_character and to_character and content):
            return
        promise_system.create_promise(
            vault,
            str(from_character),
            str(to_character),
            str(content),
            made_at_message=memory.last_message_id or 0,
            context=memory.summary,
            deadline=payload.get("deadline"),
            importance=memory.importance,
            source_memory_id=memory.id,
        )
        report.promises_created += 1

    def _spin_off_goal(self, memory: Memory, vault: Vault, report: ReductionReport) -> None:
        payload = memory.goal
        if not payload:
            return
        character = payload.get("character")
        text = payload.get("goal")
        if not (isinstance(character, str) and isinstance(text, str) and character and text):
            return
        if goal_system.find_goal_by_text(vault, character, text) is not None:
            return
        goal_system.create_goal(
            vault,
            character,
            text,
            motivation=str(payload.get("motivation") or ""),
            related_memory_ids=[memory.id],
            source_memory_id=memory.id,
        )
        report.goals_created += 1

    def _spin_off_skill(self, memory: Memory, vault: Vault, report: ReductionReport) -> None:
        payload = memory.skill
        if not payload:
            return
        character = payload.get("character")
        name = payload.get("skill")
        if not (isinstance(character, str) and isinstance(name, str) and character and name):
            return

        existing = skill_system.get_skill(vault, character, name)
        if existing is not None:
            skill_system.record_skill_usage(vault, character, existing.id, memory.id)
            report.skills_used += 1
            return

        skill = skill_system.create_skill(
            vault,
            character,
            name,
            category=str(payload.get("category") or "other"),
            source=str(payload.get("source") or "unknown"),
            teacher=payload.get("teacher") or None,
            source_memory_id=memory.id,
        )
        skill_system.record_skill_usage(vault, character, skill.id, memory.id)
        report.skills_created += 1

    def _link_location(self, memory: Memory, vault: Vault, report: ReductionReport) -> None:
        if memory.location and location_system.link_memory_to_location(
            vault, memory.id, memory.location
        ):
            report.locations_linked += 1


def reduce_events(events: list[dict[str, Any]], vault: Vault) -> ReductionReport:
    """Convenience wrapper around ``EventReducer().reduce``."""
    return EventReducer().reduce(events, vault)


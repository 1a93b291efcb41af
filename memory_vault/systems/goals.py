"""
Goals: what characters want, with priority and lifecycle status.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from ..models.base import generate_id
from ..models.vault import Vault
from ..models.world import Goal, GoalPriority, GoalStatus
from .language import compile_phrases, find_phrases

_GOAL_PATTERNS = compile_phrases(
    [
        "I want to",
        "I need to",
        "I must",
        "I have to",
        "my goal is",
        "my dream is",
        "I'm trying to",
        "I'm going to",
        "I will",
        "I plan to",
        "I intend to",
        "I aim to",
        "I hope to",
        "I wish to",
        "I'm determined to",
        "my mission is",
        "my purpose is",
        "what I really want",
        "more than anything",
    ]
)

_STATUSES = {s.value for s in GoalStatus}
_PRIORITIES = {p.value for p in GoalPriority}


def _find(vault: Vault, character: str, goal_id: str) -> Goal | None:
    for goal in vault.goals.get(character, []):
        if goal.id == goal_id:
            return goal
    return None


def find_goal_by_text(vault: Vault, character: str, text: str) -> Goal | None:
    """Case-insensitive lookup by goal text."""
    wanted = text.strip().lower()
    for goal in vault.goals.get(character, []):
        if goal.goal.strip().lower() == wanted:
            return goal
    return None


def create_goal(
    vault: Vault,
    character: str,
    goal: str,
    *,
    motivation: str = "",
    priority: str = GoalPriority.MEDIUM.value,
    deadline: str | None = None,
    related_memory_ids: list[str] | None = None,
    obstacles: list[str] | None = None,
    source_memory_id: str | None = None,
    tags: list[str] | None = None,
) -> Goal:
    if priority not in _PRIORITIES:
        priority = GoalPriority.MEDIUM.value
    record = Goal(
        id=generate_id("goal"),
        goal=goal,
        motivation=motivation,
        priority=priority,
        deadline=deadline,
        related_memory_ids=list(related_memory_ids or []),
        obstacles=list(obstacles or []),
        source_memory_id=source_memory_id,
        tags=list(tags or []),
    )
    vault.goals.setdefault(character, []).append(record)
    logging.info("🎯 Created goal for %s: %s", character, goal)
    return record


def update_goal_status(vault: Vault, character: str, goal_id: str, status: str) -> bool:
    if status not in _STATUSES:
        logging.warning("⚠️ Invalid goal status: %s", status)
        return False
    goal = _find(vault, character, goal_id)
    if goal is None:
        return False
    goal.status = status
    goal.status_changed_at = time.time()
    logging.info("🎯 Goal %s for %s status changed to: %s", goal_id, character, status)
    return True


def complete_goal(vault: Vault, character: str, goal_id: str) -> bool:
    return update_goal_status(vault, character, goal_id, GoalStatus.COMPLETED.value)


def abandon_goal(vault: Vault, character: str, goal_id: str) -> bool:
    return update_goal_status(vault, character, goal_id, GoalStatus.ABANDONED.value)


def fail_goal(vault: Vault, character: str, goal_id: str) -> bool:
    return update_goal_status(vault, character, goal_id, GoalStatus.FAILED.value)


def add_goal_progress(vault: Vault, character: str, goal_id: str, note: str) -> bool:
    goal = _find(vault, character, goal_id)
    if goal is None:
        return False
    goal.progress_notes.append({"note": note, "timestamp": time.time()})
    return True


def add_goal_obstacle(vault: Vault, character: str, goal_id: str, obstacle: str) -> bool:
    goal = _find(vault, character, goal_id)
    if goal is None:
        return False
    if obstacle not in goal.obstacles:
        goal.obstacles.append(obstacle)
    return True


def link_memory_to_goal(vault: Vault, character: str, goal_id: str, memory_id: str) -> bool:
    goal = _find(vault, character, goal_id)
    if goal is None:
        return False
    if memory_id not in goal.related_memory_ids:
        goal.related_memory_ids.append(memory_id)
    return True


def update_goal_priority(vault: Vault, character: str, goal_id: str, priority: str) -> bool:
    if priority not in _PRIORITIES:
        logging.warning("⚠️ Invalid goal priority: %s", priority)
        return False
    goal = _find(vault, character, goal_id)
    if goal is None:
        return False
    goal.priority = priority
    return True


def delete_goal(vault: Vault, character: str, goal_id: str) -> bool:
    goals = vault.goals.get(character, [])
    for index, goal in enumerate(goals):
        if goal.id == goal_id:
            del goals[index]
            logging.info("🗑️ Deleted goal %s for %s", goal_id, character)
            return True
    return False


def get_character_goals(vault: Vault, character: str, status: str | None = None) -> list[Goal]:
    goals = vault.goals.get(character, [])
    if status is None:
        return list(goals)
    return [g for g in goals if g.status == status]


def get_active_goals(vault: Vault, character: str) -> list[Goal]:
    return get_character_goals(vault, character, GoalStatus.ACTIVE.value)


def get_all_active_goals(vault: Vault) -> list[tuple[str, Goal]]:
    return [
        (character, goal)
        for character, goals in vault.goals.items()
        for goal in goals
        if goal.status == GoalStatus.ACTIVE.value
    ]


def get_goals_by_priority(vault: Vault, priority: str) -> list[tuple[str, Goal]]:
    """Active goals at the given priority across all characters."""
    return [(c, g) for c, g in get_all_active_goals(vault) if g.priority == priority]


def get_urgent_goals(vault: Vault) -> list[tuple[str, Goal]]:
    return get_goals_by_priority(vault, GoalPriority.CRITICAL.value) + get_goals_by_priority(
        vault, GoalPriority.HIGH.value
    )


def get_goals_summary(vault: Vault) -> dict[str, Any]:
    by_status = {s.value: 0 for s in GoalStatus}
    by_character: dict[str, dict[str, int]] = {}
    total = 0
    for character, goals in vault.goals.items():
        by_character[character] = {
            "total": len(goals),
            "active": sum(1 for g in goals if g.status == GoalStatus.ACTIVE.value),
        }
        for goal in goals:
            total += 1
            by_status[goal.status] = by_status.get(goal.status, 0) + 1
    return {
        "total_goals": total,
        "by_status": by_status,
        "by_character": by_character,
        "urgent_goals": len(get_urgent_goals(vault)),
    }


def detect_goal_language(text: str) -> list[str]:
    return find_phrases(text, _GOAL_PATTERNS)

"""
Skills: what characters have learned to do, on a six-step proficiency ladder.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from ..models.base import generate_id
from ..models.vault import Vault
from ..models.world import Skill, SkillCategory, SkillProficiency
from .language import compile_phrases, find_phrases

_SKILL_PATTERNS = compile_phrases(
    [
        "learned to",
        "taught me",
        "trained in",
        "practiced",
        "mastered",
        "skilled at",
        "expert in",
        "knows how to",
        "can now",
        "finally able to",
        "improved at",
        "getting better at",
        "talent for",
        "ability to",
        "proficient in",
        "specializes in",
        "studied",
        "self-taught",
    ]
)

_LADDER = list(SkillProficiency)
_CATEGORIES = {c.value for c in SkillCategory}


def _rank(proficiency: str | None) -> int:
    try:
        return SkillProficiency(proficiency).rank
    except ValueError:
        return 0


def _find(vault: Vault, character: str, skill_id: str) -> Skill | None:
    for skill in vault.skills.get(character, []):
        if skill.id == skill_id:
            return skill
    return None


def get_skill(vault: Vault, character: str, name: str) -> Skill | None:
    """Case-insensitive lookup by skill name."""
    wanted = name.strip().lower()
    for skill in vault.skills.get(character, []):
        if skill.skill.strip().lower() == wanted:
            return skill
    return None


def has_skill(vault: Vault, character: str, name: str) -> bool:
    return get_skill(vault, character, name) is not None


def create_skill(
    vault: Vault,
    character: str,
    name: str,
    *,
    category: str = SkillCategory.OTHER.value,
    description: str = "",
    proficiency: str = SkillProficiency.NOVICE.value,
    source: str = "unknown",
    teacher: str | None = None,
    source_memory_id: str | None = None,
    related_memory_ids: list[str] | None = None,
    tags: list[str] | None = None,
) -> Skill:
    """Create a skill, or return the existing one with the same name."""
    existing = get_skill(vault, character, name)
    if existing is not None:
        logging.debug("Skill %s already exists for %s", name, character)
        return existing

    skill = Skill(
        id=generate_id("skill"),
        skill=name,
        category=category if category in _CATEGORIES else SkillCategory.OTHER.value,
        description=description,
        proficiency=proficiency if _rank(proficiency) else SkillProficiency.NOVICE.value,
        source=source or "unknown",
        teacher=teacher,
        source_memory_id=source_memory_id,
        related_memory_ids=list(related_memory_ids or []),
        tags=list(tags or []),
    )
    vault.skills.setdefault(character, []).append(skill)
    logging.info("🛠️ Created skill for %s: %s (%s)", character, name, skill.proficiency)
    return skill


def update_skill_proficiency(
    vault: Vault, character: str, skill_id: str, proficiency: str
) -> bool:
    if not _rank(proficiency):
        logging.warning("⚠️ Invalid skill proficiency: %s", proficiency)
        return False
    skill = _find(vault, character, skill_id)
    if skill is None:
        return False
    old = skill.proficiency
    skill.proficiency = proficiency
    logging.info("🛠️ %s's %s proficiency: %s -> %s", character, skill.skill, old, proficiency)
    return True


def improve_skill(vault: Vault, character: str, skill_id: str) -> bool:
    """Raise proficiency one step. False when already at master."""
    skill = _find(vault, character, skill_id)
    if skill is None:
        return False
    rank = skill.proficiency_rank
    if rank >= len(_LADDER):
        logging.debug("%s's %s is already at maximum proficiency", character, skill.skill)
        return False
    return update_skill_proficiency(vault, character, skill_id, _LADDER[rank].value)


def record_skill_usage(
    vault: Vault, character: str, skill_id: str, memory_id: str | None = None
) -> bool:
    skill = _find(vault, character, skill_id)
    if skill is None:
        return False
    skill.last_used = time.time()
    skill.use_count += 1
    if memory_id and memory_id not in skill.related_memory_ids:
        skill.related_memory_ids.append(memory_id)
    return True


def add_skill_note(vault: Vault, character: str, skill_id: str, note: str) -> bool:
    skill = _find(vault, character, skill_id)
    if skill is None:
        return False
    skill.notes.append({"note": note, "timestamp": time.time()})
    return True


def link_memory_to_skill(vault: Vault, character: str, skill_id: str, memory_id: str) -> bool:
    skill = _find(vault, character, skill_id)
    if skill is None:
        return False
    if memory_id not in skill.related_memory_ids:
        skill.related_memory_ids.append(memory_id)
    return True


def delete_skill(vault: Vault, character: str, skill_id: str) -> bool:
    skills = vault.skills.get(character, [])
    for index, skill in enumerate(skills):
        if skill.id == skill_id:
            del skills[index]
            logging.info("🗑️ Deleted skill %s for %s", skill_id, character)
            return True
    return False


def get_skills_by_category(vault: Vault, character: str, category: str) -> list[Skill]:
    return [s for s in vault.skills.get(character, []) if s.category == category]


def get_skills_by_proficiency(vault: Vault, character: str, minimum: str) -> list[Skill]:
    """Skills at or above ``minimum`` on the ladder."""
    floor = _rank(minimum) or 1
    return [s for s in vault.skills.get(character, []) if s.proficiency_rank >= floor]


def get_all_skills_by_category(vault: Vault, category: str) -> list[tuple[str, Skill]]:
    return [
        (character, skill)
        for character, skills in vault.skills.items()
        for skill in skills
        if skill.category == category
    ]


def compare_skills(vault: Vault, a: str, b: str, name: str) -> dict[str, Any]:
    """Compare two characters on one skill; a missing skill ranks 0."""
    skill_a = get_skill(vault, a, name)
    skill_b = get_skill(vault, b, name)
    rank_a = skill_a.proficiency_rank if skill_a else 0
    rank_b = skill_b.proficiency_rank if skill_b else 0
    if rank_a > rank_b:
        winner = a
    elif rank_b > rank_a:
        winner = b
    else:
        winner = "tie"
    return {
        a: skill_a.proficiency if skill_a else "none",
        b: skill_b.proficiency if skill_b else "none",
        "winner": winner,
        "difference": abs(rank_a - rank_b),
    }


def get_skills_summary(vault: Vault) -> dict[str, Any]:
    by_category: dict[str, int] = {}
    by_proficiency: dict[str, int] = {}
    by_character: dict[str, int] = {}
    total = 0
    for character, skills in vault.skills.items():
        by_character[character] = len(skills)
        for skill in skills:
            total += 1
            by_category[skill.category] = by_category.get(skill.category, 0) + 1
            by_proficiency[skill.proficiency] = by_proficiency.get(skill.proficiency, 0) + 1
    return {
        "total_skills": total,
        "by_category": by_category,
        "by_proficiency": by_proficiency,
        "by_character": by_character,
    }


def detect_skill_language(text: str) -> list[str]:
    return find_phrases(text, _SKILL_PATTERNS)

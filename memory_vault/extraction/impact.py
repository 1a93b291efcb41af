"""
Relationship impact application.

Extraction output describes a relationship change either as an object of
numeric deltas (structured) or as a free-text sentence (legacy). The legacy
form goes through an ordered rule table: for each dimension the first
matching rule wins, and familiarity grows by one on every legacy impact.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..data.constants import RELATIONSHIP_DIMENSIONS
from ..models.base import is_number
from ..models.relationship import Relationship


@dataclass(frozen=True)
class ImpactRule:
    """
    ``requires`` must all appear in the text and at least one of ``any_of``
    must appear (an empty ``requires`` means only ``any_of`` is checked).
    """

    dimension: str
    delta: int
    any_of: tuple[str, ...]
    requires: tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        if not all(word in text for word in self.requires):
            return False
        return any(word in text for word in self.any_of)


# Order matters: earlier rules for a dimension shadow later ones
LEGACY_IMPACT_RULES: tuple[ImpactRule, ...] = (
    ImpactRule("trust", +1, ("increas", "deepen", "gain"), requires=("trust",)),
    ImpactRule("trust", -1, ("decreas", "lost", "betray"), requires=("trust",)),
    ImpactRule("tension", +1, ("increas",), requires=("tension",)),
    ImpactRule("tension", -1, ("decreas",), requires=("tension",)),
    ImpactRule("respect", +1, ("gain", "increas", "shown"), requires=("respect",)),
    ImpactRule("respect", -1, ("lost", "decreas"), requires=("respect",)),
    ImpactRule("attraction", +1, ("attract", "desire", "romantic", "intimacy")),
    ImpactRule("fear", +1, ("fear", "intimidat", "threat")),
    ImpactRule("fear", -1, ("reassur", "comfort")),
    ImpactRule("loyalty", +1, ("loyal", "devotion", "commit")),
    ImpactRule("loyalty", -1, ("betray", "abandon")),
)

LEGACY_FAMILIARITY_STEP = 1


def classify_legacy_impact(text: str) -> dict[str, int]:
    """Map a free-text impact to per-dimension deltas (familiarity excluded)."""
    lowered = text.lower()
    deltas: dict[str, int] = {}
    for rule in LEGACY_IMPACT_RULES:
        if rule.dimension in deltas:
            continue
        if rule.matches(lowered):
            deltas[rule.dimension] = rule.delta
    return deltas


def apply_legacy_impact(rel: Relationship, text: str) -> dict[str, int]:
    """
    Apply a free-text impact. Familiarity always increases, even when no
    other rule matched. Returns the deltas that were applied.
    """
    deltas = classify_legacy_impact(text)
    deltas["familiarity"] = deltas.get("familiarity", 0) + LEGACY_FAMILIARITY_STEP
    for dimension, delta in deltas.items():
        rel.adjust(dimension, delta)
    return deltas


def apply_structured_impact(rel: Relationship, impact: dict[str, Any]) -> dict[str, float]:
    """
    Add each numeric dimension delta and clamp. Non-numeric values are
    ignored; familiarity only changes when given explicitly. A string
    ``relationship_type`` relabels the pair.
    """
    applied: dict[str, float] = {}
    for dimension in RELATIONSHIP_DIMENSIONS:
        delta = impact.get(dimension)
        if is_number(delta):
            rel.adjust(dimension, delta)
            applied[dimension] = delta

    relationship_type = impact.get("relationship_type")
    if isinstance(relationship_type, str) and relationship_type.strip():
        rel.relationship_type = relationship_type.strip()
    return applied


def apply_impact(rel: Relationship, impact: Any) -> dict[str, float]:
    """Dispatch on the impact format."""
    if isinstance(impact, dict):
        return apply_structured_impact(rel, impact)
    if impact is None:
        return {}
    return apply_legacy_impact(rel, str(impact))

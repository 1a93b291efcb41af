"""Memory vault records and the vault state object."""

from .character import CharacterState, EmotionHistoryEntry
from .memory import EventType, Memory
from .relationship import Relationship, RelationshipHistoryEntry, relationship_key
from .vault import Vault
from .world import (
    Goal,
    GoalPriority,
    GoalStatus,
    Location,
    Promise,
    PromiseStatus,
    Secret,
    Skill,
    SkillCategory,
    SkillProficiency,
)

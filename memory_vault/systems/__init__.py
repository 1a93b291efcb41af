"""World-state operations: secrets, locations, promises, goals, skills."""

from . import goals, locations, promises, secrets, skills
from .locations import normalize_location_name
from .secrets import filter_memories_by_knowledge

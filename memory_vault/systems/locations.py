"""
Locations: places where memories happened.

Locations are keyed by their normalized name. Memories link to them by id,
and a location may sit inside a parent location.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any

from ..models.memory import Memory
from ..models.vault import Vault
from ..models.world import Location

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_location_name(name: str) -> str:
    """``"The Old Mill!"`` -> ``"the_old_mill"``."""
    normalized = _NON_ALNUM_RE.sub("", name.lower().strip())
    return _WHITESPACE_RE.sub("_", normalized)


def get_location(vault: Vault, name: str) -> Location | None:
    """Find a location by normalized name, then by alias."""
    normalized = normalize_location_name(name)
    location = vault.locations.get(normalized)
    if location is not None:
        return location
    for candidate in vault.locations.values():
        if any(normalize_location_name(a) == normalized for a in candidate.aliases):
            return candidate
    return None


def upsert_location(
    vault: Vault,
    name: str,
    *,
    description: str = "",
    tags: list[str] | None = None,
    aliases: list[str] | None = None,
    alias: str | None = None,
    parent_location: str | None = None,
) -> Location | None:
    """
    Record a visit to a location, creating it when unseen.

    An existing location gets ``visit_count`` incremented and ``last_visit``
    refreshed, merges tags, and only takes the description if it has none.
    """
    normalized = normalize_location_name(name)
    if not normalized:
        return None

    existing = vault.locations.get(normalized)
    if existing is not None:
        existing.last_visit = time.time()
        existing.visit_count += 1
        if description and not existing.description:
            existing.description = description
        for tag in tags or []:
            if tag not in existing.tags:
                existing.tags.append(tag)
        if alias and alias not in existing.aliases:
            existing.aliases.append(alias)
        return existing

    location = Location(
        id=normalized,
        name=name.strip(),
        aliases=list(aliases or []),
        description=description,
        parent_location=parent_location,
        tags=list(tags or []),
    )
    vault.locations[normalized] = location
    logging.info("📍 Created location: %s", location.name)
    return location


def link_memory_to_location(vault: Vault, memory_id: str, location_name: str) -> bool:
    location = get_location(vault, location_name) or upsert_location(vault, location_name)
    if location is None:
        return False
    if memory_id not in location.memory_ids:
        location.memory_ids.append(memory_id)
    return True


def get_memories_at_location(
    vault: Vault, location_name: str, *, recursive: bool = False
) -> list[Memory]:
    """Memories linked to a location, optionally including its direct children."""
    location = get_location(vault, location_name)
    if location is None:
        return []

    memory_ids = list(location.memory_ids)
    if recursive:
        for child in vault.locations.values():
            if child.parent_location == location.id:
                memory_ids.extend(child.memory_ids)

    wanted = set(memory_ids)
    return [m for m in vault.memories if m.id in wanted]


def set_location_parent(vault: Vault, child_name: str, parent_name: str) -> bool:
    child = vault.locations.get(normalize_location_name(child_name))
    if child is None:
        return False
    parent = get_location(vault, parent_name) or upsert_location(vault, parent_name)
    if parent is None or parent.id == child.id:
        return False
    child.parent_location = parent.id
    logging.info("📍 Set %s as child of %s", child.name, parent.name)
    return True


def add_location_alias(vault: Vault, location_name: str, alias: str) -> bool:
    location = vault.locations.get(normalize_location_name(location_name))
    if location is None:
        return False
    if alias not in location.aliases:
        location.aliases.append(alias)
    return True


def delete_location(vault: Vault, location_name: str) -> bool:
    normalized = normalize_location_name(location_name)
    if vault.locations.pop(normalized, None) is None:
        return False
    logging.info("🗑️ Deleted location: %s", location_name)
    return True


def get_locations_by_popularity(vault: Vault) -> list[Location]:
    return sorted(vault.locations.values(), key=lambda loc: loc.visit_count, reverse=True)


def get_locations_by_recency(vault: Vault) -> list[Location]:
    return sorted(vault.locations.values(), key=lambda loc: loc.last_visit, reverse=True)


def get_locations_summary(vault: Vault) -> dict[str, Any]:
    by_popularity = get_locations_by_popularity(vault)
    by_recency = get_locations_by_recency(vault)
    return {
        "total_locations": len(vault.locations),
        "total_memories_linked": sum(len(loc.memory_ids) for loc in vault.locations.values()),
        "most_visited": by_popularity[0].name if by_popularity else None,
        "most_recent": by_recency[0].name if by_recency else None,
    }

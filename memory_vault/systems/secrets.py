"""
Secrets: information only some characters know.

Two layers share the same idea. A secret *memory* carries ``known_by`` and is
hidden from other POV characters at retrieval time. A standalone ``Secret``
record tracks a fact and who has learned it, and can be revealed to everyone.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from typing import Any

from ..data.constants import DEFAULT_IMPORTANCE
from ..models.base import generate_id, unique_strings
from ..models.memory import Memory, clamp_importance
from ..models.vault import Vault
from ..models.world import Secret


def create_secret(
    vault: Vault,
    content: str,
    known_by: Iterable[str] | None = None,
    *,
    source_memory_id: str | None = None,
    importance: int = DEFAULT_IMPORTANCE,
    tags: list[str] | None = None,
) -> Secret:
    secret = Secret(
        id=generate_id("secret"),
        content=content,
        known_by=unique_strings(list(known_by or [])),
        source_memory_id=source_memory_id,
        memory_ids=[source_memory_id] if source_memory_id else [],
        importance=clamp_importance(importance),
        tags=list(tags or []),
    )
    vault.secrets[secret.id] = secret
    logging.info("🤫 Created secret %s known by [%s]", secret.id, ", ".join(secret.known_by))
    return secret


def reveal_secret_to(vault: Vault, secret_id: str, characters: Iterable[str]) -> bool:
    """Add new knowers. Characters who already know are left alone."""
    secret = vault.secrets.get(secret_id)
    if secret is None:
        return False
    new_knowers = [c for c in unique_strings(list(characters)) if c not in secret.known_by]
    if new_knowers:
        secret.known_by.extend(new_knowers)
        logging.info("🔓 Revealed secret %s to [%s]", secret_id, ", ".join(new_knowers))
    return True


def reveal_secret_publicly(vault: Vault, secret_id: str) -> bool:
    secret = vault.secrets.get(secret_id)
    if secret is None:
        return False
    secret.revealed_at = time.time()
    logging.info("📢 Secret %s is now public knowledge", secret_id)
    return True


def delete_secret(vault: Vault, secret_id: str) -> bool:
    if vault.secrets.pop(secret_id, None) is None:
        return False
    logging.info("🗑️ Deleted secret %s", secret_id)
    return True


def link_memory_to_secret(vault: Vault, secret_id: str, memory_id: str) -> bool:
    secret = vault.secrets.get(secret_id)
    if secret is None:
        return False
    if memory_id not in secret.memory_ids:
        secret.memory_ids.append(memory_id)
    return True


def mark_memory_as_secret(vault: Vault, memory_id: str, known_by: Iterable[str]) -> bool:
    memory = vault.get_memory(memory_id)
    if memory is None:
        return False
    memory.is_secret = True
    memory.known_by = unique_strings(list(known_by))
    logging.info(
        "🤫 Marked memory %s as secret, known by [%s]", memory_id, ", ".join(memory.known_by)
    )
    return True


def unmark_memory_as_secret(vault: Vault, memory_id: str) -> bool:
    memory = vault.get_memory(memory_id)
    if memory is None:
        return False
    memory.is_secret = False
    memory.known_by = None
    logging.info("🔓 Unmarked memory %s as secret", memory_id)
    return True


def filter_memories_by_knowledge(memories: list[Memory], character: str | None) -> list[Memory]:
    """
    Keep what ``character`` is allowed to know.

    Non-secret memories always pass. A secret memory passes only when the
    character is in its ``known_by``. ``None`` disables the filter.
    """
    if not character:
        return list(memories)
    return [m for m in memories if m.is_known_by(character)]


def get_secrets_known_by(vault: Vault, character: str) -> list[Secret]:
    return [
        s for s in vault.secrets.values() if character in s.known_by and not s.is_revealed
    ]


def get_secrets_unknown_to(vault: Vault, character: str) -> list[Secret]:
    return [
        s for s in vault.secrets.values() if character not in s.known_by and not s.is_revealed
    ]


def get_secrets_summary(vault: Vault) -> dict[str, Any]:
    secrets = list(vault.secrets.values())
    active = [s for s in secrets if not s.is_revealed]
    knowledge: dict[str, int] = {}
    for secret in active:
        for character in secret.known_by:
            knowledge[character] = knowledge.get(character, 0) + 1
    return {
        "total": len(secrets),
        "active": len(active),
        "revealed": len(secrets) - len(active),
        "knowledge_by_character": knowledge,
    }

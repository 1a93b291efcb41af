"""
Promises: commitments one character makes to another.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from ..data.constants import DEFAULT_IMPORTANCE
from ..models.base import generate_id
from ..models.memory import clamp_importance
from ..models.vault import Vault
from ..models.world import Promise, PromiseStatus
from .language import compile_phrases, find_phrases

_PROMISE_PATTERNS = compile_phrases(
    [
        "I promise",
        "I swear",
        "I vow",
        "I pledge",
        "I give you my word",
        "you have my word",
        "I'll make sure",
        "I won't let you down",
        "you can count on me",
        "I owe you",
        "you owe me",
        "in your debt",
        "I'll repay",
        "I guarantee",
        "cross my heart",
        "on my honor",
        "on my life",
    ]
)


def create_promise(
    vault: Vault,
    from_character: str,
    to_character: str,
    content: str,
    *,
    made_at_message: int = 0,
    context: str = "",
    deadline: str | None = None,
    importance: int = DEFAULT_IMPORTANCE,
    source_memory_id: str | None = None,
    tags: list[str] | None = None,
) -> Promise:
    promise = Promise(
        id=generate_id("promise"),
        from_character=from_character,
        to_character=to_character,
        content=content,
        context=context,
        made_at_message=made_at_message,
        deadline=deadline,
        importance=clamp_importance(importance),
        source_memory_id=source_memory_id,
        tags=list(tags or []),
    )
    vault.promises[promise.id] = promise
    logging.info("🤝 Created promise: %s -> %s: %s", from_character, to_character, content)
    return promise


def update_promise_status(vault: Vault, promise_id: str, status: str) -> bool:
    promise = vault.promises.get(promise_id)
    if promise is None:
        return False
    if status not in {s.value for s in PromiseStatus}:
        logging.warning("⚠️ Invalid promise status: %s", status)
        return False
    promise.status = status
    promise.status_changed_at = time.time()
    logging.info("🤝 Promise %s status changed to: %s", promise_id, status)
    return True


def fulfill_promise(vault: Vault, promise_id: str) -> bool:
    return update_promise_status(vault, promise_id, PromiseStatus.FULFILLED.value)


def break_promise(vault: Vault, promise_id: str) -> bool:
    return update_promise_status(vault, promise_id, PromiseStatus.BROKEN.value)


def forgive_promise(vault: Vault, promise_id: str) -> bool:
    return update_promise_status(vault, promise_id, PromiseStatus.FORGIVEN.value)


def delete_promise(vault: Vault, promise_id: str) -> bool:
    if vault.promises.pop(promise_id, None) is None:
        return False
    logging.info("🗑️ Deleted promise %s", promise_id)
    return True


def get_promises_made_by(vault: Vault, character: str, status: str | None = None) -> list[Promise]:
    return [
        p
        for p in vault.promises.values()
        if p.from_character == character and (status is None or p.status == status)
    ]


def get_promises_made_to(vault: Vault, character: str, status: str | None = None) -> list[Promise]:
    return [
        p
        for p in vault.promises.values()
        if p.to_character == character and (status is None or p.status == status)
    ]


def get_pending_promises_for(vault: Vault, character: str) -> list[Promise]:
    """Pending promises the character made or received."""
    return [
        p
        for p in vault.promises.values()
        if p.status == PromiseStatus.PENDING.value
        and character in (p.from_character, p.to_character)
    ]


def get_promises_between(vault: Vault, a: str, b: str) -> list[Promise]:
    return [p for p in vault.promises.values() if p.involves(a, b)]


def get_promises_needing_reminder(
    vault: Vault, current_message: int, threshold: int = 10
) -> list[Promise]:
    """Pending promises made at least ``threshold`` messages ago."""
    return [
        p
        for p in vault.promises.values()
        if p.status == PromiseStatus.PENDING.value
        and current_message - p.made_at_message >= threshold
    ]


def get_unforgiven_broken_promises(vault: Vault) -> list[Promise]:
    return [p for p in vault.promises.values() if p.status == PromiseStatus.BROKEN.value]


def get_promises_summary(vault: Vault) -> dict[str, Any]:
    by_status = {s.value: 0 for s in PromiseStatus}
    made_by: dict[str, int] = {}
    made_to: dict[str, int] = {}
    for p in vault.promises.values():
        by_status[p.status] = by_status.get(p.status, 0) + 1
        made_by[p.from_character] = made_by.get(p.from_character, 0) + 1
        made_to[p.to_character] = made_to.get(p.to_character, 0) + 1
    return {
        "total": len(vault.promises),
        "by_status": by_status,
        "made_by_character": made_by,
        "received_by_character": made_to,
    }


def detect_promise_language(text: str) -> list[str]:
    return find_phrases(text, _PROMISE_PATTERNS)

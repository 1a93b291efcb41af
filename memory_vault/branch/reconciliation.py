"""
Branch Reconciliation: keep the vault consistent with the active branch.

When the user switches to a branch, the chat may be shorter than the vault
remembers. Memories that start beyond the new end are pruned along with the
references to them. Messages hidden by auto-hide are then unhidden and the
hide policy is re-applied once the host has finished loading the chat.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from config import VaultSettings

from ..conversation import ConversationGuard, ConversationState
from ..models.vault import Vault
from .auto_hide import AutoHideResult, auto_hide_old_messages

Notifier = Callable[[str, str], None]


@dataclass
class PruneResult:
    removed_ids: list[str] = field(default_factory=list)
    characters_cleaned: int = 0
    relationships_cleaned: int = 0

    @property
    def count(self) -> int:
        return len(self.removed_ids)


def prune_stale_memories(vault: Vault, chat_length: int, enabled: bool = True) -> PruneResult:
    """
    Remove memories whose earliest message is at or beyond ``chat_length``.

    Character knowledge, emotion history, and relationship history entries
    pointing at removed memories are dropped; the characters and
    relationships themselves stay. The extraction cursor is rewound so it
    never points past the end of the chat, even when pruning is disabled.
    Running it twice with the same length removes nothing the second time.
    """
    result = PruneResult()
    if vault.last_processed_message_id > chat_length - 1:
        vault.last_processed_message_id = chat_length - 1
    if not enabled:
        return result

    stale = [
        m
        for m in vault.memories
        if m.first_message_id is not None and m.first_message_id >= chat_length
    ]
    if stale:
        removed = {m.id for m in stale}
        vault.memories = [m for m in vault.memories if m.id not in removed]
        result.removed_ids = [m.id for m in stale]

        for state in vault.characters.values():
            if state.forget(removed):
                result.characters_cleaned += 1
        for rel in vault.relationships.values():
            if rel.forget(removed):
                result.relationships_cleaned += 1

        logging.info(
            "✂️ Pruned %d memories beyond message %d (%d characters, %d relationships cleaned)",
            result.count,
            chat_length,
            result.characters_cleaned,
            result.relationships_cleaned,
        )

    return result


def is_auto_hidden(message: dict[str, Any]) -> bool:
    """Hidden by auto-hide rather than a real system message."""
    return message.get("is_system") is True and ("is_user" in message or "name" in message)


def unhide_messages_for_branch(chat: list[dict[str, Any]]) -> int:
    """Clear the hidden flag on every auto-hidden message. Returns the count."""
    unhidden = 0
    for message in chat:
        if is_auto_hidden(message):
            message["is_system"] = False
            unhidden += 1
    if unhidden:
        logging.info("👁️ Branch switch: unhid %d messages", unhidden)
    return unhidden


class BranchReconciler:
    """Reacts to chat load/switch events for one session."""

    def __init__(
        self,
        settings: VaultSettings,
        guard: ConversationGuard,
        notify: Notifier | None = None,
    ):
        self.settings = settings
        self.guard = guard
        self.notify = notify
        self.logger = logging.getLogger("BranchReconciler")
        self._last_lengths: dict[str, int] = {}
        self._pending: asyncio.Task | None = None

    def is_branch_switch(self, state: ConversationState) -> bool:
        """First load in this session, or the chat got shorter."""
        previous = self._last_lengths.get(state.conversation_id)
        return previous is None or state.chat_length < previous

    def handle_chat_changed(self, state: ConversationState, vault: Vault) -> PruneResult:
        """
        Prune immediately when needed and schedule the deferred unhide.

        Must be called from a running event loop.
        """
        result = PruneResult()
        if self.is_branch_switch(state):
            result = prune_stale_memories(
                vault, state.chat_length, self.settings.branch_pruning_enabled
            )
            if result.count and self.notify is not None:
                self.notify("info", f"Pruned {result.count} memories from another branch")
        self._last_lengths[state.conversation_id] = state.chat_length

        self.cancel_pending()
        self._pending = asyncio.get_running_loop().create_task(
            self.settle_and_rehide(state, vault)
        )
        self._pending.add_done_callback(self._log_rehide_failure)
        return result

    def _log_rehide_failure(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error("❌ Deferred unhide failed: %s", error, exc_info=error)

    async def settle_and_rehide(
        self, state: ConversationState, vault: Vault
    ) -> AutoHideResult | None:
        """Wait for the host to settle, then unhide and re-apply auto-hide."""
        await asyncio.sleep(self.settings.branch_settle_delay)
        if not self.guard.is_active(state.conversation_id):
            self.logger.debug("Skipping unhide for inactive conversation %s", state.conversation_id)
            return None
        unhide_messages_for_branch(state.chat)
        return auto_hide_old_messages(
            state.chat,
            vault,
            self.settings.auto_hide_threshold,
            self.settings.auto_hide_enabled,
        )

    def cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    @property
    def pending(self) -> asyncio.Task | None:
        return self._pending

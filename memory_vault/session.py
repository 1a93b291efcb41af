"""
VaultSession: the per-conversation orchestrator.

Owns the active conversation id, the loaded vault, and the feature-disabled
flag. Host events (chat loaded, before generation, message received) are
routed here and dispatched to the components.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from config import VaultSettings

from .branch.auto_hide import AutoHideResult, auto_hide_old_messages
from .branch.reconciliation import BranchReconciler, PruneResult
from .conversation import ConversationGuard, ConversationState
from .errors import VaultCorruptedError
from .extraction.scheduler import BacklogReport, Embedder, ExtractionScheduler, Extractor
from .models.vault import Vault
from .providers.gemini import GeminiProvider
from .retrieval.formatter import RetrievalResult
from .retrieval.pipeline import Adjudicator, RetrievalPipeline

Notifier = Callable[[str, str], None]
SaveCallback = Callable[[str, dict[str, Any]], Awaitable[None] | None]

_NOTIFY_LEVELS = {"info": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}


class VaultSession:
    """Memory features for whichever conversation is currently active."""

    def __init__(
        self,
        settings: VaultSettings | None = None,
        *,
        provider: GeminiProvider | None = None,
        extractor: Extractor | None = None,
        embedder: Embedder | None = None,
        adjudicator: Adjudicator | None = None,
        save_callback: SaveCallback | None = None,
        notify: Notifier | None = None,
    ):
        self.settings = settings or VaultSettings()
        self.logger = logging.getLogger("VaultSession")

        if provider is not None and provider.available:
            extractor = extractor or provider.extract
            embedder = embedder or provider.embed
            adjudicator = adjudicator or provider.adjudicate
        if not self.settings.embeddings_enabled:
            embedder = None

        self.save_callback = save_callback
        self._notify = notify
        self.guard = ConversationGuard()
        self.pipeline = RetrievalPipeline(
            self.settings, embedder=embedder, adjudicator=adjudicator
        )
        self.scheduler = (
            ExtractionScheduler(extractor, self.settings, self.guard, embedder=embedder)
            if extractor is not None
            else None
        )
        self.reconciler = BranchReconciler(self.settings, self.guard, notify=self.notify)

        self.state: ConversationState | None = None
        self.vault: Vault | None = None
        self.disabled_reason: str | None = None
        self.save_pending = False

    # ==================== Status ====================

    @property
    def conversation_id(self) -> str | None:
        return self.guard.active_id

    @property
    def is_enabled(self) -> bool:
        return (
            self.settings.enabled
            and self.vault is not None
            and self.state is not None
            and self.disabled_reason is None
        )

    def notify(self, level: str, message: str) -> None:
        """User-visible notification; logged when the host supplied no notifier."""
        if self._notify is not None:
            try:
                self._notify(level, message)
                return
            except Exception as e:
                self.logger.warning("⚠️ Notifier failed: %s", e)
        self.logger.log(_NOTIFY_LEVELS.get(level, logging.INFO), "📣 %s", message)

    def get_status(self) -> dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "enabled": self.is_enabled,
            "disabled_reason": self.disabled_reason,
            "save_pending": self.save_pending,
            "vault": self.vault.get_stats() if self.vault is not None else None,
        }

    # ==================== Loading ====================

    def load(self, state: ConversationState, data: Any) -> bool:
        """
        Make ``state`` the active conversation and load its persisted vault.

        A corrupted vault disables memory features for this conversation
        until ``reinitialize`` is called. Returns whether features are on.
        """
        self.reconciler.cancel_pending()
        self.guard.activate(state.conversation_id)
        self.state = state
        self.save_pending = False
        try:
            self.vault = Vault.from_dict(data)
            self.disabled_reason = None
        except VaultCorruptedError as e:
            self.vault = None
            self.disabled_reason = str(e)
            self.logger.error(
                "❌ Memory vault for %s is corrupted, memory disabled: %s",
                state.conversation_id,
                e,
            )
            self.notify("error", "Memory data is corrupted; memory is disabled for this chat")
            return False

        self.logger.info(
            "📂 Loaded vault for %s (%d memories)", state.conversation_id, len(self.vault.memories)
        )
        return True

    async def reinitialize(self) -> bool:
        """Replace the vault with an empty one and re-enable memory features."""
        if self.state is None:
            return False
        self.vault = Vault()
        self.disabled_reason = None
        self.logger.warning("♻️ Reinitialized vault for %s", self.state.conversation_id)
        self.notify("info", "Memory data was reset for this chat")
        return await self.save()

    # ==================== Persistence ====================

    async def save(self) -> bool:
        """
        Hand the vault to the host. On failure the save stays pending and is
        retried on the next trigger.
        """
        if self.vault is None or self.state is None:
            return False
        if self.save_callback is None:
            self.save_pending = False
            return True
        try:
            result = self.save_callback(self.state.conversation_id, self.vault.to_dict())
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self.save_pending = True
            self.logger.error("❌ Saving vault for %s failed: %s", self.state.conversation_id, e)
            self.notify("warning", "Could not save memory data; will retry")
            return False
        self.save_pending = False
        return True

    async def _flush_pending_save(self) -> None:
        if self.save_pending:
            await self.save()

    # ==================== Host events ====================

    async def retrieve(self, pov_character: str | None = None) -> RetrievalResult:
        """Memories to inject before a generation; empty when disabled."""
        if not self.is_enabled:
            return RetrievalResult()
        await self._flush_pending_save()
        return await self.pipeline.retrieve(self.state, self.vault, pov_character)

    async def extract_backlog(self) -> BacklogReport:
        """Extract unprocessed messages, then save and re-apply auto-hide."""
        report = BacklogReport()
        if not self.is_enabled or self.scheduler is None:
            return report
        await self._flush_pending_save()

        state, vault = self.state, self.vault
        try:
            report = await self.scheduler.extract_backlog(state, vault)
        except Exception as e:
            self.logger.error("❌ Extraction failed: %s", e)
            self.notify("warning", "Memory extraction failed; will retry later")
            return report

        if report.failed:
            self.notify("warning", "Memory extraction failed; will retry later")
        if report.embedding_failures:
            self.notify(
                "warning",
                f"Could not embed {report.embedding_failures} memories; will retry later",
            )
        if not self.guard.is_active(state.conversation_id):
            return report
        if report.batches:
            self.auto_hide()
        if report.batches or report.embedded:
            await self.save()
        return report

    def auto_hide(self) -> AutoHideResult:
        if not self.is_enabled:
            return AutoHideResult()
        return auto_hide_old_messages(
            self.state.chat,
            self.vault,
            self.settings.auto_hide_threshold,
            self.settings.auto_hide_enabled,
        )

    async def on_chat_changed(self, state: ConversationState, data: Any = None) -> PruneResult:
        """
        Chat loaded or switched. A new conversation id loads ``data`` as its
        vault; the same id keeps the loaded vault and takes the new chat.
        """
        if state.conversation_id != self.conversation_id or self.vault is None:
            if not self.load(state, data):
                return PruneResult()
        else:
            self.state = state

        if not self.is_enabled:
            return PruneResult()

        result = self.reconciler.handle_chat_changed(state, self.vault)
        if result.count or self.save_pending:
            await self.save()
        return result

    def close(self) -> None:
        """Forget the active conversation; late async results will be discarded."""
        self.reconciler.cancel_pending()
        self.guard.activate(None)
        self.state = None
        self.vault = None


def create_session(
    env_file: str | None = None,
    *,
    notify: Notifier | None = None,
    save_callback: SaveCallback | None = None,
    json_logs: bool = False,
    logs_dir: str = "logs",
) -> VaultSession:
    """
    Host entry point: load settings from the environment (and ``env_file``),
    install logging, and build a session backed by Gemini when a key is set.
    """
    from config import load_settings
    from utils.monitoring.logger import setup_smart_logging

    settings = load_settings(env_file)
    setup_smart_logging(json_logs=json_logs, debug=settings.debug_mode, logs_dir=logs_dir)

    provider = None
    if settings.gemini_api_key:
        provider = GeminiProvider(
            settings.gemini_api_key,
            extraction_model=settings.extraction_model,
            embedding_model=settings.embedding_model,
        )
    return VaultSession(settings, provider=provider, save_callback=save_callback, notify=notify)

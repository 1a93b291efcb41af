"""
Backlog extraction: chunked, sequential, and gated on the active conversation.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from config import VaultSettings

from ..conversation import ConversationGuard, ConversationState, is_hidden, message_text
from ..errors import StaleConversationError
from ..models.base import generate_id
from ..models.memory import Memory
from ..models.vault import Vault
from .parser import parse_extraction_result
from .reducer import EventReducer

Extractor = Callable[[list[dict[str, Any]], str, str, str], Awaitable[str]]
Embedder = Callable[[str], Awaitable[list[float] | None]]


def get_extracted_message_ids(vault: Vault) -> set[int]:
    """Every message id referenced by at least one memory."""
    ids: set[int] = set()
    for memory in vault.memories:
        ids.update(memory.message_ids)
    return ids


def get_unextracted_messages(chat: list[dict[str, Any]], vault: Vault) -> list[dict[str, Any]]:
    """
    Visible messages after the extraction cursor, each copied with its
    position attached as ``id``.
    """
    return [
        {**message, "id": index}
        for index, message in enumerate(chat)
        if index > vault.last_processed_message_id and not is_hidden(message)
    ]


def memory_embedding_text(memory: Memory) -> str:
    parts = [memory.summary]
    if memory.characters_involved:
        parts.append("Characters: " + ", ".join(memory.characters_involved))
    if memory.location:
        parts.append("Location: " + memory.location)
    return "\n".join(parts)


@dataclass
class BacklogReport:
    batches: int = 0
    memories_created: int = 0
    events_skipped: int = 0
    embedded: int = 0
    embedding_failures: int = 0
    stale: bool = False
    failed: bool = False
    memory_ids: list[str] = field(default_factory=list)


class ExtractionScheduler:
    """Runs extraction over unprocessed messages one batch at a time."""

    def __init__(
        self,
        extractor: Extractor,
        settings: VaultSettings,
        guard: ConversationGuard,
        embedder: Embedder | None = None,
        reducer: EventReducer | None = None,
    ):
        self.extractor = extractor
        self.embedder = embedder
        self.settings = settings
        self.guard = guard
        self.reducer = reducer or EventReducer()
        self.logger = logging.getLogger("ExtractionScheduler")

    def plan_batches(
        self, chat: list[dict[str, Any]], vault: Vault
    ) -> list[list[dict[str, Any]]]:
        pending = get_unextracted_messages(chat, vault)
        size = self.settings.extraction_batch_size
        return [pending[i : i + size] for i in range(0, len(pending), size)]

    async def extract_backlog(self, state: ConversationState, vault: Vault) -> BacklogReport:
        """
        Extract every pending batch in order.

        Memories left without an embedding by an earlier run are embedded
        first. A batch's results are applied only if ``state.conversation_id``
        is still active once the extractor returns. Otherwise the backlog
        stops and that batch is discarded.
        """
        report = BacklogReport()
        if self.embedder is not None:
            missing = [m for m in vault.memories if m.embedding is None]
            if missing:
                self.logger.info("🔄 Retrying embeddings for %d memories", len(missing))
                await self._embed(missing, state.conversation_id, report)
                if report.stale:
                    return report

        batches = self.plan_batches(state.chat, vault)
        if not batches:
            return report

        self.logger.info(
            "📚 Extracting %d batch(es) for conversation %s", len(batches), state.conversation_id
        )
        for messages in batches:
            batch_id = generate_id("batch")
            try:
                raw = await self.extractor(
                    messages, state.character_name, state.user_name, batch_id
                )
                self.guard.ensure_active(state.conversation_id)
            except StaleConversationError as e:
                self.logger.warning("🔀 Discarding extraction result: %s", e)
                report.stale = True
                break
            except Exception as e:
                self.logger.error("❌ Extraction call failed for batch %s: %s", batch_id, e)
                report.failed = True
                break

            if not raw:
                # Cursor stays put so the batch is retried on the next trigger
                self.logger.warning("⚠️ Extractor returned nothing for batch %s", batch_id)
                report.failed = True
                break

            events = parse_extraction_result(raw, messages, batch_id)
            reduction = self.reducer.reduce(events, vault)

            if self.embedder is not None and reduction.memories:
                await self._embed(reduction.memories, state.conversation_id, report)

            vault.last_processed_message_id = max(m["id"] for m in messages)
            report.batches += 1
            report.memories_created += len(reduction.memories)
            report.events_skipped += reduction.skipped
            report.memory_ids.extend(reduction.memory_ids)
            if report.stale:
                self.logger.warning("🔀 Conversation changed while embedding batch %s", batch_id)
                break

        self.logger.info(
            "✅ Extraction finished: %d memories from %d batch(es)",
            report.memories_created,
            report.batches,
        )
        return report

    async def _embed(
        self, memories: list[Memory], conversation_id: str | None, report: BacklogReport
    ) -> None:
        """
        Embed memories in place. A failed embedding leaves ``embedding`` unset
        and is counted so the next run retries it.
        """
        for memory in memories:
            try:
                vector = await self.embedder(memory_embedding_text(memory))
            except Exception as e:
                self.logger.warning("⚠️ Embedding failed for %s: %s", memory.id, e)
                vector = None
            if not self.guard.is_active(conversation_id):
                report.stale = True
                return
            if vector:
                memory.embedding = [float(v) for v in vector]
                report.embedded += 1
            else:
                report.embedding_failures += 1

"""
Retrieval Pipeline: choose the memories to inject before a generation.

query -> score and rank -> POV filter -> pinned first, then token budget
-> optional adjudication (falls back to the budgeted list on any failure).
Retrieval never raises; the worst case is an empty result.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from config import VaultSettings
from utils.fast_json import loads_lenient
from utils.reliability.error_recovery import GracefulDegradation

from ..conversation import ConversationState
from ..errors import AdjudicationError
from ..models.memory import Memory
from ..models.vault import Vault
from ..systems.secrets import filter_memories_by_knowledge
from .formatter import RetrievalResult, format_memory_line
from .scorer import QueryContext, RelevanceScorer, ScoredMemory, build_query_context
from .tokens import estimate_tokens

Embedder = Callable[[str], Awaitable[list[float] | None]]
Adjudicator = Callable[[list[Memory], QueryContext], Awaitable[Any]]


def parse_adjudication(raw: Any, candidate_ids: list[str]) -> list[str]:
    """
    Read the selected ids out of an adjudication answer.

    Accepts a list, a JSON array, or an object with ``selected`` or ``ids``.
    Ids outside the candidate set are dropped; order is kept.

    Raises:
        AdjudicationError: the answer has no recognizable id list.
    """
    data = loads_lenient(raw) if isinstance(raw, (str, bytes)) else raw
    if isinstance(data, dict):
        data = data.get("selected", data.get("ids"))
    if not isinstance(data, list):
        raise AdjudicationError(f"Unrecognized adjudication answer: {str(raw)[:100]!r}")

    allowed = set(candidate_ids)
    selected: list[str] = []
    for item in data:
        memory_id = item.get("id") if isinstance(item, dict) else item
        if isinstance(memory_id, str) and memory_id in allowed and memory_id not in selected:
            selected.append(memory_id)
    return selected


def memory_cost(memory: Memory) -> int:
    return estimate_tokens(format_memory_line(memory))


class RetrievalPipeline:
    """Selects memories for injection."""

    def __init__(
        self,
        settings: VaultSettings,
        *,
        embedder: Embedder | None = None,
        adjudicator: Adjudicator | None = None,
        scorer: RelevanceScorer | None = None,
    ):
        self.settings = settings
        self.embedder = embedder
        self.adjudicator = adjudicator
        self.scorer = scorer or RelevanceScorer.from_settings(settings)
        self.logger = logging.getLogger("RetrievalPipeline")

    async def retrieve(
        self, state: ConversationState, vault: Vault, pov_character: str | None = None
    ) -> RetrievalResult:
        """Best-effort retrieval. Errors are logged and yield an empty result."""
        try:
            return await self._retrieve(state, vault, pov_character or state.pov_character)
        except Exception as e:
            self.logger.error("❌ Retrieval failed, injecting no memories: %s", e)
            return RetrievalResult()

    async def build_query(self, state: ConversationState, vault: Vault) -> QueryContext:
        window = state.recent_messages(self.settings.query_window_size)
        query = build_query_context(window, max(0, state.chat_length - 1))

        wants_embedding = (
            self.embedder is not None
            and self.settings.embeddings_enabled
            and query.text
            and any(m.embedding for m in vault.memories)
        )
        if wants_embedding:
            async with GracefulDegradation(fallback=None, label="Query embedding") as gd:
                gd.result = await self.embedder(query.text)
            query.embedding = gd.result
        return query

    async def _retrieve(
        self, state: ConversationState, vault: Vault, pov_character: str | None
    ) -> RetrievalResult:
        if not vault.memories:
            return RetrievalResult()

        query = await self.build_query(state, vault)
        ranked = self.scorer.rank(vault.memories, query)

        visible = filter_memories_by_knowledge([s.memory for s in ranked], pov_character)
        visible_ids = {m.id for m in visible}
        ranked = [s for s in ranked if s.memory.id in visible_ids]

        pinned = [s for s in ranked if s.memory.pinned]
        pinned.sort(key=lambda s: s.memory.sequence)
        others = [s for s in ranked if not s.memory.pinned]

        selected = self.apply_budget(pinned, others)
        adjudicated = False

        if self.settings.adjudication_enabled and self.adjudicator is not None and others:
            candidates = others[: self.settings.adjudication_top_n]
            chosen = await self._adjudicate(candidates, query)
            if chosen is not None:
                selected = self.apply_budget(pinned, chosen)
                adjudicated = True

        result = self._assemble(vault, selected, pov_character, adjudicated)
        self.logger.debug(
            "🔎 Retrieved %d memories (%d pinned, adjudicated=%s)",
            len(result.memories),
            len(pinned),
            adjudicated,
        )
        return result

    def apply_budget(
        self, pinned: list[ScoredMemory], ranked: list[ScoredMemory]
    ) -> list[ScoredMemory]:
        """
        Pinned memories are always kept and their tokens spent first. The
        rest fill the remaining budget in ranked order, stopping at the first
        memory that does not fit or when ``max_memories`` is reached.
        """
        selected = list(pinned)
        used = sum(memory_cost(s.memory) for s in pinned)
        for scored in ranked:
            if len(selected) >= self.settings.max_memories:
                break
            cost = memory_cost(scored.memory)
            if used + cost > self.settings.token_budget:
                break
            selected.append(scored)
            used += cost
        return selected

    async def _adjudicate(
        self, candidates: list[ScoredMemory], query: QueryContext
    ) -> list[ScoredMemory] | None:
        """The adjudicator's pick in its order, or None to fall back."""
        candidate_ids = [s.memory.id for s in candidates]
        async with GracefulDegradation(fallback=None, label="Adjudication") as gd:
            raw = await self.adjudicator([s.memory for s in candidates], query)
            gd.result = parse_adjudication(raw, candidate_ids)
        if gd.result is None:
            return None

        by_id = {s.memory.id: s for s in candidates}
        return [by_id[memory_id] for memory_id in gd.result]

    def _assemble(
        self,
        vault: Vault,
        selected: list[ScoredMemory],
        pov_character: str | None,
        adjudicated: bool,
    ) -> RetrievalResult:
        names: list[str] = []
        for scored in selected:
            for name in scored.memory.characters_involved:
                if name not in names:
                    names.append(name)
        if pov_character and pov_character not in names:
            names.append(pov_character)

        characters = {n: vault.characters[n] for n in names if n in vault.characters}
        wanted = set(names)
        relationships = [
            rel
            for rel in vault.relationships.values()
            if rel.character_a in wanted and rel.character_b in wanted
        ]
        return RetrievalResult(
            memories=[s.memory for s in selected],
            characters=characters,
            relationships=relationships,
            scores=selected,
            adjudicated=adjudicated,
        )

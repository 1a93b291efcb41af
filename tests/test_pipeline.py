"""
Tests for memory_vault.retrieval.pipeline module.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest


def _state(text="Where did Alice hide the cellar key?", length=20):
    from memory_vault.conversation import ConversationState

    chat = [{"name": "Alice", "is_user": False, "is_system": False, "mes": "..."}] * (length - 1)
    chat = [dict(m) for m in chat]
    chat.append({"name": "Bob", "is_user": True, "is_system": False, "mes": text})
    return ConversationState(conversation_id="chat-1", chat=chat)


def _pipeline(settings, **kwargs):
    from memory_vault.retrieval.pipeline import RetrievalPipeline

    return RetrievalPipeline(settings, **kwargs)


class TestParseAdjudication:
    """Tests for reading adjudicator answers."""

    def test_list_and_json(self):
        from memory_vault.retrieval.pipeline import parse_adjudication

        assert parse_adjudication(["b", "a"], ["a", "b"]) == ["b", "a"]
        assert parse_adjudication('["b", "a"]', ["a", "b"]) == ["b", "a"]
        assert parse_adjudication('```json\n["a"]\n```', ["a"]) == ["a"]

    def test_object_forms(self):
        from memory_vault.retrieval.pipeline import parse_adjudication

        assert parse_adjudication({"selected": ["a"]}, ["a"]) == ["a"]
        assert parse_adjudication('{"ids": [{"id": "a"}]}', ["a"]) == ["a"]

    def test_unknown_and_duplicate_ids_dropped(self):
        from memory_vault.retrieval.pipeline import parse_adjudication

        assert parse_adjudication(["x", "a", "a", 3], ["a", "b"]) == ["a"]

    def test_unrecognized_raises(self):
        from memory_vault.errors import AdjudicationError
        from memory_vault.retrieval.pipeline import parse_adjudication

        with pytest.raises(AdjudicationError):
            parse_adjudication("I think the first one", ["a"])
        with pytest.raises(AdjudicationError):
            parse_adjudication({"answer": "a"}, ["a"])


class TestRetrieve:
    """Tests for RetrievalPipeline.retrieve."""

    async def test_empty_vault(self, settings, vault):
        result = await _pipeline(settings).retrieve(_state(), vault)

        assert result.memories == []

    async def test_keyword_match_without_embeddings(self, settings, vault, make_memory):
        hit = make_memory("Alice hid the key in the cellar", characters_involved=["Alice"])
        miss = make_memory("The storm rolled over the hills")
        vault.add_memory(hit)
        vault.add_memory(miss)

        result = await _pipeline(settings).retrieve(_state(), vault)

        assert result.memories == [hit]

    async def test_pinned_always_included(self, settings, vault, make_memory):
        """An old, trivial, unrelated pinned memory still makes it in."""
        pinned = make_memory("Tea with grandmother", importance=1, message_ids=[0], pinned=True)
        vault.add_memory(pinned)

        result = await _pipeline(settings).retrieve(_state(length=500), vault)

        assert result.memories == [pinned]

    async def test_pov_filter(self, settings, vault, make_memory):
        """Secrets are hidden from characters who don't know them, pinned or not."""
        secret = make_memory(
            "Alice hid the cellar key", is_secret=True, known_by=["Alice"]
        )
        pinned_secret = make_memory(
            "Alice is the heir", is_secret=True, known_by=["Alice"], pinned=True
        )
        public = make_memory("Bob lost the cellar key")
        for memory in (secret, pinned_secret, public):
            vault.add_memory(memory)
        pipeline = _pipeline(settings)

        as_bob = await pipeline.retrieve(_state(), vault, "Bob")
        as_alice = await pipeline.retrieve(_state(), vault, "Alice")
        unfiltered = await pipeline.retrieve(_state(), vault)

        assert set(as_bob.memory_ids) == {public.id}
        assert set(as_alice.memory_ids) == {secret.id, pinned_secret.id, public.id}
        assert len(unfiltered) == 3

    async def test_pov_from_state(self, settings, vault, make_memory):
        secret = make_memory("Alice hid the cellar key", is_secret=True, known_by=["Alice"])
        vault.add_memory(secret)
        state = _state()
        state.pov_character = "Bob"

        result = await _pipeline(settings).retrieve(state, vault)

        assert result.memories == []

    async def test_token_budget(self, settings, vault, make_memory):
        """Selection stops at the first memory that no longer fits."""
        from memory_vault.retrieval.pipeline import memory_cost

        top = make_memory("The cellar key glows", importance=5, message_ids=[19])
        middle = make_memory("The cellar key is cold", importance=4, message_ids=[18])
        low = make_memory("The cellar key is rusty", importance=1, message_ids=[17])
        for memory in (top, middle, low):
            vault.add_memory(memory)
        settings.token_budget = memory_cost(top) + memory_cost(middle)

        result = await _pipeline(settings).retrieve(_state(), vault)

        assert result.memory_ids == [top.id, middle.id]

    async def test_pinned_spend_budget_first(self, settings, vault, make_memory):
        from memory_vault.retrieval.pipeline import memory_cost

        pinned = make_memory("Unrelated pinned memory", pinned=True)
        other = make_memory("The cellar key glows")
        vault.add_memory(pinned)
        vault.add_memory(other)
        settings.token_budget = memory_cost(pinned)

        result = await _pipeline(settings).retrieve(_state(), vault)

        assert result.memories == [pinned]

    async def test_max_memories(self, settings, vault, make_memory):
        for i in range(5):
            vault.add_memory(make_memory(f"The cellar key number {i}"))
        settings.max_memories = 3

        result = await _pipeline(settings).retrieve(_state(), vault)

        assert len(result) == 3

    async def test_never_raises(self, settings, vault, make_memory):
        vault.add_memory(make_memory("The cellar key"))
        scorer = MagicMock()
        scorer.rank.side_effect = RuntimeError("boom")

        result = await _pipeline(settings, scorer=scorer).retrieve(_state(), vault)

        assert result.memories == []

    async def test_characters_and_relationships_attached(self, settings, vault, make_memory):
        vault.add_memory(
            make_memory("Alice and Bob found the cellar key", characters_involved=["Alice", "Bob"])
        )
        vault.get_or_create_character("Alice").current_emotion = "hopeful"
        vault.get_or_create_character("Carol")
        vault.get_or_create_relationship("Alice", "Bob")
        vault.get_or_create_relationship("Alice", "Carol")

        result = await _pipeline(settings).retrieve(_state(), vault)

        assert set(result.characters) == {"Alice"}
        assert [r.key for r in result.relationships] == ["Alice<->Bob"]
        assert "[Emotional states]" in result.to_prompt_text()


class TestSemanticRetrieval:
    """Tests for the embedding path."""

    async def test_semantic_match(self, settings, vault, make_memory):
        embedder = AsyncMock(return_value=[1.0, 0.0])
        similar = make_memory("Unrelated wording entirely", embedding=[0.9, 0.1])
        different = make_memory("Also unrelated prose", embedding=[0.0, 1.0])
        vault.add_memory(similar)
        vault.add_memory(different)

        result = await _pipeline(settings, embedder=embedder).retrieve(_state(), vault)

        assert result.memories == [similar]
        embedder.assert_awaited_once()

    async def test_embedder_skipped_without_memory_embeddings(self, settings, vault, make_memory):
        embedder = AsyncMock(return_value=[1.0, 0.0])
        vault.add_memory(make_memory("The cellar key"))

        await _pipeline(settings, embedder=embedder).retrieve(_state(), vault)

        embedder.assert_not_awaited()

    async def test_embedder_failure_falls_back_to_keywords(self, settings, vault, make_memory):
        embedder = AsyncMock(side_effect=RuntimeError("quota"))
        hit = make_memory("The cellar key", embedding=[0.5, 0.5])
        vault.add_memory(hit)

        result = await _pipeline(settings, embedder=embedder).retrieve(_state(), vault)

        assert result.memories == [hit]


class TestAdjudication:
    """Tests for the optional adjudication step."""

    def _vault(self, vault, make_memory):
        memories = [
            make_memory(f"The cellar key, clue {i}", id=f"mem_{i}", message_ids=[i])
            for i in range(3)
        ]
        for memory in memories:
            vault.add_memory(memory)
        return memories

    async def test_reorders_and_filters(self, settings, vault, make_memory):
        self._vault(vault, make_memory)
        settings.adjudication_enabled = True
        adjudicator = AsyncMock(return_value='["mem_0", "mem_2"]')

        result = await _pipeline(settings, adjudicator=adjudicator).retrieve(_state(), vault)

        assert result.memory_ids == ["mem_0", "mem_2"]
        assert result.adjudicated is True

    async def test_failure_falls_back(self, settings, vault, make_memory):
        self._vault(vault, make_memory)
        settings.adjudication_enabled = True
        baseline = await _pipeline(settings).retrieve(_state(), vault)

        for adjudicator in (
            AsyncMock(side_effect=RuntimeError("timeout")),
            AsyncMock(return_value="I cannot decide"),
        ):
            result = await _pipeline(settings, adjudicator=adjudicator).retrieve(_state(), vault)

            assert result.memory_ids == baseline.memory_ids
            assert result.adjudicated is False

    async def test_only_top_n_candidates(self, settings, vault, make_memory):
        self._vault(vault, make_memory)
        settings.adjudication_enabled = True
        settings.adjudication_top_n = 2
        adjudicator = AsyncMock(return_value="[]")

        await _pipeline(settings, adjudicator=adjudicator).retrieve(_state(), vault)

        candidates = adjudicator.await_args.args[0]
        assert len(candidates) == 2

    async def test_pinned_not_sent_but_kept(self, settings, vault, make_memory):
        self._vault(vault, make_memory)
        pinned = make_memory("Pinned fact", id="mem_pinned", pinned=True)
        vault.add_memory(pinned)
        settings.adjudication_enabled = True
        adjudicator = AsyncMock(return_value='["mem_1"]')

        result = await _pipeline(settings, adjudicator=adjudicator).retrieve(_state(), vault)

        sent = [m.id for m in adjudicator.await_args.args[0]]
        assert "mem_pinned" not in sent
        assert result.memory_ids == ["mem_pinned", "mem_1"]

    async def test_disabled_by_setting(self, settings, vault, make_memory):
        self._vault(vault, make_memory)
        adjudicator = AsyncMock(return_value='["mem_0"]')

        result = await _pipeline(settings, adjudicator=adjudicator).retrieve(_state(), vault)

        adjudicator.assert_not_awaited()
        assert len(result) == 3

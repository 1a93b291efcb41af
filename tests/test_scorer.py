"""
Tests for memory_vault.retrieval.scorer module.
"""

import pytest


class TestTextSignals:
    """Tests for tokenization and keyword overlap."""

    def test_tokenize_drops_short_words_and_stopwords(self):
        from memory_vault.retrieval.scorer import tokenize

        assert tokenize("The key is in THE cellar, with Bob!") == {"key", "cellar", "bob"}

    def test_memory_terms_include_characters_and_location(self, make_memory):
        from memory_vault.retrieval.scorer import memory_terms

        memory = make_memory("Hid something", characters_involved=["Alice"], location="Old Mill")

        assert memory_terms(memory) == {"hid", "something", "alice", "old", "mill"}

    def test_keyword_overlap_coefficient(self):
        from memory_vault.retrieval.scorer import keyword_overlap

        assert keyword_overlap({"key", "cellar"}, {"key", "cellar", "alice", "hid"}) == 1.0
        assert keyword_overlap({"key", "door", "red", "tall"}, {"key", "cellar"}) == 0.5
        assert keyword_overlap(set(), {"key"}) == 0.0


class TestCosineSimilarity:
    def test_values(self):
        from memory_vault.retrieval.scorer import cosine_similarity

        assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
        assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
        assert cosine_similarity([1, 0], [-1, 0]) == pytest.approx(-1.0)

    def test_degenerate_inputs(self):
        from memory_vault.retrieval.scorer import cosine_similarity

        assert cosine_similarity(None, [1, 0]) == 0.0
        assert cosine_similarity([], []) == 0.0
        assert cosine_similarity([1, 0], [1, 0, 0]) == 0.0
        assert cosine_similarity([0, 0], [1, 0]) == 0.0


class TestRelevanceScorer:
    """Tests for admission, recency, and ranking."""

    def test_recency_decays_to_floor(self, make_memory):
        from memory_vault.retrieval.scorer import RelevanceScorer

        scorer = RelevanceScorer(half_life_messages=10, decay_floor=0.1)
        recent = make_memory("x", message_ids=[100])
        halfway = make_memory("x", message_ids=[90])
        ancient = make_memory("x", message_ids=[0])

        assert scorer.recency(recent, 100) == pytest.approx(1.0)
        assert scorer.recency(halfway, 100) == pytest.approx(0.5)
        assert scorer.recency(ancient, 100) == pytest.approx(0.1)

    def test_pinned_skip_decay(self, make_memory):
        from memory_vault.retrieval.scorer import RelevanceScorer

        scorer = RelevanceScorer(half_life_messages=10)
        pinned = make_memory("x", message_ids=[0], pinned=True)

        assert scorer.recency(pinned, 1000) == 1.0

    def test_keyword_admission(self, make_memory):
        from memory_vault.retrieval.scorer import QueryContext, RelevanceScorer

        scorer = RelevanceScorer(keyword_threshold=0.3)
        query = QueryContext(text="Where is the cellar key?")

        hit = scorer.evaluate(make_memory("Alice hid the key in the cellar"), query)
        miss = scorer.evaluate(make_memory("The storm rolled in"), query)

        assert hit.admitted and hit.source == "keyword"
        assert not miss.admitted

    def test_semantic_admission(self, make_memory):
        from memory_vault.retrieval.scorer import QueryContext, RelevanceScorer

        scorer = RelevanceScorer(semantic_threshold=0.5)
        query = QueryContext(text="zzz", embedding=[1.0, 0.0])

        close = scorer.evaluate(make_memory("unrelated words", embedding=[0.9, 0.1]), query)
        far = scorer.evaluate(make_memory("unrelated words", embedding=[0.0, 1.0]), query)

        assert close.source == "semantic"
        assert not far.admitted

    def test_pinned_always_admitted(self, make_memory):
        from memory_vault.retrieval.scorer import QueryContext, RelevanceScorer

        scorer = RelevanceScorer()
        pinned = make_memory("nothing in common", pinned=True, importance=1, message_ids=[0])

        ranked = scorer.rank([pinned], QueryContext(text="dragons", current_message_index=500))

        assert [s.memory for s in ranked] == [pinned]
        assert ranked[0].source == "pinned"

    def test_rank_orders_by_score_then_sequence(self, make_memory):
        from memory_vault.retrieval.scorer import QueryContext, RelevanceScorer, ScoringWeights

        scorer = RelevanceScorer(ScoringWeights(semantic=0, keyword=1, recency=0, importance=0))
        query = QueryContext(text="cellar key", current_message_index=10)
        older = make_memory("cellar key", message_ids=[1])
        newer = make_memory("cellar key", message_ids=[5])
        better = make_memory("cellar key", message_ids=[0], importance=5)

        ranked = scorer.rank([older, newer, better], query)

        assert [s.memory for s in ranked] == [newer, older, better]

    def test_importance_breaks_otherwise_equal_scores(self, make_memory):
        from memory_vault.retrieval.scorer import QueryContext, RelevanceScorer

        scorer = RelevanceScorer()
        query = QueryContext(text="cellar key", current_message_index=5)
        minor = make_memory("cellar key", message_ids=[5], importance=1)
        major = make_memory("cellar key", message_ids=[4], importance=5)

        ranked = scorer.rank([minor, major], query)

        assert ranked[0].memory is major

    def test_from_settings(self, settings):
        from memory_vault.retrieval.scorer import RelevanceScorer

        scorer = RelevanceScorer.from_settings(settings)

        assert scorer.weights.semantic == settings.semantic_weight
        assert scorer.keyword_threshold == settings.keyword_threshold


class TestBuildQueryContext:
    def test_includes_speaker_names(self):
        from memory_vault.retrieval.scorer import build_query_context

        query = build_query_context(
            [{"name": "Bob", "mes": "Where is the key?"}, {"mes": ""}], current_message_index=7
        )

        assert query.text == "Bob: Where is the key?"
        assert "key" in query.terms
        assert "bob" in query.terms
        assert query.current_message_index == 7

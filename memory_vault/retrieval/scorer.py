"""
Relevance Scorer: hybrid semantic + keyword ranking with recency decay.

Four signals are blended with configurable weights:
- semantic: cosine similarity between memory and query embeddings
- keyword: overlap coefficient between query terms and memory terms
- recency: exponential decay over message distance, floored so memories
  fade but never vanish (pinned memories skip decay)
- importance: linear in the 1-5 rating

Either the semantic or the keyword signal can admit a candidate; ranking
always uses the full blend. Pinned memories are always admitted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from config import VaultSettings

from ..conversation import message_text
from ..data.constants import KEYWORD_MIN_TOKEN_LENGTH, KEYWORD_STOPWORDS, MAX_IMPORTANCE
from ..models.memory import Memory

_WORD_RE = re.compile(r"\w+")


def tokenize(text: str) -> set[str]:
    """Lowercase word tokens, minus short words and stopwords."""
    return {
        token
        for token in _WORD_RE.findall(text.lower())
        if len(token) >= KEYWORD_MIN_TOKEN_LENGTH and token not in KEYWORD_STOPWORDS
    }


def memory_terms(memory: Memory) -> set[str]:
    """Searchable terms of a memory: summary, characters, and location."""
    terms = tokenize(memory.summary)
    for name in memory.characters_involved:
        terms |= tokenize(name)
    if memory.location:
        terms |= tokenize(memory.location)
    return terms


def cosine_similarity(a: Any, b: Any) -> float:
    """Cosine similarity; 0.0 when either vector is missing, empty, or mismatched."""
    if a is None or b is None:
        return 0.0
    vec_a = np.asarray(a, dtype=np.float32)
    vec_b = np.asarray(b, dtype=np.float32)
    if vec_a.size == 0 or vec_a.shape != vec_b.shape:
        return 0.0
    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(vec_a, vec_b) / (norm_a * norm_b))


def keyword_overlap(query_terms: set[str], terms: set[str]) -> float:
    """|Q ∩ M| / min(|Q|, |M|), in [0, 1]."""
    if not query_terms or not terms:
        return 0.0
    return len(query_terms & terms) / min(len(query_terms), len(terms))


@dataclass(frozen=True)
class ScoringWeights:
    semantic: float = 0.45
    keyword: float = 0.25
    recency: float = 0.15
    importance: float = 0.15

    @classmethod
    def from_settings(cls, settings: VaultSettings) -> ScoringWeights:
        return cls(
            semantic=settings.semantic_weight,
            keyword=settings.keyword_weight,
            recency=settings.recency_weight,
            importance=settings.importance_weight,
        )


@dataclass
class QueryContext:
    """What a retrieval request is about."""

    text: str
    terms: set[str] = field(default_factory=set)
    embedding: list[float] | None = None
    current_message_index: int = 0

    def __post_init__(self):
        if not self.terms:
            self.terms = tokenize(self.text)


def build_query_context(
    messages: list[dict[str, Any]],
    current_message_index: int,
    embedding: list[float] | None = None,
) -> QueryContext:
    """Query text from a window of recent messages, speaker names included."""
    lines = []
    for message in messages:
        text = message_text(message)
        if not text:
            continue
        name = message.get("name")
        lines.append(f"{name}: {text}" if name else text)
    return QueryContext(
        text="\n".join(lines),
        embedding=embedding,
        current_message_index=current_message_index,
    )


@dataclass
class ScoredMemory:
    memory: Memory
    score: float
    semantic: float = 0.0
    keyword: float = 0.0
    recency: float = 1.0
    importance: float = 0.0
    admitted: bool = False
    source: str = "ranked"  # "pinned", "semantic", "keyword", "ranked"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.memory.id,
            "score": round(self.score, 4),
            "semantic": round(self.semantic, 4),
            "keyword": round(self.keyword, 4),
            "recency": round(self.recency, 4),
            "importance": round(self.importance, 4),
            "source": self.source,
        }


class RelevanceScorer:
    """Scores memories against a query context."""

    def __init__(
        self,
        weights: ScoringWeights | None = None,
        *,
        semantic_threshold: float = 0.5,
        keyword_threshold: float = 0.3,
        half_life_messages: float = 100.0,
        decay_floor: float = 0.1,
    ):
        self.weights = weights or ScoringWeights()
        self.semantic_threshold = semantic_threshold
        self.keyword_threshold = keyword_threshold
        self.half_life_messages = max(1.0, half_life_messages)
        self.decay_floor = decay_floor

    @classmethod
    def from_settings(cls, settings: VaultSettings) -> RelevanceScorer:
        return cls(
            ScoringWeights.from_settings(settings),
            semantic_threshold=settings.semantic_threshold,
            keyword_threshold=settings.keyword_threshold,
            half_life_messages=settings.decay_half_life_messages,
            decay_floor=settings.decay_floor,
        )

    def recency(self, memory: Memory, current_message_index: int) -> float:
        """Exponential decay over message distance, never below the floor."""
        if memory.pinned:
            return 1.0
        last = memory.last_message_id
        if last is None:
            return self.decay_floor
        distance = max(0, current_message_index - last)
        decay = 0.5 ** (distance / self.half_life_messages)
        return max(self.decay_floor, decay)

    def evaluate(self, memory: Memory, query: QueryContext) -> ScoredMemory:
        semantic = max(0.0, cosine_similarity(memory.embedding, query.embedding))
        keyword = keyword_overlap(query.terms, memory_terms(memory))
        recency = self.recency(memory, query.current_message_index)
        importance = memory.importance / MAX_IMPORTANCE

        score = (
            self.weights.semantic * semantic
            + self.weights.keyword * keyword
            + self.weights.recency * recency
            + self.weights.importance * importance
        )

        if memory.pinned:
            admitted, source = True, "pinned"
        elif semantic > self.semantic_threshold:
            admitted, source = True, "semantic"
        elif keyword > 0 and keyword >= self.keyword_threshold:
            admitted, source = True, "keyword"
        else:
            admitted, source = False, "ranked"

        return ScoredMemory(
            memory=memory,
            score=score,
            semantic=semantic,
            keyword=keyword,
            recency=recency,
            importance=importance,
            admitted=admitted,
            source=source,
        )

    def score(self, memory: Memory, query: QueryContext) -> float:
        return self.evaluate(memory, query).score

    def rank(self, memories: list[Memory], query: QueryContext) -> list[ScoredMemory]:
        """
        Admitted memories sorted by score, ties broken by the more recent
        ``sequence``. Pinned memories are always present.
        """
        scored = [self.evaluate(m, query) for m in memories]
        admitted = [s for s in scored if s.admitted]
        admitted.sort(key=lambda s: (s.score, s.memory.sequence), reverse=True)
        return admitted

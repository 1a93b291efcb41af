"""Retrieval: score, filter, and budget memories for injection."""

from .formatter import RetrievalResult
from .pipeline import RetrievalPipeline, parse_adjudication
from .scorer import QueryContext, RelevanceScorer, ScoredMemory, ScoringWeights, build_query_context
from .tokens import estimate_tokens

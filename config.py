# pylint: disable=invalid-name
"""
Centralized Configuration Module for the memory vault.
Uses a dataclass for settings management with environment variable support.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any


def _safe_int_env(key: str, default: int) -> int:
    """Safely parse integer from environment variable with fallback."""
    try:
        value = os.getenv(key)
        if value:
            return int(value)
        return default
    except (ValueError, TypeError):
        logging.warning("Invalid integer value for %s, using default: %d", key, default)
        return default


def _safe_float_env(key: str, default: float) -> float:
    """Safely parse float from environment variable with fallback."""
    try:
        value = os.getenv(key)
        if value:
            return float(value)
        return default
    except (ValueError, TypeError):
        logging.warning("Invalid float value for %s, using default: %s", key, default)
        return default


def _safe_bool_env(key: str, default: bool) -> bool:
    """Parse 1/0, true/false, yes/no, on/off."""
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    logging.warning("Invalid boolean value for %s, using default: %s", key, default)
    return default


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass
class VaultSettings:
    """Memory vault settings loaded from environment variables."""

    enabled: bool = field(default_factory=lambda: _safe_bool_env("MEMORY_VAULT_ENABLED", True))
    debug_mode: bool = field(default_factory=lambda: _safe_bool_env("MEMORY_VAULT_DEBUG", False))

    # Gemini providers
    gemini_api_key: str | None = field(
        default_factory=lambda: os.getenv("GEMINI_API_KEY"), repr=False
    )
    extraction_model: str = field(
        default_factory=lambda: os.getenv("MEMORY_VAULT_EXTRACTION_MODEL", "gemini-2.5-flash")
    )
    embedding_model: str = field(
        default_factory=lambda: os.getenv("MEMORY_VAULT_EMBEDDING_MODEL", "text-embedding-004")
    )
    embeddings_enabled: bool = field(
        default_factory=lambda: _safe_bool_env("MEMORY_VAULT_EMBEDDINGS", True)
    )

    # Retrieval
    query_window_size: int = field(
        default_factory=lambda: _safe_int_env("MEMORY_VAULT_QUERY_WINDOW", 10)
    )
    token_budget: int = field(
        default_factory=lambda: _safe_int_env("MEMORY_VAULT_TOKEN_BUDGET", 1000)
    )
    max_memories: int = field(
        default_factory=lambda: _safe_int_env("MEMORY_VAULT_MAX_MEMORIES", 20)
    )
    semantic_threshold: float = field(
        default_factory=lambda: _safe_float_env("MEMORY_VAULT_SEMANTIC_THRESHOLD", 0.5)
    )
    keyword_threshold: float = field(
        default_factory=lambda: _safe_float_env("MEMORY_VAULT_KEYWORD_THRESHOLD", 0.3)
    )
    semantic_weight: float = field(
        default_factory=lambda: _safe_float_env("MEMORY_VAULT_WEIGHT_SEMANTIC", 0.45)
    )
    keyword_weight: float = field(
        default_factory=lambda: _safe_float_env("MEMORY_VAULT_WEIGHT_KEYWORD", 0.25)
    )
    recency_weight: float = field(
        default_factory=lambda: _safe_float_env("MEMORY_VAULT_WEIGHT_RECENCY", 0.15)
    )
    importance_weight: float = field(
        default_factory=lambda: _safe_float_env("MEMORY_VAULT_WEIGHT_IMPORTANCE", 0.15)
    )
    decay_half_life_messages: float = field(
        default_factory=lambda: _safe_float_env("MEMORY_VAULT_DECAY_HALF_LIFE", 100.0)
    )
    decay_floor: float = field(
        default_factory=lambda: _safe_float_env("MEMORY_VAULT_DECAY_FLOOR", 0.1)
    )
    adjudication_enabled: bool = field(
        default_factory=lambda: _safe_bool_env("MEMORY_VAULT_ADJUDICATION", False)
    )
    adjudication_top_n: int = field(
        default_factory=lambda: _safe_int_env("MEMORY_VAULT_ADJUDICATION_TOP_N", 20)
    )

    # Extraction
    extraction_batch_size: int = field(
        default_factory=lambda: _safe_int_env("MEMORY_VAULT_BATCH_SIZE", 10)
    )

    # Auto-hide and branches
    auto_hide_enabled: bool = field(
        default_factory=lambda: _safe_bool_env("MEMORY_VAULT_AUTO_HIDE", False)
    )
    auto_hide_threshold: int = field(
        default_factory=lambda: _safe_int_env("MEMORY_VAULT_AUTO_HIDE_THRESHOLD", 50)
    )
    branch_pruning_enabled: bool = field(
        default_factory=lambda: _safe_bool_env("MEMORY_VAULT_BRANCH_PRUNING", True)
    )
    branch_settle_delay: float = field(
        default_factory=lambda: _safe_float_env("MEMORY_VAULT_BRANCH_SETTLE_DELAY", 2.5)
    )

    # World state
    promise_reminder_threshold: int = field(
        default_factory=lambda: _safe_int_env("MEMORY_VAULT_PROMISE_REMINDER", 10)
    )

    def __post_init__(self):
        """Clamp every tunable into its valid range."""
        self.query_window_size = max(1, int(self.query_window_size))
        self.token_budget = max(0, int(self.token_budget))
        self.max_memories = max(1, int(self.max_memories))
        self.semantic_threshold = _clamp(float(self.semantic_threshold), 0.0, 1.0)
        self.keyword_threshold = _clamp(float(self.keyword_threshold), 0.0, 1.0)
        self.semantic_weight = max(0.0, float(self.semantic_weight))
        self.keyword_weight = max(0.0, float(self.keyword_weight))
        self.recency_weight = max(0.0, float(self.recency_weight))
        self.importance_weight = max(0.0, float(self.importance_weight))
        self.decay_half_life_messages = max(1.0, float(self.decay_half_life_messages))
        self.decay_floor = _clamp(float(self.decay_floor), 0.0, 1.0)
        self.adjudication_top_n = max(1, int(self.adjudication_top_n))
        self.extraction_batch_size = max(1, int(self.extraction_batch_size))
        self.auto_hide_threshold = max(2, int(self.auto_hide_threshold))
        self.branch_settle_delay = max(0.0, float(self.branch_settle_delay))
        self.promise_reminder_threshold = max(1, int(self.promise_reminder_threshold))

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any] | None) -> VaultSettings:
        """Build settings from a host settings dict; unknown keys are ignored."""
        if not values:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in values.items() if k in known})

    def validate(self) -> list[str]:
        """Return a list of configuration problems (empty when healthy)."""
        errors: list[str] = []
        if self.embeddings_enabled and not self.gemini_api_key:
            errors.append("GEMINI_API_KEY is not set (semantic scoring degrades to keyword-only)")
        if self.adjudication_enabled and not self.gemini_api_key:
            errors.append("GEMINI_API_KEY is not set (adjudication will always fall back)")
        total_weight = (
            self.semantic_weight + self.keyword_weight + self.recency_weight + self.importance_weight
        )
        if total_weight == 0:
            errors.append("All scoring weights are zero; every memory will score 0")
        return errors

    def __repr__(self) -> str:
        """Custom repr that redacts sensitive fields."""
        return (
            f"VaultSettings(enabled={self.enabled!r}, "
            f"extraction_model={self.extraction_model!r}, "
            f"token_budget={self.token_budget}, "
            f"auto_hide_enabled={self.auto_hide_enabled!r})"
        )


def load_settings(env_file: str | None = None) -> VaultSettings:
    """Load a .env file (if present) and build settings from the environment."""
    from dotenv import load_dotenv

    load_dotenv(env_file)
    settings = VaultSettings()
    for problem in settings.validate():
        logging.warning("⚠️ %s", problem)
    return settings

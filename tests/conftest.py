"""
Pytest Configuration and Fixtures.
Shared fixtures for all test modules.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(PROJECT_ROOT))


# ==================== Vault Fixtures ====================


@pytest.fixture
def vault() -> Any:
    """An empty vault."""
    from memory_vault.models.vault import Vault

    return Vault()


@pytest.fixture
def make_memory() -> Callable[..., Any]:
    """Factory for memories with sensible defaults.

    Usage:
        memory = make_memory("Alice found the key", message_ids=[4, 5], importance=4)
    """
    from memory_vault.models.memory import Memory, compute_sequence

    counter = {"n": 0}

    def _make(summary: str = "Something happened", **kwargs: Any) -> Memory:
        counter["n"] += 1
        message_ids = kwargs.pop("message_ids", [counter["n"]])
        kwargs.setdefault("id", f"mem_test_{counter['n']}")
        kwargs.setdefault("sequence", compute_sequence(message_ids, 0))
        return Memory(summary=summary, message_ids=message_ids, **kwargs)

    return _make


@pytest.fixture
def make_chat() -> Callable[..., list[dict[str, Any]]]:
    """Factory for host chat lists alternating user and character turns."""

    def _make(count: int, *, hidden: bool = False) -> list[dict[str, Any]]:
        chat = []
        for i in range(count):
            is_user = i % 2 == 0
            chat.append(
                {
                    "name": "User" if is_user else "Alice",
                    "is_user": is_user,
                    "is_system": hidden,
                    "mes": f"Message number {i}",
                }
            )
        return chat

    return _make


@pytest.fixture
def settings() -> Any:
    """Settings independent of the environment."""
    from config import VaultSettings

    return VaultSettings(
        enabled=True,
        gemini_api_key=None,
        embeddings_enabled=True,
        token_budget=1000,
        max_memories=20,
        adjudication_enabled=False,
        auto_hide_enabled=False,
        auto_hide_threshold=50,
        branch_pruning_enabled=True,
        branch_settle_delay=0.0,
        extraction_batch_size=10,
    )


@pytest.fixture
def conversation(make_chat) -> Any:
    """A ten-message conversation."""
    from memory_vault.conversation import ConversationState

    return ConversationState(
        conversation_id="chat-1",
        chat=make_chat(10),
        character_name="Alice",
        user_name="User",
    )


# ==================== Pytest Configuration ====================


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )

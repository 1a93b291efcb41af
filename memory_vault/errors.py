"""
Memory vault exception taxonomy.

Per-item failures (one malformed event, a missing embedding, a bad adjudication
answer) are caught close to where they happen and logged. Per-operation failures
are surfaced to the user as notifications. A corrupted vault disables memory
features for its conversation until the vault is reinitialized.
"""

from __future__ import annotations


class MemoryVaultError(Exception):
    """Base class for memory vault errors."""


class VaultCorruptedError(MemoryVaultError):
    """The persisted vault object is missing sections or has the wrong shape."""


class ExtractionError(MemoryVaultError):
    """A single extracted event could not be turned into a memory."""


class StaleConversationError(MemoryVaultError):
    """An async result belongs to a conversation that is no longer active."""

    def __init__(self, expected: str | None, active: str | None):
        super().__init__(f"Result for conversation {expected!r} but {active!r} is active")
        self.expected = expected
        self.active = active


class AdjudicationError(MemoryVaultError):
    """The adjudication answer could not be interpreted as memory ids."""

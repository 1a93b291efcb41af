"""
Memory Vault.

Persistent, evolving memory for role-play conversations: extracted events,
character emotions, relationships, and world state, with hybrid retrieval
and branch-aware reconciliation.
"""

from .conversation import ConversationGuard, ConversationState
from .errors import (
    AdjudicationError,
    ExtractionError,
    MemoryVaultError,
    StaleConversationError,
    VaultCorruptedError,
)
from .models import Memory, Vault
from .retrieval import RetrievalPipeline, RetrievalResult
from .session import VaultSession, create_session

__version__ = "1.0.0"

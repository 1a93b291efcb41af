"""
Conversation snapshot and active-conversation gating.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .errors import StaleConversationError


def message_text(message: dict[str, Any]) -> str:
    text = message.get("mes")
    return text if isinstance(text, str) else ""


def is_hidden(message: dict[str, Any]) -> bool:
    return message.get("is_system") is True


@dataclass
class ConversationState:
    """
    What the core needs to know about the active conversation.

    ``chat`` is the host's message list (dicts with ``mes``, ``name``,
    ``is_user``, ``is_system``). Message ids are list positions. It is
    shared with the host, so flag changes made here are visible to it.
    """

    conversation_id: str
    chat: list[dict[str, Any]] = field(default_factory=list)
    character_name: str = ""
    user_name: str = ""
    pov_character: str | None = None

    @property
    def chat_length(self) -> int:
        return len(self.chat)

    def recent_messages(self, window: int) -> list[dict[str, Any]]:
        """The last ``window`` visible messages."""
        visible = [m for m in self.chat if not is_hidden(m)]
        return visible[-window:] if window > 0 else []


class ConversationGuard:
    """Tracks the active conversation so async results can be checked before use."""

    def __init__(self, active_id: str | None = None):
        self.active_id = active_id

    def activate(self, conversation_id: str | None) -> None:
        self.active_id = conversation_id

    def is_active(self, conversation_id: str | None) -> bool:
        return conversation_id is not None and conversation_id == self.active_id

    def ensure_active(self, conversation_id: str | None) -> None:
        """
        Raises:
            StaleConversationError: another conversation became active.
        """
        if not self.is_active(conversation_id):
            raise StaleConversationError(conversation_id, self.active_id)

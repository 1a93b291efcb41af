"""
Auto-Hide: keep only the newest visible messages in the prompt.

Older messages are hidden two at a time so user/assistant turns stay
aligned, and only once they have been extracted into a memory.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..conversation import is_hidden
from ..data.constants import DEFAULT_AUTO_HIDE_THRESHOLD
from ..extraction.scheduler import get_extracted_message_ids
from ..models.vault import Vault


@dataclass
class AutoHideResult:
    hidden: int = 0
    skipped: int = 0


def messages_to_hide(visible_count: int, threshold: int) -> int:
    """floor((visible - threshold) / 2) * 2, never negative."""
    if visible_count <= threshold:
        return 0
    return ((visible_count - threshold) // 2) * 2


def auto_hide_old_messages(
    chat: list[dict[str, Any]],
    vault: Vault,
    threshold: int = DEFAULT_AUTO_HIDE_THRESHOLD,
    enabled: bool = True,
) -> AutoHideResult:
    """
    Hide the oldest visible messages beyond ``threshold``.

    Messages not yet referenced by any memory are skipped and counted
    instead of hidden.
    """
    result = AutoHideResult()
    if not enabled or not chat:
        return result

    visible = [index for index, message in enumerate(chat) if not is_hidden(message)]
    count = messages_to_hide(len(visible), threshold)
    if count <= 0:
        return result

    extracted = get_extracted_message_ids(vault)
    for index in visible[:count]:
        if index in extracted:
            chat[index]["is_system"] = True
            result.hidden += 1
        else:
            result.skipped += 1

    if result.hidden:
        logging.info(
            "🙈 Auto-hid %d messages (skipped %d not yet extracted), threshold %d",
            result.hidden,
            result.skipped,
            threshold,
        )
    elif result.skipped:
        logging.info("🙈 Auto-hide: %d messages need extraction before hiding", result.skipped)
    return result

"""
Extraction output parsing.

The extractor returns free text that should contain either one event object
or an array of them. Anything that cannot be read as JSON yields no events.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from utils.fast_json import loads_lenient

from ..models.base import generate_id


def message_id_of(message: dict[str, Any], index: int) -> int:
    """The message's ``id`` when it is an int, otherwise its position."""
    value = message.get("id")
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return index


def parse_extraction_result(
    raw_text: str | None,
    messages: Sequence[dict[str, Any]],
    batch_id: str | None = None,
) -> list[dict[str, Any]]:
    """
    Turn raw extractor text into event payloads ready for the reducer.

    Every event is tagged with the ids of the batch's messages, the batch id,
    and a fresh memory id. Non-object entries are dropped.
    Validation of individual fields happens in ``Memory.from_event``.
    """
    parsed = loads_lenient(raw_text)
    if parsed is None:
        if raw_text and raw_text.strip():
            logging.warning("⚠️ Extraction output is not JSON, no events produced")
        return []

    items = parsed if isinstance(parsed, list) else [parsed]
    message_ids = [message_id_of(m, i) for i, m in enumerate(messages)]

    events: list[dict[str, Any]] = []
    for item in items:
        if not isinstance(item, dict):
            logging.debug("Skipping non-object extraction item: %r", item)
            continue
        event = dict(item)
        event["id"] = generate_id("mem")
        event["message_ids"] = list(message_ids)
        event["batch_id"] = batch_id
        events.append(event)
    return events

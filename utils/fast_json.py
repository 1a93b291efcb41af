"""
Fast JSON Utility Module

orjson-accelerated JSON helpers used for vault persistence and for reading
model output. Falls back to the standard json module when orjson is missing.

Usage:
    from utils.fast_json import json_dumps, json_loads, loads_lenient

    data = json_loads(json_string)
    payload = loads_lenient(model_output)  # None when nothing parses
"""

from __future__ import annotations

import re
from typing import Any

# ==================== Performance: Faster JSON ====================
try:
    import orjson

    _ORJSON_ENABLED = True
    JSONDecodeError = orjson.JSONDecodeError

    def json_loads(data: str | bytes) -> Any:
        """Parse JSON string/bytes to Python object (orjson-accelerated)."""
        return orjson.loads(data)

    def json_dumps(obj: Any, *, indent: int | None = None) -> str:
        """
        Serialize Python object to JSON string (orjson-accelerated).

        orjson always emits UTF-8 and only supports two-space indentation,
        so any truthy indent means pretty output.
        """
        option = orjson.OPT_NON_STR_KEYS | orjson.OPT_SERIALIZE_NUMPY
        if indent:
            option |= orjson.OPT_INDENT_2
        return orjson.dumps(obj, option=option).decode("utf-8")

except ImportError:
    import json as _json

    _ORJSON_ENABLED = False
    JSONDecodeError = _json.JSONDecodeError

    def json_loads(data: str | bytes) -> Any:
        """Parse JSON string/bytes to Python object (standard json)."""
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return _json.loads(data)

    def json_dumps(obj: Any, *, indent: int | None = None) -> str:
        """Serialize Python object to JSON string (standard json)."""
        return _json.dumps(obj, ensure_ascii=False, indent=indent)


# ```json ... ``` fences that models like to wrap their answers in
_CODE_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)


def loads_lenient(text: str | bytes | None) -> Any | None:
    """
    Parse JSON produced by a language model.

    Tries the raw text first, then the contents of a fenced code block, then
    the outermost ``[...]`` or ``{...}`` span. Returns None instead of raising
    when nothing parses.
    """
    if text is None:
        return None
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    text = text.strip()
    if not text:
        return None

    candidates = [text]
    fenced = _CODE_FENCE_RE.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())
    for opener, closer in (("[", "]"), ("{", "}")):
        start = text.find(opener)
        end = text.rfind(closer)
        if start != -1 and end > start:
            candidates.append(text[start : end + 1])

    for candidate in candidates:
        try:
            return json_loads(candidate)
        except (JSONDecodeError, ValueError, TypeError):
            continue
    return None


def is_orjson_enabled() -> bool:
    """Check if orjson acceleration is active."""
    return _ORJSON_ENABLED


__all__ = [
    "JSONDecodeError",
    "is_orjson_enabled",
    "json_dumps",
    "json_loads",
    "loads_lenient",
]

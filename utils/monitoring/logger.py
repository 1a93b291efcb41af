"""
Logger Utility Module
Sets up color-coded console logging and rotating log files.

Hosts call ``setup_smart_logging`` once at startup; ``memory_vault.session.create_session``
does it for them.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from utils.fast_json import json_dumps

# Emoji to ASCII mapping for consoles without Unicode support
EMOJI_MAP = {
    "🧠": "[BRAIN]",
    "✅": "[OK]",
    "❌": "[X]",
    "⚠️": "[!]",
    "🔄": "[SYNC]",
    "📝": "[NOTE]",
    "📂": "[LOAD]",
    "📚": "[BACKLOG]",
    "📣": "[NOTIFY]",
    "🔎": "[SEARCH]",
    "🔀": "[STALE]",
    "✂️": "[PRUNE]",
    "🙈": "[HIDE]",
    "👁️": "[SHOW]",
    "🤫": "[SECRET]",
    "🔓": "[REVEAL]",
    "📢": "[PUBLIC]",
    "📍": "[PLACE]",
    "🤝": "[PROMISE]",
    "🎯": "[GOAL]",
    "🛠️": "[SKILL]",
    "🗑️": "[DELETE]",
    "♻️": "[RESET]",
    "🤖": "[AI]",
}


def safe_ascii(text: Any) -> str:
    """Convert emojis to ASCII-safe text"""
    result = str(text)
    for emoji, ascii_text in EMOJI_MAP.items():
        result = result.replace(emoji, ascii_text)
    return result.encode("ascii", "replace").decode("ascii")


# Check if console supports Unicode
CONSOLE_UNICODE_SAFE = True
if sys.platform == "win32":
    try:
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        sys.stderr.reconfigure(encoding="utf-8", errors="replace")
    except (AttributeError, OSError, ValueError):
        CONSOLE_UNICODE_SAFE = False
    try:
        import colorama

        colorama.just_fix_windows_console()
    except ImportError:
        pass


class SmartLogFormatter(logging.Formatter):
    """Custom formatter with colors for console output"""

    grey = "\x1b[38;20m"
    green = "\x1b[32;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"
    format_str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    FORMATS = {
        logging.DEBUG: grey + format_str + reset,
        logging.INFO: green + format_str + reset,
        logging.WARNING: yellow + format_str + reset,
        logging.ERROR: red + format_str + reset,
        logging.CRITICAL: bold_red + format_str + reset,
    }

    def format(self, record: logging.LogRecord) -> str:
        log_fmt = self.FORMATS.get(record.levelno)
        formatter = logging.Formatter(log_fmt, datefmt="%Y-%m-%d %H:%M:%S")
        formatted = formatter.format(record)
        if not CONSOLE_UNICODE_SAFE:
            return safe_ascii(formatted)
        return formatted


class JSONLogFormatter(logging.Formatter):
    """Structured JSON formatter for log analysis."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": safe_ascii(record.getMessage()),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json_dumps(log_entry)


def setup_smart_logging(
    json_logs: bool = False, debug: bool = False, logs_dir: str | Path = "logs"
) -> None:
    """Initialize logging with file and console handlers.

    Args:
        json_logs: If True, also write a JSON-lines log file for analysis.
        debug: Log at DEBUG level (the vault's debug mode).
        logs_dir: Directory for the rotating log files.
    """
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    if logger.hasHandlers():
        logger.handlers.clear()

    file_fmt = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s (%(filename)s:%(lineno)d)",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logs_path = Path(logs_dir)
    logs_path.mkdir(parents=True, exist_ok=True)

    file_handler = RotatingFileHandler(
        logs_path / "memory_vault.log", maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8"
    )
    file_handler.setFormatter(file_fmt)

    error_handler = RotatingFileHandler(
        logs_path / "memory_vault_errors.log",
        maxBytes=5 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(file_fmt)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(SmartLogFormatter())

    logger.addHandler(file_handler)
    logger.addHandler(error_handler)
    logger.addHandler(console_handler)

    if json_logs:
        json_handler = RotatingFileHandler(
            logs_path / "memory_vault_structured.jsonl",
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        json_handler.setFormatter(JSONLogFormatter())
        logger.addHandler(json_handler)
        logging.info("📝 JSON structured logging enabled")

    logging.info("🧠 Memory vault logging initialized (debug=%s)", debug)

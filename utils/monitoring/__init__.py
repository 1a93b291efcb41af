"""Monitoring utilities - logging."""

from .logger import JSONLogFormatter, SmartLogFormatter, setup_smart_logging

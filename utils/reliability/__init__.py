"""Reliability utilities - retries with backoff and graceful degradation."""

# Error Recovery with Smart Backoff
from .error_recovery import (
    RETRY_PROVIDER,
    RETRY_STANDARD,
    BackoffState,
    GracefulDegradation,
    JitterStrategy,
    RetryConfig,
    ServiceHealthMonitor,
    calculate_delay,
    retry_async,
    service_monitor,
)

"""
Error Recovery Module.
Retry logic and graceful degradation for calls to external model providers.

- Exponential backoff with selectable jitter
- Per-service health tracking (success rate over a sliding window)
- Graceful degradation context manager for optional pipeline steps
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any


class JitterStrategy(Enum):
    """Jitter strategies for exponential backoff."""

    NONE = "none"
    FULL = "full"  # sleep = random(0, min(cap, base * 2^attempt))
    EQUAL = "equal"  # sleep = temp / 2 + random(0, temp / 2)
    DECORRELATED = "decorrelated"  # sleep = min(cap, random(base, prev_sleep * 3))


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter_strategy: JitterStrategy = JitterStrategy.DECORRELATED
    recoverable_errors: tuple = (Exception,)
    adaptive_multiplier: bool = True  # Slow down when the service is unhealthy


RETRY_STANDARD = RetryConfig(
    max_retries=3,
    base_delay=1.0,
    max_delay=30.0,
    jitter_strategy=JitterStrategy.DECORRELATED,
)
# Provider calls sit on the generation path, keep them short
RETRY_PROVIDER = RetryConfig(
    max_retries=2,
    base_delay=0.5,
    max_delay=5.0,
    jitter_strategy=JitterStrategy.FULL,
)


@dataclass
class BackoffState:
    """Tracks state for decorrelated jitter across retries."""

    previous_delay: float = 0.0
    consecutive_failures: int = 0
    last_failure_time: float = 0.0


def calculate_delay(
    attempt: int,
    config: RetryConfig,
    state: BackoffState | None = None,
    service_health: float = 1.0,
) -> float:
    """
    Calculate delay for a retry attempt.

    Args:
        attempt: Current attempt number (0-indexed)
        config: Retry configuration
        state: Optional backoff state for decorrelated jitter
        service_health: Success rate of the service (0.0-1.0), lower = longer delays

    Returns:
        Delay in seconds before next retry
    """
    base_exp_delay = config.base_delay * (config.exponential_base**attempt)
    cap = config.max_delay

    if config.jitter_strategy == JitterStrategy.FULL:
        delay = random.uniform(0, min(cap, base_exp_delay))
    elif config.jitter_strategy == JitterStrategy.EQUAL:
        temp = min(cap, base_exp_delay)
        delay = temp / 2 + random.uniform(0, temp / 2)
    elif config.jitter_strategy == JitterStrategy.DECORRELATED:
        if state and state.previous_delay > 0:
            delay = min(cap, random.uniform(config.base_delay, state.previous_delay * 3))
        else:
            delay = min(cap, random.uniform(config.base_delay, base_exp_delay))
        if state:
            state.previous_delay = delay
    else:
        delay = min(base_exp_delay, cap)

    if config.adaptive_multiplier and service_health < 1.0:
        delay *= 1.0 + (1.0 - service_health)

    return delay


class ServiceHealthMonitor:
    """
    Sliding-window success tracking per external service.

    A service is unhealthy once its failure rate over the window reaches
    ``failure_threshold``.
    """

    def __init__(self, window_size: int = 50, failure_threshold: float = 0.5):
        self.window_size = window_size
        self.failure_threshold = failure_threshold
        self._results: dict[str, deque[bool]] = {}
        self._last_error: dict[str, str] = {}

    def _ensure_service(self, service: str) -> deque[bool]:
        if service not in self._results:
            self._results[service] = deque(maxlen=self.window_size)
        return self._results[service]

    def record_success(self, service: str) -> None:
        self._ensure_service(service).append(True)

    def record_failure(self, service: str, error: str = "") -> None:
        self._ensure_service(service).append(False)
        self._last_error[service] = error

    def is_healthy(self, service: str) -> bool:
        """Check whether a service is below the failure threshold."""
        results = self._results.get(service)
        if not results:
            return True
        failure_rate = results.count(False) / len(results)
        return failure_rate < self.failure_threshold

    def get_status(self, service: str) -> dict[str, Any]:
        """Get health status for a service."""
        results = self._results.get(service)
        if not results:
            return {"healthy": True, "success_rate": 1.0, "samples": 0, "last_error": None}
        return {
            "healthy": self.is_healthy(service),
            "success_rate": results.count(True) / len(results),
            "samples": len(results),
            "last_error": self._last_error.get(service),
        }

    def get_all_status(self) -> dict[str, dict[str, Any]]:
        return {service: self.get_status(service) for service in self._results}


# Global instance
service_monitor = ServiceHealthMonitor()


async def retry_async(
    func: Callable[..., Awaitable[Any]],
    *args,
    config: RetryConfig | None = None,
    fallback: Any = None,
    on_retry: Callable[[int, Exception], None] | None = None,
    service_name: str | None = None,
    **kwargs,
) -> Any:
    """
    Execute an async function with automatic retry on failure.

    Args:
        func: Async function to execute
        *args: Positional arguments for the function
        config: Retry configuration
        fallback: Value to return if all retries fail
        on_retry: Callback called on each failed attempt with (attempt, error)
        service_name: Optional service name for health tracking
        **kwargs: Keyword arguments for the function

    Returns:
        Function result or fallback value

    Example:
        vector = await retry_async(
            client.aio.models.embed_content,
            model=EMBEDDING_MODEL,
            contents=text,
            config=RETRY_PROVIDER,
            service_name="embedding",
        )
    """
    if config is None:
        config = RETRY_STANDARD

    logger = logging.getLogger("ErrorRecovery")
    state = BackoffState()
    name = service_name or getattr(func, "__name__", "call")

    service_health = 1.0
    if config.adaptive_multiplier and service_name:
        service_health = service_monitor.get_status(service_name)["success_rate"]

    for attempt in range(config.max_retries):
        try:
            result = await func(*args, **kwargs)
            if service_name:
                service_monitor.record_success(service_name)
            return result

        except config.recoverable_errors as e:
            state.consecutive_failures += 1
            state.last_failure_time = time.time()

            if service_name:
                service_monitor.record_failure(service_name, str(e)[:100])

            if on_retry:
                on_retry(attempt + 1, e)

            if attempt < config.max_retries - 1:
                delay = calculate_delay(attempt, config, state, service_health)
                logger.warning(
                    "⚠️ Attempt %d/%d for %s failed: %s. Retrying in %.2fs...",
                    attempt + 1,
                    config.max_retries,
                    name,
                    str(e)[:100],
                    delay,
                )
                await asyncio.sleep(delay)
            else:
                logger.error(
                    "❌ All %d attempts failed for %s: %s",
                    config.max_retries,
                    name,
                    str(e)[:200],
                )

    return fallback


class GracefulDegradation:
    """
    Async context manager for optional steps that must never fail the caller.

    Usage:
        async with GracefulDegradation(fallback=None, label="query embedding") as gd:
            gd.result = await embed(text)

        vector = gd.result  # fallback if the block raised
    """

    def __init__(
        self,
        fallback: Any = None,
        log_errors: bool = True,
        suppress_errors: tuple = (Exception,),
        label: str = "operation",
    ):
        self.fallback = fallback
        self.log_errors = log_errors
        self.suppress_errors = suppress_errors
        self.label = label
        self.success = False
        self.result = fallback
        self.error: BaseException | None = None
        self.logger = logging.getLogger("GracefulDegradation")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.success = True
            return False

        if not issubclass(exc_type, self.suppress_errors):
            return False

        self.error = exc_val
        self.result = self.fallback
        if self.log_errors:
            self.logger.warning(
                "🔄 %s failed: %s. Using fallback.", self.label, str(exc_val)[:100]
            )
        return True

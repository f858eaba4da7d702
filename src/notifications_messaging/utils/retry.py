"""Async retry with exponential backoff and a per-attempt timeout."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog
from structlog.contextvars import bound_contextvars


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """How many times to try an operation and how long to wait between tries."""

    max_attempts: int = 3
    backoff_base_seconds: float = 0.25
    backoff_max_seconds: float = 4.0
    timeout_seconds: float | None = 10.0
    jitter_seconds: float = 0.15

    @classmethod
    def from_settings(cls, settings: Any) -> RetryPolicy:
        """Build from the ``retry`` settings section."""
        return cls(
            max_attempts=settings.max_attempts,
            backoff_base_seconds=settings.backoff_base_seconds,
            backoff_max_seconds=settings.backoff_max_seconds,
            timeout_seconds=settings.timeout_seconds,
        )

    def backoff_delay(self, attempt: int) -> float:
        """Exponential backoff with jitter, capped at backoff_max_seconds."""
        base = min(self.backoff_max_seconds, self.backoff_base_seconds * (2**attempt))
        return base + random.uniform(0.0, self.jitter_seconds)


def _is_retryable(error: BaseException) -> bool:
    return bool(getattr(error, "retryable", True))


async def retry_async[T](
    operation: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    operation_name: str,
    get_logger: Callable[[str], Any] = structlog.get_logger,
) -> T:
    """Run operation until it succeeds or the policy is exhausted.

    Each attempt is bounded by ``policy.timeout_seconds``. Errors whose
    ``retryable`` attribute is False are raised immediately.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        policy: Attempts, backoff and timeout.
        operation_name: Prefix for log event names.
        get_logger: Logger factory (injected).

    Returns:
        The operation's result.

    Raises:
        Exception: The last error once attempts are exhausted.
    """
    logger = get_logger("retry")
    attempts = max(1, policy.max_attempts)
    last_error: Exception | None = None

    with bound_contextvars(retry_operation=operation_name, retry_max_attempts=attempts):
        for attempt in range(attempts):
            try:
                async with asyncio.timeout(policy.timeout_seconds):
                    return await operation()
            except Exception as e:
                last_error = e
                if not _is_retryable(e):
                    raise
                if attempt + 1 >= attempts:
                    break
                delay = policy.backoff_delay(attempt)
                logger.debug(
                    f"{operation_name}_retry",
                    retry_attempt=attempt + 1,
                    retry_delay_seconds=round(delay, 3),
                    error_type=type(e).__name__,
                    error_message=str(e),
                )
                await asyncio.sleep(delay)

        logger.warning(
            f"{operation_name}_retries_exhausted",
            retry_attempts=attempts,
            error_type=type(last_error).__name__ if last_error else None,
            error_message=str(last_error) if last_error else None,
        )
        assert last_error is not None
        raise last_error

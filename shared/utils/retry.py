"""
LogAllot - Retry Utilities
==========================

Bounded retry with exponential backoff for vendor calls.

The delay before attempt ``n + 1`` is ``base_delay * multiplier ** (n - 1)``,
so with the defaults (3 attempts, 300ms base) a failing call is tried at
t=0, t=0.3s and t=0.9s before the last error is re-raised unchanged.

Usage:
    from shared.utils.retry import retry_async, RetryConfig

    response = await retry_async(
        adapter.call, request, provider_config,
        config=RetryConfig(retryable_exceptions=(ProviderError,)),
    )
"""

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Type, TypeVar, Any, Optional
from collections.abc import Awaitable

from shared.constants import RetryDefaults
from shared.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """
    Configuration for retry behavior.

    Attributes:
        max_attempts: Maximum number of attempts, including the first one
        base_delay: Delay after the first failure, in seconds
        max_delay: Cap applied to every computed delay
        backoff_multiplier: Growth factor between successive delays
        retryable_exceptions: Exception types that trigger another attempt;
            anything else propagates immediately
        on_retry: Optional callback invoked with (attempt, error) before sleeping
    """
    max_attempts: int = RetryDefaults.MAX_ATTEMPTS
    base_delay: float = RetryDefaults.BASE_DELAY_SECONDS
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    retryable_exceptions: tuple[Type[BaseException], ...] = field(
        default_factory=lambda: (Exception,)
    )
    on_retry: Optional[Callable[[int, BaseException], None]] = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


def calculate_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    backoff_multiplier: float
) -> float:
    """
    Delay to wait after the given failed attempt.

    Args:
        attempt: Number of the attempt that just failed (1-indexed)
        base_delay: Delay after the first failure
        max_delay: Upper bound
        backoff_multiplier: Growth factor

    Returns:
        Delay in seconds
    """
    delay = base_delay * (backoff_multiplier ** (attempt - 1))
    return min(delay, max_delay)


async def retry_async(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    config: Optional[RetryConfig] = None,
    **kwargs: Any
) -> T:
    """
    Await ``func(*args, **kwargs)`` until it succeeds or attempts run out.

    The exception raised by the final attempt is re-raised as-is so callers
    keep the original error type.
    """
    if config is None:
        config = RetryConfig()

    name = getattr(func, "__qualname__", repr(func))

    for attempt in range(1, config.max_attempts + 1):
        try:
            return await func(*args, **kwargs)

        except config.retryable_exceptions as e:
            if attempt >= config.max_attempts:
                logger.error(
                    f"All {config.max_attempts} attempts exhausted for {name}",
                    extra={
                        "function": name,
                        "error": str(e),
                        "attempts": config.max_attempts
                    }
                )
                raise

            delay = calculate_delay(
                attempt,
                config.base_delay,
                config.max_delay,
                config.backoff_multiplier
            )

            logger.warning(
                f"Attempt {attempt}/{config.max_attempts} for {name} failed, retrying in {delay:.2f}s",
                extra={
                    "function": name,
                    "attempt": attempt,
                    "max_attempts": config.max_attempts,
                    "delay": delay,
                    "error": str(e)
                }
            )

            if config.on_retry:
                config.on_retry(attempt, e)

            await asyncio.sleep(delay)

    raise RuntimeError("Retry loop exited unexpectedly")

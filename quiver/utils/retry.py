"""Retry utilities for transient transport errors.

Artifact downloads are retried with exponential backoff and jitter. Only
:class:`TransportFailure` is considered transient; content problems such
as an empty payload are never retried. It includes:
- RetryConfig: Retry policy (one retry by default)
- calculate_backoff_delay: Exponential backoff with jitter calculation
- with_transport_retry: Decorator for automatic retry logic
"""

import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps
from typing import Any, TypeVar

from quiver.utils.errors import TransportFailure

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for payload retrieval retries."""

    max_retries: int = 1  # Exactly one retry before giving up
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 10.0
    jitter_factor: float = 0.5  # Random jitter (0-50% of delay)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must be >= 0")
        if self.jitter_factor < 0 or self.jitter_factor > 1:
            raise ValueError("jitter_factor must be in [0, 1]")
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")


def calculate_backoff_delay(attempt: int, config: RetryConfig) -> float:
    """Calculate delay with exponential backoff and jitter.

    Formula: min(base * 2^attempt + jitter, max_delay)

    Args:
        attempt: Current attempt number (0-indexed)
        config: Retry configuration

    Returns:
        Delay in seconds
    """
    exponential_delay = config.base_delay_seconds * (2**attempt)
    jitter = random.uniform(0, config.jitter_factor * exponential_delay)
    delay: float = min(exponential_delay + jitter, config.max_delay_seconds)
    return delay


def with_transport_retry(
    config: RetryConfig,
    on_retry: Callable[[int, float, Exception], None] | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for retrying functions on transport failures.

    Args:
        config: Retry configuration
        on_retry: Optional callback called before each retry.
                  Receives (attempt_number, delay_seconds, exception).

    Returns:
        Decorator function

    Usage:
        @with_transport_retry(RetryConfig(), on_retry=log_retry)
        def download():
            ...

    Raises:
        TransportFailure: The last failure once retries are exhausted
        Exception: Any other error is re-raised immediately
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except TransportFailure as e:
                    if attempt >= config.max_retries:
                        raise

                    delay = calculate_backoff_delay(attempt, config)
                    attempt += 1
                    if on_retry:
                        on_retry(attempt, delay, e)
                    if delay > 0:
                        time.sleep(delay)

        return wrapper

    return decorator


__all__ = [
    "RetryConfig",
    "calculate_backoff_delay",
    "with_transport_retry",
]

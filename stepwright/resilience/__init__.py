from __future__ import annotations

from typing import Awaitable, Callable, Optional, TypeVar

from .circuit_breaker import CircuitBreaker, CircuitState, CircuitStatus
from .retry import RetryOptions, RetryStrategy, is_retryable, matches_retryable_pattern

T = TypeVar('T')


async def call_protected(
    breaker: CircuitBreaker,
    retry: RetryStrategy,
    key: str,
    operation: Callable[[], Awaitable[T]],
    options: Optional[RetryOptions] = None,
) -> T:
    """Run ``operation`` with retries, each attempt passing through the breaker.

    An open circuit raises CircuitOpenError, which is fatal, so the retry loop
    stops instead of hammering a degraded upstream.
    """
    return await retry.execute(lambda: breaker.execute(key, operation), options)


__all__ = [
    'CircuitBreaker',
    'CircuitState',
    'CircuitStatus',
    'RetryOptions',
    'RetryStrategy',
    'call_protected',
    'is_retryable',
    'matches_retryable_pattern',
]

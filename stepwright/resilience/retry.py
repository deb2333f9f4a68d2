from __future__ import annotations

import asyncio
import inspect
import logging
import random
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from stepwright.exceptions import FatalError, TransientError
from stepwright.settings import BackoffKind, RetrySettings

logger = logging.getLogger(__name__)

T = TypeVar('T')

JITTER_RATIO = 0.2

_RETRYABLE_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r'timeout',
        r'timed out',
        r'network',
        r'connection',
        r'ECONNREFUSED',
        r'ETIMEDOUT',
        r'rate.?limit',
        r'too many requests',
        r'\b502\b',
        r'\b503\b',
        r'\b504\b',
    )
]


def matches_retryable_pattern(error: BaseException) -> bool:
    message = f'{type(error).__name__}: {error}'
    return any(p.search(message) for p in _RETRYABLE_PATTERNS)


def is_retryable(error: BaseException, retryable_errors: Optional[tuple[type[BaseException], ...]] = None) -> bool:
    """Classify one failure.

    FatalError (circuit open included) is never retried and TransientError
    always is. Otherwise an explicit ``retryable_errors`` tuple decides on its
    own; without one the message pattern list does.
    """
    if isinstance(error, FatalError):
        return False
    if isinstance(error, TransientError):
        return True
    if retryable_errors:
        return isinstance(error, retryable_errors)
    if isinstance(error, asyncio.TimeoutError):
        return True
    return matches_retryable_pattern(error)


@dataclass
class RetryOptions:
    max_retries: int = 3
    backoff: BackoffKind = 'exponential'
    initial_delay: float = 1.0
    max_delay: float = 30.0
    retryable_errors: Optional[tuple[type[BaseException], ...]] = None
    on_retry: Optional[Callable[[BaseException, int], Any]] = None

    @classmethod
    def from_settings(cls, settings: RetrySettings, **overrides: Any) -> 'RetryOptions':
        options = cls(
            max_retries=settings.max_retries,
            backoff=settings.backoff,
            initial_delay=settings.initial_delay_seconds,
            max_delay=settings.max_delay_seconds,
        )
        for key, value in overrides.items():
            setattr(options, key, value)
        return options


class RetryStrategy:
    """Retries an async operation with backoff and jitter.

    ``sleep`` and ``rng`` are injectable so tests can observe delays without
    waiting on them.
    """

    def __init__(
        self,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ):
        self._sleep = sleep
        self._rng = rng

    def compute_delay(self, attempt: int, options: RetryOptions) -> float:
        if options.backoff == 'exponential':
            delay = options.initial_delay * (2 ** attempt)
        elif options.backoff == 'linear':
            delay = options.initial_delay * (attempt + 1)
        else:
            delay = options.initial_delay
        delay += delay * JITTER_RATIO * self._rng()
        return min(delay, options.max_delay)

    async def execute(self, operation: Callable[[], Awaitable[T]], options: Optional[RetryOptions] = None) -> T:
        options = options or RetryOptions()
        attempt = 0
        while True:
            try:
                return await operation()
            except Exception as e:
                if not is_retryable(e, options.retryable_errors):
                    logger.debug(f'Non-retryable failure on attempt {attempt + 1}: {type(e).__name__}: {e}')
                    raise
                if attempt >= options.max_retries:
                    logger.debug(f'Giving up after {attempt + 1} attempt(s): {type(e).__name__}: {e}')
                    raise

                delay = self.compute_delay(attempt, options)
                logger.warning(
                    f'Attempt {attempt + 1}/{options.max_retries + 1} failed: {type(e).__name__}: {e}. '
                    f'Retrying in {delay:.2f}s'
                )
                if options.on_retry is not None:
                    outcome = options.on_retry(e, attempt + 1)
                    if inspect.isawaitable(outcome):
                        await outcome
                await self._sleep(delay)
            attempt += 1

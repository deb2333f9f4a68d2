"""
Process-wide flow control for outbound LLM calls.

Every completion issued by the planner and the discovery strategies runs
under one shared semaphore, so many concurrent test executions cannot flood
the upstream completion service.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from stepwright.config import CONFIG

_io_semaphore: Optional[asyncio.Semaphore] = None


def _ensure_semaphore() -> asyncio.Semaphore:
    global _io_semaphore
    if _io_semaphore is None:
        _io_semaphore = asyncio.Semaphore(CONFIG.STEPWRIGHT_LLM_CONCURRENCY)
    return _io_semaphore


def set_io_semaphore_count(count: int) -> None:
    """
    Replace the shared semaphore with one allowing ``count`` concurrent calls.

    Raises:
        ValueError: If count is less than 1
    """
    if count < 1:
        raise ValueError("Semaphore count must be at least 1")

    global _io_semaphore
    _io_semaphore = asyncio.Semaphore(count)


@asynccontextmanager
async def io_semaphore():
    """
    Usage:
        async with io_semaphore():
            text = await llm.complete(messages)
    """
    semaphore = _ensure_semaphore()
    async with semaphore:
        yield


def get_io_semaphore_stats() -> dict:
    if _io_semaphore is None:
        return {'initialized': False, 'available': None, 'waiting': None}
    waiters = getattr(_io_semaphore, '_waiters', None) or []
    return {
        'initialized': True,
        'available': _io_semaphore._value,
        'waiting': len(waiters),
    }

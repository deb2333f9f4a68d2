"""
Clock helpers shared by logging, the resilience kernel and plan records.

- Durations and deadlines (circuit breaker, cache TTL) use the monotonic clock
- Records that leave the process (plans, refinements, results) carry UTC wall time
"""
from __future__ import annotations

import time
from datetime import datetime, timezone

_PROCESS_START_MONOTONIC = time.monotonic()
_PROCESS_START_WALL = time.time()


def monotonic_seconds() -> float:
    """Current monotonic time in seconds."""
    return time.monotonic()


def uptime_seconds() -> float:
    """Seconds since process start based on monotonic clock."""
    return time.monotonic() - _PROCESS_START_MONOTONIC


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def epoch_ms() -> int:
    """Wall-clock milliseconds since the epoch, used for generated ids."""
    return int(time.time() * 1000)


def now_utc_iso(ms: bool = True) -> str:
    """ISO-8601 UTC timestamp string suitable for logs (e.g., 2025-08-25T12:34:56.789Z)."""
    dt = utc_now()
    if ms:
        return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return dt.isoformat().replace("+00:00", "Z")


def process_start_utc_iso() -> str:
    return datetime.fromtimestamp(_PROCESS_START_WALL, tz=timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

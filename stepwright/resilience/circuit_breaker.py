from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Optional, TypeVar

from stepwright.exceptions import CircuitOpenError
from stepwright.settings import CircuitBreakerSettings
from stepwright.timing import monotonic_seconds

logger = logging.getLogger(__name__)

T = TypeVar('T')


class CircuitStatus(str, enum.Enum):
    CLOSED = 'CLOSED'
    OPEN = 'OPEN'
    HALF_OPEN = 'HALF_OPEN'


@dataclass
class CircuitState:
    state: CircuitStatus = CircuitStatus.CLOSED
    failures: int = 0
    successes: int = 0
    last_failure_time: Optional[float] = None
    next_attempt_time: Optional[float] = None


class CircuitBreaker:
    """Per-key circuit breaker shared by every caller of a protected operation.

    One instance is meant to live for the whole process and be passed to each
    component that calls the completion service, so a degraded upstream
    opens the circuit for all concurrent executions at once.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        success_threshold: int = 2,
        timeout: float = 60.0,
        clock: Callable[[], float] = monotonic_seconds,
    ):
        self.failure_threshold = failure_threshold
        self.success_threshold = success_threshold
        self.timeout = timeout
        self._clock = clock
        self._circuits: dict[str, CircuitState] = {}

    @classmethod
    def from_settings(cls, settings: CircuitBreakerSettings, clock: Callable[[], float] = monotonic_seconds) -> 'CircuitBreaker':
        return cls(
            failure_threshold=settings.failure_threshold,
            success_threshold=settings.success_threshold,
            timeout=settings.timeout_seconds,
            clock=clock,
        )

    def _circuit(self, key: str) -> CircuitState:
        circuit = self._circuits.get(key)
        if circuit is None:
            circuit = CircuitState()
            self._circuits[key] = circuit
        return circuit

    async def execute(self, key: str, operation: Callable[[], Awaitable[T]]) -> T:
        circuit = self._circuit(key)

        if circuit.state is CircuitStatus.OPEN:
            now = self._clock()
            if circuit.next_attempt_time is not None and now < circuit.next_attempt_time:
                raise CircuitOpenError(key, math.ceil(circuit.next_attempt_time - now))
            logger.info(f'Circuit "{key}" entering HALF_OPEN')
            circuit.state = CircuitStatus.HALF_OPEN
            circuit.successes = 0

        try:
            result = await operation()
        except Exception:
            self._on_failure(key, circuit)
            raise
        self._on_success(key, circuit)
        return result

    def _on_success(self, key: str, circuit: CircuitState) -> None:
        circuit.failures = 0
        if circuit.state is CircuitStatus.HALF_OPEN:
            circuit.successes += 1
            if circuit.successes >= self.success_threshold:
                logger.info(f'Circuit "{key}" CLOSED after {circuit.successes} successful probes')
                circuit.state = CircuitStatus.CLOSED
                circuit.successes = 0
                circuit.next_attempt_time = None

    def _on_failure(self, key: str, circuit: CircuitState) -> None:
        now = self._clock()
        circuit.failures += 1
        circuit.successes = 0
        circuit.last_failure_time = now

        if circuit.state is CircuitStatus.HALF_OPEN:
            circuit.state = CircuitStatus.OPEN
            circuit.next_attempt_time = now + self.timeout
            logger.warning(f'Circuit "{key}" re-OPENED by a failed probe')
        elif circuit.state is CircuitStatus.CLOSED and circuit.failures >= self.failure_threshold:
            circuit.state = CircuitStatus.OPEN
            circuit.next_attempt_time = now + self.timeout
            logger.warning(f'Circuit "{key}" OPENED after {circuit.failures} consecutive failures')

    def get_state(self, key: str) -> CircuitState:
        """Copy of the state for ``key``; unknown keys report a fresh CLOSED state."""
        circuit = self._circuits.get(key)
        return replace(circuit) if circuit is not None else CircuitState()

    def reset(self, key: str) -> None:
        self._circuits[key] = CircuitState()

    def reset_all(self) -> None:
        self._circuits.clear()

    def snapshot(self) -> dict[str, dict]:
        return {
            key: {
                'state': c.state.value,
                'failures': c.failures,
                'successes': c.successes,
                'last_failure_time': c.last_failure_time,
                'next_attempt_time': c.next_attempt_time,
            }
            for key, c in self._circuits.items()
        }

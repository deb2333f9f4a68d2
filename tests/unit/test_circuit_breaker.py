import pytest

from stepwright.exceptions import CircuitOpenError, TransientError
from stepwright.resilience import CircuitBreaker, CircuitStatus, RetryOptions, RetryStrategy, call_protected


class Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


async def _fail():
    raise TransientError('upstream 503')


async def _ok():
    return 'ok'


async def _trip(breaker, key, times):
    for _ in range(times):
        with pytest.raises(TransientError):
            await breaker.execute(key, _fail)


@pytest.mark.asyncio
async def test_opens_after_threshold_and_rejects_without_calling():
    clock = Clock()
    breaker = CircuitBreaker(failure_threshold=5, success_threshold=2, timeout=60.0, clock=clock)
    await _trip(breaker, 'planning', 5)
    assert breaker.get_state('planning').state is CircuitStatus.OPEN

    calls = 0

    async def counted():
        nonlocal calls
        calls += 1
        return 'ok'

    clock.now += 10
    with pytest.raises(CircuitOpenError) as info:
        await breaker.execute('planning', counted)
    assert calls == 0
    assert str(info.value) == 'Circuit breaker is OPEN for "planning". Wait 50s before retry.'


@pytest.mark.asyncio
async def test_half_open_closes_after_success_threshold():
    clock = Clock()
    breaker = CircuitBreaker(failure_threshold=2, success_threshold=2, timeout=30.0, clock=clock)
    await _trip(breaker, 'k', 2)

    clock.now += 30
    assert await breaker.execute('k', _ok) == 'ok'
    assert breaker.get_state('k').state is CircuitStatus.HALF_OPEN
    assert await breaker.execute('k', _ok) == 'ok'
    state = breaker.get_state('k')
    assert state.state is CircuitStatus.CLOSED
    assert state.failures == 0


@pytest.mark.asyncio
async def test_failed_probe_reopens():
    clock = Clock()
    breaker = CircuitBreaker(failure_threshold=1, success_threshold=2, timeout=5.0, clock=clock)
    await _trip(breaker, 'k', 1)
    clock.now += 6
    await _trip(breaker, 'k', 1)
    state = breaker.get_state('k')
    assert state.state is CircuitStatus.OPEN
    assert state.next_attempt_time == clock.now + 5.0


@pytest.mark.asyncio
async def test_success_resets_failure_count_while_closed():
    breaker = CircuitBreaker(failure_threshold=3, clock=Clock())
    await _trip(breaker, 'k', 2)
    await breaker.execute('k', _ok)
    await _trip(breaker, 'k', 2)
    assert breaker.get_state('k').state is CircuitStatus.CLOSED


@pytest.mark.asyncio
async def test_keys_are_independent_and_resettable():
    breaker = CircuitBreaker(failure_threshold=1, clock=Clock())
    await _trip(breaker, 'vision-discovery', 1)
    assert await breaker.execute('llm-dom-discovery', _ok) == 'ok'
    assert breaker.snapshot()['vision-discovery']['state'] == 'OPEN'

    breaker.reset('vision-discovery')
    assert breaker.get_state('vision-discovery').state is CircuitStatus.CLOSED
    breaker.reset_all()
    assert breaker.snapshot() == {}


def test_get_state_returns_a_copy():
    breaker = CircuitBreaker()
    state = breaker.get_state('unknown')
    state.failures = 99
    assert breaker.get_state('unknown').failures == 0


@pytest.mark.asyncio
async def test_call_protected_stops_once_circuit_opens():
    delays = []

    async def sleep(seconds):
        delays.append(seconds)

    breaker = CircuitBreaker(failure_threshold=2, timeout=60.0, clock=Clock())
    retry = RetryStrategy(sleep=sleep, rng=lambda: 0.0)
    calls = 0

    async def failing():
        nonlocal calls
        calls += 1
        raise TransientError('timeout')

    with pytest.raises(CircuitOpenError):
        await call_protected(breaker, retry, 'plan-refinement', failing, RetryOptions(max_retries=5, initial_delay=0.1))
    assert calls == 2
    assert len(delays) == 2

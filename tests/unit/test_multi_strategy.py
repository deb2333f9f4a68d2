import pytest

from stepwright.discovery import MultiStrategyDiscovery
from stepwright.discovery.strategies.base import DiscoveryStrategy, is_semantic_concept
from stepwright.discovery.strategies.vision import VisionStrategy
from stepwright.discovery.views import ElementDiscoveryResult


class StaticStrategy(DiscoveryStrategy):
    def __init__(self, name, result=None, error=None):
        self.name = name
        self.result = result
        self.error = error
        self.calls = 0

    async def discover(self, driver, description, action_kind):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


class StaticVision(VisionStrategy):
    def __init__(self, result):
        self.name = 'VISION'
        self.result = result
        self.calls = 0

    async def discover(self, driver, description, action_kind):
        self.calls += 1
        return self.result


def _result(selector, confidence, strategy, alternatives=()):
    return ElementDiscoveryResult(selector=selector, confidence=confidence, strategy=strategy, alternatives=alternatives)


@pytest.mark.asyncio
async def test_best_result_wins_and_alternatives_are_merged(make_driver):
    low = StaticStrategy('A', _result('#a', 0.6, 'A', ('#shared', '#b')))
    high = StaticStrategy('B', _result('#b', 0.9, 'B', ('#shared',)))
    result = await MultiStrategyDiscovery([low, high]).discover(make_driver([]), 'Save button', 'click')
    assert result.selector == '#b'
    assert result.alternatives == ('#shared', '#a')


@pytest.mark.asyncio
async def test_failing_strategy_counts_as_no_candidate(make_driver):
    broken = StaticStrategy('A', error=RuntimeError('boom'))
    working = StaticStrategy('B', _result('#ok', 0.7, 'B'))
    result = await MultiStrategyDiscovery([broken, working]).discover(make_driver([]), 'OK', 'click')
    assert result.selector == '#ok'
    assert await MultiStrategyDiscovery([broken]).discover(make_driver([]), 'OK', 'click') is None


@pytest.mark.asyncio
async def test_semantic_concepts_ask_vision_first(make_driver):
    dom = StaticStrategy('DOM', _result('#form', 0.9, 'DOM'))
    vision = StaticVision(ElementDiscoveryResult(method='vision', confidence=0.8, strategy='VISION'))
    result = await MultiStrategyDiscovery([dom, vision]).discover(make_driver([]), 'the login form', 'verify')
    assert result.method == 'vision'
    assert dom.calls == 0

    result = await MultiStrategyDiscovery([dom, vision]).discover(make_driver([]), 'Save button', 'click')
    assert result.selector == '#form'
    assert dom.calls == 1


def test_semantic_concept_detection():
    assert is_semantic_concept('the login form')
    assert is_semantic_concept('Navigation menus')
    assert not is_semantic_concept('Save button')
    assert not is_semantic_concept('formula input')

import json

import pytest

from stepwright.engine import build_engine
from stepwright.exceptions import TransientError
from stepwright.planner import Action, Plan, Step, TestScenario
from stepwright.settings import CircuitBreakerSettings, EngineSettings

PLAN = {
    'steps': [
        {'id': 'step-1', 'description': 'Open the login page', 'action': {'name': 'navigate', 'arguments': {'url': 'https://app.example.com/login'}}},
        {
            'id': 'step-2',
            'description': 'Click sign in',
            'action': {'name': 'click', 'arguments': {'description': 'Sign in', 'selector': '#old-signin'}},
        },
        {'id': 'step-3', 'description': 'Title names the app', 'action': {'name': 'verify_title_contains', 'arguments': {'expected': 'Example'}}},
    ]
}


class RoutingLLM:
    """Answers by prompt family: planning, refinement, element discovery."""

    model = 'routing-model'

    def __init__(self):
        self.calls = []

    async def complete(self, messages, model=None, temperature=0.0, json_mode=False):
        system = messages[0].content if isinstance(messages[0].content, str) else ''
        if system.startswith('You are a test planner'):
            kind, response = 'plan', json.dumps(PLAN)
        elif system.startswith('You improve browser test plans'):
            kind, response = 'refine', json.dumps({'refinements': []})
        elif system.startswith('You locate elements'):
            kind, response = 'discover', json.dumps({'selector': '#signin', 'confidence': 0.9})
        else:
            raise AssertionError(f'Unexpected prompt: {system[:60]!r}')
        self.calls.append(kind)
        return response


@pytest.mark.asyncio
async def test_plan_refine_and_execute(make_driver, element, instant_retry):
    llm = RoutingLLM()
    engine = build_engine(llm, retry=instant_retry)
    driver = make_driver([element('button', 'Sign in', id='signin')])

    plan = await engine.planner.plan(TestScenario(name='Sign in', description='Open the login page and sign in'))
    plan = await engine.planner.refine_plan(plan, driver)
    assert plan.phase == 'refined'

    executor = engine.executor_for(driver)
    results = [await executor.execute(step.action, step.id) for step in plan.steps]
    assert [r.status for r in results] == ['success', 'success', 'success']
    assert results[1].selector == '#signin'
    assert llm.calls == ['plan', 'refine', 'discover']

    health = engine.health()
    assert health['cache']['size'] >= 1
    assert {k: v['state'] for k, v in health['circuits'].items()} == {
        'planning': 'CLOSED',
        'plan-refinement': 'CLOSED',
        'llm-dom-discovery': 'CLOSED',
    }


@pytest.mark.asyncio
async def test_refinement_outage_opens_shared_circuit(make_driver, make_llm, instant_retry):
    llm = make_llm(*[TransientError('upstream 503')] * 5)
    settings = EngineSettings(circuit_breaker=CircuitBreakerSettings(failure_threshold=2))
    engine = build_engine(llm, settings=settings, retry=instant_retry)
    plan = Plan(id='plan-1', scenario_id='scenario-1', steps=[Step(id='step-1', description='Open', action=Action(name='navigate', arguments={'url': 'https://a.example'}))])

    refined = await engine.planner.refine_plan(plan, make_driver([]))
    assert refined.steps == plan.steps
    assert refined.refinement_history[-1].reason.startswith('Refinement failed:')
    # two failed attempts open the circuit; the third attempt is rejected without a call
    assert engine.health()['circuits']['plan-refinement']['state'] == 'OPEN'
    assert len(llm.calls) == 2


def test_executors_are_per_driver_but_share_state(make_driver, make_llm):
    engine = build_engine(make_llm())
    first, second = engine.executor_for(make_driver([])), engine.executor_for(make_driver([]))
    assert first is not second
    assert first.locator is second.locator
    assert first.max_recursion_depth == 2
    assert engine.planner.cache is engine.cache
    assert engine.planner.breaker is engine.breaker

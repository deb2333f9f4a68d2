import json

import pytest

from stepwright.exceptions import ValidationError
from stepwright.llm.parsing import extract_json_object
from stepwright.planner import LLMPlanner, TestScenario, fallback_plan_name
from stepwright.resilience import CircuitBreaker

PLAN = {
    'steps': [
        {'id': 'step-1', 'description': 'Open the login page', 'action': {'name': 'navigate', 'arguments': {'url': 'https://app.example.com/login'}}},
        {
            'id': 2,
            'description': 'Enter the username',
            'action': {'name': 'type', 'arguments': {'description': 'Username field', 'value': 'ada'}},
        },
        {
            'id': 'step-3',
            'description': 'Check the dashboard loaded',
            'action': {'name': 'verify_title_contains', 'arguments': {'expected': 'Dashboard'}},
            'assertion': {'description': 'Title mentions the dashboard'},
        },
    ]
}


def _planner(llm, retry, **kwargs):
    return LLMPlanner(llm, CircuitBreaker(), retry=retry, **kwargs)


@pytest.mark.asyncio
async def test_plan_from_completion(make_llm, instant_retry):
    llm = make_llm(json.dumps(PLAN), '"Login smoke test"\n')
    scenario = TestScenario(description='Log in as ada and land on the dashboard')

    plan = await _planner(llm, instant_retry).plan(scenario)
    assert plan.scenario_id == scenario.id
    assert plan.scenario == scenario.description
    assert plan.name == 'Login smoke test'
    assert plan.phase == 'initial'
    assert [s.id for s in plan.steps] == ['step-1', '2', 'step-3']
    assert plan.steps[1].action.arguments == {'description': 'Username field', 'value': 'ada'}
    assert plan.steps[2].assertion.check == 'Title mentions the dashboard'
    assert plan.id.startswith('plan-')
    assert llm.calls[0]['json_mode'] is True
    assert len(llm.calls) == 2


@pytest.mark.asyncio
async def test_named_scenario_skips_name_generation(make_llm, instant_retry):
    llm = make_llm(json.dumps(PLAN))
    plan = await _planner(llm, instant_retry).plan(TestScenario(name='Login', description='Log in'))
    assert plan.name == 'Login'
    assert len(llm.calls) == 1


@pytest.mark.asyncio
async def test_name_generation_failure_uses_scenario_prefix(make_llm, instant_retry):
    llm = make_llm(json.dumps(PLAN), RuntimeError('invalid api key'))
    scenario = TestScenario(description='Log in as ada with the correct password and land on the dashboard')
    plan = await _planner(llm, instant_retry).plan(scenario)
    assert plan.name == 'Log in as ada with the correct password...'


@pytest.mark.asyncio
async def test_duplicate_step_ids_are_rejected(make_llm, instant_retry):
    steps = [PLAN['steps'][0], dict(PLAN['steps'][2], id='step-1')]
    llm = make_llm(json.dumps({'steps': steps}))
    with pytest.raises(ValidationError, match='duplicate step ids: step-1'):
        await _planner(llm, instant_retry, generate_names=False).plan(TestScenario(description='x'))


@pytest.mark.asyncio
async def test_empty_plan_is_rejected(make_llm, instant_retry):
    llm = make_llm('{"steps": []}')
    with pytest.raises(ValidationError, match='PlanPayload payload rejected'):
        await _planner(llm, instant_retry, generate_names=False).plan(TestScenario(description='x'))


def test_fallback_plan_name():
    assert fallback_plan_name('Log in') == 'Log in'
    assert fallback_plan_name('one two three four five six seven eight nine') == 'one two three four five six seven eight...'


def test_extract_json_object_tolerates_fences_and_prose():
    assert extract_json_object('```json\n{"a": 1}\n```') == {'a': 1}
    assert extract_json_object('Here is the plan:\n```json\n{"a": 1}\n```\nGood luck') == {'a': 1}
    assert extract_json_object('  {"a": {"b": [1, 2]}}  ') == {'a': {'b': [1, 2]}}


@pytest.mark.parametrize(
    "text,message",
    [
        ('no json here', 'not JSON'),
        ('[1, 2]', 'Expected a JSON object'),
        ('{"a": }', 'not valid JSON'),
    ],
)
def test_extract_json_object_rejects(text, message):
    with pytest.raises(ValidationError, match=message):
        extract_json_object(text)

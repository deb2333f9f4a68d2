from __future__ import annotations

import logging
from typing import Optional

from stepwright.exceptions import ValidationError
from stepwright.llm.base import BaseChatModel
from stepwright.llm.messages import SystemMessage, UserMessage
from stepwright.llm.parsing import parse_payload
from stepwright.planner.payloads import PlanPayload
from stepwright.planner.views import Plan, TestScenario
from stepwright.prompts import render_prompt
from stepwright.resilience import CircuitBreaker, RetryOptions, RetryStrategy, call_protected
from stepwright.timing import epoch_ms

logger = logging.getLogger(__name__)

PLANNING_KEY = 'planning'
NAMING_KEY = 'plan-naming'
NAME_WORDS = 8


def fallback_plan_name(scenario_text: str) -> str:
    words = scenario_text.split()
    if len(words) <= NAME_WORDS:
        return ' '.join(words)
    return ' '.join(words[:NAME_WORDS]) + '...'


class LLMPlanner:
    """Turns a scenario into an initial plan with one JSON-mode completion."""

    def __init__(
        self,
        llm: BaseChatModel,
        breaker: CircuitBreaker,
        retry: Optional[RetryStrategy] = None,
        retry_options: Optional[RetryOptions] = None,
        model: Optional[str] = None,
        generate_names: bool = True,
    ):
        self.llm = llm
        self.breaker = breaker
        self.retry = retry or RetryStrategy()
        self.retry_options = retry_options or RetryOptions(max_retries=3, initial_delay=1.0, max_delay=10.0)
        self.model = model
        self.generate_names = generate_names

    async def plan(self, scenario: TestScenario) -> Plan:
        messages = [
            SystemMessage(content=render_prompt('planner_system.md')),
            UserMessage(content=render_prompt('planner_user.md', name=scenario.name or 'Untitled scenario', description=scenario.description)),
        ]
        text = await call_protected(
            self.breaker,
            self.retry,
            PLANNING_KEY,
            lambda: self.llm.complete(messages, model=self.model, temperature=0.0, json_mode=True),
            self.retry_options,
        )
        payload = parse_payload(text, PlanPayload)

        ids = [s.id for s in payload.steps]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValidationError(f'Plan has duplicate step ids: {", ".join(duplicates)}')

        name = scenario.name or await self.generate_plan_name(scenario.description)
        plan = Plan(
            id=f'plan-{epoch_ms()}',
            scenario_id=scenario.id,
            scenario=scenario.description,
            name=name,
            steps=[s.to_step() for s in payload.steps],
        )
        logger.info(f'Planned {len(plan.steps)} steps for scenario {scenario.id} ({plan.id})')
        return plan

    async def generate_plan_name(self, scenario_text: str) -> str:
        if not self.generate_names:
            return fallback_plan_name(scenario_text)
        messages = [UserMessage(content=render_prompt('plan_name.md', scenario=scenario_text))]
        try:
            text = await call_protected(
                self.breaker,
                self.retry,
                NAMING_KEY,
                lambda: self.llm.complete(messages, model=self.model, temperature=0.3),
                RetryOptions(max_retries=1, initial_delay=0.5, max_delay=2.0),
            )
        except Exception as e:
            logger.warning(f'Plan name generation failed, using scenario prefix: {type(e).__name__}: {e}')
            return fallback_plan_name(scenario_text)
        name = text.strip().strip('"\'').strip()
        return name[:100] if name else fallback_plan_name(scenario_text)

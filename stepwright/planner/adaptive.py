from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Optional, Sequence

from stepwright.discovery.locator import ElementLocator
from stepwright.discovery.views import ElementDiscoveryResult, ElementInfo
from stepwright.dom.cache import StructureCache
from stepwright.dom.extractor import extract_structure
from stepwright.exceptions import ElementNotFoundError, ValidationError
from stepwright.llm.base import BaseChatModel
from stepwright.llm.messages import SystemMessage, UserMessage
from stepwright.llm.parsing import parse_payload
from stepwright.planner.llm_planner import LLMPlanner
from stepwright.planner.payloads import RefinementPayload, RefinementRecord, StepPayload
from stepwright.planner.views import Action, Plan, PlanRefinement, RefinedStep, Step, TestScenario
from stepwright.prompts import render_prompt
from stepwright.resilience import CircuitBreaker, RetryOptions, RetryStrategy, call_protected
from stepwright.settings import PlannerSettings

if TYPE_CHECKING:
    from stepwright.browser.driver import BrowserDriver
    from stepwright.executor.views import ExecutionResult

logger = logging.getLogger(__name__)

REFINEMENT_KEY = 'plan-refinement'
REFINEMENT_STRATEGY = 'LLM_REFINEMENT'
FAILURE_STEP_ID = 'plan-refinement'


def _executed_digest(executed_steps: Sequence['ExecutionResult']) -> str:
    return json.dumps([{'stepId': r.step_id, 'status': r.status, 'error': r.error} for r in executed_steps], indent=2)


def _action_kind(step: Step) -> str:
    return 'verify' if step.action.is_verification else step.action.name


def with_selector(
    step: Step,
    selector: str,
    confidence: float,
    alternatives: Sequence[str],
    strategy: str,
    element_info: Optional[ElementInfo] = None,
    count_retry: bool = False,
) -> RefinedStep:
    """Copy of ``step`` pointing at ``selector``; the first selector it ever had is kept as original."""
    previous = step.action.selector
    original = step.original_selector if isinstance(step, RefinedStep) and step.original_selector else previous
    retries = step.retry_count if isinstance(step, RefinedStep) else 0
    arguments = {**step.action.arguments, 'selector': selector, 'alternatives': list(alternatives)}
    return RefinedStep(
        id=step.id,
        description=step.description,
        action=Action(name=step.action.name, arguments=arguments),
        assertion=step.assertion,
        element_discovery=ElementDiscoveryResult(
            selector=selector,
            confidence=confidence,
            alternatives=tuple(alternatives),
            element_info=element_info,
            strategy=strategy,
        ),
        original_selector=original,
        retry_count=retries + 1 if count_retry else retries,
    )


class AdaptivePlanner:
    """Plans a scenario, then refines and repairs the plan against the live page.

    Phases only move forward: initial -> refined -> adaptive. Refinement and
    adaptation never raise; on any failure they hand back a usable plan.
    """

    def __init__(
        self,
        base_planner: LLMPlanner,
        llm: BaseChatModel,
        locator: ElementLocator,
        cache: StructureCache,
        breaker: CircuitBreaker,
        retry: Optional[RetryStrategy] = None,
        settings: Optional[PlannerSettings] = None,
    ):
        self.base_planner = base_planner
        self.llm = llm
        self.locator = locator
        self.cache = cache
        self.breaker = breaker
        self.retry = retry or RetryStrategy()
        self.settings = settings or PlannerSettings()

    async def plan(self, scenario: TestScenario) -> Plan:
        plan = await self.base_planner.plan(scenario)
        return plan.model_copy(update={'phase': 'initial', 'refinement_history': []})

    async def _structure(self, driver: 'BrowserDriver') -> str:
        structure = await self.cache.get_or_extract(
            driver.url, lambda: extract_structure(driver, max_elements=self.settings.structure_max_elements)
        )
        return structure[: self.settings.max_structure_chars]

    async def _ask_for_refinement(self, user_prompt: str) -> RefinementPayload:
        messages = [SystemMessage(content=render_prompt('refine_plan_system.md')), UserMessage(content=user_prompt)]
        text = await call_protected(
            self.breaker,
            self.retry,
            REFINEMENT_KEY,
            lambda: self.llm.complete(messages, model=self.settings.model, temperature=0.0, json_mode=True),
            RetryOptions.from_settings(self.settings.refinement_retry),
        )
        payload = parse_payload(text, RefinementPayload)
        if payload.error:
            raise ValidationError(f'Refinement declined: {payload.error}')
        return payload

    def _proposed_selector(
        self, step: Step, record: Optional[RefinementRecord], proposed: Optional[StepPayload]
    ) -> Optional[tuple[str, float, list[str], str]]:
        default_confidence = self.settings.default_refinement_confidence
        if record is not None and record.refined_selector:
            confidence = record.confidence if record.confidence is not None else default_confidence
            return record.refined_selector, confidence, record.alternatives, record.reason
        if proposed is not None:
            args = proposed.action.arguments
            selector = args.get('selector')
            if isinstance(selector, str) and selector and selector != step.action.selector:
                try:
                    confidence = float(args.get('confidence', default_confidence))
                except (TypeError, ValueError):
                    confidence = default_confidence
                alternatives = [a for a in args.get('alternatives') or [] if isinstance(a, str)]
                return selector, confidence, alternatives, 'Refined against page structure'
        return None

    def _refine_step(
        self, step: Step, record: Optional[RefinementRecord], proposed: Optional[StepPayload]
    ) -> tuple[Step, Optional[PlanRefinement]]:
        if not step.action.is_interaction:
            return step, None
        proposal = self._proposed_selector(step, record, proposed)
        if proposal is None:
            return step, None
        selector, confidence, alternatives, reason = proposal
        if confidence < self.settings.refinement_confidence_threshold:
            logger.debug(f'Leaving {step.id} for runtime discovery: refinement confidence {confidence:.2f}')
            return step, None
        refined = with_selector(step, selector, confidence, alternatives, REFINEMENT_STRATEGY)
        return refined, PlanRefinement(
            step_id=step.id,
            original_selector=step.action.selector,
            refined_selector=selector,
            reason=reason,
            confidence=confidence,
        )

    async def refine_plan(self, plan: Plan, driver: 'BrowserDriver', executed_steps: Sequence['ExecutionResult'] = ()) -> Plan:
        max_history = self.settings.max_refinement_history
        try:
            structure = await self._structure(driver)
            prompt = render_prompt(
                'refine_plan_user.md',
                url=driver.url,
                plan=json.dumps(plan.model_dump(mode='json', include={'id', 'steps'}), indent=2),
                executed=_executed_digest(executed_steps),
                structure=structure,
            )
            payload = await self._ask_for_refinement(prompt)
        except Exception as e:
            logger.warning(f'Plan refinement failed for {plan.id}, keeping original steps: {type(e).__name__}: {e}')
            failure = PlanRefinement(step_id=FAILURE_STEP_ID, reason=f'Refinement failed: {e}')
            return plan.evolve(phase='refined', refinements=[failure], max_history=max_history)

        removed = {r.step_id: r.reason for r in payload.removed_steps}
        records = {r.step_id: r for r in payload.refinements}
        proposed = {s.id: s for s in payload.steps or []}

        steps: list[Step] = []
        history: list[PlanRefinement] = []
        for step in plan.steps:
            if step.id in removed:
                history.append(PlanRefinement(step_id=step.id, reason=f'Step removed: {removed[step.id]}'))
                continue
            step, record = self._refine_step(step, records.get(step.id), proposed.get(step.id))
            if record is not None:
                history.append(record)
            steps.append(step)

        logger.info(
            f'Refined plan {plan.id}: {len(plan.steps) - len(steps)} removed, '
            f'{sum(1 for h in history if h.refined_selector)} selector(s) updated'
        )
        return plan.evolve(phase='refined', steps=steps, refinements=history, max_history=max_history)

    async def refine_next_step(
        self,
        plan: Plan,
        driver: 'BrowserDriver',
        executed_steps: Sequence['ExecutionResult'],
        next_index: int,
    ) -> tuple[Plan, list[str]]:
        """Re-check only the upcoming step. Returns the plan and the ids of removed steps."""
        if next_index >= len(plan.steps):
            return plan, []
        next_step = plan.steps[next_index]

        try:
            structure = await self._structure(driver)
            prompt = render_prompt(
                'refine_step_user.md',
                url=driver.url,
                step=json.dumps(next_step.model_dump(mode='json'), indent=2),
                executed=_executed_digest(executed_steps[-1:]),
                structure=structure,
            )
            payload = await self._ask_for_refinement(prompt)
        except Exception as e:
            logger.info(f'Incremental refinement of {next_step.id} skipped: {type(e).__name__}: {e}')
            return plan, []

        removal = next((r for r in payload.removed_steps if r.step_id == next_step.id), None)
        if removal is not None:
            logger.info(f'Removing step {next_step.id}: {removal.reason}')
            record = PlanRefinement(step_id=next_step.id, reason=f'Step removed: {removal.reason}')
            steps = [s for s in plan.steps if s.id != next_step.id]
            return plan.evolve(phase='adaptive', steps=steps, refinements=[record], max_history=self.settings.max_refinement_history), [next_step.id]

        record_in = next((r for r in payload.refinements if r.step_id == next_step.id), None)
        proposed = next((s for s in payload.steps or [] if s.id == next_step.id), None)
        refined, record = self._refine_step(next_step, record_in, proposed)
        if record is None:
            return plan, []
        steps = [refined if s.id == next_step.id else s for s in plan.steps]
        return plan.evolve(phase='adaptive', steps=steps, refinements=[record], max_history=self.settings.max_refinement_history), []

    async def adapt_plan(self, plan: Plan, failed_step: Step, failure: 'ExecutionResult', driver: 'BrowserDriver') -> Plan:
        """Re-discover the element for a failed interaction step. Returns the plan unchanged when that fails."""
        if not failed_step.action.is_interaction or plan.step(failed_step.id) is None:
            return plan

        description = failed_step.target_description()
        kind = _action_kind(failed_step)

        async def rediscover():
            result = await self.locator.locate(driver, description, kind)
            if not result.is_dom:
                raise ElementNotFoundError(f'No structural match for "{description}"', method=result.method, confidence=result.confidence)
            return result

        try:
            located = await self.retry.execute(
                rediscover,
                RetryOptions(
                    max_retries=self.settings.adapt_max_retries,
                    initial_delay=0.5,
                    max_delay=2.0,
                    retryable_errors=(ElementNotFoundError,),
                ),
            )
        except Exception as e:
            logger.warning(f'Could not adapt step {failed_step.id}: {type(e).__name__}: {e}')
            return plan

        current = plan.step(failed_step.id)
        adapted = with_selector(
            current,
            located.selector,
            located.confidence,
            located.alternatives,
            located.strategy,
            element_info=located.element_info,
            count_retry=True,
        )
        record = PlanRefinement(
            step_id=failed_step.id,
            original_selector=current.action.selector,
            refined_selector=located.selector,
            reason=f'Adapted due to execution failure: {failure.error or failure.status}',
            confidence=located.confidence,
        )
        steps = [adapted if s.id == failed_step.id else s for s in plan.steps]
        logger.info(f'Adapted step {failed_step.id}: {current.action.selector!r} -> {located.selector!r}')
        return plan.evolve(phase='adaptive', steps=steps, refinements=[record], max_history=self.settings.max_refinement_history)

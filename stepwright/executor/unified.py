from __future__ import annotations

import asyncio
import base64
import logging
from typing import TYPE_CHECKING, Any, Optional

from stepwright.discovery.locator import ElementLocator
from stepwright.discovery.strategies.base import is_semantic_concept
from stepwright.discovery.strategies.vision import VisionStrategy
from stepwright.discovery.thresholds import ConfidenceThresholdPolicy
from stepwright.discovery.views import INTERACTION_KINDS, LocateResult
from stepwright.dom.validation import validate_selector
from stepwright.exceptions import (
    AmbiguousSelectorError,
    ElementNotFoundError,
    RecursionLimitError,
    ValidationError,
)
from stepwright.executor.verification import (
    ALL_HEADINGS,
    HEADING_SELECTORS,
    VerificationRequest,
    check_value,
    concept_from_selector,
    is_visual_concept_selector,
    parse_element_pair,
    parse_verification,
)
from stepwright.executor.views import ExecutionResult, ExecutionStatus, Snapshot
from stepwright.planner.views import Action
from stepwright.settings import ExecutorSettings

if TYPE_CHECKING:
    from stepwright.browser.driver import BrowserDriver

logger = logging.getLogger(__name__)

FOCUS_SETTLE_SECONDS = 0.1
FILL_SETTLE_SECONDS = 0.3
STABILIZE_SETTLE_SECONDS = 0.3


def _text_arg(args: dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = args.get(key)
        if value is None:
            continue
        text = str(value)
        if text.strip():
            return text
    return None


class UnifiedActionExecutor:
    """Executes one plan action against a driver.

    Interactions run as a two-state loop: the DOM path acts on a located
    selector, the fallback path re-discovers the element after the page
    settles. ``recursion_depth`` counts DOM failures for the current action and
    is bounded by ``max_recursion_depth``; it is reset after every top-level
    action. Every call returns an ExecutionResult, never raises (cancellation
    excepted).
    """

    def __init__(
        self,
        driver: 'BrowserDriver',
        locator: ElementLocator,
        thresholds: Optional[ConfidenceThresholdPolicy] = None,
        vision: Optional[VisionStrategy] = None,
        settings: Optional[ExecutorSettings] = None,
    ):
        self.driver = driver
        self.locator = locator
        self.thresholds = thresholds or locator.thresholds
        self.vision = vision
        self.settings = settings or ExecutorSettings()
        self.recursion_depth = 0

    @property
    def max_recursion_depth(self) -> int:
        return self.settings.max_recursion_depth

    async def execute(self, action: Action, step_id: Optional[str] = None) -> ExecutionResult:
        step_id = step_id or _text_arg(action.arguments, 'stepId') or 'unknown'
        timeout = self.settings.action_timeout_seconds
        try:
            if timeout:
                return await asyncio.wait_for(self._dispatch(action, step_id), timeout)
            return await self._dispatch(action, step_id)
        except asyncio.TimeoutError:
            self.recursion_depth = 0
            logger.error(f'{action.name} ({step_id}) exceeded its {timeout}s deadline')
            return await self._result(step_id, 'failure', error=f'Action {action.name} timed out after {timeout}s')

    async def _dispatch(self, action: Action, step_id: str) -> ExecutionResult:
        logger.info(f'Executing {action.name} ({step_id}) {action.arguments}')
        try:
            if action.is_verification:
                return await self._verify(action, step_id)
            if action.name == 'navigate':
                return await self._navigate(action.arguments, step_id)
            if action.name == 'wait':
                return await self._wait(action.arguments, step_id)
            if action.name in INTERACTION_KINDS:
                return await self._interact(action, step_id)
            return await self._result(step_id, 'error', error=f'Unsupported action: {action.name}')
        except Exception as e:
            logger.error(f'Execution of {action.name} ({step_id}) failed: {type(e).__name__}: {e}')
            return await self._result(step_id, 'error', error=str(e))

    # --- snapshot / results ---------------------------------------------------

    async def snapshot(self) -> Snapshot:
        """Screenshot, URL and HTML length; degrades to whatever could be captured."""
        url = ''
        try:
            url = self.driver.url
            html = await self.driver.content()
            screenshot = await self.driver.screenshot(full_page=True)
        except Exception as e:
            logger.debug(f'Snapshot capture failed: {type(e).__name__}: {e}')
            return Snapshot(url=url)
        return Snapshot(url=url, html_length=len(html), screenshot_base64=base64.b64encode(screenshot).decode('ascii'))

    async def _result(
        self,
        step_id: str,
        status: ExecutionStatus,
        selector: Optional[str] = None,
        error: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ExecutionResult:
        return ExecutionResult(
            step_id=step_id,
            description=description,
            selector=selector,
            status=status,
            error=error,
            snapshot=await self.snapshot(),
        )

    # --- navigate / wait ------------------------------------------------------

    async def _navigate(self, args: dict[str, Any], step_id: str) -> ExecutionResult:
        url = _text_arg(args, 'url')
        if not url:
            return await self._result(step_id, 'failure', error='Missing URL for navigate action')
        try:
            await self.driver.navigate(url, timeout=self.settings.navigation_timeout_seconds)
        except Exception as e:
            return await self._result(step_id, 'failure', error=f'Navigation to {url} failed: {e}')
        return await self._result(step_id, 'success', description=f'Navigated to {url}')

    async def _wait(self, args: dict[str, Any], step_id: str) -> ExecutionResult:
        # Plan arguments carry milliseconds
        raw = args.get('timeout', args.get('duration'))
        try:
            seconds = float(raw) / 1000 if raw is not None else self.settings.default_wait_timeout_seconds
        except (TypeError, ValueError):
            seconds = self.settings.default_wait_timeout_seconds
        selector = _text_arg(args, 'selector')
        try:
            if selector:
                await self.driver.wait_for_selector(selector, timeout=seconds)
            else:
                await self.driver.wait_for_timeout(seconds)
        except Exception as e:
            return await self._result(step_id, 'failure', selector=selector, error=f'Wait failed: {e}')
        return await self._result(step_id, 'success', selector=selector)

    # --- click / type / hover -------------------------------------------------

    async def _interact(self, action: Action, step_id: str) -> ExecutionResult:
        args = action.arguments
        kind = action.name
        hint = _text_arg(args, 'selector')
        description = _text_arg(args, 'description') or hint or kind
        if kind == 'type' and _text_arg(args, 'value', 'text') is None:
            return await self._result(step_id, 'failure', error='Missing value for type action')

        selector: Optional[str] = None
        try:
            location = await self._try_locate(description, kind, hint)
            state = 'dom' if location is not None and location.is_dom else 'fallback'
            selector = location.selector if location is not None else None
            while True:
                if state == 'dom':
                    try:
                        await self._perform(action, selector)
                    except Exception as e:
                        state = self._after_dom_failure(selector, e)
                        continue
                    return await self._result(step_id, 'success', selector=selector, description=description)

                found, last = await self._rediscover(description, kind)
                if found is None and kind == 'type':
                    logger.warning(f'Discovery found no input for "{description}"; trying input heuristics')
                    found = await self.locator.locate_input_by_heuristics(self.driver, description)
                if found is None:
                    if last is None:
                        raise ElementNotFoundError(f'Could not find element "{description}" for {kind}. Every discovery attempt failed')
                    raise ElementNotFoundError(
                        f'Could not find element "{description}" for {kind}. '
                        f'Last attempt: method={last.method}, selector={last.selector or "none"}, confidence={last.confidence:.2f}',
                        method=last.method,
                        selector=last.selector,
                        confidence=last.confidence,
                    )
                if self.recursion_depth >= self.max_recursion_depth:
                    raise RecursionLimitError(self.max_recursion_depth)
                selector = found.selector
                state = 'dom'
        except RecursionLimitError as e:
            logger.error(f'{kind} on "{description}" gave up at depth {self.recursion_depth}: {e}')
            return await self._result(step_id, 'failure', selector=selector, error=f'{e}. Last attempted selector: {selector}')
        except (ElementNotFoundError, ValidationError) as e:
            logger.error(f'{kind} on "{description}" failed: {e}')
            return await self._result(step_id, 'failure', error=str(e), description=description)
        finally:
            self.recursion_depth = 0

    def _after_dom_failure(self, selector: Optional[str], error: Exception) -> str:
        if self.recursion_depth >= self.max_recursion_depth:
            raise RecursionLimitError(self.max_recursion_depth) from error
        self.recursion_depth += 1
        logger.warning(
            f'DOM action on {selector!r} failed ({type(error).__name__}: {error}); '
            f'rediscovering (depth {self.recursion_depth}/{self.max_recursion_depth})'
        )
        return 'fallback'

    async def _perform(self, action: Action, selector: str) -> None:
        if action.name == 'click':
            await self.driver.click(selector)
        elif action.name == 'hover':
            await self.driver.hover(selector)
        elif action.name == 'type':
            value = _text_arg(action.arguments, 'value', 'text') or ''
            await self.driver.focus(selector)
            await self.driver.wait_for_timeout(FOCUS_SETTLE_SECONDS)
            await self.driver.fill(selector, value)
            await self.driver.wait_for_timeout(FILL_SETTLE_SECONDS)
            await self._read_back(selector, value)
        else:
            raise ValidationError(f'Unsupported action: {action.name}')

    async def _read_back(self, selector: str, expected: str) -> None:
        try:
            actual = await self.driver.input_value(selector)
        except Exception as e:
            logger.warning(f'Could not read back typed value from {selector!r}: {e}')
            return
        if actual != expected:
            logger.warning(f'Typed value mismatch on {selector!r}: expected {expected!r}, got {actual!r}')
        else:
            logger.debug(f'Typed value confirmed on {selector!r}')

    async def _stabilize(self) -> None:
        try:
            await self.driver.wait_for_load_state('networkidle', timeout=self.settings.stabilization_timeout_seconds)
        except Exception as e:
            logger.debug(f'Page did not settle: {e}')
        await self.driver.wait_for_timeout(STABILIZE_SETTLE_SECONDS)

    async def _try_locate(self, description: str, kind: str, hint: Optional[str] = None) -> Optional[LocateResult]:
        try:
            return await self.locator.locate(self.driver, description, kind, hint_selector=hint)
        except Exception as e:
            logger.warning(f'Discovery of "{description}" failed: {type(e).__name__}: {e}')
            return None

    async def _rediscover(self, description: str, kind: str) -> tuple[Optional[LocateResult], Optional[LocateResult]]:
        """Re-run discovery until a structural candidate clears the action threshold."""
        await self._stabilize()
        threshold = await self.thresholds.get_threshold(kind)

        def accepted(loc: Optional[LocateResult]) -> bool:
            return loc is not None and loc.is_dom and loc.confidence >= threshold

        location = await self._try_locate(description, kind)
        for attempt in range(self.settings.fallback_discovery_attempts):
            if accepted(location):
                break
            if location is not None:
                logger.debug(
                    f'Rediscovery {attempt + 1}/{self.settings.fallback_discovery_attempts} for "{description}": '
                    f'method={location.method} confidence={location.confidence:.2f} threshold={threshold}'
                )
            await self.driver.wait_for_timeout(self.settings.fallback_discovery_delay_seconds * (attempt + 1))
            location = await self._try_locate(description, kind)

        if accepted(location):
            logger.info(f'Rediscovered "{description}" -> {location.selector!r} via {location.strategy}')
            return location, location
        return None, location

    # --- verification ---------------------------------------------------------

    async def _verify(self, action: Action, step_id: str) -> ExecutionResult:
        args = action.arguments
        try:
            request = parse_verification(action.name)
        except ValidationError as e:
            return await self._result(step_id, 'failure', error=str(e))

        if request.is_visibility:
            return await self._verify_visibility(request, args, step_id)

        selector = _text_arg(args, 'selector')
        expected = _text_arg(args, 'text', 'value', 'expected')
        try:
            actual = await self._read_target(request, selector)
        except (ElementNotFoundError, AmbiguousSelectorError) as e:
            return await self._result(step_id, 'failure', selector=selector, error=str(e))
        error = check_value(request, actual, expected, selector)
        return await self._result(step_id, 'failure' if error else 'success', selector=selector, error=error)

    async def _read_target(self, request: VerificationRequest, selector: Optional[str]) -> str:
        target = request.target
        if target == 'title':
            return await self.driver.title()
        if target == 'url':
            return self.driver.url
        if target in ('text', 'body'):
            return await self.driver.text_content('body') or ''
        if target in HEADING_SELECTORS and not selector:
            heading = HEADING_SELECTORS[target]
            if await self.driver.count(heading) == 0:
                raise ElementNotFoundError(f'No heading found with selector: {heading}', selector=heading)
            return await self.driver.text_content(heading) or ''
        if target == 'element' and not selector:
            raise ElementNotFoundError(f'verify_element operations need a selector ({request.action_name})')
        return await self._element_text(selector or target)

    async def _element_text(self, selector: str) -> str:
        validation = await validate_selector(self.driver, selector)
        if validation.count == 0:
            raise ElementNotFoundError(f'Element not found: {selector}', selector=selector)
        if validation.count > 1:
            raise AmbiguousSelectorError(selector, validation.count)
        return await self.driver.text_content(selector) or ''

    async def _verify_visibility(self, request: VerificationRequest, args: dict[str, Any], step_id: str) -> ExecutionResult:
        description = _text_arg(args, 'description') or ''
        pair = parse_element_pair(description)
        if pair:
            return await self._verify_pair(pair, step_id)

        selector = _text_arg(args, 'selector') or request.default_selector()
        if not selector:
            return await self._result(step_id, 'failure', error='visible operation requires a selector')
        if is_visual_concept_selector(selector):
            return await self._verify_visual_concept(request, description or concept_from_selector(selector) or request.target, selector, step_id)

        validation = await validate_selector(self.driver, selector)
        if validation.count == 0:
            wanted = description or request.target.replace('_', ' ')
            location = await self._try_locate(wanted, 'verify')
            if location is not None and location.is_dom:
                logger.info(f'Verification selector {selector!r} matched nothing; discovery found {location.selector!r}')
                selector = location.selector
                validation = await validate_selector(self.driver, selector)
            elif is_semantic_concept(wanted) and self.vision is not None:
                return await self._verify_visual_concept(request, wanted, selector, step_id)

        if validation.count == 0:
            if request.negated:
                return await self._result(step_id, 'success', selector=selector)
            return await self._result(step_id, 'failure', selector=selector, error=f'Element not found: {selector}')
        if validation.count > 1 and selector != ALL_HEADINGS:
            return await self._result(step_id, 'failure', selector=selector, error=str(AmbiguousSelectorError(selector, validation.count)))

        if validation.visible != request.negated:
            return await self._result(step_id, 'success', selector=selector)
        return await self._result(
            step_id,
            'failure',
            selector=selector,
            error=f'Element "{selector}" is {"" if request.negated else "not "}visible',
        )

    async def _verify_pair(self, names: tuple[str, str], step_id: str) -> ExecutionResult:
        found, missing = [], []
        for name in names:
            location = await self._try_locate(name, 'verify')
            present = False
            if location is not None and location.is_dom:
                validation = await validate_selector(self.driver, location.selector)
                present = validation.exists and validation.visible
            (found if present else missing).append(name)
        if missing:
            return await self._result(
                step_id,
                'failure',
                error=f'Elements not found in DOM: {", ".join(missing)}. Found: {", ".join(found) or "none"}',
            )
        logger.info(f'Both elements visible: {names[0]!r} and {names[1]!r}')
        return await self._result(step_id, 'success')

    async def _verify_visual_concept(self, request: VerificationRequest, concept: str, selector: str, step_id: str) -> ExecutionResult:
        if self.vision is None:
            return await self._result(step_id, 'failure', selector=selector, error=f'No vision model available to verify "{concept}"')
        try:
            verdict = await self.vision.assess_visibility(self.driver, concept)
        except Exception as e:
            logger.error(f'Vision verification of "{concept}" failed: {type(e).__name__}: {e}')
            return await self._result(step_id, 'failure', selector=selector, error=f'Vision verification failed: {e}')
        logger.info(f'Vision verdict for "{concept}": visible={verdict.visible} confidence={verdict.confidence:.2f} ({verdict.reason})')
        if verdict.visible != request.negated:
            return await self._result(step_id, 'success', selector=selector)
        state = '' if request.negated else 'not '
        return await self._result(
            step_id,
            'failure',
            selector=selector,
            error=f'Visual concept "{concept}" is {state}visible. {verdict.reason}'.strip(),
        )

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from stepwright.discovery.multi_strategy import MultiStrategyDiscovery
from stepwright.discovery.patterns import build_patterns
from stepwright.discovery.thresholds import ConfidenceThresholdPolicy
from stepwright.discovery.views import ElementDiscoveryResult, ElementInfo, LocateResult
from stepwright.dom.scoring import ScoredCandidate, candidate_selectors, rank_candidates
from stepwright.dom.terms import extract_key_phrases
from stepwright.dom.validation import validate_selector
from stepwright.dom.views import ElementDescriptor, css_escape_identifier, css_string

if TYPE_CHECKING:
    from stepwright.browser.driver import BrowserDriver

logger = logging.getLogger(__name__)

HINT_CONFIDENCE = 1.0
ALTERNATIVE_INPUT_CONFIDENCE = 0.8
NEARBY_INPUT_CONFIDENCE = 0.7
VISION_FALLBACK_CONFIDENCE = 0.8
SINGLE_INPUT_CONFIDENCE = 0.5
SEARCH_DEPTH = 5
NEARBY_INPUT_LIMIT = 3

INPUT_SELECTORS = candidate_selectors('type')


class ElementLocator:
    """Turns a free-text description into a locator, most trustworthy layer first.

    1. the caller's hint selector, when it resolves to one visible element
    2. registered discovery strategies, gated by the per-action threshold
    3. scored search over every candidate element for the action
    4. attribute/text pattern fallback
    5. perceptual resolution (method='vision'), left to the executor
    """

    def __init__(
        self,
        discovery: Optional[MultiStrategyDiscovery] = None,
        thresholds: Optional[ConfidenceThresholdPolicy] = None,
        type_settle_seconds: float = 0.5,
    ):
        self.discovery = discovery or MultiStrategyDiscovery()
        self.thresholds = thresholds or ConfidenceThresholdPolicy()
        self.type_settle_seconds = type_settle_seconds

    async def locate(
        self,
        driver: 'BrowserDriver',
        description: str,
        action_kind: str,
        hint_selector: Optional[str] = None,
    ) -> LocateResult:
        if hint_selector:
            result = await self._validate_hint(driver, hint_selector, action_kind)
            if result:
                return result

        threshold = await self.thresholds.get_threshold(action_kind)

        result = await self._from_strategies(driver, description, action_kind, threshold)
        if result:
            return result

        result = await self.search_structure(driver, description, action_kind)
        if result:
            return result

        result = await self.try_patterns(driver, description, action_kind)
        if result:
            return result

        logger.info(f'No structural match for "{description}" ({action_kind}); deferring to vision')
        return LocateResult(method='vision', confidence=VISION_FALLBACK_CONFIDENCE, strategy='VISION_FALLBACK')

    async def is_text_input(self, driver: 'BrowserDriver', selector: str) -> bool:
        try:
            element = await driver.describe(selector)
        except Exception as e:
            logger.debug(f'Could not inspect {selector!r}: {e}')
            return False
        return element is not None and element.is_text_input

    async def _validate_hint(self, driver: 'BrowserDriver', selector: str, action_kind: str) -> Optional[LocateResult]:
        validation = await validate_selector(driver, selector)
        if not validation.usable:
            logger.debug(f'Hint {selector!r} matched {validation.count} element(s), visible={validation.visible}; ignoring')
            return None
        if action_kind == 'type' and not await self.is_text_input(driver, selector):
            logger.debug(f'Hint {selector!r} is not a text input; ignoring')
            return None
        return LocateResult(method='dom', selector=selector, confidence=HINT_CONFIDENCE, strategy='HINT')

    async def _from_strategies(
        self, driver: 'BrowserDriver', description: str, action_kind: str, threshold: float
    ) -> Optional[LocateResult]:
        result = await self.discovery.discover(driver, description, action_kind)
        if result is None or result.method != 'dom' or not result.selector:
            return None
        if result.confidence < threshold:
            logger.debug(f'{result.strategy} candidate {result.selector!r} below threshold ({result.confidence:.2f} < {threshold})')
            return None

        validation = await validate_selector(driver, result.selector)
        if action_kind == 'type' and validation.usable and not await self.is_text_input(driver, result.selector):
            return await self.find_input_near(driver, result)
        if not validation.usable:
            logger.debug(f'{result.strategy} candidate {result.selector!r} matched {validation.count} element(s); rejecting')
            return None
        return LocateResult(
            method='dom',
            selector=result.selector,
            confidence=result.confidence,
            element_info=result.element_info,
            strategy=result.strategy,
            alternatives=result.alternatives,
        )

    async def find_input_near(self, driver: 'BrowserDriver', result: ElementDiscoveryResult) -> Optional[LocateResult]:
        """For a type action whose candidate is a label or wrapper: its alternatives, then the nearest inputs."""
        for selector in result.alternatives:
            validation = await validate_selector(driver, selector)
            if validation.usable and await self.is_text_input(driver, selector):
                logger.info(f'Using alternative input {selector!r} instead of {result.selector!r}')
                return LocateResult(method='dom', selector=selector, confidence=ALTERNATIVE_INPUT_CONFIDENCE, strategy=result.strategy)

        try:
            anchor = await driver.describe(result.selector) if result.selector else None
            if anchor is None or anchor.bbox is None:
                return None
            elements = await driver.query_candidates(INPUT_SELECTORS)
        except Exception as e:
            logger.warning(f'Nearby input search around {result.selector!r} failed: {type(e).__name__}: {e}')
            return None
        inputs = [el for el in elements if el.visible and el.is_text_input and el.bbox is not None]
        inputs.sort(key=lambda el: anchor.bbox.distance_to(el.bbox))
        for el in inputs[:NEARBY_INPUT_LIMIT]:
            selector = el.build_selector()
            if (await validate_selector(driver, selector)).usable:
                logger.info(f'Using input {selector!r} nearest to {result.selector!r}')
                return LocateResult(
                    method='dom',
                    selector=selector,
                    confidence=NEARBY_INPUT_CONFIDENCE,
                    element_info=ElementInfo.from_descriptor(el),
                    strategy=result.strategy,
                )
        return None

    async def _disambiguate(self, driver: 'BrowserDriver', candidate: ScoredCandidate, phrases: list[str]) -> Optional[str]:
        el = candidate.element
        options = []
        if el.href:
            options.append(f'{el.tag}[href="{css_string(el.href)}"]')
        texts = [p for p in phrases if p.lower() in el.text.lower()]
        if el.text and len(el.text) <= 60:
            texts.append(el.text)
        for text in texts:
            quoted = css_string(text)
            options.append(f'{candidate.selector}:has-text("{quoted}")')
            options.append(f'{candidate.selector} >> text="{quoted}"')
        for selector in options:
            if (await validate_selector(driver, selector)).usable:
                return selector
        return None

    async def search_structure(self, driver: 'BrowserDriver', description: str, action_kind: str) -> Optional[LocateResult]:
        """Score every candidate element for the action and accept the best one that resolves uniquely."""
        if action_kind == 'type' and self.type_settle_seconds:
            # Inputs inside freshly opened dialogs render a beat after the click that opened them
            await driver.wait_for_timeout(self.type_settle_seconds)

        try:
            elements = await driver.query_candidates(candidate_selectors(action_kind))
        except Exception as e:
            logger.warning(f'Candidate query for "{description}" failed: {type(e).__name__}: {e}')
            return None
        ranked = rank_candidates(elements, description, action_kind, limit=SEARCH_DEPTH)
        if not ranked:
            return None

        phrases = extract_key_phrases(description)
        for rank, candidate in enumerate(ranked, start=1):
            validation = await validate_selector(driver, candidate.selector)
            selector: Optional[str] = None
            if validation.usable:
                selector = candidate.selector
            elif validation.count > 1:
                selector = await self._disambiguate(driver, candidate, phrases)
            if selector is None:
                continue
            logger.info(f'Scored search matched "{description}" -> {selector!r} (score {candidate.score}, rank {rank})')
            return LocateResult(
                method='dom',
                selector=selector,
                confidence=candidate.confidence,
                element_info=ElementInfo.from_descriptor(candidate.element),
                strategy='STRUCTURE_SEARCH',
            )
        return None

    async def try_patterns(self, driver: 'BrowserDriver', description: str, action_kind: str) -> Optional[LocateResult]:
        for pattern in build_patterns(description, action_kind):
            if (await validate_selector(driver, pattern.selector)).usable:
                logger.info(f'Pattern {pattern.selector!r} matched "{description}" (confidence {pattern.confidence})')
                return LocateResult(method='dom', selector=pattern.selector, confidence=pattern.confidence, strategy='PATTERN')
        return None

    async def locate_input_by_heuristics(self, driver: 'BrowserDriver', description: str) -> Optional[LocateResult]:
        """Last resort for type actions: best-scored input regardless of threshold, else the only visible input."""
        try:
            elements = [el for el in await driver.query_candidates(INPUT_SELECTORS) if el.is_text_input]
        except Exception as e:
            logger.warning(f'Input query for "{description}" failed: {type(e).__name__}: {e}')
            return None
        for candidate in rank_candidates(elements, description, 'type', limit=SEARCH_DEPTH):
            if (await validate_selector(driver, candidate.selector)).usable:
                return LocateResult(
                    method='dom',
                    selector=candidate.selector,
                    confidence=candidate.confidence,
                    element_info=ElementInfo.from_descriptor(candidate.element),
                    strategy='INPUT_HEURISTIC',
                )
        visible = [el for el in elements if el.visible]
        if len(visible) == 1:
            selector = visible[0].build_selector()
            if (await validate_selector(driver, selector)).usable:
                return LocateResult(method='dom', selector=selector, confidence=SINGLE_INPUT_CONFIDENCE, strategy='INPUT_HEURISTIC')
        return None

    async def extract_selector_from_coordinates(self, driver: 'BrowserDriver', x: float, y: float) -> Optional[str]:
        """Unique selector for the element under (x, y): test id, id, first class, then tag."""
        try:
            el: Optional[ElementDescriptor] = await driver.element_at_point(x, y)
        except Exception as e:
            logger.warning(f'Element lookup at ({x}, {y}) failed: {type(e).__name__}: {e}')
            return None
        if el is None:
            return None
        options = []
        if el.test_id:
            options.append(f'[data-testid="{css_string(el.test_id)}"]')
        if el.id:
            options.append(f'#{css_escape_identifier(el.id)}')
        if el.classes:
            options.append(f'{el.tag}.{css_escape_identifier(el.classes[0])}')
        options.append(el.tag)
        for selector in options:
            if (await validate_selector(driver, selector)).unique:
                return selector
        logger.debug(f'No unique selector for element at ({x}, {y})')
        return None

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from stepwright.discovery.strategies.base import DiscoveryStrategy
from stepwright.discovery.strategies.payloads import ElementPayload
from stepwright.discovery.views import ElementDiscoveryResult, clamp_confidence
from stepwright.dom.cache import StructureCache
from stepwright.dom.extractor import extract_structure
from stepwright.dom.validation import best_selector, validate_selector
from stepwright.exceptions import ValidationError
from stepwright.llm.base import BaseChatModel
from stepwright.llm.messages import SystemMessage, UserMessage
from stepwright.llm.parsing import parse_payload
from stepwright.prompts import render_prompt
from stepwright.resilience import CircuitBreaker, RetryOptions, RetryStrategy, call_protected

if TYPE_CHECKING:
    from stepwright.browser.driver import BrowserDriver

logger = logging.getLogger(__name__)

BREAKER_KEY = 'llm-dom-discovery'
DEFAULT_LLM_CONFIDENCE = 0.7


class LLMDomStrategy(DiscoveryStrategy):
    """Ask the completion service to pick a selector from the page structure summary."""

    name = 'LLM_DOM_ANALYSIS'

    def __init__(
        self,
        llm: BaseChatModel,
        cache: StructureCache,
        breaker: CircuitBreaker,
        retry: Optional[RetryStrategy] = None,
        retry_options: Optional[RetryOptions] = None,
        max_elements: int = 200,
        max_structure_chars: int = 15000,
    ):
        self.llm = llm
        self.cache = cache
        self.breaker = breaker
        self.retry = retry or RetryStrategy()
        self.retry_options = retry_options or RetryOptions(max_retries=3, initial_delay=1.0, max_delay=10.0)
        self.max_elements = max_elements
        self.max_structure_chars = max_structure_chars

    async def _structure(self, driver: 'BrowserDriver', action_kind: str) -> str:
        include_containers = action_kind == 'verify'
        key = f'{driver.url}#containers' if include_containers else driver.url
        return await self.cache.get_or_extract(
            key, lambda: extract_structure(driver, max_elements=self.max_elements, include_containers=include_containers)
        )

    async def discover(self, driver: 'BrowserDriver', description: str, action_kind: str) -> Optional[ElementDiscoveryResult]:
        structure = await self._structure(driver, action_kind)
        messages = [
            SystemMessage(content=render_prompt('element_discovery_system.md')),
            UserMessage(
                content=render_prompt(
                    'element_discovery_user.md',
                    action_kind=action_kind,
                    description=description,
                    url=driver.url,
                    structure=structure[: self.max_structure_chars],
                )
            ),
        ]

        text = await call_protected(
            self.breaker,
            self.retry,
            BREAKER_KEY,
            lambda: self.llm.complete(messages, temperature=0.0, json_mode=True),
            self.retry_options,
        )

        try:
            payload = parse_payload(text, ElementPayload)
        except ValidationError as e:
            logger.warning(f'Discarding element discovery response for "{description}": {e}')
            return None

        if payload.error or not payload.selector:
            logger.info(f'LLM found no element for "{description}": {payload.error}')
            return None

        validation = await validate_selector(driver, payload.selector)
        if not (validation.exists and validation.visible):
            logger.info(f'Proposed selector {payload.selector!r} for "{description}" matched {validation.count} visible element(s); trying alternatives')
            selector, confidence = await best_selector(driver, payload.alternatives)
            if selector is None:
                return None
            return ElementDiscoveryResult(
                selector=selector,
                confidence=confidence,
                alternatives=tuple(s for s in payload.alternatives if s != selector),
                element_info=payload.info(),
                strategy=self.name,
            )

        confidence = payload.confidence if payload.confidence is not None else DEFAULT_LLM_CONFIDENCE
        if validation.unique:
            confidence += 0.1
        if validation.visible:
            confidence += 0.1
        logger.debug(f'LLM selector {payload.selector!r} for "{description}" (confidence {confidence:.2f})')
        return ElementDiscoveryResult(
            selector=payload.selector,
            confidence=clamp_confidence(confidence),
            alternatives=tuple(payload.alternatives),
            element_info=payload.info(),
            strategy=self.name,
        )

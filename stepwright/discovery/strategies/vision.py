from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from stepwright.config import CONFIG
from stepwright.discovery.strategies.base import DiscoveryStrategy, is_semantic_concept
from stepwright.discovery.strategies.payloads import ElementPayload, VisibilityPayload
from stepwright.discovery.views import ElementDiscoveryResult, ElementInfo
from stepwright.dom.cache import StructureCache
from stepwright.dom.extractor import extract_structure
from stepwright.dom.validation import validate_selector
from stepwright.exceptions import ValidationError
from stepwright.llm.base import BaseChatModel
from stepwright.llm.messages import ContentPartImageParam, ContentPartTextParam, UserMessage
from stepwright.llm.parsing import parse_payload
from stepwright.prompts import render_prompt
from stepwright.resilience import CircuitBreaker, RetryOptions, RetryStrategy, call_protected

if TYPE_CHECKING:
    from stepwright.browser.driver import BrowserDriver

logger = logging.getLogger(__name__)

BREAKER_KEY = 'vision-discovery'
UNRESOLVED_CONFIDENCE = 0.6


def visual_concept_selector(description: str) -> str:
    return f'[data-visual-concept="{description.lower()}"]'


class VisionStrategy(DiscoveryStrategy):
    """Screenshot-grounded discovery for page regions such as forms, dialogs or menus.

    Only answers for semantic concepts. The screenshot tells the model which
    region is meant and the structure summary supplies real selectors; when no
    selector can be grounded the result defers to perceptual resolution.
    """

    name = 'VISION_AI'

    def __init__(
        self,
        llm: BaseChatModel,
        cache: StructureCache,
        breaker: CircuitBreaker,
        retry: Optional[RetryStrategy] = None,
        retry_options: Optional[RetryOptions] = None,
        model: Optional[str] = None,
        max_structure_chars: int = 15000,
    ):
        self.llm = llm
        self.cache = cache
        self.breaker = breaker
        self.retry = retry or RetryStrategy()
        self.retry_options = retry_options or RetryOptions(max_retries=2, initial_delay=1.0, max_delay=10.0)
        self.model = model
        self.max_structure_chars = max_structure_chars

    @property
    def vision_model(self) -> str:
        return self.model or CONFIG.OPENAI_VISION_MODEL

    async def _ask(self, messages: list) -> str:
        return await call_protected(
            self.breaker,
            self.retry,
            BREAKER_KEY,
            lambda: self.llm.complete(messages, model=self.vision_model, temperature=0.0, json_mode=True),
            self.retry_options,
        )

    async def discover(self, driver: 'BrowserDriver', description: str, action_kind: str) -> Optional[ElementDiscoveryResult]:
        if not is_semantic_concept(description):
            return None

        screenshot = await driver.screenshot(full_page=False)
        key = f'{driver.url}#containers'
        structure = await self.cache.get_or_extract(key, lambda: extract_structure(driver, include_containers=True))
        prompt = render_prompt(
            'vision_concept.md',
            description=description,
            action_kind=action_kind,
            structure=structure[: self.max_structure_chars],
        )
        text = await self._ask([UserMessage(content=[ContentPartTextParam(text=prompt), ContentPartImageParam.from_jpeg(screenshot)])])

        try:
            payload = parse_payload(text, ElementPayload)
        except ValidationError as e:
            logger.warning(f'Discarding vision response for "{description}": {e}')
            return None

        metadata = {'visual_concept': True, 'screenshot_used': True}
        if payload.selector and not payload.error:
            validation = await validate_selector(driver, payload.selector)
            if validation.exists and validation.visible:
                return ElementDiscoveryResult(
                    selector=payload.selector,
                    confidence=payload.confidence if payload.confidence is not None else 0.75,
                    alternatives=tuple(payload.alternatives),
                    element_info=payload.info(),
                    strategy=self.name,
                    metadata={**metadata, 'hybrid_discovered': True},
                )

        logger.info(f'No grounded selector for visual concept "{description}"; deferring to perceptual resolution')
        return ElementDiscoveryResult(
            method='vision',
            confidence=UNRESOLVED_CONFIDENCE,
            element_info=ElementInfo(tag='semantic', attributes={'data-visual-concept': description.lower()}),
            strategy=self.name,
            metadata={**metadata, 'selector_hint': visual_concept_selector(description)},
        )

    async def assess_visibility(self, driver: 'BrowserDriver', description: str) -> VisibilityPayload:
        """Ask the vision model whether ``description`` is visible on a full-page capture."""
        screenshot = await driver.screenshot(full_page=True)
        prompt = render_prompt('vision_visibility.md', description=description)
        text = await self._ask([UserMessage(content=[ContentPartTextParam(text=prompt), ContentPartImageParam.from_jpeg(screenshot)])])
        return parse_payload(text, VisibilityPayload)

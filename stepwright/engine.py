"""Wiring for the shared pieces of one engine.

The circuit breaker and structure cache are process-wide state: every
execution built from the same engine shares them, so an LLM outage observed
by one test run opens the circuit for all of them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from stepwright.concurrency.io import get_io_semaphore_stats
from stepwright.discovery.locator import ElementLocator
from stepwright.discovery.multi_strategy import MultiStrategyDiscovery
from stepwright.discovery.strategies.llm_dom import LLMDomStrategy
from stepwright.discovery.strategies.vision import VisionStrategy
from stepwright.discovery.thresholds import ConfidenceThresholdPolicy, ConfigurationStore
from stepwright.dom.cache import StructureCache
from stepwright.executor.unified import UnifiedActionExecutor
from stepwright.llm.base import BaseChatModel
from stepwright.planner.adaptive import AdaptivePlanner
from stepwright.planner.llm_planner import LLMPlanner
from stepwright.resilience import CircuitBreaker, RetryOptions, RetryStrategy
from stepwright.settings import EngineSettings

if TYPE_CHECKING:
    from stepwright.browser.driver import BrowserDriver

logger = logging.getLogger(__name__)


@dataclass
class Engine:
    settings: EngineSettings
    breaker: CircuitBreaker
    cache: StructureCache
    retry: RetryStrategy
    thresholds: ConfidenceThresholdPolicy
    discovery: MultiStrategyDiscovery
    locator: ElementLocator
    vision: Optional[VisionStrategy]
    planner: AdaptivePlanner

    def executor_for(self, driver: 'BrowserDriver') -> UnifiedActionExecutor:
        """One executor per driver; recursion state is never shared between executions."""
        return UnifiedActionExecutor(
            driver,
            self.locator,
            thresholds=self.thresholds,
            vision=self.vision,
            settings=self.settings.executor,
        )

    def health(self) -> dict:
        return {'circuits': self.breaker.snapshot(), 'cache': self.cache.get_stats(), 'llm_io': get_io_semaphore_stats()}


def build_engine(
    llm: Optional[BaseChatModel] = None,
    settings: Optional[EngineSettings] = None,
    store: Optional[ConfigurationStore] = None,
    retry: Optional[RetryStrategy] = None,
) -> Engine:
    """Build an engine. Without ``llm`` a ChatOpenAI client is created from CONFIG."""
    settings = settings or EngineSettings()
    if llm is None:
        from stepwright.llm.openai.chat import ChatOpenAI

        llm = ChatOpenAI()

    breaker = CircuitBreaker.from_settings(settings.circuit_breaker)
    cache = StructureCache.from_settings(settings.cache)
    retry = retry or RetryStrategy()
    llm_options = RetryOptions.from_settings(settings.llm_retry)
    planner_settings = settings.planner

    vision = VisionStrategy(
        llm,
        cache,
        breaker,
        retry=retry,
        retry_options=RetryOptions.from_settings(settings.llm_retry, max_retries=min(2, settings.llm_retry.max_retries)),
        max_structure_chars=planner_settings.max_structure_chars,
    )
    discovery = MultiStrategyDiscovery(
        [
            LLMDomStrategy(
                llm,
                cache,
                breaker,
                retry=retry,
                retry_options=llm_options,
                max_elements=planner_settings.structure_max_elements,
                max_structure_chars=planner_settings.max_structure_chars,
            ),
            vision,
        ]
    )
    thresholds = ConfidenceThresholdPolicy(store)
    locator = ElementLocator(discovery, thresholds)
    base_planner = LLMPlanner(llm, breaker, retry=retry, retry_options=llm_options, model=planner_settings.model)
    planner = AdaptivePlanner(base_planner, llm, locator, cache, breaker, retry=retry, settings=planner_settings)

    logger.debug(f'Engine ready: {len(discovery.strategies)} discovery strategies, cache max {settings.cache.max_size} entries')
    return Engine(
        settings=settings,
        breaker=breaker,
        cache=cache,
        retry=retry,
        thresholds=thresholds,
        discovery=discovery,
        locator=locator,
        vision=vision,
        planner=planner,
    )

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Optional, Sequence

from stepwright.discovery.strategies.base import DiscoveryStrategy, is_semantic_concept
from stepwright.discovery.strategies.vision import VisionStrategy
from stepwright.discovery.views import ElementDiscoveryResult

if TYPE_CHECKING:
    from stepwright.browser.driver import BrowserDriver

logger = logging.getLogger(__name__)


class MultiStrategyDiscovery:
    """Runs every registered strategy and keeps the most confident answer.

    Semantic concepts ("the login form") go to the vision strategies first;
    if one answers, the others are not consulted.
    """

    def __init__(self, strategies: Sequence[DiscoveryStrategy] = ()):
        self.strategies = list(strategies)

    async def _run(self, strategy: DiscoveryStrategy, driver: 'BrowserDriver', description: str, action_kind: str) -> Optional[ElementDiscoveryResult]:
        try:
            return await strategy.discover(driver, description, action_kind)
        except Exception as e:
            logger.warning(f'Strategy {strategy.name} failed for "{description}": {type(e).__name__}: {e}')
            return None

    async def _run_all(self, strategies: Sequence[DiscoveryStrategy], driver: 'BrowserDriver', description: str, action_kind: str) -> list[ElementDiscoveryResult]:
        results = await asyncio.gather(*(self._run(s, driver, description, action_kind) for s in strategies))
        return [r for r in results if r is not None]

    async def discover_all(self, driver: 'BrowserDriver', description: str, action_kind: str) -> list[ElementDiscoveryResult]:
        """Every successful result, most confident first."""
        if not self.strategies:
            return []

        if is_semantic_concept(description):
            visual = [s for s in self.strategies if isinstance(s, VisionStrategy)]
            if visual:
                results = await self._run_all(visual, driver, description, action_kind)
                if results:
                    return sorted(results, key=lambda r: r.confidence, reverse=True)

        results = await self._run_all(self.strategies, driver, description, action_kind)
        return sorted(results, key=lambda r: r.confidence, reverse=True)

    async def discover(self, driver: 'BrowserDriver', description: str, action_kind: str) -> Optional[ElementDiscoveryResult]:
        results = await self.discover_all(driver, description, action_kind)
        if not results:
            logger.debug(f'No strategy produced a candidate for "{description}"')
            return None

        best = results[0]
        merged: list[str] = []
        for result in results:
            for selector in ((result.selector,) if result.selector else ()) + result.alternatives:
                if selector != best.selector and selector not in merged:
                    merged.append(selector)
        logger.debug(f'Best candidate for "{description}" from {best.strategy} (confidence {best.confidence:.2f})')
        return best.model_copy(update={'alternatives': tuple(merged)})

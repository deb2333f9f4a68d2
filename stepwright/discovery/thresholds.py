from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLDS: dict[str, float] = {
    'click': 0.5,
    'type': 0.7,
    'hover': 0.7,
    'verify': 0.7,
    'default': 0.6,
}

KEY_PREFIX = 'confidence.threshold.'


class ConfigurationStore(Protocol):
    async def get(self, key: str) -> Optional[Any]: ...


class InMemoryConfigurationStore:
    def __init__(self, values: Optional[dict[str, Any]] = None):
        self.values: dict[str, Any] = dict(values or {})

    async def get(self, key: str) -> Optional[Any]:
        return self.values.get(key)

    async def set(self, key: str, value: Any) -> None:
        self.values[key] = value


class ConfidenceThresholdPolicy:
    """Per-action acceptance threshold, overridable through a configuration store.

    A missing store, a store error, or a value that is not a number in [0, 1]
    all fall back to the documented default for that action kind.
    """

    def __init__(self, store: Optional[ConfigurationStore] = None, defaults: Optional[dict[str, float]] = None):
        self.store = store
        self.defaults = {**DEFAULT_THRESHOLDS, **(defaults or {})}

    def default_for(self, action_kind: str) -> float:
        return self.defaults.get(action_kind, self.defaults['default'])

    async def get_threshold(self, action_kind: str) -> float:
        fallback = self.default_for(action_kind)
        if self.store is None:
            return fallback
        try:
            raw = await self.store.get(f'{KEY_PREFIX}{action_kind}')
        except Exception as e:
            logger.warning(f'Threshold lookup for {action_kind} failed, using default {fallback}: {e}')
            return fallback
        if raw is None:
            return fallback
        try:
            value = float(raw)
        except (TypeError, ValueError):
            logger.warning(f'Ignoring non-numeric threshold for {action_kind}: {raw!r}')
            return fallback
        if not 0.0 <= value <= 1.0:
            logger.warning(f'Ignoring out-of-range threshold for {action_kind}: {value}')
            return fallback
        return value

    async def get_all_thresholds(self) -> dict[str, float]:
        return {kind: await self.get_threshold(kind) for kind in self.defaults}

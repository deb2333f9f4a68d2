from stepwright.discovery.locator import ElementLocator
from stepwright.discovery.multi_strategy import MultiStrategyDiscovery
from stepwright.discovery.patterns import SelectorPattern, build_patterns
from stepwright.discovery.thresholds import (
    DEFAULT_THRESHOLDS,
    ConfidenceThresholdPolicy,
    ConfigurationStore,
    InMemoryConfigurationStore,
)
from stepwright.discovery.views import ElementDiscoveryResult, ElementInfo, LocateResult

__all__ = [
    'DEFAULT_THRESHOLDS',
    'ConfidenceThresholdPolicy',
    'ConfigurationStore',
    'ElementDiscoveryResult',
    'ElementInfo',
    'ElementLocator',
    'InMemoryConfigurationStore',
    'LocateResult',
    'MultiStrategyDiscovery',
    'SelectorPattern',
    'build_patterns',
]

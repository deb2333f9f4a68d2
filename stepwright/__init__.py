import logging
from typing import TYPE_CHECKING

from stepwright.config import CONFIG
from stepwright.logging_config import setup_logging

# Embedding applications that configure logging themselves set STEPWRIGHT_SETUP_LOGGING=false
if CONFIG.STEPWRIGHT_SETUP_LOGGING:
	logger = setup_logging()
else:
	logger = logging.getLogger('stepwright')

if TYPE_CHECKING:
	from stepwright.browser.playwright_driver import PlaywrightDriver
	from stepwright.discovery import ConfidenceThresholdPolicy, ElementLocator, InMemoryConfigurationStore
	from stepwright.dom.cache import StructureCache
	from stepwright.engine import Engine, build_engine
	from stepwright.executor import ExecutionResult, UnifiedActionExecutor
	from stepwright.llm.openai.chat import ChatOpenAI
	from stepwright.planner import AdaptivePlanner, LLMPlanner, Plan, Step, TestScenario
	from stepwright.resilience import CircuitBreaker, RetryOptions, RetryStrategy
	from stepwright.settings import EngineSettings

# Resolved on first access so importing the package does not pull in playwright or openai
_LAZY_EXPORTS = {
	'AdaptivePlanner': ('stepwright.planner', 'AdaptivePlanner'),
	'ChatOpenAI': ('stepwright.llm.openai.chat', 'ChatOpenAI'),
	'CircuitBreaker': ('stepwright.resilience', 'CircuitBreaker'),
	'ConfidenceThresholdPolicy': ('stepwright.discovery', 'ConfidenceThresholdPolicy'),
	'ElementLocator': ('stepwright.discovery', 'ElementLocator'),
	'Engine': ('stepwright.engine', 'Engine'),
	'EngineSettings': ('stepwright.settings', 'EngineSettings'),
	'ExecutionResult': ('stepwright.executor', 'ExecutionResult'),
	'InMemoryConfigurationStore': ('stepwright.discovery', 'InMemoryConfigurationStore'),
	'LLMPlanner': ('stepwright.planner', 'LLMPlanner'),
	'Plan': ('stepwright.planner', 'Plan'),
	'PlaywrightDriver': ('stepwright.browser.playwright_driver', 'PlaywrightDriver'),
	'RetryOptions': ('stepwright.resilience', 'RetryOptions'),
	'RetryStrategy': ('stepwright.resilience', 'RetryStrategy'),
	'Step': ('stepwright.planner', 'Step'),
	'StructureCache': ('stepwright.dom.cache', 'StructureCache'),
	'TestScenario': ('stepwright.planner', 'TestScenario'),
	'UnifiedActionExecutor': ('stepwright.executor', 'UnifiedActionExecutor'),
	'build_engine': ('stepwright.engine', 'build_engine'),
}


def __getattr__(name: str):
	entry = _LAZY_EXPORTS.get(name)
	if not entry:
		raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
	module_path, attr_name = entry
	from importlib import import_module

	attr = getattr(import_module(module_path), attr_name)
	globals()[name] = attr
	return attr


__all__ = ['CONFIG', 'setup_logging', *_LAZY_EXPORTS]

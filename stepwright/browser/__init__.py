from typing import TYPE_CHECKING

from stepwright.browser.driver import BrowserDriver

if TYPE_CHECKING:
	from stepwright.browser.playwright_driver import PlaywrightDriver

# PlaywrightDriver pulls in playwright; only import it when asked for
_LAZY_IMPORTS = {
	'PlaywrightDriver': ('stepwright.browser.playwright_driver', 'PlaywrightDriver'),
}


def __getattr__(name: str):
	if name in _LAZY_IMPORTS:
		module_path, attr_name = _LAZY_IMPORTS[name]
		from importlib import import_module

		attr = getattr(import_module(module_path), attr_name)
		globals()[name] = attr
		return attr
	raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = ['BrowserDriver', 'PlaywrightDriver']

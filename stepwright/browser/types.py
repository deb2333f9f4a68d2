# playwright names used by the driver layer

from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

__all__ = [
	'Page',
	'PlaywrightTimeoutError',
	'async_playwright',
]

import logging
from contextlib import asynccontextmanager
from functools import wraps
from importlib import resources
from typing import AsyncIterator, Optional, Sequence

from stepwright.browser.types import Page, PlaywrightTimeoutError, async_playwright
from stepwright.config import CONFIG
from stepwright.dom.views import ElementDescriptor
from stepwright.exceptions import TransientError

logger = logging.getLogger(__name__)


def _read_js(name: str) -> str:
	return resources.files('stepwright.browser').joinpath('js').joinpath(name).read_text(encoding='utf-8')


def _ms(seconds: Optional[float]) -> Optional[float]:
	return None if seconds is None else seconds * 1000


def _timeouts_are_transient(fn):
	"""Re-raise Playwright timeouts as TransientError so the retry kernel recognizes them."""

	@wraps(fn)
	async def wrapper(*args, **kwargs):
		try:
			return await fn(*args, **kwargs)
		except PlaywrightTimeoutError as e:
			raise TransientError(str(e)) from e

	return wrapper


class PlaywrightDriver:
	"""BrowserDriver over one Playwright page."""

	def __init__(self, page: 'Page', logger: logging.Logger | None = None):
		self.page = page
		self.logger = logger or logging.getLogger(__name__)
		describe = _read_js('describe.js')
		self._query_candidates_js = f'(args) => {{\n{describe}\n{_read_js("query_candidates.js")}\n}}'
		self._element_at_point_js = f'(args) => {{\n{describe}\n{_read_js("element_at_point.js")}\n}}'
		self._describe_js = f'(el) => {{\n{describe}\nreturn describeElement(el);\n}}'

	@classmethod
	@asynccontextmanager
	async def launch(cls, headless: bool | None = None, viewport: dict | None = None) -> AsyncIterator['PlaywrightDriver']:
		"""Start Chromium with one page; everything is closed on exit."""
		headless = CONFIG.STEPWRIGHT_HEADLESS if headless is None else headless
		async with async_playwright() as playwright:
			browser = await playwright.chromium.launch(headless=headless)
			try:
				context = await browser.new_context(viewport=viewport or {'width': 1280, 'height': 800})
				page = await context.new_page()
				yield cls(page)
			finally:
				await browser.close()

	@property
	def url(self) -> str:
		return self.page.url

	async def title(self) -> str:
		return await self.page.title()

	@_timeouts_are_transient
	async def navigate(self, url: str, timeout: float) -> None:
		# 'load' rather than 'networkidle': pages with background polling never go idle
		await self.page.goto(url, wait_until='load', timeout=_ms(timeout))

	async def count(self, selector: str) -> int:
		return await self.page.locator(selector).count()

	async def is_visible(self, selector: str) -> bool:
		try:
			return await self.page.locator(selector).first.is_visible()
		except Exception:
			return False

	@_timeouts_are_transient
	async def click(self, selector: str, timeout: Optional[float] = None) -> None:
		await self.page.locator(selector).click(timeout=_ms(timeout))

	@_timeouts_are_transient
	async def fill(self, selector: str, value: str, timeout: Optional[float] = None) -> None:
		await self.page.locator(selector).fill(value, timeout=_ms(timeout))

	async def focus(self, selector: str) -> None:
		await self.page.locator(selector).focus()

	@_timeouts_are_transient
	async def hover(self, selector: str, timeout: Optional[float] = None) -> None:
		await self.page.locator(selector).hover(timeout=_ms(timeout))

	async def text_content(self, selector: str) -> Optional[str]:
		return await self.page.locator(selector).first.text_content()

	async def input_value(self, selector: str) -> str:
		return await self.page.locator(selector).input_value()

	@_timeouts_are_transient
	async def wait_for_selector(self, selector: str, timeout: float) -> None:
		await self.page.wait_for_selector(selector, state='visible', timeout=_ms(timeout))

	async def wait_for_timeout(self, seconds: float) -> None:
		await self.page.wait_for_timeout(seconds * 1000)

	@_timeouts_are_transient
	async def wait_for_load_state(self, state: str = 'load', timeout: Optional[float] = None) -> None:
		await self.page.wait_for_load_state(state, timeout=_ms(timeout))

	async def query_candidates(self, selectors: Sequence[str], limit: int = 500) -> list[ElementDescriptor]:
		raw = await self.page.evaluate(self._query_candidates_js, {'selectors': list(selectors), 'limit': limit})
		return [ElementDescriptor.model_validate(item) for item in raw or []]

	async def describe(self, selector: str) -> Optional[ElementDescriptor]:
		locator = self.page.locator(selector)
		if await locator.count() == 0:
			return None
		raw = await locator.first.evaluate(self._describe_js)
		return ElementDescriptor.model_validate(raw) if raw else None

	async def element_at_point(self, x: float, y: float) -> Optional[ElementDescriptor]:
		raw = await self.page.evaluate(self._element_at_point_js, {'x': x, 'y': y})
		return ElementDescriptor.model_validate(raw) if raw else None

	async def screenshot(self, full_page: bool = True) -> bytes:
		return await self.page.screenshot(full_page=full_page, type='jpeg', quality=80)

	async def content(self) -> str:
		return await self.page.content()

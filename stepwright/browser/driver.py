from typing import Optional, Protocol, Sequence, runtime_checkable

from stepwright.dom.views import ElementDescriptor


@runtime_checkable
class BrowserDriver(Protocol):
	"""Minimal browser surface the engine needs. All timeouts are in seconds.

	Selectors may use Playwright extensions (``>> text=``, ``:has-text()``)
	for the locator operations; ``query_candidates`` only accepts plain CSS.
	"""

	@property
	def url(self) -> str: ...

	async def title(self) -> str: ...

	async def navigate(self, url: str, timeout: float) -> None: ...

	async def count(self, selector: str) -> int: ...

	async def is_visible(self, selector: str) -> bool: ...

	async def click(self, selector: str, timeout: Optional[float] = None) -> None: ...

	async def fill(self, selector: str, value: str, timeout: Optional[float] = None) -> None: ...

	async def focus(self, selector: str) -> None: ...

	async def hover(self, selector: str, timeout: Optional[float] = None) -> None: ...

	async def text_content(self, selector: str) -> Optional[str]: ...

	async def input_value(self, selector: str) -> str: ...

	async def wait_for_selector(self, selector: str, timeout: float) -> None: ...

	async def wait_for_timeout(self, seconds: float) -> None: ...

	async def wait_for_load_state(self, state: str = 'load', timeout: Optional[float] = None) -> None: ...

	async def query_candidates(self, selectors: Sequence[str], limit: int = 500) -> list[ElementDescriptor]: ...

	async def describe(self, selector: str) -> Optional[ElementDescriptor]: ...

	async def element_at_point(self, x: float, y: float) -> Optional[ElementDescriptor]: ...

	async def screenshot(self, full_page: bool = True) -> bytes: ...

	async def content(self) -> str: ...

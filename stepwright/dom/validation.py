import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
	from stepwright.browser.driver import BrowserDriver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectorValidation:
	count: int
	visible: bool

	@property
	def exists(self) -> bool:
		return self.count > 0

	@property
	def unique(self) -> bool:
		return self.count == 1

	@property
	def usable(self) -> bool:
		"""Exactly one match and it is visible."""
		return self.unique and self.visible


INVALID = SelectorValidation(count=0, visible=False)


async def validate_selector(driver: 'BrowserDriver', selector: str) -> SelectorValidation:
	"""Count matches and check the first one is visible. Invalid selectors count as zero matches."""
	try:
		count = await driver.count(selector)
	except Exception as e:
		logger.debug(f'Selector {selector!r} rejected by the page: {e}')
		return INVALID
	if count == 0:
		return INVALID
	try:
		visible = await driver.is_visible(selector)
	except Exception as e:
		logger.debug(f'Visibility check for {selector!r} failed: {e}')
		visible = False
	return SelectorValidation(count=count, visible=visible)


async def best_selector(driver: 'BrowserDriver', selectors: Iterable[str]) -> tuple[Optional[str], float]:
	"""First selector with a visible match; unique matches earn higher confidence."""
	for selector in selectors:
		validation = await validate_selector(driver, selector)
		if validation.exists and validation.visible:
			confidence = 0.7 + (0.2 if validation.unique else 0.0) + 0.1
			return selector, min(1.0, confidence)
	return None, 0.0

import json
import logging
from typing import TYPE_CHECKING

from stepwright.dom.views import ElementDescriptor, StructureEntry

if TYPE_CHECKING:
	from stepwright.browser.driver import BrowserDriver

logger = logging.getLogger(__name__)

BASE_SELECTORS = (
	'button',
	'a',
	'input',
	'select',
	'textarea',
	'[role="button"]',
	'[role="link"]',
	'[role="tab"]',
	'[data-testid]',
	'[data-test-id]',
	'[id]',
	'h1, h2, h3, h4, h5, h6',
)

CONTAINER_SELECTORS = (
	'form',
	'[role="form"]',
	'[role="dialog"]',
	'[role="menu"]',
	'[role="navigation"]',
	'div[class*="form"]',
	'div[class*="modal"]',
	'div[class*="dialog"]',
	'div[class*="menu"]',
	'section',
	'article',
	'nav',
	'header',
	'footer',
	'aside',
	'main',
)


def _dedupe_key(el: ElementDescriptor) -> str:
	return f'{el.tag}-{el.id}-{el.class_name}'


def summarize_elements(elements: list[ElementDescriptor], max_elements: int = 200) -> list[StructureEntry]:
	"""Drop elements that share tag, id and class, then cap the list."""
	seen: set[str] = set()
	entries: list[StructureEntry] = []
	for el in elements:
		key = _dedupe_key(el)
		if key in seen:
			continue
		seen.add(key)
		entries.append(
			StructureEntry(
				tag=el.tag,
				id=el.id or None,
				classes=el.classes,
				text=el.text or None,
				attributes={k: v for k, v in el.attributes().items() if k not in ('id', 'class')},
				selector=el.build_selector(),
			)
		)
		if len(entries) >= max_elements:
			break
	return entries


async def extract_structure(driver: 'BrowserDriver', max_elements: int = 200, include_containers: bool = False) -> str:
	"""JSON summary of the interactive and labeled elements on the current page."""
	selectors = BASE_SELECTORS + CONTAINER_SELECTORS if include_containers else BASE_SELECTORS
	# Over-fetch: duplicates by tag/id/class collapse afterwards
	elements = await driver.query_candidates(selectors, limit=max_elements * 3)
	entries = summarize_elements(elements, max_elements)
	logger.debug(f'Extracted {len(entries)} structure entries from {driver.url}')
	return json.dumps([e.model_dump(exclude_none=True) for e in entries], indent=2)

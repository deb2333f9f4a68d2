from __future__ import annotations

import abc
import re
from typing import TYPE_CHECKING, Optional

from stepwright.discovery.views import ElementDiscoveryResult

if TYPE_CHECKING:
    from stepwright.browser.driver import BrowserDriver

SEMANTIC_CONCEPTS = (
    'login form',
    'signup form',
    'sign in form',
    'sign up form',
    'registration form',
    'contact form',
    'search form',
    'form',
    'modal',
    'dialog',
    'popup',
    'menu',
    'navigation',
    'header',
    'footer',
    'sidebar',
    'card',
    'panel',
    'section',
    'container',
    'group',
    'region',
    'area',
    'zone',
)

_CONCEPT_PATTERN = re.compile(r'\b(?:' + '|'.join(re.escape(c) for c in SEMANTIC_CONCEPTS) + r')s?\b', re.IGNORECASE)


def is_semantic_concept(description: str) -> bool:
    """True for descriptions of page regions ("the login form") rather than single controls."""
    return bool(_CONCEPT_PATTERN.search(description))


class DiscoveryStrategy(abc.ABC):
    """One way of turning a description into a selector.

    ``discover`` returns None when the strategy has no answer and raises
    when it failed; the caller treats both as "no candidate".
    """

    name: str = 'UNKNOWN'

    @abc.abstractmethod
    async def discover(self, driver: 'BrowserDriver', description: str, action_kind: str) -> Optional[ElementDiscoveryResult]:
        ...

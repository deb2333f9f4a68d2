"""Parsing and evaluation of ``verify_<target>_<operation>`` actions.

Operation names accept snake_case and camelCase (``starts_with`` /
``startsWith``) and may be negated with a ``not_`` prefix, e.g.
``verify_title_not_contains``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from stepwright.exceptions import ValidationError

VERIFY_PREFIX = 'verify_'

ALL_HEADINGS = 'h1, h2, h3, h4, h5, h6'

HEADING_SELECTORS: dict[str, str] = {'heading': ALL_HEADINGS}
for _level in range(1, 7):
    HEADING_SELECTORS[f'h{_level}'] = f'h{_level}'
    HEADING_SELECTORS[f'heading{_level}'] = f'h{_level}'

PAGE_TARGETS = ('title', 'url', 'text', 'body')
ELEMENT_TAGS: dict[str, str] = {'link': 'a', 'button': 'button', 'input': 'input', 'label': 'label'}
ELEMENT_TARGETS = ('element', *ELEMENT_TAGS)
SUPPORTED_TARGETS = (*PAGE_TARGETS, *ELEMENT_TARGETS, *HEADING_SELECTORS)

OPERATION_ALIASES: dict[str, str] = {
    'contains': 'contains',
    'includes': 'contains',
    'equals': 'equals',
    'equal': 'equals',
    'starts_with': 'starts_with',
    'ends_with': 'ends_with',
    'matches': 'matches',
    'match': 'matches',
    'regex': 'matches',
    'visible': 'visible',
    'exists': 'exists',
}
SUPPORTED_OPERATIONS = tuple(OPERATION_ALIASES)
_OPERATION_VERBS = {
    'contains': 'contain',
    'equals': 'equal',
    'starts_with': 'start with',
    'ends_with': 'end with',
    'matches': 'match pattern',
}

_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])([A-Z])')
_ELEMENT_PAIR = re.compile(r'''(?:presence of\s+)?['"]([^'"]+)['"]\s+and\s+['"]([^'"]+)['"]''', re.IGNORECASE)
_VISUAL_CONCEPT = re.compile(r'''\[data-visual-concept=["']?([^"'\]]+)["']?\]''')


def _snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub(r'_\1', name).lower()


@dataclass(frozen=True)
class VerificationRequest:
    action_name: str
    target: str
    operation: str
    negated: bool = False

    @property
    def is_visibility(self) -> bool:
        return self.operation == 'visible'

    @property
    def label(self) -> str:
        return f'not {self.operation}' if self.negated else self.operation

    def default_selector(self) -> Optional[str]:
        """Selector implied by the target alone; ``element`` needs an explicit one."""
        if self.target in HEADING_SELECTORS:
            return HEADING_SELECTORS[self.target]
        if self.target == 'element':
            return None
        return ELEMENT_TAGS.get(self.target, self.target)


def parse_verification(action_name: str) -> VerificationRequest:
    if not action_name.startswith(VERIFY_PREFIX):
        raise ValidationError(f"Invalid verification action: {action_name}. Must start with '{VERIFY_PREFIX}'")

    body = _snake(action_name[len(VERIFY_PREFIX):])
    parts = [p for p in body.split('_') if p]
    if len(parts) < 2:
        target = parts[0] if parts else 'element'
        raise ValidationError(
            f'Invalid verification action format: {action_name}. Expected format: verify_<target>_<operation>, '
            f'for example verify_{target}_contains or verify_{target}_visible'
        )

    # Longest alias first so 'starts_with' wins over a target ending in 'starts'
    for alias in sorted(OPERATION_ALIASES, key=len, reverse=True):
        suffix = alias.split('_')
        if parts[-len(suffix):] != suffix or len(parts) == len(suffix):
            continue
        head = parts[: -len(suffix)]
        negated = head[-1] == 'not'
        if negated:
            head = head[:-1]
        if not head:
            raise ValidationError(f'Verification action "{action_name}" names no target')
        return VerificationRequest(
            action_name=action_name,
            target='_'.join(head),
            operation=OPERATION_ALIASES[alias],
            negated=negated,
        )

    raise ValidationError(
        f'Unsupported verification operation in action "{action_name}". '
        f'Supported operations: {", ".join(SUPPORTED_OPERATIONS)} (prefix with not_ to negate)'
    )


def parse_element_pair(description: str) -> Optional[tuple[str, str]]:
    """``presence of 'X' and 'Y'`` -> ('X', 'Y')."""
    match = _ELEMENT_PAIR.search(description or '')
    return (match.group(1).strip(), match.group(2).strip()) if match else None


def is_visual_concept_selector(selector: str) -> bool:
    return selector.startswith('[data-visual-concept=') or selector.startswith('[data-vision-')


def concept_from_selector(selector: str) -> Optional[str]:
    match = _VISUAL_CONCEPT.search(selector)
    return match.group(1) if match else None


def check_value(
    request: VerificationRequest,
    actual: str,
    expected: Optional[str],
    selector: Optional[str] = None,
) -> Optional[str]:
    """Apply the request's operation to ``actual``. Returns an error message, or None when it holds."""
    subject = f'{request.target} "{selector}"' if selector else request.target
    op = request.operation

    if op == 'exists':
        holds = actual != ''
        if holds != request.negated:
            return None
        return f'{subject} {"exists" if request.negated else "does not exist"}'

    if expected is None:
        return f'Missing expected value for {request.label} operation'

    if op == 'contains':
        holds = expected in actual
    elif op == 'equals':
        holds = actual.strip() == expected.strip()
    elif op == 'starts_with':
        holds = actual.startswith(expected)
    elif op == 'ends_with':
        holds = actual.endswith(expected)
    elif op == 'matches':
        try:
            holds = re.search(expected, actual) is not None
        except re.error:
            return f'Invalid regex pattern: {expected}'
    else:
        return f'Unsupported verification operation: {op}'

    if holds != request.negated:
        return None
    verdict = 'should not' if request.negated else 'does not'
    return f'{subject} "{actual}" {verdict} {_OPERATION_VERBS[op]} "{expected}"'

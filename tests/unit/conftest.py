"""
In-memory stand-ins for the browser driver and the chat model.
"""

import re
from typing import Optional

import pytest

from stepwright.dom.views import BoundingBox, ElementDescriptor
from stepwright.exceptions import TransientError

_ATTRIBUTE_FIELDS = {
    'id': 'id',
    'class': 'class_name',
    'name': 'name',
    'type': 'type',
    'role': 'role',
    'title': 'title',
    'aria-label': 'aria_label',
    'placeholder': 'placeholder',
    'data-testid': 'test_id',
    'href': 'href',
    'value': 'value',
}

_TAG = re.compile(r'[a-zA-Z][\w-]*')
_ID = re.compile(r'#((?:[\w-]|\\.)+)')
_CLASS = re.compile(r'\.((?:[\w-]|\\.)+)')
_ATTR = re.compile(r'\[([\w-]+)(?:([*^$]?=)"((?:[^"\\]|\\.)*)"(\s+i)?)?\]')
_HAS_TEXT = re.compile(r':has-text\("((?:[^"\\]|\\.)*)"\)')
_NOT = re.compile(r':not\((\[[^\]]+\])\)')
_TEXT_ENGINE = re.compile(r'^text="((?:[^"\\]|\\.)*)"$')


def _unescape(value: str) -> str:
    return re.sub(r'\\(.)', r'\1', value)


def _attr_value(el: ElementDescriptor, attr: str) -> Optional[str]:
    field = _ATTRIBUTE_FIELDS.get(attr)
    if field is None:
        return None
    value = getattr(el, field)
    return value or None


def _matches_compound(el: ElementDescriptor, selector: str) -> bool:
    """tag#id.class[attr="v" i]:has-text("x"):visible, no combinators."""
    pos = 0
    tag = _TAG.match(selector)
    if tag:
        if el.tag != tag.group(0).lower():
            return False
        pos = tag.end()
    while pos < len(selector):
        rest = selector[pos:]
        if rest.startswith(':visible'):
            if not el.visible:
                return False
            pos += len(':visible')
            continue
        m = _NOT.match(rest)
        if m:
            if _matches_compound(el, m.group(1)):
                return False
            pos += m.end()
            continue
        m = _HAS_TEXT.match(rest)
        if m:
            if _unescape(m.group(1)).lower() not in el.text.lower():
                return False
            pos += m.end()
            continue
        m = _ID.match(rest)
        if m:
            if el.id != _unescape(m.group(1)):
                return False
            pos += m.end()
            continue
        m = _CLASS.match(rest)
        if m:
            if _unescape(m.group(1)) not in el.classes:
                return False
            pos += m.end()
            continue
        m = _ATTR.match(rest)
        if m:
            attr, op, raw, flag = m.groups()
            actual = _attr_value(el, attr)
            if actual is None:
                return False
            if op:
                wanted = _unescape(raw)
                if flag:
                    actual, wanted = actual.lower(), wanted.lower()
                if op == '=' and actual != wanted:
                    return False
                if op == '*=' and wanted not in actual:
                    return False
                if op == '^=' and not actual.startswith(wanted):
                    return False
                if op == '$=' and not actual.endswith(wanted):
                    return False
            pos += m.end()
            continue
        raise ValueError(f'Unsupported selector: {selector}')
    return True


def _split_list(selector: str) -> list[str]:
    parts, depth, quoted, current = [], 0, False, ''
    for ch in selector:
        if ch == '"':
            quoted = not quoted
        elif not quoted and ch in '[(':
            depth += 1
        elif not quoted and ch in '])':
            depth -= 1
        if ch == ',' and depth == 0 and not quoted:
            parts.append(current.strip())
            current = ''
            continue
        current += ch
    parts.append(current.strip())
    return [p for p in parts if p]


class FakeDriver:
    """BrowserDriver over a flat list of element descriptors."""

    def __init__(self, elements=(), url='https://app.example.com/home', title='Example App', body_text=''):
        self.elements = list(elements)
        self._url = url
        self._title = title
        self.body_text = body_text
        self.values: dict[str, str] = {}
        self.value_overrides: dict[str, str] = {}
        self.failing_selectors: set[str] = set()
        self.fail_all_actions = False
        self.actions: list[tuple[str, str]] = []
        self.waits: list[float] = []
        self.navigations: list[str] = []
        self.screenshot_calls = 0
        self.query_failures = 0
        self.query_calls = 0

    # selector engine

    def select(self, selector: str) -> list[ElementDescriptor]:
        if ' >> ' in selector:
            base, engine = selector.split(' >> ', 1)
            text = _TEXT_ENGINE.match(engine.strip())
            if not text:
                raise ValueError(f'Unsupported selector: {selector}')
            wanted = _unescape(text.group(1))
            return [el for el in self.select(base) if ' '.join(el.text.split()) == wanted]
        text = _TEXT_ENGINE.match(selector.strip())
        if text:
            wanted = _unescape(text.group(1))
            return [el for el in self.elements if ' '.join(el.text.split()) == wanted]
        matched = []
        for part in _split_list(selector):
            for el in self.elements:
                if el not in matched and _matches_compound(el, part):
                    matched.append(el)
        return [el for el in self.elements if el in matched]

    # BrowserDriver

    @property
    def url(self) -> str:
        return self._url

    async def title(self) -> str:
        return self._title

    async def navigate(self, url, timeout):
        self.navigations.append(url)
        self._url = url

    async def count(self, selector):
        return len(self.select(selector))

    async def is_visible(self, selector):
        found = self.select(selector)
        return bool(found) and found[0].visible

    def _act(self, kind, selector):
        self.actions.append((kind, selector))
        if self.fail_all_actions or selector in self.failing_selectors:
            raise TransientError(f'Timeout 30000ms exceeded while waiting for {selector}')
        if len(self.select(selector)) != 1:
            raise RuntimeError(f'strict mode violation: {selector}')

    async def click(self, selector, timeout=None):
        self._act('click', selector)

    async def fill(self, selector, value, timeout=None):
        self._act('fill', selector)
        self.values[selector] = value

    async def focus(self, selector):
        self.actions.append(('focus', selector))

    async def hover(self, selector, timeout=None):
        self._act('hover', selector)

    async def text_content(self, selector):
        if selector == 'body':
            return self.body_text
        found = self.select(selector)
        return found[0].text if found else None

    async def input_value(self, selector):
        if selector in self.value_overrides:
            return self.value_overrides[selector]
        return self.values.get(selector, '')

    async def wait_for_selector(self, selector, timeout):
        if not await self.is_visible(selector):
            raise TransientError(f'Timeout {timeout}s exceeded waiting for {selector}')

    async def wait_for_timeout(self, seconds):
        self.waits.append(seconds)

    async def wait_for_load_state(self, state='load', timeout=None):
        return None

    async def query_candidates(self, selectors, limit=500):
        self.query_calls += 1
        if self.query_failures:
            self.query_failures -= 1
            raise RuntimeError('Execution context was destroyed, most likely because of a navigation')
        matched = []
        for selector in selectors:
            try:
                found = self.select(selector)
            except ValueError:
                continue
            matched += [el for el in found if el not in matched]
        return [el for el in self.elements if el in matched][:limit]

    async def describe(self, selector):
        found = self.select(selector)
        return found[0] if found else None

    async def element_at_point(self, x, y):
        for el in self.elements:
            box = el.bbox
            if box and box.x <= x <= box.x + box.width and box.y <= y <= box.y + box.height:
                return el
        return None

    async def screenshot(self, full_page=True):
        self.screenshot_calls += 1
        return b'\xff\xd8fake-jpeg'

    async def content(self):
        return f'<html><body>{self.body_text}</body></html>'


class FakeLLM:
    """Replays queued completions; an Exception in the queue is raised instead."""

    model = 'fake-model'

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    async def complete(self, messages, model=None, temperature=0.0, json_mode=False):
        self.calls.append({'messages': list(messages), 'model': model, 'json_mode': json_mode})
        if not self.responses:
            raise AssertionError('FakeLLM ran out of responses')
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


async def no_sleep(seconds):
    return None


def el(tag, text='', bbox=None, **attrs):
    box = BoundingBox(x=bbox[0], y=bbox[1], width=bbox[2], height=bbox[3]) if bbox else None
    return ElementDescriptor(tag=tag, text=text, bbox=box, **attrs)


@pytest.fixture
def make_driver():
    return FakeDriver


@pytest.fixture
def make_llm():
    return FakeLLM


@pytest.fixture
def element():
    return el


@pytest.fixture
def instant_retry():
    from stepwright.resilience import RetryStrategy

    return RetryStrategy(sleep=no_sleep, rng=lambda: 0.0)

"""Attribute and text selector patterns tried when scored search finds nothing.

Each pattern carries a fixed confidence set by how specific it is:
exact title > placeholder > other attribute matches > role/type > class > bare text.
"""

from __future__ import annotations

from dataclasses import dataclass

from stepwright.dom.terms import extract_key_phrases, extract_key_terms, extract_quoted, strip_article
from stepwright.dom.views import css_string

EXACT_TITLE = 0.9
PLACEHOLDER = 0.85
ATTRIBUTE = 0.8
ROLE = 0.75
TYPE = 0.7
CLASS = 0.7
TEXT = 0.6

# Terms that name the widget rather than the target.
_PATTERN_STOP_WORDS = frozenset(
    {'the', 'a', 'an', 'button', 'link', 'element', 'click', 'submit', 'login', 'launch', 'app', 'field', 'input', 'tab', 'on', 'and'}
)


@dataclass(frozen=True)
class SelectorPattern:
    selector: str
    confidence: float


def _phrase_patterns(text: str) -> list[SelectorPattern]:
    t = css_string(text)
    return [
        SelectorPattern(f'a[title="{t}"]', EXACT_TITLE),
        SelectorPattern(f'[title="{t}"]', EXACT_TITLE),
        SelectorPattern(f'[aria-label="{t}"]', ATTRIBUTE),
        SelectorPattern(f'a[title*="{t}" i]', ATTRIBUTE),
        SelectorPattern(f'[title*="{t}" i]', ATTRIBUTE),
        SelectorPattern(f'[aria-label*="{t}" i]', ATTRIBUTE),
        SelectorPattern(f'[role="tab"]:has-text("{t}")', ROLE),
        SelectorPattern(f'a >> text="{t}"', TEXT),
        SelectorPattern(f'button >> text="{t}"', TEXT),
        SelectorPattern(f'a:has-text("{t}")', TEXT),
        SelectorPattern(f'button:has-text("{t}")', TEXT),
    ]


def _submit_patterns() -> list[SelectorPattern]:
    return [
        SelectorPattern('input[type="submit"][id*="login" i]', ATTRIBUTE),
        SelectorPattern('input[type="submit"][name*="login" i]', ATTRIBUTE),
        SelectorPattern('input[type="submit"][value*="log" i]', ATTRIBUTE),
        SelectorPattern('button[id*="login" i]', ATTRIBUTE),
        SelectorPattern('button[name*="login" i]', ATTRIBUTE),
        SelectorPattern('[role="button"][aria-label*="log" i]', ROLE),
        SelectorPattern('input[type="submit"]', TYPE),
        SelectorPattern('button[type="submit"]', TYPE),
        SelectorPattern('button[class*="login" i]', CLASS),
    ]


def _button_term_patterns(term: str) -> list[SelectorPattern]:
    t = css_string(term)
    return [
        SelectorPattern(f'button[title*="{t}" i]', ATTRIBUTE),
        SelectorPattern(f'[role="button"][title*="{t}" i]', ATTRIBUTE),
        SelectorPattern(f'button[aria-label*="{t}" i]', ATTRIBUTE),
        SelectorPattern(f'[role="button"][aria-label*="{t}" i]', ATTRIBUTE),
        SelectorPattern(f'button[id*="{t}" i]', ATTRIBUTE),
        SelectorPattern(f'button[class*="{t}" i]', CLASS),
        SelectorPattern(f'button:has-text("{t}")', TEXT),
    ]


def _input_term_patterns(term: str) -> list[SelectorPattern]:
    t = css_string(term)
    return [
        SelectorPattern(f'input[placeholder*="{t}" i]', PLACEHOLDER),
        SelectorPattern(f'textarea[placeholder*="{t}" i]', PLACEHOLDER),
        SelectorPattern(f'input[aria-label*="{t}" i]', ATTRIBUTE),
        SelectorPattern(f'input[id*="{t}" i]', ATTRIBUTE),
        SelectorPattern(f'input[name*="{t}" i]', ATTRIBUTE),
        SelectorPattern(f'input[class*="{t}" i]', CLASS),
    ]


def build_patterns(description: str, action_kind: str) -> list[SelectorPattern]:
    """Ordered, de-duplicated patterns for ``description``; earlier is preferred."""
    lower = description.lower()
    phrases = extract_key_phrases(description)
    terms = extract_key_terms(description, _PATTERN_STOP_WORDS)
    patterns: list[SelectorPattern] = []

    if action_kind == 'type':
        if 'search' in lower:
            patterns += [
                SelectorPattern('input[type="search"]', TYPE),
                SelectorPattern('input[placeholder*="search" i]', PLACEHOLDER),
                SelectorPattern('input[role="combobox"]', ROLE),
            ]
        for term in terms:
            if term != 'search':
                patterns += _input_term_patterns(term)
        if 'input' in lower or 'field' in lower:
            patterns += [
                SelectorPattern('input[type="text"]:visible', TYPE),
                SelectorPattern('input:not([type="hidden"]):not([type="submit"]):not([type="button"]):visible', TEXT),
                SelectorPattern('textarea:visible', TEXT),
            ]
        # Placeholder/label matches outrank everything for inputs
        patterns.sort(key=lambda p: -p.confidence)
        return _dedupe(patterns)

    for phrase in phrases:
        patterns += _phrase_patterns(phrase)

    if action_kind == 'verify':
        for text in extract_quoted(description):
            if text not in phrases:
                patterns += _phrase_patterns(text)
        patterns.append(SelectorPattern(f'text="{css_string(strip_article(description))}"', TEXT))
        if 'tab' in lower and not phrases:
            patterns.append(SelectorPattern('[role="tab"]:visible', ROLE))
        return _dedupe(patterns)

    if 'submit' in lower or 'login' in lower or 'log in' in lower or 'sign in' in lower:
        patterns += _submit_patterns()

    full_title = strip_article(description)
    if full_title and terms and not any(p in full_title for p in phrases):
        t = css_string(full_title)
        patterns += [
            SelectorPattern(f'button[title="{t}"]', EXACT_TITLE),
            SelectorPattern(f'[role="button"][title="{t}"]', EXACT_TITLE),
            SelectorPattern(f'button[title*="{t}" i]', ATTRIBUTE),
        ]

    for term in terms:
        patterns += _button_term_patterns(term)

    if not phrases:
        if 'button' in lower:
            patterns += [SelectorPattern('[role="button"]:visible', ROLE), SelectorPattern('button:visible', TEXT)]
        if 'tab' in lower or 'link' in lower:
            patterns += [SelectorPattern('[role="tab"]:visible', ROLE), SelectorPattern('a[class*="tab"]:visible', CLASS)]

    return _dedupe(patterns)


def _dedupe(patterns: list[SelectorPattern]) -> list[SelectorPattern]:
    seen: set[str] = set()
    out = []
    for p in patterns:
        if p.selector not in seen:
            seen.add(p.selector)
            out.append(p)
    return out

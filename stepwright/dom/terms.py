"""Text -> candidate terms.

Turns a free-text element description ("the 'Data Model' tab", "Search
field") into the phrases and keywords the scorer and the selector patterns
match against. Kept apart from scoring so both can change independently.
"""

import re

ARTICLES = ('the', 'a', 'an')

# Words that describe the kind of element rather than which one.
GENERIC_WORDS = frozenset(
	{
		'the', 'a', 'an', 'button', 'link', 'element', 'field', 'input', 'tab', 'search',
		'submit', 'login', 'click', 'launch', 'app', 'on', 'in', 'into', 'and', 'with',
	}
)

_LEADING_VERBS = frozenset(
	{'click', 'press', 'tap', 'type', 'enter', 'fill', 'hover', 'select', 'open', 'verify', 'check', 'go', 'navigate', 'the', 'a', 'an'}
)

_QUOTED = re.compile(r"'([^']+)'|\"([^\"]+)\"")
_BEFORE_KIND = re.compile(r'\b([A-Z][\w&-]*(?:\s+[A-Z][\w&-]*)*)\s+(?:tab|link|button)\b')
_CAPITALIZED_RUN = re.compile(r'\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+\b')
_SUFFIX = re.compile(r'\s+(?:tab|link)$', re.IGNORECASE)
_WORD = re.compile(r'[\w@.-]+')


def strip_article(text: str) -> str:
	"""'the Login button' -> 'Login button'"""
	return re.sub(r'^(?:the|a|an)\s+', '', text.strip(), flags=re.IGNORECASE).strip()


def _strip_leading_verbs(phrase: str) -> str:
	words = phrase.split()
	while words and words[0].lower() in _LEADING_VERBS:
		words = words[1:]
	return ' '.join(words)


def extract_quoted(text: str) -> list[str]:
	phrases = []
	for match in _QUOTED.finditer(text):
		value = (match.group(1) or match.group(2) or '').strip()
		if value and value.lower() not in ('tab', 'link') and value not in phrases:
			phrases.append(value)
	return phrases


def extract_key_phrases(text: str) -> list[str]:
	"""Specific labels named in a description, most specific first.

	Quoted strings come first, then a capitalized label directly before
	"tab"/"link"/"button", then any other run of capitalized words.
	"""
	phrases = extract_quoted(text)

	candidates = [m.group(1) for m in _BEFORE_KIND.finditer(text)]
	candidates += [m.group(0) for m in _CAPITALIZED_RUN.finditer(text)]
	for raw in candidates:
		cleaned = _strip_leading_verbs(_SUFFIX.sub('', raw).strip())
		if len(cleaned) <= 3 or cleaned.lower() in ('tab', 'link'):
			continue
		if any(cleaned == p or cleaned in p for p in phrases):
			continue
		phrases.append(cleaned)
	return phrases


def extract_key_terms(text: str, stop_words: frozenset[str] = GENERIC_WORDS) -> list[str]:
	"""Lowercased words longer than two characters, minus ``stop_words``."""
	terms = []
	for word in _WORD.findall(text.lower()):
		word = word.strip('.-')
		if len(word) > 2 and word not in stop_words and word not in terms:
			terms.append(word)
	return terms

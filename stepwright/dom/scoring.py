"""Heuristic scoring of live elements against a free-text description.

The point values are empirical. What matters is their ordering: a match on
a specific label named in the description beats a match on the description
as a whole, which beats partial attribute containment, which beats tag
affinity and the visibility bonus.
"""

from dataclasses import dataclass

from stepwright.dom.terms import GENERIC_WORDS, extract_key_phrases, extract_key_terms, strip_article
from stepwright.dom.views import ElementDescriptor

# Label named in the description (quoted or capitalized phrase)
PHRASE_TITLE_EXACT = 60
PHRASE_ARIA_EXACT = 55
PHRASE_TEXT_EXACT = 55
PHRASE_TITLE_PARTIAL = 50
PHRASE_ARIA_PARTIAL = 45
PHRASE_TEXT_PARTIAL = 45

# Whole description against the element
TEXT_EXACT = 50
TEXT_CONTAINS_DESCRIPTION = 40
DESCRIPTION_CONTAINS_TEXT = 35
WORD_OVERLAP = 10
TITLE_EXACT = 45
TITLE_PARTIAL = 35
ARIA_EXACT = 40
ARIA_PARTIAL = 30

# Key-term containment and affinity
ID_TERM = 25
NAME_TERM = 25
TAG_AFFINITY = 20
VERIFY_AFFINITY = 10
CLASS_TERM = 15
VISIBLE = 10

MIN_CONFIDENCE = 0.5
MAX_CONFIDENCE = 0.95

CANDIDATE_SELECTORS = {
	'click': ('button', 'a', 'input[type="submit"]', 'input[type="button"]', '[role="button"]'),
	'type': ('input:not([type="hidden"]):not([type="submit"]):not([type="button"])', 'textarea'),
}
DEFAULT_CANDIDATE_SELECTORS = ('button', 'a', 'input', 'select', 'textarea', '[role="button"]', '[role="link"]', '[role="tab"]')


def candidate_selectors(action_kind: str) -> tuple[str, ...]:
	return CANDIDATE_SELECTORS.get(action_kind, DEFAULT_CANDIDATE_SELECTORS)


@dataclass(frozen=True)
class DescriptionTerms:
	"""Pre-extracted view of a description, computed once per search."""

	lower: str
	bare: str
	phrases: tuple[str, ...]
	words: tuple[str, ...]

	@classmethod
	def from_text(cls, description: str) -> 'DescriptionTerms':
		return cls(
			lower=description.lower().strip(),
			bare=strip_article(description).lower(),
			phrases=tuple(p.lower() for p in extract_key_phrases(description)),
			words=tuple(extract_key_terms(description, GENERIC_WORDS)),
		)


def _exact_or_partial(value: str, needle: str, exact: int, partial: int) -> int:
	if not value or not needle:
		return 0
	if value == needle:
		return exact
	if needle in value:
		return partial
	return 0


def _tag_affinity(el: ElementDescriptor, action_kind: str) -> int:
	if action_kind == 'click':
		if el.tag in ('button', 'a') or el.role == 'button' or el.type in ('submit', 'button'):
			return TAG_AFFINITY
	elif action_kind == 'type':
		if el.is_text_input:
			return TAG_AFFINITY
	elif action_kind == 'verify':
		return VERIFY_AFFINITY
	return 0


def score_candidate(el: ElementDescriptor, terms: DescriptionTerms, action_kind: str) -> int:
	score = 0
	text = ' '.join(el.text.lower().split())
	title = el.title.lower()
	aria = el.aria_label.lower()

	for phrase in terms.phrases:
		score += _exact_or_partial(title, phrase, PHRASE_TITLE_EXACT, PHRASE_TITLE_PARTIAL)
		score += _exact_or_partial(aria, phrase, PHRASE_ARIA_EXACT, PHRASE_ARIA_PARTIAL)
		score += _exact_or_partial(text, phrase, PHRASE_TEXT_EXACT, PHRASE_TEXT_PARTIAL)

	if text:
		if text == terms.bare:
			score += TEXT_EXACT
		elif terms.bare and terms.bare in text:
			score += TEXT_CONTAINS_DESCRIPTION
		elif text in terms.lower:
			score += DESCRIPTION_CONTAINS_TEXT
		else:
			text_words = text.split()
			overlap = sum(1 for w in terms.words if any(w in tw or tw in w for tw in text_words))
			score += overlap * WORD_OVERLAP

	if title:
		if title == terms.bare:
			score += TITLE_EXACT
		elif terms.bare in title or title in terms.lower:
			score += TITLE_PARTIAL

	if aria:
		if aria == terms.bare:
			score += ARIA_EXACT
		elif terms.bare in aria or aria in terms.lower:
			score += ARIA_PARTIAL

	if el.id and any(w in el.id.lower() for w in terms.words):
		score += ID_TERM
	if el.name and any(w in el.name.lower() for w in terms.words):
		score += NAME_TERM

	score += _tag_affinity(el, action_kind)

	if el.class_name and any(w in el.class_name.lower() for w in terms.words):
		score += CLASS_TERM

	if el.visible:
		score += VISIBLE
	return score


def score_to_confidence(score: int) -> float:
	return min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, score / 100))


@dataclass(frozen=True)
class ScoredCandidate:
	element: ElementDescriptor
	selector: str
	score: int

	@property
	def confidence(self) -> float:
		return score_to_confidence(self.score)


def rank_candidates(
	elements: list[ElementDescriptor],
	description: str,
	action_kind: str,
	limit: int = 5,
) -> list[ScoredCandidate]:
	"""Score, drop zero scores, and return the best ``limit`` in descending order."""
	terms = DescriptionTerms.from_text(description)
	scored = []
	for el in elements:
		score = score_candidate(el, terms, action_kind)
		if score > 0:
			scored.append(ScoredCandidate(element=el, selector=el.build_selector(), score=score))
	scored.sort(key=lambda c: c.score, reverse=True)
	return scored[:limit]

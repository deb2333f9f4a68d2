import pytest

from stepwright.discovery.patterns import ATTRIBUTE, EXACT_TITLE, PLACEHOLDER, build_patterns
from stepwright.discovery.thresholds import ConfidenceThresholdPolicy, InMemoryConfigurationStore
from stepwright.dom.scoring import rank_candidates, score_to_confidence
from stepwright.dom.terms import extract_key_phrases, extract_key_terms, strip_article
from stepwright.dom.views import ElementDescriptor


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Click the Health tab", ["Health"]),
        ("Open the 'Data Model' tab", ["Data Model"]),
        ('Click "Save Changes"', ["Save Changes"]),
        ("Go to Account Settings", ["Account Settings"]),
        ("click the submit button", []),
    ],
)
def test_key_phrases(text, expected):
    assert extract_key_phrases(text) == expected


def test_key_terms_and_articles():
    assert strip_article('the Login button') == 'Login button'
    assert extract_key_terms('Type into the Email address field') == ['type', 'email', 'address']


def test_confidence_is_clamped():
    assert score_to_confidence(10) == 0.5
    assert score_to_confidence(72) == 0.72
    assert score_to_confidence(400) == 0.95


def test_named_label_outranks_generic_text_match():
    elements = [
        ElementDescriptor(tag='a', text='Overview', title='Overview', class_name='tab-link'),
        ElementDescriptor(tag='a', text='Health', title='Health', class_name='tab-link'),
        ElementDescriptor(tag='button', text='Health check docs'),
    ]
    ranked = rank_candidates(elements, 'the Health tab', 'click')
    assert ranked[0].element.title == 'Health'
    assert ranked[0].selector == 'a[title="Health"]'
    assert ranked[0].confidence == 0.95
    assert ranked[0].score > ranked[1].score


def test_invisible_elements_score_lower():
    visible = ElementDescriptor(tag='button', text='Save')
    hidden = ElementDescriptor(tag='button', text='Save', visible=False)
    ranked = rank_candidates([hidden, visible], 'Save', 'click')
    assert ranked[0].element is visible


def test_exact_title_pattern_comes_first():
    patterns = build_patterns('the Health tab', 'click')
    assert patterns[0].selector == 'a[title="Health"]'
    assert patterns[0].confidence == EXACT_TITLE
    assert len({p.selector for p in patterns}) == len(patterns)


def test_type_patterns_prefer_placeholders():
    patterns = build_patterns('Email field', 'type')
    assert patterns[0].confidence == PLACEHOLDER
    assert patterns[0].selector == 'input[placeholder*="email" i]'
    assert all(a.confidence >= b.confidence for a, b in zip(patterns, patterns[1:]))


def test_submit_idioms_for_login():
    selectors = [p.selector for p in build_patterns('click the login button', 'click')]
    assert 'input[type="submit"]' in selectors
    assert selectors.index('input[type="submit"][id*="login" i]') < selectors.index('input[type="submit"]')


def test_verify_patterns_include_quoted_text():
    patterns = build_patterns("the 'Welcome back' banner", 'verify')
    selectors = [p.selector for p in patterns]
    assert '[title="Welcome back"]' in selectors
    assert any(p.confidence == ATTRIBUTE for p in patterns)


@pytest.mark.asyncio
async def test_default_thresholds():
    policy = ConfidenceThresholdPolicy()
    assert await policy.get_threshold('click') == 0.5
    assert await policy.get_threshold('type') == 0.7
    assert await policy.get_threshold('hover') == 0.7
    assert await policy.get_threshold('verify') == 0.7
    assert await policy.get_threshold('drag') == 0.6


@pytest.mark.asyncio
async def test_store_overrides_and_bad_values_fall_back():
    store = InMemoryConfigurationStore(
        {
            'confidence.threshold.click': '0.8',
            'confidence.threshold.type': 'high',
            'confidence.threshold.hover': 1.5,
        }
    )
    policy = ConfidenceThresholdPolicy(store)
    assert await policy.get_threshold('click') == 0.8
    assert await policy.get_threshold('type') == 0.7
    assert await policy.get_threshold('hover') == 0.7
    assert (await policy.get_all_thresholds())['click'] == 0.8


@pytest.mark.asyncio
async def test_store_failure_falls_back():
    class BrokenStore:
        async def get(self, key):
            raise ConnectionError('config service down')

    policy = ConfidenceThresholdPolicy(BrokenStore())
    assert await policy.get_threshold('verify') == 0.7

import json

import pytest

from stepwright.discovery import ElementLocator, MultiStrategyDiscovery
from stepwright.discovery.strategies import LLMDomStrategy
from stepwright.dom.cache import StructureCache
from stepwright.resilience import CircuitBreaker


def _llm_locator(llm, retry):
    strategy = LLMDomStrategy(llm, StructureCache(), CircuitBreaker(), retry=retry)
    return ElementLocator(MultiStrategyDiscovery([strategy]))


@pytest.mark.asyncio
async def test_unique_visible_hint_is_trusted(make_driver, element):
    driver = make_driver([element('button', 'Save', id='save')])
    result = await ElementLocator().locate(driver, 'the save button', 'click', hint_selector='#save')
    assert result.method == 'dom'
    assert result.selector == '#save'
    assert result.confidence == 1.0
    assert result.strategy == 'HINT'


@pytest.mark.asyncio
async def test_ambiguous_hint_falls_through_to_search(make_driver, element):
    driver = make_driver(
        [
            element('button', 'Save', id='save', class_name='btn'),
            element('button', 'Cancel', id='cancel', class_name='btn'),
        ]
    )
    result = await ElementLocator().locate(driver, 'Save', 'click', hint_selector='.btn')
    assert result.strategy == 'STRUCTURE_SEARCH'
    assert result.selector == '#save'


@pytest.mark.asyncio
async def test_type_hint_must_be_a_text_input(make_driver, element):
    driver = make_driver(
        [
            element('label', 'Email', id='email-label'),
            element('input', id='email', type='email', placeholder='Email'),
        ]
    )
    result = await ElementLocator().locate(driver, 'Email', 'type', hint_selector='#email-label')
    assert result.selector == '#email'
    assert result.strategy == 'STRUCTURE_SEARCH'
    # inputs get a moment to render before the search
    assert driver.waits == [0.5]


@pytest.mark.asyncio
async def test_named_tab_is_found_by_title(make_driver, element):
    driver = make_driver(
        [
            element('a', 'Overview', title='Overview', class_name='tab-link'),
            element('a', 'Health', title='Health', class_name='tab-link'),
            element('button', 'Health check docs'),
        ]
    )
    result = await ElementLocator().locate(driver, 'the Health tab', 'click')
    assert result.selector == 'a[title="Health"]'
    assert result.confidence == 0.95
    assert result.element_info.text == 'Health'


@pytest.mark.asyncio
async def test_shared_selector_is_disambiguated_by_text(make_driver, element):
    driver = make_driver(
        [
            element('a', 'Reports', class_name='nav-item'),
            element('a', 'Settings', class_name='nav-item'),
        ]
    )
    result = await ElementLocator().locate(driver, 'Open Settings', 'click')
    assert result.selector == '.nav-item:has-text("Settings")'
    assert await driver.count(result.selector) == 1


@pytest.mark.asyncio
async def test_patterns_match_exact_title(make_driver, element):
    driver = make_driver([element('a', 'Health', title='Health')])
    result = await ElementLocator().try_patterns(driver, 'the Health tab', 'click')
    assert result.selector == 'a[title="Health"]'
    assert result.confidence == 0.9
    assert result.strategy == 'PATTERN'


@pytest.mark.asyncio
async def test_nothing_structural_defers_to_vision(make_driver):
    result = await ElementLocator().locate(make_driver([]), 'the launch rocket', 'click')
    assert result.method == 'vision'
    assert result.selector is None
    assert result.confidence == 0.8
    assert not result.is_dom


@pytest.mark.asyncio
async def test_selector_from_coordinates(make_driver, element):
    driver = make_driver(
        [
            element('button', 'Go', bbox=(0, 0, 100, 40), id='go'),
            element('div', bbox=(0, 100, 50, 50), class_name='card'),
            element('div', bbox=(60, 100, 50, 50), class_name='card'),
        ]
    )
    locator = ElementLocator()
    assert await locator.extract_selector_from_coordinates(driver, 10, 10) == '#go'
    # neither the class nor the tag is unique
    assert await locator.extract_selector_from_coordinates(driver, 10, 110) is None
    assert await locator.extract_selector_from_coordinates(driver, 900, 900) is None


@pytest.mark.asyncio
async def test_input_heuristics_pick_the_only_text_input(make_driver, element):
    driver = make_driver(
        [
            element('input', type='hidden', name='csrf'),
            element('input', type='text', class_name='x'),
        ]
    )
    result = await ElementLocator().locate_input_by_heuristics(driver, 'Comment')
    assert result.selector == '.x'
    assert result.confidence == 0.5
    assert result.strategy == 'INPUT_HEURISTIC'


@pytest.mark.asyncio
async def test_llm_candidate_below_threshold_is_skipped(make_driver, make_llm, element, instant_retry):
    driver = make_driver([element('button', 'Save', id='save')])
    llm = make_llm(json.dumps({'selector': '#save', 'confidence': 0.3}))
    result = await _llm_locator(llm, instant_retry).locate(driver, 'Save', 'hover')
    # 0.3 + 0.2 for a unique visible match is still under the hover threshold
    assert result.strategy == 'STRUCTURE_SEARCH'
    assert len(llm.calls) == 1
    assert llm.calls[0]['json_mode'] is True


@pytest.mark.asyncio
async def test_llm_candidate_above_threshold_is_used(make_driver, make_llm, element, instant_retry):
    driver = make_driver([element('button', 'Save', id='save'), element('button', 'Save draft', id='draft')])
    llm = make_llm(json.dumps({'selector': '#save', 'confidence': 0.8, 'alternatives': ['#draft']}))
    result = await _llm_locator(llm, instant_retry).locate(driver, 'Save', 'click')
    assert result.strategy == 'LLM_DOM_ANALYSIS'
    assert result.selector == '#save'
    assert result.confidence == pytest.approx(1.0)
    assert result.alternatives == ('#draft',)


@pytest.mark.asyncio
async def test_type_candidate_on_a_label_moves_to_nearest_input(make_driver, make_llm, element, instant_retry):
    driver = make_driver(
        [
            element('label', 'Email', bbox=(0, 0, 80, 20), id='email-label'),
            element('input', bbox=(0, 400, 200, 30), id='phone', type='tel'),
            element('input', bbox=(0, 25, 200, 30), id='email', type='email'),
        ]
    )
    llm = make_llm(json.dumps({'selector': '#email-label', 'confidence': 0.9}))
    result = await _llm_locator(llm, instant_retry).locate(driver, 'Email', 'type')
    assert result.selector == '#email'
    assert result.confidence == 0.7


@pytest.mark.asyncio
async def test_failed_candidate_query_falls_through_to_patterns(make_driver, element):
    driver = make_driver([element('a', 'Health', title='Health')])
    driver.query_failures = 1
    result = await ElementLocator().locate(driver, 'the Health tab', 'click')
    assert result.selector == 'a[title="Health"]'
    assert result.strategy == 'PATTERN'
    assert driver.query_calls == 1


@pytest.mark.asyncio
async def test_failed_candidate_query_falls_through_to_vision(make_driver):
    driver = make_driver([])
    driver.query_failures = 1
    result = await ElementLocator().locate(driver, 'the launch rocket', 'click')
    assert result.method == 'vision'
    assert result.strategy == 'VISION_FALLBACK'


@pytest.mark.asyncio
async def test_input_heuristics_give_up_when_query_fails(make_driver, element):
    driver = make_driver([element('input', id='email', type='email')])
    driver.query_failures = 1
    assert await ElementLocator().locate_input_by_heuristics(driver, 'Email') is None


@pytest.mark.parametrize(
    "attrs,expected",
    [
        ({'title': 'Say "hi"'}, 'a[title="Say \\"hi\\""]'),
        ({'aria_label': 'C:\\temp'}, '[aria-label="C:\\\\temp"]'),
        ({'test_id': 'row"1'}, '[data-testid="row\\"1"]'),
    ],
)
def test_built_selectors_escape_quoted_values(element, attrs, expected):
    assert element('a', 'x', **attrs).build_selector() == expected


@pytest.mark.asyncio
async def test_values_with_quotes_still_resolve(make_driver, element):
    driver = make_driver(
        [
            element('a', 'Open "Q3" report', class_name='report', href='/r?q="3"'),
            element('a', 'Open "Q4" report', class_name='report', href='/r?q="4"'),
        ]
    )
    result = await ElementLocator().search_structure(driver, 'Open "Q4" report', 'click')
    assert result.selector == 'a[href="/r?q=\\"4\\""]'

"""Unit tests for the selector compiler"""
import json
import pytest
from gherkinrunner.core.selector_compiler import (
    RUNTIME_JS, SelectorCompiler, parse_segment, parse_selector
)


def test_css_segment():
    segment = parse_segment('#login-form input[name="email"]')

    assert segment.kind == 'css'
    assert segment.source == '#login-form input[name="email"]'
    assert segment.index is None
    assert segment.candidates == []


def test_a11y_segment():
    segment = parse_segment('button "Save"')

    assert segment.kind == 'a11y'
    assert segment.role == 'button'
    assert segment.name == 'Save'
    assert not segment.partial
    assert 'input[type="submit"]' in segment.candidates


def test_index_suffix():
    segment = parse_segment('button "Save" [2]')

    assert segment.index == 2
    assert segment.source == 'button "Save"'
    assert segment.text == 'button "Save" [2]'
    assert segment.kind == 'a11y'


def test_css_with_index():
    segment = parse_segment('li.item [3]')

    assert segment.kind == 'css'
    assert segment.source == 'li.item'
    assert segment.index == 3


def test_attribute_selector_is_not_an_index():
    segment = parse_segment('input[type="text"]')

    assert segment.kind == 'css'
    assert segment.index is None


def test_text_roles_match_partially():
    assert parse_segment('text "Welcome"').partial
    assert parse_segment('StaticText "Welcome"').partial


def test_unknown_role_is_css():
    assert parse_segment('widget "Save"').kind == 'css'


def test_chain():
    segments = parse_selector('form "Billing" >> button "Save"')

    assert [s.text for s in segments] == ['form "Billing"', 'button "Save"']
    assert len(SelectorCompiler().compile('form "Billing" >> button "Save"').segments) == 2


@pytest.mark.parametrize("selector", ['', '   ', 'a >>  >> b'])
def test_invalid_selectors(selector):
    with pytest.raises(ValueError):
        parse_selector(selector)


def test_compiled_expressions_embed_runtime_and_plan():
    compiled = SelectorCompiler().compile('button "Save" [2]')

    assert RUNTIME_JS in compiled.expression
    assert '.element' in compiled.expression
    assert 'found: r.element !== null' in compiled.resolve_expression
    assert json.dumps('button "Save"') in compiled.expression


def test_compiler_caches_by_text():
    compiler = SelectorCompiler()

    assert compiler.compile('#a') is compiler.compile('#a')
    assert compiler.compile('#a') is not compiler.compile('#b')


def test_runtime_contains_role_map():
    assert '"button": ["button"' in RUNTIME_JS
    assert '__ROLES__' not in RUNTIME_JS

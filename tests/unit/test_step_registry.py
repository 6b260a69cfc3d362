"""Unit tests for step registry and matching"""
import re
from gherkinrunner.parser.step_registry import StepDefinition, StepRegistry, match_step


async def noop(ctx, match, doc_string=None, data_table=None):
    pass


def test_first_registered_definition_wins():
    registry = StepRegistry()
    registry.register(StepDefinition(pattern=r'def\s+(\w+)\s*=\s*eval', handler=noop, source='script-plugin'))
    registry.register(StepDefinition(pattern=r'def\s+(\w+)\s*=\s*(.+)', handler=noop, source='built-in'))

    result = registry.match('def x = eval')

    assert result.found
    assert result.definition.source == 'script-plugin'
    assert result.match.groups == ['x']


def test_match_requires_whole_text():
    registry = StepRegistry()
    registry.register(StepDefinition(pattern=r'status\s+(\d+)', handler=noop))

    assert registry.match('status 200').found
    assert not registry.match('status 200 please').found
    assert not registry.match('check status 200').found


def test_named_groups_become_params():
    result = match_step('header Accept = json', [
        StepDefinition(pattern=r'header\s+(?P<name>.+?)\s*=\s*(?P<value>.+)', handler=noop)
    ])

    assert result.match.params == {'name': 'Accept', 'value': 'json'}
    assert result.match.groups == ['Accept', 'json']


def test_unmatched_step():
    result = StepRegistry().match('anything')

    assert not result.found
    assert result.definition is None


def test_precompiled_pattern_keeps_flags():
    definition = StepDefinition(pattern=re.compile(r'method\s+(GET|POST)', re.IGNORECASE), handler=noop)

    assert match_step('method post', [definition]).match.groups == ['post']


def test_unregister_by_source():
    registry = StepRegistry()
    registry.register(StepDefinition(pattern=r'a', handler=noop, source='custom'))
    registry.register(StepDefinition(pattern=r'b', handler=noop, source='built-in'))
    registry.register(StepDefinition(pattern=r'c', handler=noop, source='custom'))

    removed = registry.unregister_by_source('custom')

    assert removed == 2
    assert len(registry) == 1
    assert [d['pattern'] for d in registry.describe()] == ['b']

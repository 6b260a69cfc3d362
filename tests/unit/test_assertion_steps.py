"""Unit tests for match assertions"""
import asyncio
import pytest
from gherkinrunner.executor.context import CancelToken, HttpResponse, create_execution_context
from gherkinrunner.parser.step_registry import StepRegistry
from gherkinrunner.steps.assertion_steps import deep_match, get_assertion_step_definitions, parse_expected


def context_with_body(body):
    ctx = create_execution_context(CancelToken())
    ctx.response = HttpResponse(status=200, status_text='OK', headers={}, body=body, response_time=1.0)
    return ctx


def run_step(ctx, text):
    registry = StepRegistry()
    registry.register_all(get_assertion_step_definitions())
    result = registry.match(text)
    assert result.found, text
    asyncio.run(result.definition.handler(ctx, result.match))


def test_relaxed_object_with_type_markers_passes():
    ctx = context_with_body({'id': 7, 'name': 'X'})

    run_step(ctx, "match response == {id: #number, name: 'X'}")


def test_type_marker_mismatch_message():
    ctx = context_with_body({'id': 'seven', 'name': 'X'})

    with pytest.raises(AssertionError) as exc:
        run_step(ctx, "match response == {id: #number, name: 'X'}")

    assert str(exc.value) == 'At "id": Expected type #number but got string ("seven")'


def test_exact_match_rejects_extra_keys():
    ctx = context_with_body({'id': 1, 'extra': True})

    with pytest.raises(AssertionError, match='Unexpected key "extra"'):
        run_step(ctx, 'match response == {"id": 1}')


def test_contains_allows_extra_keys():
    ctx = context_with_body({'id': 1, 'tags': ['a', 'b', 'c'], 'extra': True})

    run_step(ctx, "match response contains {id: 1, tags: ['b']}")


def test_contains_on_strings_is_substring():
    ctx = context_with_body({'message': 'user created'})

    run_step(ctx, "match response.message contains 'created'")
    with pytest.raises(AssertionError):
        run_step(ctx, "match response.message contains 'deleted'")


def test_quoted_number_is_a_string():
    ctx = context_with_body({'count': 1})

    with pytest.raises(AssertionError, match='Expected "1" but got 1'):
        run_step(ctx, "match response.count == '1'")


def test_not_null():
    ctx = context_with_body({'id': 1, 'deleted': None})

    run_step(ctx, "match response.id != null")
    with pytest.raises(AssertionError, match='to not be null'):
        run_step(ctx, "match response.deleted != null")


def test_variables_can_be_matched():
    ctx = create_execution_context(CancelToken())
    ctx.variables['user'] = {'name': 'Ada'}

    run_step(ctx, "match user.name == 'Ada'")


@pytest.mark.parametrize("text, expected", [
    ("'hello'", 'hello'),
    ('42', 42),
    ('true', True),
    ('null', None),
    ('#string', '#string'),
    ("{a: 1, b: 'two'}", {'a': 1, 'b': 'two'}),
    ("[#number, 'x']", ['#number', 'x']),
    ('plain words', 'plain words'),
])
def test_parse_expected(text, expected):
    assert parse_expected(text) == expected


def test_booleans_are_not_numbers():
    assert deep_match(1, True) is not None
    assert deep_match(True, '#number') is not None


def test_present_marker_distinguishes_null_from_missing():
    assert deep_match({'a': None}, {'a': '#present'}, partial=True) is None
    assert deep_match({}, {'a': '#present'}, partial=True) is not None


def test_array_length_mismatch():
    assert deep_match([1, 2], [1]) == "Expected array of length 1 but got 2"

"""
Response assertion steps
Karate-style ``match`` with relaxed object syntax and type markers
"""

import json
import re
from typing import Any, List, Optional
import yaml
from gherkinrunner.parser.step_registry import StepDefinition
from gherkinrunner.utils.helpers import MISSING, lookup

TYPE_MARKERS = ('#number', '#string', '#boolean', '#null', '#notnull', '#present', '#array')
BARE_MARKER = re.compile(r"(?<!['\"])#(number|string|boolean|null|notnull|present|array)\b(?!['\"])")


def parse_expected(text: str) -> Any:
    """Parse the right-hand side of a match.

    Quoted text is a string literal, JSON is JSON, ``{...}``/``[...]`` may use
    unquoted keys, single quotes and bare type markers. Anything else is kept as text.
    """
    text = text.strip()

    if text.startswith('#'):
        return text

    if len(text) >= 2 and text[0] == text[-1] and text[0] in ('"', "'"):
        return text[1:-1]

    try:
        return json.loads(text)
    except ValueError:
        pass

    if text.startswith('{') or text.startswith('['):
        try:
            return yaml.safe_load(BARE_MARKER.sub(r"'#\1'", text))
        except yaml.YAMLError:
            return text

    return text


def type_name(value: Any) -> str:
    if value is MISSING:
        return 'undefined'
    if value is None:
        return 'null'
    if isinstance(value, bool):
        return 'boolean'
    if isinstance(value, (int, float)):
        return 'number'
    if isinstance(value, str):
        return 'string'
    if isinstance(value, list):
        return 'array'
    return 'object'


def show(value: Any) -> str:
    if value is MISSING:
        return 'undefined'
    return json.dumps(value, default=str)


def check_type_marker(value: Any, marker: str) -> bool:
    if marker == '#number':
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if marker == '#string':
        return isinstance(value, str)
    if marker == '#boolean':
        return isinstance(value, bool)
    if marker == '#null':
        return value is None
    if marker == '#notnull':
        return value is not None and value is not MISSING
    if marker == '#present':
        return value is not MISSING
    if marker == '#array':
        return isinstance(value, list)
    return False


def _primitives_equal(actual: Any, expected: Any) -> bool:
    if isinstance(actual, bool) or isinstance(expected, bool):
        return type(actual) is type(expected) and actual == expected
    if actual is MISSING:
        return False
    return actual == expected


def deep_match(actual: Any, expected: Any, partial: bool = False) -> Optional[str]:
    """Compare actual against expected, returns an error message or None"""
    if isinstance(expected, str) and expected in TYPE_MARKERS:
        if not check_type_marker(actual, expected):
            return f"Expected type {expected} but got {type_name(actual)} ({show(actual)})"
        return None

    if isinstance(expected, dict):
        if not isinstance(actual, dict):
            return f"Expected object but got {show(actual)}"

        for key, value in expected.items():
            if key not in actual and not partial:
                return f'Missing key "{key}" in response'
            error = deep_match(actual.get(key, MISSING), value, partial)
            if error:
                return f'At "{key}": {error}'

        if not partial:
            for key in actual:
                if key not in expected:
                    return f'Unexpected key "{key}" in response'
        return None

    if isinstance(expected, list):
        if not isinstance(actual, list):
            return f"Expected array but got {type_name(actual)}"

        if partial:
            for i, item in enumerate(expected):
                if not any(deep_match(a, item) is None for a in actual):
                    return f"Array does not contain expected element at index {i}: {show(item)}"
        else:
            if len(actual) != len(expected):
                return f"Expected array of length {len(expected)} but got {len(actual)}"
            for i, item in enumerate(expected):
                error = deep_match(actual[i], item)
                if error:
                    return f"At index [{i}]: {error}"
        return None

    if partial and isinstance(actual, str) and isinstance(expected, str):
        if expected not in actual:
            return f"Expected {show(actual)} to contain {show(expected)}"
        return None

    if not _primitives_equal(actual, expected):
        return f"Expected {show(expected)} but got {show(actual)}"
    return None


async def match_equals(ctx, match, doc_string=None, data_table=None):
    actual = lookup(ctx, match.groups[0])
    error = deep_match(actual, parse_expected(match.groups[1]))
    if error:
        raise AssertionError(error)


async def match_contains(ctx, match, doc_string=None, data_table=None):
    actual = lookup(ctx, match.groups[0])
    error = deep_match(actual, parse_expected(match.groups[1]), partial=True)
    if error:
        raise AssertionError(error)


async def match_not_null(ctx, match, doc_string=None, data_table=None):
    path = match.groups[0].strip()
    actual = lookup(ctx, path)
    if actual is None or actual is MISSING:
        raise AssertionError(f'Expected "{path}" to not be null but it was {show(actual)}')


def get_assertion_step_definitions() -> List[StepDefinition]:
    """Step definitions for response assertions"""
    return [
        # match response.path == 'value'
        StepDefinition(
            pattern=r'match\s+(.+?)\s*==\s*(.+)',
            handler=match_equals,
            description="Assert exact equality"
        ),

        # match response contains { ... }
        StepDefinition(
            pattern=r'match\s+(.+?)\s+contains\s+(.+)',
            handler=match_contains,
            description="Assert partial match (contains)"
        ),

        # match response.path != null
        StepDefinition(
            pattern=r'match\s+(.+?)\s*!=\s*null',
            handler=match_not_null,
            description="Assert value is not null"
        ),
    ]

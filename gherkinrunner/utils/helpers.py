"""Helper utilities"""
import json
import re
from typing import Any, Dict


class _Missing:
    """Marker for a path that does not resolve (distinct from a JSON null)"""

    def __repr__(self):
        return 'MISSING'

    def __bool__(self):
        return False


MISSING = _Missing()

PATH_TOKEN = re.compile(r'\w+|\[\d+\]')
VARIABLE_TOKEN = re.compile(r'#\{([^}]+)\}')


def sanitize_filename(name: str) -> str:
    """Sanitize string for use as filename"""
    return re.sub(r'[<>:"/\\|?*\s]', '_', name)


def unquote(text: str) -> str:
    """Strip one pair of matching single or double quotes"""
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ('"', "'"):
        return text[1:-1]
    return text


def resolve_path(data: Any, path: str) -> Any:
    """Walk a dotted/indexed path like ``items[0].name`` through dicts and lists.

    Returns MISSING when any segment cannot be followed.
    """
    tokens = PATH_TOKEN.findall(path)
    if not tokens:
        return MISSING

    current = data
    for token in tokens:
        if token.startswith('['):
            if not isinstance(current, list):
                return MISSING
            index = int(token[1:-1])
            if index >= len(current):
                return MISSING
            current = current[index]
        elif isinstance(current, dict):
            if token not in current:
                return MISSING
            current = current[token]
        elif isinstance(current, list) and token.isdigit():
            index = int(token)
            if index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING

    return current


def to_text(value: Any) -> str:
    """Render a value the way it appears when interpolated into step text"""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if value is None:
        return 'null'
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def resolve_variables(text: str, variables: Dict[str, Any]) -> str:
    """Replace #{path} tokens with values from the variable bindings.

    Unknown paths are left in place so the failure shows up in the step.
    """
    def replacer(match):
        value = resolve_path(variables, match.group(1).strip())
        if value is MISSING:
            return match.group(0)
        return to_text(value)

    return VARIABLE_TOKEN.sub(replacer, text)


def lookup(ctx, expr: str) -> Any:
    """Resolve ``response``, ``response.items[0]``, a variable name or ``var.path``.

    Returns MISSING when nothing matches.
    """
    expr = expr.strip()
    body = ctx.response.body if ctx.response is not None else MISSING

    if expr == 'response':
        return body
    if expr.startswith('response.') or expr.startswith('response['):
        if body is MISSING:
            return MISSING
        return resolve_path(body, expr[len('response'):])

    if expr in ctx.variables:
        return ctx.variables[expr]

    head = re.match(r'(\w+)([.\[].*)$', expr)
    if head and head.group(1) in ctx.variables:
        return resolve_path(ctx.variables[head.group(1)], head.group(2))

    return MISSING

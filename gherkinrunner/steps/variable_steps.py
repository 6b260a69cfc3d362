"""
Variable steps
def / print, plus JSONPath extraction from the last response
"""

import json
from typing import Any, List
from jsonpath_ng import parse as jsonpath_parse
from jsonpath_ng.exceptions import JSONPathError
from gherkinrunner.parser.step_registry import StepDefinition
from gherkinrunner.utils.helpers import MISSING, lookup, to_text, unquote
from gherkinrunner.utils.logger import setup_logger

logger = setup_logger(__name__)


def resolve_value(ctx, expr: str) -> Any:
    """Reference (response, variable, path), then JSON, then unquoted text"""
    expr = expr.strip()

    value = lookup(ctx, expr)
    if value is not MISSING:
        return value

    try:
        return json.loads(expr)
    except ValueError:
        return unquote(expr)


async def define_variable(ctx, match, doc_string=None, data_table=None):
    name = match.groups[0]
    ctx.variables[name] = resolve_value(ctx, match.groups[1])
    logger.debug(f"Stored {name} = {ctx.variables[name]}")


async def define_from_jsonpath(ctx, match, doc_string=None, data_table=None):
    name = match.groups[0]
    path = match.groups[1].strip()
    if ctx.response is None:
        raise AssertionError("No response available. Did you execute a request with 'method'?")

    try:
        expression = jsonpath_parse(path)
    except JSONPathError as e:
        raise ValueError(f"Invalid JSONPath '{path}': {str(e)}")

    matches = expression.find(ctx.response.body)
    if not matches:
        raise AssertionError(f"JSONPath '{path}' returned no matches")

    values = [m.value for m in matches]
    ctx.variables[name] = values[0] if len(values) == 1 else values
    logger.debug(f"Stored {name} = {ctx.variables[name]}")


async def print_value(ctx, match, doc_string=None, data_table=None):
    value = resolve_value(ctx, match.groups[0])
    if isinstance(value, (dict, list)):
        output = json.dumps(value, indent=2)
    else:
        output = to_text(value)
    ctx.prints.append(output)
    logger.info(f"[print] {output}")


def get_variable_step_definitions() -> List[StepDefinition]:
    """Step definitions for variables and printing"""
    return [
        # def name = jsonpath $.items[0].id
        StepDefinition(
            pattern=r'def\s+(\w+)\s*=\s*jsonpath\s+(.+)',
            handler=define_from_jsonpath,
            description="Define a variable from a JSONPath query on the response"
        ),

        # def name = expression (not 'eval', that belongs to the scripting plugin)
        StepDefinition(
            pattern=r'def\s+(\w+)\s*=\s*(?!\s*eval\s*$)(.+)',
            handler=define_variable,
            description="Define a variable from an expression"
        ),

        # print expression
        StepDefinition(
            pattern=r'print\s+(.+)',
            handler=print_value,
            description="Print a value to the step output"
        ),
    ]

"""
HTTP request steps
url / method / header / param / request / status
"""

import json
import re
from typing import List, Optional
from gherkinrunner.executor.api_executor import APIExecutor
from gherkinrunner.parser.step_registry import StepDefinition
from gherkinrunner.utils.helpers import resolve_variables, unquote
from gherkinrunner.utils.logger import setup_logger

logger = setup_logger(__name__)


def _parse_body(text: str):
    try:
        return json.loads(text)
    except ValueError:
        return text


async def set_url(ctx, match, doc_string=None, data_table=None):
    ctx.url = resolve_variables(unquote(match.groups[0].strip()), ctx.variables)


async def set_header(ctx, match, doc_string=None, data_table=None):
    key = match.groups[0].strip()
    ctx.headers[key] = resolve_variables(unquote(match.groups[1].strip()), ctx.variables)


async def set_param(ctx, match, doc_string=None, data_table=None):
    key = match.groups[0].strip()
    ctx.params[key] = resolve_variables(unquote(match.groups[1].strip()), ctx.variables)


async def set_inline_body(ctx, match, doc_string=None, data_table=None):
    ctx.request_body = _parse_body(resolve_variables(match.groups[0], ctx.variables))


async def set_doc_string_body(ctx, match, doc_string=None, data_table=None):
    if not doc_string:
        raise ValueError("'request' step requires a doc string body")
    ctx.request_body = _parse_body(resolve_variables(doc_string, ctx.variables))


async def assert_status(ctx, match, doc_string=None, data_table=None):
    expected = int(match.groups[0])
    if ctx.response is None:
        raise AssertionError("No response available. Did you execute a request with 'method'?")
    if ctx.response.status != expected:
        raise AssertionError(f"Expected status {expected} but got {ctx.response.status}")


def get_http_step_definitions(executor: Optional[APIExecutor] = None) -> List[StepDefinition]:
    """Step definitions for building and sending HTTP requests"""
    executor = executor or APIExecutor()

    async def send_request(ctx, match, doc_string=None, data_table=None):
        ctx.method = match.groups[0].upper()
        ctx.response = await executor.execute_request(ctx)
        logger.debug(f"Stored response {ctx.response.status} on the context")

    return [
        # url 'https://...'
        StepDefinition(
            pattern=r'url\s+(.+)',
            handler=set_url,
            description="Set the URL for the HTTP request"
        ),

        # method GET / POST / ...
        StepDefinition(
            pattern=re.compile(r'method\s+(GET|POST|PUT|DELETE|PATCH|HEAD|OPTIONS)', re.IGNORECASE),
            handler=send_request,
            description="Execute the HTTP request with the given method"
        ),

        # header Key = 'Value'
        StepDefinition(
            pattern=r'header\s+(.+?)\s*=\s*(.+)',
            handler=set_header,
            description="Set a request header"
        ),

        # param key = 'value'
        StepDefinition(
            pattern=r'param\s+(.+?)\s*=\s*(.+)',
            handler=set_param,
            description="Set a query parameter"
        ),

        # request { ... }
        StepDefinition(
            pattern=r'request\s+(.+)',
            handler=set_inline_body,
            description="Set the request body inline"
        ),

        # request + doc string
        StepDefinition(
            pattern=r'request',
            handler=set_doc_string_body,
            description="Set the request body from a doc string"
        ),

        # status 200
        StepDefinition(
            pattern=r'status\s+(\d+)',
            handler=assert_status,
            description="Assert the response status code"
        ),
    ]

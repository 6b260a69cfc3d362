"""
gherkinrunner/executor/api_executor.py
HTTP request execution for the built-in steps, cancellable through the context signal
"""

import asyncio
import json
import time
from typing import Any, Dict, Optional
import aiohttp
from gherkinrunner.errors import ExecutionCancelled
from gherkinrunner.executor.context import ExecutionContext, HttpResponse
from gherkinrunner.utils.logger import setup_logger

logger = setup_logger(__name__)

BODYLESS_METHODS = ('GET', 'HEAD')


class APIExecutor:
    """Execute the request accumulated on an ExecutionContext"""

    def __init__(self, timeout: float = 30):
        self.timeout = timeout

    def build_request(self, ctx: ExecutionContext) -> Dict[str, Any]:
        """Assemble method, url, headers and body from the context"""
        method = ctx.method.upper()
        headers = dict(ctx.headers)
        body = None

        if ctx.request_body is not None and method not in BODYLESS_METHODS:
            if isinstance(ctx.request_body, str):
                body = ctx.request_body
            else:
                body = json.dumps(ctx.request_body)
            if not any(k.lower() == 'content-type' for k in headers):
                headers['Content-Type'] = 'application/json'

        return {
            'method': method,
            'url': ctx.url,
            'headers': headers,
            'params': dict(ctx.params) or None,
            'body': body
        }

    async def execute_request(self, ctx: ExecutionContext) -> HttpResponse:
        """Send the request; aborts when the context signal is cancelled"""
        if not ctx.url:
            raise ValueError("No URL set. Use 'url <address>' before 'method'")

        ctx.signal.raise_if_cancelled()
        request = self.build_request(ctx)

        logger.info(f"{request['method']} {request['url']}")
        logger.debug(f"Headers: {request['headers']}")
        logger.debug(f"Params: {request['params']}")
        logger.debug(f"Body: {request['body']}")

        request_task = asyncio.ensure_future(self._send(request))
        cancel_task = asyncio.ensure_future(ctx.signal.wait())
        try:
            done, _ = await asyncio.wait({request_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_task.cancel()

        if request_task not in done:
            request_task.cancel()
            try:
                await request_task
            except (asyncio.CancelledError, Exception):
                pass
            logger.warning(f"Request aborted: {request['method']} {request['url']}")
            raise ExecutionCancelled()

        response = request_task.result()
        logger.info(f"Response: {response.status} in {response.response_time:.0f}ms")
        logger.debug(f"Response body: {response.body}")
        return response

    async def _send(self, request: Dict[str, Any]) -> HttpResponse:
        start_time = time.perf_counter()
        try:
            async with aiohttp.ClientSession() as session:
                async with session.request(
                        method=request['method'],
                        url=request['url'],
                        headers=request['headers'],
                        params=request['params'],
                        data=request['body'],
                        timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    response_text = await response.text()
                    response_time = (time.perf_counter() - start_time) * 1000

                    return HttpResponse(
                        status=response.status,
                        status_text=response.reason or '',
                        headers=dict(response.headers),
                        body=self._parse_body(response.headers.get('Content-Type', ''), response_text),
                        response_time=response_time
                    )
        except asyncio.TimeoutError:
            error_msg = f"Request timeout after {self.timeout}s"
            logger.error(error_msg)
            raise TimeoutError(error_msg)
        except aiohttp.ClientError as e:
            error_msg = f"Request failed: {str(e)}"
            logger.error(error_msg)
            raise ConnectionError(error_msg) from e

    @staticmethod
    def _parse_body(content_type: str, text: str) -> Optional[Any]:
        """JSON bodies are decoded, everything else stays text"""
        if 'application/json' in content_type.lower():
            try:
                return json.loads(text)
            except ValueError:
                return text
        return text

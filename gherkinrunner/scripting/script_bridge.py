"""
Script bridge
Runs user Python snippets against an ExecutionContext.

Scripts see these globals:
    ctx        the ExecutionContext of the running scenario
    variables  ctx.variables
    response   the last HTTP response as a dict, or None
    print      appends to the step's print output
    json       json.encode(value) / json.decode(text)
    step       step(pattern, fn) registers a custom step; fn(ctx, *groups)

A script may ``return`` a value; it becomes the result of ``def x = eval``.
Callers run ``execute`` in a worker thread; the trace hook checks the
cancel token every ``check_interval`` events.
"""

import asyncio
import builtins
import inspect
import json
import re
import sys
import textwrap
from types import SimpleNamespace
from typing import Any, Callable, List
from gherkinrunner.errors import ExecutionCancelled, ScriptError
from gherkinrunner.executor.context import CancelToken, ExecutionContext
from gherkinrunner.parser.step_registry import StepDefinition
from gherkinrunner.utils.helpers import to_text
from gherkinrunner.utils.logger import setup_logger

logger = setup_logger(__name__)

CUSTOM_SOURCE = "script-custom"
SCRIPT_FUNCTION = '__script__'


class ScriptBridge:
    """Executes scripts and collects the custom steps they register"""

    def __init__(self, check_interval: int = 1000):
        self.check_interval = check_interval
        self._custom_steps: List[StepDefinition] = []

    def execute(self, code: str, ctx: ExecutionContext) -> Any:
        """Run code and return whatever it returns"""
        ctx.signal.raise_if_cancelled()

        try:
            compiled = compile(self._wrap(code), '<script>', 'exec')
        except SyntaxError as e:
            line = max((e.lineno or 2) - 1, 1)
            raise ScriptError(f"Script syntax error: {e.msg} (line {line})") from e

        namespace = self._globals(ctx)
        exec(compiled, namespace)
        return self._guarded(ctx.signal, namespace[SCRIPT_FUNCTION])

    @property
    def custom_steps(self) -> List[StepDefinition]:
        return list(self._custom_steps)

    def clear_custom_steps(self):
        self._custom_steps = []

    @staticmethod
    def _wrap(code: str) -> str:
        body = textwrap.indent(textwrap.dedent(code), '    ')
        return f"def {SCRIPT_FUNCTION}():\n{body}\n    pass\n"

    def _guarded(self, signal: CancelToken, fn: Callable, *args) -> Any:
        """Call fn with a trace hook that aborts once the signal is cancelled"""
        counter = [0]

        def tracer(frame, event, arg):
            counter[0] += 1
            if counter[0] >= self.check_interval:
                counter[0] = 0
                if signal.cancelled:
                    raise ExecutionCancelled()
            return tracer

        previous = sys.gettrace()
        sys.settrace(tracer)
        try:
            return fn(*args)
        except (ExecutionCancelled, ScriptError, AssertionError):
            raise
        except Exception as e:
            raise ScriptError(f"{e.__class__.__name__}: {str(e)}") from e
        finally:
            sys.settrace(previous)

    def _globals(self, ctx: ExecutionContext) -> dict:
        def script_print(*args):
            parts = []
            for value in args:
                if isinstance(value, str):
                    parts.append(value)
                elif isinstance(value, (dict, list)):
                    parts.append(json.dumps(value))
                else:
                    parts.append(to_text(value))
            output = '\t'.join(parts)
            ctx.prints.append(output)
            logger.info(f"[script print] {output}")

        def decode(value):
            if value is None:
                raise ScriptError("json.decode: got None")
            if not isinstance(value, str):
                return value
            try:
                return json.loads(value)
            except ValueError as e:
                raise ScriptError(f"json.decode error: {str(e)}")

        def encode(value):
            try:
                return json.dumps(value)
            except (TypeError, ValueError) as e:
                raise ScriptError(f"json.encode error: {str(e)}")

        return {
            '__builtins__': builtins,
            '__name__': '__script__',
            'ctx': ctx,
            'variables': ctx.variables,
            'response': ctx.response.to_dict() if ctx.response else None,
            'print': script_print,
            'json': SimpleNamespace(encode=encode, decode=decode),
            'step': self._register_step,
        }

    def _register_step(self, pattern, fn):
        if not isinstance(pattern, str):
            raise ScriptError("step() first argument must be a pattern string")
        if not callable(fn):
            raise ScriptError("step() second argument must be a function")
        try:
            compiled = re.compile(pattern)
        except re.error:
            raise ScriptError(f"step() invalid regex pattern: {pattern}")

        bridge = self

        async def handler(ctx, match, doc_string=None, data_table=None):
            result = await asyncio.to_thread(bridge._guarded, ctx.signal, fn, ctx, *match.groups)
            if inspect.isawaitable(result):
                await result

        self._custom_steps.append(StepDefinition(
            pattern=compiled,
            handler=handler,
            description=f"Script custom step: {pattern}",
            source=CUSTOM_SOURCE
        ))
        logger.debug(f"Script registered custom step: {pattern}")

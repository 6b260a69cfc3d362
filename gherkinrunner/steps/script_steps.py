"""
Script steps
eval / def x = eval / script '<name>'
"""

import asyncio
from typing import Callable, List
from gherkinrunner.parser.step_registry import StepDefinition
from gherkinrunner.scripting.script_bridge import ScriptBridge
from gherkinrunner.scripting.script_storage import Script

SOURCE = "script-plugin"


def get_script_step_definitions(get_bridge: Callable[[], ScriptBridge],
                                get_scripts: Callable[[], List[Script]]) -> List[StepDefinition]:
    """Step definitions that run scripts through the bridge"""

    async def run_inline(ctx, match, doc_string=None, data_table=None):
        if not doc_string:
            raise ValueError("'eval' step requires a doc string with script code")
        await asyncio.to_thread(get_bridge().execute, doc_string, ctx)

    async def define_from_script(ctx, match, doc_string=None, data_table=None):
        if not doc_string:
            raise ValueError("'def ... = eval' step requires a doc string with script code")
        ctx.variables[match.groups[0]] = await asyncio.to_thread(get_bridge().execute, doc_string, ctx)

    async def run_stored(ctx, match, doc_string=None, data_table=None):
        name = match.groups[0]
        script = next((s for s in get_scripts() if s.name == name and s.enabled), None)
        if script is None:
            raise LookupError(f"Script '{name}' not found or disabled")
        await asyncio.to_thread(get_bridge().execute, script.code, ctx)

    return [
        # eval + doc string
        StepDefinition(
            pattern=r'eval',
            handler=run_inline,
            description="Execute inline script code",
            source=SOURCE
        ),

        # def name = eval + doc string
        StepDefinition(
            pattern=r'def\s+(\w+)\s*=\s*eval',
            handler=define_from_script,
            description="Execute script code and capture its return value",
            source=SOURCE
        ),

        # script 'name'
        StepDefinition(
            pattern=r"script\s+'([^']+)'",
            handler=run_stored,
            description="Execute a stored script by name",
            source=SOURCE
        ),
    ]

"""
Browser automation steps
All browser steps share one CdpClient per scenario, stored on ctx.browser
"""

import base64
import io
import os
from datetime import datetime
from typing import Callable, List
from PIL import Image
from gherkinrunner.core.cdp_client import CdpClient
from gherkinrunner.parser.step_registry import StepDefinition
from gherkinrunner.utils.helpers import resolve_variables, sanitize_filename, unquote
from gherkinrunner.utils.logger import setup_logger

logger = setup_logger(__name__)

SOURCE = "browser-plugin"


def _arg(ctx, text: str) -> str:
    """Unquote a step argument and substitute #{variables}"""
    return resolve_variables(unquote(text.strip()), ctx.variables)


def get_client(ctx) -> CdpClient:
    if ctx.browser is None:
        raise RuntimeError("No browser session - use 'browser open' first")
    return ctx.browser


def save_screenshot(data: str, directory: str, name: str = 'screenshot') -> str:
    """Decode a base64 PNG and write it under directory, returns the file path"""
    os.makedirs(directory, exist_ok=True)
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S_%f')
    path = os.path.join(directory, f"{sanitize_filename(name)}_{timestamp}.png")

    img = Image.open(io.BytesIO(base64.b64decode(data)))
    img.save(path, format='PNG')
    logger.info(f"Screenshot saved: {path}")
    return path


def get_browser_step_definitions(create_client: Callable[[], CdpClient],
                                 screenshot_dir: str = 'reports/screenshots') -> List[StepDefinition]:
    """Step definitions driving a browser tab; create_client builds a fresh CdpClient"""

    async def open_page(ctx, match, doc_string=None, data_table=None):
        url = _arg(ctx, match.groups[0])
        if ctx.browser is not None:
            await ctx.browser.close_tab()
        client = create_client()
        ctx.browser = client
        await client.open_tab(url)

    async def navigate(ctx, match, doc_string=None, data_table=None):
        await get_client(ctx).navigate(_arg(ctx, match.groups[0]))

    async def click(ctx, match, doc_string=None, data_table=None):
        await get_client(ctx).click(_arg(ctx, match.groups[0]))

    async def fill(ctx, match, doc_string=None, data_table=None):
        await get_client(ctx).fill(_arg(ctx, match.groups[0]), _arg(ctx, match.groups[1]))

    async def text_equals(ctx, match, doc_string=None, data_table=None):
        expected = _arg(ctx, match.groups[1])
        actual = await get_client(ctx).get_text(_arg(ctx, match.groups[0]))
        if actual != expected:
            raise AssertionError(f'Expected text "{expected}" but got "{actual}"')

    async def text_contains(ctx, match, doc_string=None, data_table=None):
        expected = _arg(ctx, match.groups[1])
        actual = await get_client(ctx).get_text(_arg(ctx, match.groups[0]))
        if expected not in actual:
            raise AssertionError(f'Expected text to contain "{expected}" but got "{actual}"')

    async def visible(ctx, match, doc_string=None, data_table=None):
        selector = _arg(ctx, match.groups[0])
        client = get_client(ctx)
        await client.wait_for_selector(selector)
        if not await client.is_visible(selector):
            raise AssertionError(f"Element is not visible: {selector}")

    async def not_visible(ctx, match, doc_string=None, data_table=None):
        selector = _arg(ctx, match.groups[0])
        if await get_client(ctx).is_visible(selector):
            raise AssertionError(f"Element should not be visible: {selector}")

    async def screenshot(ctx, match, doc_string=None, data_table=None):
        data = await get_client(ctx).screenshot()
        ctx.screenshot = save_screenshot(data, screenshot_dir)

    async def wait_for(ctx, match, doc_string=None, data_table=None):
        await get_client(ctx).wait_for_selector(_arg(ctx, match.groups[0]))

    async def select(ctx, match, doc_string=None, data_table=None):
        await get_client(ctx).select(_arg(ctx, match.groups[0]), _arg(ctx, match.groups[1]))

    async def check(ctx, match, doc_string=None, data_table=None):
        await get_client(ctx).check(_arg(ctx, match.groups[0]))

    async def uncheck(ctx, match, doc_string=None, data_table=None):
        await get_client(ctx).uncheck(_arg(ctx, match.groups[0]))

    async def press(ctx, match, doc_string=None, data_table=None):
        await get_client(ctx).press(unquote(match.groups[0].strip()))

    async def close(ctx, match, doc_string=None, data_table=None):
        await get_client(ctx).close_tab()
        ctx.browser = None

    async def capture(ctx, match, doc_string=None, data_table=None):
        name, kind = match.groups[0], match.groups[1]
        client = get_client(ctx)
        selector = _arg(ctx, match.groups[2])
        if kind == 'text':
            ctx.variables[name] = await client.get_text(selector)
        else:
            ctx.variables[name] = await client.get_value(selector)
        logger.debug(f"Stored {name} = {ctx.variables[name]}")

    table = [
        (r'browser\s+open\s+(.+)', open_page, "Open a new tab and navigate to URL"),
        (r'browser\s+navigate\s+to\s+(.+)', navigate, "Navigate the current tab to URL"),
        (r'browser\s+click\s+(.+)', click, "Click an element"),
        (r'browser\s+fill\s+(.+?)\s+with\s+(.+)', fill, "Type a value into an input"),
        (r'browser\s+text\s+(.+?)\s*==\s*(.+)', text_equals, "Assert element text equals expected value"),
        (r'browser\s+text\s+(.+?)\s+contains\s+(.+)', text_contains, "Assert element text contains expected value"),
        (r'browser\s+visible\s+(.+)', visible, "Assert element is visible"),
        (r'browser\s+not\s+visible\s+(.+)', not_visible, "Assert element is not visible"),
        (r'browser\s+screenshot', screenshot, "Capture a page screenshot"),
        (r'browser\s+wait\s+for\s+(.+)', wait_for, "Wait for element to appear"),
        (r'browser\s+select\s+(.+?)\s+value\s+(.+)', select, "Select a dropdown option"),
        (r'browser\s+check\s+(.+)', check, "Check a checkbox"),
        (r'browser\s+uncheck\s+(.+)', uncheck, "Uncheck a checkbox"),
        (r'browser\s+press\s+(.+)', press, "Press a keyboard key"),
        (r'browser\s+close', close, "Close the tab and detach"),
        (r'def\s+(\w+)\s*=\s*browser\s+(text|value)\s+(.+)', capture, "Capture element text or value into a variable"),
    ]

    return [
        StepDefinition(pattern=pattern, handler=handler, description=description, source=SOURCE)
        for pattern, handler, description in table
    ]

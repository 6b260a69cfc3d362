"""
CDP client
High-level browser automation over a Chrome DevTools Protocol session.

Every element action waits for its selector first, and click watches for the
navigation it may have started so the next step never queries a dying document.
"""

import asyncio
import json
import time
from typing import Any, Dict, Optional
from playwright.async_api import Error as PlaywrightError, Page
from gherkinrunner.core.browser_manager import BrowserManager
from gherkinrunner.core.selector_compiler import SelectorCompiler
from gherkinrunner.errors import ProtocolError, StepTimeoutError
from gherkinrunner.utils.logger import setup_logger

logger = setup_logger(__name__)

DEFAULT_TIMEOUT = 10.0
POLL_INTERVAL = 0.15
LOAD_POLL_INTERVAL = 0.1
NAVIGATION_SETTLE = 0.3

KEY_MAP = {
    'Enter': ('Enter', 'Enter', 13),
    'Tab': ('Tab', 'Tab', 9),
    'Escape': ('Escape', 'Escape', 27),
    'Backspace': ('Backspace', 'Backspace', 8),
    'Delete': ('Delete', 'Delete', 46),
    'ArrowUp': ('ArrowUp', 'ArrowUp', 38),
    'ArrowDown': ('ArrowDown', 'ArrowDown', 40),
    'ArrowLeft': ('ArrowLeft', 'ArrowLeft', 37),
    'ArrowRight': ('ArrowRight', 'ArrowRight', 39),
    'Space': (' ', 'Space', 32),
}


def key_definition(key: str) -> Dict[str, Any]:
    """CDP key event fields for a key name or a single character"""
    if key in KEY_MAP:
        name, code, key_code = KEY_MAP[key]
    else:
        name, code, key_code = key, f"Key{key.upper()}", ord(key[0]) if key else 0
    return {
        'key': name,
        'code': code,
        'windowsVirtualKeyCode': key_code,
        'nativeVirtualKeyCode': key_code,
    }


class CdpClient:
    """One debugger session bound to one tab at a time"""

    def __init__(self, browser_manager: Optional[BrowserManager] = None, timeout: float = DEFAULT_TIMEOUT,
                 poll_interval: float = POLL_INTERVAL, navigation_settle: float = NAVIGATION_SETTLE,
                 compiler: Optional[SelectorCompiler] = None):
        self.browser_manager = browser_manager
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.navigation_settle = navigation_settle
        self.compiler = compiler or SelectorCompiler()
        self.page: Optional[Page] = None
        self.session = None

    @property
    def attached(self) -> bool:
        return self.session is not None

    # Lifecycle

    async def open_tab(self, url: str) -> Page:
        """Open a new tab, attach to it and load url"""
        if self.browser_manager is None:
            raise ProtocolError("No browser available to open a tab")

        page = await self.browser_manager.new_page()
        await self.attach(page)
        await self.navigate(url)
        return page

    async def attach(self, page: Page):
        if self.session is not None:
            await self.detach()

        try:
            self.session = await page.context.new_cdp_session(page)
        except PlaywrightError as e:
            raise ProtocolError(f"Failed to attach debugger: {str(e)}") from e

        self.page = page
        await self.send("Page.enable")
        await self.send("DOM.enable")
        await self.send("Runtime.enable")
        logger.debug(f"Debugger attached to {page.url}")

    async def detach(self):
        if self.session is None:
            return

        session, self.session = self.session, None
        try:
            await session.detach()
        except Exception as e:
            logger.debug(f"Detach ignored: {str(e)}")

    async def close_tab(self):
        page, self.page = self.page, None
        await self.detach()
        if page is None:
            return
        try:
            await page.close()
        except Exception as e:
            logger.debug(f"Close tab ignored: {str(e)}")

    # Low-level protocol

    async def send(self, method: str, params: Optional[Dict] = None) -> Dict:
        if self.session is None:
            raise ProtocolError("No debugger session - use 'browser open' first")
        try:
            return await self.session.send(method, params or {})
        except PlaywrightError as e:
            raise ProtocolError(f"{method} failed: {str(e)}") from e

    async def evaluate(self, expression: str) -> Any:
        result = await self.send("Runtime.evaluate", {
            'expression': expression,
            'returnByValue': True,
            'awaitPromise': True,
        })

        details = result.get('exceptionDetails')
        if details:
            message = (details.get('exception') or {}).get('description') or details.get('text')
            raise ProtocolError(f"JS error: {message}")

        return result.get('result', {}).get('value')

    # Navigation

    async def navigate(self, url: str):
        logger.info(f"Navigating to {url}")
        result = await self.send("Page.navigate", {'url': url})
        if result.get('errorText'):
            raise ProtocolError(f"Navigation to {url} failed: {result['errorText']}")
        await self.wait_for_load()

    async def wait_for_load(self, timeout: Optional[float] = None):
        """Poll until readyState is interactive or complete; gives up silently at the deadline"""
        deadline = time.monotonic() + (timeout if timeout is not None else self.timeout)
        while time.monotonic() < deadline:
            try:
                state = await self.evaluate("document.readyState")
                if state in ('interactive', 'complete'):
                    return
            except ProtocolError:
                pass
            await asyncio.sleep(LOAD_POLL_INTERVAL)
        logger.warning("Timed out waiting for page load")

    async def current_url(self) -> str:
        return await self.evaluate("window.location.href")

    async def wait_for_possible_navigation(self, url_before: str):
        """Wait for a navigation that an action may have started"""
        await asyncio.sleep(self.navigation_settle)

        try:
            url_after = await self.current_url()
        except ProtocolError:
            await self.wait_for_load()
            return

        if url_after != url_before:
            logger.debug(f"Navigation detected: {url_before} -> {url_after}")
            await self.wait_for_load()
            return

        try:
            state = await self.evaluate("document.readyState")
        except ProtocolError:
            await self.wait_for_load()
            return
        if state == 'loading':
            await self.wait_for_load()

    # Element queries

    async def resolve(self, selector: str) -> Dict:
        """Describe how selector resolves on the current page"""
        compiled = self.compiler.compile(selector)
        return await self.evaluate(compiled.resolve_expression) or {'found': False, 'count': 0, 'selector': selector}

    async def wait_for_selector(self, selector: str, timeout: Optional[float] = None) -> Dict:
        """Poll until selector resolves to an element, returns the resolution"""
        compiled = self.compiler.compile(selector)
        deadline = time.monotonic() + (timeout if timeout is not None else self.timeout)
        last_error = ''

        while time.monotonic() < deadline:
            try:
                resolution = await self.evaluate(compiled.resolve_expression)
                if resolution and resolution.get('found'):
                    if resolution.get('count', 0) > 1 and resolution.get('selector') != selector:
                        logger.warning(f"Selector '{selector}' matched {resolution['count']} elements, "
                                       f"using the first; unambiguous form: {resolution['selector']}")
                    return resolution
            except ProtocolError as e:
                last_error = str(e)
            await asyncio.sleep(self.poll_interval)

        message = f"Timeout waiting for element: {selector}"
        if last_error:
            message += f" (last error: {last_error})"
        raise StepTimeoutError(message)

    async def _run_on_element(self, selector: str, body: str) -> Any:
        """Evaluate body with ``el`` bound to the resolved element"""
        compiled = self.compiler.compile(selector)
        return await self.evaluate(
            f"(() => {{ const el = {compiled.expression};\n"
            f"if (!el) throw new Error({json.dumps('Element not found: ' + selector)});\n"
            f"{body} }})()"
        )

    # Actions

    async def click(self, selector: str):
        await self.wait_for_selector(selector)
        await self._run_on_element(selector, "el.scrollIntoView({block: 'center', inline: 'center'});")
        box = await self._run_on_element(
            selector,
            "const r = el.getBoundingClientRect(); return {x: r.x, y: r.y, width: r.width, height: r.height};"
        )
        x = box['x'] + box['width'] / 2
        y = box['y'] + box['height'] / 2

        try:
            url_before = await self.current_url()
        except ProtocolError:
            url_before = ''

        for event_type in ('mousePressed', 'mouseReleased'):
            await self.send("Input.dispatchMouseEvent", {
                'type': event_type,
                'x': x,
                'y': y,
                'button': 'left',
                'clickCount': 1,
            })
        logger.debug(f"Clicked {selector} at ({x:.0f}, {y:.0f})")

        await self.wait_for_possible_navigation(url_before)

    async def fill(self, selector: str, value: str):
        await self.wait_for_selector(selector)
        await self._run_on_element(
            selector,
            "el.focus(); el.value = ''; el.dispatchEvent(new Event('input', {bubbles: true}));"
        )

        for char in value:
            await self.send("Input.dispatchKeyEvent", {
                'type': 'keyDown',
                'text': char,
                'unmodifiedText': char,
                'key': char,
            })
            await self.send("Input.dispatchKeyEvent", {'type': 'keyUp', 'key': char})

        await self._run_on_element(
            selector,
            "el.dispatchEvent(new Event('change', {bubbles: true}));"
            "el.dispatchEvent(new Event('input', {bubbles: true}));"
        )

    async def get_text(self, selector: str) -> str:
        await self.wait_for_selector(selector)
        return await self._run_on_element(selector, "return (el.textContent || '').trim();")

    async def get_value(self, selector: str) -> str:
        await self.wait_for_selector(selector)
        return await self._run_on_element(selector, "return el.value == null ? '' : String(el.value);")

    async def is_visible(self, selector: str) -> bool:
        compiled = self.compiler.compile(selector)
        return bool(await self.evaluate(
            f"(() => {{ const el = {compiled.expression};\n"
            "if (!el) return false;\n"
            "const style = window.getComputedStyle(el);\n"
            "return style.display !== 'none' && style.visibility !== 'hidden'"
            " && style.opacity !== '0' && el.offsetParent !== null; })()"
        ))

    async def select(self, selector: str, value: str):
        await self.wait_for_selector(selector)
        await self._run_on_element(
            selector,
            f"el.value = {json.dumps(value)}; el.dispatchEvent(new Event('change', {{bubbles: true}}));"
        )

    async def check(self, selector: str):
        await self.wait_for_selector(selector)
        await self._run_on_element(selector, "if (!el.checked) { el.click(); }")

    async def uncheck(self, selector: str):
        await self.wait_for_selector(selector)
        await self._run_on_element(selector, "if (el.checked) { el.click(); }")

    async def press(self, key: str):
        definition = key_definition(key)
        await self.send("Input.dispatchKeyEvent", {'type': 'keyDown', **definition})
        await self.send("Input.dispatchKeyEvent", {'type': 'keyUp', **definition})

    async def screenshot(self) -> str:
        """Base64 PNG of the viewport"""
        result = await self.send("Page.captureScreenshot", {'format': 'png'})
        return result['data']

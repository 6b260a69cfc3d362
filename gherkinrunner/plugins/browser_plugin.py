"""Browser automation over CDP"""
from typing import Dict, List, Optional
from gherkinrunner.core.browser_manager import BrowserManager
from gherkinrunner.core.cdp_client import CdpClient, DEFAULT_TIMEOUT, NAVIGATION_SETTLE, POLL_INTERVAL
from gherkinrunner.core.selector_compiler import SelectorCompiler
from gherkinrunner.executor.context import ExecutionContext
from gherkinrunner.parser.step_registry import StepDefinition
from gherkinrunner.plugins.base import Plugin
from gherkinrunner.steps.browser_steps import get_browser_step_definitions
from gherkinrunner.utils.logger import setup_logger

logger = setup_logger(__name__)


class BrowserPlugin(Plugin):
    id = "browser-cdp"
    name = "Browser Automation (CDP)"

    def __init__(self, options: Optional[Dict] = None, browser_manager: Optional[BrowserManager] = None,
                 screenshot_dir: str = 'reports/screenshots'):
        self.options = options or {}
        self.browser_manager = browser_manager or BrowserManager(self.options)
        self.screenshot_dir = screenshot_dir
        self.compiler = SelectorCompiler()

    def create_client(self) -> CdpClient:
        return CdpClient(
            browser_manager=self.browser_manager,
            timeout=self.options.get('timeout', DEFAULT_TIMEOUT),
            poll_interval=self.options.get('poll_interval', POLL_INTERVAL),
            navigation_settle=self.options.get('navigation_settle', NAVIGATION_SETTLE),
            compiler=self.compiler
        )

    def get_step_definitions(self) -> List[StepDefinition]:
        return get_browser_step_definitions(self.create_client, self.screenshot_dir)

    async def after_scenario(self, ctx: ExecutionContext):
        """Detach and close any tab the scenario left behind"""
        if ctx.browser is None:
            return
        try:
            await ctx.browser.close_tab()
        except Exception as e:
            logger.debug(f"Browser cleanup ignored: {str(e)}")
        ctx.browser = None

    async def destroy(self):
        await self.browser_manager.stop()

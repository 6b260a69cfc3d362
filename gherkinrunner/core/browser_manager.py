"""Browser management and lifecycle"""
from playwright.async_api import async_playwright, Browser, BrowserContext, Page
from typing import Dict, Optional
from gherkinrunner.utils.logger import setup_logger

logger = setup_logger(__name__)


class BrowserManager:
    """Owns the Chromium process and hands out tabs for CDP sessions"""

    def __init__(self, options: Optional[Dict] = None):
        self.options = options or {}
        self.playwright = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None

    @property
    def started(self) -> bool:
        return self.context is not None

    async def start(self) -> BrowserContext:
        """Launch (or connect to) Chromium and return the browsing context"""
        if self.context:
            return self.context

        self.playwright = await async_playwright().start()
        endpoint = self.options.get('cdp_endpoint')

        if endpoint:
            logger.info(f"Connecting to Chromium at {endpoint}")
            self.browser = await self.playwright.chromium.connect_over_cdp(endpoint)
            if self.browser.contexts:
                self.context = self.browser.contexts[0]
        else:
            logger.info("Starting chromium browser")
            launch_options = {
                'headless': self.options.get('headless', True),
                'slow_mo': self.options.get('slow_mo', 0),
            }
            self.browser = await self.playwright.chromium.launch(**launch_options)

        if self.context is None:
            self.context = await self.browser.new_context(
                viewport={'width': 1280, 'height': 800},
                ignore_https_errors=True
            )

        return self.context

    async def new_page(self) -> Page:
        """Open a new tab in the shared context, starting the browser if needed"""
        context = await self.start()
        page = await context.new_page()
        page.on("console", lambda msg: logger.debug(f"Browser console: {msg.text}"))
        return page

    async def stop(self):
        """Stop browser and cleanup"""
        if self.playwright is None:
            return

        if self.context and not self.options.get('cdp_endpoint'):
            await self.context.close()
        if self.browser:
            await self.browser.close()
        if self.playwright:
            await self.playwright.stop()

        self.context = None
        self.browser = None
        self.playwright = None
        logger.info("Browser stopped")

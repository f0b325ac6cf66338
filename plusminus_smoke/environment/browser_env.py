"""Scoped headless-browser session for the smoke run.

Wraps Playwright's synchronous API: one driver, one Chromium instance, one
page. The session is a context manager so the browser is closed whatever way
the run ends, including KeyboardInterrupt.
"""

from __future__ import annotations

import logging

from playwright.sync_api import Browser, Page, Playwright, sync_playwright

logger = logging.getLogger(__name__)

VIEWPORT = {"width": 1280, "height": 800}


class BrowserSession:
    def __init__(self, headless: bool = True, viewport: dict | None = None):
        self.headless = headless
        self.viewport = viewport or VIEWPORT
        self.playwright: Playwright | None = None
        self.browser: Browser | None = None
        self.page: Page | None = None

    def start(self) -> Page:
        """Launch Chromium and open a fresh page."""
        self.playwright = sync_playwright().start()
        self.browser = self.playwright.chromium.launch(headless=self.headless)
        context = self.browser.new_context(viewport=self.viewport)
        self.page = context.new_page()
        logger.info("Chromium launched (headless=%s)", self.headless)
        return self.page

    def stop(self):
        """Close the browser and stop the driver. Safe to call twice."""
        if self.browser is not None:
            try:
                self.browser.close()
            finally:
                self.browser = None
                self.page = None
        if self.playwright is not None:
            self.playwright.stop()
            self.playwright = None
            logger.info("Chromium closed")

    def __enter__(self) -> "BrowserSession":
        try:
            self.start()
        except BaseException:
            self.stop()
            raise
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()

"""Page-reading collaborator backed by a Playwright browser."""

from __future__ import annotations

import logging
import random
import uuid
from typing import Any, Callable, Optional, Protocol

from playwright.async_api import Browser, Frame, Page, async_playwright

logger = logging.getLogger(__name__)

# Realistic user agents so pages render as they would for a visitor
USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
]

NavigationCallback = Callable[[str, str], Any]


class PageReader(Protocol):
    """Read-only access to live page sessions."""

    async def can_run_scripts(self, session_id: str) -> bool:
        """Whether extraction routines can be evaluated in the session's page."""
        ...

    async def run_script(self, session_id: str, script: str, arg: Any = None) -> Any:
        """Evaluate a read-only routine in the page and return its JSON result."""
        ...

    async def page_metadata(self, session_id: str) -> dict:
        """Return ``{"title": ..., "url": ...}`` without running page scripts."""
        ...


class UnknownSession(LookupError):
    pass


class PlaywrightPageReader:
    """Owns a headless browser and the page sessions opened through it."""

    def __init__(
        self,
        timeout: int = 30,
        headless: bool = True,
        on_navigation: Optional[NavigationCallback] = None,
    ):
        self.timeout = timeout * 1000  # Convert to ms
        self.headless = headless
        self.on_navigation = on_navigation
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._pages: dict[str, Page] = {}
        self._scripts_enabled: dict[str, bool] = {}
        self._last_urls: dict[str, str] = {}

    async def start(self):
        """Start the browser instance."""
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.headless,
            args=[
                "--disable-dev-shm-usage",
                "--no-sandbox",
                "--disable-setuid-sandbox",
                "--disable-gpu",
            ],
        )
        logger.info("Browser started")

    async def stop(self):
        """Close every session and stop the browser."""
        for session_id in list(self._pages):
            await self.close_session(session_id)
        if self._browser:
            await self._browser.close()
        if self._playwright:
            await self._playwright.stop()
        self._browser = None
        self._playwright = None
        logger.info("Browser stopped")

    async def open_session(self, url: str, *, javascript: bool = True) -> str:
        """Open ``url`` in a fresh context and return its page-session id."""
        if not self._browser:
            await self.start()

        context = await self._browser.new_context(
            viewport={"width": 1366, "height": 900},
            user_agent=random.choice(USER_AGENTS),
            java_script_enabled=javascript,
            locale="en-US",
        )
        try:
            page = await context.new_page()
            await page.goto(url, timeout=self.timeout, wait_until="domcontentloaded")
        except Exception as e:
            logger.warning(f"Failed to open {url}: {e}")
            await context.close()
            raise
        session_id = uuid.uuid4().hex

        try:
            await page.wait_for_load_state("networkidle", timeout=self.timeout)
        except Exception as e:
            logger.debug(f"Network never settled for {url}: {e}")

        self._pages[session_id] = page
        self._scripts_enabled[session_id] = javascript
        self._last_urls[session_id] = page.url
        page.on("framenavigated", lambda frame: self._handle_frame_navigated(session_id, frame))
        logger.info(f"Opened page session {session_id} for {url}")
        return session_id

    async def close_session(self, session_id: str):
        page = self._pages.pop(session_id, None)
        self._scripts_enabled.pop(session_id, None)
        self._last_urls.pop(session_id, None)
        if page is None:
            return
        try:
            await page.context.close()
        except Exception as e:
            logger.debug(f"Error closing session {session_id}: {e}")

    def _page(self, session_id: str) -> Page:
        page = self._pages.get(session_id)
        if page is None or page.is_closed():
            raise UnknownSession(f"No open page for session {session_id}")
        return page

    def _handle_frame_navigated(self, session_id: str, frame: Frame):
        page = self._pages.get(session_id)
        if page is None or frame != page.main_frame:
            return
        new_url = frame.url
        if new_url == self._last_urls.get(session_id):
            return
        self._last_urls[session_id] = new_url
        logger.debug(f"Session {session_id} navigated to {new_url}")
        if self.on_navigation:
            try:
                self.on_navigation(session_id, new_url)
            except Exception as e:
                logger.warning(f"Navigation callback failed for {session_id}: {e}")

    async def can_run_scripts(self, session_id: str) -> bool:
        try:
            self._page(session_id)
        except UnknownSession:
            return False
        return self._scripts_enabled.get(session_id, False)

    async def run_script(self, session_id: str, script: str, arg: Any = None) -> Any:
        page = self._page(session_id)
        return await page.evaluate(script, arg)

    async def page_metadata(self, session_id: str) -> dict:
        page = self._page(session_id)
        return {"title": await page.title(), "url": page.url}

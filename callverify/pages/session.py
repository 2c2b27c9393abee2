"""Browser lifecycle for multi-actor scenarios.

Each actor (supervisor, agent, ...) gets its own browser context so that
sessions and cookies never leak between them. Contexts are closed, and
traces saved, when the session closes.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from ..utils.config import AppConfig, get_config

logger = logging.getLogger(__name__)

FAKE_MEDIA_ARGS = [
    "--use-fake-ui-for-media-stream",
    "--use-fake-device-for-media-stream"
]


@dataclass
class Actor:
    """One logged-in participant."""
    name: str
    context: BrowserContext
    page: Page


class BrowserSession:
    """Owns the Playwright driver, one browser and one context per actor."""

    def __init__(self, config: Optional[AppConfig] = None):
        self.config = config or get_config()
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.actors: Dict[str, Actor] = {}

    async def start(self) -> "BrowserSession":
        browser_config = self.config.browser
        self.playwright = await async_playwright().start()
        args: List[str] = list(FAKE_MEDIA_ARGS) if browser_config.fake_media else []
        self.browser = await self.playwright.chromium.launch(
            headless=browser_config.headless,
            channel=browser_config.channel,
            slow_mo=browser_config.slow_mo,
            args=args
        )
        logger.info(f"Browser started (headless={browser_config.headless})")
        return self

    async def __aenter__(self) -> "BrowserSession":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def new_actor(self, name: str, timezone_id: Optional[str] = None,
                        permissions: Optional[List[str]] = None) -> Actor:
        """Open a fresh context and page for ``name``."""
        if self.browser is None:
            raise RuntimeError("Browser session not started")
        if name in self.actors:
            raise ValueError(f"Actor {name!r} already exists")

        context = await self.browser.new_context(
            timezone_id=timezone_id or self.config.portal.timezone,
            permissions=permissions or []
        )
        context.set_default_timeout(self.config.browser.action_timeout_ms)
        context.set_default_navigation_timeout(self.config.browser.navigation_timeout_ms)
        if self.config.browser.trace:
            await context.tracing.start(screenshots=True, snapshots=True)

        page = await context.new_page()
        actor = Actor(name=name, context=context, page=page)
        self.actors[name] = actor
        logger.info(f"Opened browser context for {name}")
        return actor

    def actor(self, name: str) -> Actor:
        try:
            return self.actors[name]
        except KeyError:
            raise KeyError(f"Unknown actor {name!r}") from None

    async def bring_to_front(self, name: str) -> Page:
        page = self.actor(name).page
        await page.bring_to_front()
        return page

    async def _close_actor(self, name: str, actor: Actor):
        try:
            if self.config.browser.trace:
                trace_path = Path(self.config.browser.trace_dir) / f"{name}-trace.zip"
                trace_path.parent.mkdir(parents=True, exist_ok=True)
                await actor.context.tracing.stop(path=str(trace_path))
                logger.info(f"Saved trace for {name} to {trace_path}")
        finally:
            await actor.context.close()

    async def close(self):
        """Close every context, the browser and the driver.

        A failing actor does not stop the rest from closing; the first error
        is raised once everything is down.
        """
        errors: List[BaseException] = []
        for name, actor in list(self.actors.items()):
            try:
                await self._close_actor(name, actor)
            except (PlaywrightError, OSError) as e:
                logger.error(f"Failed to close browser context for {name}: {e}")
                errors.append(e)
        self.actors.clear()

        try:
            if self.browser is not None:
                await self.browser.close()
        finally:
            self.browser = None
            if self.playwright is not None:
                await self.playwright.stop()
                self.playwright = None
        logger.info("Browser session closed")

        if errors:
            raise errors[0]

"""Shared behavior for Playwright page objects."""
import logging
from typing import Optional

from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..utils.config import AppConfig, get_config

logger = logging.getLogger(__name__)


class BasePage:
    """Wraps a Playwright page with the portal's selector conventions."""

    def __init__(self, page: Page, config: Optional[AppConfig] = None):
        self.page = page
        self.config = config or get_config()

    def by_data_cy(self, name: str) -> Locator:
        """Locate elements by their ``data-cy`` test attribute."""
        return self.page.locator(f'[data-cy="{name}"]')

    async def goto(self, route: str = "/"):
        url = self.config.portal.build_url(route)
        logger.debug(f"Navigating to {url}")
        await self.page.goto(url)

    async def pause(self, seconds: float):
        """Give the UI time to settle."""
        if seconds > 0:
            await self.page.wait_for_timeout(seconds * 1000)

    async def bring_to_front(self):
        await self.page.bring_to_front()

    async def soft_click(self, locator: Locator, timeout_ms: int = 5000, **kwargs) -> bool:
        """Click if the element shows up in time; report whether it did."""
        try:
            await locator.click(timeout=timeout_ms, **kwargs)
            return True
        except PlaywrightTimeoutError as e:
            logger.debug(f"Optional click skipped: {e}")
            return False

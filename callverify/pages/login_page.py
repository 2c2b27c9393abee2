"""Portal login for supervisors, UC agents and WebRTC agents."""
import logging
import re
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, expect

from .base_page import BasePage

logger = logging.getLogger(__name__)

AGENT_CLIENT_URL = re.compile(r"/ccagent")


class LoginPage(BasePage):
    """Consolidated login screen."""

    USERNAME_INPUT = "consolidated-login-username-input"
    PASSWORD_INPUT = "consolidated-login-password-input"
    LOGIN_BUTTON = "consolidated-login-login-button"
    VERSION_LABEL = "about-ccaas-version"
    VERSION_OK = "about-ccaas-ok"

    async def stagger_start(self):
        """Wait out the shared stagger countdown so parallel runs do not log in at once.

        Does nothing when no stagger page is configured. The countdown page is
        best effort: failures are logged and the login goes ahead.
        """
        stagger_url = self.config.portal.stagger_url
        if not stagger_url:
            return

        try:
            await self.page.goto(stagger_url)
            countdown = int(await self.page.inner_text("#countdown"))
            while countdown:
                logger.info(f"Test will begin in {countdown} seconds")
                await self.pause(1)
                countdown = int(await self.page.inner_text("#countdown"))
        except (PlaywrightError, ValueError) as e:
            logger.warning(f"Stagger page unavailable, starting now: {e}")

    async def submit_credentials(self, username: str, password: str):
        if not username or not password:
            raise ValueError("Username and password are required to log in")
        await self.by_data_cy(self.USERNAME_INPUT).fill(username)
        await self.by_data_cy(self.PASSWORD_INPUT).fill(password)
        await self.by_data_cy(self.LOGIN_BUTTON).click()

    async def read_version(self) -> Optional[str]:
        """Open the About dialog and return the product version, if it can be reached."""
        opened = False
        try:
            await self.page.locator(".initials").hover(timeout=5000)
            opened = await self.soft_click(self.page.get_by_role("button", name="About"))
            if not opened:
                await self.page.locator("xima-user-menu").get_by_role("button").click(timeout=5000)
                await self.page.get_by_role("menuitem", name="About").click(timeout=5000)
                opened = True
            version = await self.by_data_cy(self.VERSION_LABEL).inner_text(timeout=5000)
            await self.by_data_cy(self.VERSION_OK).click()
        except PlaywrightError as e:
            logger.warning(f"Could not read product version (about dialog opened: {opened}): {e}")
            return None

        logger.info(f"Product version: {version}")
        return version

    async def login_supervisor(self, username: Optional[str] = None, password: Optional[str] = None) -> Page:
        """Log in as a supervisor and wait for the reports home page."""
        portal = self.config.portal
        await self.stagger_start()
        await self.goto("/")
        await self.submit_credentials(
            username or portal.supervisor_username,
            password or portal.supervisor_password
        )
        await self.read_version()
        await expect(self.page.locator('[translationset="HOME_TITLE"]')).to_have_text(
            "Reports", timeout=self.config.browser.navigation_timeout_ms
        )
        logger.info("Supervisor logged in")
        return self.page

    async def login_agent(self, email: Optional[str] = None, password: Optional[str] = None) -> Page:
        """Log in as a UC agent and return the agent client page.

        Accounts that also hold reporting rights land on the reports home
        page; the agent client then opens in a popup, which replaces this page.
        """
        portal = self.config.portal
        await self.stagger_start()
        await self.goto("/")
        await self.submit_credentials(email or portal.agent_email, password or portal.agent_password)

        home_title = self.page.locator('[translationset="HOME_TITLE"]')
        await home_title.or_(self.page.locator(".avatar-name-container")).first.wait_for(
            timeout=self.config.browser.navigation_timeout_ms
        )
        if await home_title.is_visible():
            logger.info("Agent has reporting rights, opening the agent client from the menu")
            await self.page.hover('[data-mat-icon-name="external-link"]')
            async with self.page.expect_popup() as popup_info:
                await self.page.click(':text("Agent Client")')
            agent_page = await popup_info.value
            await self.page.close()
            self.page = agent_page

        await self._expect_agent_client()
        logger.info("Agent logged in")
        return self.page

    async def login_webrtc_agent(self, email: str, password: Optional[str] = None) -> Page:
        """Log in as a WebRTC agent."""
        await self.stagger_start()
        await self.goto("/")
        await self.submit_credentials(email, password or self.config.portal.webrtc_password)
        await self._expect_agent_client()
        logger.info(f"WebRTC agent {email} logged in")
        return self.page

    async def _expect_agent_client(self):
        timeout = self.config.browser.navigation_timeout_ms
        await expect(self.page.locator(".avatar-name-container")).to_be_visible(timeout=timeout)
        await expect(self.page).to_have_url(AGENT_CLIENT_URL, timeout=timeout)

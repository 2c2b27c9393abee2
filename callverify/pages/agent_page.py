"""Agent client actions: skills, availability and answering calls."""
import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import expect

from .base_page import BasePage

logger = logging.getLogger(__name__)

VOICE_CHANNEL = "channel-state-channel-VOICE"
OPTIONAL_CHANNELS = ("channel-state-channel-CHAT", "channel-state-channel-EMAIL")


class AgentPage(BasePage):
    """The agent client (``/ccagent``)."""

    async def enable_only_skill(self, skill: str):
        """Turn every skill off, then turn on ``Skill {skill}``."""
        logger.info(f"Enabling only skill {skill}")
        await self.by_data_cy("channel-state-manage-skills").click()
        await self.page.click(':text("All Skills Off")')
        await self.pause(1)
        await self.page.click(
            f'[class*="skill"]:has-text("Skill {skill}") '
            f'[data-cy="skills-edit-dialog-skill-slide-toggle"]'
        )
        await self.pause(1)
        await self.page.click('xima-dialog-header:text("Manage Skills") button')

    async def _clear_screen_pops(self):
        if await self.soft_click(self.page.locator("app-screen-pop-list-container"),
                                 timeout_ms=self.config.browser.expect_timeout_ms):
            await self.page.locator(':text-is("End Screen Pop")').click()

    async def _toggle_channel(self, data_cy: str):
        selector = f'[data-cy="{data_cy}"]'
        if await self.page.locator(selector).count() == 0:
            logger.info(f"Channel {data_cy} not present")
            return

        ready = self.page.locator(f"{selector}.ready").or_(self.page.locator(f"{selector} .ready"))
        disabled = self.page.locator(f"{selector}.channels-disabled").or_(
            self.page.locator(f"{selector} .channels-disabled")
        )

        if await disabled.count() > 0:
            logger.info(f"Turning channel {data_cy} on")
            await self.page.locator(selector).click(force=True)
            await self.pause(2)
            await self.soft_click(self.page.get_by_role("button", name="Confirm"))
            await expect(ready).to_have_count(1, timeout=10000)
        elif await ready.count() > 0:
            logger.debug(f"Channel {data_cy} already on")
        else:
            raise AssertionError(f"State of channel {data_cy} could not be determined")

    async def toggle_status_on(self):
        """Set the agent Ready and make sure the voice channel (and chat/email if present) is on."""
        await self._clear_screen_pops()

        status = self.page.locator('[class="dnd-status-text"]')
        if (await status.inner_text()).strip() != "Ready":
            logger.info("Agent not Ready, switching status")
            await self.page.locator('[class="dnd-status-container"] button').click(force=True, delay=500)
            await self.page.get_by_role("menuitem", name="Ready").click()
            await self.pause(2)
        await expect(status).to_have_text("Ready", timeout=7000)

        await self._toggle_channel(VOICE_CHANNEL)
        for channel in OPTIONAL_CHANNELS:
            try:
                await self._toggle_channel(channel)
            except (AssertionError, PlaywrightError) as e:
                logger.warning(f"Could not turn on {channel}: {e}")
        logger.info("Agent status is Ready")

    async def answer_call(self, from_number: Optional[str] = None):
        """Answer the ringing call, optionally checking the caller's number first."""
        timeout = self.config.browser.expect_timeout_ms
        if from_number:
            await expect(
                self.page.locator(f'.phone-number:has-text("{from_number}")')
            ).to_be_visible(timeout=timeout)
        await self.page.get_by_role("button", name="Answer Call").click(timeout=timeout)
        logger.info("Call answered")

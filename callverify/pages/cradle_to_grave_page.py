"""Cradle to Grave report page.

Implements the report view the locator searches: start times are read from
the START cells, rows are expanded by their displayed start time, and a
candidate row is confirmed by expanding one of its event rows and waiting
for a selector that only the expected call path renders. At most one row is
kept expanded so event reads never mix two calls.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from playwright.async_api import Locator, Page, expect

from ..reporting.row_assertions import describe_mismatch
from ..utils.config import AppConfig
from .base_page import BasePage

logger = logging.getLogger(__name__)


@dataclass
class ReportCriterion:
    """Report criterion and the values to tick for it."""
    name: str
    values: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.name or not self.values:
            raise ValueError(
                f"Invalid criterion {self!r}: needs a name and at least one value"
            )


class CradleToGravePage(BasePage):
    """Report table for the supervisor's Cradle to Grave tab."""

    TAB = "reports-c2g-component-tab-ctog"
    APPLY_BUTTON = "configure-cradle-to-grave-container-apply-button"
    REFRESH_BUTTON = "cradle-to-grave-toolbar-refresh-button"
    ROW = "cradle-to-grave-table-row"
    EXPAND_ROW_BUTTON = "cradle-to-grave-table-expand-row-button"
    START_CELL = "cradle-to-grave-table-cell-START"
    EVENT_NAME_CELL = "cradle-to-grave-table-cell-event-name"
    DETAILS_ROW = "cradle-to-grave-table-row-details-row"
    CRITERIA_CONTAINER = '[data-cy="xima-criteria-selector-container"]'

    # The sort button cycles, and a refresh resets it one step further along
    SORT_CLICKS = 2
    SORT_CLICKS_AFTER_REFRESH = 3

    def __init__(
        self,
        page: Page,
        config: Optional[AppConfig] = None,
        event_to_expand: Optional[str] = None,
        confirm_selector: Optional[str] = None
    ):
        super().__init__(page, config)
        self.event_to_expand = event_to_expand
        self.confirm_selector = confirm_selector
        self.expanded_row: Optional[str] = None

    async def open(self):
        """Switch to the Cradle to Grave tab."""
        if not await self.soft_click(self.by_data_cy(self.TAB)):
            await self.page.get_by_text("Cradle to Grave").first.click()
        logger.info("Opened Cradle to Grave report")

    def _parameter(self, label: str) -> Locator:
        return self.page.locator("app-configure-report-preview-parameter").filter(has_text=label)

    async def set_filter(
        self,
        channel: Optional[str] = None,
        agent: Optional[str] = None,
        skill: Optional[str] = None,
        start_filter_time: Optional[str] = None,
        criteria: Sequence[ReportCriterion] = ()
    ):
        """Configure the report preview and apply it.

        ``start_filter_time`` is a displayed time such as '10:15:00 AM'; only
        the clock part is entered in the Time of Day criterion.
        """
        if channel:
            await self._parameter("Channels 0 Selected").get_by_role("button").click()
            await self.page.get_by_text(channel).click()
            await self.page.get_by_role("button", name="Apply").click()

        if agent:
            await self._parameter("Agent 0 Selected").get_by_role("button").click()
            await self.page.get_by_text(agent).click()
            await self.page.get_by_role("button", name="Apply").click()

        if skill:
            await self._parameter("Skill 0 Selected").get_by_role("button").click()
            await self.page.locator(f'[data-cy="checkbox-tree-property-option"] :text("{skill}")').click()
            await self.page.get_by_role("button", name="Apply").click()

        if start_filter_time:
            await self.page.locator(f'{self.CRITERIA_CONTAINER} [data-cy="xima-header-add-button"]').click()
            await self.page.locator(f'{self.CRITERIA_CONTAINER} [data-cy="xima-criteria-selector-search-input"]').click()
            await self.page.get_by_text("Time of Day").click()
            await self.page.get_by_placeholder("Start Time").fill(start_filter_time.split(" ")[0])

        if criteria:
            await self._add_criteria(criteria)

        await self.page.locator(f'[data-cy="{self.APPLY_BUTTON}"]:has-text("Apply")').click()
        logger.info(f"Report filter applied (channel={channel}, agent={agent}, skill={skill})")

    async def _add_criteria(self, criteria: Sequence[ReportCriterion]):
        await self.page.locator(f'{self.CRITERIA_CONTAINER} [data-cy="xima-header-add-button"]').click()
        for criterion in criteria:
            await self.page.locator(f'{self.CRITERIA_CONTAINER} [data-cy="xima-criteria-selector-search-input"]').click()
            await self.page.get_by_text(criterion.name).click()
            await self.page.locator(
                '[data-cy="criteria-selector-parameter"] [data-cy="xima-preview-input-edit-button"]'
            ).click()
            await self.pause(1)
            for value in criterion.values:
                if value == "All":
                    await self.by_data_cy("checkbox-tree-property-select-all").click()
                else:
                    await self.page.locator(f'[data-cy="checkbox-tree-property-option"] :text("{value}")').click()
        await self.pause(self.config.report.settle_wait)
        await self.by_data_cy("checkbox-tree-dialog-apply-button").click()

    async def sort_by_end_timestamp(self, clicks: int = SORT_CLICKS):
        """Sort so the most recently ended calls come first."""
        button = self.page.get_by_role("button", name="End Timestamp")
        for _ in range(clicks):
            await button.click()

    async def refresh(self):
        await self.by_data_cy(self.REFRESH_BUTTON).click()
        # The table is rebuilt collapsed
        self.expanded_row = None
        await self.pause(self.config.report.settle_wait)
        await self.sort_by_end_timestamp(self.SORT_CLICKS_AFTER_REFRESH)
        await self.pause(self.config.report.settle_wait)

    async def displayed_start_times(self) -> List[str]:
        """Start times as displayed; each START cell reads 'date\\ntime'."""
        raw = await self.by_data_cy(self.START_CELL).all_inner_texts()
        times = []
        for text in raw:
            lines = [line.strip() for line in text.splitlines() if line.strip()]
            if lines:
                times.append(lines[1] if len(lines) > 1 else lines[0])
        return times

    def row(self, start_time: str) -> Locator:
        return self.page.locator(f'[data-cy="{self.ROW}"]:has(:text("{start_time}"))')

    def _expand_button(self, start_time: str) -> Locator:
        return self.row(start_time).locator(f'[data-cy="{self.EXPAND_ROW_BUTTON}"]').first

    async def expand_row(self, start_time: str):
        """Expand the row at ``start_time``, collapsing any other open row first."""
        if self.expanded_row == start_time:
            return
        if self.expanded_row is not None:
            await self.collapse_row()
        await self._expand_button(start_time).click()
        self.expanded_row = start_time

    async def collapse_row(self):
        """Close the currently expanded row, if it is still on screen."""
        start_time, self.expanded_row = self.expanded_row, None
        if start_time is None:
            return
        if not await self.soft_click(self._expand_button(start_time),
                                     timeout_ms=self.config.browser.expect_timeout_ms):
            logger.debug(f"Row {start_time} already gone, nothing to collapse")

    def event_cells(self, name: Optional[str] = None) -> Locator:
        """Event name cells inside the expanded row's details."""
        selector = f'[data-cy="{self.EVENT_NAME_CELL}"]'
        if name:
            selector += f':has-text("{name}")'
        return self.details_row().locator(selector)

    async def expand_event_row(self, name: str, last: bool = True, timeout_ms: Optional[int] = None) -> bool:
        """Expand a nested event row such as 'Auto Attendant' or 'Queue'.

        Returns False when the expanded call has no such event.
        """
        cells = self.event_cells(name)
        if timeout_ms is None:
            timeout_ms = self.config.browser.action_timeout_ms
        return await self.soft_click(cells.last if last else cells.first, timeout_ms=timeout_ms)

    async def event_labels(self) -> List[str]:
        return [text.strip() for text in await self.event_cells().all_inner_texts() if text.strip()]

    async def confirm_row(self, start_time: str) -> bool:
        """Whether the expanded row at ``start_time`` shows the expected call path."""
        timeout_ms = self.config.report.confirm_timeout_ms
        if self.event_to_expand:
            if not await self.expand_event_row(self.event_to_expand, timeout_ms=timeout_ms):
                logger.info(f"Row {start_time} has no {self.event_to_expand!r} event")
                await self.collapse_row()
                return False
        if not self.confirm_selector:
            return True

        try:
            await expect(self.page.locator(self.confirm_selector).first).to_be_visible(timeout=timeout_ms)
        except AssertionError:
            logger.info(f"Row {start_time} did not show {self.confirm_selector!r}")
            await self.collapse_row()
            return False
        return True

    async def assert_event_path(self, expected: Sequence[str], exact: bool = False):
        """Assert the expanded events include ``expected`` in order."""
        observed = await self.event_labels()
        problem = describe_mismatch(observed, expected, exact)
        if problem:
            raise AssertionError(problem)

    def details_row(self) -> Locator:
        return self.by_data_cy(self.DETAILS_ROW)

    async def assert_details_contain(self, *texts: str):
        details = self.details_row().first
        for text in texts:
            await expect(details).to_contain_text(text, timeout=self.config.browser.expect_timeout_ms)

"""Locate a call's row in the Cradle to Grave report.

The report cannot be searched by call SID, so the row is found by the
closest displayed start time. A candidate is only accepted after the view
confirms its expanded contents; rejected candidates are never tried again.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Set

from ..exceptions import CallNotFoundError, RetryExhaustedError
from ..models.schemas import ReportMatch
from ..utils.config import ReportConfig
from ..utils.polling import retry_with_refresh
from .time_match import find_closest_time

logger = logging.getLogger(__name__)


class ReportView(Protocol):
    """What the locator needs from a live report table."""

    async def displayed_start_times(self) -> List[str]:
        ...

    async def refresh(self) -> None:
        ...

    async def expand_row(self, start_time: str) -> None:
        ...

    async def confirm_row(self, start_time: str) -> bool:
        ...

    async def event_labels(self) -> List[str]:
        ...


class ReportLocator:
    """Closest-time row search with an ignore set and bounded refreshes."""

    def __init__(
        self,
        view: ReportView,
        target_time: str,
        max_retries: int = 5,
        refresh_wait: float = 15.0,
        tolerance: Optional[float] = 10.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        if max_retries < 0:
            raise ValueError("max_retries must not be negative")
        self.view = view
        self.target_time = target_time
        self.max_retries = max_retries
        self.refresh_wait = refresh_wait
        self.tolerance = tolerance
        self.sleep = sleep
        self.ignored: Set[str] = set()
        self.refreshes = 0

    @classmethod
    def from_config(
        cls,
        view: ReportView,
        target_time: str,
        config: ReportConfig,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ) -> "ReportLocator":
        return cls(
            view,
            target_time,
            max_retries=config.max_retries,
            refresh_wait=config.refresh_wait,
            tolerance=config.match_tolerance_seconds,
            sleep=sleep
        )

    async def _refresh(self):
        self.refreshes += 1
        await self.view.refresh()

    async def _select(self, start_times: List[str]) -> Optional[str]:
        """Try candidates from one snapshot, closest first, until one is confirmed."""
        logger.debug(f"Report start times: {start_times}")
        while True:
            candidate = find_closest_time(
                self.target_time,
                start_times,
                ignore=self.ignored,
                tolerance=self.tolerance
            )
            if candidate is None:
                return None

            logger.info(f"Trying report row {candidate} for call at {self.target_time}")
            await self.view.expand_row(candidate)
            if await self.view.confirm_row(candidate):
                return candidate

            logger.warning(f"Report row {candidate} does not belong to the call, ignoring it")
            self.ignored.add(candidate)

    async def locate(self) -> ReportMatch:
        """Find and confirm the row, or raise CallNotFoundError."""
        self.ignored = set()
        self.refreshes = 0
        try:
            found = await retry_with_refresh(
                self.view.displayed_start_times,
                self._select,
                self._refresh,
                attempts=self.max_retries,
                wait=self.refresh_wait,
                description=f"Report row near {self.target_time}",
                sleep=self.sleep
            )
        except RetryExhaustedError as e:
            raise CallNotFoundError(self.target_time, e.attempts, self.ignored) from e

        logger.info(f"Located report row {found} after {self.refreshes} refresh(es)")
        return ReportMatch(
            displayed_start_time=found,
            target_time=self.target_time,
            refreshes=self.refreshes,
            rejected=sorted(self.ignored)
        )

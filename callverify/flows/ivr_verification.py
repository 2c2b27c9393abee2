"""End-to-end verification of one IVR call.

The flow places a signed call, waits for the provider to report a terminal
status, reads the sandbox's verdict, then finds the call's row in the Cradle
to Grave report and checks its event path. Every stage transition is kept in
``stages`` so a failed run shows exactly how far it got.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Sequence

import httpx

from ..exceptions import CallFailedError, CallNotFoundError, CallVerificationError
from ..models.schemas import CallSession, CallStatus, IvrTestConfig, IvrTestResult, ReportMatch
from ..reporting.report_locator import ReportLocator, ReportView
from ..reporting.row_assertions import describe_mismatch
from ..reporting.time_match import to_display_date, to_display_time
from ..telephony.call_status import StatusPoller, TwilioCallsClient, require_completed
from ..telephony.ivr_client import IvrClient, generate_unique_identifier, raise_for_result
from ..utils.config import AppConfig

logger = logging.getLogger(__name__)


class VerificationStage(str, Enum):
    """Stages of a verification run."""
    INITIATED = "initiated"
    POLLING_STATUS = "polling_status"
    STATUS_FAILED = "status_failed"
    STATUS_COMPLETE = "status_complete"
    POLLING_RESULT = "polling_result"
    RESULT_FAILED = "result_failed"
    RESULT_READY = "result_ready"
    LOCATING_ROW = "locating_row"
    ROW_NOT_FOUND = "row_not_found"
    ROW_FOUND = "row_found"
    ASSERTING_DETAIL = "asserting_detail"
    PASSED = "passed"
    FAILED = "failed"

    @property
    def is_final(self) -> bool:
        return self in FINAL_STAGES


FINAL_STAGES = frozenset({
    VerificationStage.STATUS_FAILED,
    VerificationStage.RESULT_FAILED,
    VerificationStage.ROW_NOT_FOUND,
    VerificationStage.PASSED,
    VerificationStage.FAILED
})


@dataclass
class VerificationOutcome:
    """Call data and the report row matched to it."""
    result: IvrTestResult
    match: ReportMatch
    stages: List[VerificationStage] = field(default_factory=list)


class IvrVerification:
    """Drives one IVR scenario from call placement to report assertions."""

    def __init__(
        self,
        ivr_client: IvrClient,
        status_poller: StatusPoller,
        config: AppConfig,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc)
    ):
        self.ivr_client = ivr_client
        self.status_poller = status_poller
        self.config = config
        self.sleep = sleep
        self.now = now
        self.stages: List[VerificationStage] = []
        self.session: Optional[CallSession] = None
        self._owned_clients: List[Any] = []

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ) -> "IvrVerification":
        """Wire the provider clients from ``config``."""
        ivr_client = IvrClient(config.twilio, http_client=http_client)
        calls_client = TwilioCallsClient(config.twilio, http_client=http_client)
        poller = StatusPoller.from_config(calls_client.fetch_call, config.polling, sleep=sleep)
        flow = cls(ivr_client, poller, config, sleep=sleep)
        flow._owned_clients = [ivr_client, calls_client]
        return flow

    async def close(self):
        for client in self._owned_clients:
            await client.close()

    @property
    def stage(self) -> Optional[VerificationStage]:
        return self.stages[-1] if self.stages else None

    def _enter(self, stage: VerificationStage):
        logger.info(f"Verification stage: {stage.value}")
        self.stages.append(stage)

    async def place_call(self, ivr_config: IvrTestConfig) -> IvrTestResult:
        """Start the call, wait for it to finish and collect the sandbox verdict."""
        polling = self.config.polling
        self.stages = []
        self.session = None
        started_at = self.now()

        unique_identifier = generate_unique_identifier()
        start_url, check_url = self.ivr_client.build_call_urls(ivr_config, unique_identifier)

        call_sid = await self.ivr_client.initiate_call(start_url, ivr_config.params)
        self.session = CallSession(call_sid=call_sid, unique_identifier=unique_identifier, start_time=started_at)
        self._enter(VerificationStage.INITIATED)

        call_duration = ivr_config.call_duration
        if call_duration is None:
            call_duration = polling.initial_call_wait
        if call_duration > 0:
            logger.info(f"Letting call {call_sid} run for {call_duration}s")
            await self.sleep(call_duration)

        self._enter(VerificationStage.POLLING_STATUS)
        try:
            status = await self.status_poller.poll(call_sid, on_status=self.session.observe)
            require_completed(status, call_sid)
        except CallVerificationError:
            self._enter(VerificationStage.STATUS_FAILED)
            raise
        self._enter(VerificationStage.STATUS_COMPLETE)

        report = self.config.report
        call_start = status.start_time or started_at
        display_time = to_display_time(call_start, report.display_timezone, report.time_format)
        display_date = to_display_date(call_start, report.display_timezone)
        logger.info(f"Call {call_sid} started at {display_time} ({report.display_timezone})")

        call_results = None
        if ivr_config.check_results:
            self._enter(VerificationStage.POLLING_RESULT)
            if polling.transcription_wait > 0:
                await self.sleep(polling.transcription_wait)
            try:
                call_results = await self.ivr_client.fetch_call_results(
                    check_url,
                    ivr_config.params,
                    pending_wait=polling.pending_retry_wait,
                    sleep=self.sleep
                )
                raise_for_result(call_results)
            except CallVerificationError:
                self._enter(VerificationStage.RESULT_FAILED)
                raise
            self._enter(VerificationStage.RESULT_READY)

        return IvrTestResult(
            test_name=ivr_config.test_name,
            session=self.session,
            call_status=status,
            call_results=call_results,
            started_at=started_at,
            finished_at=self.now(),
            display_time=display_time,
            display_date=display_date
        )

    async def verify_report(
        self,
        view: ReportView,
        result: IvrTestResult,
        expected_events: Sequence[str] = (),
        exact: bool = False
    ) -> ReportMatch:
        """Locate the call's report row and check its event path."""
        if result.call_status.status != CallStatus.COMPLETED:
            raise CallFailedError(result.call_sid, result.call_status.status.value)

        self._enter(VerificationStage.LOCATING_ROW)
        locator = ReportLocator.from_config(view, result.display_time, self.config.report, sleep=self.sleep)
        try:
            match = await locator.locate()
        except CallNotFoundError:
            self._enter(VerificationStage.ROW_NOT_FOUND)
            raise
        self._enter(VerificationStage.ROW_FOUND)

        self._enter(VerificationStage.ASSERTING_DETAIL)
        if expected_events:
            problem = describe_mismatch(await view.event_labels(), expected_events, exact)
            if problem:
                self._enter(VerificationStage.FAILED)
                raise AssertionError(f"Call {result.call_sid} at {match.displayed_start_time}: {problem}")

        self._enter(VerificationStage.PASSED)
        return match

    async def run(
        self,
        ivr_config: IvrTestConfig,
        view: ReportView,
        expected_events: Sequence[str] = (),
        exact: bool = False
    ) -> VerificationOutcome:
        """Place the call and verify it in the report."""
        result = await self.place_call(ivr_config)
        match = await self.verify_report(view, result, expected_events, exact)
        logger.info(f"{ivr_config.test_name} passed in {result.test_duration:.1f}s")
        return VerificationOutcome(result=result, match=match, stages=list(self.stages))

"""Call status lookup against the provider REST API and polling to a terminal state."""
import asyncio
import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from ..exceptions import CallFailedError, StatusLookupError
from ..models.schemas import CallStatus, CallStatusResult
from ..utils.config import PollingConfig, TwilioConfig
from ..utils.polling import IntervalSchedule, poll
from ..utils.signing import build_basic_auth

logger = logging.getLogger(__name__)

# Answers worth asking again; anything else is a real error
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def parse_provider_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse the RFC 2822 timestamps the provider uses, e.g. 'Tue, 31 Aug 2010 20:36:28 +0000'."""
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def call_status_from_resource(resource: Dict[str, Any]) -> CallStatusResult:
    """Map a provider call resource onto CallStatusResult."""
    return CallStatusResult(
        call_sid=resource.get("sid"),
        status=CallStatus(resource["status"]),
        start_time=parse_provider_timestamp(resource.get("start_time")),
        end_time=parse_provider_timestamp(resource.get("end_time")),
        duration=resource.get("duration"),
        from_number=resource.get("from"),
        to_number=resource.get("to")
    )


class TwilioCallsClient:
    """Read-only access to the provider's Calls resource."""

    def __init__(self, config: TwilioConfig, http_client: Optional[httpx.AsyncClient] = None):
        if not config.account_sid or not config.auth_token:
            raise ValueError("Twilio credentials (TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN) are required")
        self.config = config
        self.base_url = config.api_base_url.rstrip("/")
        self.client = http_client or httpx.AsyncClient(timeout=config.request_timeout)
        self._owns_client = http_client is None

    async def close(self):
        """Close HTTP client."""
        if self._owns_client:
            await self.client.aclose()

    def call_url(self, call_sid: str) -> str:
        return f"{self.base_url}/2010-04-01/Accounts/{self.config.account_sid}/Calls/{call_sid}.json"

    async def fetch_call(self, call_sid: str) -> CallStatusResult:
        """Fetch the current state of a call."""
        response = await self.client.get(
            self.call_url(call_sid),
            headers={"Authorization": build_basic_auth(self.config.account_sid, self.config.auth_token)}
        )
        if response.status_code in RETRYABLE_STATUS_CODES:
            raise StatusLookupError(call_sid, response.status_code)
        response.raise_for_status()
        return call_status_from_resource(response.json())


class StatusPoller:
    """Polls a call until the provider reports a terminal status."""

    def __init__(
        self,
        fetch_status: Callable[[str], Awaitable[CallStatusResult]],
        schedule: Optional[IntervalSchedule] = None,
        max_attempts: Optional[int] = 24,
        timeout: Optional[float] = None,
        initial_delay: float = 0.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        self.fetch_status = fetch_status
        self.schedule = schedule or IntervalSchedule.fixed(5.0)
        self.max_attempts = max_attempts
        self.timeout = timeout
        self.initial_delay = initial_delay
        self.sleep = sleep

    @classmethod
    def from_config(
        cls,
        fetch_status: Callable[[str], Awaitable[CallStatusResult]],
        config: PollingConfig,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ) -> "StatusPoller":
        """Build a poller from the polling section of the app config.

        The wait that lets a call run before the first poll is left to the
        caller, which knows each scenario's call length.
        """
        schedule = IntervalSchedule(
            config.status_interval,
            factor=config.status_backoff_factor,
            max_interval=config.status_max_interval
        )
        return cls(
            fetch_status,
            schedule=schedule,
            max_attempts=config.status_max_attempts,
            timeout=config.status_timeout,
            sleep=sleep
        )

    async def poll(
        self,
        call_sid: str,
        on_status: Optional[Callable[[CallStatusResult], Any]] = None
    ) -> CallStatusResult:
        """Return the first terminal status observed for ``call_sid``.

        ``on_status`` sees every status fetched along the way.
        """
        logger.info(f"Polling call status for SID: {call_sid}")

        async def fetch() -> CallStatusResult:
            result = await self.fetch_status(call_sid)
            logger.info(f"Call status: {result.status.value}")
            if on_status is not None:
                on_status(result)
            return result

        return await poll(
            fetch,
            lambda result: result.is_terminal,
            schedule=self.schedule,
            max_attempts=self.max_attempts,
            timeout=self.timeout,
            initial_delay=self.initial_delay,
            retry_on=(httpx.TransportError, StatusLookupError),
            description=f"call {call_sid} status",
            sleep=self.sleep
        )


def require_completed(result: CallStatusResult, call_sid: Optional[str] = None) -> CallStatusResult:
    """Raise CallFailedError unless the call completed."""
    if result.status != CallStatus.COMPLETED:
        raise CallFailedError(call_sid or result.call_sid or "<unknown>", result.status.value)
    return result

"""
Pytest configuration and shared fixtures for call verification testing.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio

from ..models.schemas import CallStatus, CallStatusResult
from ..utils.config import (
    AppConfig, BrowserConfig, PollingConfig, PortalConfig, ReportConfig, TwilioConfig
)

# Configure test logging
logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)

TEST_AUTH_TOKEN = "12345"
TEST_ACCOUNT_SID = "ACXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXX"


@pytest.fixture
def twilio_config():
    """Provider credentials for tests."""
    return TwilioConfig(
        account_sid=TEST_ACCOUNT_SID,
        auth_token=TEST_AUTH_TOKEN,
        api_base_url="https://api.twilio.test",
        caller_number="+15005550006"
    )


@pytest.fixture
def app_config(twilio_config):
    """Application configuration with production waits and short browser timeouts."""
    return AppConfig(
        twilio=twilio_config,
        portal=PortalConfig(
            base_url="https://portal.example.test",
            supervisor_username="supervisor@example.test",
            supervisor_password="secret",
            timezone="America/Denver"
        ),
        polling=PollingConfig(
            initial_call_wait=20.0,
            status_interval=5.0,
            status_max_attempts=24,
            transcription_wait=30.0,
            pending_retry_wait=15.0
        ),
        report=ReportConfig(
            display_timezone="America/Denver",
            max_retries=5,
            refresh_wait=15.0,
            settle_wait=0.0,
            match_tolerance_seconds=10.0,
            confirm_timeout_ms=500
        ),
        browser=BrowserConfig(
            headless=True,
            action_timeout_ms=5000,
            navigation_timeout_ms=5000,
            expect_timeout_ms=2000,
            fake_media=False
        )
    )


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


@pytest.fixture
def fake_sleep():
    """Recording sleep so polling tests never actually wait."""
    return RecordingSleep()


def make_status(status: CallStatus, sid: str = "CA123",
                start_time: Optional[datetime] = None) -> CallStatusResult:
    return CallStatusResult(
        call_sid=sid,
        status=status,
        start_time=start_time or datetime(2025, 3, 7, 21, 3, 5, tzinfo=timezone.utc)
    )


@pytest.fixture
def status_factory():
    """Build CallStatusResult objects."""
    return make_status


class FakeReportView:
    """In-memory report table.

    ``snapshots`` is the list of start times shown after each refresh; the
    last snapshot stays visible once they run out. ``valid_times`` are the
    rows whose expanded contents belong to the call.
    """

    def __init__(self, snapshots: List[List[str]], valid_times=None,
                 events: Optional[Dict[str, List[str]]] = None):
        self.snapshots = snapshots
        self.valid_times = set(valid_times or ())
        self.events = events or {}
        self.index = 0
        self.refresh_count = 0
        self.expanded: List[str] = []
        self.confirmed: List[str] = []

    async def displayed_start_times(self) -> List[str]:
        return list(self.snapshots[min(self.index, len(self.snapshots) - 1)])

    async def refresh(self):
        self.refresh_count += 1
        self.index += 1

    async def expand_row(self, start_time: str):
        self.expanded.append(start_time)

    async def confirm_row(self, start_time: str) -> bool:
        self.confirmed.append(start_time)
        return start_time in self.valid_times

    async def event_labels(self) -> List[str]:
        if not self.expanded:
            return []
        return list(self.events.get(self.expanded[-1], []))


@pytest.fixture
def report_view_factory():
    """Build FakeReportView instances."""
    return FakeReportView


class MockProvider:
    """Records requests and answers them with ``handler``."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.handler: Optional[Callable[[httpx.Request], httpx.Response]] = None
        self.client: Optional[httpx.AsyncClient] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


@pytest_asyncio.fixture
async def provider():
    """Mocked provider endpoints behind a real httpx client."""
    provider = MockProvider()
    provider.client = httpx.AsyncClient(transport=httpx.MockTransport(provider))
    yield provider
    await provider.client.aclose()


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "e2e: End-to-end tests")
    config.addinivalue_line("markers", "live: Tests that place real calls")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on file location."""
    for item in items:
        path = str(item.fspath)
        if "unit" in path:
            item.add_marker(pytest.mark.unit)
        elif "integration" in path:
            item.add_marker(pytest.mark.integration)
        elif "e2e" in path:
            item.add_marker(pytest.mark.e2e)
            item.add_marker(pytest.mark.slow)

"""Pydantic schemas for call verification data."""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from enum import Enum

PENDING_RESULT = "Transcription still pending."
MENU_NAVIGATION_FAILED = "Menu navigation failed"


class CallStatus(str, Enum):
    """Provider call status enumeration."""
    QUEUED = "queued"
    RINGING = "ringing"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"
    BUSY = "busy"
    NO_ANSWER = "no-answer"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        """Whether the provider will not change this status any more."""
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    CallStatus.COMPLETED,
    CallStatus.FAILED,
    CallStatus.BUSY,
    CallStatus.NO_ANSWER,
    CallStatus.CANCELED
})


class CallSession(BaseModel):
    """A call started against the sandbox."""
    call_sid: str
    unique_identifier: int = Field(..., description="Client-side correlation token")
    start_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: CallStatus = CallStatus.QUEUED

    def observe(self, result: "CallStatusResult") -> "CallSession":
        """Record the status the provider last reported for this call."""
        self.status = result.status
        return self


class CallStatusResult(BaseModel):
    """Call resource as returned by the provider."""
    call_sid: Optional[str] = None
    status: CallStatus
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    from_number: Optional[str] = None
    to_number: Optional[str] = None

    @field_validator("duration", mode="before")
    @classmethod
    def parse_duration(cls, v):
        # The provider sends durations as strings, or null while the call runs
        if v in (None, ""):
            return None
        return int(v)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class CallResult(BaseModel):
    """Outcome reported by the sandbox check-results endpoint."""
    outcome: Any = None

    @property
    def pending(self) -> bool:
        return self.outcome == PENDING_RESULT

    @property
    def navigation_failed(self) -> bool:
        return self.outcome == MENU_NAVIGATION_FAILED


class ReportRowCandidate(BaseModel):
    """A displayed report start time considered for a call."""
    displayed_start_time: str
    difference_seconds: float


class IvrTestConfig(BaseModel):
    """Configuration of a single IVR scenario."""
    test_name: str
    base_url: str
    start_path: str = "start-call"
    check_path: str = "check-results"
    params: Dict[str, Any] = Field(default_factory=dict)
    call_duration: Optional[float] = Field(
        None, description="Seconds to let the call run before polling; None uses the configured wait"
    )
    check_results: bool = True

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return v.rstrip("/")


class IvrTestResult(BaseModel):
    """Everything observed while placing one IVR call."""
    test_name: str
    session: CallSession
    call_status: CallStatusResult
    call_results: Optional[CallResult] = None
    started_at: datetime
    finished_at: datetime
    display_time: str
    display_date: str

    @property
    def call_sid(self) -> str:
        return self.session.call_sid

    @property
    def unique_identifier(self) -> int:
        return self.session.unique_identifier

    @property
    def success(self) -> bool:
        return self.call_status.status == CallStatus.COMPLETED

    @property
    def test_duration(self) -> float:
        """Wall-clock seconds the scenario took."""
        return (self.finished_at - self.started_at).total_seconds()


class ReportMatch(BaseModel):
    """Report row confirmed to belong to a call."""
    displayed_start_time: str
    target_time: str
    refreshes: int = 0
    rejected: List[str] = Field(default_factory=list)

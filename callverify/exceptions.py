"""Exceptions raised while verifying calls end to end."""
from typing import Any, Optional


class CallVerificationError(Exception):
    """Base exception for call verification failures."""


class CallInitiationError(CallVerificationError):
    """The sandbox did not start a call."""

    def __init__(self, message: str, status_code: Optional[int] = None, response_body: str = ""):
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message)


class ResultCheckError(CallVerificationError):
    """The check-results endpoint did not answer successfully."""

    def __init__(self, message: str, status_code: Optional[int] = None, response_body: str = ""):
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message)


class StatusLookupError(CallVerificationError):
    """The provider could not answer a call lookup right now (rate limit or server error)."""

    def __init__(self, call_sid: str, status_code: int):
        self.call_sid = call_sid
        self.status_code = status_code
        super().__init__(f"Status lookup for {call_sid} failed with HTTP {status_code}")


class CallFailedError(CallVerificationError):
    """The call reached a terminal status other than completed."""

    def __init__(self, call_sid: str, status: str):
        self.call_sid = call_sid
        self.status = status
        super().__init__(f"Call {call_sid} failed with status: {status}")


class MenuNavigationError(CallVerificationError):
    """The IVR reported that menu navigation failed."""

    def __init__(self, result: Any):
        self.result = result
        super().__init__(str(result))


class PollTimeoutError(CallVerificationError):
    """Polling gave up before the awaited condition held."""

    def __init__(self, message: str, attempts: int = 0, last_value: Any = None):
        self.attempts = attempts
        self.last_value = last_value
        super().__init__(message)


class RetryExhaustedError(CallVerificationError):
    """A retry-with-refresh loop ran out of attempts."""

    def __init__(self, message: str, attempts: int = 0):
        self.attempts = attempts
        super().__init__(message)


class CallNotFoundError(RetryExhaustedError):
    """No report row could be matched to the call."""

    def __init__(self, target_time: str, attempts: int = 0, ignored: Optional[set] = None):
        self.target_time = target_time
        self.ignored = set(ignored or ())
        message = f"Call not found: no report row near {target_time} after {attempts} refreshes"
        if self.ignored:
            message += f" (rejected: {', '.join(sorted(self.ignored))})"
        super().__init__(message, attempts)

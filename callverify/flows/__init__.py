"""Scenario orchestration."""

from .ivr_verification import IvrVerification, VerificationOutcome, VerificationStage

__all__ = [
    "IvrVerification",
    "VerificationOutcome",
    "VerificationStage"
]

"""Telephony sandbox and provider clients."""

from .ivr_client import IvrClient, generate_unique_identifier, build_query_params, extract_call_sid
from .call_status import TwilioCallsClient, StatusPoller, require_completed
from .ivr_configs import IVR_CONFIGS, get_ivr_config

__all__ = [
    "IvrClient",
    "generate_unique_identifier",
    "build_query_params",
    "extract_call_sid",
    "TwilioCallsClient",
    "StatusPoller",
    "require_completed",
    "IVR_CONFIGS",
    "get_ivr_config"
]

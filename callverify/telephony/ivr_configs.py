"""Sandbox IVR endpoints exercised by the suite."""
from typing import Any, Dict, Optional

from ..models.schemas import IvrTestConfig

# Menu-driven scenarios share one function service and pick their path
# through the digits sent with start-call-options.
_OPTIONS_IVR_URL = "https://xima-ivr-9663.twil.io"

IVR_CONFIGS: Dict[str, Dict[str, Any]] = {
    "PRIMARY": {
        "test_name": "Primary IVR",
        "base_url": "https://xima-primary-ivr-9108.twil.io"
    },
    "IN_HOURS": {
        "test_name": "In Hours IVR",
        "base_url": "https://xima-in-hours-ivr-5651.twil.io"
    },
    "AFTER_HOURS": {
        "test_name": "After Hours IVR",
        "base_url": "https://xima-after-hours-ivr-5230.twil.io"
    },
    "IN_HOLIDAY": {
        "test_name": "In Holiday IVR",
        "base_url": "https://xima-in-holiday-ivr-7436.twil.io"
    },
    "NON_HOLIDAY": {
        "test_name": "Non Holiday IVR",
        "base_url": "https://xima-non-holiday-ivr-6683.twil.io"
    },
    "SET_PARAMETER": {
        "test_name": "Set Parameter IVR",
        "base_url": "https://xima-set-parameter-ivr-6543.twil.io"
    },
    "ANNOUNCEMENT": {
        "test_name": "Announcement IVR",
        "base_url": "https://xima-announcement-ivr-8797.twil.io"
    },
    "DROP_CALL": {
        "test_name": "Drop Call IVR",
        "base_url": "https://xima-drop-call-ivr-3273.twil.io"
    },
    "SESSION_PARAM": {
        "test_name": "Session Parameter IVR",
        "base_url": _OPTIONS_IVR_URL,
        "start_path": "start-call-options",
        "params": {"menu1digit": "5", "menu2digit": "2"}
    },
    "SIP_PARAM": {
        "test_name": "SIP Parameter IVR",
        "base_url": _OPTIONS_IVR_URL,
        "start_path": "start-call-options",
        "params": {"menu1digit": "5", "menu2digit": "3"}
    },
    "COLLECT_DIGITS_C": {
        "test_name": "Collect Digits C IVR",
        "base_url": _OPTIONS_IVR_URL,
        "start_path": "start-call-options",
        "params": {"menu1digit": "3", "menu2digit": "3"}
    }
}


def get_ivr_config(name: str, params: Optional[Dict[str, Any]] = None, **overrides) -> IvrTestConfig:
    """Build an IvrTestConfig for a catalogued IVR.

    ``params`` replaces the catalogued menu digits; other keyword arguments
    override IvrTestConfig fields.
    """
    try:
        entry = dict(IVR_CONFIGS[name.upper()])
    except KeyError:
        raise KeyError(f"Unknown IVR '{name}', expected one of {', '.join(sorted(IVR_CONFIGS))}")

    if params is not None:
        entry["params"] = params
    entry.update(overrides)
    return IvrTestConfig(**entry)

"""Checks over the event labels of an expanded report row."""
from typing import List, Sequence


def normalize_label(label: str) -> str:
    """Collapse whitespace; the report wraps long labels across lines."""
    return " ".join(label.split())


def _matches(observed: str, expected: str, exact: bool) -> bool:
    observed = normalize_label(observed)
    expected = normalize_label(expected)
    return observed == expected if exact else expected in observed


def missing_events(observed: Sequence[str], expected: Sequence[str], exact: bool = False) -> List[str]:
    """Expected labels that appear nowhere in ``observed``."""
    return [
        label for label in expected
        if not any(_matches(item, label, exact) for item in observed)
    ]


def events_in_order(observed: Sequence[str], expected: Sequence[str], exact: bool = False) -> bool:
    """True if ``expected`` occurs in ``observed`` as an ordered subsequence."""
    position = 0
    for label in expected:
        while position < len(observed) and not _matches(observed[position], label, exact):
            position += 1
        if position == len(observed):
            return False
        position += 1
    return True


def describe_mismatch(observed: Sequence[str], expected: Sequence[str], exact: bool = False) -> str:
    """Human-readable reason an event path check failed, or '' if it passed."""
    missing = missing_events(observed, expected, exact)
    if missing:
        return f"Missing events {missing} in {list(observed)}"
    if not events_in_order(observed, expected, exact):
        return f"Events {list(expected)} out of order in {list(observed)}"
    return ""

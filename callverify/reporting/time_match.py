"""Time conversion and closest-time matching for report rows.

The Cradle to Grave report shows only a time of day, rendered in a fixed
display timezone, so a call is matched to its row by comparing the call's
start time (converted to that timezone) against every displayed start time.
"""
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, List, Optional, Union
from zoneinfo import ZoneInfo

from ..models.schemas import ReportRowCandidate

logger = logging.getLogger(__name__)

DISPLAY_TIMEZONE = "America/Denver"
DISPLAY_TIME_FORMAT = "%I:%M:%S %p"

_PARSE_FORMATS = ("%I:%M:%S %p", "%H:%M:%S")
_SECONDS_PER_DAY = 24 * 60 * 60

TimeLike = Union[str, datetime, time]


def _as_utc(ts: datetime) -> datetime:
    # Provider timestamps without an offset are UTC
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def to_display_time(ts: datetime, tz: str = DISPLAY_TIMEZONE, fmt: str = DISPLAY_TIME_FORMAT) -> str:
    """Format ``ts`` as the report displays it, e.g. '02:03:05 PM'."""
    return _as_utc(ts).astimezone(ZoneInfo(tz)).strftime(fmt)


def to_display_date(ts: datetime, tz: str = DISPLAY_TIMEZONE) -> str:
    """Numeric US date in the display timezone, e.g. '3/07/2025'."""
    local = _as_utc(ts).astimezone(ZoneInfo(tz))
    return f"{local.month}/{local.day:02d}/{local.year}"


def current_display_time(tz: str = DISPLAY_TIMEZONE, fmt: str = DISPLAY_TIME_FORMAT) -> str:
    return to_display_time(datetime.now(timezone.utc), tz, fmt)


def parse_time_of_day(value: str) -> time:
    """Parse 'h:mm:ss AM' or 'HH:MM:SS' into a time of day."""
    text = value.strip().upper()
    for fmt in _PARSE_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Unrecognized time of day: {value!r}")


def parse_time_to_today(value: str, today: Optional[date] = None) -> datetime:
    """Parse a displayed time and anchor it to ``today``."""
    return datetime.combine(today or date.today(), parse_time_of_day(value))


def _seconds_of_day(value: TimeLike) -> int:
    if isinstance(value, str):
        value = parse_time_of_day(value)
    elif isinstance(value, datetime):
        value = value.time()
    return value.hour * 3600 + value.minute * 60 + value.second


def time_difference_seconds(a: TimeLike, b: TimeLike) -> int:
    """Absolute time-of-day distance, measured the short way around midnight."""
    diff = abs(_seconds_of_day(a) - _seconds_of_day(b))
    return min(diff, _SECONDS_PER_DAY - diff)


def sort_times_descending(time_strings: Iterable[str]) -> List[str]:
    """Latest time first. Unparseable strings sort last."""
    def key(value: str):
        try:
            return (1, _seconds_of_day(value))
        except ValueError:
            return (0, 0)

    return sorted(time_strings, key=key, reverse=True)


def rank_candidates(
    target: TimeLike,
    time_strings: Iterable[str],
    ignore: Iterable[str] = (),
    tolerance: Optional[float] = None
) -> List[ReportRowCandidate]:
    """Candidates ordered by distance to ``target``, closest first.

    Ignored and unparseable values are dropped, as are values farther than
    ``tolerance`` seconds when a tolerance is given. Ties keep the later
    displayed time first.
    """
    ignored = set(ignore)
    candidates = []
    for value in sort_times_descending(time_strings):
        if value in ignored:
            continue
        try:
            difference = time_difference_seconds(target, value)
        except ValueError:
            logger.debug(f"Skipping unparseable report time {value!r}")
            continue
        if tolerance is not None and difference > tolerance:
            continue
        candidates.append(ReportRowCandidate(displayed_start_time=value, difference_seconds=difference))

    # sorted() is stable, so equal distances stay latest-first
    return sorted(candidates, key=lambda c: c.difference_seconds)


def find_closest_time(
    target: TimeLike,
    time_strings: Iterable[str],
    ignore: Iterable[str] = (),
    tolerance: Optional[float] = None
) -> Optional[str]:
    """The displayed time closest to ``target``, or None when nothing qualifies."""
    candidates = rank_candidates(target, time_strings, ignore=ignore, tolerance=tolerance)
    if not candidates:
        return None
    return candidates[0].displayed_start_time


def next_occurrence(hour: int, minute: int = 0, now: Optional[datetime] = None) -> datetime:
    """Next time the clock reads ``hour:minute``; tomorrow if that already passed today."""
    now = now or datetime.now()
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return target

"""Cradle to Grave report matching and assertions."""

from .time_match import to_display_time, to_display_date, find_closest_time, sort_times_descending
from .date_range import ReportDateRange, calculate_report_date_range, year_date_range
from .report_locator import ReportLocator, ReportView
from .row_assertions import missing_events, events_in_order

__all__ = [
    "to_display_time",
    "to_display_date",
    "find_closest_time",
    "sort_times_descending",
    "ReportDateRange",
    "calculate_report_date_range",
    "year_date_range",
    "ReportLocator",
    "ReportView",
    "missing_events",
    "events_in_order"
]

"""Date ranges used to configure report previews."""
from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass
class ReportDateRange:
    """Inclusive report date range plus the yyyymmdd forms the date pickers use."""
    start_date: date
    end_date: date
    this_month: int

    @property
    def start_date_formatted(self) -> int:
        return int(self.start_date.strftime("%Y%m%d"))

    @property
    def end_date_formatted(self) -> int:
        return int(self.end_date.strftime("%Y%m%d"))

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


def _subtract_months(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) - months
    return day.replace(year=month_index // 12, month=month_index % 12 + 1)


def calculate_report_date_range(months_back: int = 4, today: Optional[date] = None) -> ReportDateRange:
    """From the first day ``months_back`` months before this month, through today."""
    if months_back < 0:
        raise ValueError("months_back must not be negative")
    today = today or date.today()
    first_of_month = today.replace(day=1)
    return ReportDateRange(
        start_date=_subtract_months(first_of_month, months_back),
        end_date=today,
        this_month=int(first_of_month.strftime("%Y%m%d"))
    )


def year_date_range(year: int, today: Optional[date] = None) -> ReportDateRange:
    """The whole calendar year ``year``."""
    today = today or date.today()
    return ReportDateRange(
        start_date=date(year, 1, 1),
        end_date=date(year, 12, 31),
        this_month=int(today.replace(day=1).strftime("%Y%m%d"))
    )

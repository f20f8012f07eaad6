from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Optional, Union

from codprofit.domain.models import Expense, Sale

ALL = "all"
MIN_DATE = "1900-01-01"
MAX_DATE = "2999-12-31"


class DateRangeSelector(str, Enum):
    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_WEEK = "this_week"
    LAST_WEEK = "last_week"
    THIS_MONTH = "this_month"
    LAST_MONTH = "last_month"
    CUSTOM = "custom"
    ALL = "all"


@dataclass(frozen=True)
class DateRange:
    start: str
    end: str

    def contains(self, iso_date: str) -> bool:
        # zero-padded ISO dates compare correctly as strings
        return self.start <= iso_date <= self.end


def _start_of_week(d: date) -> date:
    # Monday start; isoweekday() makes Sunday day 7 of the previous week
    return d - timedelta(days=d.isoweekday() - 1)


def resolve_date_range(
    selector: Union[DateRangeSelector, str],
    custom_start: Optional[str] = None,
    custom_end: Optional[str] = None,
    today: Optional[date] = None,
) -> DateRange:
    today = today or date.today()
    try:
        sel = DateRangeSelector(selector)
    except ValueError:
        sel = DateRangeSelector.ALL

    if sel is DateRangeSelector.TODAY:
        return DateRange(today.isoformat(), today.isoformat())
    if sel is DateRangeSelector.YESTERDAY:
        y = today - timedelta(days=1)
        return DateRange(y.isoformat(), y.isoformat())
    if sel is DateRangeSelector.THIS_WEEK:
        return DateRange(_start_of_week(today).isoformat(), today.isoformat())
    if sel is DateRangeSelector.LAST_WEEK:
        start = _start_of_week(today - timedelta(days=7))
        return DateRange(start.isoformat(), (start + timedelta(days=6)).isoformat())
    if sel is DateRangeSelector.THIS_MONTH:
        # ends today so the range never includes future days
        return DateRange(today.replace(day=1).isoformat(), today.isoformat())
    if sel is DateRangeSelector.LAST_MONTH:
        last_day_prev = today.replace(day=1) - timedelta(days=1)
        first = last_day_prev.replace(day=1)
        return DateRange(first.isoformat(), last_day_prev.isoformat())
    if sel is DateRangeSelector.CUSTOM:
        return DateRange(custom_start or MIN_DATE, custom_end or MAX_DATE)
    return DateRange(MIN_DATE, MAX_DATE)


@dataclass(frozen=True)
class RecordFilter:
    date_range: DateRange = DateRange(MIN_DATE, MAX_DATE)
    country: str = ALL
    product: str = ALL

    def matches(self, record: Union[Sale, Expense]) -> bool:
        if self.country != ALL and record.country != self.country:
            return False
        if self.product != ALL and record.product_id != self.product:
            return False
        return self.date_range.contains(record.date)

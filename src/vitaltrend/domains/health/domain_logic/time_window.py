"""Time-window filtering over health records."""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, Sequence

from vitaltrend.domains.health.domain_logic.record_models import (
    HealthRecord,
    SortOrder,
    TimeRange,
)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_DAY_RANGES = {
    TimeRange.WEEK: 7,
    TimeRange.TWO_WEEKS: 14,
}

_MONTH_RANGES = {
    TimeRange.MONTH: 1,
    TimeRange.QUARTER: 3,
    TimeRange.HALF_YEAR: 6,
    TimeRange.YEAR: 12,
}


def subtract_months(moment: datetime, months: int) -> datetime:
    """Calendar month subtraction, clamping the day to the target month."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def window_start(time_range: TimeRange | str, now: datetime) -> datetime:
    """Exclusive lower bound of the window ending at ``now``."""
    time_range = TimeRange(time_range)
    if time_range in _DAY_RANGES:
        return now - timedelta(days=_DAY_RANGES[time_range])
    if time_range in _MONTH_RANGES:
        return subtract_months(now, _MONTH_RANGES[time_range])
    return EPOCH


def end_of_day(reference_date: date | datetime, tz: tzinfo | None = None) -> datetime:
    """The reference date at 23:59:59.999 in ``tz`` (UTC by default)."""
    if isinstance(reference_date, datetime):
        if reference_date.tzinfo is not None and tz is not None:
            reference_date = reference_date.astimezone(tz)
        reference_date = reference_date.date()
    return datetime.combine(reference_date, time(23, 59, 59, 999000), tzinfo=tz or timezone.utc)


def filter_by_range(
    records: Iterable[HealthRecord],
    time_range: TimeRange | str,
    reference_date: date | datetime | None = None,
    *,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[HealthRecord]:
    """Records inside the window, sorted ascending by timestamp (stable).

    With a reference date the window ends at that day's last millisecond and
    later records are excluded. Without one the window ends at the current
    instant but future-dated records are still included.
    """
    if reference_date is not None:
        upper = end_of_day(reference_date, tz)
    else:
        upper = now or datetime.now(timezone.utc)
    start = window_start(time_range, upper)

    selected = [
        r for r in records
        if r.timestamp > start and (reference_date is None or r.timestamp <= upper)
    ]
    return sorted(selected, key=lambda r: r.timestamp)


def sort_records(records: Iterable[HealthRecord], order: SortOrder | str = SortOrder.ASC) -> list[HealthRecord]:
    """Stable sort by timestamp; ties keep input order in both directions."""
    return sorted(records, key=lambda r: r.timestamp, reverse=SortOrder(order) is SortOrder.DESC)


def record_for_index(filtered: Sequence[HealthRecord], index: int) -> HealthRecord | None:
    """Map a chart/list index back to the record it was built from."""
    if 0 <= index < len(filtered):
        return filtered[index]
    return None

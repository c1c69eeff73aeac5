"""Follow-up scheduling helpers."""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta, timezone
from enum import Enum

from prospector.core.types import FollowUpTimeframe, Prospect

TIMEFRAME_MONTHS: dict[FollowUpTimeframe, int] = {
    FollowUpTimeframe.ONE_MONTH: 1,
    FollowUpTimeframe.THREE_MONTH: 3,
    FollowUpTimeframe.SIX_MONTH: 6,
    FollowUpTimeframe.ONE_YEAR: 12,
}

SOON_WINDOW = timedelta(days=7)


class DueStatus(str, Enum):
    OVERDUE = "overdue"
    TODAY = "today"
    SOON = "soon"
    FUTURE = "future"


def add_months(value: datetime, months: int) -> datetime:
    """Add calendar months, clamping to the last day of the target month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def compute_follow_up_due(
    anchor: datetime | None, timeframe: FollowUpTimeframe | str | None
) -> datetime | None:
    if timeframe is None:
        return None
    months = TIMEFRAME_MONTHS.get(FollowUpTimeframe(timeframe), 3)
    return add_months(anchor or datetime.now(timezone.utc), months)


def due_date(prospect: Prospect) -> datetime | None:
    """Stored due date, else one derived from the timeframe."""
    if prospect.follow_up_due_date is not None:
        return prospect.follow_up_due_date
    if prospect.follow_up_timeframe is None:
        return None
    anchor = prospect.last_contact_date or prospect.created_date
    return compute_follow_up_due(anchor, prospect.follow_up_timeframe)


def due_status(prospect: Prospect, now: datetime | None = None) -> DueStatus | None:
    due = due_date(prospect)
    if due is None:
        return None
    now = now or datetime.now(timezone.utc)
    if due.tzinfo is None:
        due = due.replace(tzinfo=timezone.utc)
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    end_of_day = start_of_day + timedelta(days=1)
    if due < start_of_day:
        return DueStatus.OVERDUE
    if due < end_of_day:
        return DueStatus.TODAY
    if due < end_of_day + SOON_WINDOW:
        return DueStatus.SOON
    return DueStatus.FUTURE

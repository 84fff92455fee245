"""
Legal Workflow SDK - Business-day arithmetic, turnaround and rush calculation.

Business days are Monday through Friday. There is no holiday calendar.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union

from .models import ReviewAudience, ReviewState

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def is_business_day(day: DateLike) -> bool:
    """Return True for Monday through Friday."""
    return _as_date(day).weekday() < 5


def add_business_days(start: DateLike, days: int) -> date:
    """Return the date ``days`` business days after ``start``.

    Weekend days are stepped over without being counted. ``days=0`` returns
    ``start`` unchanged, even on a weekend.
    """
    if days < 0:
        raise ValueError("days cannot be negative")

    current = _as_date(start)
    added = 0
    while added < days:
        current += timedelta(days=1)
        if is_business_day(current):
            added += 1
    return current


def business_days_between(start: DateLike, end: DateLike) -> int:
    """Count business days ``d`` with ``start < d <= end``.

    Returns 0 when ``end`` is not after ``start``. For any ``n >= 0``,
    ``business_days_between(s, add_business_days(s, n)) == n``.
    """
    start_day = _as_date(start)
    end_day = _as_date(end)
    if end_day <= start_day:
        return 0

    count = 0
    current = start_day
    while current < end_day:
        current += timedelta(days=1)
        if is_business_day(current):
            count += 1
    return count


def expected_turnaround_date(created_on: DateLike, turnaround_days: int) -> date:
    """Date by which a request is due under its submission item's SLA."""
    return add_business_days(created_on, turnaround_days)


@dataclass(frozen=True)
class RushCalculation:
    """Result of comparing a requested return date against the standard SLA."""

    is_rush: bool
    expected_completion_date: date
    actual_days_available: int
    business_days_short: int


def calculate_rush(
    created_on: DateLike,
    target_return_date: DateLike,
    turnaround_days: int,
) -> RushCalculation:
    """Decide whether ``target_return_date`` is earlier than the SLA allows."""
    expected = expected_turnaround_date(created_on, turnaround_days)
    target = _as_date(target_return_date)
    is_rush = target < expected
    available = business_days_between(created_on, target)
    return RushCalculation(
        is_rush=is_rush,
        expected_completion_date=expected,
        actual_days_available=available,
        business_days_short=max(0, turnaround_days - available) if is_rush else 0,
    )


def is_tracking_id_required(
    review_audience: ReviewAudience,
    compliance_review: Optional[ReviewState],
) -> bool:
    """A tracking ID is needed when compliance flagged Foreside review or retail use."""
    if review_audience == ReviewAudience.LEGAL or compliance_review is None:
        return False
    return compliance_review.is_foreside_review_required or compliance_review.is_retail_use

"""Shared due-date policy: overdue / due-soon classification.

All comparisons are on calendar dates; time-of-day is dropped from both
the due date and the reference instant before comparing.
"""
from __future__ import annotations

from datetime import date, datetime

from app.review.models import ReviewStatus, as_date

DUE_SOON_DAYS = 3

BADGE_COMPLETED = "Completed"
BADGE_OVERDUE = "Overdue"
BADGE_DUE_SOON = "Due Soon"
BADGE_IN_PROGRESS = "In Progress"


def today(reference_now: date | datetime | None = None) -> date:
    """Return the calendar date of *reference_now* (defaults to now)."""
    if reference_now is None:
        return date.today()
    return as_date(reference_now)


def days_until(due: date | datetime | None, reference_now: date | datetime | None = None) -> int | None:
    """Whole calendar days from today to *due*; negative when past."""
    if due is None:
        return None
    return (as_date(due) - today(reference_now)).days


def is_overdue(due: date | datetime | None, reference_now: date | datetime | None = None) -> bool:
    """True iff *due* is strictly earlier than today."""
    delta = days_until(due, reference_now)
    return delta is not None and delta < 0


def is_due_soon(due: date | datetime | None, reference_now: date | datetime | None = None) -> bool:
    """True iff *due* is today or within the next ``DUE_SOON_DAYS`` days."""
    delta = days_until(due, reference_now)
    return delta is not None and 0 <= delta <= DUE_SOON_DAYS


def due_state(
    status: ReviewStatus | str,
    due: date | datetime | None,
    reference_now: date | datetime | None = None,
) -> str:
    """Badge label for a protocol or assignment row."""
    if status == ReviewStatus.COMPLETED:
        return BADGE_COMPLETED
    if is_overdue(due, reference_now):
        return BADGE_OVERDUE
    if is_due_soon(due, reference_now):
        return BADGE_DUE_SOON
    return BADGE_IN_PROGRESS

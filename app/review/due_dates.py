"""Representative due date for a protocol with per-reviewer due dates."""
from __future__ import annotations

from datetime import date, datetime

from app.review.models import Protocol
from app.review.temporal import today


def resolve_representative_due_date(
    protocol: Protocol,
    reference_now: date | datetime | None = None,
) -> date | None:
    """Return the single due date a protocol is sorted and badged by.

    - no assignments: the protocol's own due date
    - everything completed: the latest due date across all assignments
    - otherwise the earliest pending due date that is today or later,
      else the most recently missed pending due date
    - no assignment carries a due date: the protocol's own due date
    """
    if not protocol.assignments:
        return protocol.due_date

    pending = protocol.pending_assignments
    if not pending:
        all_dates = [a.due_date for a in protocol.assignments if a.due_date is not None]
        return max(all_dates) if all_dates else protocol.due_date

    current = today(reference_now)
    pending_dates = [a.due_date for a in pending if a.due_date is not None]

    upcoming = [d for d in pending_dates if d >= current]
    if upcoming:
        return min(upcoming)

    missed = [d for d in pending_dates if d < current]
    if missed:
        return max(missed)

    return protocol.due_date

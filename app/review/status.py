"""Protocol-level status derived from assignment statuses."""
from __future__ import annotations

from collections.abc import Iterable

from app.review.models import Protocol, ReviewStatus


def aggregate_assignment_statuses(
    statuses: Iterable[ReviewStatus | str],
    fallback: ReviewStatus | str | None = None,
) -> ReviewStatus:
    """Aggregate a sequence of assignment statuses.

    *fallback* is the stored protocol status, consulted only when there are
    no assignment statuses at all.
    """
    values = list(statuses)
    if not values:
        if fallback == ReviewStatus.COMPLETED:
            return ReviewStatus.COMPLETED
        return ReviewStatus.IN_PROGRESS

    completed = sum(1 for s in values if s == ReviewStatus.COMPLETED)
    if completed == len(values):
        return ReviewStatus.COMPLETED
    if completed > 0:
        return ReviewStatus.PARTIALLY_COMPLETED
    return ReviewStatus.IN_PROGRESS


def aggregate_status(protocol: Protocol) -> ReviewStatus:
    """Return Completed, Partially Completed or In Progress for *protocol*."""
    return aggregate_assignment_statuses(
        (a.status for a in protocol.assignments),
        fallback=protocol.status,
    )


def completion_counts(protocol: Protocol) -> tuple[int, int]:
    """Return ``(completed, total)`` assignment counts."""
    total = len(protocol.assignments)
    completed = sum(1 for a in protocol.assignments if a.is_completed)
    return completed, total

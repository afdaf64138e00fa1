"""Canonical protocol and assignment types.

Every component past the normalizer works on these values only; raw
record shapes never leave ``app.review.normalizer``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class ReviewStatus(str, Enum):
    """Assignment and aggregate protocol statuses, valued as stored."""

    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    PARTIALLY_COMPLETED = "Partially Completed"


class RecordShape(str, Enum):
    CURRENT = "current"
    LEGACY = "legacy"


@dataclass(frozen=True)
class ReviewerAssignment:
    """One reviewer paired with one protocol for one document/form type."""

    reviewer_id: str
    reviewer_name: str
    status: ReviewStatus = ReviewStatus.IN_PROGRESS
    document_type: str | None = None
    due_date: date | None = None
    completed_at: date | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == ReviewStatus.COMPLETED


@dataclass(frozen=True)
class HistoryEntry:
    """A reassignment or status change recorded on the protocol itself."""

    entry_id: str
    event_type: str
    from_reviewer: str | None
    to_reviewer: str | None
    date: date | None
    reason: str | None = None
    actor: str | None = None


@dataclass(frozen=True)
class Protocol:
    """A research protocol under multi-reviewer review."""

    protocol_id: str
    name: str
    assignments: tuple[ReviewerAssignment, ...]
    storage_path: str
    shape: RecordShape
    due_date: date | None = None
    status: ReviewStatus = ReviewStatus.IN_PROGRESS
    created_at: date | None = None
    release_period: str = ""
    academic_level: str | None = None
    document_type: str | None = None
    legacy_reviewer: str | None = None
    history: tuple[HistoryEntry, ...] = field(default_factory=tuple)

    def effective_due_date(self, assignment: ReviewerAssignment) -> date | None:
        """Return the assignment's own due date, else the protocol's."""
        if assignment.due_date is not None:
            return assignment.due_date
        return self.due_date

    @property
    def pending_assignments(self) -> tuple[ReviewerAssignment, ...]:
        return tuple(a for a in self.assignments if not a.is_completed)


def as_date(value: date | datetime) -> date:
    """Strip the time-of-day from *value* (no timezone conversion)."""
    if isinstance(value, datetime):
        return value.date()
    return value

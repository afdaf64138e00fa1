"""Report aggregation over canonical protocols.

Every report is a pure function of a list of ``Protocol`` values and a
reference instant, so the same corpus always yields the same tables.
Assignment-level rows use each assignment's effective due date; protocol
level rows use the representative due date.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime

from app.review.due_dates import resolve_representative_due_date
from app.review.models import Protocol, ReviewStatus
from app.review.periods import UNSPECIFIED_PERIOD, period_sort_key
from app.review.status import aggregate_status
from app.review.temporal import days_until, is_due_soon, is_overdue

logger = logging.getLogger(__name__)

# Reviewers with fewer completed samples are left out of speed rankings.
MIN_SPEED_SAMPLES = 3

DEFAULT_UPCOMING_WINDOW_DAYS = 7


# ---------------------------------------------------------------------------
# Row types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OverdueRow:
    protocol_id: str
    protocol_name: str
    storage_path: str
    reviewer_id: str
    reviewer_name: str
    due_date: date
    days_overdue: int


@dataclass
class ReviewerStats:
    reviewer_id: str
    reviewer_name: str
    assigned: int = 0
    completed: int = 0
    overdue: int = 0

    @property
    def pending(self) -> int:
        return self.assigned - self.completed


@dataclass(frozen=True)
class ReviewerSpeed:
    reviewer_id: str
    reviewer_name: str
    samples: int
    mean_completion_days: float


@dataclass
class PeriodTally:
    release_period: str
    completed: int = 0
    not_completed: int = 0

    @property
    def total(self) -> int:
        return self.completed + self.not_completed


@dataclass(frozen=True)
class UpcomingRow:
    protocol_id: str
    protocol_name: str
    storage_path: str
    due_date: date
    days_until_due: int
    status: ReviewStatus


@dataclass
class DashboardSummary:
    total_protocols: int = 0
    total_reviews: int = 0
    completed: int = 0
    partially_completed: int = 0
    in_progress: int = 0
    overdue: int = 0
    due_soon: int = 0
    upcoming: list[UpcomingRow] = field(default_factory=list)


@dataclass(frozen=True)
class ReminderItem:
    protocol_id: str
    protocol_name: str
    storage_path: str
    due_date: date
    days_until_due: int


@dataclass
class ReviewerReminder:
    """Pending work one reviewer should be reminded about."""

    reviewer_id: str
    reviewer_name: str
    overdue: list[ReminderItem] = field(default_factory=list)
    due_soon: list[ReminderItem] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Assignment-level reports
# ---------------------------------------------------------------------------

def overdue_reviewer_list(
    protocols: Iterable[Protocol],
    reference_now: date | datetime | None = None,
) -> list[OverdueRow]:
    """One row per pending assignment whose effective due date has passed.

    Sorted by due date, oldest first.
    """
    rows: list[OverdueRow] = []
    for protocol in protocols:
        for assignment in protocol.pending_assignments:
            due = protocol.effective_due_date(assignment)
            if not is_overdue(due, reference_now):
                continue
            rows.append(
                OverdueRow(
                    protocol_id=protocol.protocol_id,
                    protocol_name=protocol.name,
                    storage_path=protocol.storage_path,
                    reviewer_id=assignment.reviewer_id,
                    reviewer_name=assignment.reviewer_name,
                    due_date=due,
                    days_overdue=-days_until(due, reference_now),
                )
            )
    rows.sort(key=lambda r: (r.due_date, r.protocol_id, r.reviewer_id))
    return rows


def reviewer_stats(
    protocols: Iterable[Protocol],
    reference_now: date | datetime | None = None,
) -> list[ReviewerStats]:
    """Assigned / completed / overdue counts keyed by reviewer id.

    Sorted by assigned count, busiest first.
    """
    by_reviewer: dict[str, ReviewerStats] = {}
    for protocol in protocols:
        for assignment in protocol.assignments:
            stats = by_reviewer.get(assignment.reviewer_id)
            if stats is None:
                stats = ReviewerStats(
                    reviewer_id=assignment.reviewer_id,
                    reviewer_name=assignment.reviewer_name,
                )
                by_reviewer[assignment.reviewer_id] = stats
            stats.assigned += 1
            if assignment.is_completed:
                stats.completed += 1
            elif is_overdue(protocol.effective_due_date(assignment), reference_now):
                stats.overdue += 1

    return sorted(by_reviewer.values(), key=lambda s: (-s.assigned, s.reviewer_id))


def reviewer_speed(
    protocols: Iterable[Protocol],
    min_samples: int = MIN_SPEED_SAMPLES,
) -> list[ReviewerSpeed]:
    """Mean days between effective due date and completion, per reviewer.

    Negative means early.  Only Completed assignments carrying both dates
    count as samples; reviewers below *min_samples* are excluded.  Sorted
    fastest first.
    """
    samples: dict[str, list[int]] = {}
    names: dict[str, str] = {}
    for protocol in protocols:
        for assignment in protocol.assignments:
            if not assignment.is_completed or assignment.completed_at is None:
                continue
            due = protocol.effective_due_date(assignment)
            if due is None:
                continue
            samples.setdefault(assignment.reviewer_id, []).append((assignment.completed_at - due).days)
            names.setdefault(assignment.reviewer_id, assignment.reviewer_name)

    ranking = [
        ReviewerSpeed(
            reviewer_id=reviewer_id,
            reviewer_name=names[reviewer_id],
            samples=len(values),
            mean_completion_days=sum(values) / len(values),
        )
        for reviewer_id, values in samples.items()
        if len(values) >= min_samples
    ]
    ranking.sort(key=lambda r: (r.mean_completion_days, r.reviewer_id))
    return ranking


def reviewer_reminders(
    protocols: Iterable[Protocol],
    reference_now: date | datetime | None = None,
) -> list[ReviewerReminder]:
    """Overdue and due-soon pending assignments grouped by reviewer id.

    Reviewers with nothing to be reminded about are omitted.  Each list is
    ordered by due date; reviewers are ordered by id.
    """
    by_reviewer: dict[str, ReviewerReminder] = {}
    for protocol in protocols:
        for assignment in protocol.pending_assignments:
            due = protocol.effective_due_date(assignment)
            overdue = is_overdue(due, reference_now)
            if not overdue and not is_due_soon(due, reference_now):
                continue

            reminder = by_reviewer.get(assignment.reviewer_id)
            if reminder is None:
                reminder = ReviewerReminder(
                    reviewer_id=assignment.reviewer_id,
                    reviewer_name=assignment.reviewer_name,
                )
                by_reviewer[assignment.reviewer_id] = reminder

            item = ReminderItem(
                protocol_id=protocol.protocol_id,
                protocol_name=protocol.name,
                storage_path=protocol.storage_path,
                due_date=due,
                days_until_due=days_until(due, reference_now),
            )
            if overdue:
                reminder.overdue.append(item)
            else:
                reminder.due_soon.append(item)

    for reminder in by_reviewer.values():
        reminder.overdue.sort(key=lambda i: (i.due_date, i.protocol_id))
        reminder.due_soon.sort(key=lambda i: (i.due_date, i.protocol_id))
    logger.debug("Built reminders for %d reviewers", len(by_reviewer))
    return [by_reviewer[key] for key in sorted(by_reviewer)]


# ---------------------------------------------------------------------------
# Protocol-level reports
# ---------------------------------------------------------------------------

def completion_by_period(protocols: Iterable[Protocol]) -> list[PeriodTally]:
    """Completed vs not-completed protocol counts per release period."""
    tallies: dict[str, PeriodTally] = {}
    for protocol in protocols:
        label = protocol.release_period.strip() or UNSPECIFIED_PERIOD
        tally = tallies.setdefault(label, PeriodTally(release_period=label))
        if aggregate_status(protocol) == ReviewStatus.COMPLETED:
            tally.completed += 1
        else:
            tally.not_completed += 1
    return [tallies[label] for label in sorted(tallies, key=period_sort_key)]


def upcoming_protocols(
    protocols: Iterable[Protocol],
    reference_now: date | datetime | None = None,
    window_days: int = DEFAULT_UPCOMING_WINDOW_DAYS,
) -> list[UpcomingRow]:
    """Pending protocols whose representative due date is in the next *window_days* days."""
    rows: list[UpcomingRow] = []
    for protocol in protocols:
        status = aggregate_status(protocol)
        if status == ReviewStatus.COMPLETED:
            continue
        due = resolve_representative_due_date(protocol, reference_now)
        delta = days_until(due, reference_now)
        if delta is None or delta < 0 or delta > window_days:
            continue
        rows.append(
            UpcomingRow(
                protocol_id=protocol.protocol_id,
                protocol_name=protocol.name,
                storage_path=protocol.storage_path,
                due_date=due,
                days_until_due=delta,
                status=status,
            )
        )
    rows.sort(key=lambda r: (r.due_date, r.protocol_id))
    return rows


def dashboard_summary(
    protocols: Iterable[Protocol],
    reference_now: date | datetime | None = None,
    upcoming_window_days: int = DEFAULT_UPCOMING_WINDOW_DAYS,
) -> DashboardSummary:
    """Headline counts for the admin dashboard."""
    items = list(protocols)
    summary = DashboardSummary(total_protocols=len(items))
    for protocol in items:
        summary.total_reviews += len(protocol.assignments)
        status = aggregate_status(protocol)
        if status == ReviewStatus.COMPLETED:
            summary.completed += 1
            continue
        if status == ReviewStatus.PARTIALLY_COMPLETED:
            summary.partially_completed += 1
        else:
            summary.in_progress += 1

        due = resolve_representative_due_date(protocol, reference_now)
        if is_overdue(due, reference_now):
            summary.overdue += 1
        elif is_due_soon(due, reference_now):
            summary.due_soon += 1

    summary.upcoming = upcoming_protocols(items, reference_now, upcoming_window_days)
    logger.debug(
        "Dashboard summary: protocols=%d reviews=%d overdue=%d",
        summary.total_protocols,
        summary.total_reviews,
        summary.overdue,
    )
    return summary

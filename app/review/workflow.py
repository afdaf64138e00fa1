"""Assignment status workflow.

Manages per-assignment ``status`` transitions:

    In Progress → Completed     (reviewer submits)
    Completed   → In Progress   (correction / reopen)

Each transition is one atomic store update that also recomputes and
writes the protocol's aggregate status.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from app.audit.events import EVENT_REVIEW_COMPLETED, EVENT_REVIEW_REOPENED
from app.audit.history import append_history, build_history_entry
from app.review.errors import AssignmentNotFound
from app.review.identity import DEFAULT_SHORT_NAME_LENGTH, find_match_index, matches
from app.review.models import Protocol, ReviewStatus
from app.review.normalizer import (
    coerce_assignment_status,
    coerce_protocol_status,
    has_current_shape,
    normalize_record,
    raw_assignment_statuses,
    raw_legacy_identity,
    raw_reviewer_identities,
)
from app.review.status import aggregate_assignment_statuses
from app.store.base import DocumentStore, StoragePath, coerce_path

logger = logging.getLogger(__name__)

# Allowed transitions: current_status → {valid target statuses}
_TRANSITIONS: dict[ReviewStatus, set[ReviewStatus]] = {
    ReviewStatus.IN_PROGRESS: {ReviewStatus.COMPLETED},
    ReviewStatus.COMPLETED: {ReviewStatus.IN_PROGRESS},
}

# Map target status → history event type
_STATUS_EVENT_MAP: dict[ReviewStatus, str] = {
    ReviewStatus.COMPLETED: EVENT_REVIEW_COMPLETED,
    ReviewStatus.IN_PROGRESS: EVENT_REVIEW_REOPENED,
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReviewWorkflow:
    """Move one reviewer's assignment between In Progress and Completed."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        kind: str = "protocols",
        short_name_length: int = DEFAULT_SHORT_NAME_LENGTH,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.store = store
        self.kind = kind
        self.short_name_length = short_name_length
        self.clock = clock

    def can_transition(self, current_status: ReviewStatus | str, to_status: ReviewStatus | str) -> bool:
        """Return whether *current_status* → *to_status* is allowed."""
        try:
            target = ReviewStatus(to_status)
        except ValueError:
            return False
        return target in _TRANSITIONS.get(coerce_assignment_status(current_status), set())

    def mark_completed(
        self,
        protocol_ref: str | StoragePath,
        reviewer_id: str,
        reviewer_name: str | None = None,
        *,
        completed_at: datetime | None = None,
    ) -> Protocol:
        return self.transition(
            protocol_ref,
            reviewer_id,
            reviewer_name,
            ReviewStatus.COMPLETED,
            completed_at=completed_at,
        )

    def mark_in_progress(
        self,
        protocol_ref: str | StoragePath,
        reviewer_id: str,
        reviewer_name: str | None = None,
    ) -> Protocol:
        return self.transition(protocol_ref, reviewer_id, reviewer_name, ReviewStatus.IN_PROGRESS)

    def transition(
        self,
        protocol_ref: str | StoragePath,
        reviewer_id: str,
        reviewer_name: str | None,
        to_status: ReviewStatus,
        *,
        completed_at: datetime | None = None,
    ) -> Protocol:
        """Set the matching assignment to *to_status* if the transition is valid."""
        to_status = ReviewStatus(to_status)
        if to_status not in _TRANSITIONS:
            raise ValueError(f"Invalid target status {to_status.value!r}")

        path = coerce_path(protocol_ref)
        candidate_name = reviewer_name if reviewer_name is not None else reviewer_id
        now = self.clock()
        stamp = (completed_at or now).isoformat() if to_status == ReviewStatus.COMPLETED else None

        def _mutate(data: dict[str, Any]) -> dict[str, Any]:
            if has_current_shape(data):
                index = find_match_index(
                    raw_reviewer_identities(data),
                    reviewer_id,
                    candidate_name,
                    short_name_length=self.short_name_length,
                )
                if index is None:
                    raise AssignmentNotFound(path.token, reviewer_id)

                reviewers = list(data["reviewers"])
                entry = dict(reviewers[index])
                current = coerce_assignment_status(entry.get("status"))
                if not self.can_transition(current, to_status):
                    raise ValueError(f"Invalid transition {current.value!r} → {to_status.value!r}")
                entry["status"] = to_status.value
                entry["completed_at"] = stamp
                reviewers[index] = entry
                data["reviewers"] = reviewers
            else:
                identity = raw_legacy_identity(data)
                if identity is None or not matches(
                    identity[0],
                    identity[1],
                    reviewer_id,
                    candidate_name,
                    short_name_length=self.short_name_length,
                ):
                    raise AssignmentNotFound(path.token, reviewer_id)
                current = coerce_protocol_status(data.get("status"))
                if not self.can_transition(current, to_status):
                    raise ValueError(f"Invalid transition {current.value!r} → {to_status.value!r}")
                data["status"] = to_status.value

            aggregate = aggregate_assignment_statuses(raw_assignment_statuses(data))
            data["status"] = aggregate.value
            data["completed_at"] = stamp if aggregate == ReviewStatus.COMPLETED else None
            data["updated_at"] = now.isoformat()
            append_history(
                data,
                build_history_entry(
                    path.doc_id,
                    _STATUS_EVENT_MAP[to_status],
                    actor=candidate_name or reviewer_id,
                    at=now,
                ),
            )
            return data

        record = self.store.atomic_update(path, _mutate, kind=self.kind)
        logger.info("Assignment status set to %s on %s", to_status.value, path.token)
        return normalize_record(record)

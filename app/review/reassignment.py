"""Atomic reviewer reassignment.

One ``reassign()`` call is one ``DocumentStore.atomic_update``: the
assignment list (or legacy ``reviewer`` field), the recomputed aggregate
``status`` and the history entry are written together or not at all.

    read record
      → locate assignment via identity matcher   (AssignmentNotFound)
      → swap reviewer id/name, keep document type and due date,
        reset to In Progress, clear completed_at
      → recompute aggregate status over the updated set
      → write
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

from app.audit.events import EVENT_REASSIGNMENT
from app.audit.history import append_history, build_history_entry
from app.review.errors import AssignmentNotFound, DuplicateAssignment
from app.review.identity import DEFAULT_SHORT_NAME_LENGTH, find_match_index, matches
from app.review.models import Protocol, ReviewStatus
from app.review.normalizer import (
    has_current_shape,
    normalize_record,
    raw_assignment_statuses,
    raw_legacy_identity,
    raw_reviewer_identities,
)
from app.review.status import aggregate_assignment_statuses
from app.store.base import DocumentStore, StoragePath, coerce_path

logger = logging.getLogger(__name__)


@dataclass
class ReassignmentOutcome:
    """Result of one protocol within a bulk reassignment."""

    protocol_ref: str
    ok: bool
    protocol: Protocol | None = None
    error: str | None = None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReassignmentService:
    """Swap the reviewer on one assignment of a protocol, atomically."""

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

    # -- single -------------------------------------------------------------

    def reassign(
        self,
        protocol_ref: str | StoragePath,
        from_reviewer_id: str,
        to_reviewer_id: str,
        to_reviewer_name: str | None = None,
        *,
        from_reviewer_name: str | None = None,
        new_due_date: date | None = None,
        reason: str | None = None,
        actor: str = "system",
    ) -> Protocol:
        """Replace *from_reviewer_id* with the new reviewer on *protocol_ref*.

        *from_reviewer_name* is the candidate name handed to the identity
        matcher; it defaults to *from_reviewer_id* because historical
        records often store a name where an id belongs.  *new_due_date*
        overrides the assignment's due date; otherwise it is preserved.

        Raises ``RecordNotFound``, ``AssignmentNotFound`` or
        ``DuplicateAssignment``; in every failure case nothing is written.
        """
        if not to_reviewer_id or not to_reviewer_id.strip():
            raise ValueError("to_reviewer_id must be a non-empty string")
        to_reviewer_id = to_reviewer_id.strip()
        to_reviewer_name = (to_reviewer_name or "").strip() or to_reviewer_id
        candidate_name = from_reviewer_name if from_reviewer_name is not None else from_reviewer_id

        path = coerce_path(protocol_ref)
        now = self.clock()

        def _mutate(data: dict[str, Any]) -> dict[str, Any]:
            if has_current_shape(data):
                replaced = self._reassign_current(
                    data, path, from_reviewer_id, candidate_name, to_reviewer_id, to_reviewer_name, new_due_date
                )
            else:
                replaced = self._reassign_legacy(
                    data, path, from_reviewer_id, candidate_name, to_reviewer_id, to_reviewer_name, new_due_date
                )

            data["status"] = aggregate_assignment_statuses(
                raw_assignment_statuses(data),
                fallback=ReviewStatus.IN_PROGRESS,
            ).value
            data["updated_at"] = now.isoformat()
            append_history(
                data,
                build_history_entry(
                    path.doc_id,
                    EVENT_REASSIGNMENT,
                    actor=actor,
                    from_reviewer=replaced,
                    to_reviewer=to_reviewer_name,
                    reason=reason,
                    at=now,
                ),
            )
            return data

        record = self.store.atomic_update(path, _mutate, kind=self.kind)
        logger.info("Reviewer reassigned on %s by actor=%s", path.token, actor)
        return normalize_record(record)

    def _reassign_current(
        self,
        data: dict[str, Any],
        path: StoragePath,
        from_reviewer_id: str,
        candidate_name: str | None,
        to_reviewer_id: str,
        to_reviewer_name: str,
        new_due_date: date | None,
    ) -> str:
        identities = raw_reviewer_identities(data)
        index = find_match_index(
            identities,
            from_reviewer_id,
            candidate_name,
            short_name_length=self.short_name_length,
        )
        if index is None:
            raise AssignmentNotFound(path.token, from_reviewer_id)

        # The target must not already hold another assignment here.
        for other, (existing_id, existing_name) in enumerate(identities):
            if other != index and matches(
                existing_id,
                existing_name,
                to_reviewer_id,
                to_reviewer_name,
                short_name_length=self.short_name_length,
            ):
                raise DuplicateAssignment(
                    f"Reviewer {to_reviewer_id!r} is already assigned to protocol {path.token!r}"
                )

        reviewers = list(data["reviewers"])
        entry = dict(reviewers[index])
        replaced = identities[index][1] or identities[index][0] or from_reviewer_id

        entry["id"] = to_reviewer_id
        entry["name"] = to_reviewer_name
        entry["status"] = ReviewStatus.IN_PROGRESS.value
        entry["completed_at"] = None
        if new_due_date is not None:
            entry["due_date"] = new_due_date.isoformat()

        reviewers[index] = entry
        data["reviewers"] = reviewers
        return replaced

    def _reassign_legacy(
        self,
        data: dict[str, Any],
        path: StoragePath,
        from_reviewer_id: str,
        candidate_name: str | None,
        to_reviewer_id: str,
        to_reviewer_name: str,
        new_due_date: date | None,
    ) -> str:
        identity = raw_legacy_identity(data)
        if identity is None or not matches(
            identity[0],
            identity[1],
            from_reviewer_id,
            candidate_name,
            short_name_length=self.short_name_length,
        ):
            raise AssignmentNotFound(path.token, from_reviewer_id)

        data["reviewer"] = to_reviewer_id
        data["reviewer_name"] = to_reviewer_name
        data["status"] = ReviewStatus.IN_PROGRESS.value
        data["completed_at"] = None
        if new_due_date is not None:
            data["due_date"] = new_due_date.isoformat()
        return identity[1]

    # -- bulk ---------------------------------------------------------------

    def bulk_reassign(
        self,
        protocol_refs: Iterable[str | StoragePath],
        from_reviewer_id: str,
        to_reviewer_id: str,
        to_reviewer_name: str | None = None,
        *,
        from_reviewer_name: str | None = None,
        new_due_date: date | None = None,
        reason: str | None = None,
        actor: str = "system",
    ) -> list[ReassignmentOutcome]:
        """Reassign on several protocols, one transaction each.

        A protocol that fails with a not-found or validation error is
        reported in its outcome and does not stop the others.
        """
        outcomes: list[ReassignmentOutcome] = []
        for ref in protocol_refs:
            token = ref.token if isinstance(ref, StoragePath) else str(ref)
            try:
                protocol = self.reassign(
                    ref,
                    from_reviewer_id,
                    to_reviewer_id,
                    to_reviewer_name,
                    from_reviewer_name=from_reviewer_name,
                    new_due_date=new_due_date,
                    reason=reason,
                    actor=actor,
                )
            except (KeyError, ValueError) as exc:
                logger.warning("Bulk reassignment skipped %s: %s", token, type(exc).__name__)
                outcomes.append(ReassignmentOutcome(protocol_ref=token, ok=False, error=str(exc)))
                continue
            outcomes.append(ReassignmentOutcome(protocol_ref=token, ok=True, protocol=protocol))
        return outcomes

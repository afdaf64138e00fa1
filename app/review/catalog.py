"""Protocol catalog: the read side of the review engine.

Loads every record of a kind through the store and the normalizer and
answers the list queries the admin and reviewer views need.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime

from app.review.due_dates import resolve_representative_due_date
from app.review.identity import DEFAULT_SHORT_NAME_LENGTH, assignment_matches
from app.review.models import Protocol, ReviewStatus
from app.review.normalizer import normalize_record
from app.review.periods import sort_periods
from app.review.status import aggregate_status
from app.review.temporal import is_due_soon, is_overdue
from app.store.base import DocumentStore, StoragePath

logger = logging.getLogger(__name__)

DUE_STATE_ALL = "all"
DUE_STATE_OVERDUE = "overdue"
DUE_STATE_DUE_SOON = "due-soon"

VALID_DUE_STATES = frozenset({DUE_STATE_ALL, DUE_STATE_OVERDUE, DUE_STATE_DUE_SOON})


def _sort_key(protocol: Protocol, reference_now: date | datetime | None) -> tuple:
    due = resolve_representative_due_date(protocol, reference_now)
    return (due is None, due or date.min, protocol.protocol_id)


class ProtocolCatalog:
    """Query canonical protocols held in a ``DocumentStore``."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        kind: str = "protocols",
        short_name_length: int = DEFAULT_SHORT_NAME_LENGTH,
    ) -> None:
        self.store = store
        self.kind = kind
        self.short_name_length = short_name_length

    # -- load ---------------------------------------------------------------

    def load_all(self) -> list[Protocol]:
        """Normalize every stored record; malformed records are skipped."""
        protocols: list[Protocol] = []
        skipped = 0
        for record in self.store.enumerate_all(self.kind):
            try:
                protocols.append(normalize_record(record))
            except (ValueError, TypeError, AttributeError) as exc:
                skipped += 1
                logger.warning("Skipping malformed record %s: %s", record.ref, exc)
        if skipped:
            logger.info("Loaded %d protocols, skipped %d malformed", len(protocols), skipped)
        return protocols

    def get(self, ref: str | StoragePath) -> Protocol:
        """Return one protocol; raises ``RecordNotFound``."""
        return normalize_record(self.store.read_one(ref, self.kind))

    # -- filters ------------------------------------------------------------

    def for_reviewer(
        self,
        reviewer_id: str | None,
        reviewer_name: str | None = None,
        protocols: Iterable[Protocol] | None = None,
    ) -> list[Protocol]:
        """Protocols with at least one assignment matching the reviewer."""
        source = self.load_all() if protocols is None else protocols
        return [
            p
            for p in source
            if any(
                assignment_matches(a, reviewer_id, reviewer_name, short_name_length=self.short_name_length)
                for a in p.assignments
            )
        ]

    def filter_by_due_state(
        self,
        due_state: str = DUE_STATE_ALL,
        reference_now: date | datetime | None = None,
        protocols: Iterable[Protocol] | None = None,
    ) -> list[Protocol]:
        """Protocols in *due_state*, ordered by representative due date.

        ``overdue`` and ``due-soon`` exclude Completed protocols.
        """
        if due_state not in VALID_DUE_STATES:
            raise ValueError(
                f"Unknown due state {due_state!r}; must be one of {sorted(VALID_DUE_STATES)}"
            )
        source = self.load_all() if protocols is None else list(protocols)

        if due_state == DUE_STATE_ALL:
            selected = list(source)
        else:
            check = is_overdue if due_state == DUE_STATE_OVERDUE else is_due_soon
            selected = [
                p
                for p in source
                if aggregate_status(p) != ReviewStatus.COMPLETED
                and check(resolve_representative_due_date(p, reference_now), reference_now)
            ]
        selected.sort(key=lambda p: _sort_key(p, reference_now))
        return selected

    def filter_by_release(
        self,
        release_period: str,
        protocols: Iterable[Protocol] | None = None,
    ) -> list[Protocol]:
        source = self.load_all() if protocols is None else protocols
        wanted = release_period.strip().casefold()
        return [p for p in source if p.release_period.strip().casefold() == wanted]

    def search(self, term: str, protocols: Iterable[Protocol] | None = None) -> list[Protocol]:
        """Case-insensitive search over protocol id, name and reviewer names."""
        source = self.load_all() if protocols is None else protocols
        needle = term.strip().casefold()
        if not needle:
            return list(source)

        def _hit(protocol: Protocol) -> bool:
            if needle in protocol.protocol_id.casefold() or needle in protocol.name.casefold():
                return True
            return any(needle in a.reviewer_name.casefold() for a in protocol.assignments)

        return [p for p in source if _hit(p)]

    def release_periods(self, protocols: Iterable[Protocol] | None = None) -> list[str]:
        """Distinct non-empty release-period labels in display order."""
        source = self.load_all() if protocols is None else protocols
        return sort_periods({p.release_period for p in source if p.release_period})

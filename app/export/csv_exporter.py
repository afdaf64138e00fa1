"""CSV export of protocols and their reviewer assignments.

Takes the canonical protocols (optionally pre-filtered) and an optional
list of requested columns and renders one CSV row per protocol.  Dates are
ISO-formatted; assignment lists are rendered as compact JSON.

Pure logic is separated from the store so it can be unit-tested without
one.
"""
from __future__ import annotations

import csv
import io
import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from app.review.catalog import DUE_STATE_ALL, ProtocolCatalog
from app.review.due_dates import resolve_representative_due_date
from app.review.models import Protocol, ReviewStatus
from app.review.status import aggregate_status, completion_counts
from app.review.temporal import due_state, today

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Default columns when no fields are requested.
DEFAULT_EXPORT_FIELDS: list[str] = [
    "protocol_id",
    "protocol_name",
    "release_period",
    "status",
    "due_date",
    "due_state",
    "completed_reviews",
    "total_reviews",
]

#: Every column the exporter knows how to render.
ALLOWED_EXPORT_FIELDS: frozenset[str] = frozenset({
    "protocol_id",
    "storage_path",
    "protocol_name",
    "release_period",
    "academic_level",
    "document_type",
    "status",
    "due_date",
    "due_state",
    "created_at",
    "completed_reviews",
    "total_reviews",
    "reviewers",
    "record_shape",
})


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def _format_value(value: Any) -> str:
    """Convert a row value to a CSV cell."""
    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"), default=str)
    if isinstance(value, ReviewStatus):
        return value.value
    return str(value)


def resolve_export_fields(requested: Iterable[str] | None = None) -> list[str]:
    """Determine export columns from a request, falling back to defaults.

    Only fields present in ``ALLOWED_EXPORT_FIELDS`` are kept; unknown
    fields are dropped.  Duplicates keep their first position.
    """
    if requested:
        validated: list[str] = []
        for name in requested:
            name = name.strip()
            if name in ALLOWED_EXPORT_FIELDS and name not in validated:
                validated.append(name)
        if validated:
            return validated
    return list(DEFAULT_EXPORT_FIELDS)


@dataclass
class ProtocolRow:
    """Flat projection of a ``Protocol`` for export."""

    protocol_id: str
    storage_path: str
    protocol_name: str
    release_period: str
    academic_level: str | None
    document_type: str | None
    status: ReviewStatus
    due_date: date | None
    due_state: str
    created_at: date | None
    completed_reviews: int
    total_reviews: int
    reviewers: list[dict[str, Any]]
    record_shape: str

    @classmethod
    def from_protocol(
        cls,
        protocol: Protocol,
        reference_now: date | datetime | None = None,
    ) -> ProtocolRow:
        status = aggregate_status(protocol)
        due = resolve_representative_due_date(protocol, reference_now)
        completed, total = completion_counts(protocol)
        return cls(
            protocol_id=protocol.protocol_id,
            storage_path=protocol.storage_path,
            protocol_name=protocol.name,
            release_period=protocol.release_period,
            academic_level=protocol.academic_level,
            document_type=protocol.document_type,
            status=status,
            due_date=due,
            due_state=due_state(status, due, reference_now),
            created_at=protocol.created_at,
            completed_reviews=completed,
            total_reviews=total,
            reviewers=[
                {
                    "id": a.reviewer_id,
                    "name": a.reviewer_name,
                    "status": a.status.value,
                    "document_type": a.document_type,
                    "due_date": a.due_date.isoformat() if a.due_date else None,
                    "completed_at": a.completed_at.isoformat() if a.completed_at else None,
                }
                for a in protocol.assignments
            ],
            record_shape=protocol.shape.value,
        )

    def get(self, field: str) -> Any:
        return getattr(self, field, None)


def build_csv_content(
    rows: list[ProtocolRow],
    fields: list[str],
) -> str:
    """Build CSV content as a string.  Pure function — no store or IO."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(fields)
    for row in rows:
        writer.writerow([_format_value(row.get(f)) for f in fields])
    return buf.getvalue()


def export_file_name(kind: str, on: date | datetime | None = None) -> str:
    """``<kind>_export_<YYYY-MM-DD>.csv``."""
    return f"{kind}_export_{today(on).isoformat()}.csv"


# ---------------------------------------------------------------------------
# Store-integrated exporter
# ---------------------------------------------------------------------------


class ProtocolCSVExporter:
    """Loads protocols through a catalog and renders them as CSV.

    Usage::

        exporter = ProtocolCSVExporter(catalog)
        content = exporter.render(fields=["protocol_id", "status"], due_state="overdue")
    """

    def __init__(self, catalog: ProtocolCatalog) -> None:
        self._catalog = catalog

    def render(
        self,
        fields: Iterable[str] | None = None,
        *,
        due_state: str = DUE_STATE_ALL,
        release_period: str | None = None,
        reference_now: date | datetime | None = None,
    ) -> str:
        columns = resolve_export_fields(fields)
        protocols = self._catalog.load_all()
        if release_period:
            protocols = self._catalog.filter_by_release(release_period, protocols)
        protocols = self._catalog.filter_by_due_state(due_state, reference_now, protocols)

        rows = [ProtocolRow.from_protocol(p, reference_now) for p in protocols]
        logger.info("Exporting %d protocols with %d columns", len(rows), len(columns))
        return build_csv_content(rows, columns)

"""Raw protocol record → canonical ``Protocol``.

Two record shapes coexist in the store:

* current — a ``reviewers`` list of assignment maps, each with its own
  ``status``, ``document_type``/``form_type``, ``due_date`` and
  ``completed_at``;
* legacy — a single ``reviewer`` string, with status, document type and
  due date held on the record itself.

and two storage layouts (flat ``<id>`` and hierarchical
``<month>/<week>/<id>``), told apart by the ``StoragePath`` the record was
enumerated under.

Date fields arrive as date-only text, date-time text, ``date``/``datetime``
values, store-native timestamp objects, or serialized timestamps
(``{"seconds": ..., "nanoseconds": ...}``).  All are reduced to a
``datetime.date`` using the value's own date components; no timezone
conversion is applied to text or ``datetime`` values.  A value that cannot
be parsed becomes ``None``: one malformed historical field must never
block the rest of the corpus.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any

from app.review.errors import ParseError
from app.review.models import HistoryEntry, Protocol, RecordShape, ReviewerAssignment, ReviewStatus
from app.store.base import RawRecord, StoragePath, coerce_path

logger = logging.getLogger(__name__)

_DATE_ONLY_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

# Non-ISO text formats seen in imported spreadsheets.
_TEXT_FORMATS: tuple[str, ...] = (
    "%m/%d/%Y",
    "%Y/%m/%d",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
)


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

def _parse_text(text: str) -> date:
    match = _DATE_ONLY_RE.match(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
        try:
            return date(year, month, day)
        except ValueError as exc:
            raise ParseError(f"Invalid calendar date {text!r}") from exc

    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.fromisoformat(iso).date()
    except ValueError:
        pass

    for fmt in _TEXT_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ParseError(f"Unrecognized date text {text!r}")


def _parse_serialized_timestamp(value: Mapping[str, Any]) -> date:
    seconds = value.get("seconds", value.get("_seconds"))
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        raise ParseError("Timestamp mapping has no numeric 'seconds'")
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).date()
    except (OverflowError, OSError, ValueError) as exc:
        raise ParseError(f"Timestamp seconds out of range: {seconds!r}") from exc


def parse_date(value: Any) -> date | None:
    """Strictly parse a stored date value; raise ``ParseError`` on failure.

    ``None`` and blank text mean "no date" and return ``None``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        return _parse_text(text)
    if isinstance(value, Mapping):
        return _parse_serialized_timestamp(value)

    for attr in ("to_datetime", "ToDatetime", "toDate"):
        converter = getattr(value, attr, None)
        if callable(converter):
            try:
                converted = converter()
            except Exception as exc:
                raise ParseError(f"Timestamp conversion via {attr} failed") from exc
            if isinstance(converted, datetime):
                return converted.date()
            if isinstance(converted, date):
                return converted
            raise ParseError(f"{attr}() returned {type(converted).__name__}")

    raise ParseError(f"Unsupported date value of type {type(value).__name__}")


def coerce_date(value: Any, *, field_name: str = "date") -> date | None:
    """Lenient ``parse_date``: unparsable values become ``None``."""
    try:
        return parse_date(value)
    except ParseError as exc:
        logger.debug("Dropping unparsable %s: %s", field_name, exc)
        return None


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------

def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _optional_text(value: Any) -> str | None:
    text = _text(value)
    return text or None


def coerce_assignment_status(value: Any) -> ReviewStatus:
    """``Completed`` (any case) or ``In Progress``; absence means In Progress."""
    if _text(value).casefold() == ReviewStatus.COMPLETED.value.casefold():
        return ReviewStatus.COMPLETED
    return ReviewStatus.IN_PROGRESS


def coerce_protocol_status(value: Any) -> ReviewStatus:
    text = _text(value).casefold()
    for status in ReviewStatus:
        if text == status.value.casefold():
            return status
    return ReviewStatus.IN_PROGRESS


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------

def _assignment_from_map(entry: Mapping[str, Any]) -> ReviewerAssignment | None:
    reviewer_id = _text(entry.get("id"))
    reviewer_name = _text(entry.get("name"))
    if not reviewer_id and not reviewer_name:
        return None

    status = coerce_assignment_status(entry.get("status"))
    completed_at = None
    if status == ReviewStatus.COMPLETED:
        completed_at = coerce_date(entry.get("completed_at"), field_name="completed_at")

    return ReviewerAssignment(
        reviewer_id=reviewer_id or reviewer_name,
        reviewer_name=reviewer_name or reviewer_id,
        status=status,
        document_type=_optional_text(entry.get("document_type")) or _optional_text(entry.get("form_type")),
        due_date=coerce_date(entry.get("due_date"), field_name="due_date"),
        completed_at=completed_at,
    )


def _current_assignments(data: Mapping[str, Any]) -> list[ReviewerAssignment]:
    reviewers = data.get("reviewers")
    if not isinstance(reviewers, list):
        return []

    assignments: list[ReviewerAssignment] = []
    for entry in reviewers:
        if not isinstance(entry, Mapping):
            logger.debug("Skipping non-mapping reviewer entry of type %s", type(entry).__name__)
            continue
        assignment = _assignment_from_map(entry)
        if assignment is not None:
            assignments.append(assignment)
    return assignments


def _legacy_assignment(data: Mapping[str, Any], status: ReviewStatus) -> ReviewerAssignment | None:
    reviewer = _text(data.get("reviewer"))
    if not reviewer:
        return None
    assignment_status = (
        ReviewStatus.COMPLETED if status == ReviewStatus.COMPLETED else ReviewStatus.IN_PROGRESS
    )
    completed_at = None
    if assignment_status == ReviewStatus.COMPLETED:
        completed_at = coerce_date(data.get("completed_at"), field_name="completed_at")
    return ReviewerAssignment(
        reviewer_id=reviewer,
        reviewer_name=_text(data.get("reviewer_name")) or reviewer,
        status=assignment_status,
        document_type=_optional_text(data.get("document_type")) or _optional_text(data.get("form_type")),
        due_date=coerce_date(data.get("due_date"), field_name="due_date"),
        completed_at=completed_at,
    )


def has_current_shape(data: Mapping[str, Any]) -> bool:
    """True when the record carries a usable ``reviewers`` list."""
    return bool(_current_assignments(data))


# Helpers for writers (reassignment, workflow) that must edit the raw
# record in place yet agree with how ``normalize`` reads it.

def raw_reviewer_identities(data: Mapping[str, Any]) -> list[tuple[str | None, str | None]]:
    """(id, name) per ``reviewers`` entry, index-aligned with the raw list.

    Entries ``normalize`` would skip yield ``(None, None)`` so they can
    never match.
    """
    reviewers = data.get("reviewers")
    if not isinstance(reviewers, list):
        return []
    identities: list[tuple[str | None, str | None]] = []
    for entry in reviewers:
        assignment = _assignment_from_map(entry) if isinstance(entry, Mapping) else None
        if assignment is None:
            identities.append((None, None))
        else:
            identities.append((assignment.reviewer_id, assignment.reviewer_name))
    return identities


def raw_assignment_statuses(data: Mapping[str, Any]) -> list[ReviewStatus]:
    """Statuses of the assignments ``normalize`` would produce for *data*."""
    assignments = _current_assignments(data)
    if assignments:
        return [a.status for a in assignments]
    legacy = _legacy_assignment(data, coerce_protocol_status(data.get("status")))
    return [legacy.status] if legacy is not None else []


def raw_legacy_identity(data: Mapping[str, Any]) -> tuple[str, str] | None:
    """(id, name) of the legacy single reviewer, if any."""
    reviewer = _text(data.get("reviewer"))
    if not reviewer:
        return None
    return reviewer, _text(data.get("reviewer_name")) or reviewer


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

def _history(data: Mapping[str, Any]) -> tuple[HistoryEntry, ...]:
    raw = data.get("reassignment_history")
    if not isinstance(raw, list):
        return ()
    entries: list[HistoryEntry] = []
    for index, item in enumerate(raw):
        if not isinstance(item, Mapping):
            continue
        entries.append(
            HistoryEntry(
                entry_id=_text(item.get("id")) or str(index),
                event_type=_text(item.get("type")) or "reassignment",
                from_reviewer=_optional_text(item.get("from")),
                to_reviewer=_optional_text(item.get("to")),
                date=coerce_date(item.get("date"), field_name="history date"),
                reason=_optional_text(item.get("reason")),
                actor=_optional_text(item.get("actor")),
            )
        )
    return tuple(entries)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def normalize(
    raw: Mapping[str, Any],
    storage_path_hint: StoragePath | str | None = None,
) -> Protocol:
    """Convert one raw record into a canonical ``Protocol``.

    *storage_path_hint* is where the record was enumerated from.  When it
    is omitted the record is treated as flat and its ``id`` field is used.
    Raises ``ValueError`` only when no identifier can be determined.
    """
    if storage_path_hint is None:
        record_id = _text(raw.get("id")) or _text(raw.get("spup_rec_code"))
        if not record_id:
            raise ValueError("Record has no id and no storage path was given")
        path = StoragePath(doc_id=record_id)
    else:
        path = coerce_path(storage_path_hint)

    status = coerce_protocol_status(raw.get("status"))
    legacy_reviewer = _optional_text(raw.get("reviewer"))

    assignments = _current_assignments(raw)
    if assignments:
        shape = RecordShape.CURRENT
    else:
        shape = RecordShape.LEGACY
        legacy = _legacy_assignment(raw, status)
        assignments = [legacy] if legacy is not None else []

    release_period = _text(raw.get("release_period"))
    if not release_period and path.is_hierarchical:
        release_period = f"{path.month} {path.week}"

    name = (
        _text(raw.get("protocol_name"))
        or _text(raw.get("research_title"))
        or path.doc_id
    )

    return Protocol(
        protocol_id=path.doc_id,
        name=name,
        assignments=tuple(assignments),
        storage_path=path.token,
        shape=shape,
        due_date=coerce_date(raw.get("due_date"), field_name="due_date"),
        status=status,
        created_at=coerce_date(raw.get("created_at"), field_name="created_at"),
        release_period=release_period,
        academic_level=_optional_text(raw.get("academic_level")) or _optional_text(raw.get("course_program")),
        document_type=_optional_text(raw.get("document_type")) or _optional_text(raw.get("form_type")),
        legacy_reviewer=legacy_reviewer,
        history=_history(raw),
    )


def normalize_record(record: RawRecord) -> Protocol:
    """``normalize`` a record read from a ``DocumentStore``."""
    return normalize(record.data, record.path)

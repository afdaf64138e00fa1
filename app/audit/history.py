"""Append-only history entries kept inside protocol records.

``append_history()`` is called from within a store mutator, so an entry is
written if and only if the change it records is written.

Safety: reasons are never logged — only event type and actor.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from app.audit.events import VALID_EVENT_TYPES

logger = logging.getLogger(__name__)

HISTORY_FIELD = "reassignment_history"


def build_history_entry(
    protocol_id: str,
    event_type: str,
    *,
    actor: str,
    from_reviewer: str | None = None,
    to_reviewer: str | None = None,
    reason: str | None = None,
    at: datetime | None = None,
) -> dict[str, Any]:
    """Return a history entry map ready to be stored on a record.

    Raises ``ValueError`` for an unknown event type or a blank actor.
    """
    if event_type not in VALID_EVENT_TYPES:
        raise ValueError(
            f"Invalid event_type {event_type!r}; "
            f"must be one of {sorted(VALID_EVENT_TYPES)}"
        )
    if not actor or not actor.strip():
        raise ValueError("actor must be a non-empty string")

    at = at or datetime.now(timezone.utc)
    return {
        "id": f"{protocol_id}_{int(at.timestamp() * 1000)}",
        "type": event_type,
        "from": from_reviewer,
        "to": to_reviewer,
        "date": at.isoformat(),
        "reason": reason,
        "actor": actor,
    }


def append_history(data: dict[str, Any], entry: dict[str, Any]) -> dict[str, Any]:
    """Append *entry* to the record's history list in place and return *data*."""
    existing = data.get(HISTORY_FIELD)
    history = list(existing) if isinstance(existing, list) else []
    history.append(entry)
    data[HISTORY_FIELD] = history
    logger.info("History entry recorded: type=%s actor=%s", entry.get("type"), entry.get("actor"))
    return data

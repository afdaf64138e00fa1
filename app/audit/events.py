"""Event type constants for protocol history entries.

History entries are stored on the protocol record itself so they commit
in the same atomic write as the change they describe.
"""
from __future__ import annotations

EVENT_REASSIGNMENT = "reassignment"
EVENT_REVIEW_COMPLETED = "review_completed"
EVENT_REVIEW_REOPENED = "review_reopened"

VALID_EVENT_TYPES: frozenset[str] = frozenset({
    EVENT_REASSIGNMENT,
    EVENT_REVIEW_COMPLETED,
    EVENT_REVIEW_REOPENED,
})

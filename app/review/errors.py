"""Typed failures raised by the review reconciliation engine.

``ParseError`` is recovered locally by the normalizer.  ``RecordNotFound``
and ``AssignmentNotFound`` always reach the caller; they subclass
``KeyError`` so route handlers can map them to 404 the same way as any
other missing-entity lookup.
"""
from __future__ import annotations


class ReviewEngineError(Exception):
    """Base class for engine errors."""


class ParseError(ReviewEngineError, ValueError):
    """A single date/value could not be normalized."""


class RecordNotFound(ReviewEngineError, KeyError):
    """No protocol record exists at the requested reference."""

    def __init__(self, ref: str) -> None:
        super().__init__(f"Protocol {ref!r} not found")
        self.ref = ref

    def __str__(self) -> str:
        return self.args[0]


class AssignmentNotFound(ReviewEngineError, KeyError):
    """No assignment on the protocol matches the requested reviewer."""

    def __init__(self, ref: str, reviewer: str) -> None:
        super().__init__(f"Reviewer {reviewer!r} is not assigned to protocol {ref!r}")
        self.ref = ref
        self.reviewer = reviewer

    def __str__(self) -> str:
        return self.args[0]


class DuplicateAssignment(ReviewEngineError, ValueError):
    """The reassignment target already holds another assignment on the protocol."""


class ConcurrentUpdateError(ReviewEngineError):
    """The store could not apply an update after exhausting its retries."""

"""Document store contract consumed by the review engine.

Protocol records live either flat (``protocols/<id>``) or in the
hierarchical month/week layout (``protocols/<month>/<week>/<id>``).  A
``StoragePath`` remembers which, and its ``token`` is the opaque
reference the rest of the engine passes around.
"""
from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

RawData = dict[str, Any]
Mutator = Callable[[RawData], RawData]


@dataclass(frozen=True)
class StoragePath:
    """Physical location of a raw record."""

    doc_id: str
    month: str | None = None
    week: str | None = None

    def __post_init__(self) -> None:
        if not self.doc_id:
            raise ValueError("doc_id must be non-empty")
        if (self.month is None) != (self.week is None):
            raise ValueError("month and week must be given together")
        for segment in (self.doc_id, self.month, self.week):
            if segment is not None and "/" in segment:
                raise ValueError(f"Path segment {segment!r} must not contain '/'")

    @property
    def is_hierarchical(self) -> bool:
        return self.month is not None

    @property
    def token(self) -> str:
        if self.is_hierarchical:
            return f"{self.month}/{self.week}/{self.doc_id}"
        return self.doc_id

    @classmethod
    def parse(cls, token: str) -> StoragePath:
        """Parse a ``month/week/id`` or ``id`` token."""
        parts = token.strip("/").split("/") if token else []
        if len(parts) == 3:
            return cls(doc_id=parts[2], month=parts[0], week=parts[1])
        if len(parts) == 1 and parts[0]:
            return cls(doc_id=parts[0])
        raise ValueError(f"Invalid protocol reference {token!r}; expected 'id' or 'month/week/id'")

    def __str__(self) -> str:
        return self.token


@dataclass
class RawRecord:
    """A stored record as read from the store, with its location."""

    path: StoragePath
    data: RawData = field(default_factory=dict)

    @property
    def ref(self) -> str:
        return self.path.token


def coerce_path(ref: str | StoragePath) -> StoragePath:
    if isinstance(ref, StoragePath):
        return ref
    return StoragePath.parse(ref)


class DocumentStore(ABC):
    """Read / enumerate / atomically update raw protocol records."""

    @abstractmethod
    def enumerate_all(self, kind: str = "protocols") -> Iterator[RawRecord]:
        """Yield every record of *kind* across both storage layouts."""

    @abstractmethod
    def read_one(self, ref: str | StoragePath, kind: str = "protocols") -> RawRecord:
        """Return the record at *ref*; raise ``RecordNotFound`` if absent."""

    @abstractmethod
    def atomic_update(
        self,
        ref: str | StoragePath,
        mutator: Mutator,
        kind: str = "protocols",
    ) -> RawRecord:
        """Read-modify-write the record at *ref* in isolation.

        *mutator* receives a private deep copy of the stored data and returns
        the data to write.  If it raises, nothing is written and the
        exception propagates.
        """

    @abstractmethod
    def put(self, ref: str | StoragePath, data: RawData, kind: str = "protocols") -> RawRecord:
        """Create or replace the record at *ref* (import/seed path)."""


def detached(data: RawData) -> RawData:
    """Deep copy so callers never alias stored state."""
    return copy.deepcopy(data)

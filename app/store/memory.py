"""In-process document store used by tests and local runs."""
from __future__ import annotations

import logging
import threading
from collections.abc import Iterator

from app.review.errors import RecordNotFound
from app.store.base import DocumentStore, Mutator, RawData, RawRecord, StoragePath, coerce_path, detached

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store; a single lock serializes every update."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, str], tuple[StoragePath, RawData]] = {}
        self._lock = threading.RLock()

    def put(self, ref: str | StoragePath, data: RawData, kind: str = "protocols") -> RawRecord:
        path = coerce_path(ref)
        with self._lock:
            self._records[(kind, path.token)] = (path, detached(data))
        return RawRecord(path=path, data=detached(data))

    def enumerate_all(self, kind: str = "protocols") -> Iterator[RawRecord]:
        with self._lock:
            snapshot = [
                RawRecord(path=path, data=detached(data))
                for (record_kind, _), (path, data) in sorted(self._records.items())
                if record_kind == kind
            ]
        yield from snapshot

    def read_one(self, ref: str | StoragePath, kind: str = "protocols") -> RawRecord:
        path = coerce_path(ref)
        with self._lock:
            entry = self._records.get((kind, path.token))
            if entry is None:
                raise RecordNotFound(path.token)
            return RawRecord(path=entry[0], data=detached(entry[1]))

    def atomic_update(
        self,
        ref: str | StoragePath,
        mutator: Mutator,
        kind: str = "protocols",
    ) -> RawRecord:
        path = coerce_path(ref)
        with self._lock:
            entry = self._records.get((kind, path.token))
            if entry is None:
                raise RecordNotFound(path.token)
            updated = mutator(detached(entry[1]))
            self._records[(kind, path.token)] = (entry[0], detached(updated))
            logger.debug("Record updated: kind=%s path=%s", kind, path.token)
            return RawRecord(path=entry[0], data=detached(updated))

"""SQLAlchemy-backed document store.

Each raw protocol record is one ``ProtocolDocument`` row holding the record
as JSON.  ``atomic_update`` locks the row (``SELECT ... FOR UPDATE`` where
the backend supports it) and additionally guards the write with an
optimistic ``version`` check, so two concurrent updates of the same
protocol serialize: the loser re-reads and re-applies its mutator.

Retries with exponential back-off are owned here, not by the engine.
"""
from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterator
from datetime import date, datetime

from sqlalchemy import func, update
from sqlalchemy.orm import Session, sessionmaker

from app.db.models import ProtocolDocument
from app.db.repositories import ProtocolDocumentRepository
from app.review.errors import ConcurrentUpdateError, RecordNotFound
from app.store.base import DocumentStore, Mutator, RawData, RawRecord, StoragePath, coerce_path, detached

logger = logging.getLogger(__name__)

_BACKOFF_BASE = 0.05  # seconds: 0.05, 0.1, 0.2 ...


def _json_default(value: object) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    to_datetime = getattr(value, "to_datetime", None)
    if callable(to_datetime):
        return to_datetime().isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json_data(data: RawData) -> RawData:
    """Return a JSON-safe copy of *data*; dates become ISO strings."""
    return json.loads(json.dumps(data, default=_json_default))


def _path_of(row: ProtocolDocument) -> StoragePath:
    return StoragePath(doc_id=row.doc_id, month=row.month, week=row.week)


class SQLDocumentStore(DocumentStore):
    """Document store over the ``protocol_documents`` table."""

    def __init__(self, session_factory: sessionmaker, *, max_retries: int = 3) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self._session_factory = session_factory
        self._max_retries = max_retries

    def _session(self) -> Session:
        return self._session_factory()

    def put(self, ref: str | StoragePath, data: RawData, kind: str = "protocols") -> RawRecord:
        path = coerce_path(ref)
        payload = to_json_data(data)
        with self._session() as db, db.begin():
            repo = ProtocolDocumentRepository(db)
            row = repo.get_by_path(kind, path.token)
            if row is None:
                repo.create(
                    kind=kind,
                    path=path.token,
                    doc_id=path.doc_id,
                    month=path.month,
                    week=path.week,
                    data=payload,
                    version=1,
                )
            else:
                repo.update(row, data=payload, version=row.version + 1)
        return RawRecord(path=path, data=detached(payload))

    def enumerate_all(self, kind: str = "protocols") -> Iterator[RawRecord]:
        with self._session() as db:
            rows = ProtocolDocumentRepository(db).list_kind(kind)
            records = [RawRecord(path=_path_of(row), data=detached(row.data or {})) for row in rows]
        yield from records

    def read_one(self, ref: str | StoragePath, kind: str = "protocols") -> RawRecord:
        path = coerce_path(ref)
        with self._session() as db:
            row = ProtocolDocumentRepository(db).get_by_path(kind, path.token)
            if row is None:
                raise RecordNotFound(path.token)
            return RawRecord(path=_path_of(row), data=detached(row.data or {}))

    def atomic_update(
        self,
        ref: str | StoragePath,
        mutator: Mutator,
        kind: str = "protocols",
    ) -> RawRecord:
        path = coerce_path(ref)
        for attempt in range(1, self._max_retries + 1):
            with self._session() as db, db.begin():
                row = ProtocolDocumentRepository(db).get_by_path(kind, path.token, for_update=True)
                if row is None:
                    raise RecordNotFound(path.token)

                seen_version = row.version
                payload = to_json_data(mutator(detached(row.data or {})))
                result = db.execute(
                    update(ProtocolDocument)
                    .where(
                        ProtocolDocument.id == row.id,
                        ProtocolDocument.version == seen_version,
                    )
                    .values(data=payload, version=seen_version + 1, updated_at=func.now())
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 1:
                    logger.debug("Record updated: kind=%s path=%s version=%d", kind, path.token, seen_version + 1)
                    return RawRecord(path=_path_of(row), data=detached(payload))

            logger.warning(
                "Version conflict updating %s (attempt %d/%d)",
                path.token,
                attempt,
                self._max_retries,
            )
            if attempt < self._max_retries:
                time.sleep(_BACKOFF_BASE * (2 ** (attempt - 1)))

        raise ConcurrentUpdateError(
            f"Could not update {path.token!r} after {self._max_retries} attempts"
        )

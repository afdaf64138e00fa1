"""Tests for the DocumentStore implementations (app/store/)."""
from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
from sqlalchemy import create_engine, select, update
from sqlalchemy.orm import sessionmaker

from app.api.deps import get_store, reset_store
from app.core.settings import Settings, get_settings
from app.db.base import Base
from app.db.models import ProtocolDocument
from app.db.repositories import ProtocolDocumentRepository
from app.review.errors import ConcurrentUpdateError, RecordNotFound
from app.store import build_store
from app.store.base import RawRecord, StoragePath, coerce_path
from app.store.memory import InMemoryDocumentStore
from app.store.sql import SQLDocumentStore, to_json_data
from tests.conftest import current_record, legacy_record


# ===========================================================================
# StoragePath
# ===========================================================================

class TestStoragePath:
    def test_flat_token(self):
        path = StoragePath("P-1")
        assert path.token == "P-1"
        assert path.is_hierarchical is False
        assert str(path) == "P-1"

    def test_hierarchical_token(self):
        path = StoragePath("P-1", month="March", week="week-2")
        assert path.token == "March/week-2/P-1"
        assert StoragePath.parse(path.token) == path

    @pytest.mark.parametrize("token", ["", "a/b", "a/b/c/d", "/"])
    def test_invalid_tokens(self, token):
        with pytest.raises(ValueError):
            StoragePath.parse(token)

    def test_month_without_week_rejected(self):
        with pytest.raises(ValueError):
            StoragePath("P-1", month="March")

    def test_coerce_path(self):
        path = StoragePath("P-1")
        assert coerce_path(path) is path
        assert coerce_path("P-1") == path

    def test_raw_record_ref(self):
        assert RawRecord(path=StoragePath("P-1", "May", "w1")).ref == "May/w1/P-1"


# ===========================================================================
# Contract, run against both implementations
# ===========================================================================

class TestContract:
    def test_put_and_read(self, any_store):
        any_store.put("P-1", current_record())
        record = any_store.read_one("P-1")
        assert record.path == StoragePath("P-1")
        assert record.data == current_record()

    def test_enumerate_covers_both_layouts(self, any_store):
        any_store.put("P-1", current_record())
        any_store.put(StoragePath("P-2", month="March", week="week-1"), legacy_record())
        refs = sorted(r.ref for r in any_store.enumerate_all())
        assert refs == ["March/week-1/P-2", "P-1"]

    def test_kinds_are_separate(self, any_store):
        any_store.put("P-1", current_record(), kind="protocols")
        any_store.put("P-1", legacy_record(), kind="archived")
        assert [r.ref for r in any_store.enumerate_all("archived")] == ["P-1"]
        assert "reviewers" in any_store.read_one("P-1").data

    def test_read_missing(self, any_store):
        with pytest.raises(RecordNotFound):
            any_store.read_one("NOPE")

    def test_atomic_update_applies_mutator(self, any_store):
        any_store.put("P-1", current_record())

        def _mutate(data):
            data["status"] = "Completed"
            return data

        result = any_store.atomic_update("P-1", _mutate)
        assert result.data["status"] == "Completed"
        assert any_store.read_one("P-1").data["status"] == "Completed"

    def test_failing_mutator_writes_nothing(self, any_store):
        any_store.put("P-1", current_record())

        def _mutate(data):
            data["status"] = "Completed"
            raise KeyError("abort")

        with pytest.raises(KeyError):
            any_store.atomic_update("P-1", _mutate)
        assert any_store.read_one("P-1").data["status"] == "In Progress"

    def test_atomic_update_missing(self, any_store):
        with pytest.raises(RecordNotFound):
            any_store.atomic_update("NOPE", lambda data: data)

    def test_callers_never_alias_stored_state(self, any_store):
        any_store.put("P-1", current_record())
        any_store.read_one("P-1").data["reviewers"].clear()
        assert len(any_store.read_one("P-1").data["reviewers"]) == 2


# ===========================================================================
# SQL store specifics
# ===========================================================================

class TestSQLStore:
    def test_dates_are_stored_as_iso_text(self, sql_store):
        sql_store.put("P-1", {"due_date": date(2025, 3, 12), "created_at": datetime(2025, 3, 1, tzinfo=timezone.utc)})
        data = sql_store.read_one("P-1").data
        assert data["due_date"] == "2025-03-12"
        assert data["created_at"].startswith("2025-03-01T00:00:00")

    def test_to_json_data_rejects_unknown_types(self):
        with pytest.raises(TypeError):
            to_json_data({"x": object()})

    def test_version_increments(self, sql_store, session_factory):
        sql_store.put("P-1", current_record())
        sql_store.atomic_update("P-1", lambda data: data)
        sql_store.put("P-1", current_record())

        with session_factory() as db:
            row = ProtocolDocumentRepository(db).get_by_path("protocols", "P-1")
            assert row.version == 3
            assert (row.doc_id, row.month, row.week) == ("P-1", None, None)

    def test_hierarchical_columns(self, sql_store, session_factory):
        sql_store.put(StoragePath("P-1", month="March", week="week-2"), legacy_record())
        with session_factory() as db:
            row = db.execute(select(ProtocolDocument)).scalar_one()
            assert (row.path, row.month, row.week) == ("March/week-2/P-1", "March", "week-2")

    def test_max_retries_validated(self, session_factory):
        with pytest.raises(ValueError):
            SQLDocumentStore(session_factory, max_retries=0)


class TestSQLConcurrency:
    @pytest.fixture()
    def file_factory(self, tmp_path, monkeypatch):
        monkeypatch.setattr("app.store.sql._BACKOFF_BASE", 0)
        engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'store.db'}")
        Base.metadata.create_all(bind=engine)
        yield sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
        engine.dispose()

    @staticmethod
    def _bump_version(factory):
        with factory() as other, other.begin():
            other.execute(update(ProtocolDocument).values(version=ProtocolDocument.version + 1))

    def test_conflict_is_retried(self, file_factory):
        store = SQLDocumentStore(file_factory, max_retries=3)
        store.put("P-1", current_record())
        calls = []

        def _mutate(data):
            calls.append(1)
            if len(calls) == 1:
                self._bump_version(file_factory)
            data["status"] = "Completed"
            return data

        result = store.atomic_update("P-1", _mutate)

        assert len(calls) == 2
        assert result.data["status"] == "Completed"
        assert store.read_one("P-1").data["status"] == "Completed"

    def test_retries_exhausted(self, file_factory):
        store = SQLDocumentStore(file_factory, max_retries=2)
        store.put("P-1", current_record())

        def _mutate(data):
            self._bump_version(file_factory)
            data["status"] = "Completed"
            return data

        with pytest.raises(ConcurrentUpdateError):
            store.atomic_update("P-1", _mutate)
        assert store.read_one("P-1").data["status"] == "In Progress"


# ===========================================================================
# build_store
# ===========================================================================

class TestBuildStore:
    def test_memory_backend(self):
        store = build_store(Settings(STORE_BACKEND="memory"))
        assert isinstance(store, InMemoryDocumentStore)

    def test_sql_backend_rebuilt_after_reset(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STORE_BACKEND", "sql")
        monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{tmp_path / 'first.db'}")
        get_settings.cache_clear()
        reset_store()
        try:
            first = get_store()
            assert isinstance(first, SQLDocumentStore)
            first.put("P-1", current_record())

            monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{tmp_path / 'second.db'}")
            get_settings.cache_clear()
            reset_store()

            second = get_store()
            assert second is not first
            assert list(second.enumerate_all()) == []
        finally:
            reset_store()
            get_settings.cache_clear()

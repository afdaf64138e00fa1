from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base
from app.store.base import StoragePath
from app.store.memory import InMemoryDocumentStore
from app.store.sql import SQLDocumentStore

# Monday.  Every date in the fixtures below is relative to it.
REF_DATE = date(2025, 3, 10)
REF_NOW = datetime(2025, 3, 10, 9, 30, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return REF_NOW


# ---------------------------------------------------------------------------
# Raw records
# ---------------------------------------------------------------------------

def current_record(**overrides) -> dict:
    """Two-reviewer record in the current shape, nothing completed."""
    record = {
        "protocol_name": "Telehealth Uptake Among Senior Citizens",
        "status": "In Progress",
        "due_date": "2025-03-20",
        "release_period": "Second Release",
        "reviewers": [
            {
                "id": "DRAPL-001",
                "name": "Dr. Alicia Reyes",
                "status": "In Progress",
                "document_type": "PRA",
                "due_date": "2025-03-12",
            },
            {
                "id": "DRBEN-014",
                "name": "Dr. Benito Cruz",
                "status": "In Progress",
                "form_type": "ICA",
                "due_date": "2025-03-15",
            },
        ],
    }
    record.update(overrides)
    return record


def legacy_record(**overrides) -> dict:
    """Single-reviewer record in the legacy shape."""
    record = {
        "spup_rec_code": "SPUP_2024_0101",
        "research_title": "Sleep Patterns of Nursing Students",
        "reviewer": "Dr. Alicia Reyes",
        "status": "In Progress",
        "due_date": "2025-03-01",
        "document_type": "ICA",
        "course_program": "BSN",
    }
    record.update(overrides)
    return record


def seed_records(store, kind: str = "protocols") -> None:
    """Mixed corpus: legacy/current shapes in flat and hierarchical layouts."""
    store.put(StoragePath("P-CUR"), current_record(), kind=kind)
    store.put(StoragePath("P-LEG"), legacy_record(), kind=kind)
    store.put(
        StoragePath("P-HIER", month="February", week="week-1"),
        current_record(
            protocol_name="Water Quality Monitoring",
            release_period="",
            reviewers=[
                {"id": "DRCAR-007", "name": "Dr. Carla Mendoza", "status": "Completed",
                 "due_date": "2025-02-20", "completed_at": "2025-02-18"},
                {"id": "DRDAN-022", "name": "Dr. Daniel Santos", "status": "Completed",
                 "due_date": "2025-02-22", "completed_at": "2025-02-25"},
            ],
            status="Completed",
        ),
        kind=kind,
    )


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

@pytest.fixture()
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture()
def session_factory():
    """In-memory SQLite session factory with all tables created."""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    yield factory
    engine.dispose()


@pytest.fixture()
def sql_store(session_factory) -> SQLDocumentStore:
    return SQLDocumentStore(session_factory, max_retries=2)


@pytest.fixture(params=["memory", "sql"])
def any_store(request, memory_store, sql_store):
    """Runs a test once against each store implementation."""
    return memory_store if request.param == "memory" else sql_store


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------

@pytest.fixture()
def client(memory_store, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    """TestClient over a seeded in-memory store."""
    monkeypatch.setenv("STORE_BACKEND", "memory")

    from app.core.settings import get_settings

    get_settings.cache_clear()

    from app.api.deps import get_store, reset_store
    from app.api.main import app

    reset_store()
    seed_records(memory_store)
    app.dependency_overrides[get_store] = lambda: memory_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    reset_store()
    get_settings.cache_clear()

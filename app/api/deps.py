"""FastAPI dependency injection — the document store and service factories."""
from __future__ import annotations

from fastapi import Depends

from app.core.settings import Settings, get_settings
from app.db.session import reset_engine
from app.review.catalog import ProtocolCatalog
from app.review.reassignment import ReassignmentService
from app.review.workflow import ReviewWorkflow
from app.store import build_store
from app.store.base import DocumentStore

_store: DocumentStore | None = None


def get_store() -> DocumentStore:
    """Return the process-wide document store, building it on first use."""
    global _store
    if _store is None:
        _store = build_store(get_settings())
    return _store


def reset_store() -> None:
    """Drop the cached store and database engine (tests, settings reload)."""
    global _store
    _store = None
    reset_engine()


def get_catalog(
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> ProtocolCatalog:
    """Return a ProtocolCatalog over the configured store."""
    return ProtocolCatalog(
        store,
        kind=settings.protocol_kind,
        short_name_length=settings.identity_short_name_length,
    )


def get_reassignment_service(
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> ReassignmentService:
    """Return a ReassignmentService bound to the configured store."""
    return ReassignmentService(
        store,
        kind=settings.protocol_kind,
        short_name_length=settings.identity_short_name_length,
    )


def get_review_workflow(
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> ReviewWorkflow:
    """Return a ReviewWorkflow bound to the configured store."""
    return ReviewWorkflow(
        store,
        kind=settings.protocol_kind,
        short_name_length=settings.identity_short_name_length,
    )

"""Document store package.

``DocumentStore`` (``app.store.base``) is the contract the review engine
consumes: enumerate every protocol, read one, and atomically update one.
Two implementations ship with the service:

- ``InMemoryDocumentStore`` — tests and local experiments.
- ``SQLDocumentStore`` — records persisted as JSON rows via SQLAlchemy.

``build_store()`` picks one from settings.
"""
from __future__ import annotations

from app.core.settings import Settings, get_settings
from app.store.base import DocumentStore


def build_store(settings: Settings | None = None) -> DocumentStore:
    """Return the store selected by ``STORE_BACKEND``."""
    settings = settings or get_settings()
    if settings.store_backend == "memory":
        from app.store.memory import InMemoryDocumentStore

        return InMemoryDocumentStore()

    from app.db.base import Base
    from app.db.session import get_engine, get_session_factory
    from app.store.sql import SQLDocumentStore

    Base.metadata.create_all(bind=get_engine())
    return SQLDocumentStore(get_session_factory(), max_retries=settings.store_max_retries)

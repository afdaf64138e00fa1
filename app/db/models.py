from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Integer, JSON, String, UniqueConstraint, func, text as sql_text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class ProtocolDocument(Base):
    """One stored protocol record, in either storage layout.

    Flat records have ``month`` and ``week`` unset and ``path == doc_id``.
    Hierarchical records live under ``month/week/doc_id``.  ``data`` holds
    the raw record exactly as written by the import process, in either the
    legacy single-reviewer or the current multi-reviewer shape.
    """

    __tablename__ = "protocol_documents"
    __table_args__ = (UniqueConstraint("kind", "path", name="uq_protocol_documents_kind_path"),)

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    kind: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True, default="protocols", server_default=sql_text("'protocols'")
    )
    path: Mapped[str] = mapped_column(String(512), nullable=False)
    doc_id: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    month: Mapped[str | None] = mapped_column(String(64), nullable=True)
    week: Mapped[str | None] = mapped_column(String(64), nullable=True)
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default=sql_text("1"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

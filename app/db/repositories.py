from __future__ import annotations

from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db import models

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    model: type[ModelT]

    def __init__(self, db: Session):
        self.db = db

    def create(self, **kwargs) -> ModelT:
        entity = self.model(**kwargs)
        self.db.add(entity)
        self.db.flush()
        return entity

    def get(self, entity_id: UUID) -> ModelT | None:
        return self.db.get(self.model, entity_id)

    def list(self, limit: int = 100, offset: int = 0) -> list[ModelT]:
        stmt = select(self.model).offset(offset).limit(limit)
        return self.db.execute(stmt).scalars().all()

    def update(self, entity: ModelT, **kwargs) -> ModelT:
        for key, value in kwargs.items():
            setattr(entity, key, value)
        self.db.flush()
        return entity

    def delete(self, entity: ModelT) -> None:
        self.db.delete(entity)
        self.db.flush()


class ProtocolDocumentRepository(BaseRepository[models.ProtocolDocument]):
    model = models.ProtocolDocument

    def get_by_path(self, kind: str, path: str, *, for_update: bool = False) -> models.ProtocolDocument | None:
        stmt = select(models.ProtocolDocument).where(
            models.ProtocolDocument.kind == kind,
            models.ProtocolDocument.path == path,
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def list_kind(self, kind: str) -> list[models.ProtocolDocument]:
        stmt = (
            select(models.ProtocolDocument)
            .where(models.ProtocolDocument.kind == kind)
            .order_by(models.ProtocolDocument.path.asc())
        )
        return list(self.db.execute(stmt).scalars().all())

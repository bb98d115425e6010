from __future__ import annotations
from typing import Any, Optional
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from schema_builder.db.models import SavedSchema


class SchemaRepo:
    """Low-level data access for saved schema documents."""

    # ---------- reads ----------
    def get(self, s: Session, schema_id: int) -> Optional[SavedSchema]:
        return s.get(SavedSchema, schema_id)

    def _filtered(self, stmt, name: Optional[str]):
        if name:
            q = name.strip().lower()
            if q:
                stmt = stmt.where(func.lower(SavedSchema.name).like(f"%{q}%"))
        return stmt

    def list(self, s: Session, name: Optional[str] = None, limit: Optional[int] = None, offset: int = 0) -> list[SavedSchema]:
        """ Newest first; name is a case-insensitive substring filter. """
        stmt = self._filtered(select(SavedSchema), name)
        stmt = stmt.order_by(SavedSchema.id.desc()).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(s.execute(stmt).scalars().all())

    def count(self, s: Session, name: Optional[str] = None) -> int:
        stmt = self._filtered(select(func.count()).select_from(SavedSchema), name)
        return s.execute(stmt).scalar_one()

    # ---------- writes ----------
    def create(self, s: Session, name: str, document: dict[str, Any], *, created_by_id: str | None = None) -> SavedSchema:
        row = SavedSchema(name=name, document=document, created_by_id=created_by_id)
        s.add(row)
        s.flush()
        return row

    def rename(self, s: Session, row: SavedSchema, new_name: str) -> SavedSchema:
        row.name = new_name
        s.flush()
        return row

    def replace_document(self, s: Session, row: SavedSchema, document: dict[str, Any]) -> SavedSchema:
        # Assign a new object so the JSON column is seen as dirty
        row.document = dict(document)
        s.flush()
        return row

    def delete(self, s: Session, row: SavedSchema) -> None:
        s.delete(row)
        s.flush()

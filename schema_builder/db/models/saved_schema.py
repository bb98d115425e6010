from __future__ import annotations
from typing import Any, Optional

from sqlalchemy import JSON, CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class SavedSchema(TimestampMixin, Base):
    """ A named, compiled JSON Schema document. The stored document is exactly what compile_tree produces
    and what decompile_document consumes; the store never interprets it.
    """
    __tablename__ = "saved_schema"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    document: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_by_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Load server-side timestamps right after INSERT/UPDATE so detached rows stay readable
    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        CheckConstraint("length(trim(name)) > 0", name="name_not_blank"),
        Index("ix_saved_schema_name", "name"),
    )

    def __repr__(self) -> str:
        return f"<SavedSchema id={self.id} name='{self.name}'>"

from __future__ import annotations
import copy
import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from schema_builder.core.errors import MalformedDocument
from schema_builder.db.manager import DatabaseManager
from schema_builder.db.models import SavedSchema
from schema_builder.db.repositories import SchemaRepo

logger = logging.getLogger(__name__)


# Domain errors
class SchemaNotFound(Exception): ...


@dataclass
class SchemaPage:
    items: list[SavedSchema]
    total: int
    page: int
    page_size: int
    total_pages: int


class SchemaService:
    """Create / update / list / delete named schema documents."""
    def __init__(self, db: DatabaseManager, page_size: int = 20):
        self.db = db
        self.page_size = page_size
        self.repo = SchemaRepo()

    # ---------- reads ----------
    def get(self, schema_id: int) -> SavedSchema:
        with self.db.session() as s:
            return self._resolve(s, schema_id)

    def list_all(self) -> list[SavedSchema]:
        with self.db.session() as s:
            return self.repo.list(s)

    def list(self, page: int = 1, page_size: Optional[int] = None, name: Optional[str] = None) -> SchemaPage:
        """ One page of saved schemas, newest first. page is 1-based. """
        page = max(1, page)
        size = page_size if page_size is not None else self.page_size
        if size < 1:
            raise ValueError("page_size must be at least 1")
        with self.db.session() as s:
            total = self.repo.count(s, name=name)
            items = self.repo.list(s, name=name, limit=size, offset=(page - 1) * size)
        return SchemaPage(items=items, total=total, page=page, page_size=size,
                          total_pages=math.ceil(total / size) if total else 0)

    # ---------- writes ----------
    def create(self, name: str, document: Mapping[str, Any], *, created_by_id: str | None = None) -> SavedSchema:
        nm = self._clean_name(name)
        doc = self._clean_document(document)
        with self.db.session() as s:
            row = self.repo.create(s, nm, doc, created_by_id=created_by_id)
            logger.info("Saved schema %d '%s'", row.id, nm)
            return row

    def update(self, schema_id: int, *, name: str | None = None,
               document: Mapping[str, Any] | None = None) -> SavedSchema:
        with self.db.session() as s:
            row = self._resolve(s, schema_id)
            if name is not None:
                self.repo.rename(s, row, self._clean_name(name))
            if document is not None:
                self.repo.replace_document(s, row, self._clean_document(document))
            logger.info("Updated schema %d", schema_id)
            return row

    def delete(self, schema_id: int) -> None:
        with self.db.session() as s:
            row = self._resolve(s, schema_id)
            self.repo.delete(s, row)
            logger.info("Deleted schema %d", schema_id)

    # ---------- helpers ----------
    def _resolve(self, s, schema_id: int) -> SavedSchema:
        row = self.repo.get(s, schema_id)
        if not row:
            raise SchemaNotFound(str(schema_id))
        return row

    @staticmethod
    def _clean_name(name: str) -> str:
        nm = (name or "").strip()
        if not nm:
            raise ValueError("Schema name must not be empty")
        return nm

    @staticmethod
    def _clean_document(document: Any) -> dict[str, Any]:
        if not isinstance(document, Mapping):
            raise MalformedDocument(f"Expected a JSON object, got {type(document).__name__}")
        return copy.deepcopy(dict(document))

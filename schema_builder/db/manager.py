from __future__ import annotations

import logging
from pathlib import Path
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from .models import Base

logger = logging.getLogger(__name__)


def _ensure_parent_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _sqlite_url(path: Path) -> str:
    p = path.resolve()
    return f"sqlite:///{p.as_posix()}"


def _apply_sqlite_pragmas(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, conn_rec):
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys = ON;")
        cur.execute("PRAGMA journal_mode = WAL;")
        cur.execute("PRAGMA synchronous = NORMAL;")
        cur.close()


class DatabaseManager:
    """
    Holds the current SQLAlchemy engine and session factory for the schema store.
    Call .open(path) at startup or when the user picks another file.
    """

    def __init__(self) -> None:
        self._engine: Optional[Engine] = None
        self._Session: Optional[sessionmaker[Session]] = None
        self._path: Optional[Path] = None

    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def is_open(self) -> bool:
        return self._Session is not None

    def open(self, path: Path, *, create_if_missing: bool = True) -> None:
        path = Path(path)
        if not create_if_missing and not path.exists():
            raise FileNotFoundError(f"Schema store {path} doesn't exist")
        _ensure_parent_dir(path)

        engine = create_engine(_sqlite_url(path), future=True)
        _apply_sqlite_pragmas(engine)
        # Idempotent: only creates missing tables
        Base.metadata.create_all(engine)

        # Swap in atomically
        self.dispose()
        self._engine = engine
        self._Session = sessionmaker(bind=engine, expire_on_commit=False, future=True)
        self._path = path
        logger.info("Opened schema store at %s", path)

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._Session = None
        self._path = None

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Context-managed session for transactional work."""
        if self._Session is None:
            raise RuntimeError("Database not opened. Call DatabaseManager.open() first.")
        s = self._Session()
        try:
            yield s
            s.commit()
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

from __future__ import annotations

import json
import logging
from pathlib import Path
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_META_SCHEMA = "http://json-schema.org/draft-07/schema#"
DEFAULT_HOME = Path.home() / "SchemaBuilder"
DEFAULT_CONFIG = DEFAULT_HOME / "config.json"
DEFAULT_DB = DEFAULT_HOME / "schemas.db"


class UIState(BaseModel):
    geometry: dict = Field(default_factory=dict)
    collapsed: list[str] = Field(default_factory=list)


class EditorConfig(BaseModel):
    ui: UIState = Field(default_factory=UIState)
    default_meta_schema: str = DEFAULT_META_SCHEMA
    db_path: str = ""
    page_size: int = Field(20, ge=1)
    log_level: str = "INFO"

    def resolved_db_path(self) -> Path:
        return Path(self.db_path) if self.db_path else DEFAULT_DB


def _read_json(path: Path, default: dict) -> dict:
    if not path.exists():
        return default
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not read config %s (%s); using defaults", path, e)
        return default
    if not isinstance(raw, dict):
        logger.warning("Config %s is not a JSON object; using defaults", path)
        return default
    return raw


def _write_json(path: Path, obj: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, ensure_ascii=False, indent=2), encoding="utf-8")


def load_config(path: Path | str | None = None) -> EditorConfig:
    p = Path(path) if path is not None else DEFAULT_CONFIG
    data = _read_json(p, {})
    try:
        return EditorConfig(**data)
    except ValidationError as e:
        logger.warning("Invalid config in %s; using defaults:\n%s", p, e)
        return EditorConfig()


def save_config(cfg: EditorConfig, path: Path | str | None = None) -> None:
    p = Path(path) if path is not None else DEFAULT_CONFIG
    _write_json(p, cfg.model_dump())

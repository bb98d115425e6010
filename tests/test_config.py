import json
import logging

from schema_builder.core.config import DEFAULT_DB, DEFAULT_META_SCHEMA, EditorConfig, load_config, save_config
from schema_builder.core.logging import configure_logging


def test_missing_config_gives_defaults(tmp_path):
    cfg = load_config(tmp_path / "config.json")
    assert cfg.default_meta_schema == DEFAULT_META_SCHEMA
    assert cfg.page_size == 20
    assert cfg.resolved_db_path() == DEFAULT_DB


def test_save_and_load(tmp_path):
    path = tmp_path / "nested" / "config.json"
    cfg = EditorConfig(db_path=str(tmp_path / "s.db"), page_size=5)
    cfg.ui.collapsed.append("abc")

    save_config(cfg, path)
    loaded = load_config(path)

    assert loaded == cfg
    assert loaded.resolved_db_path() == tmp_path / "s.db"


def test_invalid_config_falls_back(tmp_path, caplog):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"page_size": 0}), encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        cfg = load_config(path)

    assert cfg.page_size == 20
    assert "Invalid config" in caplog.text


def test_unreadable_config_falls_back(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_config(path) == EditorConfig()

    path.write_text("[1, 2]", encoding="utf-8")
    assert load_config(path) == EditorConfig()


def test_configure_logging_is_idempotent():
    pkg_logger = logging.getLogger("schema_builder")
    before = list(pkg_logger.handlers)
    try:
        first = configure_logging("debug")
        assert configure_logging("DEBUG") is first
        added = [h for h in pkg_logger.handlers if h not in before]
        assert added == [first] or first in before
        assert pkg_logger.level == logging.DEBUG

        configure_logging("nonsense")
        assert pkg_logger.level == logging.INFO

        # a handler removed by someone else is installed again
        pkg_logger.removeHandler(first)
        second = configure_logging()
        assert second is not first
        assert second in pkg_logger.handlers
    finally:
        for h in pkg_logger.handlers[:]:
            if h not in before:
                pkg_logger.removeHandler(h)
        pkg_logger.setLevel(logging.NOTSET)

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from .core.config import EditorConfig, load_config, save_config
from .core.errors import MalformedDocument
from .core.logging import configure_logging
from .db.manager import DatabaseManager
from .db.services import SchemaNotFound, SchemaService
from .schema.compiler import compile_tree, decompile_document, document_from_text
from .schema.validation import check_document
from .session import EditorSession

logger = logging.getLogger(__name__)


@dataclass
class Workspace:
    cfg: EditorConfig
    db: DatabaseManager
    schemas: SchemaService
    session: EditorSession


def open_workspace(cfg: EditorConfig) -> Workspace:
    """ Open the schema store named in cfg (or the default one) and start an editor session. """
    db = DatabaseManager()
    db_path = cfg.resolved_db_path()
    db.open(db_path, create_if_missing=True)
    cfg.db_path = str(db_path)
    return Workspace(
        cfg=cfg,
        db=db,
        schemas=SchemaService(db, page_size=cfg.page_size),
        session=EditorSession(meta_schema=cfg.default_meta_schema),
    )


def _read_document(path: str) -> dict:
    return document_from_text(Path(path).read_text(encoding="utf-8"))


# ---------- commands ----------
def _cmd_normalize(ws: Workspace, args) -> int:
    document = compile_tree(decompile_document(_read_document(args.file)))
    print(json.dumps(document, indent=2, ensure_ascii=False))
    return 0


def _cmd_check(ws: Workspace, args) -> int:
    findings = check_document(_read_document(args.file))
    for f in findings:
        print(f)
    return 1 if findings else 0


def _cmd_save(ws: Workspace, args) -> int:
    # Normalise through the tree so stored documents always have the compiled shape
    document = compile_tree(decompile_document(_read_document(args.file)))
    row = ws.schemas.create(args.name, document)
    print(f"{row.id}\t{row.name}")
    return 0


def _cmd_list(ws: Workspace, args) -> int:
    page = ws.schemas.list(page=args.page, name=args.name)
    for row in page.items:
        print(f"{row.id}\t{row.name}")
    print(f"-- page {page.page}/{page.total_pages} ({page.total} total)")
    return 0


def _cmd_delete(ws: Workspace, args) -> int:
    ws.schemas.delete(args.id)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="schema-builder", description="Build and store JSON Schema documents.")
    parser.add_argument("--config", help="Path to config.json")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("normalize", help="Import a schema and print it in compiled form")
    p.add_argument("file")
    p.set_defaults(func=_cmd_normalize)

    p = sub.add_parser("check", help="Report problems in a schema document")
    p.add_argument("file")
    p.set_defaults(func=_cmd_check)

    p = sub.add_parser("save", help="Store a schema document under a name")
    p.add_argument("name")
    p.add_argument("file")
    p.set_defaults(func=_cmd_save)

    p = sub.add_parser("list", help="List stored schemas")
    p.add_argument("--page", type=int, default=1)
    p.add_argument("--name", help="Filter by name substring")
    p.set_defaults(func=_cmd_list)

    p = sub.add_parser("delete", help="Delete a stored schema")
    p.add_argument("id", type=int)
    p.set_defaults(func=_cmd_delete)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    cfg = load_config(args.config)
    configure_logging(cfg.log_level)

    ws = open_workspace(cfg)
    try:
        return args.func(ws, args)
    except (MalformedDocument, SchemaNotFound, ValueError, OSError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 2
    finally:
        ws.db.dispose()
        save_config(cfg, args.config)


if __name__ == "__main__":
    sys.exit(main())

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from schema_builder.core.config import DEFAULT_META_SCHEMA
from schema_builder.core.errors import MalformedDocument
from schema_builder.model.tree import DocumentMeta, SchemaTree
from schema_builder.schema.compiler import compile_tree, decompile_document, document_from_text
from schema_builder.schema.validation import Finding, check_document, check_tree

logger = logging.getLogger(__name__)


# ---------- Provider seam ----------
class SchemaGenerator(Protocol):
    """Abstract service that turns a natural-language prompt into a candidate schema (object or JSON text)."""
    async def generate_schema(self, prompt: str, *,
                              existing_document: Optional[dict[str, Any]] = None) -> dict[str, Any] | str:
        ...


@dataclass
class NodeView:
    """ Presentation state of one node; never part of the compiled document. """
    show_options: bool = False
    show_children: bool = False


class EditorSession:
    """ Owns one schema tree for one editor, plus the per-node view flags.

    Imports (pasted documents or generation results) replace the tree wholesale and only once the new
    tree is fully built; a failed import leaves the current tree untouched.
    """

    def __init__(self, meta_schema: str = DEFAULT_META_SCHEMA) -> None:
        self.meta_schema = meta_schema
        self.tree = self._blank_tree()
        self._view: dict[str, NodeView] = {}
        self.closed = False
        self._revision = 0

    def _blank_tree(self) -> SchemaTree:
        return SchemaTree(meta=DocumentMeta(meta_schema=self.meta_schema))

    # ---------- tree lifecycle ----------
    def _replace_tree(self, tree: SchemaTree) -> None:
        self.tree = tree
        self._view = {}
        self._revision += 1

    def reset(self) -> None:
        self._replace_tree(self._blank_tree())

    def close(self) -> None:
        self.closed = True
        self._revision += 1

    def compile(self) -> dict[str, Any]:
        return compile_tree(self.tree)

    def findings(self) -> list[Finding]:
        return check_tree(self.tree)

    def load_document(self, document: Any) -> list[Finding]:
        """ Replace the tree with one imported from document; return advisory findings for the document.

        Raises
        ------
        MalformedDocument
            if document is not a JSON object (or JSON text of one). The current tree is kept.
        """
        if isinstance(document, str):
            document = document_from_text(document)
        findings = check_document(document)
        tree = decompile_document(document)
        self._replace_tree(tree)
        logger.info("Imported schema with %d nodes (%d findings)", len(tree), len(findings))
        return findings

    async def generate(self, prompt: str, generator: SchemaGenerator, *,
                       include_existing: bool = False) -> Optional[list[Finding]]:
        """ Ask generator for a schema and apply it as one atomic import.

        Returns the import findings, or None when the result arrived after the session was closed or its
        tree was replaced in the meantime (the stale result is dropped). Generator failures propagate
        and leave the tree untouched.
        """
        if self.closed:
            raise RuntimeError("Editor session is closed")
        started_at = self._revision
        existing = self.compile() if include_existing else None
        try:
            result = await generator.generate_schema(prompt, existing_document=existing)
        except Exception:
            logger.exception("Schema generation failed; keeping current tree")
            raise

        if self.closed or self._revision != started_at:
            logger.info("Dropping stale generation result for prompt %.40r", prompt)
            return None
        try:
            return self.load_document(result)
        except MalformedDocument:
            logger.warning("Generated schema is not a JSON object; keeping current tree")
            raise

    def instruction_with_schema(self, instruction: str) -> str:
        """ Append the current document to an instruction, for prompting a model to fill it in. """
        return instruction + json.dumps(self.compile(), indent=2)

    # ---------- view state ----------
    @property
    def view(self) -> dict[str, NodeView]:
        """ Per-node view flags. Entries of nodes that have left the tree are dropped on every read. """
        for stale in [k for k in self._view if k not in self.tree]:
            del self._view[stale]
        return self._view

    def view_of(self, node_id: str) -> NodeView:
        self.tree.node(node_id)
        return self.view.setdefault(node_id, NodeView())

    def toggle_options(self, node_id: str) -> bool:
        v = self.view_of(node_id)
        v.show_options = not v.show_options
        return v.show_options

    def toggle_children(self, node_id: str) -> bool:
        v = self.view_of(node_id)
        v.show_children = not v.show_children
        return v.show_children


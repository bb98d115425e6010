from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping

from pydantic import ValidationError

from schema_builder.core.errors import MalformedDocument
from schema_builder.model.node import SchemaNode, is_blank, new_node_id
from schema_builder.model.tree import DocumentMeta, SchemaTree
from schema_builder.model.types import CONSTRAINTS_BY_TYPE, SchemaType, parse_type

logger = logging.getLogger(__name__)

META_KEYWORDS = ("$schema", "$id", "title")
_STRUCTURE_BY_TYPE = {
    SchemaType.object: ("properties", "required"),
    SchemaType.array: ("items",),
}
_FENCE_RE = re.compile(r"^\s*```[A-Za-z0-9_-]*\s*\n(.*)\n\s*```\s*$", re.DOTALL)


# ---------- tree -> document ----------
def _dedupe(values: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for v in values:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return out


def _compiled_children(tree: SchemaTree, node: SchemaNode) -> list[SchemaNode]:
    """ The sub-schemas that end up inside node's compiled form. """
    if node.has_raw_schema:
        return []
    if node.type is SchemaType.object:
        return [c for c in (tree.get(cid) for cid in node.children) if c is not None and not is_blank(c.name)]
    if node.type is SchemaType.array:
        items = tree.items(node.id)
        return [items] if items is not None else []
    return []


def _node_document(tree: SchemaTree, node: SchemaNode, compiled: dict[str, Any]) -> Any:
    """ Compile one node; the compiled forms of its children are taken from compiled. """
    if node.has_raw_schema:
        return node.raw_schema

    out: dict[str, Any] = {}

    if node.declared_type:
        if "type" in node.passthrough:
            # Unrecognized original type; kept until the node is explicitly retyped
            out["type"] = node.passthrough["type"]
        else:
            out["type"] = node.type.value
    if node.description:
        out["description"] = node.description
    if node.format:
        out["format"] = node.format

    constraints = node.constraints.to_document()
    if "enum" in constraints:
        constraints["enum"] = _dedupe(constraints["enum"])
        if not constraints["enum"]:
            del constraints["enum"]
    out.update(constraints)

    if node.default is not None:
        out["default"] = node.default

    if node.type is SchemaType.object:
        properties: dict[str, Any] = {}
        required: list[str] = []
        for child in _compiled_children(tree, node):
            properties[child.name] = compiled.pop(child.id)
            if child.required:
                required.append(child.name)
        if properties or "properties" not in node.passthrough:
            # a malformed imported 'properties' value is kept until a property is added
            out["properties"] = properties
        if required:
            out["required"] = required
    elif node.type is SchemaType.array:
        items = tree.items(node.id)
        out["items"] = compiled.pop(items.id) if items is not None else {}

    for key, value in node.passthrough.items():
        if key not in out:
            out[key] = value
    return out


def _compile_node(tree: SchemaTree, start: SchemaNode) -> Any:
    """ Post-order walk over an explicit stack: a node is compiled once all of its children are. """
    compiled: dict[str, Any] = {}
    stack: list[tuple[SchemaNode, bool]] = [(start, False)]
    while stack:
        node, children_done = stack.pop()
        children = _compiled_children(tree, node)
        if children and not children_done:
            stack.append((node, True))
            stack.extend((child, False) for child in children)
            continue
        compiled[node.id] = _node_document(tree, node, compiled)
    return compiled[start.id]


def compile_tree(tree: SchemaTree) -> dict[str, Any]:
    """ Serialize the tree into a JSON Schema document.

    Total for any structurally valid tree: blank-named properties are skipped, arrays without an element
    schema emit ``"items": {}`` and unset constraints are omitted. Key order is fixed: root metadata
    ($schema, $id, title), then type, description, format, the type's constraints, default,
    properties/required/items and finally passthrough keys.
    """
    document: dict[str, Any] = tree.meta.to_document()
    for key, value in _compile_node(tree, tree.root).items():
        document.setdefault(key, value)
    return document


# ---------- document -> tree ----------
def _split_keywords(node: SchemaNode, details: Mapping[str, Any]) -> None:
    """ Copy the typed keywords of one sub-schema onto node; everything else lands in passthrough. """
    schema_type = parse_type(details.get("type"))
    if "type" not in details:
        node.type = SchemaType.string
        node.declared_type = False
    elif schema_type is None:
        node.type = SchemaType.string
        node.passthrough["type"] = details["type"]
    else:
        node.type = schema_type

    variant = CONSTRAINTS_BY_TYPE[node.type]
    node.constraints = variant()
    applicable = set(variant.keywords())
    structural = _STRUCTURE_BY_TYPE.get(node.type, ())

    for key, value in details.items():
        if key == "type" or key in structural:
            continue
        if key in ("description", "format") and isinstance(value, str):
            setattr(node, key, value)
        elif key == "default" and value is not None and node.declared_type and "type" not in node.passthrough:
            node.default = value
        elif key in applicable:
            try:
                setattr(node.constraints, variant.resolve_field(key), value)
            except ValidationError:
                node.passthrough[key] = value
                continue
            if key == "enum":
                # stored in compiled form so a second import pass yields the same tree
                node.constraints.enum = _dedupe(node.constraints.enum) or None
        else:
            node.passthrough[key] = value


def _import_children(tree: SchemaTree, node: SchemaNode, details: Mapping[str, Any], stack: list) -> None:
    if node.type is SchemaType.object:
        properties = details.get("properties", {})
        if not isinstance(properties, Mapping):
            node.passthrough["properties"] = properties
            properties = {}
        required = details.get("required", [])
        if not isinstance(required, list):
            node.passthrough["required"] = required
            required = []
        required_names = {r for r in required if isinstance(r, str)}
        for name, sub in properties.items():
            child = SchemaNode(id=new_node_id(), name=name, parent_id=node.id, required=name in required_names)
            tree._attach(child)
            node.children.append(child.id)
            stack.append((child, sub))
        # names in 'required' without a matching property are ignored
    elif node.type is SchemaType.array and "items" in details:
        child = SchemaNode(id=new_node_id(), parent_id=node.id)
        tree._attach(child)
        node.items_id = child.id
        stack.append((child, details["items"]))


def decompile_document(document: Any) -> SchemaTree:
    """ Build a fresh tree (new ids throughout) from a JSON Schema document.

    Raises
    ------
    MalformedDocument
        if document is not a JSON object.
    """
    if not isinstance(document, Mapping):
        raise MalformedDocument(f"Expected a JSON object, got {type(document).__name__}")

    meta = DocumentMeta(
        meta_schema=document.get("$schema") if isinstance(document.get("$schema"), str) else None,
        schema_id=document.get("$id") if isinstance(document.get("$id"), str) else None,
        title=document.get("title") if isinstance(document.get("title"), str) else None,
    )
    body = {k: v for k, v in document.items() if not (k in META_KEYWORDS and isinstance(v, str))}

    tree = SchemaTree(meta=meta)
    root = tree.root
    stack: list[tuple[SchemaNode, Any]] = [(root, body)]
    while stack:
        node, details = stack.pop()
        if not isinstance(details, Mapping):
            # Non-object sub-schema (e.g. a boolean schema): untyped node, raw value kept verbatim
            node.declared_type = False
            node.raw_schema = details
            node.has_raw_schema = True
            continue
        _split_keywords(node, details)
        _import_children(tree, node, details, stack)

    logger.debug("Decompiled document into %d nodes", len(tree))
    return tree


def document_from_text(text: str) -> dict[str, Any]:
    """ Parse a pasted or generated JSON document, tolerating a surrounding Markdown code fence. """
    m = _FENCE_RE.match(text)
    if m:
        text = m.group(1)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedDocument(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedDocument(f"Expected a JSON object, got {type(data).__name__}")
    return data

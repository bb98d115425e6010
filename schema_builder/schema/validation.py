from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from jsonschema.validators import Draft202012Validator

from schema_builder.core.errors import MalformedDocument
from schema_builder.model.node import is_blank
from schema_builder.model.tree import SchemaTree, escape_pointer
from schema_builder.model.types import CONSTRAINTS_BY_TYPE, SchemaType
from schema_builder.schema.meta_schema import NODE_META_SCHEMA


class FindingKind(str, Enum):
    # tree
    duplicate_name = "duplicate_name"
    blank_name = "blank_name"
    inapplicable_field = "inapplicable_field"
    multiple_items = "multiple_items"
    unexpected_children = "unexpected_children"
    dangling_reference = "dangling_reference"
    invalid_range = "invalid_range"
    # document
    malformed_type = "malformed_type"
    unsupported_type = "unsupported_type"
    invalid_required = "invalid_required"
    invalid_properties = "invalid_properties"
    invalid_items = "invalid_items"
    invalid_constraint = "invalid_constraint"


@dataclass(frozen=True)
class Finding:
    """ One advisory invariant violation. path is a JSON pointer into the (compiled) document. """
    kind: FindingKind
    path: str
    message: str
    node_id: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.path or '<root>'}: [{self.kind.value}] {self.message}"


# ---------- tree ----------
def check_tree(tree: SchemaTree) -> list[Finding]:
    """ Report every invariant violation of the tree. Never mutates, never raises for a parseable tree. """
    findings: list[Finding] = []
    nodes = tree.all_nodes()
    claimed_by: dict[str, list[str]] = {}
    for n in nodes:
        if n.parent_id is not None:
            claimed_by.setdefault(n.parent_id, []).append(n.id)

    for n in nodes:
        path = tree.pointer(n.id)

        # dangling child links
        for c in n.child_ids():
            if c not in tree:
                findings.append(Finding(FindingKind.dangling_reference, path,
                                        f"child id '{c}' does not resolve to a node", n.id))

        # structure vs type
        if n.children and n.type is not SchemaType.object:
            findings.append(Finding(FindingKind.unexpected_children, path,
                                    f"'{n.type.value}' node holds {len(n.children)} properties", n.id))
        if n.items_id is not None and n.type is not SchemaType.array:
            findings.append(Finding(FindingKind.unexpected_children, path,
                                    f"'{n.type.value}' node holds an items schema", n.id))
        if n.type is SchemaType.array:
            item_children = [c for c in claimed_by.get(n.id, []) if c not in n.children]
            if len(item_children) > 1:
                findings.append(Finding(FindingKind.multiple_items, path,
                                        f"array has {len(item_children)} items children", n.id))

        # duplicate / blank sibling names
        if n.type is SchemaType.object:
            props = [tree.get(c) for c in n.children if c in tree]
            counts = Counter(p.name for p in props if not is_blank(p.name))
            for name, count in counts.items():
                if count > 1:
                    findings.append(Finding(FindingKind.duplicate_name, f"{path}/properties/{escape_pointer(name)}",
                                            f"{count} properties named '{name}'", n.id))
            for p in props:
                if is_blank(p.name):
                    findings.append(Finding(FindingKind.blank_name, f"{path}/properties/",
                                            "property has a blank name and is left out of the document", p.id))

        # constraints outside the applicable set
        applicable = set(CONSTRAINTS_BY_TYPE[n.type].keywords())
        stray = [k for k in n.constraints.to_document() if k not in applicable]
        if stray:
            findings.append(Finding(FindingKind.inapplicable_field, path,
                                    f"{', '.join(stray)} not applicable to type '{n.type.value}'", n.id))

        findings.extend(_check_ranges(n.constraints.to_document(), path, n.id))

    return findings


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_ranges(values: Mapping[str, Any], path: str, node_id: Optional[str] = None) -> list[Finding]:
    out: list[Finding] = []
    for low, high in (("minimum", "maximum"), ("minLength", "maxLength")):
        lo, hi = values.get(low), values.get(high)
        if _is_number(lo) and _is_number(hi) and lo > hi:
            out.append(Finding(FindingKind.invalid_range, path, f"{low} ({lo}) is greater than {high} ({hi})", node_id))
    return out


# ---------- document ----------
_validator = Draft202012Validator(NODE_META_SCHEMA, format_checker=Draft202012Validator.FORMAT_CHECKER)


def _classify(path: Sequence[Any], error) -> FindingKind:
    """ Map an error path, relative to one sub-schema, to a finding kind. """
    keyword = path[0] if path else None
    if keyword == "properties":
        return FindingKind.invalid_properties
    if keyword == "items":
        return FindingKind.invalid_items
    if keyword == "type":
        inst = error.instance
        is_type_name = isinstance(inst, str) or (isinstance(inst, list) and all(isinstance(t, str) for t in inst))
        return FindingKind.unsupported_type if is_type_name else FindingKind.malformed_type
    if keyword == "required":
        return FindingKind.invalid_required
    return FindingKind.invalid_constraint


def _pointer(path: Sequence[Any]) -> str:
    return "".join(f"/{escape_pointer(str(p))}" for p in path)


def _check_sub_schema(sub: Mapping[str, Any], path: str) -> list[Finding]:
    out: list[Finding] = []
    seen: set[tuple[str, FindingKind]] = set()
    for e in sorted(_validator.iter_errors(sub), key=lambda e: _pointer(e.absolute_path)):
        kind = _classify(list(e.absolute_path), e)
        key = (path + _pointer(e.absolute_path), kind)
        if key in seen:
            continue
        seen.add(key)
        out.append(Finding(kind, key[0], e.message))
    out.extend(_check_ranges(sub, path))
    return out


def check_document(document: Any) -> list[Finding]:
    """ Check a document against the supported subset.

    Each sub-schema is validated on its own while the document is walked with an explicit stack, so
    nesting depth is unbounded. Findings come back ordered by path.

    Raises
    ------
    MalformedDocument
        if document is not a JSON object at all. Invalid-but-parseable content is reported, not raised.
    """
    if not isinstance(document, Mapping):
        raise MalformedDocument(f"Expected a JSON object, got {type(document).__name__}")

    findings: list[Finding] = []
    stack: list[tuple[Mapping[str, Any], str]] = [(document, "")]
    while stack:
        sub, path = stack.pop()
        findings.extend(_check_sub_schema(sub, path))
        # non-object sub-schemas are reported by their parent's check
        props = sub.get("properties")
        if isinstance(props, Mapping):
            stack.extend((v, f"{path}/properties/{escape_pointer(str(k))}")
                         for k, v in props.items() if isinstance(v, Mapping))
        if isinstance(sub.get("items"), Mapping):
            stack.append((sub["items"], f"{path}/items"))

    findings.sort(key=lambda f: f.path)
    return findings

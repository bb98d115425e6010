from __future__ import annotations

from typing import Any, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from schema_builder.core.config import DEFAULT_META_SCHEMA
from schema_builder.core.errors import (
    DuplicateName, InapplicableField, InvalidConstraintValue, InvalidOperation, NotFound
)
from schema_builder.model.node import SchemaNode, coerce_default, is_blank, new_node_id
from schema_builder.model.types import SchemaType, constraints_for


class DocumentMeta(BaseModel):
    """ Root-only document keywords. """
    model_config = ConfigDict(populate_by_name=True)

    meta_schema: Optional[str] = Field(DEFAULT_META_SCHEMA, alias="$schema")
    schema_id: Optional[str] = Field(None, alias="$id")
    title: Optional[str] = None

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


def escape_pointer(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


class SchemaTree:
    """ The schema under construction: an arena of nodes keyed by id plus the root id.

    Parent/child links are id relations, so cycle checks are ancestor walks over ids. Every mutation
    validates first and only then changes state, so a raised error leaves the tree untouched.
    Not thread-safe: one editing session writes at a time.
    """

    def __init__(self, root_type: SchemaType = SchemaType.object, meta: DocumentMeta | None = None) -> None:
        self.meta = meta if meta is not None else DocumentMeta()
        root = SchemaNode(id=new_node_id(), type=root_type, constraints=constraints_for(root_type))
        self._nodes: dict[str, SchemaNode] = {root.id: root}
        self.root_id = root.id

    # ---------- lookups ----------
    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def root(self) -> SchemaNode:
        return self._nodes[self.root_id]

    def node(self, node_id: str) -> SchemaNode:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NotFound(f"No node with id '{node_id}'") from None

    def get(self, node_id: str) -> SchemaNode | None:
        return self._nodes.get(node_id)

    def all_nodes(self) -> list[SchemaNode]:
        """ Every node in the arena, reachable from the root or not. """
        return list(self._nodes.values())

    def parent(self, node_id: str) -> SchemaNode | None:
        n = self.node(node_id)
        return self._nodes.get(n.parent_id) if n.parent_id is not None else None

    def children(self, node_id: str) -> list[SchemaNode]:
        """ Object properties in order, or the single items node of an array. """
        return [self._nodes[c] for c in self.node(node_id).child_ids() if c in self._nodes]

    def items(self, array_id: str) -> SchemaNode | None:
        n = self.node(array_id)
        return self._nodes.get(n.items_id) if n.items_id is not None else None

    def walk(self, start_id: str | None = None) -> Iterator[SchemaNode]:
        """ Depth-first pre-order traversal. Iterative, so nesting depth is unbounded. """
        stack = [start_id if start_id is not None else self.root_id]
        while stack:
            n = self._nodes.get(stack.pop())
            if n is None:
                continue
            yield n
            stack.extend(reversed(n.child_ids()))

    def descendants(self, node_id: str) -> list[SchemaNode]:
        return list(self.walk(node_id))[1:]

    def ancestors(self, node_id: str) -> list[SchemaNode]:
        """ Parent first, root last. """
        out: list[SchemaNode] = []
        cur = self.parent(node_id)
        while cur is not None:
            out.append(cur)
            cur = self._nodes.get(cur.parent_id) if cur.parent_id is not None else None
        return out

    def is_descendant(self, node_id: str, possible_ancestor_id: str) -> bool:
        return any(a.id == possible_ancestor_id for a in self.ancestors(node_id))

    def pointer(self, node_id: str) -> str:
        """ JSON pointer of the node's sub-schema within the compiled document, e.g. /properties/a/items """
        parts: list[str] = []
        cur = self.node(node_id)
        while cur.parent_id is not None:
            parent = self._nodes.get(cur.parent_id)
            if parent is None:
                break  # orphaned (legacy) subtree
            if parent.items_id == cur.id:
                parts.append("items")
            else:
                parts.append(escape_pointer(cur.name))
                parts.append("properties")
            cur = parent
        return "/" + "/".join(reversed(parts)) if parts else ""

    def shape(self, node_id: str | None = None) -> dict[str, Any]:
        """ Id-free projection of a subtree: what two trees must share to be structurally equal. """
        start = self.node(node_id if node_id is not None else self.root_id)
        shapes: dict[str, dict[str, Any]] = {}
        stack: list[tuple[SchemaNode, bool]] = [(start, False)]
        while stack:
            n, children_done = stack.pop()
            properties: list[SchemaNode] = []
            items: SchemaNode | None = None
            if n.type is SchemaType.object:
                properties = [self._nodes[c] for c in n.children if c in self._nodes]
            elif n.type is SchemaType.array and n.items_id is not None:
                items = self._nodes.get(n.items_id)
            if not children_done and (properties or items is not None):
                stack.append((n, True))
                stack.extend((c, False) for c in properties)
                if items is not None:
                    stack.append((items, False))
                continue

            out: dict[str, Any] = {
                "name": n.name,
                "type": n.type.value,
                "required": n.required,
                "description": n.description,
                "format": n.format,
                "default": n.default,
                "constraints": n.constraints.to_document(),
                "passthrough": n.passthrough,
                "declared_type": n.declared_type,
                "raw_schema": n.raw_schema,
                "has_raw_schema": n.has_raw_schema,
            }
            if n.type is SchemaType.object:
                out["properties"] = [shapes.pop(c.id) for c in properties]
            if n.type is SchemaType.array:
                out["items"] = shapes.pop(items.id) if items is not None else None
            shapes[n.id] = out
        return shapes[start.id]

    # ---------- creation ----------
    def _attach(self, node: SchemaNode) -> None:
        self._nodes[node.id] = node

    def add_property(self, parent_id: str, after_id: str | None = None) -> str:
        """ Append a blank string property to an object, or insert it right after the sibling after_id. """
        parent = self.node(parent_id)
        if parent.type is not SchemaType.object:
            raise NotFound(f"Node '{parent_id}' is not an object and cannot hold properties")
        if after_id is not None and after_id not in parent.children:
            raise NotFound(f"Node '{after_id}' is not a property of '{parent_id}'")

        node = SchemaNode(id=new_node_id(), parent_id=parent_id)
        self._attach(node)
        if after_id is None:
            parent.children.append(node.id)
        else:
            parent.children.insert(parent.children.index(after_id) + 1, node.id)
        return node.id

    def add_items(self, array_id: str) -> str:
        """ Give an array a fresh element schema, discarding any previous one. """
        array = self.node(array_id)
        if array.type is not SchemaType.array:
            raise NotFound(f"Node '{array_id}' is not an array and cannot hold items")

        node = SchemaNode(id=new_node_id(), parent_id=array_id)
        if array.items_id is not None:
            self._drop_subtree(array.items_id)
        self._attach(node)
        array.items_id = node.id
        return node.id

    # ---------- deletion ----------
    def _drop_subtree(self, node_id: str) -> None:
        """ Remove node_id and everything under it from the arena (links from the parent untouched). """
        for n in list(self.walk(node_id)):
            self._nodes.pop(n.id, None)

    def _unlink(self, node: SchemaNode) -> None:
        parent = self._nodes.get(node.parent_id) if node.parent_id is not None else None
        if parent is None:
            return
        if parent.items_id == node.id:
            parent.items_id = None
        elif node.id in parent.children:
            parent.children.remove(node.id)

    def remove_property(self, node_id: str) -> None:
        node = self.node(node_id)
        if node_id == self.root_id:
            raise InvalidOperation("The root node cannot be removed")
        self._unlink(node)
        self._drop_subtree(node_id)

    # ---------- field edits ----------
    def _sibling_names(self, parent_id: str | None, exclude_id: str | None = None) -> set[str]:
        parent = self._nodes.get(parent_id) if parent_id is not None else None
        if parent is None:
            return set()
        return {
            self._nodes[c].name for c in parent.children
            if c != exclude_id and c in self._nodes and not is_blank(self._nodes[c].name)
        }

    def rename(self, node_id: str, new_name: str) -> None:
        node = self.node(node_id)
        if not is_blank(new_name) and new_name in self._sibling_names(node.parent_id, exclude_id=node_id):
            raise DuplicateName(f"A sibling named '{new_name}' already exists")
        node.name = new_name

    def retype(self, node_id: str, new_type: SchemaType | str) -> None:
        node = self.node(node_id)
        new_type = SchemaType(new_type)
        untouched_import = not node.declared_type or "type" in node.passthrough or node.has_raw_schema
        if new_type is node.type and not untouched_import:
            return

        if new_type is not node.type:
            # Structure the new type cannot hold goes away with all descendants
            if node.type is SchemaType.object and new_type is not SchemaType.object:
                for c in node.children:
                    self._drop_subtree(c)
                node.children = []
            if node.type is SchemaType.array and new_type is not SchemaType.array:
                if node.items_id is not None:
                    self._drop_subtree(node.items_id)
                node.items_id = None
            node.constraints = constraints_for(new_type)
            node.default = None

        node.type = new_type
        node.declared_type = True
        node.raw_schema = None
        node.has_raw_schema = False
        node.passthrough.pop("type", None)
        self._promote_passthrough(node)

    @staticmethod
    def _promote_passthrough(node: SchemaNode) -> None:
        """ Move passthrough keywords that are valid for the node's type into typed fields. """
        variant = type(node.constraints)
        for keyword in variant.keywords():
            if keyword not in node.passthrough:
                continue
            try:
                setattr(node.constraints, variant.resolve_field(keyword), node.passthrough[keyword])
            except ValidationError:
                continue
            del node.passthrough[keyword]
        if node.default is None and node.passthrough.get("default") is not None:
            value = node.passthrough["default"]
            try:
                coerced = coerce_default(node.type, value)
            except InvalidConstraintValue:
                return
            if coerced == value and type(coerced) is type(value):
                node.default = coerced
                del node.passthrough["default"]

    def set_constraint(self, node_id: str, field: str, value: Any) -> None:
        node = self.node(node_id)
        attr = type(node.constraints).resolve_field(field)
        if attr is None:
            raise InapplicableField(f"'{field}' does not apply to type '{node.type.value}'")
        try:
            setattr(node.constraints, attr, value)
        except ValidationError as e:
            raise InvalidConstraintValue(f"Invalid value for '{field}': {e.errors()[0]['msg']}") from e

    def toggle_required(self, node_id: str) -> bool:
        node = self.node(node_id)
        node.required = not node.required
        return node.required

    def set_description(self, node_id: str, description: str | None) -> None:
        self.node(node_id).description = description or None

    def set_format(self, node_id: str, fmt: str | None) -> None:
        self.node(node_id).format = fmt or None

    def set_default(self, node_id: str, value: Any) -> None:
        node = self.node(node_id)
        node.default = coerce_default(node.type, value)

    # ---------- structure edits ----------
    def move(self, node_id: str, new_parent_id: str, index: int | None = None) -> None:
        """ Relocate a node and its subtree under an object, at index (clamped; None appends). """
        node = self.node(node_id)
        new_parent = self.node(new_parent_id)
        if node_id == self.root_id:
            raise InvalidOperation("The root node cannot be moved")
        if new_parent.type is not SchemaType.object:
            raise InvalidOperation(f"Node '{new_parent_id}' is not an object")
        if new_parent_id == node_id or self.is_descendant(new_parent_id, node_id):
            raise InvalidOperation("Cannot move a node under itself or its own descendant")

        # Reorder within the same parent
        if node.parent_id == new_parent_id:
            siblings = new_parent.children
            old_pos = siblings.index(node_id)
            last_index = len(siblings) - 1
            desired = index if index is not None else last_index
            new_pos = max(0, min(desired, last_index))
            if new_pos != old_pos:
                siblings.pop(old_pos)
                siblings.insert(new_pos, node_id)
            return

        # Moving across parents
        if not is_blank(node.name) and node.name in self._sibling_names(new_parent_id):
            raise DuplicateName(f"'{new_parent_id}' already has a property named '{node.name}'")
        self._unlink(node)
        siblings = new_parent.children
        insert_pos = len(siblings) if index is None else max(0, min(index, len(siblings)))
        siblings.insert(insert_pos, node_id)
        node.parent_id = new_parent_id

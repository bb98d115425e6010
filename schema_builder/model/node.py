from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from schema_builder.core.errors import InvalidConstraintValue
from schema_builder.model.types import Constraints, SchemaType, StringConstraints


def new_node_id() -> str:
    """ Opaque id, never derived from name or position and never reused. """
    return uuid.uuid4().hex


def is_blank(name: Optional[str]) -> bool:
    return name is None or not name.strip()


@dataclass(eq=False)
class SchemaNode:
    """ One entry of the editable property tree.

    Children are id relations held in the tree's arena: an object keeps its ordered property ids in
    ``children``, an array keeps its single element schema in ``items_id``.
    """
    id: str
    type: SchemaType = SchemaType.string
    name: str = ""
    required: bool = False
    description: Optional[str] = None
    format: Optional[str] = None
    default: Any = None
    constraints: Constraints = field(default_factory=StringConstraints)
    parent_id: Optional[str] = None
    children: list[str] = field(default_factory=list)
    items_id: Optional[str] = None
    # Uninterpreted document keys, carried through verbatim
    passthrough: dict[str, Any] = field(default_factory=dict)
    declared_type: bool = True
    # Non-object sub-schema (e.g. `true`, `null`) imported as-is; compiled verbatim until retyped
    raw_schema: Any = None
    has_raw_schema: bool = False

    @property
    def is_container(self) -> bool:
        return self.type in (SchemaType.array, SchemaType.object)

    def child_ids(self) -> list[str]:
        if self.items_id is not None:
            return [*self.children, self.items_id]
        return list(self.children)

    def __repr__(self) -> str:
        return f"<SchemaNode id={self.id} name='{self.name}' type={self.type.value}>"


def coerce_default(schema_type: SchemaType, value: Any) -> Any:
    """ Turn a typed-in default into a value of the node's type.

    Text is parsed for non-string types (``"3"`` -> 3, ``"true"`` -> True, JSON for arrays/objects);
    values that already have the right Python type are kept.
    """
    if value is None:
        return None

    match schema_type:
        case SchemaType.string:
            if isinstance(value, str):
                return value
        case SchemaType.number:
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return value
            if isinstance(value, str):
                text = value.strip()
                try:
                    return int(text)
                except ValueError:
                    pass
                try:
                    return float(text)
                except ValueError:
                    pass
        case SchemaType.boolean:
            if isinstance(value, bool):
                return value
            if isinstance(value, str) and value.strip().lower() in ("true", "false"):
                return value.strip().lower() == "true"
        case SchemaType.array | SchemaType.object:
            expected = list if schema_type is SchemaType.array else dict
            if isinstance(value, str):
                try:
                    value = json.loads(value)
                except json.JSONDecodeError as e:
                    raise InvalidConstraintValue(f"default is not valid JSON: {e}") from e
            if isinstance(value, expected):
                return value
        case SchemaType.null:
            raise InvalidConstraintValue("null-typed properties cannot carry a default")

    raise InvalidConstraintValue(f"{value!r} is not a valid default for type '{schema_type.value}'")

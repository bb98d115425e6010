from __future__ import annotations

import re
from enum import Enum
from typing import Annotated, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr, field_validator


class SchemaType(str, Enum):
    string = "string"
    number = "number"
    boolean = "boolean"
    array = "array"
    object = "object"
    null = "null"


CONTAINER_TYPES = frozenset({SchemaType.array, SchemaType.object})

Number = Union[StrictInt, StrictFloat]
Length = Annotated[StrictInt, Field(ge=0)]


# ---------- Constraint variants ----------
class Constraints(BaseModel):
    """ Type-specific constraints of one node. Each variant only carries the fields meaningful for its type. """
    model_config = ConfigDict(extra="forbid", populate_by_name=True, validate_assignment=True)

    @classmethod
    def resolve_field(cls, field: str) -> Optional[str]:
        """ Map a document keyword (minLength) or attribute name (min_length) to the attribute name. """
        for attr, info in cls.model_fields.items():
            if field == attr or field == info.alias:
                return attr
        return None

    @classmethod
    def keywords(cls) -> list[str]:
        """ Document keywords in emit order. """
        return [info.alias or attr for attr, info in cls.model_fields.items()]

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class StringConstraints(Constraints):
    enum: Optional[list[StrictStr]] = None
    min_length: Optional[Length] = Field(None, alias="minLength")
    max_length: Optional[Length] = Field(None, alias="maxLength")
    pattern: Optional[StrictStr] = None

    @field_validator("pattern")
    @classmethod
    def _pattern_compiles(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            try:
                re.compile(v)
            except re.error as e:
                raise ValueError(f"invalid regular expression: {e}") from e
        return v


class NumberConstraints(Constraints):
    minimum: Optional[Number] = None
    maximum: Optional[Number] = None


class NoConstraints(Constraints):
    """ boolean, null and the container types carry no scalar constraints. """


CONSTRAINTS_BY_TYPE: dict[SchemaType, type[Constraints]] = {
    SchemaType.string: StringConstraints,
    SchemaType.number: NumberConstraints,
    SchemaType.boolean: NoConstraints,
    SchemaType.null: NoConstraints,
    SchemaType.array: NoConstraints,
    SchemaType.object: NoConstraints,
}

# Every keyword the typed model understands. Anything else is passthrough.
UNIVERSAL_KEYWORDS = ("type", "description", "format", "default")
STRUCTURAL_KEYWORDS = ("properties", "required", "items")
KNOWN_KEYWORDS = frozenset(
    UNIVERSAL_KEYWORDS + STRUCTURAL_KEYWORDS
    + tuple(StringConstraints.keywords()) + tuple(NumberConstraints.keywords())
)


def parse_type(value) -> Optional[SchemaType]:
    """ Return the SchemaType for a document 'type' value, or None if absent/unrecognized. """
    if isinstance(value, str):
        try:
            return SchemaType(value)
        except ValueError:
            return None
    return None


def constraints_for(schema_type: SchemaType) -> Constraints:
    return CONSTRAINTS_BY_TYPE[schema_type]()

from .types import (
    SchemaType, CONTAINER_TYPES, Constraints, StringConstraints, NumberConstraints, NoConstraints
)
from .node import SchemaNode
from .tree import SchemaTree, DocumentMeta

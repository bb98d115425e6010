# meta_schema.py
from schema_builder.model.types import SchemaType

SUPPORTED_TYPES = [t.value for t in SchemaType]

# One sub-schema of the supported subset, described as a JSON Schema. Nested sub-schemas under
# 'properties' and 'items' only have to be objects here; the checker walks into them itself.
# Unknown keywords are allowed: they are carried through verbatim rather than rejected.
NODE_META_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "$id": "https://example.com/schema-builder/supported-subset-node.schema.json",
    "title": "Schema Builder Node",
    "type": "object",
    "properties": {
        "type": {"type": "string", "enum": SUPPORTED_TYPES},
        "description": {"type": "string"},
        "format": {"type": "string"},
        "enum": {"type": "array"},
        "minimum": {"type": "number"},
        "maximum": {"type": "number"},
        "minLength": {"type": "integer", "minimum": 0},
        "maxLength": {"type": "integer", "minimum": 0},
        "pattern": {"type": "string", "format": "regex"},
        "properties": {
            "type": "object",
            "additionalProperties": {"type": "object"}
        },
        "required": {
            "type": "array",
            "items": {"type": "string"}
        },
        "items": {"type": "object"}
    }
}

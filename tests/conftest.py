import pytest

from schema_builder.db.manager import DatabaseManager
from schema_builder.db.services import SchemaService
from schema_builder.model import SchemaTree, SchemaType


# --- Tree fixtures ------------------------------------------------------------
@pytest.fixture()
def tree():
    """Fresh tree with an object root and no properties."""
    return SchemaTree()


@pytest.fixture()
def make_property(tree):
    """ Add a named property under parent (default: root) and optionally retype it. """
    def _mk(name: str, parent_id: str | None = None, schema_type: SchemaType | str | None = None) -> str:
        node_id = tree.add_property(parent_id if parent_id is not None else tree.root_id)
        tree.rename(node_id, name)
        if schema_type is not None:
            tree.retype(node_id, schema_type)
        return node_id

    return _mk


# --- Sample documents ---------------------------------------------------------
@pytest.fixture()
def age_document():
    return {
        "type": "object",
        "properties": {"age": {"type": "number", "minimum": 0}},
        "required": ["age"],
    }


@pytest.fixture()
def person_document():
    return {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "title": "Person",
        "type": "object",
        "description": "A person record",
        "properties": {
            "name": {"type": "string", "minLength": 1, "maxLength": 80},
            "email": {"type": "string", "format": "email", "pattern": "^[^@]+@[^@]+$"},
            "role": {"type": "string", "enum": ["admin", "user", "guest"]},
            "age": {"type": "number", "minimum": 0, "maximum": 150},
            "active": {"type": "boolean", "default": True},
            "tags": {"type": "array", "items": {"type": "string"}},
            "address": {
                "type": "object",
                "properties": {
                    "street": {"type": "string"},
                    "zip": {"type": "string", "pattern": "^[0-9]{5}$"},
                },
                "required": ["street"],
            },
            "nickname": {"type": "null"},
        },
        "required": ["name", "email"],
    }


# --- Store fixtures -----------------------------------------------------------
@pytest.fixture()
def db(tmp_path):
    """Schema store on a temp SQLite file."""
    manager = DatabaseManager()
    manager.open(tmp_path / "schemas.db")
    yield manager
    manager.dispose()


@pytest.fixture()
def service(db):
    return SchemaService(db, page_size=2)

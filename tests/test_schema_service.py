import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from schema_builder.core.errors import MalformedDocument
from schema_builder.db.manager import DatabaseManager
from schema_builder.db.models import SavedSchema
from schema_builder.db.services import SchemaNotFound
from schema_builder.schema import compile_tree, decompile_document


# --- manager

def test_manager_requires_open():
    manager = DatabaseManager()
    assert not manager.is_open
    with pytest.raises(RuntimeError):
        with manager.session():
            pass


def test_manager_open_missing_file(tmp_path):
    manager = DatabaseManager()
    with pytest.raises(FileNotFoundError):
        manager.open(tmp_path / "nope.db", create_if_missing=False)
    assert not manager.is_open


def test_manager_rolls_back_on_error(db):
    with pytest.raises(IntegrityError):
        with db.session() as s:
            s.add(SavedSchema(name="  ", document={}))
            s.flush()

    with db.session() as s:
        assert s.execute(select(SavedSchema)).scalars().all() == []


# --- service: create / get

def test_create_and_get(service, age_document):
    row = service.create(" Person ", age_document, created_by_id="alice")

    fetched = service.get(row.id)
    assert fetched.name == "Person"
    assert fetched.document == age_document
    assert fetched.created_by_id == "alice"
    assert fetched.created_at


def test_create_copies_document(service, age_document):
    row = service.create("Age", age_document)
    age_document["properties"]["age"]["minimum"] = 99

    assert service.get(row.id).document["properties"]["age"]["minimum"] == 0


def test_create_rejects_bad_input(service, age_document):
    with pytest.raises(ValueError):
        service.create("   ", age_document)
    with pytest.raises(MalformedDocument):
        service.create("list", [1, 2])
    assert service.list_all() == []


def test_stored_document_round_trips(service, person_document):
    row = service.create("Person", compile_tree(decompile_document(person_document)))
    assert compile_tree(decompile_document(service.get(row.id).document)) == person_document


def test_get_missing(service):
    with pytest.raises(SchemaNotFound):
        service.get(404)


# --- service: update / delete

def test_update_name_and_document(service, age_document):
    row = service.create("Age", age_document)
    new_doc = {"type": "object", "properties": {}}

    service.update(row.id, name="Renamed")
    assert service.get(row.id).name == "Renamed"
    assert service.get(row.id).document == age_document

    service.update(row.id, document=new_doc)
    assert service.get(row.id).document == new_doc
    assert service.get(row.id).name == "Renamed"


def test_update_errors(service, age_document):
    row = service.create("Age", age_document)
    with pytest.raises(SchemaNotFound):
        service.update(999, name="x")
    with pytest.raises(ValueError):
        service.update(row.id, name="")
    with pytest.raises(MalformedDocument):
        service.update(row.id, document="{}")
    assert service.get(row.id).name == "Age"


def test_delete(service, age_document):
    row = service.create("Age", age_document)
    service.delete(row.id)
    with pytest.raises(SchemaNotFound):
        service.get(row.id)
    with pytest.raises(SchemaNotFound):
        service.delete(row.id)


# --- service: listing

def test_list_pages_newest_first(service, age_document):
    ids = [service.create(f"Schema {i}", age_document).id for i in range(5)]

    first = service.list()
    assert (first.total, first.page, first.page_size, first.total_pages) == (5, 1, 2, 3)
    assert [r.id for r in first.items] == [ids[4], ids[3]]

    last = service.list(page=3)
    assert [r.id for r in last.items] == [ids[0]]

    beyond = service.list(page=10)
    assert beyond.items == []
    assert beyond.total == 5


def test_list_page_size_and_clamping(service, age_document):
    for i in range(3):
        service.create(f"S{i}", age_document)

    page = service.list(page=0, page_size=10)
    assert page.page == 1
    assert page.total_pages == 1
    assert len(page.items) == 3

    with pytest.raises(ValueError):
        service.list(page_size=0)


def test_list_filters_by_name(service, age_document):
    service.create("Customer", age_document)
    service.create("Order", age_document)
    service.create("customer address", age_document)

    page = service.list(name="CUSTOMER", page_size=10)
    assert page.total == 2
    assert {r.name for r in page.items} == {"Customer", "customer address"}


def test_list_empty(service):
    page = service.list()
    assert (page.items, page.total, page.total_pages) == ([], 0, 0)

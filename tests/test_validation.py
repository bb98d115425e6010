import pytest

from schema_builder.core.errors import MalformedDocument
from schema_builder.model import NumberConstraints, SchemaNode, SchemaType
from schema_builder.schema import FindingKind, check_document, check_tree


def _kinds(findings):
    return sorted(f.kind.value for f in findings)


# --- trees

def test_clean_tree_has_no_findings(tree, make_property):
    make_property("name")
    tags = make_property("tags", schema_type="array")
    tree.add_items(tags)
    assert check_tree(tree) == []


def test_blank_name_is_advisory(tree):
    blank = tree.add_property(tree.root_id)
    (finding,) = check_tree(tree)
    assert finding.kind is FindingKind.blank_name
    assert finding.node_id == blank


def test_duplicate_names_in_imported_tree(tree, make_property):
    a = make_property("a")
    b = make_property("b")
    tree.node(b).name = "a"  # bypasses rename, as a legacy tree would

    (finding,) = check_tree(tree)
    assert finding.kind is FindingKind.duplicate_name
    assert finding.path == "/properties/a"
    assert finding.node_id == tree.root_id
    assert a in tree


def test_inapplicable_constraints(tree, make_property):
    node = make_property("name")
    tree.node(node).constraints = NumberConstraints(minimum=1)

    (finding,) = check_tree(tree)
    assert finding.kind is FindingKind.inapplicable_field
    assert "minimum" in finding.message
    assert finding.path == "/properties/name"


def test_multiple_items_children(tree, make_property):
    tags = make_property("tags", schema_type="array")
    tree.add_items(tags)
    stray = SchemaNode(id="stray", parent_id=tags)
    tree._attach(stray)

    kinds = _kinds(check_tree(tree))
    assert FindingKind.multiple_items.value in kinds


def test_children_on_leaf_and_dangling_reference(tree, make_property):
    leaf = make_property("leaf")
    tree.node(leaf).children.append("ghost")
    tree.node(leaf).items_id = "ghost-items"

    kinds = _kinds(check_tree(tree))
    assert kinds.count(FindingKind.dangling_reference.value) == 2
    assert kinds.count(FindingKind.unexpected_children.value) == 2


def test_inverted_ranges(tree, make_property):
    age = make_property("age", schema_type="number")
    tree.set_constraint(age, "minimum", 10)
    tree.set_constraint(age, "maximum", 1)
    name = make_property("name")
    tree.set_constraint(name, "minLength", 5)
    tree.set_constraint(name, "maxLength", 2)

    findings = check_tree(tree)
    assert _kinds(findings) == ["invalid_range", "invalid_range"]
    assert {f.path for f in findings} == {"/properties/age", "/properties/name"}


def test_check_tree_does_not_mutate(tree, make_property):
    node = make_property("x")
    tree.node(node).name = ""
    before = tree.shape()
    check_tree(tree)
    assert tree.shape() == before


# --- documents

def test_supported_documents_are_clean(person_document, age_document):
    assert check_document(person_document) == []
    assert check_document(age_document) == []


def test_unknown_keywords_are_not_findings():
    document = {"type": "object", "properties": {"x": {"$ref": "#/a", "x-extra": 1}}, "additionalProperties": False}
    assert check_document(document) == []


@pytest.mark.parametrize("type_value, kind", [
    ("integer", FindingKind.unsupported_type),
    (["string", "null"], FindingKind.unsupported_type),
    (5, FindingKind.malformed_type),
    ({"a": 1}, FindingKind.malformed_type),
])
def test_type_findings(type_value, kind):
    document = {"type": "object", "properties": {"x": {"type": type_value}}}
    (finding,) = check_document(document)
    assert finding.kind is kind
    assert finding.path == "/properties/x/type"


def test_required_entries_must_be_strings():
    document = {"type": "object", "properties": {"a": {"type": "string"}}, "required": ["a", 3]}
    (finding,) = check_document(document)
    assert finding.kind is FindingKind.invalid_required
    assert finding.path == "/required/1"


def test_required_must_be_a_list():
    (finding,) = check_document({"type": "object", "required": "a"})
    assert finding.kind is FindingKind.invalid_required


@pytest.mark.parametrize("properties", [["a"], "a"])
def test_properties_must_be_a_mapping(properties):
    (finding,) = check_document({"type": "object", "properties": properties})
    assert finding.kind is FindingKind.invalid_properties
    assert finding.path == "/properties"


def test_property_sub_schema_must_be_an_object():
    (finding,) = check_document({"type": "object", "properties": {"a": 5}})
    assert finding.kind is FindingKind.invalid_properties
    assert finding.path == "/properties/a"


def test_items_must_be_an_object():
    (finding,) = check_document({"type": "array", "items": [{"type": "string"}]})
    assert finding.kind is FindingKind.invalid_items
    assert finding.path == "/items"


def test_constraint_findings_and_ranges():
    document = {
        "type": "object",
        "properties": {
            "name": {"type": "string", "minLength": -1, "pattern": "(open"},
            "age": {"type": "number", "minimum": 9, "maximum": 1},
        },
    }
    findings = check_document(document)
    by_path = {f.path: f.kind for f in findings}

    assert by_path["/properties/name/minLength"] is FindingKind.invalid_constraint
    assert by_path["/properties/name/pattern"] is FindingKind.invalid_constraint
    assert by_path["/properties/age"] is FindingKind.invalid_range


def test_boolean_bounds_are_not_ranges():
    document = {"type": "number", "minimum": True, "maximum": False}
    kinds = _kinds(check_document(document))
    assert FindingKind.invalid_range.value not in kinds


def test_nested_findings_have_full_paths():
    document = {"type": "object", "properties": {"a": {"type": "array", "items": {"type": "decimal"}}}}
    (finding,) = check_document(document)
    assert finding.path == "/properties/a/items/type"
    assert str(finding).startswith("/properties/a/items/type: [unsupported_type]")


@pytest.mark.parametrize("value", [[], "text", 1])
def test_non_object_document_raises(value):
    with pytest.raises(MalformedDocument):
        check_document(value)


def test_root_type_finding_path():
    (finding,) = check_document({"type": SchemaType.object.value + "s"})
    assert finding.path == "/type"
    assert finding.kind is FindingKind.unsupported_type


def test_deeply_nested_document_is_checked_without_recursion():
    document = leaf = {"type": "object", "properties": {}}
    for _ in range(1500):
        child = {"type": "object", "properties": {}}
        leaf["properties"]["next"] = child
        leaf = child
    leaf["minLength"] = -1

    (finding,) = check_document(document)
    assert finding.kind is FindingKind.invalid_constraint
    assert finding.path == "/properties/next" * 1500 + "/minLength"

"""Unit tests for the document tree, pointers and well-formedness."""

import json

import pytest

from bundlecheck.document import (
    DocumentNode,
    format_pointer,
    is_empty_value,
    iter_resources,
    parse_document,
    parse_pointer,
    resolve_pointer,
    resources_of_type,
)
from bundlecheck.errors import DocumentMalformedError, PointerResolutionError
from bundlecheck.models import Authority, Severity


class TestPointers:
    """Test RFC 6901 pointer formatting and resolution."""

    def test_root_pointer_is_empty_string(self):
        """The root node has the empty pointer."""
        assert DocumentNode({"a": 1}).pointer == ""
        assert format_pointer([]) == ""

    def test_escaping(self):
        """Tilde and slash are escaped in pointer steps."""
        assert format_pointer(["a/b", "c~d", 0]) == "/a~1b/c~0d/0"
        assert parse_pointer("/a~1b/c~0d/0") == ["a/b", "c~d", "0"]

    def test_parse_pointer_requires_leading_slash(self):
        """A non-empty pointer must start with a slash."""
        with pytest.raises(PointerResolutionError):
            parse_pointer("entry/0")

    def test_child_pointer_resolves_back_to_node(self, bundle):
        """Every node reachable by walking resolves from its own pointer."""
        root = DocumentNode(bundle)
        given = root.child("entry").child(0).child("resource").child("name").child(0).child("given").child(1)
        assert given.pointer == "/entry/0/resource/name/0/given/1"
        assert resolve_pointer(root, given.pointer).value == "James"

    def test_resolve_root(self, patient):
        """The empty pointer resolves to the root."""
        root = DocumentNode(patient)
        assert resolve_pointer(root, "").value is patient

    def test_resolve_missing_step_raises(self, patient):
        """Pointers to absent nodes do not resolve."""
        root = DocumentNode(patient)
        with pytest.raises(PointerResolutionError):
            resolve_pointer(root, "/name/5")
        with pytest.raises(PointerResolutionError):
            resolve_pointer(root, "/deceasedBoolean")

    def test_resolve_rejects_leading_zero_index(self, patient):
        """Array indices with leading zeros are invalid."""
        with pytest.raises(PointerResolutionError):
            resolve_pointer(DocumentNode(patient), "/name/00")

    def test_pointer_error_is_key_error(self):
        """Resolution errors can be caught as KeyError."""
        with pytest.raises(KeyError):
            parse_pointer("no-slash")


class TestDocumentNode:
    """Test the read-only node view."""

    def test_children_of_object_and_array(self):
        """Children carry object keys and array indices as steps."""
        node = DocumentNode({"a": [10, 20]})
        (key, child), = list(node.children())
        assert key == "a"
        assert [(step, item.value) for step, item in child.children()] == [(0, 10), (1, 20)]

    def test_child_ignores_wrong_step_type(self):
        """String steps do not index arrays and int steps do not index objects."""
        assert DocumentNode([1, 2]).child("0") is None
        assert DocumentNode({"0": 1}).child(0) is None

    def test_parent_steps(self, patient):
        node = DocumentNode(patient).child("name").child(0).child("given")
        assert node.parent_steps() == ("name", 0)
        assert format_pointer(node.parent_steps()) == "/name/0"
        assert DocumentNode(patient).parent_steps() == ()

    def test_kind(self):
        """Node kinds map to object, array, scalar and null."""
        assert DocumentNode({}).kind == "object"
        assert DocumentNode([]).kind == "array"
        assert DocumentNode("x").kind == "scalar"
        assert DocumentNode(None).kind == "null"

    def test_nodes_do_not_copy_values(self, patient):
        """Nodes are views over the parsed value."""
        root = DocumentNode(patient)
        assert root.child("name").value is patient["name"]

    @pytest.mark.parametrize("value,expected", [
        (None, True),
        ("", True),
        ("   ", True),
        ([], True),
        ({}, True),
        (0, False),
        (False, False),
        ("x", False),
    ])
    def test_is_empty_value(self, value, expected):
        """Null, blank strings and empty containers are empty."""
        assert is_empty_value(value) is expected


class TestParseDocument:
    """Test the well-formedness check."""

    def test_parses_text(self, patient):
        """JSON text parses into a root node."""
        root = parse_document(json.dumps(patient))
        assert root.is_root
        assert root.get("resourceType") == "Patient"

    def test_accepts_bytes_with_bom(self, patient):
        """UTF-8 bytes with a byte order mark are accepted."""
        root = parse_document(b"\xef\xbb\xbf" + json.dumps(patient).encode("utf-8"))
        assert root.get("id") == "p1"

    def test_accepts_parsed_object(self, patient):
        """Already parsed objects are wrapped without copying."""
        assert parse_document(patient).value is patient

    def test_empty_document(self):
        """Blank input is EMPTY_DOCUMENT."""
        with pytest.raises(DocumentMalformedError) as exc_info:
            parse_document("   \n")
        (finding,) = exc_info.value.findings
        assert finding.code == "EMPTY_DOCUMENT"
        assert finding.authority == Authority.STRUCTURE
        assert finding.severity == Severity.ERROR
        assert finding.pointer == ""

    def test_invalid_json_reports_position(self):
        """Syntax errors carry the line and column."""
        with pytest.raises(DocumentMalformedError) as exc_info:
            parse_document('{\n  "resourceType": "Patient",\n  "id": \n}')
        (finding,) = exc_info.value.findings
        assert finding.code == "INVALID_JSON"
        assert finding.details["lineNumber"] == 4
        assert finding.details["column"] == 1
        assert finding.details["reason"]

    @pytest.mark.parametrize("source,actual", [
        ("[1, 2]", "array"),
        ('"text"', "string"),
        ("42", "number"),
        ("null", "null"),
    ])
    def test_root_must_be_object(self, source, actual):
        """Non-object roots are ROOT_NOT_OBJECT."""
        with pytest.raises(DocumentMalformedError) as exc_info:
            parse_document(source)
        (finding,) = exc_info.value.findings
        assert finding.code == "ROOT_NOT_OBJECT"
        assert finding.details == {"actualType": actual}


class TestResources:
    """Test resource discovery."""

    def test_bundle_resources_in_order(self, bundle):
        """Bundle entries yield their resources with entry indices."""
        refs = iter_resources(DocumentNode(bundle))
        assert [(r.resource_type, r.entry_index) for r in refs] == [
            ("Patient", 0), ("Observation", 1), ("Observation", 2),
        ]
        assert refs[1].node.pointer == "/entry/1/resource"

    def test_single_resource_document(self, patient):
        """A non-Bundle root is its own single resource."""
        (ref,) = iter_resources(DocumentNode(patient))
        assert ref.resource_type == "Patient"
        assert ref.node.is_root

    def test_entries_without_typed_resources_are_skipped(self, patient):
        """Entries lacking a resource or a string resourceType are ignored."""
        root = DocumentNode({
            "resourceType": "Bundle",
            "entry": [{"fullUrl": "x"}, {"resource": {"resourceType": 5}}, {"resource": patient}],
        })
        (ref,) = iter_resources(root)
        assert ref.entry_index == 2

    def test_resources_of_type(self, bundle):
        """Filtering by type keeps document order."""
        refs = resources_of_type(DocumentNode(bundle), "Observation")
        assert [r.node.get("status") for r in refs] == ["final", "amended"]

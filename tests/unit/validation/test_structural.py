"""Tests for JSON-node structural validation."""

from collections import Counter

import pytest

from bundlecheck.document import DocumentNode, resolve_pointer
from bundlecheck.models import Authority, PrimitiveType, Severity
from bundlecheck.rules import RuleEngine, load_rules
from bundlecheck.schemas import DictSchemaProvider
from bundlecheck.validation.structural import StructuralValidator, primitive_problem


def run(schema, document) -> list:
    return StructuralValidator(schema).validate_document(DocumentNode(document))


def codes(findings) -> list[tuple[str, str]]:
    return [(f.code, f.pointer) for f in findings]


class TestPrimitiveFormats:
    """Test primitive subtype checks."""

    @pytest.mark.parametrize("type_,value", [
        (PrimitiveType.BOOLEAN, True),
        (PrimitiveType.INTEGER, 3),
        (PrimitiveType.DECIMAL, 3),
        (PrimitiveType.DECIMAL, 3.5),
        (PrimitiveType.DATE, "2024"),
        (PrimitiveType.DATE, "2024-02"),
        (PrimitiveType.DATE, "2024-02-29"),
        (PrimitiveType.DATETIME, "2024-02-29"),
        (PrimitiveType.DATETIME, "2024-02-29T10:15:00Z"),
        (PrimitiveType.DATETIME, "2024-02-29T10:15:00.123+02:00"),
        (PrimitiveType.STRING, "plain text"),
    ])
    def test_valid(self, type_, value):
        assert primitive_problem(type_, value) is None

    @pytest.mark.parametrize("type_,value,reason", [
        (PrimitiveType.BOOLEAN, "true", "Must be true or false"),
        (PrimitiveType.INTEGER, True, "Must be a whole number"),
        (PrimitiveType.INTEGER, 1.5, "Must be a whole number"),
        (PrimitiveType.DECIMAL, "1.5", "Must be a numeric value"),
        (PrimitiveType.DATE, "2023-02-29", "Must be in format YYYY-MM-DD"),
        (PrimitiveType.DATE, "2024-13", "Must be in format YYYY-MM-DD"),
        (PrimitiveType.DATE, "25/12/1974", "Must be in format YYYY-MM-DD"),
        (PrimitiveType.DATETIME, "2024-02-29T10:15:00", "Must be in ISO 8601 format"),
        (PrimitiveType.STRING, "two\nlines", "Must be a text value without line breaks"),
    ])
    def test_invalid(self, type_, value, reason):
        assert primitive_problem(type_, value) == reason


class TestStructuralValidator:
    """Test structural validation of resources."""

    def test_valid_patient_has_no_findings(self, schema, patient):
        assert run(schema, patient) == []

    def test_valid_bundle_has_no_findings(self, schema, bundle):
        assert run(schema, bundle) == []

    def test_invalid_enum_value(self, schema, patient):
        """An unknown code under a required binding is an error at the element."""
        patient["gender"] = "malex"
        (finding,) = run(schema, patient)
        assert finding.code == "INVALID_ENUM_VALUE"
        assert finding.authority == Authority.STRUCTURE
        assert finding.pointer == "/gender"
        assert finding.severity == Severity.ERROR
        assert finding.details["actual"] == "malex"
        assert finding.details["allowed"] == ["male", "female", "other", "unknown"]
        assert finding.details["path"] == "Patient.gender"
        assert finding.details["bindingStrength"] == "required"

    @pytest.mark.parametrize("strength,severity", [
        ("extensible", Severity.WARNING),
        ("preferred", Severity.INFO),
        ("example", Severity.INFO),
    ])
    def test_enum_severity_follows_binding_strength(self, strength, severity):
        schema = DictSchemaProvider([
            {"path": "Patient.gender", "enumeration": ["male", "female"], "bindingStrength": strength},
        ])
        (finding,) = run(schema, {"resourceType": "Patient", "gender": "x"})
        assert finding.severity == severity

    def test_object_where_array_expected(self, schema, patient):
        """identifier given as an object is a shape violation and is not descended into."""
        patient["identifier"] = {}
        (finding,) = run(schema, patient)
        assert finding.code == "SHAPE_MISMATCH"
        assert finding.pointer == "/identifier"
        assert finding.details["expectedType"] == "array"
        assert finding.details["actualType"] == "object"

    def test_array_where_single_value_expected(self, schema, patient):
        patient["birthDate"] = ["1974-12-25"]
        (finding,) = run(schema, patient)
        assert finding.code == "SHAPE_MISMATCH"
        assert finding.details["expectedType"] == "scalar"
        assert finding.details["actualType"] == "array"

    def test_invalid_primitive_in_array_item(self, schema, patient):
        """Each array item is checked and reported at its own pointer."""
        patient["name"][0]["given"] = ["Peter", 7]
        (finding,) = run(schema, patient)
        assert finding.code == "INVALID_PRIMITIVE_FORMAT"
        assert finding.pointer == "/name/0/given/1"
        assert finding.details["expectedType"] == "string"
        assert finding.details["reason"] == "Must be a text value without line breaks"

    def test_cardinality_violation(self, schema, patient):
        patient["telecom"] = [{"value": "1"}, {"value": "2"}, {"value": "3"}]
        (finding,) = run(schema, patient)
        assert finding.code == "CARDINALITY_VIOLATION"
        assert finding.pointer == "/telecom"
        assert finding.details == {"path": "Patient.telecom", "min": 0, "max": 2, "actual": 3}

    def test_absent_required_reported_at_parent(self, schema, patient):
        """A missing required element is reported once at the containing object."""
        del patient["name"]
        (finding,) = run(schema, patient)
        assert finding.code == "REQUIRED_FIELD_MISSING"
        assert finding.pointer == ""
        assert finding.details == {"path": "Patient.name", "element": "name", "min": 1}

    def test_empty_required_array_is_required_missing(self, schema, patient):
        """An empty array under min >= 1 is required-missing, not cardinality."""
        patient["name"] = []
        assert codes(run(schema, patient)) == [("REQUIRED_FIELD_MISSING", "/name")]

    def test_null_required_is_required_missing(self, schema, patient):
        patient["name"] = None
        assert codes(run(schema, patient)) == [("REQUIRED_FIELD_MISSING", "/name")]

    def test_required_child_of_absent_optional_parent(self, schema, patient):
        """Required children of an absent optional parent are not reported."""
        assert "contact" not in patient
        assert run(schema, patient) == []

    def test_required_child_of_present_parent(self, schema, patient):
        patient["contact"] = [{"name": {"family": "Doe"}}]
        assert codes(run(schema, patient)) == [("REQUIRED_FIELD_MISSING", "/contact/0")]

    def test_reports_every_violation(self, schema, patient):
        """Checks are independent and the walk never stops early."""
        patient["gender"] = "malex"
        patient["birthDate"] = "1974-13-01"
        patient["identifier"] = {}
        del patient["name"]
        assert sorted(codes(run(schema, patient))) == [
            ("INVALID_ENUM_VALUE", "/gender"),
            ("INVALID_PRIMITIVE_FORMAT", "/birthDate"),
            ("REQUIRED_FIELD_MISSING", ""),
            ("SHAPE_MISMATCH", "/identifier"),
        ]

    def test_bundle_resources_validated_at_entry_pointers(self, schema, bundle):
        bundle["entry"][2]["resource"]["status"] = "done"
        (finding,) = run(schema, bundle)
        assert finding.code == "INVALID_ENUM_VALUE"
        assert finding.pointer == "/entry/2/resource/status"

    def test_resources_without_schema_are_skipped(self, schema, make_bundle):
        document = make_bundle({"resourceType": "Encounter", "status": 5})
        assert run(schema, document) == []

    def test_findings_do_not_mutate_document(self, schema, patient):
        patient["gender"] = "malex"
        snapshot = repr(patient)
        run(schema, patient)
        assert repr(patient) == snapshot

    def test_array_kind_without_max_accepts_many(self):
        """An array element with no declared upper bound takes any number of items."""
        provider = DictSchemaProvider([
            {"path": "Patient", "kind": "object"},
            {"path": "Patient.name", "kind": "array"},
            {"path": "Patient.name.family", "type": "string"},
        ])
        document = {"resourceType": "Patient", "name": [{"family": "x"}, {"family": "y"}]}
        assert run(provider, document) == []

    def test_every_pointer_resolves(self, schema, patient):
        """Finding pointers address nodes that exist in the document."""
        patient["gender"] = "malex"
        patient["birthDate"] = "1974-13-01"
        patient["identifier"] = {}
        patient["name"][0]["given"] = ["Peter", 7]
        patient["contact"] = [{"name": {"family": "Doe"}}]
        del patient["active"]
        root = DocumentNode(patient)
        findings = run(schema, patient)
        assert len(findings) == 5
        for finding in findings:
            node = resolve_pointer(root, finding.pointer)
            if finding.code == "REQUIRED_FIELD_MISSING":
                assert node.kind == "object"

    def test_required_missing_resolves_to_parent(self, schema, patient):
        del patient["name"]
        (finding,) = run(schema, patient)
        assert resolve_pointer(DocumentNode(patient), finding.pointer).value is patient


class TestOrderIndependence:
    """Findings do not depend on the order of schema elements or rules."""

    ELEMENTS = [
        {"path": "Patient", "kind": "object"},
        {"path": "Patient.identifier", "kind": "array", "max": "*"},
        {"path": "Patient.name", "kind": "array", "min": 1, "max": "*"},
        {"path": "Patient.name.given", "kind": "array", "max": "*", "type": "string"},
        {"path": "Patient.gender", "type": "string", "enumeration": ["male", "female"]},
        {"path": "Patient.birthDate", "type": "date"},
    ]

    def test_schema_element_order(self, patient):
        patient["gender"] = "malex"
        patient["birthDate"] = "1974-13-01"
        patient["identifier"] = {}
        patient["name"][0]["given"] = ["Peter", 7]
        forward = run(DictSchemaProvider(self.ELEMENTS), patient)
        backward = run(DictSchemaProvider(list(reversed(self.ELEMENTS))), patient)
        assert len(forward) == 4
        assert Counter(codes(forward)) == Counter(codes(backward))

    def test_rule_order(self, make_bundle):
        document = make_bundle(
            {"resourceType": "Patient", "active": True, "gender": "male"},
            {"resourceType": "Patient", "active": False, "name": [{"family": "B"}], "gender": "unknown"},
        )
        definitions = [
            {"type": "Required", "resourceType": "Patient", "fieldPath": "name", "instanceScope": "all"},
            {"type": "FixedValue", "resourceType": "Patient", "fieldPath": "active",
             "instanceScope": "all", "metadata": {"expectedValue": True}},
            {"type": "AllowedValues", "resourceType": "Patient", "fieldPath": "gender",
             "instanceScope": "all", "metadata": {"allowedValues": ["male", "female"]}},
        ]
        root = DocumentNode(document)
        forward = RuleEngine().evaluate(root, load_rules(definitions))
        backward = RuleEngine().evaluate(root, load_rules(list(reversed(definitions))))
        assert len(forward) == 3
        assert Counter(codes(forward)) == Counter(codes(backward))

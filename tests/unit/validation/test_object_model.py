"""Tests for the JSON Schema backed object-model validator."""

import pytest

from bundlecheck.errors import SchemaLoadError
from bundlecheck.models import Authority, Severity
from bundlecheck.validation.object_model import JsonSchemaObjectModelValidator, ObjectModelValidator

PATIENT_MODEL = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["resourceType"],
    "properties": {
        "resourceType": {"const": "Patient"},
        "active": {"type": "boolean"},
        "name": {"type": "array", "items": {"type": "object"}},
    },
}


class TestJsonSchemaObjectModelValidator:
    """Test object-model findings produced from JSON Schema errors."""

    def test_valid_document(self, patient):
        assert JsonSchemaObjectModelValidator(PATIENT_MODEL).validate(patient) == []

    def test_findings_are_pointer_addressed(self, patient):
        patient["active"] = "yes"
        patient["name"] = ["Peter"]
        findings = JsonSchemaObjectModelValidator(PATIENT_MODEL).validate(patient)
        assert [(f.code, f.pointer) for f in findings] == [
            ("OBJECT_MODEL_TYPE", "/active"),
            ("OBJECT_MODEL_TYPE", "/name/0"),
        ]
        finding = findings[0]
        assert finding.authority == Authority.OBJECT_MODEL
        assert finding.severity == Severity.ERROR
        assert finding.details["validator"] == "type"
        assert finding.details["schemaPath"] == "properties/active/type"
        assert "'yes' is not of type 'boolean'" in finding.details["message"]

    def test_root_level_error(self):
        (finding,) = JsonSchemaObjectModelValidator(PATIENT_MODEL).validate({"id": "x"})
        assert finding.code == "OBJECT_MODEL_REQUIRED"
        assert finding.pointer == ""

    def test_invalid_schema(self):
        with pytest.raises(SchemaLoadError):
            JsonSchemaObjectModelValidator({"type": "no-such-type"})

    def test_from_file(self, write_json):
        validator = JsonSchemaObjectModelValidator.from_file(write_json("model.json", PATIENT_MODEL))
        assert isinstance(validator, ObjectModelValidator)

    def test_from_missing_file(self, tmp_path):
        with pytest.raises(SchemaLoadError):
            JsonSchemaObjectModelValidator.from_file(tmp_path / "absent.json")

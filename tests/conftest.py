"""Shared fixtures for bundlecheck tests."""

import json

import pytest

from bundlecheck.schemas import DictSchemaProvider

PATIENT_ELEMENTS = [
    {"path": "Patient", "kind": "object"},
    {"path": "Patient.identifier", "kind": "array", "min": 0, "max": "*"},
    {"path": "Patient.identifier.system", "type": "string"},
    {"path": "Patient.identifier.value", "type": "string"},
    {"path": "Patient.active", "type": "boolean"},
    {"path": "Patient.name", "kind": "array", "min": 1, "max": "*"},
    {"path": "Patient.name.family", "type": "string"},
    {"path": "Patient.name.given", "kind": "array", "max": "*", "type": "string"},
    {
        "path": "Patient.gender",
        "type": "string",
        "enumeration": ["male", "female", "other", "unknown"],
        "bindingStrength": "required",
    },
    {"path": "Patient.birthDate", "type": "date"},
    {"path": "Patient.telecom", "kind": "array", "max": 2},
    {"path": "Patient.telecom.value", "type": "string"},
    {"path": "Patient.contact", "kind": "array", "max": "*"},
    {"path": "Patient.contact.relationship", "kind": "array", "min": 1, "max": "*"},
]

OBSERVATION_ELEMENTS = [
    {"path": "Observation", "kind": "object"},
    {
        "path": "Observation.status",
        "type": "string",
        "min": 1,
        "enumeration": ["registered", "preliminary", "final", "amended"],
    },
    {"path": "Observation.code", "kind": "object", "min": 1},
    {"path": "Observation.code.coding", "kind": "array", "max": "*"},
    {"path": "Observation.code.coding.system", "type": "string"},
    {"path": "Observation.code.coding.code", "type": "string"},
    {"path": "Observation.effectiveDateTime", "type": "dateTime"},
    {"path": "Observation.valueQuantity.value", "type": "decimal"},
    {"path": "Observation.valueQuantity.unit", "type": "string"},
    {"path": "Observation.subject.reference", "type": "string"},
]


@pytest.fixture
def schema():
    """Schema provider for Patient and Observation."""
    return DictSchemaProvider(PATIENT_ELEMENTS + OBSERVATION_ELEMENTS)


@pytest.fixture
def patient():
    """A structurally valid Patient resource."""
    return {
        "resourceType": "Patient",
        "id": "p1",
        "identifier": [{"system": "urn:oid:1.2.3", "value": "12345"}],
        "active": True,
        "name": [{"family": "Chalmers", "given": ["Peter", "James"]}],
        "gender": "male",
        "birthDate": "1974-12-25",
    }


def _observation(status: str = "final", system: str = "http://loinc.org", code: str = "8867-4") -> dict:
    return {
        "resourceType": "Observation",
        "status": status,
        "code": {"coding": [{"system": system, "code": code}]},
        "subject": {"reference": "Patient/p1"},
    }


def _bundle(*resources: dict) -> dict:
    return {
        "resourceType": "Bundle",
        "type": "collection",
        "entry": [{"fullUrl": f"urn:uuid:{index}", "resource": resource} for index, resource in enumerate(resources)],
    }


@pytest.fixture
def bundle(patient):
    """A Bundle holding one Patient and two Observations."""
    return _bundle(patient, _observation(), _observation(status="amended"))


@pytest.fixture
def write_json(tmp_path):
    """Write data as JSON under tmp_path and return the file path."""
    def write(name: str, data):
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path
    return write


@pytest.fixture
def make_observation():
    """Factory for Observation resources."""
    return _observation


@pytest.fixture
def make_bundle():
    """Factory wrapping resources into a collection Bundle."""
    return _bundle

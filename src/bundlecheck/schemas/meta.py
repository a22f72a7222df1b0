"""JSON Schemas for the files bundlecheck reads.

These describe the envelope of schema metadata, rule and hint catalog files.
Field-level semantics are enforced afterwards by the pydantic models.
"""

from typing import Any

_CARDINALITY_MAX = {
    "oneOf": [
        {"type": "integer", "minimum": 0},
        {"type": "string", "const": "*"},
        {"type": "null"},
    ]
}

SCHEMA_METADATA_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "bundlecheck schema metadata",
    "type": "object",
    "required": ["elements"],
    "properties": {
        "version": {"type": "string"},
        "elements": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["path"],
                "properties": {
                    "path": {"type": "string", "pattern": "^[A-Za-z][A-Za-z0-9_]*(\\.[A-Za-z_][A-Za-z0-9_]*)*$"},
                    "kind": {"enum": ["scalar", "array", "object"]},
                    "type": {"enum": ["boolean", "integer", "decimal", "date", "dateTime", "string", None]},
                    "min": {"type": "integer", "minimum": 0},
                    "max": _CARDINALITY_MAX,
                    "enumeration": {"type": ["array", "null"], "items": {"type": "string"}},
                    "bindingStrength": {"enum": ["required", "extensible", "preferred", "example"]},
                },
            },
        },
    },
}

RULE_FILE_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "bundlecheck rule set",
    "$defs": {
        "rule": {
            "type": "object",
            "required": ["type"],
            "properties": {
                "id": {"type": "string"},
                "type": {"type": "string"},
                "resourceType": {"type": "string"},
                "fieldPath": {"type": "string"},
                "instanceScope": {"type": ["object", "string"]},
                "severity": {"type": "string"},
                "metadata": {"type": "object"},
            },
        },
    },
    "oneOf": [
        {"type": "array", "items": {"$ref": "#/$defs/rule"}},
        {
            "type": "object",
            "required": ["rules"],
            "properties": {
                "version": {"type": "string"},
                "project": {"type": "string"},
                "fhirVersion": {"type": "string"},
                "rules": {"type": "array", "items": {"$ref": "#/$defs/rule"}},
            },
        },
    ],
}

HINT_CATALOG_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "bundlecheck spec hint catalog",
    "type": "object",
    "additionalProperties": {
        "type": "array",
        "items": {
            "type": "object",
            "required": ["path", "reason"],
            "properties": {
                "path": {"type": "string"},
                "reason": {"type": "string"},
                "severity": {"type": "string"},
                "condition": {"type": ["string", "null"]},
                "appliesToEach": {"type": "boolean"},
            },
        },
    },
}

META_SCHEMAS: dict[str, dict[str, Any]] = {
    "schema_metadata": SCHEMA_METADATA_SCHEMA,
    "rule_set": RULE_FILE_SCHEMA,
    "hint_catalog": HINT_CATALOG_SCHEMA,
}

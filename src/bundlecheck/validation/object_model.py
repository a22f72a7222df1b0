"""Object-model validator collaborator.

The pipeline treats the object-model validator as opaque: it hands over the
raw document and tags whatever comes back as ``ObjectModel``. The bundled
implementation validates against a JSON Schema with ``jsonschema``.
"""

import json
import logging
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import jsonschema

from ..document.node import DocumentNode, format_pointer
from ..errors import SchemaLoadError
from ..models.finding import Authority, Finding, Severity

logger = logging.getLogger(__name__)


@runtime_checkable
class ObjectModelValidator(Protocol):
    """Validates a whole document and reports findings."""

    def validate(self, document: Any) -> list[Finding]:
        ...


class JsonSchemaObjectModelValidator:
    """Object-model validation backed by a JSON Schema document."""

    def __init__(self, schema: dict[str, Any]):
        validator_cls = jsonschema.validators.validator_for(schema)
        try:
            validator_cls.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise SchemaLoadError(f"Object-model schema is invalid: {e.message}") from e
        self._validator = validator_cls(schema)

    @classmethod
    def from_file(cls, path: str | Path) -> "JsonSchemaObjectModelValidator":
        try:
            with open(path, encoding="utf-8") as f:
                schema = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SchemaLoadError(f"Failed to load object-model schema {path}: {e}") from e
        logger.info(f"Loaded object-model schema from {path}")
        return cls(schema)

    def validate(self, document: Any) -> list[Finding]:
        if isinstance(document, DocumentNode):
            document = document.value

        findings = []
        for error in sorted(self._validator.iter_errors(document), key=lambda e: list(map(str, e.absolute_path))):
            findings.append(Finding(
                authority=Authority.OBJECT_MODEL,
                code=f"OBJECT_MODEL_{str(error.validator).upper()}",
                pointer=format_pointer(list(error.absolute_path)),
                severity=Severity.ERROR,
                details={
                    "message": error.message,
                    "validator": str(error.validator),
                    "schemaPath": "/".join(str(p) for p in error.absolute_schema_path),
                },
            ))
        return findings

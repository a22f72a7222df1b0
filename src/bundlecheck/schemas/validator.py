"""Validation of input files against the bundled JSON Schemas."""

import json
import logging
from pathlib import Path
from typing import Any

import jsonschema

from .meta import META_SCHEMAS

logger = logging.getLogger(__name__)


class SchemaViolation:
    """One JSON Schema violation in an input file."""

    def __init__(self, path: str, message: str, schema_path: str = ""):
        self.path = path
        self.message = message
        self.schema_path = schema_path

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class InputFileValidator:
    """Validates schema metadata, rule and hint files before they are parsed."""

    def __init__(self, schemas: dict[str, dict[str, Any]] | None = None):
        self.schemas = schemas or META_SCHEMAS

    def validate_data(self, data: Any, file_type: str) -> list[SchemaViolation]:
        """Validate already-loaded data against the schema for ``file_type``.

        Args:
            data: Parsed JSON content
            file_type: One of 'schema_metadata', 'rule_set', 'hint_catalog'

        Returns:
            List of violations (empty if valid)
        """
        schema = self.schemas.get(file_type)
        if not schema:
            raise KeyError(f"No schema available for file type: {file_type}")

        validator_cls = jsonschema.validators.validator_for(schema)
        validator = validator_cls(schema)
        violations = []
        for error in sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path)):
            violations.append(SchemaViolation(
                error.json_path or "$",
                error.message,
                "/".join(str(p) for p in error.absolute_schema_path),
            ))
        if violations:
            logger.debug(f"{file_type} failed validation with {len(violations)} violation(s)")
        return violations

    def load_and_validate(self, path: Path, file_type: str) -> tuple[Any, list[SchemaViolation]]:
        """Load a JSON file and validate it.

        Returns:
            Tuple of (parsed data or None, violations)
        """
        path = Path(path)
        if not path.exists():
            return None, [SchemaViolation(str(path), "File does not exist")]

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            return None, [SchemaViolation(str(path), f"Invalid JSON: {e}")]
        except OSError as e:
            return None, [SchemaViolation(str(path), f"Failed to load file: {e}")]

        return data, self.validate_data(data, file_type)

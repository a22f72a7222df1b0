"""Schema metadata providers."""

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from ..errors import SchemaLoadError
from ..models.schema import ElementKind, SchemaElement
from .validator import InputFileValidator

logger = logging.getLogger(__name__)


@runtime_checkable
class SchemaProvider(Protocol):
    """Supplies structural metadata by element name or dotted path."""

    def resolve(self, element_or_path: str) -> SchemaElement | None:
        ...


class DictSchemaProvider:
    """Schema provider built from flat element definitions.

    Elements are keyed by their fully qualified path (``Patient.name.family``).
    Parents missing from the input are created as optional objects so that
    every element hangs off a resource root.
    """

    def __init__(self, elements: Iterable[dict[str, Any] | SchemaElement]):
        definitions: dict[str, dict[str, Any]] = {}
        for element in elements:
            if isinstance(element, SchemaElement):
                data = element.model_dump(by_alias=True, exclude={"children"})
            else:
                data = dict(element)
                data.pop("children", None)
            path = data.get("path")
            if not path:
                raise SchemaLoadError(f"Schema element without a path: {data}")
            definitions[path] = data

        for path in list(definitions):
            parts = path.split(".")
            for depth in range(1, len(parts)):
                parent = ".".join(parts[:depth])
                if parent not in definitions:
                    definitions[parent] = {"path": parent, "kind": ElementKind.OBJECT.value}

        children: dict[str, list[str]] = {}
        for path in definitions:
            if "." in path:
                children.setdefault(path.rsplit(".", 1)[0], []).append(path)

        def build(path: str) -> SchemaElement:
            data = dict(definitions[path])
            data["children"] = [build(child) for child in children.get(path, [])]
            try:
                return SchemaElement.model_validate(data)
            except ValidationError as e:
                raise SchemaLoadError(f"Invalid schema element {path}: {e}") from e

        self._roots = {path: build(path) for path in definitions if "." not in path}
        logger.debug(f"Schema provider loaded {len(definitions)} elements for {len(self._roots)} root(s)")

    @property
    def resource_types(self) -> list[str]:
        return sorted(self._roots)

    def resolve(self, element_or_path: str) -> SchemaElement | None:
        """Resolve a root name or dotted path; array indices are ignored."""
        if not element_or_path:
            return None
        parts = [part.split("[", 1)[0] for part in element_or_path.split(".")]
        element = self._roots.get(parts[0])
        for part in parts[1:]:
            if element is None:
                return None
            element = element.child(part)
        return element


def load_schema_file(path: str | Path) -> DictSchemaProvider:
    """Load schema metadata from a JSON file.

    Raises:
        SchemaLoadError: If the file is missing, not JSON, or does not match
            the schema metadata format.
    """
    data, violations = InputFileValidator().load_and_validate(Path(path), "schema_metadata")
    if violations:
        summary = "; ".join(str(v) for v in violations[:5])
        raise SchemaLoadError(f"Invalid schema metadata in {path}: {summary}")
    logger.info(f"Loaded schema metadata from {path}")
    return DictSchemaProvider(data["elements"])

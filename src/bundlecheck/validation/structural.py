"""JSON-node structural validation.

Checks shape, primitive format, cardinality, required presence and
enumeration membership of a raw document tree against schema metadata.
Every check runs independently and the walk never stops early, so one run
reports every structural violation in the document.
"""

import logging
import re
from datetime import date

from ..document.node import DocumentNode, json_type_name
from ..document.resources import is_bundle, iter_resources
from ..models.finding import Authority, Finding, Severity
from ..models.schema import BindingStrength, ElementKind, PrimitiveType, SchemaElement
from ..schemas.provider import SchemaProvider

logger = logging.getLogger(__name__)

_DATE_RE = re.compile(r"^\d{4}(-\d{2}(-\d{2})?)?$")
_DATETIME_RE = re.compile(
    r"^\d{4}(-\d{2}(-\d{2}(T\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:\d{2}))?)?)?$"
)

_BINDING_SEVERITY = {
    BindingStrength.REQUIRED: Severity.ERROR,
    BindingStrength.EXTENSIBLE: Severity.WARNING,
    BindingStrength.PREFERRED: Severity.INFO,
    BindingStrength.EXAMPLE: Severity.INFO,
}


def _valid_date(value: str) -> bool:
    if not _DATE_RE.match(value):
        return False
    if len(value) == 10:
        try:
            date.fromisoformat(value)
        except ValueError:
            return False
    elif len(value) == 7 and not 1 <= int(value[5:7]) <= 12:
        return False
    return True


def primitive_problem(type_: PrimitiveType, value) -> str | None:
    """Return a human-readable reason when ``value`` is not a valid ``type_``."""
    if type_ == PrimitiveType.BOOLEAN:
        return None if isinstance(value, bool) else "Must be true or false"
    if type_ == PrimitiveType.INTEGER:
        ok = isinstance(value, int) and not isinstance(value, bool)
        return None if ok else "Must be a whole number"
    if type_ == PrimitiveType.DECIMAL:
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
        return None if ok else "Must be a numeric value"
    if type_ == PrimitiveType.DATE:
        ok = isinstance(value, str) and _valid_date(value)
        return None if ok else "Must be in format YYYY-MM-DD"
    if type_ == PrimitiveType.DATETIME:
        ok = isinstance(value, str) and _DATETIME_RE.match(value) is not None and _valid_date(value[:10])
        return None if ok else "Must be in ISO 8601 format"
    if type_ == PrimitiveType.STRING:
        ok = isinstance(value, str) and "\n" not in value and "\r" not in value
        return None if ok else "Must be a text value without line breaks"
    return None


class StructuralValidator:
    """Validates document nodes against schema elements."""

    def __init__(self, schema: SchemaProvider):
        self.schema = schema

    def validate_document(self, root: DocumentNode) -> list[Finding]:
        """Validate the Bundle root (when described) and every described resource."""
        findings: list[Finding] = []

        if is_bundle(root):
            bundle_schema = self.schema.resolve("Bundle")
            if bundle_schema is not None:
                findings.extend(self.validate(root, bundle_schema))
            for ref in iter_resources(root):
                element = self.schema.resolve(ref.resource_type)
                if element is None:
                    logger.debug(f"No schema for {ref.resource_type} at {ref.node.pointer}")
                    continue
                findings.extend(self.validate(ref.node, element))
        else:
            resource_type = root.get("resourceType")
            element = self.schema.resolve(resource_type) if isinstance(resource_type, str) else None
            if element is not None:
                findings.extend(self.validate(root, element))
            else:
                logger.debug(f"No schema for root resource type {resource_type!r}")

        logger.debug(f"Structural validation produced {len(findings)} finding(s)")
        return findings

    def validate(self, node: DocumentNode, element: SchemaElement) -> list[Finding]:
        """Validate an object node's children against ``element``'s children."""
        findings: list[Finding] = []
        self._check_children(node, element, findings)
        return findings

    def _check_children(self, node: DocumentNode, element: SchemaElement, findings: list[Finding]) -> None:
        if node.kind != "object":
            return
        for child_element in element.children:
            child = node.child(child_element.name)
            if child is None:
                if child_element.min >= 1:
                    findings.append(self._required(node, child_element))
                continue
            self._check_element(child, child_element, findings)

    def _check_element(self, node: DocumentNode, element: SchemaElement, findings: list[Finding]) -> None:
        if node.value is None or (node.kind == "array" and not node.value):
            if element.min >= 1:
                findings.append(self._required(node, element))
            return

        if element.is_repeating:
            if node.kind != "array":
                findings.append(self._shape(node, element, "array"))
                return
            count = len(node.value)
            if count < element.min or (element.max is not None and count > element.max):
                findings.append(self._finding("CARDINALITY_VIOLATION", node, {
                    "path": element.path,
                    "min": element.min,
                    "max": element.max_label,
                    "actual": count,
                }))
            for _, item in node.children():
                self._check_item(item, element, findings)
            return

        if node.kind == "array":
            findings.append(self._shape(node, element, "object" if element.children else "scalar"))
            return
        self._check_item(node, element, findings)

    def _check_item(self, node: DocumentNode, element: SchemaElement, findings: list[Finding]) -> None:
        if element.children or element.kind == ElementKind.OBJECT:
            self._check_children(node, element, findings)
            return

        if element.type is not None:
            reason = primitive_problem(element.type, node.value)
            if reason:
                findings.append(self._finding("INVALID_PRIMITIVE_FORMAT", node, {
                    "path": element.path,
                    "actual": node.value,
                    "expectedType": element.type.value,
                    "reason": reason,
                }))

        if element.enumeration and node.kind == "scalar" and node.value not in element.enumeration:
            findings.append(self._finding(
                "INVALID_ENUM_VALUE", node, {
                    "path": element.path,
                    "actual": node.value,
                    "allowed": list(element.enumeration),
                    "bindingStrength": element.binding_strength.value,
                },
                severity=_BINDING_SEVERITY[element.binding_strength],
            ))

    def _required(self, anchor: DocumentNode, element: SchemaElement) -> Finding:
        return self._finding("REQUIRED_FIELD_MISSING", anchor, {
            "path": element.path,
            "element": element.name,
            "min": element.min,
        })

    def _shape(self, node: DocumentNode, element: SchemaElement, expected: str) -> Finding:
        return self._finding("SHAPE_MISMATCH", node, {
            "path": element.path,
            "expectedType": expected,
            "actualType": json_type_name(node.value),
        })

    @staticmethod
    def _finding(code: str, node: DocumentNode, details: dict,
                 severity: Severity = Severity.ERROR) -> Finding:
        return Finding(
            authority=Authority.STRUCTURE,
            code=code,
            pointer=node.pointer,
            severity=severity,
            details=details,
        )

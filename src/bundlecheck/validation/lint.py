"""Best-effort lint heuristics.

Lint checks look for portability and shape problems that the other
authorities either do not cover or report less directly. They run only in
debug mode and never produce errors.
"""

import logging

from ..document.node import DocumentNode
from ..document.resources import BUNDLE, is_bundle
from ..models.finding import Authority, Finding
from ..models.lint import LINT_CATALOG
from ..schemas.provider import SchemaProvider

logger = logging.getLogger(__name__)


class LintValidator:
    """Runs the lint catalog against a document."""

    def __init__(self, schema: SchemaProvider | None = None):
        self.schema = schema

    def validate(self, root: DocumentNode) -> list[Finding]:
        findings: list[Finding] = []

        if "resourceType" not in root.value:
            findings.append(self._finding("LINT_MISSING_RESOURCE_TYPE", root))
        elif not isinstance(root.value["resourceType"], str):
            findings.append(self._finding("LINT_RESOURCE_TYPE_NOT_STRING", root.child("resourceType")))

        resources: list[DocumentNode] = []
        if is_bundle(root):
            resources.extend(self._check_entries(root, findings))
        elif "resourceType" in root.value:
            resources.append(root)

        for resource in resources:
            self._check_resource(resource, findings)
            self._check_boolean_strings(resource, findings)

        logger.debug(f"Lint produced {len(findings)} finding(s)")
        return findings

    def _check_entries(self, root: DocumentNode, findings: list[Finding]) -> list[DocumentNode]:
        entries = root.child("entry")
        if entries is None:
            return []
        if entries.kind != "array":
            findings.append(self._finding("LINT_ENTRY_NOT_ARRAY", entries))
            return []

        resources = []
        for _, entry in entries.children():
            if entry.kind != "object":
                findings.append(self._finding("LINT_ENTRY_NOT_OBJECT", entry))
                continue
            resource = entry.child("resource")
            if resource is None:
                findings.append(self._finding("LINT_ENTRY_MISSING_RESOURCE", entry))
                continue
            if resource.kind != "object":
                findings.append(self._finding("LINT_RESOURCE_NOT_OBJECT", resource))
                continue
            if "resourceType" not in resource.value:
                findings.append(self._finding("LINT_RESOURCE_MISSING_TYPE", resource))
                continue
            if not isinstance(resource.value["resourceType"], str):
                findings.append(self._finding("LINT_RESOURCE_TYPE_NOT_STRING", resource.child("resourceType")))
                continue
            resources.append(resource)
        return resources

    def _check_resource(self, resource: DocumentNode, findings: list[Finding]) -> None:
        resource_type = resource.get("resourceType")
        if self.schema is None or not isinstance(resource_type, str) or resource_type == BUNDLE:
            return
        element = self.schema.resolve(resource_type)
        if element is None or not element.children:
            return
        known = {child.name for child in element.children} | {"resourceType"}
        for key, child in resource.children():
            if key not in known and not key.startswith("_"):
                findings.append(self._finding("LINT_UNKNOWN_ELEMENT", child, {"element": key}))

    def _check_boolean_strings(self, node: DocumentNode, findings: list[Finding]) -> None:
        for _, child in node.children():
            if child.kind in ("object", "array"):
                self._check_boolean_strings(child, findings)
            elif isinstance(child.value, str) and child.value in ("true", "false"):
                findings.append(self._finding("LINT_BOOLEAN_AS_STRING", child, {"actual": child.value}))

    @staticmethod
    def _finding(code: str, node: DocumentNode, details: dict | None = None) -> Finding:
        rule = LINT_CATALOG[code]
        return Finding(
            authority=Authority.LINT,
            code=code,
            pointer=node.pointer,
            severity=rule.severity,
            details={"title": rule.title, **(details or {})},
        )

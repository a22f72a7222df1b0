"""Reference integrity inside a Bundle.

Every ``reference`` string in an entry's resource must resolve to another
entry, either by the entry's ``fullUrl`` or by ``ResourceType/id``.
References to contained resources (``#id``) are not checked here.
"""

import logging
import re

from ..config import ReferencePolicy
from ..document.node import DocumentNode
from ..document.resources import ResourceRef, is_bundle, iter_resources
from ..models.finding import Authority, Finding, Severity

logger = logging.getLogger(__name__)

_RELATIVE_RE = re.compile(
    r"^(?P<type>[A-Z][A-Za-z]+)/(?P<id>[A-Za-z0-9\-.]{1,64})(?:/_history/[A-Za-z0-9\-.]{1,64})?$"
)
_UUID_RE = re.compile(r"^urn:uuid:[0-9a-fA-F]{8}(-[0-9a-fA-F]{4}){3}-[0-9a-fA-F]{12}$")
_ABSOLUTE_RE = re.compile(r"^(https?://\S+|urn:oid:[0-2](\.(0|[1-9][0-9]*))+)$")


def reference_problem(reference: str) -> str | None:
    """Why a reference string is malformed, or None when its form is valid."""
    if reference.startswith("#") or _RELATIVE_RE.match(reference) or _ABSOLUTE_RE.match(reference):
        return None
    if reference.startswith("urn:uuid:"):
        return None if _UUID_RE.match(reference) else "urn:uuid references must carry a UUID"
    return "Must be ResourceType/id, an absolute URL or a urn:uuid"


def _lookup_key(reference: str) -> str:
    match = _RELATIVE_RE.match(reference)
    if match:
        return f"{match.group('type')}/{match.group('id')}"
    return reference


class ReferenceValidator:
    """Checks that references between bundle entries resolve."""

    def __init__(self, policy: ReferencePolicy = ReferencePolicy.IN_BUNDLE):
        self.policy = ReferencePolicy(policy)

    def validate_document(self, root: DocumentNode) -> list[Finding]:
        if self.policy == ReferencePolicy.OFF or not is_bundle(root):
            return []

        resources = iter_resources(root)
        targets = self._targets(root, resources)
        logger.debug(f"Resolving references against {len(targets)} bundle target(s)")

        findings: list[Finding] = []
        for ref in resources:
            seen: set[str] = set()
            for owner, node in self._reference_nodes(ref.node):
                if node.value in seen:
                    continue
                seen.add(node.value)
                finding = self._check(ref, owner, node, targets)
                if finding is not None:
                    findings.append(finding)
        return findings

    @staticmethod
    def _targets(root: DocumentNode, resources: list[ResourceRef]) -> dict[str, str]:
        """Map each fullUrl and ResourceType/id to the entry's resource type."""
        targets: dict[str, str] = {}
        entries = root.child("entry")
        for ref in resources:
            full_url = entries.child(ref.entry_index).get("fullUrl")
            if isinstance(full_url, str) and full_url:
                targets[full_url] = ref.resource_type
            resource_id = ref.node.get("id")
            if isinstance(resource_id, str) and resource_id:
                targets[f"{ref.resource_type}/{resource_id}"] = ref.resource_type
        return targets

    def _reference_nodes(self, node: DocumentNode):
        for key, child in node.children():
            if key == "reference" and isinstance(child.value, str) and child.value:
                yield node, child
            elif child.kind in ("object", "array"):
                yield from self._reference_nodes(child)

    def _check(self, ref: ResourceRef, owner: DocumentNode, node: DocumentNode,
               targets: dict[str, str]) -> Finding | None:
        reference = node.value
        if reference.startswith("#"):
            return None
        path = ".".join([ref.resource_type, *(step for step in node.steps[len(ref.node.steps):]
                                               if isinstance(step, str))])
        details = {"path": path, "reference": reference}

        target_type = targets.get(_lookup_key(reference))
        if target_type is not None:
            declared = owner.get("type")
            if isinstance(declared, str) and declared and declared != target_type:
                return self._finding("REFERENCE_TYPE_MISMATCH", node, Severity.ERROR,
                                     {**details, "expectedType": declared, "actualType": target_type})
            return None

        problem = reference_problem(reference)
        if problem:
            return self._finding("REFERENCE_INVALID", node, Severity.ERROR, {**details, "reason": problem})

        severity = Severity.WARNING if self.policy == ReferencePolicy.ALLOW_EXTERNAL else Severity.ERROR
        return self._finding("REFERENCE_NOT_FOUND", node, severity, details)

    @staticmethod
    def _finding(code: str, node: DocumentNode, severity: Severity, details: dict) -> Finding:
        return Finding(
            authority=Authority.STRUCTURE,
            code=code,
            pointer=node.pointer,
            severity=severity,
            details=details,
        )

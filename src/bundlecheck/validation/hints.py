"""Spec hint advisories.

Hints point out elements that FHIR R4 expects on common
resource types but that the loaded schema may not enforce. Missing elements
are reported against the nearest node that does exist.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from ..document.node import DocumentNode
from ..document.resources import iter_resources
from ..errors import ConfigurationError, PredicateSyntaxError
from ..models.finding import Authority, Finding, Severity
from ..rules.paths import resolve_field
from ..rules.predicates import parse_predicate
from ..schemas.validator import InputFileValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpecHint:
    """A field commonly expected on a resource type."""
    path: str
    reason: str
    severity: Severity = Severity.WARNING
    condition: str | None = None
    applies_to_each: bool = False


HintCatalog = dict[str, tuple[SpecHint, ...]]

DEFAULT_HINTS: HintCatalog = {
    "Patient": (
        SpecHint("name", "Patients are normally identifiable by at least one name."),
        SpecHint("gender", "Administrative gender is expected for patient matching.", Severity.INFO),
        SpecHint("birthDate", "Birth date is expected for patient matching.", Severity.INFO),
    ),
    "Observation": (
        SpecHint("status", "Observation.status is mandatory in FHIR R4.", Severity.ERROR),
        SpecHint("code", "Observation.code is mandatory in FHIR R4.", Severity.ERROR),
        SpecHint("subject", "Observations are expected to reference their subject."),
        SpecHint(
            "valueQuantity.unit", "A quantity value should state its unit.",
            condition="valueQuantity.exists()",
        ),
        SpecHint(
            "component.code", "Every observation component needs a code.",
            Severity.ERROR, applies_to_each=True,
        ),
    ),
    "Encounter": (
        SpecHint("status", "Encounter.status is mandatory in FHIR R4.", Severity.ERROR),
        SpecHint("class", "Encounter.class is mandatory in FHIR R4.", Severity.ERROR),
        SpecHint("subject", "Encounters are expected to reference their subject."),
    ),
    "Condition": (
        SpecHint("subject", "Condition.subject is mandatory in FHIR R4.", Severity.ERROR),
        SpecHint("code", "Conditions are expected to carry a code."),
        SpecHint(
            "clinicalStatus", "Clinical status is expected unless the condition is entered in error.",
            condition="verificationStatus.coding.code != 'entered-in-error'",
        ),
    ),
}


def load_hint_catalog(path: str | Path) -> HintCatalog:
    """Load a hint catalog from JSON (resource type -> list of hints).

    Raises:
        ConfigurationError: If the file is invalid or a condition does not parse.
    """
    data, violations = InputFileValidator().load_and_validate(Path(path), "hint_catalog")
    if violations:
        summary = "; ".join(str(v) for v in violations[:5])
        raise ConfigurationError(f"Invalid hint catalog {path}: {summary}")

    catalog: HintCatalog = {}
    for resource_type, items in data.items():
        hints = []
        for item in items:
            condition = item.get("condition")
            if condition:
                try:
                    parse_predicate(condition)
                except PredicateSyntaxError as e:
                    raise ConfigurationError(f"Hint {resource_type}.{item['path']}: {e}")
            try:
                severity = Severity.parse(item.get("severity", "warning"))
            except ValueError as e:
                raise ConfigurationError(f"Hint {resource_type}.{item['path']}: {e}")
            hints.append(SpecHint(
                path=item["path"],
                reason=item["reason"],
                severity=severity,
                condition=condition,
                applies_to_each=item.get("appliesToEach", False),
            ))
        catalog[resource_type] = tuple(hints)
    logger.info(f"Loaded spec hints for {len(catalog)} resource type(s) from {path}")
    return catalog


def hinted_paths(catalog: HintCatalog) -> set[tuple[str, str]]:
    """(resource type, field path) pairs covered by a catalog."""
    return {(resource_type, hint.path) for resource_type, hints in catalog.items() for hint in hints}


class SpecHintValidator:
    """Emits a hint for every expected element that is absent."""

    def __init__(self, catalog: HintCatalog | None = None):
        self.catalog = DEFAULT_HINTS if catalog is None else catalog

    def validate(self, root: DocumentNode) -> list[Finding]:
        findings: list[Finding] = []
        for ref in iter_resources(root):
            for hint in self.catalog.get(ref.resource_type, ()):
                if hint.condition and not parse_predicate(hint.condition).evaluate(ref.node.value):
                    continue
                if hint.applies_to_each and "." in hint.path:
                    self._check_each(ref.resource_type, ref.node, hint, findings)
                else:
                    self._check(ref.resource_type, ref.node, hint.path, hint, findings)
        logger.debug(f"Spec hints produced {len(findings)} finding(s)")
        return findings

    def _check_each(self, resource_type: str, resource: DocumentNode, hint: SpecHint,
                    findings: list[Finding]) -> None:
        parent_path, child_path = hint.path.split(".", 1)
        for parent in resolve_field(resource, parent_path).nodes:
            self._check(resource_type, parent, child_path, hint, findings)

    def _check(self, resource_type: str, node: DocumentNode, path: str, hint: SpecHint,
               findings: list[Finding]) -> None:
        resolution = resolve_field(node, path)
        if resolution.found and not all(n.is_empty() for n in resolution.nodes):
            return
        findings.append(Finding(
            authority=Authority.HINT,
            code="HINT_MISSING_ELEMENT",
            pointer=resolution.anchor.pointer,
            severity=hint.severity,
            details={"resource": resource_type, "path": hint.path, "reason": hint.reason},
        ))

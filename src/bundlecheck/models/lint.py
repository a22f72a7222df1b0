"""Lint check catalog."""

from dataclasses import dataclass

from .finding import Severity


@dataclass(frozen=True)
class LintRule:
    """Catalog entry for one lint check."""
    id: str
    title: str
    description: str
    severity: Severity


LINT_CATALOG: dict[str, LintRule] = {
    rule.id: rule
    for rule in (
        LintRule(
            "LINT_MISSING_RESOURCE_TYPE", "Missing resourceType",
            "The document root has no resourceType, so its resources cannot be identified.",
            Severity.WARNING,
        ),
        LintRule(
            "LINT_RESOURCE_TYPE_NOT_STRING", "resourceType is not a string",
            "A resourceType value is not a string and will not match any resource definition.",
            Severity.WARNING,
        ),
        LintRule(
            "LINT_ENTRY_NOT_ARRAY", "Bundle.entry is not an array",
            "Bundle.entry should be an array of entries.",
            Severity.WARNING,
        ),
        LintRule(
            "LINT_ENTRY_NOT_OBJECT", "Bundle entry is not an object",
            "Every Bundle entry should be an object.",
            Severity.WARNING,
        ),
        LintRule(
            "LINT_ENTRY_MISSING_RESOURCE", "Bundle entry without resource",
            "This Bundle entry has no resource, so nothing in it is validated.",
            Severity.WARNING,
        ),
        LintRule(
            "LINT_RESOURCE_NOT_OBJECT", "Entry resource is not an object",
            "An entry resource should be a JSON object.",
            Severity.WARNING,
        ),
        LintRule(
            "LINT_RESOURCE_MISSING_TYPE", "Entry resource without resourceType",
            "This entry resource has no resourceType, so rules and schema checks skip it.",
            Severity.WARNING,
        ),
        LintRule(
            "LINT_BOOLEAN_AS_STRING", "Boolean written as string",
            "The text 'true' or 'false' is used where a JSON boolean is usually expected.",
            Severity.INFO,
        ),
        LintRule(
            "LINT_UNKNOWN_ELEMENT", "Unknown element",
            "This element is not declared for the resource and may be ignored by receivers.",
            Severity.INFO,
        ),
    )
}

"""Explanation templates keyed by (authority, code).

Each template declares the detail keys its findings supply. Templates may
only use ``{token}``s from that set; :func:`validate_templates` checks this
when the module is imported. The same key sets serve as the details
contract for emitted findings.
"""

import re
from dataclasses import dataclass
from typing import Any

from ..errors import TemplateError
from ..models.finding import Authority
from ..models.lint import LINT_CATALOG

TOKEN_RE = re.compile(r"\{([A-Za-z][A-Za-z0-9_]*)\}")

ANY_CODE = "*"


@dataclass(frozen=True)
class ExplanationTemplate:
    what: str
    how: str | None = None
    supplies: frozenset[str] = frozenset()

    @property
    def tokens(self) -> set[str]:
        tokens = set(TOKEN_RE.findall(self.what))
        if self.how:
            tokens.update(TOKEN_RE.findall(self.how))
        return tokens


def _keys(*names: str) -> frozenset[str]:
    return frozenset(names)


_RULE_KEYS = ("ruleId", "ruleType", "resource", "path")
_INTERNAL_KEYS = _keys("stage", "error", "exceptionType")

_INTERNAL = ExplanationTemplate(
    what="The {stage} stage failed unexpectedly: {error}",
    how="Results from this stage are incomplete. Check the logs for the {exceptionType} traceback.",
    supplies=_INTERNAL_KEYS,
)

STRUCTURE_TEMPLATES = {
    "EMPTY_DOCUMENT": ExplanationTemplate(
        what="The document is empty.",
        how="Provide a JSON object describing a Bundle or a single resource.",
        supplies=_keys("reason"),
    ),
    "INVALID_JSON": ExplanationTemplate(
        what="The document is not valid JSON: {reason} (line {lineNumber}, column {column}).",
        how="Fix the JSON syntax at the reported position and validate again.",
        supplies=_keys("reason", "lineNumber", "column"),
    ),
    "ROOT_NOT_OBJECT": ExplanationTemplate(
        what="The document root is a {actualType}, but it must be a JSON object.",
        how="Wrap the content in a Bundle or resource object.",
        supplies=_keys("actualType"),
    ),
    "INVALID_ENUM_VALUE": ExplanationTemplate(
        what="The value `{actual}` is not an allowed value for `{path}`.",
        how="Use one of: {allowed}.",
        supplies=_keys("path", "actual", "allowed", "bindingStrength"),
    ),
    "INVALID_PRIMITIVE_FORMAT": ExplanationTemplate(
        what="The value `{actual}` at `{path}` is not a valid {expectedType}.",
        how="{reason}.",
        supplies=_keys("path", "actual", "expectedType", "reason"),
    ),
    "SHAPE_MISMATCH": ExplanationTemplate(
        what="`{path}` must be {expectedType}, but the document has {actualType}.",
        how="Change `{path}` to {expectedType}.",
        supplies=_keys("path", "expectedType", "actualType"),
    ),
    "CARDINALITY_VIOLATION": ExplanationTemplate(
        what="`{path}` has {actual} item(s) but allows between {min} and {max}.",
        how="Add or remove items so that `{path}` has between {min} and {max} entries.",
        supplies=_keys("path", "min", "max", "actual"),
    ),
    "REQUIRED_FIELD_MISSING": ExplanationTemplate(
        what="The required element `{path}` is missing.",
        how="Add `{element}` with a value.",
        supplies=_keys("path", "element", "min"),
    ),
    "REFERENCE_NOT_FOUND": ExplanationTemplate(
        what="`{path}` points to `{reference}`, which is not an entry of this bundle.",
        how="Add the referenced resource to the bundle or correct the reference.",
        supplies=_keys("path", "reference"),
    ),
    "REFERENCE_INVALID": ExplanationTemplate(
        what="`{path}` holds `{reference}`, which is not a valid reference: {reason}.",
        how="Use ResourceType/id, an absolute URL, a urn:uuid or #id for a contained resource.",
        supplies=_keys("path", "reference", "reason"),
    ),
    "REFERENCE_TYPE_MISMATCH": ExplanationTemplate(
        what="`{path}` declares type {expectedType}, but `{reference}` is a {actualType}.",
        how="Point the reference at a {expectedType} or correct its declared type.",
        supplies=_keys("path", "reference", "expectedType", "actualType"),
    ),
    "INTERNAL_ERROR": _INTERNAL,
}

RULE_TEMPLATES = {
    "REQUIRED_FIELD_MISSING": ExplanationTemplate(
        what="This rule requires the field `{path}` to be present on {resource}.",
        how="The field `{path}` is missing or empty in this resource. Add a value to satisfy the requirement.",
        supplies=_keys(*_RULE_KEYS),
    ),
    "FIXED_VALUE_MISMATCH": ExplanationTemplate(
        what="This rule requires `{path}` on {resource} to equal `{expectedValue}`.",
        how="Change `{path}` to `{expectedValue}`.",
        supplies=_keys(*_RULE_KEYS, "expectedValue", "actual"),
    ),
    "VALUE_NOT_ALLOWED": ExplanationTemplate(
        what="This rule restricts `{path}` on {resource} to a fixed list of values.",
        how="Use one of: {allowedValues}.",
        supplies=_keys(*_RULE_KEYS, "allowedValues", "actual"),
    ),
    "PATTERN_MISMATCH": ExplanationTemplate(
        what="This rule requires `{path}` on {resource} to match the pattern `{regex}`.",
        how="Change the value so that it matches `{regex}`.",
        supplies=_keys(*_RULE_KEYS, "regex", "actual"),
    ),
    "ARRAY_LENGTH_OUT_OF_RANGE": ExplanationTemplate(
        what="This rule requires `{path}` on {resource} to have between {min} and {max} item(s).",
        how="Add or remove items in `{path}` to stay between {min} and {max}.",
        supplies=_keys(*_RULE_KEYS, "min", "max", "actual"),
    ),
    "CODESYSTEM_MISMATCH": ExplanationTemplate(
        what="This rule requires codings in `{path}` on {resource} to use `{systemUrl}`.",
        how="Set the coding system to `{systemUrl}`.",
        supplies=_keys(*_RULE_KEYS, "systemUrl", "actual"),
    ),
    "CUSTOM_EXPRESSION_FAILED": ExplanationTemplate(
        what="The condition `{expression}` is not met at `{path}` on {resource}.",
        how="Update `{path}` so that the condition holds.",
        supplies=_keys(*_RULE_KEYS, "expression"),
    ),
    "EXPRESSION_EVALUATION_ERROR": ExplanationTemplate(
        what="The rule expression `{expression}` could not be evaluated: {reason}",
        how="Correct the expression in rule {ruleId}.",
        supplies=_keys(*_RULE_KEYS, "expression", "reason"),
    ),
    "INSTANCE_OUT_OF_RANGE": ExplanationTemplate(
        what="This rule targets {resource} instance {index}, but the document has {available}.",
        how="Adjust the instance scope of rule {ruleId} or add the missing resource.",
        supplies=_keys(*_RULE_KEYS, "index", "available"),
    ),
    "INTERNAL_ERROR": _INTERNAL,
}

HINT_TEMPLATES = {
    "HINT_MISSING_ELEMENT": ExplanationTemplate(
        what="`{path}` is commonly expected on {resource} but is missing.",
        how="{reason} Consider adding `{path}`.",
        supplies=_keys("resource", "path", "reason"),
    ),
    "INTERNAL_ERROR": _INTERNAL,
}

OBJECT_MODEL_TEMPLATES = {
    ANY_CODE: ExplanationTemplate(
        what="The object-model validator reported: {message}",
        how="Check this element against the resource definition.",
        supplies=_keys("message", "validator", "schemaPath"),
    ),
    "INTERNAL_ERROR": _INTERNAL,
}

_LINT_DETAIL_KEYS = {
    "LINT_BOOLEAN_AS_STRING": ("actual",),
    "LINT_UNKNOWN_ELEMENT": ("element",),
}

LINT_TEMPLATES = {
    code: ExplanationTemplate(
        what=rule.description,
        supplies=_keys("title", *_LINT_DETAIL_KEYS.get(code, ())),
    )
    for code, rule in LINT_CATALOG.items()
}
LINT_TEMPLATES["INTERNAL_ERROR"] = _INTERNAL

TEMPLATES: dict[Authority, dict[str, ExplanationTemplate]] = {
    Authority.STRUCTURE: STRUCTURE_TEMPLATES,
    Authority.RULE: RULE_TEMPLATES,
    Authority.HINT: HINT_TEMPLATES,
    Authority.OBJECT_MODEL: OBJECT_MODEL_TEMPLATES,
    Authority.LINT: LINT_TEMPLATES,
}

GENERIC_WHAT = {
    Authority.STRUCTURE: "A structural problem was detected in the document.",
    Authority.RULE: "This value violates a project rule.",
    Authority.OBJECT_MODEL: "The object-model validator reported a problem here.",
    Authority.LINT: "A best-effort quality check flagged this location.",
    Authority.HINT: "A FHIR base-resource hint applies to this location.",
}


def lookup(authority: Authority, code: str) -> ExplanationTemplate | None:
    """Template for a code, falling back to the authority's wildcard."""
    templates = TEMPLATES.get(authority, {})
    return templates.get(code) or templates.get(ANY_CODE)


def validate_templates(templates: dict[Authority, dict[str, ExplanationTemplate]] | None = None) -> None:
    """Check every template only uses tokens its details supply.

    Raises:
        TemplateError: Listing each offending template and token.
    """
    problems = []
    for authority, by_code in (templates or TEMPLATES).items():
        for code, template in by_code.items():
            unknown = template.tokens - template.supplies
            if unknown:
                problems.append(f"{authority.value}:{code} uses {', '.join(sorted(unknown))}")
    if problems:
        raise TemplateError("Explanation templates reference unsupported tokens: " + "; ".join(problems))


def format_token(value: Any) -> str:
    if value is None:
        return "*"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, set)):
        return ", ".join(format_token(item) for item in value)
    return str(value)


def render(text: str, details: dict[str, Any]) -> str:
    """Substitute ``{token}``s from details; tokens without a value are removed."""
    def replace(match: re.Match) -> str:
        key = match.group(1)
        if key not in details:
            return ""
        return format_token(details[key])

    return TOKEN_RE.sub(replace, text).strip()


validate_templates()

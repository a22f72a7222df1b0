"""Exception hierarchy for bundlecheck.

Validation problems are reported as findings. The exceptions below cover the
cases where no pointer-addressed finding can be produced: broken inputs,
broken rule definitions and broken collaborators.
"""

from typing import Any


class BundleCheckError(Exception):
    """Base class for all bundlecheck errors."""


class ConfigurationError(BundleCheckError):
    """A rule definition or rule file is invalid and was rejected at load time."""

    def __init__(self, message: str, rule_id: str | None = None):
        self.rule_id = rule_id
        if rule_id:
            message = f"Rule '{rule_id}': {message}"
        super().__init__(message)


class DocumentMalformedError(BundleCheckError):
    """The input document cannot be parsed into an addressable tree."""

    def __init__(self, message: str, findings: list[Any] | None = None):
        super().__init__(message)
        self.findings = findings or []


class SchemaLoadError(BundleCheckError):
    """Schema metadata could not be loaded or failed its meta-schema."""


class EvaluationError(BundleCheckError):
    """An expression could not be evaluated."""


class PredicateSyntaxError(BundleCheckError, ValueError):
    """A filter predicate does not conform to the predicate grammar."""


class PointerResolutionError(BundleCheckError, KeyError):
    """A pointer does not address any node of the document."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class TemplateError(BundleCheckError):
    """An explanation template uses tokens its details cannot supply."""

"""Data models shared across bundlecheck components."""

from .finding import Authority, Confidence, Explanation, Finding, Severity
from .lint import LINT_CATALOG, LintRule
from .schema import BindingStrength, ElementKind, PrimitiveType, SchemaElement

__all__ = [
    "Authority",
    "BindingStrength",
    "Confidence",
    "ElementKind",
    "Explanation",
    "Finding",
    "LINT_CATALOG",
    "LintRule",
    "PrimitiveType",
    "SchemaElement",
    "Severity",
]

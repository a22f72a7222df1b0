"""Explanation generation and rendering for findings."""

from .explainer import explain, explain_code, missing_detail_keys
from .formatter import FindingFormatter
from .templates import ExplanationTemplate, validate_templates

__all__ = [
    "ExplanationTemplate",
    "FindingFormatter",
    "explain",
    "explain_code",
    "missing_detail_keys",
    "validate_templates",
]

"""Explanation generation for findings."""

import logging
from typing import Any

from ..models.finding import Authority, Confidence, Explanation, Finding
from .templates import GENERIC_WHAT, lookup, render

logger = logging.getLogger(__name__)

_CONFIDENCE = {
    Authority.RULE: Confidence.HIGH,
    Authority.STRUCTURE: Confidence.MEDIUM,
    Authority.OBJECT_MODEL: Confidence.MEDIUM,
    Authority.LINT: Confidence.LOW,
    Authority.HINT: Confidence.MEDIUM,
}


def explain_code(authority: Authority, code: str, details: dict[str, Any] | None = None) -> Explanation:
    """Build the explanation for an (authority, code, details) triple.

    Unknown structural codes get a generic, low-confidence explanation.
    """
    details = details or {}
    template = lookup(authority, code)
    confidence = _CONFIDENCE[authority]

    if template is None:
        logger.debug(f"No explanation template for {authority.value}:{code}")
        if authority == Authority.STRUCTURE:
            confidence = Confidence.LOW
        return Explanation(what=GENERIC_WHAT[authority], confidence=confidence)

    how = render(template.how, details) if template.how else None
    return Explanation(
        what=render(template.what, details),
        how=how or None,
        confidence=confidence,
    )


def explain(finding: Finding) -> Explanation:
    """Explanation for a finding; depends only on authority, code and details."""
    return explain_code(finding.authority, finding.code, finding.details)


def missing_detail_keys(finding: Finding) -> set[str]:
    """Declared detail keys a finding does not carry."""
    template = lookup(finding.authority, finding.code)
    if template is None:
        return set()
    return set(template.supplies) - set(finding.details)

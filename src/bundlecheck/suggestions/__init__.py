"""Rule suggestions from repeated-sample pattern detection."""

from .detectors import (
    AllowedValuesDetector,
    CodeSystemDetector,
    FieldSample,
    FixedValueDetector,
    RequiredDetector,
    confidence_for,
)
from .engine import SuggestionEngine
from .models import Evidence, Suggestion

__all__ = [
    "AllowedValuesDetector",
    "CodeSystemDetector",
    "Evidence",
    "FieldSample",
    "FixedValueDetector",
    "RequiredDetector",
    "Suggestion",
    "SuggestionEngine",
    "confidence_for",
]

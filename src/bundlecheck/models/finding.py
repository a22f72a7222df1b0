"""Unified finding and explanation models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Authority(str, Enum):
    """Validation source a finding originates from."""
    STRUCTURE = "Structure"
    RULE = "Rule"
    OBJECT_MODEL = "ObjectModel"
    LINT = "Lint"
    HINT = "Hint"


class Severity(str, Enum):
    """Finding severity."""
    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"

    @classmethod
    def parse(cls, value: "str | Severity") -> "Severity":
        """Parse a severity case-insensitively ("error", "Warning", ...)."""
        if isinstance(value, cls):
            return value
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        raise ValueError(f"Unknown severity: {value}")


class Confidence(str, Enum):
    """Categorical trust level of an explanation or suggestion."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Explanation(BaseModel):
    """Human-readable account of a finding.

    ``how`` is dropped whenever confidence is low. This validator is the only
    place that rule is applied.
    """
    what: str
    how: str | None = None
    confidence: Confidence

    @model_validator(mode="after")
    def strip_how_for_low_confidence(self) -> "Explanation":
        if self.confidence == Confidence.LOW:
            self.how = None
        return self


class Finding(BaseModel):
    """One detected violation."""
    authority: Authority
    code: str
    pointer: str = ""
    severity: Severity = Severity.ERROR
    details: dict[str, Any] = Field(default_factory=dict)
    explanation: Explanation | None = None

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        location = self.pointer or "/"
        return f"[{self.severity.value.upper()}] {self.authority.value}:{self.code} at {location}"

    def with_explanation(self, explanation: Explanation) -> "Finding":
        """Return a copy carrying the given explanation."""
        return self.model_copy(update={"explanation": explanation})

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary with stable field names."""
        return {
            "authority": self.authority.value,
            "code": self.code,
            "pointer": self.pointer,
            "severity": self.severity.value,
            "details": self.details,
            "explanation": (
                self.explanation.model_dump(mode="json") if self.explanation else None
            ),
        }

"""Rule suggestion models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..models.finding import Authority, Confidence, Explanation, Severity
from ..rules.models import RuleDefinition


class Evidence(BaseModel):
    """What a suggestion is based on."""
    sample_count: int = Field(alias="sampleCount")
    examples: list[Any] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class Suggestion(BaseModel):
    """A candidate rule derived from repeated samples."""
    rule: RuleDefinition
    reasoning: str
    evidence: Evidence
    confidence: Confidence
    pointer: str = ""

    @property
    def code(self) -> str:
        """SUGGEST_FIXED_VALUE, SUGGEST_ALLOWED_VALUES, ..."""
        name = "".join(f"_{c}" if c.isupper() else c for c in self.rule.type).lstrip("_")
        return f"SUGGEST_{name.upper()}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary with stable field names."""
        explanation = Explanation(
            what=self.reasoning,
            how=f"Promote this suggestion to a {self.rule.type} rule if the pattern is intended.",
            confidence=self.confidence,
        )
        return {
            "authority": Authority.HINT.value,
            "code": self.code,
            "pointer": self.pointer,
            "severity": Severity.INFO.value,
            "details": {
                "resource": self.rule.resource_type,
                "path": self.rule.field_path,
                "ruleType": self.rule.type,
            },
            "explanation": explanation.model_dump(mode="json"),
            "rule": self.rule.model_dump(mode="json", by_alias=True),
            "reasoning": self.reasoning,
            "evidence": self.evidence.model_dump(mode="json", by_alias=True),
            "confidence": self.confidence.value,
        }

"""Pattern detectors for rule suggestions.

Each detector looks at one sampled field and proposes at most one rule.
None of them proposes anything from fewer than two samples.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from ..models.finding import Confidence
from ..rules.models import AllInstances, AllowedValuesRule, CodeSystemRule, FixedValueRule, RequiredRule
from ..rules.paths import value_text
from .models import Evidence, Suggestion

logger = logging.getLogger(__name__)

MIN_SAMPLES = 2
HIGH_CONFIDENCE_SAMPLES = 5
MAX_ALLOWED_VALUES = 5


def confidence_for(sample_count: int) -> Confidence | None:
    """Confidence from sample count; None below the evidence floor."""
    if sample_count < MIN_SAMPLES:
        return None
    return Confidence.HIGH if sample_count >= HIGH_CONFIDENCE_SAMPLES else Confidence.MEDIUM


@dataclass
class FieldSample:
    """Observed values of one field across the instances of a resource type."""
    resource_type: str
    path: str
    values: list[Any] = field(default_factory=list)
    instance_count: int = 0
    present_count: int = 0
    pointer: str = ""

    def distinct(self) -> list[Any]:
        seen: dict[str, Any] = {}
        for value in self.values:
            seen.setdefault(value_text(value), value)
        return list(seen.values())


class Detector(ABC):
    """Base class for pattern detectors."""

    @property
    @abstractmethod
    def rule_type(self) -> str:
        """Rule type this detector proposes."""
        pass

    def __init__(self, max_examples: int = 5):
        self.max_examples = max_examples

    @abstractmethod
    def detect(self, sample: FieldSample) -> Suggestion | None:
        pass

    def _suggest(self, sample: FieldSample, rule, reasoning: str, count: int,
                 examples: list[Any]) -> Suggestion | None:
        confidence = confidence_for(count)
        if confidence is None:
            return None
        return Suggestion(
            rule=rule,
            reasoning=reasoning,
            evidence=Evidence(sample_count=count, examples=examples[:self.max_examples]),
            confidence=confidence,
            pointer=sample.pointer,
        )

    def _rule_id(self, sample: FieldSample) -> str:
        return f"suggested:{self.rule_type}:{sample.resource_type}.{sample.path}"

    def _rule(self, rule_class, sample: FieldSample, metadata: dict[str, Any] | None = None):
        """Candidate rule for a sample, or None when the rule model rejects it."""
        fields = {
            "id": self._rule_id(sample),
            "resource_type": sample.resource_type,
            "field_path": sample.path,
            "instance_scope": AllInstances(),
        }
        if metadata is not None:
            fields["metadata"] = metadata
        try:
            return rule_class(**fields)
        except ValidationError as e:
            logger.debug(f"Skipping {self.rule_type} suggestion for {sample.resource_type}.{sample.path}: {e}")
            return None


class FixedValueDetector(Detector):
    """Every sampled value is identical."""

    @property
    def rule_type(self) -> str:
        return "FixedValue"

    def detect(self, sample: FieldSample) -> Suggestion | None:
        distinct = sample.distinct()
        if len(sample.values) < MIN_SAMPLES or len(distinct) != 1:
            return None
        value = distinct[0]
        rule = self._rule(FixedValueRule, sample, {"expected_value": value})
        if rule is None:
            return None
        reasoning = (
            f"All {len(sample.values)} sampled values of {sample.resource_type}.{sample.path} "
            f"are '{value_text(value)}'."
        )
        return self._suggest(sample, rule, reasoning, len(sample.values), [value])


class AllowedValuesDetector(Detector):
    """A small closed set of distinct values."""

    @property
    def rule_type(self) -> str:
        return "AllowedValues"

    def detect(self, sample: FieldSample) -> Suggestion | None:
        distinct = sample.distinct()
        if len(sample.values) < MIN_SAMPLES or not (2 <= len(distinct) <= MAX_ALLOWED_VALUES):
            return None
        allowed = sorted(distinct, key=value_text)
        rule = self._rule(AllowedValuesRule, sample, {"allowed_values": allowed})
        if rule is None:
            return None
        reasoning = (
            f"{sample.resource_type}.{sample.path} takes only {len(distinct)} distinct values "
            f"across {len(sample.values)} samples."
        )
        return self._suggest(sample, rule, reasoning, len(sample.values), allowed)


class CodeSystemDetector(Detector):
    """Every sampled coding uses the same system URL."""

    @property
    def rule_type(self) -> str:
        return "CodeSystem"

    def detect(self, sample: FieldSample) -> Suggestion | None:
        systems = [v for v in sample.values if isinstance(v, str) and v]
        if len(systems) < MIN_SAMPLES or len(set(systems)) != 1:
            return None
        rule = self._rule(CodeSystemRule, sample, {"system_url": systems[0]})
        if rule is None:
            return None
        reasoning = (
            f"All {len(systems)} codings in {sample.resource_type}.{sample.path} "
            f"use the system {systems[0]}."
        )
        return self._suggest(sample, rule, reasoning, len(systems), [systems[0]])


class RequiredDetector(Detector):
    """The field is present and non-empty in every instance."""

    @property
    def rule_type(self) -> str:
        return "Required"

    def detect(self, sample: FieldSample) -> Suggestion | None:
        if sample.instance_count < MIN_SAMPLES or sample.present_count != sample.instance_count:
            return None
        rule = self._rule(RequiredRule, sample)
        if rule is None:
            return None
        reasoning = (
            f"{sample.resource_type}.{sample.path} is present in all "
            f"{sample.instance_count} sampled instances."
        )
        return self._suggest(sample, rule, reasoning, sample.instance_count, [])

"""Rule suggestion engine.

Samples every resource type in a document, runs the detectors on each
field, and drops suggestions for field paths that an existing rule, spec
hint or schema constraint already covers with overlapping intent.
"""

import logging
import re
from collections.abc import Iterable
from typing import Any

from ..document.node import DocumentNode, is_empty_value
from ..document.resources import ResourceRef, iter_resources
from ..rules.models import RuleDefinition, field_path_problem
from ..schemas.provider import SchemaProvider
from ..validation.hints import DEFAULT_HINTS, HintCatalog, hinted_paths
from .detectors import (
    AllowedValuesDetector,
    CodeSystemDetector,
    Detector,
    FieldSample,
    FixedValueDetector,
    RequiredDetector,
)
from .models import Suggestion

logger = logging.getLogger(__name__)

# Rule type already present -> suggestion types it makes redundant.
OVERLAPPING_INTENT = {
    "AllowedValues": {"AllowedValues", "FixedValue"},
    "FixedValue": {"FixedValue", "AllowedValues"},
    "CodeSystem": {"CodeSystem"},
    "Required": {"Required"},
    "Regex": set(),
    "ArrayLength": set(),
    "CustomExpression": set(),
}

INSTANCE_ONLY_FIELDS = {"id", "meta", "text", "resourceType", "identifier.value", "telecom.value", "address.line"}
INSTANCE_ONLY_LEAVES = {"reference", "display", "div"}

_ADDRESSABLE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")


def _suppressed(resource_type: str, path: str) -> bool:
    if not _ADDRESSABLE.match(path) or field_path_problem(resource_type, path):
        return True
    if path.split(".", 1)[0] in ("id", "meta", "text"):
        return True
    if path in INSTANCE_ONLY_FIELDS:
        return True
    leaf = path.rsplit(".", 1)[-1]
    if leaf in INSTANCE_ONLY_LEAVES:
        return True
    return path.endswith("coding.system") or path.endswith("coding.display")


def _flatten(value: Any, prefix: str, leaves: dict[str, list[Any]], codings: dict[str, list[Any]]) -> None:
    if isinstance(value, list):
        for item in value:
            _flatten(item, prefix, leaves, codings)
        return
    if isinstance(value, dict):
        if prefix.endswith("coding") and "system" in value:
            codings.setdefault(prefix, []).append(value["system"])
        for key, child in value.items():
            _flatten(child, f"{prefix}.{key}" if prefix else key, leaves, codings)
        return
    if value is None or is_empty_value(value):
        return
    if isinstance(value, str) and value.startswith("urn:uuid:"):
        return
    leaves.setdefault(prefix, []).append(value)


class SuggestionEngine:
    """Proposes rules from patterns repeated across resource instances."""

    def __init__(self, max_examples: int = 5):
        self.value_detectors: list[Detector] = [
            FixedValueDetector(max_examples),
            AllowedValuesDetector(max_examples),
        ]
        self.coding_detector = CodeSystemDetector(max_examples)
        self.required_detector = RequiredDetector(max_examples)

    def suggest(self, root: DocumentNode, rules: Iterable[RuleDefinition] = (),
                hints: HintCatalog | None = None,
                schema: SchemaProvider | None = None) -> list[Suggestion]:
        """Suggest rules for a document.

        Args:
            root: Document root node
            rules: Rules already applied; their paths are not re-suggested
            hints: Spec hint catalog in effect (default catalog when None)
            schema: Schema provider whose constraints also count as coverage

        Returns:
            Suggestions sorted by resource type, field path and rule type
        """
        by_type: dict[str, list[ResourceRef]] = {}
        for ref in iter_resources(root):
            by_type.setdefault(ref.resource_type, []).append(ref)

        covered = self._covered(rules, DEFAULT_HINTS if hints is None else hints, schema, by_type)

        suggestions = []
        for resource_type, instances in by_type.items():
            if len(instances) < 2:
                logger.debug(f"Skipping {resource_type}: {len(instances)} instance(s) is not enough evidence")
                continue
            for sample, detectors in self._samples(resource_type, instances):
                for detector in detectors:
                    if detector.rule_type in covered.get((resource_type, sample.path), set()):
                        continue
                    suggestion = detector.detect(sample)
                    if suggestion is not None:
                        suggestions.append(suggestion)

        suggestions.sort(key=lambda s: (s.rule.resource_type, s.rule.field_path, s.rule.type))
        logger.info(f"Generated {len(suggestions)} rule suggestion(s)")
        return suggestions

    def _samples(self, resource_type: str, instances: list[ResourceRef]):
        leaves: dict[str, FieldSample] = {}
        codings: dict[str, FieldSample] = {}
        top_level: dict[str, FieldSample] = {}
        pointer = instances[0].node.pointer

        for ref in instances:
            instance_leaves: dict[str, list[Any]] = {}
            instance_codings: dict[str, list[Any]] = {}
            for key, child in ref.node.children():
                _flatten(child.value, key, instance_leaves, instance_codings)
                if _suppressed(resource_type, key):
                    continue
                sample = top_level.setdefault(key, FieldSample(resource_type, key, pointer=pointer))
                if not child.is_empty():
                    sample.present_count += 1

            for path, values in instance_leaves.items():
                if _suppressed(resource_type, path):
                    continue
                sample = leaves.setdefault(path, FieldSample(resource_type, path, pointer=pointer))
                sample.values.extend(values)
            for path, systems in instance_codings.items():
                if not _ADDRESSABLE.match(path) or field_path_problem(resource_type, path):
                    continue
                sample = codings.setdefault(path, FieldSample(resource_type, path, pointer=pointer))
                sample.values.extend(systems)

        for sample in top_level.values():
            sample.instance_count = len(instances)
            yield sample, [self.required_detector]
        for sample in leaves.values():
            yield sample, self.value_detectors
        for sample in codings.values():
            yield sample, [self.coding_detector]

    @staticmethod
    def _covered(rules: Iterable[RuleDefinition], hints: HintCatalog, schema: SchemaProvider | None,
                 by_type: dict[str, list[ResourceRef]]) -> dict[tuple[str, str], set[str]]:
        covered: dict[tuple[str, str], set[str]] = {}

        for rule in rules:
            key = (rule.resource_type, rule.display_path)
            covered.setdefault(key, set()).update(OVERLAPPING_INTENT[rule.type])
            if rule.type == "CodeSystem" and not rule.display_path.endswith("coding"):
                # A rule on a CodeableConcept checks its codings.
                coding_key = (rule.resource_type, f"{rule.display_path}.coding")
                covered.setdefault(coding_key, set()).add("CodeSystem")

        for key in hinted_paths(hints):
            covered.setdefault(key, set()).add("Required")

        if schema is not None:
            for resource_type in by_type:
                element = schema.resolve(resource_type)
                if element is None:
                    continue
                stack = [(child, child.name) for child in element.children]
                while stack:
                    child, path = stack.pop()
                    if child.min >= 1:
                        covered.setdefault((resource_type, path), set()).add("Required")
                    if child.enumeration:
                        covered.setdefault((resource_type, path), set()).add("AllowedValues")
                    stack.extend((grandchild, f"{path}.{grandchild.name}") for grandchild in child.children)

        return covered

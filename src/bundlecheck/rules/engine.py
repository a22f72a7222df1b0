"""Rule evaluation against a document tree.

Rules are grouped by resource type, bound to resource instances through
their instance scope, and resolved to nodes through their field path.
Each rule type is handled by one branch of a single exhaustive match.
"""

import logging
import re
from collections.abc import Iterable
from typing import Any, NoReturn

from ..document.node import DocumentNode
from ..document.resources import ResourceRef, iter_resources
from ..errors import EvaluationError
from ..models.finding import Authority, Finding, Severity
from .expressions import ExpressionEvaluator, PredicateExpressionEvaluator
from .models import (
    AllInstances,
    AllowedValuesRule,
    ArrayLengthRule,
    CodeSystemRule,
    CustomExpressionRule,
    FilterInstance,
    FirstInstance,
    FixedValueRule,
    IndexInstance,
    RegexRule,
    RequiredRule,
    RuleDefinition,
)
from .paths import parse_field_path, resolve_field, value_text
from .predicates import parse_predicate

logger = logging.getLogger(__name__)


def _assert_never(value: Any) -> NoReturn:
    raise TypeError(f"Unhandled rule variant: {type(value).__name__}")


class RuleEngine:
    """Evaluates rule definitions and reports violations as findings."""

    def __init__(self, evaluator: ExpressionEvaluator | None = None):
        self.evaluator = evaluator or PredicateExpressionEvaluator()

    def evaluate(self, root: DocumentNode, rules: Iterable[RuleDefinition]) -> list[Finding]:
        """Evaluate all rules against a document.

        Args:
            root: Document root node
            rules: Loaded rule definitions

        Returns:
            Findings tagged Rule, in rule order then document order
        """
        resources = iter_resources(root)
        by_type: dict[str, list[ResourceRef]] = {}
        for ref in resources:
            by_type.setdefault(ref.resource_type, []).append(ref)

        findings: list[Finding] = []
        for rule in rules:
            instances = by_type.get(rule.resource_type, [])
            selected = self.select_instances(rule, instances, root, findings)
            logger.debug(f"Rule {rule.id}: {len(selected)} of {len(instances)} instance(s) selected")
            for ref in selected:
                findings.extend(self.check(rule, ref))
        return findings

    def select_instances(self, rule: RuleDefinition, instances: list[ResourceRef],
                         root: DocumentNode, findings: list[Finding]) -> list[ResourceRef]:
        """Apply the rule's instance scope; out-of-range indices add a finding."""
        scope = rule.instance_scope
        match scope:
            case FirstInstance():
                return instances[:1]
            case AllInstances():
                return list(instances)
            case IndexInstance(index=index):
                if index < len(instances):
                    return [instances[index]]
                anchor = root.child("entry") or root
                findings.append(Finding(
                    authority=Authority.RULE,
                    code="INSTANCE_OUT_OF_RANGE",
                    pointer=anchor.pointer,
                    severity=rule.severity,
                    details={
                        **rule.token_values(),
                        "index": index,
                        "available": len(instances),
                    },
                ))
                return []
            case FilterInstance(condition=condition):
                predicate = parse_predicate(condition)
                return [ref for ref in instances if predicate.evaluate(ref.node.value)]
            case _:
                _assert_never(scope)

    def check(self, rule: RuleDefinition, ref: ResourceRef) -> list[Finding]:
        """Evaluate one rule against one resource instance."""
        segments = parse_field_path(rule.field_path)

        match rule:
            case RequiredRule():
                return self._check_required(rule, ref, segments)
            case FixedValueRule():
                expected = value_text(rule.metadata.expected_value)
                return self._check_values(
                    rule, ref, segments, "FIXED_VALUE_MISMATCH",
                    lambda text: text == expected,
                    {"expectedValue": rule.metadata.expected_value},
                )
            case AllowedValuesRule():
                allowed = {value_text(v) for v in rule.metadata.allowed_values}
                return self._check_values(
                    rule, ref, segments, "VALUE_NOT_ALLOWED",
                    lambda text: text in allowed,
                    {"allowedValues": list(rule.metadata.allowed_values)},
                )
            case RegexRule():
                pattern = re.compile(rule.metadata.pattern)
                return self._check_values(
                    rule, ref, segments, "PATTERN_MISMATCH",
                    lambda text: pattern.search(text) is not None,
                    {"regex": rule.metadata.pattern},
                )
            case ArrayLengthRule():
                return self._check_array_length(rule, ref, segments)
            case CodeSystemRule():
                return self._check_code_system(rule, ref, segments)
            case CustomExpressionRule():
                return self._check_expression(rule, ref, segments)
            case _:
                _assert_never(rule)

    def _finding(self, rule: RuleDefinition, code: str, node: DocumentNode,
                 extra: dict[str, Any] | None = None, severity: Severity | None = None) -> Finding:
        details = rule.token_values()
        if extra:
            details.update(extra)
        if rule.message:
            details["message"] = rule.message
        return Finding(
            authority=Authority.RULE,
            code=code,
            pointer=node.pointer,
            severity=severity or rule.severity,
            details=details,
        )

    def _check_required(self, rule: RequiredRule, ref: ResourceRef, segments) -> list[Finding]:
        resolution = resolve_field(ref.node, segments)
        if resolution.found and not all(node.is_empty() for node in resolution.nodes):
            return []
        return [self._finding(rule, "REQUIRED_FIELD_MISSING", resolution.anchor)]

    def _check_values(self, rule: RuleDefinition, ref: ResourceRef, segments, code: str,
                      accept, extra: dict[str, Any]) -> list[Finding]:
        findings = []
        for node in resolve_field(ref.node, segments).nodes:
            if node.is_empty() or node.kind != "scalar":
                continue
            if not accept(value_text(node.value)):
                findings.append(self._finding(rule, code, node, {**extra, "actual": node.value}))
        return findings

    def _check_array_length(self, rule: ArrayLengthRule, ref: ResourceRef, segments) -> list[Finding]:
        bounds = rule.metadata
        resolution = resolve_field(ref.node, segments, expand_last=False)
        findings = []
        targets = resolution.nodes or [resolution.anchor]
        for node in targets:
            if not resolution.found:
                count = 0
            elif node.kind == "array":
                count = len(node.value)
            else:
                count = 0 if node.is_empty() else 1
            too_short = bounds.min is not None and count < bounds.min
            too_long = bounds.max is not None and count > bounds.max
            if too_short or too_long:
                findings.append(self._finding(rule, "ARRAY_LENGTH_OUT_OF_RANGE", node, {
                    "min": bounds.min if bounds.min is not None else 0,
                    "max": bounds.max if bounds.max is not None else "*",
                    "actual": count,
                }))
        return findings

    def _check_code_system(self, rule: CodeSystemRule, ref: ResourceRef, segments) -> list[Finding]:
        expected = rule.metadata.system_url
        findings = []
        for node in resolve_field(ref.node, segments).nodes:
            if node.kind != "object":
                continue
            if "coding" in node.value:
                codings = node.child("coding")
                candidates = [item for _, item in codings.children()] if codings.kind == "array" else [codings]
            else:
                candidates = [node]
            for coding in candidates:
                if coding.kind != "object":
                    continue
                system = coding.get("system")
                if system == expected:
                    continue
                anchor = coding.child("system") or coding
                findings.append(self._finding(rule, "CODESYSTEM_MISMATCH", anchor, {
                    "systemUrl": expected,
                    "actual": system,
                }))
        return findings

    def _check_expression(self, rule: CustomExpressionRule, ref: ResourceRef, segments) -> list[Finding]:
        expression = rule.metadata.expression
        findings = []
        for node in resolve_field(ref.node, segments).nodes:
            try:
                satisfied = self.evaluator.evaluate(expression, node)
            except EvaluationError as e:
                logger.warning(f"Rule {rule.id}: expression could not be evaluated: {e}")
                findings.append(self._finding(
                    rule, "EXPRESSION_EVALUATION_ERROR", node,
                    {"expression": expression, "reason": str(e)},
                    severity=Severity.ERROR,
                ))
                # A malformed expression fails the same way for every node.
                break
            if not satisfied:
                findings.append(self._finding(rule, "CUSTOM_EXPRESSION_FAILED", node, {"expression": expression}))
        return findings

"""Rule definitions, loading and evaluation."""

from .engine import RuleEngine
from .expressions import ExpressionEvaluator, PredicateExpressionEvaluator
from .loader import load_rule, load_rules, load_rules_file
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
    RuleSet,
)
from .predicates import matches, parse_predicate

__all__ = [
    "AllInstances",
    "AllowedValuesRule",
    "ArrayLengthRule",
    "CodeSystemRule",
    "CustomExpressionRule",
    "ExpressionEvaluator",
    "FilterInstance",
    "FirstInstance",
    "FixedValueRule",
    "IndexInstance",
    "PredicateExpressionEvaluator",
    "RegexRule",
    "RequiredRule",
    "RuleDefinition",
    "RuleEngine",
    "RuleSet",
    "load_rule",
    "load_rules",
    "load_rules_file",
    "matches",
    "parse_predicate",
]

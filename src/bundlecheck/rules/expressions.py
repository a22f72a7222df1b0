"""Expression evaluators for CustomExpression rules."""

from typing import Any, Protocol, runtime_checkable

from ..document.node import DocumentNode
from ..errors import EvaluationError, PredicateSyntaxError
from .predicates import parse_predicate


@runtime_checkable
class ExpressionEvaluator(Protocol):
    """Evaluates an expression against a document subtree.

    Implementations raise :class:`EvaluationError` for malformed
    expressions; the rule engine reports that as a finding.
    """

    def evaluate(self, expression: str, subtree: DocumentNode) -> bool:
        ...


class PredicateExpressionEvaluator:
    """Default evaluator: expressions use the filter predicate grammar."""

    def __init__(self):
        self._cache: dict[str, Any] = {}

    def evaluate(self, expression: str, subtree: DocumentNode) -> bool:
        predicate = self._cache.get(expression)
        if predicate is None:
            try:
                predicate = parse_predicate(expression)
            except PredicateSyntaxError as e:
                raise EvaluationError(str(e)) from e
            self._cache[expression] = predicate
        return bool(predicate.evaluate(subtree.value))

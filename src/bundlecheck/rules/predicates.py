"""Filter predicate grammar.

Instance-scope filters, conditional spec hints and the default expression
evaluator share one closed grammar::

    predicate := conj ("or" conj)*
    conj      := clause ("and" clause)*
    clause    := path ("=" | "!=" | "contains") literal
               | path ".exists()" | path ".empty()"
    literal   := 'text' | "text" | number | true | false
    path      := name ("." name)*

``and`` binds tighter than ``or``. Parentheses and other functions are
rejected with :class:`PredicateSyntaxError`.
"""

import re
from dataclasses import dataclass
from typing import Any

from ..document.node import is_empty_value
from ..errors import PredicateSyntaxError
from .paths import collect_values, value_text

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<func>\.(?:exists|empty)\(\))
  | (?P<op>!=|=)
  | (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
  | (?P<number>-?\d+(?:\.\d+)?(?![A-Za-z_]))
  | (?P<path>[A-Za-z_][A-Za-z0-9_]*(?:\.(?!(?:exists|empty)\(\))[A-Za-z_][A-Za-z0-9_]*)*)
    """,
    re.VERBOSE,
)

_KEYWORDS = {"and", "or", "contains", "true", "false"}


@dataclass(frozen=True)
class Comparison:
    path: str
    operator: str
    literal: str

    def evaluate(self, subject: Any) -> bool:
        texts = [value_text(v) for v in collect_values(subject, self.path)]
        if self.operator == "=":
            return self.literal in texts
        if self.operator == "!=":
            return self.literal not in texts
        return any(self.literal in text for text in texts)


@dataclass(frozen=True)
class Existence:
    path: str
    negated: bool = False

    def evaluate(self, subject: Any) -> bool:
        present = any(not is_empty_value(v) for v in collect_values(subject, self.path))
        return not present if self.negated else present


@dataclass(frozen=True)
class Conjunction:
    clauses: tuple

    def evaluate(self, subject: Any) -> bool:
        return all(clause.evaluate(subject) for clause in self.clauses)


@dataclass(frozen=True)
class Disjunction:
    terms: tuple

    def evaluate(self, subject: Any) -> bool:
        return any(term.evaluate(subject) for term in self.terms)


Predicate = Comparison | Existence | Conjunction | Disjunction


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens = []
    position = 0
    while position < len(text):
        match = _TOKEN_RE.match(text, position)
        if not match:
            raise PredicateSyntaxError(f"Unexpected character {text[position]!r} at position {position} in {text!r}")
        position = match.end()
        kind = match.lastgroup
        if kind == "ws":
            continue
        value = match.group()
        if kind == "path" and value in _KEYWORDS:
            kind = "keyword"
        tokens.append((kind, value))
    return tokens


def _unquote(token: str) -> str:
    body = token[1:-1]
    return re.sub(r"\\(.)", r"\1", body)


class _Parser:
    def __init__(self, text: str):
        self.text = text
        self.tokens = _tokenize(text)
        self.position = 0

    def peek(self) -> tuple[str, str] | None:
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return None

    def take(self) -> tuple[str, str]:
        token = self.peek()
        if token is None:
            raise PredicateSyntaxError(f"Unexpected end of predicate: {self.text!r}")
        self.position += 1
        return token

    def parse(self) -> Predicate:
        if not self.tokens:
            raise PredicateSyntaxError("Predicate is empty")
        predicate = self.parse_disjunction()
        if self.peek() is not None:
            raise PredicateSyntaxError(f"Unexpected {self.peek()[1]!r} in {self.text!r}")
        return predicate

    def parse_disjunction(self) -> Predicate:
        terms = [self.parse_conjunction()]
        while self.peek() == ("keyword", "or"):
            self.take()
            terms.append(self.parse_conjunction())
        return terms[0] if len(terms) == 1 else Disjunction(tuple(terms))

    def parse_conjunction(self) -> Predicate:
        clauses = [self.parse_clause()]
        while self.peek() == ("keyword", "and"):
            self.take()
            clauses.append(self.parse_clause())
        return clauses[0] if len(clauses) == 1 else Conjunction(tuple(clauses))

    def parse_clause(self) -> Predicate:
        kind, path = self.take()
        if kind != "path":
            raise PredicateSyntaxError(f"Expected a field path, got {path!r} in {self.text!r}")

        kind, value = self.take()
        if kind == "func":
            return Existence(path, negated=value == ".empty()")
        if kind == "op":
            return Comparison(path, value, self.parse_literal())
        if (kind, value) == ("keyword", "contains"):
            return Comparison(path, "contains", self.parse_literal())
        raise PredicateSyntaxError(f"Expected an operator after {path!r}, got {value!r}")

    def parse_literal(self) -> str:
        kind, value = self.take()
        if kind == "string":
            return _unquote(value)
        if kind == "number":
            return value
        if kind == "keyword" and value in ("true", "false"):
            return value
        raise PredicateSyntaxError(f"Expected a literal, got {value!r} in {self.text!r}")


def parse_predicate(text: str) -> Predicate:
    """Parse a predicate string.

    Raises:
        PredicateSyntaxError: If the text does not conform to the grammar.
    """
    return _Parser(text.strip()).parse()


def matches(predicate: str | Predicate, subject: Any) -> bool:
    """Evaluate a predicate (text or parsed) against a raw JSON value."""
    if isinstance(predicate, str):
        predicate = parse_predicate(predicate)
    return predicate.evaluate(subject)

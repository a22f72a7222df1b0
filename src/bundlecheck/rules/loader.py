"""Rule loading and configuration checks.

Every problem found here is a :class:`ConfigurationError`, raised before any
validation run starts. Nothing in this module produces findings.
"""

import logging
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from ..errors import ConfigurationError
from ..schemas.validator import InputFileValidator
from .models import RULE_CLASSES, RULE_TYPES, RuleDefinition, RuleSet

logger = logging.getLogger(__name__)

LEGACY_PATH_KEY = "path"

_rule_adapter = TypeAdapter(RuleDefinition)


def _format_validation_error(error: ValidationError) -> str:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        messages.append(f"{location}: {item['msg']}" if location else item["msg"])
    return "; ".join(messages)


def load_rule(data: dict[str, Any] | Any) -> RuleDefinition:
    """Build one rule from its dictionary form.

    Raises:
        ConfigurationError: If the definition uses legacy absolute-path
            addressing, has an unknown type, or fails field validation.
    """
    if not isinstance(data, dict):
        if isinstance(data, RULE_CLASSES):
            return data
        raise ConfigurationError(f"Rule definition must be an object, got {type(data).__name__}")

    rule_id = data.get("id")
    if LEGACY_PATH_KEY in data:
        if "fieldPath" in data or "instanceScope" in data:
            raise ConfigurationError(
                "Rule mixes legacy absolute 'path' with fieldPath/instanceScope addressing",
                rule_id,
            )
        raise ConfigurationError(
            "Legacy absolute 'path' addressing is not supported; use fieldPath with instanceScope",
            rule_id,
        )

    rule_type = data.get("type")
    if rule_type not in RULE_TYPES:
        raise ConfigurationError(
            f"Unsupported rule type {rule_type!r}; expected one of {', '.join(RULE_TYPES)}",
            rule_id,
        )

    try:
        return _rule_adapter.validate_python(data)
    except ValidationError as e:
        raise ConfigurationError(_format_validation_error(e), rule_id) from e


def load_rules(data: list[Any] | dict[str, Any]) -> list[RuleDefinition]:
    """Load rules from a list of definitions or a rule-set envelope.

    Raises:
        ConfigurationError: On the first invalid definition, or when two
            rules share an id.
    """
    if isinstance(data, RuleSet):
        items = list(data.rules)
    elif isinstance(data, dict):
        if "rules" not in data:
            raise ConfigurationError("Rule set must contain a 'rules' list")
        items = data["rules"]
    else:
        items = data

    if not isinstance(items, list):
        raise ConfigurationError("Rules must be a list")

    rules = [load_rule(item) for item in items]

    seen: set[str] = set()
    for rule in rules:
        if rule.id in seen:
            raise ConfigurationError("Duplicate rule id", rule.id)
        seen.add(rule.id)

    logger.debug(f"Loaded {len(rules)} rule(s)")
    return rules


def load_rules_file(path: str | Path) -> list[RuleDefinition]:
    """Load and check a JSON rule file.

    Raises:
        ConfigurationError: If the file is missing, malformed, or contains
            invalid rule definitions.
    """
    data, violations = InputFileValidator().load_and_validate(Path(path), "rule_set")
    if violations:
        summary = "; ".join(str(v) for v in violations[:5])
        raise ConfigurationError(f"Invalid rule file {path}: {summary}")
    rules = load_rules(data)
    logger.info(f"Loaded {len(rules)} rule(s) from {path}")
    return rules

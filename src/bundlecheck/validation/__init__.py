"""Validation pipeline and its stages.

Well-formedness, structural validation, bundle references, advisory lint
and spec hints, the rule engine and an optional object-model validator each
report findings under their own authority.
"""

from .framework import (
    INTERNAL_ERROR,
    PipelineStage,
    RunContext,
    ValidationPipeline,
    ValidationResult,
    ValidationStatus,
    validate,
)
from .hints import DEFAULT_HINTS, HintCatalog, SpecHint, SpecHintValidator, load_hint_catalog
from .lint import LintValidator
from .object_model import JsonSchemaObjectModelValidator, ObjectModelValidator
from .references import ReferenceValidator, reference_problem
from .structural import StructuralValidator

__all__ = [
    "DEFAULT_HINTS",
    "INTERNAL_ERROR",
    "HintCatalog",
    "JsonSchemaObjectModelValidator",
    "LintValidator",
    "ObjectModelValidator",
    "PipelineStage",
    "ReferenceValidator",
    "RunContext",
    "SpecHint",
    "SpecHintValidator",
    "StructuralValidator",
    "ValidationPipeline",
    "ValidationResult",
    "ValidationStatus",
    "reference_problem",
    "validate",
]

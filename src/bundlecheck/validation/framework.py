"""Validation pipeline orchestration.

Stages run in a fixed order and every stage's findings are kept:

1. well-formedness (the only fail-fast step)
2. structural validation, then bundle reference integrity when enabled
3. lint and spec hints (debug mode only)
4. rule engine
5. object-model validator

A stage that raises is reported as one INTERNAL_ERROR finding and the next
stage still runs. Findings from different stages are never merged.
"""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..config import ReferencePolicy, ValidationOptions
from ..document.node import DocumentNode
from ..document.parser import parse_document
from ..errors import DocumentMalformedError
from ..explain.explainer import explain, missing_detail_keys
from ..models.finding import Authority, Finding, Severity
from ..rules.engine import RuleEngine
from ..rules.expressions import ExpressionEvaluator
from ..rules.models import RuleDefinition
from ..schemas.provider import SchemaProvider
from .hints import HintCatalog, SpecHintValidator
from .lint import LintValidator
from .object_model import ObjectModelValidator
from .references import ReferenceValidator
from .structural import StructuralValidator

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "INTERNAL_ERROR"


class ValidationStatus(str, Enum):
    """Overall outcome of a run."""
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


@dataclass
class ValidationResult:
    """Results of one validation run."""
    status: ValidationStatus = ValidationStatus.PASS
    findings: list[Finding] = field(default_factory=list)
    fatal_errors: list[Finding] = field(default_factory=list)
    suggestions: list[Any] = field(default_factory=list)
    counters: dict[str, int] = field(default_factory=dict)
    timed_out: bool = False
    skipped_stages: list[str] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        """Exit code for CI: 0 = pass/warn, 1 = fail."""
        return 0 if self.status != ValidationStatus.FAIL else 1

    def add_findings(self, findings: Iterable[Finding]) -> None:
        for finding in findings:
            self.findings.append(finding)
            self.increment_counter(f"severity_{finding.severity.value.lower()}")
            self.increment_counter(f"authority_{finding.authority.value.lower()}")
            if finding.severity == Severity.ERROR:
                self.status = ValidationStatus.FAIL
            elif finding.severity == Severity.WARNING and self.status == ValidationStatus.PASS:
                self.status = ValidationStatus.WARN

    def increment_counter(self, name: str, value: int = 1) -> None:
        self.counters[name] = self.counters.get(name, 0) + value

    def by_authority(self, authority: Authority) -> list[Finding]:
        return [f for f in self.findings if f.authority == authority]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "status": self.status.value,
            "exit_code": self.exit_code,
            "counters": self.counters,
            "timed_out": self.timed_out,
            "skipped_stages": self.skipped_stages,
            "fatal_errors": [f.to_dict() for f in self.fatal_errors],
            "findings": [f.to_dict() for f in self.findings],
            "suggestions": [s.to_dict() for s in self.suggestions],
        }


@dataclass
class RunContext:
    """Inputs shared by every stage of one run. Read-only for stages."""
    document: DocumentNode
    schema: SchemaProvider | None
    rules: list[RuleDefinition]
    options: ValidationOptions


class PipelineStage(ABC):
    """Base class for pipeline stages."""

    advisory = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Stage name for logs and internal-error findings."""
        pass

    @property
    @abstractmethod
    def authority(self) -> Authority:
        """Authority of the findings this stage produces."""
        pass

    def enabled(self, options: ValidationOptions) -> bool:
        """Whether the stage takes part in a run; advisory stages need debug mode."""
        return options.is_debug if self.advisory else True

    @abstractmethod
    def run(self, context: RunContext) -> list[Finding]:
        pass


class StructuralStage(PipelineStage):
    name = "structural"
    authority = Authority.STRUCTURE

    def run(self, context: RunContext) -> list[Finding]:
        if context.schema is None:
            logger.debug("No schema provider; structural stage has nothing to check")
            return []
        return StructuralValidator(context.schema).validate_document(context.document)


class ReferenceStage(PipelineStage):
    name = "references"
    authority = Authority.STRUCTURE

    def enabled(self, options: ValidationOptions) -> bool:
        return options.references != ReferencePolicy.OFF

    def run(self, context: RunContext) -> list[Finding]:
        return ReferenceValidator(context.options.references).validate_document(context.document)


class LintStage(PipelineStage):
    name = "lint"
    authority = Authority.LINT
    advisory = True

    def run(self, context: RunContext) -> list[Finding]:
        return LintValidator(context.schema).validate(context.document)


class SpecHintStage(PipelineStage):
    name = "spec_hints"
    authority = Authority.HINT
    advisory = True

    def __init__(self, catalog: HintCatalog | None = None):
        self.catalog = catalog

    def run(self, context: RunContext) -> list[Finding]:
        return SpecHintValidator(self.catalog).validate(context.document)


class RuleStage(PipelineStage):
    name = "rules"
    authority = Authority.RULE

    def __init__(self, evaluator: ExpressionEvaluator | None = None):
        self.evaluator = evaluator

    def run(self, context: RunContext) -> list[Finding]:
        return RuleEngine(self.evaluator).evaluate(context.document, context.rules)


class ObjectModelStage(PipelineStage):
    name = "object_model"
    authority = Authority.OBJECT_MODEL

    def __init__(self, validator: ObjectModelValidator):
        self.validator = validator

    def run(self, context: RunContext) -> list[Finding]:
        findings = self.validator.validate(context.document.value)
        return [
            f if f.authority == Authority.OBJECT_MODEL else f.model_copy(update={"authority": Authority.OBJECT_MODEL})
            for f in findings
        ]


class ValidationPipeline:
    """Runs the validation stages in their fixed order."""

    def __init__(self, object_model: ObjectModelValidator | None = None,
                 evaluator: ExpressionEvaluator | None = None,
                 hints: HintCatalog | None = None):
        self.object_model = object_model
        self.hints = hints
        self.stages: list[PipelineStage] = [
            StructuralStage(),
            ReferenceStage(),
            LintStage(),
            SpecHintStage(hints),
            RuleStage(evaluator),
        ]
        if object_model is not None:
            self.stages.append(ObjectModelStage(object_model))

    def validate(self, document: Any, schema: SchemaProvider | None = None,
                 rules: Iterable[RuleDefinition] = (),
                 options: ValidationOptions | None = None) -> ValidationResult:
        """Validate a document.

        Args:
            document: JSON text, bytes, parsed object or DocumentNode
            schema: Structural metadata provider
            rules: Loaded rule definitions
            options: Run options (standard mode when omitted)

        Returns:
            ValidationResult with findings in stage order, or fatal errors
            when the document is malformed
        """
        options = options or ValidationOptions()
        result = ValidationResult()
        started = time.monotonic()
        deadline = started + options.timeout_seconds if options.timeout_seconds else None

        try:
            root = parse_document(document)
        except DocumentMalformedError as e:
            logger.warning(f"Document is malformed: {e}")
            result.fatal_errors = [f.with_explanation(explain(f)) for f in e.findings]
            result.status = ValidationStatus.FAIL
            return result

        context = RunContext(root, schema, list(rules), options)
        logger.info(f"Starting validation in {options.mode.value} mode with {len(context.rules)} rule(s)")

        for stage in self.stages:
            if not stage.enabled(options):
                continue
            if deadline is not None and time.monotonic() >= deadline:
                result.timed_out = True
                result.skipped_stages.append(stage.name)
                continue

            logger.debug(f"Running stage: {stage.name}")
            try:
                findings = stage.run(context)
            except Exception as e:
                logger.error(f"Stage {stage.name} failed with error: {e}", exc_info=True)
                findings = [self._internal_error(stage.name, stage.authority, e)]

            if stage.advisory:
                findings = [self._cap_advisory(f) for f in findings]
            result.add_findings(self._explained(findings, options))
            logger.debug(f"Stage {stage.name} produced {len(findings)} finding(s)")

        if result.timed_out:
            logger.warning(f"Validation timed out; skipped stages: {', '.join(result.skipped_stages)}")
        elif options.suggestions:
            self._suggest(context, result)

        logger.info(f"Validation completed with status: {result.status.value}")
        logger.info(f"Found {len(result.findings)} findings")
        return result

    def _suggest(self, context: RunContext, result: ValidationResult) -> None:
        from ..suggestions.engine import SuggestionEngine

        try:
            engine = SuggestionEngine(context.options.max_examples)
            result.suggestions = engine.suggest(context.document, context.rules, self.hints, context.schema)
        except Exception as e:
            logger.error(f"Suggestion engine failed with error: {e}", exc_info=True)
            result.add_findings(self._explained(
                [self._internal_error("suggestions", Authority.HINT, e)], context.options,
            ))

    @staticmethod
    def _internal_error(stage: str, authority: Authority, error: Exception) -> Finding:
        return Finding(
            authority=authority,
            code=INTERNAL_ERROR,
            pointer="",
            severity=Severity.ERROR,
            details={
                "stage": stage,
                "error": str(error),
                "exceptionType": type(error).__name__,
            },
        )

    @staticmethod
    def _cap_advisory(finding: Finding) -> Finding:
        if finding.code == INTERNAL_ERROR or finding.severity != Severity.ERROR:
            return finding
        details = {**finding.details, "originalSeverity": finding.severity.value}
        return finding.model_copy(update={"severity": Severity.WARNING, "details": details})

    @staticmethod
    def _explained(findings: list[Finding], options: ValidationOptions) -> list[Finding]:
        explained = []
        for finding in findings:
            if options.details_checked:
                missing = missing_detail_keys(finding)
                if missing:
                    logger.warning(
                        f"{finding.authority.value}:{finding.code} at {finding.pointer or '/'} "
                        f"is missing details: {', '.join(sorted(missing))}"
                    )
            explained.append(finding.with_explanation(explain(finding)))
        return explained


def validate(document: Any, schema: SchemaProvider | None = None,
             rules: Iterable[RuleDefinition] = (),
             options: ValidationOptions | None = None,
             object_model: ObjectModelValidator | None = None,
             evaluator: ExpressionEvaluator | None = None) -> ValidationResult:
    """Run the validation pipeline once with the given collaborators."""
    pipeline = ValidationPipeline(object_model=object_model, evaluator=evaluator)
    return pipeline.validate(document, schema, rules, options)

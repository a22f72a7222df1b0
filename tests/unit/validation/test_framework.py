"""Tests for validation pipeline orchestration."""

import json
import logging
import time

from bundlecheck.config import ValidationOptions
from bundlecheck.models import Authority, Confidence, Finding, Severity
from bundlecheck.rules import load_rules
from bundlecheck.suggestions import SuggestionEngine
from bundlecheck.validation import (
    INTERNAL_ERROR,
    ValidationPipeline,
    ValidationResult,
    ValidationStatus,
    validate,
)

STATUS_FINAL = {
    "type": "FixedValue",
    "resourceType": "Observation",
    "fieldPath": "status",
    "instanceScope": "all",
    "metadata": {"expectedValue": "final"},
}


class FailingSchema:
    """Schema provider that fails on every lookup."""

    def resolve(self, element_or_path):
        raise RuntimeError("schema backend unavailable")


class SlowSchema:
    """Schema provider that takes a while and knows nothing."""

    def resolve(self, element_or_path):
        time.sleep(0.1)
        return None


class StaticObjectModel:
    """Object-model validator returning fixed findings."""

    def __init__(self, findings):
        self.findings = findings
        self.seen = None

    def validate(self, document):
        self.seen = document
        return list(self.findings)


class FailingObjectModel:
    def validate(self, document):
        raise ValueError("model crashed")


class TestValidationResult:
    """Test result aggregation."""

    def test_empty_result_passes(self):
        result = ValidationResult()
        assert result.status == ValidationStatus.PASS
        assert result.exit_code == 0

    def test_status_and_counters(self):
        result = ValidationResult()
        result.add_findings([Finding(authority=Authority.HINT, code="X", severity=Severity.WARNING)])
        assert result.status == ValidationStatus.WARN
        assert result.exit_code == 0
        result.add_findings([Finding(authority=Authority.RULE, code="Y")])
        assert result.status == ValidationStatus.FAIL
        assert result.exit_code == 1
        assert result.counters == {
            "severity_warning": 1,
            "authority_hint": 1,
            "severity_error": 1,
            "authority_rule": 1,
        }

    def test_info_findings_keep_pass(self):
        result = ValidationResult()
        result.add_findings([Finding(authority=Authority.LINT, code="Z", severity=Severity.INFO)])
        assert result.status == ValidationStatus.PASS


class TestValidationPipeline:
    """Test stage ordering, fault capture and result assembly."""

    def test_clean_bundle_passes(self, schema, bundle):
        result = validate(bundle, schema)
        assert result.status == ValidationStatus.PASS
        assert result.findings == []
        assert result.fatal_errors == []

    def test_stage_order_and_explanations(self, schema, bundle):
        """Structural findings come before rule findings and all are explained."""
        bundle["entry"][0]["resource"]["gender"] = "malex"
        result = validate(bundle, schema, load_rules([STATUS_FINAL]))

        assert [(f.authority, f.code, f.pointer) for f in result.findings] == [
            (Authority.STRUCTURE, "INVALID_ENUM_VALUE", "/entry/0/resource/gender"),
            (Authority.RULE, "FIXED_VALUE_MISMATCH", "/entry/2/resource/status"),
        ]
        assert result.status == ValidationStatus.FAIL
        assert result.exit_code == 1
        assert result.counters["authority_structure"] == 1
        assert result.counters["authority_rule"] == 1
        assert all(f.explanation is not None for f in result.findings)
        assert result.findings[1].explanation.confidence == Confidence.HIGH
        assert "final" in result.findings[1].explanation.how

    def test_accepts_json_text(self, schema, patient):
        patient["gender"] = "malex"
        result = validate(json.dumps(patient), schema)
        assert [f.code for f in result.findings] == ["INVALID_ENUM_VALUE"]

    def test_malformed_document_is_fatal(self, schema):
        result = validate('{"resourceType": ', schema, load_rules([STATUS_FINAL]))
        assert result.status == ValidationStatus.FAIL
        assert result.findings == []
        (fatal,) = result.fatal_errors
        assert fatal.code == "INVALID_JSON"
        assert fatal.explanation is not None
        assert fatal.explanation.what.startswith("The document is not valid JSON")

    def test_advisory_stages_only_in_debug(self, schema, make_bundle, make_observation):
        observation = make_observation()
        del observation["status"]
        document = make_bundle(observation)

        standard = validate(document, schema)
        assert [(f.authority, f.code) for f in standard.findings] == [
            (Authority.STRUCTURE, "REQUIRED_FIELD_MISSING"),
        ]

        debug = validate(document, schema, options=ValidationOptions(mode="debug"))
        assert [(f.authority, f.code) for f in debug.findings] == [
            (Authority.STRUCTURE, "REQUIRED_FIELD_MISSING"),
            (Authority.HINT, "HINT_MISSING_ELEMENT"),
        ]

    def test_advisory_severity_capped(self, schema, make_bundle, make_observation):
        """A hint declared as an error is reported as a warning."""
        observation = make_observation()
        del observation["status"]
        result = validate(make_bundle(observation), schema, options=ValidationOptions(mode="debug"))
        hint = result.by_authority(Authority.HINT)[0]
        assert hint.severity == Severity.WARNING
        assert hint.details["originalSeverity"] == "Error"

    def test_stage_fault_becomes_internal_error(self, bundle):
        """A failing stage is reported and later stages still run."""
        result = validate(bundle, FailingSchema(), load_rules([STATUS_FINAL]))

        internal, rule_finding = result.findings
        assert internal.code == INTERNAL_ERROR
        assert internal.authority == Authority.STRUCTURE
        assert internal.severity == Severity.ERROR
        assert internal.details == {
            "stage": "structural",
            "error": "schema backend unavailable",
            "exceptionType": "RuntimeError",
        }
        assert internal.explanation.what == "The structural stage failed unexpectedly: schema backend unavailable"
        assert rule_finding.authority == Authority.RULE

    def test_object_model_runs_last_and_is_retagged(self, schema, patient):
        foreign = Finding(
            authority=Authority.RULE,
            code="OBJECT_MODEL_CUSTOM",
            pointer="/gender",
            details={"message": "gender looks odd", "validator": "custom", "schemaPath": ""},
        )
        model = StaticObjectModel([foreign])
        patient["gender"] = "malex"
        result = ValidationPipeline(object_model=model).validate(patient, schema)

        assert [f.authority for f in result.findings] == [Authority.STRUCTURE, Authority.OBJECT_MODEL]
        assert result.findings[1].explanation.what == "The object-model validator reported: gender looks odd"
        assert model.seen is patient

    def test_no_cross_stage_dedup(self, schema, patient):
        """The same problem reported by two authorities stays two findings."""
        duplicate = Finding(
            authority=Authority.OBJECT_MODEL,
            code="OBJECT_MODEL_ENUM",
            pointer="/gender",
            details={"message": "bad gender", "validator": "enum", "schemaPath": "properties/gender/enum"},
        )
        patient["gender"] = "malex"
        result = ValidationPipeline(object_model=StaticObjectModel([duplicate])).validate(patient, schema)
        assert [f.pointer for f in result.findings] == ["/gender", "/gender"]

    def test_object_model_fault(self, patient):
        result = ValidationPipeline(object_model=FailingObjectModel()).validate(patient)
        (finding,) = result.findings
        assert finding.code == INTERNAL_ERROR
        assert finding.authority == Authority.OBJECT_MODEL
        assert finding.details["exceptionType"] == "ValueError"

    def test_timeout_skips_later_stages(self, patient):
        """Running stages finish; stages after the deadline are skipped."""
        model = StaticObjectModel([])
        options = ValidationOptions(timeout_seconds=0.03)
        result = ValidationPipeline(object_model=model).validate(
            patient, SlowSchema(), load_rules([STATUS_FINAL]), options,
        )
        assert result.timed_out is True
        assert result.skipped_stages == ["rules", "object_model"]
        assert model.seen is None

    def test_no_timeout_by_default(self, patient):
        result = validate(patient, SlowSchema())
        assert result.timed_out is False
        assert result.skipped_stages == []

    def test_reference_check_is_opt_in(self, make_bundle, make_observation):
        document = make_bundle(make_observation(status="draft"))
        assert validate(document).findings == []

        result = validate(document, rules=load_rules([STATUS_FINAL]), options=ValidationOptions(references="in_bundle"))
        reference, rule_finding = result.findings
        assert reference.code == "REFERENCE_NOT_FOUND"
        assert reference.authority == Authority.STRUCTURE
        assert reference.explanation.what == (
            "`Observation.subject.reference` points to `Patient/p1`, which is not an entry of this bundle."
        )
        assert rule_finding.authority == Authority.RULE
        assert result.status == ValidationStatus.FAIL

    def test_details_contract_logged(self, patient, caplog):
        """Missing detail keys are logged as warnings in debug mode and never raise."""
        incomplete = Finding(authority=Authority.OBJECT_MODEL, code="OBJECT_MODEL_TYPE", pointer="/active")
        pipeline = ValidationPipeline(object_model=StaticObjectModel([incomplete]))
        with caplog.at_level(logging.WARNING, logger="bundlecheck"):
            result = pipeline.validate(patient, options=ValidationOptions(mode="debug"))
        assert result.findings[-1].code == "OBJECT_MODEL_TYPE"
        assert "is missing details: message, schemaPath, validator" in caplog.text

    def test_details_contract_off_in_standard_mode(self, patient, caplog):
        incomplete = Finding(authority=Authority.OBJECT_MODEL, code="OBJECT_MODEL_TYPE", pointer="/active")
        pipeline = ValidationPipeline(object_model=StaticObjectModel([incomplete]))
        with caplog.at_level(logging.WARNING, logger="bundlecheck"):
            pipeline.validate(patient)
        assert "is missing details" not in caplog.text


class TestPipelineSuggestions:
    """Test the optional suggestion step."""

    def test_suggestions_attached(self, make_bundle, make_observation):
        document = make_bundle(*[make_observation() for _ in range(6)])
        result = validate(document, options=ValidationOptions(suggestions=True))
        fixed = [s for s in result.suggestions if s.rule.type == "FixedValue" and s.rule.field_path == "status"]
        (suggestion,) = fixed
        assert suggestion.evidence.sample_count == 6
        assert suggestion.confidence == Confidence.HIGH
        assert result.to_dict()["suggestions"]

    def test_suggestions_off_by_default(self, make_bundle, make_observation):
        document = make_bundle(*[make_observation() for _ in range(6)])
        assert validate(document).suggestions == []

    def test_suggestion_fault(self, patient, monkeypatch):
        def boom(self, *args, **kwargs):
            raise RuntimeError("detector failure")

        monkeypatch.setattr(SuggestionEngine, "suggest", boom)
        result = validate(patient, options=ValidationOptions(suggestions=True))
        (finding,) = result.findings
        assert finding.code == INTERNAL_ERROR
        assert finding.authority == Authority.HINT
        assert finding.details["stage"] == "suggestions"
        assert result.suggestions == []

    def test_list_entries_do_not_break_suggestions(self, make_bundle):
        """Resources with their own entry element still get suggestions and no internal error."""
        lists = [
            {"resourceType": "List", "status": "current", "entry": [{"deleted": False, "item": {"display": "x"}}]}
            for _ in range(3)
        ]
        result = ValidationPipeline().validate(make_bundle(*lists), options=ValidationOptions(suggestions=True))
        assert result.findings == []
        assert result.status == ValidationStatus.PASS
        assert ("status", "FixedValue") in [(s.rule.field_path, s.rule.type) for s in result.suggestions]


class TestResultSerialization:
    def test_to_dict(self, schema, patient):
        patient["gender"] = "malex"
        data = validate(patient, schema).to_dict()
        assert data["status"] == "fail"
        assert data["exit_code"] == 1
        assert data["timed_out"] is False
        (finding,) = data["findings"]
        assert finding["authority"] == "Structure"
        assert finding["severity"] == "Error"
        assert finding["pointer"] == "/gender"
        assert finding["explanation"]["confidence"] == "medium"
        json.dumps(data)

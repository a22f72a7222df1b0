"""Rule definition models.

Rule definitions form a closed set of variants discriminated by ``type``.
Each variant carries its own typed ``metadata``; instance scopes are a
second closed set discriminated by ``kind``.
"""

import re
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.finding import Severity
from .paths import parse_field_path, strip_indices
from .predicates import parse_predicate

_BUNDLE_REFERENCE = re.compile(r"(^|\.)(Bundle|entry)\.", re.IGNORECASE)


def field_path_problem(resource_type: str, path: str) -> str | None:
    """Why ``path`` is not a valid resource-relative field path, or None."""
    if path == resource_type or path.lower().startswith(f"{resource_type.lower()}."):
        return f"fieldPath must not start with resource type '{resource_type}': {path!r}"
    if "[*]" in path:
        return f"fieldPath must not contain '[*]': {path!r}"
    if path.startswith("["):
        return f"fieldPath must not start with an array index: {path!r}"
    if _BUNDLE_REFERENCE.search(path):
        return f"fieldPath must not reference Bundle structure: {path!r}"
    try:
        parse_field_path(path)
    except ValueError as e:
        return str(e)
    return None


class FirstInstance(BaseModel):
    """Bind to the first instance of the resource type (default)."""
    kind: Literal["first"] = "first"


class AllInstances(BaseModel):
    """Bind independently to every instance."""
    kind: Literal["all"] = "all"


class IndexInstance(BaseModel):
    """Bind to the instance at an exact zero-based position."""
    kind: Literal["index"] = "index"
    index: int = Field(ge=0)


class FilterInstance(BaseModel):
    """Bind to instances matching a predicate over their own fields."""
    kind: Literal["filter"] = "filter"
    condition: str

    @field_validator("condition")
    @classmethod
    def validate_condition(cls, v):
        if _BUNDLE_REFERENCE.search(v):
            raise ValueError(f"filter condition must not reference Bundle structure: {v!r}")
        parse_predicate(v)
        return v


InstanceScope = Annotated[
    Union[FirstInstance, AllInstances, IndexInstance, FilterInstance],
    Field(discriminator="kind"),
]


class _Metadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class RequiredMetadata(_Metadata):
    pass


class FixedValueMetadata(_Metadata):
    expected_value: str | int | float | bool = Field(alias="expectedValue")


class AllowedValuesMetadata(_Metadata):
    allowed_values: list[str | int | float | bool] = Field(alias="allowedValues", min_length=1)


class RegexMetadata(_Metadata):
    pattern: str

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v):
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"pattern does not compile: {e}")
        return v


class ArrayLengthMetadata(_Metadata):
    min: int | None = Field(default=None, ge=0)
    max: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def validate_bounds(self) -> "ArrayLengthMetadata":
        if self.min is None and self.max is None:
            raise ValueError("ArrayLength requires min, max or both")
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"min ({self.min}) is greater than max ({self.max})")
        return self


class CodeSystemMetadata(_Metadata):
    system_url: str = Field(alias="systemUrl", min_length=1)


class CustomExpressionMetadata(_Metadata):
    expression: str = Field(min_length=1)


class _RuleBase(BaseModel):
    """Fields shared by every rule type."""
    id: str = ""
    resource_type: str = Field(alias="resourceType", min_length=1)
    field_path: str = Field(alias="fieldPath")
    instance_scope: InstanceScope = Field(alias="instanceScope", default_factory=FirstInstance)
    severity: Severity = Severity.ERROR
    message: str | None = None

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @field_validator("instance_scope", mode="before")
    @classmethod
    def expand_scope_shorthand(cls, v):
        if isinstance(v, str):
            return {"kind": v}
        return v

    @field_validator("severity", mode="before")
    @classmethod
    def parse_severity(cls, v):
        return Severity.parse(v)

    @model_validator(mode="after")
    def validate_field_path(self) -> "_RuleBase":
        path = self.field_path.strip()
        problem = field_path_problem(self.resource_type, path)
        if problem:
            raise ValueError(problem)
        self.field_path = path
        if not self.id:
            self.id = f"{self.type}:{self.resource_type}.{path}"
        return self

    @property
    def display_path(self) -> str:
        """Field path without explicit indices, for dedup and display."""
        return strip_indices(self.field_path)

    def token_values(self) -> dict[str, Any]:
        """Detail values shared by every finding of this rule."""
        return {
            "ruleId": self.id,
            "ruleType": self.type,
            "resource": self.resource_type,
            "path": self.field_path,
        }


class RequiredRule(_RuleBase):
    type: Literal["Required"] = "Required"
    metadata: RequiredMetadata = Field(default_factory=RequiredMetadata)


class FixedValueRule(_RuleBase):
    type: Literal["FixedValue"] = "FixedValue"
    metadata: FixedValueMetadata


class AllowedValuesRule(_RuleBase):
    type: Literal["AllowedValues"] = "AllowedValues"
    metadata: AllowedValuesMetadata


class RegexRule(_RuleBase):
    type: Literal["Regex"] = "Regex"
    metadata: RegexMetadata


class ArrayLengthRule(_RuleBase):
    type: Literal["ArrayLength"] = "ArrayLength"
    metadata: ArrayLengthMetadata


class CodeSystemRule(_RuleBase):
    type: Literal["CodeSystem"] = "CodeSystem"
    metadata: CodeSystemMetadata


class CustomExpressionRule(_RuleBase):
    type: Literal["CustomExpression"] = "CustomExpression"
    metadata: CustomExpressionMetadata


RuleDefinition = Annotated[
    Union[
        RequiredRule,
        FixedValueRule,
        AllowedValuesRule,
        RegexRule,
        ArrayLengthRule,
        CodeSystemRule,
        CustomExpressionRule,
    ],
    Field(discriminator="type"),
]

RULE_CLASSES = (
    RequiredRule,
    FixedValueRule,
    AllowedValuesRule,
    RegexRule,
    ArrayLengthRule,
    CodeSystemRule,
    CustomExpressionRule,
)

RULE_TYPES = tuple(cls.model_fields["type"].default for cls in RULE_CLASSES)


class RuleSet(BaseModel):
    """A versioned collection of rules."""
    version: str = "1.0"
    project: str | None = None
    fhir_version: str | None = Field(alias="fhirVersion", default=None)
    rules: list[RuleDefinition] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

"""Structural schema metadata models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ElementKind(str, Enum):
    """Expected node kind."""
    SCALAR = "scalar"
    ARRAY = "array"
    OBJECT = "object"


class PrimitiveType(str, Enum):
    """Primitive subtypes with a format check."""
    BOOLEAN = "boolean"
    INTEGER = "integer"
    DECIMAL = "decimal"
    DATE = "date"
    DATETIME = "dateTime"
    STRING = "string"


class BindingStrength(str, Enum):
    """Strength of an enumeration binding."""
    REQUIRED = "required"
    EXTENSIBLE = "extensible"
    PREFERRED = "preferred"
    EXAMPLE = "example"


class SchemaElement(BaseModel):
    """Structural metadata for one element path, with its child elements."""
    path: str
    name: str = ""
    kind: ElementKind = ElementKind.SCALAR
    type: PrimitiveType | None = None
    min: int = 0
    max: int | None = 1
    enumeration: list[str] | None = None
    binding_strength: BindingStrength = Field(alias="bindingStrength", default=BindingStrength.REQUIRED)
    children: list["SchemaElement"] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("max", mode="before")
    @classmethod
    def parse_max(cls, v):
        if v == "*":
            return None
        if isinstance(v, str) and v.isdigit():
            return int(v)
        return v

    @field_validator("min")
    @classmethod
    def validate_min(cls, v):
        if v < 0:
            raise ValueError("min must be >= 0")
        return v

    @model_validator(mode="after")
    def fill_name(self) -> "SchemaElement":
        if not self.name:
            self.name = self.path.rsplit(".", 1)[-1]
        if self.kind == ElementKind.ARRAY and "max" not in self.model_fields_set:
            self.max = None
        if self.max is not None and self.max < self.min:
            raise ValueError(f"{self.path}: max ({self.max}) is below min ({self.min})")
        return self

    @property
    def is_repeating(self) -> bool:
        """True for declared arrays and whenever more than one occurrence is allowed."""
        return self.kind == ElementKind.ARRAY or self.max is None or self.max > 1

    @property
    def max_label(self) -> int | str:
        """Upper bound with "*" for unbounded."""
        return "*" if self.max is None else self.max

    def child(self, name: str) -> "SchemaElement | None":
        """Look up a direct child element by name."""
        for element in self.children:
            if element.name == name:
                return element
        return None

"""
Schema types for HUSL IR.

Entities, enums, and custom (constrained scalar) types declared in the
Schema section of a specification document.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .fields import FieldSpec
from .hooks import CustomImplementationSpec


class EntitySpec(BaseModel):
    """
    An entity declared with ``Entity: <Name>``.

    Attributes:
        name: Unique, case-sensitive identifier
        fields: Ordered field list
        constraints: Free-text entity-level constraints
        state_machine: Name of the state machine governing this entity
        description: Free text
        custom_implementations: Protected regions in the model artifact
    """

    name: str
    fields: list[FieldSpec] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)
    state_machine: str | None = None
    description: str = ""
    custom_implementations: list[CustomImplementationSpec] = Field(default_factory=list)
    line: int | None = None

    model_config = ConfigDict(frozen=True)

    def get_field(self, name: str) -> FieldSpec | None:
        for field in self.fields:
            if field.name == name:
                return field
        return None

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]


class EnumValueSpec(BaseModel):
    """A single value within an enum."""

    value: str
    description: str = ""

    model_config = ConfigDict(frozen=True)


class EnumSpec(BaseModel):
    """
    An enum declared with ``<Name> Enum:``.

    Attributes:
        name: Enum identifier (e.g. OrderStatus)
        values: Ordered list of values
    """

    name: str
    values: list[EnumValueSpec] = Field(default_factory=list)
    line: int | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def value_names(self) -> list[str]:
        return [v.value for v in self.values]

    def has_value(self, value: str) -> bool:
        return value in self.value_names


class InvalidExample(BaseModel):
    """An example that must be rejected, with the reason why."""

    value: str
    reason: str = ""

    model_config = ConfigDict(frozen=True)


class CustomTypeSpec(BaseModel):
    """
    A constrained scalar type declared with ``Type: <Name>``.

    Constraint text is kept verbatim for downstream code generation; the
    engine parses its structure but does not interpret it.
    """

    name: str
    base: str = "String"
    min_length: int | None = None
    max_length: int | None = None
    allowed: list[str] = Field(default_factory=list)
    forbidden: list[str] = Field(default_factory=list)
    pattern: str | None = None
    rules: list[str] = Field(default_factory=list)
    valid_examples: list[str] = Field(default_factory=list)
    invalid_examples: list[InvalidExample] = Field(default_factory=list)
    description: str = ""
    line: int | None = None

    model_config = ConfigDict(frozen=True)

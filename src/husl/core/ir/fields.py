"""
Field type definitions for HUSL IR.

This module contains type references, the fixed field-constraint vocabulary,
and field specifications shared by entities, operation inputs, and events.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# Types every document may reference without declaring them.
BUILTIN_TYPES = frozenset(
    {
        "String",
        "Text",
        "Integer",
        "Int",
        "Decimal",
        "Float",
        "Number",
        "Money",
        "Boolean",
        "Bool",
        "Date",
        "DateTime",
        "Timestamp",
        "Time",
        "Duration",
        "UUID",
        "Email",
        "URL",
        "JSON",
        "Map",
        "Any",
    }
)


class TypeRef(BaseModel):
    """
    Reference to a built-in type or a schema element.

    Examples:
        - UUID: TypeRef(name="UUID")
        - List<Widget>: TypeRef(name="Widget", is_list=True)
    """

    name: str
    is_list: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def is_builtin(self) -> bool:
        return self.name in BUILTIN_TYPES

    def __str__(self) -> str:
        if self.is_list:
            return f"List<{self.name}>"
        return self.name


class ConstraintKind(str, Enum):
    """Fixed vocabulary of field constraints."""

    REQUIRED = "required"
    OPTIONAL = "optional"
    IMMUTABLE = "immutable"
    SYSTEM_GENERATED = "system-generated"
    DEFAULT = "default"
    MIN = "min"
    MAX = "max"
    REFERENCES = "references"
    FORMAT = "format"
    CONDITIONAL = "conditional"

    @property
    def takes_value(self) -> bool:
        return self in VALUED_CONSTRAINTS


VALUED_CONSTRAINTS = frozenset(
    {
        ConstraintKind.DEFAULT,
        ConstraintKind.MIN,
        ConstraintKind.MAX,
        ConstraintKind.REFERENCES,
        ConstraintKind.FORMAT,
        ConstraintKind.CONDITIONAL,
    }
)


class FieldConstraint(BaseModel):
    """A single constraint token such as ``required`` or ``max:100``."""

    kind: ConstraintKind
    value: str | None = None

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        if self.value is None:
            return self.kind.value
        return f"{self.kind.value}:{self.value}"


class FieldSpec(BaseModel):
    """
    Specification for a single field.

    Attributes:
        name: Field identifier
        type: Declared type reference
        constraints: Constraint tokens in declaration order
        description: Free-text description (opaque)
        line: Source line of the declaration, when parsed
    """

    name: str
    type: TypeRef
    constraints: list[FieldConstraint] = Field(default_factory=list)
    description: str = ""
    line: int | None = None

    model_config = ConfigDict(frozen=True)

    def constraint(self, kind: ConstraintKind) -> FieldConstraint | None:
        """Return the first constraint of a given kind."""
        for item in self.constraints:
            if item.kind == kind:
                return item
        return None

    def has(self, kind: ConstraintKind) -> bool:
        return self.constraint(kind) is not None

    @property
    def is_required(self) -> bool:
        return self.has(ConstraintKind.REQUIRED)

    @property
    def is_optional(self) -> bool:
        return self.has(ConstraintKind.OPTIONAL)

    @property
    def default(self) -> str | None:
        item = self.constraint(ConstraintKind.DEFAULT)
        return item.value if item else None

    @property
    def references(self) -> tuple[str, str] | None:
        """Return the (entity, field) target of a ``references`` constraint."""
        item = self.constraint(ConstraintKind.REFERENCES)
        if item is None or not item.value:
            return None
        entity, _, field = item.value.partition(".")
        return entity.strip(), field.strip()

    def signature(self) -> str:
        """Canonical one-line form used for snapshots and diagnostics."""
        parts = f"{self.name}: {self.type}"
        if self.constraints:
            parts += " (" + ", ".join(str(c) for c in self.constraints) + ")"
        return parts

"""
Root document type for HUSL IR.

A SpecDocument is superseded wholesale by a new parse or by a refactoring;
it is never mutated in place.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .fields import BUILTIN_TYPES, TypeRef
from .operations import OperationSpec
from .rules import BackgroundJobSpec, CrossCuttingConcernSpec, EventSpec, RuleSpec
from .schema import CustomTypeSpec, EntitySpec, EnumSpec
from .state_machine import StateMachineSpec
from .versioning import SemanticVersion, VersionEntry


class OpaqueSection(BaseModel):
    """An unknown top-level section, passed through verbatim."""

    title: str
    text: str
    line: int

    model_config = ConfigDict(frozen=True)


class SpecDocument(BaseModel):
    """
    The parsed specification document.

    Attributes:
        source: Path or label of the document the model was parsed from
        title: Document title, if the document starts with one
        overview: Overview section text (opaque)
        opaque_sections: Unknown sections kept for pass-through
    """

    source: str = "<string>"
    title: str | None = None
    overview: str = ""
    entities: list[EntitySpec] = Field(default_factory=list)
    enums: list[EnumSpec] = Field(default_factory=list)
    custom_types: list[CustomTypeSpec] = Field(default_factory=list)
    state_machines: list[StateMachineSpec] = Field(default_factory=list)
    rules: list[RuleSpec] = Field(default_factory=list)
    operations: list[OperationSpec] = Field(default_factory=list)
    events: list[EventSpec] = Field(default_factory=list)
    background_jobs: list[BackgroundJobSpec] = Field(default_factory=list)
    concerns: list[CrossCuttingConcernSpec] = Field(default_factory=list)
    version_history: list[VersionEntry] = Field(default_factory=list)
    opaque_sections: list[OpaqueSection] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_entity(self, name: str) -> EntitySpec | None:
        return next((e for e in self.entities if e.name == name), None)

    def get_enum(self, name: str) -> EnumSpec | None:
        return next((e for e in self.enums if e.name == name), None)

    def get_custom_type(self, name: str) -> CustomTypeSpec | None:
        return next((t for t in self.custom_types if t.name == name), None)

    def get_operation(self, name: str) -> OperationSpec | None:
        return next((o for o in self.operations if o.name == name), None)

    def get_rule(self, name: str) -> RuleSpec | None:
        return next((r for r in self.rules if r.name == name), None)

    def get_state_machine(self, name: str) -> StateMachineSpec | None:
        return next((m for m in self.state_machines if m.name == name), None)

    def schema_names(self) -> list[str]:
        """Names that may be used as type references, in declaration order."""
        return (
            [e.name for e in self.entities]
            + [e.name for e in self.enums]
            + [t.name for t in self.custom_types]
        )

    def resolves_type(self, ref: TypeRef | str) -> bool:
        """Whether a type reference resolves to exactly one declared or built-in type."""
        name = ref.name if isinstance(ref, TypeRef) else ref
        if name in BUILTIN_TYPES:
            return True
        return self.schema_names().count(name) == 1

    def trigger_names(self) -> set[str]:
        """Names that may trigger a state transition."""
        return (
            {o.name for o in self.operations}
            | {j.name for j in self.background_jobs}
            | {e.name for e in self.events}
        )

    def operations_consuming(self, rule_name: str) -> list[OperationSpec]:
        """Operations that enforce a rule, via either side of the link."""
        rule = self.get_rule(rule_name)
        applies_to = set(rule.applies_to) if rule else set()
        return [o for o in self.operations if rule_name in o.rules or o.name in applies_to]

    def rules_for(self, operation: OperationSpec) -> list[RuleSpec]:
        """Rules an operation enforces, in document order."""
        return [
            r
            for r in self.rules
            if r.name in operation.rules or operation.name in r.applies_to
        ]

    @property
    def current_version(self) -> SemanticVersion | None:
        if not self.version_history:
            return None
        return max((entry.version for entry in self.version_history), key=lambda v: (v.major, v.minor, v.patch))

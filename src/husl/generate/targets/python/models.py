"""
Model generation for the Python target.

Generates one pydantic model module per entity. Entities bound to a state
machine also get module-level transition tables.
"""

from __future__ import annotations

from husl.core import ir
from husl.core.naming import upper_snake_case
from husl.generate.generator import Artifact, Generator, GeneratorResult, RegionPlaceholder

from .utils import (
    NUMERIC_TYPES,
    ImportSet,
    bulleted,
    default_region_body,
    docstring,
    is_string_type,
    python_literal,
    python_type,
    safe_identifier,
)

INDENT = "    "


def field_line(
    field: ir.FieldSpec,
    document: ir.SpecDocument,
    config,
    imports: ImportSet,
    current: str | None = None,
) -> str:
    """
    Render one pydantic field declaration.

    Examples:
        id: UUID
        status: OrderStatus = OrderStatus.draft
        total: Decimal = Field(..., ge=0)
        notes: str | None = None
    """
    annotation = python_type(field.type, document, config, imports, current)
    enum = document.get_enum(field.type.name)

    if field.default is not None:
        default = python_literal(field.default, document, enum=enum if not field.type.is_list else None)
    elif field.is_required and not field.has(ir.ConstraintKind.SYSTEM_GENERATED):
        default = "..."
    elif field.type.is_list:
        default = None
    else:
        annotation = f"{annotation} | None"
        default = "None"

    kwargs = _field_kwargs(field)
    name = safe_identifier(field.name)

    if not kwargs:
        if default is None:
            imports.add("pydantic", "Field", "third_party")
            return f"{name}: {annotation} = Field(default_factory=list)"
        if default == "...":
            return f"{name}: {annotation}"
        return f"{name}: {annotation} = {default}"

    imports.add("pydantic", "Field", "third_party")
    if default is None:
        args = ["default_factory=list", *kwargs]
    elif default == "...":
        args = ["...", *kwargs]
    else:
        args = [f"default={default}", *kwargs]
    return f"{name}: {annotation} = Field({', '.join(args)})"


def _field_kwargs(field: ir.FieldSpec) -> list[str]:
    kwargs: list[str] = []
    bounded = field.type.name in NUMERIC_TYPES and not field.type.is_list
    sized = is_string_type(field.type) or field.type.is_list
    for kind, numeric, textual in (
        (ir.ConstraintKind.MIN, "ge", "min_length"),
        (ir.ConstraintKind.MAX, "le", "max_length"),
    ):
        constraint = field.constraint(kind)
        if constraint is None or constraint.value is None:
            continue
        if bounded:
            kwargs.append(f"{numeric}={constraint.value}")
        elif sized:
            kwargs.append(f"{textual}={int(float(constraint.value))}")
    if field.has(ir.ConstraintKind.IMMUTABLE):
        kwargs.append("frozen=True")
    if field.description:
        kwargs.append(f"description={field.description!r}")

    extra: dict[str, str | bool] = {}
    if field.has(ir.ConstraintKind.SYSTEM_GENERATED):
        extra["system_generated"] = True
    for kind in (ir.ConstraintKind.REFERENCES, ir.ConstraintKind.FORMAT, ir.ConstraintKind.CONDITIONAL):
        constraint = field.constraint(kind)
        if constraint is not None and constraint.value:
            extra[kind.value] = constraint.value
    if extra:
        kwargs.append(f"json_schema_extra={extra!r}")
    return kwargs


def region(custom: ir.CustomImplementationSpec, indent: str, comment: str) -> RegionPlaceholder:
    return RegionPlaceholder(
        name=custom.name,
        hook=custom.hook,
        contract=custom.contract,
        default_body=default_region_body(custom.hook, custom.contract, indent, comment),
    )


class ModelGenerator(Generator):
    """Generates pydantic model artifacts for entities."""

    def generate(self) -> GeneratorResult:
        result = GeneratorResult()
        for entity in self.document.entities:
            if self.scope.includes("entities", entity.name):
                result.add_artifact(self.generate_entity_model(entity))
        return result

    def generate_entity_model(self, entity: ir.EntitySpec) -> Artifact:
        imports = ImportSet()
        imports.add("pydantic", "BaseModel", "third_party")
        comment = self.config.comment
        hooks = {hook: [c for c in entity.custom_implementations if c.hook == hook] for hook in ir.HookType}

        class_lines: list[str] = []
        if not hooks[ir.HookType.REPLACE]:
            class_lines.append(f"class {entity.name}(BaseModel):")
            details = [entity.description] if entity.description else []
            if entity.constraints:
                if details:
                    details.append("")
                details.extend(bulleted("Constraints", entity.constraints))
            class_lines.extend(docstring(f"{entity.name} entity.", details, INDENT))
            if entity.fields:
                class_lines.append("")
            for field in entity.fields:
                class_lines.append(INDENT + field_line(field, self.document, self.config, imports, entity.name))

        builder = self.builder()
        builder.lines(docstring(f"{entity.name} model."))
        builder.line()
        builder.line("from __future__ import annotations")
        builder.line()
        builder.lines(imports.render())

        for custom in hooks[ir.HookType.BEFORE]:
            builder.line()
            builder.line()
            builder.region(region(custom, "", comment))

        builder.line()
        builder.line()
        if class_lines:
            builder.lines(class_lines)
            for custom in hooks[ir.HookType.EXTEND]:
                builder.line()
                builder.region(region(custom, INDENT, comment), indent=INDENT)
        else:
            for custom in hooks[ir.HookType.REPLACE]:
                builder.region(region(custom, "", comment))

        for custom in hooks[ir.HookType.AFTER]:
            builder.line()
            builder.line()
            builder.region(region(custom, "", comment))

        if entity.state_machine:
            machine = self.document.get_state_machine(entity.state_machine)
        else:
            machine = next((m for m in self.document.state_machines if m.entity == entity.name), None)
        if machine is not None:
            builder.line()
            builder.line()
            builder.lines(self.state_machine_tables(machine))

        return self.make_artifact("models", entity.name, builder)

    def state_machine_tables(self, machine: ir.StateMachineSpec) -> list[str]:
        """Initial state, transition table, and per-state operation lists."""
        prefix = upper_snake_case(machine.name)
        lines = [f"# State machine: {machine.name}"]
        lines.append(f"{prefix}_STATES = {tuple(machine.state_names)!r}")
        lines.append(f"{prefix}_INITIAL = {machine.initial!r}")
        lines.append(f"{prefix}_TRANSITIONS: dict[tuple[str, str], str] = {{")
        for transition in machine.transitions:
            lines.append(f"    ({transition.source!r}, {transition.trigger!r}): {transition.target!r},")
        lines.append("}")

        allowed = {s.name: s.allowed_operations for s in machine.states if s.allowed_operations}
        prohibited = {s.name: s.prohibited_operations for s in machine.states if s.prohibited_operations}
        for suffix, table in (("ALLOWED", allowed), ("PROHIBITED", prohibited)):
            if not table:
                continue
            lines.append(f"{prefix}_{suffix}: dict[str, tuple[str, ...]] = {{")
            for state, operations in table.items():
                lines.append(f"    {state!r}: {tuple(operations)!r},")
            lines.append("}")
        return lines


__all__ = ["ModelGenerator", "field_line", "region"]

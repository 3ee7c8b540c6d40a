"""
Semantic validation for HUSL SpecDocuments.

Checks that every name the document uses resolves, that constraint and
structural invariants hold, and that naming conventions are followed.
Errors block projection; warnings are reported only.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

from . import ir
from .errors import ValidationError
from .naming import is_camel_case, is_pascal_case, is_upper_snake_case, snake_case
from .references import RefKind, Reference, collect_references

logger = logging.getLogger(__name__)

_PATH_PARAM_RE = re.compile(r"\{(?P<name>[A-Za-z_]\w*)\}")


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


_SEVERITY_ORDER = {Severity.ERROR: 0, Severity.WARNING: 1}


@dataclass(frozen=True)
class ValidationIssue:
    """
    A single semantic problem.

    Attributes:
        severity: error or warning
        code: Stable machine-readable code, e.g. ``unknown-type``
        message: Human-readable description
        location: Construct path, e.g. ``entity Order field status``
        line: Source line, when known
    """

    severity: Severity
    code: str
    message: str
    location: str = ""
    line: int | None = None

    def sort_key(self) -> tuple:
        return (_SEVERITY_ORDER[self.severity], self.code, self.location, self.message)

    def format(self) -> str:
        where = f"{self.location}: " if self.location else ""
        at = f" (line {self.line})" if self.line else ""
        return f"{self.severity.value}[{self.code}] {where}{self.message}{at}"

    def to_dict(self) -> dict[str, object]:
        return {
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "location": self.location,
            "line": self.line,
        }


@dataclass
class ValidationReport:
    """Issues found by ``validate``, sorted deterministically."""

    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    @property
    def passed(self) -> bool:
        return not self.errors

    def codes(self) -> list[str]:
        return [i.code for i in self.issues]


class _Collector:
    def __init__(self) -> None:
        self.issues: list[ValidationIssue] = []

    def error(self, code: str, message: str, location: str = "", line: int | None = None) -> None:
        self.issues.append(ValidationIssue(Severity.ERROR, code, message, location, line))

    def warning(self, code: str, message: str, location: str = "", line: int | None = None) -> None:
        self.issues.append(ValidationIssue(Severity.WARNING, code, message, location, line))


def _duplicates(names: list[str]) -> list[str]:
    return sorted(name for name, count in Counter(names).items() if count > 1)


# =============================================================================
# Reference checks
# =============================================================================


def _check_reference(document: ir.SpecDocument, ref: Reference, out: _Collector) -> None:
    kind, target = ref.kind, ref.target

    if kind == RefKind.TYPE:
        if target in ir.BUILTIN_TYPES or target in document.schema_names():
            return
        out.error("unknown-type", f"Type '{target}' is not declared", ref.referrer, ref.line)

    elif kind == RefKind.ENTITY:
        if document.get_entity(target) is None:
            out.error("unknown-entity", f"Entity '{target}' is not declared", ref.referrer, ref.line)

    elif kind == RefKind.STATE_MACHINE:
        if document.get_state_machine(target) is None:
            out.error("unknown-state-machine", f"State machine '{target}' is not declared", ref.referrer, ref.line)

    elif kind == RefKind.FIELD:
        entity_name, _, field_name = target.partition(".")
        entity = document.get_entity(entity_name)
        if entity is not None and entity.get_field(field_name) is None:
            out.error(
                "unknown-reference-target",
                f"Entity '{entity_name}' has no field '{field_name}'",
                ref.referrer,
                ref.line,
            )

    elif kind == RefKind.TRIGGER:
        if target not in document.trigger_names():
            out.error(
                "unknown-trigger",
                f"'{target}' is not a declared operation, background job or event",
                ref.referrer,
                ref.line,
            )

    elif kind == RefKind.OPERATION:
        if document.get_operation(target) is None:
            out.error("unknown-operation", f"Operation '{target}' is not declared", ref.referrer, ref.line)

    elif kind == RefKind.RULE:
        if document.get_rule(target) is None:
            out.error("unknown-rule", f"Rule '{target}' is not declared", ref.referrer, ref.line)

    elif kind == RefKind.ENUM_VALUE:
        enum_name, _, value = target.partition(".")
        enum = document.get_enum(enum_name)
        if enum is not None and value and not enum.has_value(value):
            out.error(
                "unknown-enum-value",
                f"'{value}' is not a value of enum '{enum_name}'",
                ref.referrer,
                ref.line,
            )


# =============================================================================
# Structural checks
# =============================================================================


def _check_names(document: ir.SpecDocument, out: _Collector) -> None:
    for name in _duplicates(document.schema_names()):
        out.error("duplicate-name", f"'{name}' is declared more than once as an entity, enum or type", "schema")
    for label, names in (
        ("state machine", [m.name for m in document.state_machines]),
        ("operation", [o.name for o in document.operations]),
        ("rule", [r.name for r in document.rules]),
    ):
        for name in _duplicates(names):
            out.error("duplicate-name", f"{label.capitalize()} '{name}' is declared more than once", label)


def _check_fields(owner: str, fields: list[ir.FieldSpec], out: _Collector) -> None:
    for name in _duplicates([f.name for f in fields]):
        out.error("duplicate-name", f"Field '{name}' is declared more than once", owner)

    for spec in fields:
        location = f"{owner} field {spec.name}"
        if spec.is_required and spec.is_optional:
            out.error("conflicting-constraints", "A field cannot be both required and optional", location, spec.line)

        low = spec.constraint(ir.ConstraintKind.MIN)
        high = spec.constraint(ir.ConstraintKind.MAX)
        if low and high and float(low.value) > float(high.value):
            out.error("invalid-bounds", f"min:{low.value} is greater than max:{high.value}", location, spec.line)

        kinds = [c.kind for c in spec.constraints if not c.kind.takes_value]
        for kind in _duplicates([k.value for k in kinds]):
            out.warning("repeated-constraint", f"Constraint '{kind}' is repeated", location, spec.line)


def _check_entities(document: ir.SpecDocument, out: _Collector) -> None:
    for entity in document.entities:
        owner = f"entity {entity.name}"
        _check_fields(owner, entity.fields, out)
        if not is_pascal_case(entity.name):
            out.warning("naming-convention", f"Entity '{entity.name}' should be PascalCase", owner, entity.line)
        for spec in entity.fields:
            if not is_camel_case(spec.name):
                out.warning(
                    "naming-convention", f"Field '{spec.name}' should be camelCase", f"{owner} field {spec.name}", spec.line
                )
        for name in _duplicates([c.name for c in entity.custom_implementations]):
            out.error("duplicate-region", f"Custom implementation '{name}' is declared more than once", owner)


def _check_enums(document: ir.SpecDocument, out: _Collector) -> None:
    for enum in document.enums:
        owner = f"enum {enum.name}"
        if not enum.values:
            out.warning("empty-enum", f"Enum '{enum.name}' declares no values", owner, enum.line)
        for value in _duplicates(enum.value_names):
            out.error("duplicate-name", f"Enum value '{value}' is declared more than once", owner, enum.line)
        if not is_pascal_case(enum.name):
            out.warning("naming-convention", f"Enum '{enum.name}' should be PascalCase", owner, enum.line)


def _check_custom_types(document: ir.SpecDocument, out: _Collector) -> None:
    for custom in document.custom_types:
        owner = f"type {custom.name}"
        if custom.base not in ir.BUILTIN_TYPES:
            out.error("unknown-type", f"Base type '{custom.base}' is not a built-in type", owner, custom.line)
        if custom.min_length is not None and custom.max_length is not None and custom.min_length > custom.max_length:
            out.error(
                "invalid-bounds",
                f"Minimum length {custom.min_length} exceeds maximum length {custom.max_length}",
                owner,
                custom.line,
            )
        if not is_pascal_case(custom.name):
            out.warning("naming-convention", f"Type '{custom.name}' should be PascalCase", owner, custom.line)


def _check_state_machines(document: ir.SpecDocument, out: _Collector) -> None:
    for machine in document.state_machines:
        owner = f"state machine {machine.name}"
        states = machine.state_names
        for name in _duplicates(states):
            out.error("duplicate-name", f"State '{name}' is declared more than once", owner, machine.line)

        if machine.initial is None:
            out.warning("missing-initial-state", "No initial state declared", owner, machine.line)
        elif machine.initial not in states:
            out.error("unknown-state", f"Initial state '{machine.initial}' is not declared", owner, machine.line)

        for transition in machine.transitions:
            for end in (transition.source, transition.target):
                if end not in states:
                    out.error(
                        "unknown-state",
                        f"State '{end}' is not declared",
                        f"{owner} transition {transition.source} -> {transition.target}",
                        transition.line,
                    )

        for source, trigger in machine.duplicate_triggers():
            out.warning(
                "duplicate-trigger",
                f"Trigger '{trigger}' leaves state '{source}' by more than one transition",
                owner,
                machine.line,
            )

        if machine.entity:
            entity = document.get_entity(machine.entity)
            if entity is not None and entity.state_machine and entity.state_machine != machine.name:
                out.warning(
                    "state-machine-mismatch",
                    f"Entity '{entity.name}' names state machine '{entity.state_machine}', not '{machine.name}'",
                    owner,
                    machine.line,
                )


def _check_rules(document: ir.SpecDocument, out: _Collector) -> None:
    for rule in document.rules:
        if not rule.clauses and not rule.validation:
            out.warning("empty-rule", f"Rule '{rule.name}' has no When/Then clauses", f"rule {rule.name}", rule.line)
        if rule.context.exception_to == rule.name:
            out.error("invalid-exception", "A rule cannot be an exception to itself", f"rule {rule.name}", rule.line)


def _check_operations(document: ir.SpecDocument, out: _Collector) -> None:
    for operation in document.operations:
        owner = f"operation {operation.name}"
        if not is_pascal_case(operation.name):
            out.warning("naming-convention", f"Operation '{operation.name}' should be PascalCase", owner, operation.line)

        if operation.method is None or operation.path is None:
            out.warning("missing-endpoint", "No endpoint declared", owner, operation.line)

        all_inputs = [f for _, f in operation.inputs.by_location()]
        _check_fields(f"{owner} input", all_inputs, out)
        for location, spec in operation.inputs.by_location():
            if location != ir.ParameterLocation.HEADER and not is_camel_case(spec.name):
                out.warning(
                    "naming-convention", f"Input '{spec.name}' should be camelCase", f"{owner} input {spec.name}", spec.line
                )

        declared = {f.name for f in operation.inputs.path}
        in_template = _PATH_PARAM_RE.findall(operation.path or "")
        for name in in_template:
            if name not in declared:
                out.error(
                    "undeclared-path-parameter",
                    f"Path parameter '{name}' is not declared as a Path input",
                    owner,
                    operation.line,
                )
        for name in sorted(declared - set(in_template)):
            out.warning("unused-path-parameter", f"Path input '{name}' does not appear in the path", owner, operation.line)

        for case in operation.errors:
            if not is_upper_snake_case(case.code):
                out.warning(
                    "naming-convention", f"Error code '{case.code}' should be UPPER_SNAKE_CASE", f"{owner} error {case.code}"
                )
        for name in _duplicates([c.code for c in operation.errors]):
            out.error("duplicate-name", f"Error code '{name}' is declared more than once", owner, operation.line)

        for name in _duplicates([c.name for c in operation.custom_implementations]):
            out.error("duplicate-region", f"Custom implementation '{name}' is declared more than once", owner)
        rule_regions = {f"rule_{snake_case(rule.name)}": rule.name for rule in document.rules_for(operation)}
        for custom in operation.custom_implementations:
            if custom.name in rule_regions:
                out.error(
                    "duplicate-region",
                    f"Custom implementation '{custom.name}' clashes with the region of rule '{rule_regions[custom.name]}'",
                    owner,
                )

        for name in _duplicates([t.name for t in operation.tests]):
            out.error("duplicate-name", f"Test '{name}' is declared more than once", owner, operation.line)
        for test in operation.tests:
            if test.when is None:
                out.warning("incomplete-test", f"Test '{test.name}' has no When clause", owner, test.line)


# =============================================================================
# Entry points
# =============================================================================


def validate(document: ir.SpecDocument) -> ValidationReport:
    """
    Validate a parsed document.

    Checks:
    - Type references resolve to exactly one declared or built-in type
    - Enum values used in defaults, rule literals, and test literals exist
    - ``references`` targets exist
    - State machine states, triggers, and owning entities resolve
    - Operations referenced by rules, tests, and concerns exist
    - Names are unique; naming conventions are followed (warnings)

    Args:
        document: Parsed SpecDocument

    Returns:
        ValidationReport with issues sorted by severity, code, location, message
    """
    out = _Collector()

    for ref in collect_references(document):
        _check_reference(document, ref, out)

    _check_names(document, out)
    _check_entities(document, out)
    _check_enums(document, out)
    _check_custom_types(document, out)
    _check_state_machines(document, out)
    _check_rules(document, out)
    _check_operations(document, out)

    # the same reference can be reached from two collectors
    unique = list(dict.fromkeys(out.issues))
    report = ValidationReport(issues=sorted(unique, key=ValidationIssue.sort_key))
    logger.debug(f"Validated {document.source}: {len(report.errors)} error(s), {len(report.warnings)} warning(s)")
    return report


def require_valid(report: ValidationReport) -> ValidationReport:
    """
    Raise if the report has errors.

    Raises:
        ValidationError: If any issue has error severity
    """
    if report.errors:
        lines = [issue.format() for issue in report.errors]
        raise ValidationError(f"{len(report.errors)} validation error(s):\n" + "\n".join(lines), report.errors)
    return report


__all__ = [
    "Severity",
    "ValidationIssue",
    "ValidationReport",
    "validate",
    "require_valid",
]

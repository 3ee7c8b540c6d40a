"""
Cross-reference collection for SpecDocuments.

Every place one construct names another is reported as a Reference. The
validator uses the collection to find unresolved names, the refactor
applier uses it to detect dangling references after removals, and the
projector uses it to compute the dependency closure of a selective scope.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from . import ir

_ENUM_LITERAL_RE = re.compile(r"\b(?P<enum>[A-Z]\w*)\.(?P<value>[A-Za-z0-9_][\w-]*)")
_SUBJECT_RE = re.compile(r"^(?P<root>[A-Za-z_]\w*)\.(?P<field>[A-Za-z_]\w*)(?:\.\w+)*$")

RESPONSE_SUBJECTS = frozenset({"response", "result"})


class RefKind(str, Enum):
    """What a reference points at."""

    TYPE = "type"  # entity, enum or custom type used as a type
    ENTITY = "entity"  # entity named outside a type position
    STATE_MACHINE = "state-machine"
    TRIGGER = "trigger"  # operation, job or event named as a transition trigger
    OPERATION = "operation"
    RULE = "rule"
    FIELD = "field"  # "Entity.field"
    ENUM_VALUE = "enum-value"  # "Enum.value"


@dataclass(frozen=True)
class Reference:
    """A single named reference from one construct to another."""

    kind: RefKind
    target: str
    referrer: str
    line: int | None = None

    def describe(self) -> str:
        location = f" (line {self.line})" if self.line else ""
        return f"{self.referrer} -> {self.kind.value} '{self.target}'{location}"


def literal_value(text: str) -> str:
    """Strip quotes and an ``Enum.`` prefix from a literal."""
    value = text.strip().strip("\"'")
    if "." in value and value.split(".", 1)[0][:1].isupper():
        value = value.split(".", 1)[1]
    return value


def subject_owner(
    document: ir.SpecDocument,
    operation: ir.OperationSpec | None,
    test: ir.OperationTestSpec,
    subject: str,
) -> tuple[str, str] | None:
    """
    Return the ``(entity, field)`` an assertion subject such as ``order.status`` addresses.

    ``response`` and ``result`` resolve through the operation's success type;
    any other root resolves through the test's given bindings. The field is
    not checked for existence.
    """
    match = _SUBJECT_RE.match(subject.strip())
    if not match:
        return None
    root, field_name = match.group("root"), match.group("field")

    entity_name: str | None = None
    binding = test.binding(root)
    if binding is not None:
        entity_name = binding.type_name
    elif root in RESPONSE_SUBJECTS and operation is not None:
        entity_name = next((s.type.name for s in operation.success if s.type is not None), None)
    if entity_name is None or document.get_entity(entity_name) is None:
        return None
    return entity_name, field_name


def resolve_subject(
    document: ir.SpecDocument,
    operation: ir.OperationSpec | None,
    test: ir.OperationTestSpec,
    subject: str,
) -> tuple[ir.EntitySpec, ir.FieldSpec] | None:
    """Like ``subject_owner``, but returns the declared entity and field, or None."""
    owner = subject_owner(document, operation, test, subject)
    if owner is None:
        return None
    entity = document.get_entity(owner[0])
    field = entity.get_field(owner[1]) if entity else None
    if field is None:
        return None
    return entity, field


def enum_literals(document: ir.SpecDocument, text: str) -> Iterator[tuple[str, str]]:
    """Yield ``(enum, value)`` for every ``Enum.value`` literal naming a declared enum."""
    enums = {e.name for e in document.enums}
    for match in _ENUM_LITERAL_RE.finditer(text):
        if match.group("enum") in enums:
            yield match.group("enum"), match.group("value")


def _enum_of(document: ir.SpecDocument, field: ir.FieldSpec) -> ir.EnumSpec | None:
    return document.get_enum(field.type.name)


# =============================================================================
# Collectors
# =============================================================================


def _type_references(document: ir.SpecDocument) -> Iterator[Reference]:
    for entity in document.entities:
        for field in entity.fields:
            yield Reference(RefKind.TYPE, field.type.name, f"entity {entity.name} field {field.name}", field.line)
    for operation in document.operations:
        for location, field in operation.inputs.by_location():
            yield Reference(
                RefKind.TYPE,
                field.type.name,
                f"operation {operation.name} {location.value} input {field.name}",
                field.line,
            )
        for label, shapes in (("success", operation.success), ("error", operation.error_responses)):
            for shape in shapes:
                if shape.type is not None:
                    yield Reference(RefKind.TYPE, shape.type.name, f"operation {operation.name} {label} response", operation.line)
        for test in operation.tests:
            for binding in test.given:
                if binding.type_name:
                    yield Reference(
                        RefKind.TYPE,
                        binding.type_name,
                        f"operation {operation.name} test '{test.name}' given {binding.variable}",
                        test.line,
                    )


def _field_references(document: ir.SpecDocument) -> Iterator[Reference]:
    for entity in document.entities:
        for field in entity.fields:
            target = field.references
            if target is None:
                continue
            referrer = f"entity {entity.name} field {field.name} references"
            yield Reference(RefKind.ENTITY, target[0], referrer, field.line)
            yield Reference(RefKind.FIELD, f"{target[0]}.{target[1]}", referrer, field.line)

    for operation in document.operations:
        for test in operation.tests:
            referrer = f"operation {operation.name} test '{test.name}'"
            for binding in test.given:
                if binding.type_name and document.get_entity(binding.type_name) is not None:
                    for key in binding.fields:
                        yield Reference(
                            RefKind.FIELD, f"{binding.type_name}.{key}", f"{referrer} given {binding.variable}", test.line
                        )
            for assertion in test.then:
                # response.* may address the HTTP response rather than a field
                if assertion.subject.split(".", 1)[0] in RESPONSE_SUBJECTS:
                    continue
                owner = subject_owner(document, operation, test, assertion.subject)
                if owner is not None:
                    yield Reference(RefKind.FIELD, f"{owner[0]}.{owner[1]}", f"{referrer} then", test.line)


def _state_machine_references(document: ir.SpecDocument) -> Iterator[Reference]:
    for entity in document.entities:
        if entity.state_machine:
            yield Reference(RefKind.STATE_MACHINE, entity.state_machine, f"entity {entity.name}", entity.line)
    for machine in document.state_machines:
        if machine.entity:
            yield Reference(RefKind.ENTITY, machine.entity, f"state machine {machine.name}", machine.line)
        for transition in machine.transitions:
            yield Reference(
                RefKind.TRIGGER,
                transition.trigger,
                f"state machine {machine.name} transition {transition.source} -> {transition.target}",
                transition.line,
            )
        for state in machine.states:
            for name in [*state.allowed_operations, *state.prohibited_operations]:
                yield Reference(RefKind.TRIGGER, name, f"state machine {machine.name} state {state.name}", machine.line)


def _operation_references(document: ir.SpecDocument) -> Iterator[Reference]:
    for rule in document.rules:
        for name in rule.applies_to:
            yield Reference(RefKind.OPERATION, name, f"rule {rule.name} applies to", rule.line)
        if rule.context.exception_to:
            yield Reference(RefKind.RULE, rule.context.exception_to, f"rule {rule.name} exception-to", rule.line)
    for operation in document.operations:
        for name in operation.rules:
            yield Reference(RefKind.RULE, name, f"operation {operation.name} rules", operation.line)
        for test in operation.tests:
            if test.when is not None:
                yield Reference(
                    RefKind.OPERATION,
                    test.when.operation,
                    f"operation {operation.name} test '{test.name}' when",
                    test.line,
                )
    for concern in document.concerns:
        for name in concern.applies_to:
            if name != ir.WILDCARD:
                yield Reference(RefKind.OPERATION, name, f"concern {concern.name} applies to", concern.line)


def _enum_value_references(document: ir.SpecDocument) -> Iterator[Reference]:
    for entity in document.entities:
        for field in entity.fields:
            enum = _enum_of(document, field)
            if enum is not None and field.default is not None:
                yield Reference(
                    RefKind.ENUM_VALUE,
                    f"{enum.name}.{literal_value(field.default)}",
                    f"entity {entity.name} field {field.name} default",
                    field.line,
                )

    for rule in document.rules:
        texts = [c.when for c in rule.clauses] + [c.then for c in rule.clauses]
        texts += [rule.validation or "", rule.implementation or "", rule.example or ""]
        for text in texts:
            for enum_name, value in enum_literals(document, text):
                yield Reference(RefKind.ENUM_VALUE, f"{enum_name}.{value}", f"rule {rule.name}", rule.line)

    for operation in document.operations:
        for test in operation.tests:
            referrer = f"operation {operation.name} test '{test.name}'"
            for binding in test.given:
                entity = document.get_entity(binding.type_name) if binding.type_name else None
                if entity is None:
                    continue
                for key, value in binding.fields.items():
                    field = entity.get_field(key)
                    enum = _enum_of(document, field) if field else None
                    if enum is not None:
                        yield Reference(
                            RefKind.ENUM_VALUE, f"{enum.name}.{literal_value(value)}", f"{referrer} given {binding.variable}", test.line
                        )
            for assertion in test.then:
                resolved = resolve_subject(document, operation, test, assertion.subject)
                enum = _enum_of(document, resolved[1]) if resolved else None
                if enum is not None and assertion.expected:
                    yield Reference(
                        RefKind.ENUM_VALUE,
                        f"{enum.name}.{literal_value(assertion.expected)}",
                        f"{referrer} then {assertion.subject}",
                        test.line,
                    )
                for text in (assertion.subject, assertion.expected):
                    for enum_name, value in enum_literals(document, text):
                        yield Reference(RefKind.ENUM_VALUE, f"{enum_name}.{value}", f"{referrer} then", test.line)


def collect_references(document: ir.SpecDocument) -> list[Reference]:
    """Every reference in the document, grouped by collector in a stable order."""
    refs: list[Reference] = []
    refs.extend(_type_references(document))
    refs.extend(_field_references(document))
    refs.extend(_state_machine_references(document))
    refs.extend(_operation_references(document))
    refs.extend(_enum_value_references(document))
    return refs


def references_to(document: ir.SpecDocument, kinds: set[RefKind], target: str) -> list[Reference]:
    """References of the given kinds whose target is exactly ``target``."""
    return [ref for ref in collect_references(document) if ref.kind in kinds and ref.target == target]


__all__ = [
    "RefKind",
    "Reference",
    "RESPONSE_SUBJECTS",
    "literal_value",
    "subject_owner",
    "resolve_subject",
    "enum_literals",
    "collect_references",
    "references_to",
]

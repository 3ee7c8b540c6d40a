"""
Refactor applier.

Applies RefactoringMetadata to a SpecDocument and returns a new document.
The input document is never modified.

Every metadata key names an element as it exists in the input document.
The edit runs in four steps:

1. Removals delete entities, enums, fields, enum values, operations and rules.
   State machines owned by a removed entity go with it.
2. Modifications replace a field's type/constraints/description or an enum
   value's description.
3. Renames rewrite every construct through old-to-new tables built upfront.
   Each name is looked up exactly once, so A->B plus B->C never turns A into
   C and A->B plus B->A swaps the two.
4. Additions append fields and enum values to the end of their target.

Removals that leave a reference behind raise DanglingReferenceError.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from . import ir
from .errors import ArtifactIOError, DanglingReferenceError, RefactoringError
from .naming import camel_case
from .parser_impl.fields import FieldSyntaxError, parse_field_line, parse_field_tail
from .parser_impl.records import parse_refactoring_yaml
from .parser_impl.schema import parse_enum_value
from .references import RESPONSE_SUBJECTS, RefKind, collect_references, resolve_subject

logger = logging.getLogger(__name__)

# A bare identifier optionally followed by dotted members: Order, order.notes, OrderStatus.draft
_TOKEN_RE = re.compile(r"(?<![\w.])(?P<head>[A-Za-z_]\w*)(?P<tail>(?:\.[A-Za-z_]\w*)*)")


# =============================================================================
# Metadata loading
# =============================================================================


def load_metadata(text: str) -> ir.RefactoringMetadata:
    """
    Load refactoring metadata from YAML text.

    Raises:
        RefactoringError: If the YAML is malformed or has unknown keys
    """
    try:
        return parse_refactoring_yaml(text)
    except ValueError as e:
        raise RefactoringError(f"Invalid refactoring metadata: {e}") from e


def load_metadata_file(path: Path | str) -> ir.RefactoringMetadata:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ArtifactIOError(path, e) from e
    return load_metadata(text)


def metadata_for_version(document: ir.SpecDocument, version: str | ir.SemanticVersion) -> ir.RefactoringMetadata:
    """
    Return the refactoring metadata recorded for a version in the document's history.

    Raises:
        RefactoringError: If the version is not in the history or carries no metadata
    """
    try:
        target = ir.SemanticVersion.parse(version) if isinstance(version, str) else version
    except ValueError as e:
        raise RefactoringError(str(e)) from e
    for entry in document.version_history:
        if entry.version == target:
            if entry.refactoring is None:
                raise RefactoringError(f"Version {target} has no refactoring metadata")
            return entry.refactoring
    known = ", ".join(str(e.version) for e in document.version_history) or "none"
    raise RefactoringError(f"Version {target} is not in the version history (known: {known})")


# =============================================================================
# Removals
# =============================================================================


def _targets(mapping: dict, document: ir.SpecDocument) -> dict[str, object]:
    """Explicitly named entity keys (``"*"`` dropped), each checked to exist."""
    expanded: dict[str, object] = {}
    for key, value in mapping.items():
        if key == ir.WILDCARD:
            continue
        if document.get_entity(key) is None:
            raise RefactoringError(f"Entity '{key}' does not exist")
        expanded[key] = value
    return expanded


def _require(names: list[str], existing: list[str], label: str) -> None:
    for name in names:
        if name not in existing:
            raise RefactoringError(f"{label} '{name}' does not exist")


def _apply_removals(document: ir.SpecDocument, removals: ir.RemovalSet) -> tuple[ir.SpecDocument, list[tuple[set[RefKind], str]]]:
    """Delete elements; return the document and the (kinds, target) pairs that must no longer be referenced."""
    _require(removals.entities, [e.name for e in document.entities], "Entity")
    _require(removals.enums, [e.name for e in document.enums], "Enum")
    _require(removals.operations, [o.name for o in document.operations], "Operation")
    _require(removals.rules, [r.name for r in document.rules], "Rule")

    removed: list[tuple[set[RefKind], str]] = []
    for name in removals.entities:
        removed.append(({RefKind.TYPE, RefKind.ENTITY}, name))
    for name in removals.enums:
        removed.append(({RefKind.TYPE}, name))
    for name in removals.operations:
        removed.append(({RefKind.OPERATION, RefKind.TRIGGER}, name))
    for name in removals.rules:
        removed.append(({RefKind.RULE}, name))

    field_removals: dict[str, set[str]] = {}
    wildcard = set(removals.fields.get(ir.WILDCARD, []))
    explicit = _targets(removals.fields, document)
    for entity in document.entities:
        names = set(explicit.get(entity.name, [])) | {n for n in wildcard if entity.get_field(n)}
        for name in explicit.get(entity.name, []):
            if entity.get_field(name) is None:
                raise RefactoringError(f"Entity '{entity.name}' has no field '{name}'")
        if names:
            field_removals[entity.name] = names
            removed.extend(({RefKind.FIELD}, f"{entity.name}.{n}") for n in sorted(names))

    value_removals: dict[str, set[str]] = {}
    for enum_name, values in removals.enum_values.items():
        enum = document.get_enum(enum_name)
        if enum is None:
            raise RefactoringError(f"Enum '{enum_name}' does not exist")
        _require(values, enum.value_names, f"Value of enum {enum_name}")
        value_removals[enum_name] = set(values)
        removed.extend(({RefKind.ENUM_VALUE}, f"{enum_name}.{v}") for v in values)

    gone_entities = set(removals.entities)
    entities = [
        e.model_copy(update={"fields": [f for f in e.fields if f.name not in field_removals.get(e.name, set())]})
        for e in document.entities
        if e.name not in gone_entities
    ]
    enums = [
        e.model_copy(update={"values": [v for v in e.values if v.value not in value_removals.get(e.name, set())]})
        for e in document.enums
        if e.name not in removals.enums
    ]
    # Owned state machines are removed with their entity
    machines = [m for m in document.state_machines if m.entity not in gone_entities]
    for machine in document.state_machines:
        if machine.entity in gone_entities:
            removed.append(({RefKind.STATE_MACHINE}, machine.name))

    updated = document.model_copy(
        update={
            "entities": entities,
            "enums": enums,
            "state_machines": machines,
            "operations": [o for o in document.operations if o.name not in removals.operations],
            "rules": [r for r in document.rules if r.name not in removals.rules],
        }
    )
    return updated, removed


def _check_dangling(document: ir.SpecDocument, removed: list[tuple[set[RefKind], str]], renames: _Renamer) -> None:
    if not removed:
        return
    references = collect_references(document)
    problems: list[str] = []
    names: list[str] = []
    for kinds, target in removed:
        # a referrer renamed in the same edit points at the renamed target
        candidates = {target, renames.rename_target(kinds, target)}
        hits = [ref for ref in references if ref.kind in kinds and ref.target in candidates]
        if hits:
            names.append(target)
            problems.extend(ref.describe() for ref in hits)
    if problems:
        raise DanglingReferenceError(", ".join(names), problems)


# =============================================================================
# Modifications and additions
# =============================================================================


def _parse_field(text: str, name: str | None = None) -> ir.FieldSpec:
    try:
        if name is None:
            return parse_field_line(text)
        return parse_field_tail(name, text)
    except FieldSyntaxError as e:
        raise RefactoringError(f"Invalid field definition '{text}': {e.message} (expected {e.expected})") from e


def _apply_modifications(document: ir.SpecDocument, modifications: ir.ModificationSet) -> ir.SpecDocument:
    wildcard = modifications.fields.get(ir.WILDCARD, {})
    explicit = _targets(modifications.fields, document)

    entities = []
    for entity in document.entities:
        changes = {n: t for n, t in wildcard.items() if entity.get_field(n)}
        changes.update(explicit.get(entity.name, {}))
        if not changes:
            entities.append(entity)
            continue
        fields = []
        for spec in entity.fields:
            if spec.name in changes:
                fields.append(_parse_field(changes[spec.name], spec.name).model_copy(update={"line": spec.line}))
            else:
                fields.append(spec)
        for name in changes:
            if entity.get_field(name) is None:
                raise RefactoringError(f"Entity '{entity.name}' has no field '{name}'")
        entities.append(entity.model_copy(update={"fields": fields}))

    enums = []
    for enum in document.enums:
        changes = modifications.enum_values.get(enum.name, {})
        _require(list(changes), enum.value_names, f"Value of enum {enum.name}")
        values = [
            v.model_copy(update={"description": changes[v.value]}) if v.value in changes else v for v in enum.values
        ]
        enums.append(enum.model_copy(update={"values": values}))
    _require(list(modifications.enum_values), [e.name for e in document.enums], "Enum")

    return document.model_copy(update={"entities": entities, "enums": enums})


def _apply_additions(document: ir.SpecDocument, additions: ir.AdditionSet, renames: _Renamer) -> ir.SpecDocument:
    # keys may use the name before or after this edit's renames
    by_new = {renames.entities.get(k, k): v for k, v in additions.fields.items()}
    wildcard = [_parse_field(text) for text in additions.fields.get(ir.WILDCARD, [])]

    entities = []
    for entity in document.entities:
        added = wildcard + [_parse_field(text) for text in by_new.get(entity.name, [])]
        for spec in added:
            if entity.get_field(spec.name) is not None:
                raise RefactoringError(f"Entity '{entity.name}' already has a field '{spec.name}'")
        entities.append(entity.model_copy(update={"fields": [*entity.fields, *added]}) if added else entity)
    _require(
        [k for k in by_new if k != ir.WILDCARD],
        [e.name for e in document.entities],
        "Entity",
    )

    enum_additions = {renames.enums.get(k, k): v for k, v in additions.enum_values.items()}
    _require(list(enum_additions), [e.name for e in document.enums], "Enum")
    enums = []
    for enum in document.enums:
        values = list(enum.values)
        for text in enum_additions.get(enum.name, []):
            value = parse_enum_value(text.strip())
            if value is None:
                raise RefactoringError(f"Invalid enum value '{text}'")
            if enum.has_value(value.value):
                raise RefactoringError(f"Enum '{enum.name}' already has a value '{value.value}'")
            values.append(value)
        enums.append(enum.model_copy(update={"values": values}))

    return document.model_copy(update={"entities": entities, "enums": enums})


# =============================================================================
# Renames
# =============================================================================


class _Renamer:
    """
    Single-pass rename over a whole document.

    All lookups go through tables keyed by names in the pre-rename document
    (``self.source``); results are never fed back into a lookup.
    """

    def __init__(self, source: ir.SpecDocument, renames: ir.RenameSet):
        self.source = source
        self.entities = dict(renames.entities)
        self.enums = dict(renames.enums)
        self.operations = dict(renames.operations)
        self.rules = dict(renames.rules)
        self.wildcard_fields = dict(renames.fields.get(ir.WILDCARD, {}))
        self.fields = {k: dict(v) for k, v in renames.fields.items() if k != ir.WILDCARD}
        self.enum_values = {k: dict(v) for k, v in renames.enum_values.items()}
        # Entity, enum, operation and rule names share one lookup for free text
        self.names = {**self.rules, **self.operations, **self.enums, **self.entities}
        self._entity_variables = {camel_case(e.name): e.name for e in source.entities}

    def check(self) -> None:
        """Every renamed element must exist in the source document."""
        _require(list(self.entities), [e.name for e in self.source.entities], "Entity")
        _require(list(self.enums), [e.name for e in self.source.enums], "Enum")
        _require(list(self.operations), [o.name for o in self.source.operations], "Operation")
        _require(list(self.rules), [r.name for r in self.source.rules], "Rule")
        for entity_name, mapping in self.fields.items():
            entity = self.source.get_entity(entity_name)
            if entity is None:
                raise RefactoringError(f"Entity '{entity_name}' does not exist")
            _require(list(mapping), entity.field_names, f"Field of entity {entity_name}")
        for enum_name, mapping in self.enum_values.items():
            enum = self.source.get_enum(enum_name)
            if enum is None:
                raise RefactoringError(f"Enum '{enum_name}' does not exist")
            _require(list(mapping), enum.value_names, f"Value of enum {enum_name}")

    # -------------------------------------------------------------------------
    # Name lookups
    # -------------------------------------------------------------------------

    def type_name(self, name: str) -> str:
        return self.entities.get(name, self.enums.get(name, name))

    def field_name(self, entity: str | None, name: str) -> str:
        """New name of ``entity.name``; with no known owner, see ``loose_field_name``."""
        if entity is None:
            return self.loose_field_name(name)
        specific = self.fields.get(entity, {})
        if name in specific:
            return specific[name]
        return self.wildcard_fields.get(name, name)

    def loose_field_name(self, name: str) -> str:
        """
        Rename a field reached through an unresolved owner.

        Entity-specific renames apply only when no other entity has a field of
        that name; otherwise the owner is ambiguous and the text is left alone.
        """
        if name in self.wildcard_fields:
            return self.wildcard_fields[name]
        holders = [e.name for e in self.source.entities if e.get_field(name) is not None]
        if len(holders) == 1 and name in self.fields.get(holders[0], {}):
            return self.fields[holders[0]][name]
        return name

    def enum_value(self, enum: str, value: str) -> str:
        return self.enum_values.get(enum, {}).get(value, value)

    def rename_target(self, kinds: set[RefKind], target: str) -> str:
        """The post-rename spelling of a reference target."""
        if kinds & {RefKind.FIELD, RefKind.ENUM_VALUE}:
            owner, _, member = target.partition(".")
            if RefKind.FIELD in kinds:
                return f"{self.type_name(owner)}.{self.field_name(owner, member)}"
            return f"{self.type_name(owner)}.{self.enum_value(owner, member)}"
        if kinds & {RefKind.OPERATION, RefKind.TRIGGER}:
            return self.operations.get(target, target)
        if RefKind.RULE in kinds:
            return self.rules.get(target, target)
        return self.type_name(target)

    # -------------------------------------------------------------------------
    # Text
    # -------------------------------------------------------------------------

    def text(self, value: str, variables: dict[str, str] | None = None) -> str:
        """
        Rewrite names inside free text.

        ``Entity``, ``Enum``, operation and rule names are rewritten as whole
        words. ``Entity.field`` and ``Enum.value`` use the qualifying name;
        ``var.field`` resolves ``var`` through ``variables`` (test bindings) or,
        failing that, through the camelCase form of an entity name.
        """
        variables = variables or {}

        def replace(match: re.Match) -> str:
            head = match.group("head")
            members = match.group("tail").split(".")[1:] if match.group("tail") else []
            new_head = self.names.get(head, head)
            if members:
                if self.source.get_enum(head) is not None:
                    members[0] = self.enum_value(head, members[0])
                elif self.source.get_entity(head) is not None:
                    members[0] = self.field_name(head, members[0])
                else:
                    owner = variables.get(head) or self._entity_variables.get(head)
                    members[0] = self.field_name(owner, members[0])
                members[1:] = [self.loose_field_name(m) for m in members[1:]]
            return ".".join([new_head, *members])

        return _TOKEN_RE.sub(replace, value)

    def texts(self, values: list[str], variables: dict[str, str] | None = None) -> list[str]:
        return [self.text(v, variables) for v in values]

    def optional_text(self, value: str | None) -> str | None:
        return self.text(value) if value is not None else None

    def enum_literal(self, enum: str | None, literal: str, variables: dict[str, str] | None = None) -> str:
        """Rename a literal that holds a value of ``enum``, keeping any quotes."""
        stripped = literal.strip()
        quote = stripped[0] if len(stripped) >= 2 and stripped[0] in "\"'" and stripped[-1] == stripped[0] else ""
        bare = stripped[1:-1] if quote else stripped
        if enum is not None and bare in self.enum_values.get(enum, {}):
            return f"{quote}{self.enum_values[enum][bare]}{quote}"
        return self.text(literal, variables)

    # -------------------------------------------------------------------------
    # Constructs
    # -------------------------------------------------------------------------

    def field(self, spec: ir.FieldSpec, owner: str | None) -> ir.FieldSpec:
        enum = spec.type.name if self.source.get_enum(spec.type.name) else None
        constraints = []
        for constraint in spec.constraints:
            value = constraint.value
            if constraint.kind == ir.ConstraintKind.REFERENCES and value:
                target_entity, _, target_field = value.partition(".")
                value = f"{self.type_name(target_entity)}.{self.field_name(target_entity, target_field)}"
            elif constraint.kind == ir.ConstraintKind.DEFAULT and value:
                value = self.enum_literal(enum, value)
            elif constraint.kind == ir.ConstraintKind.CONDITIONAL and value:
                value = self.text(value)
            constraints.append(constraint.model_copy(update={"value": value}))
        return spec.model_copy(
            update={
                "name": self.field_name(owner, spec.name) if owner else spec.name,
                "type": spec.type.model_copy(update={"name": self.type_name(spec.type.name)}),
                "constraints": constraints,
            }
        )

    def custom_implementation(self, entry: ir.CustomImplementationSpec) -> ir.CustomImplementationSpec:
        return entry.model_copy(update={"contract": self.text(entry.contract)})

    def entity(self, entity: ir.EntitySpec) -> ir.EntitySpec:
        return entity.model_copy(
            update={
                "name": self.type_name(entity.name),
                "fields": [self.field(f, entity.name) for f in entity.fields],
                "constraints": self.texts(entity.constraints),
                "custom_implementations": [self.custom_implementation(c) for c in entity.custom_implementations],
            }
        )

    def enum(self, enum: ir.EnumSpec) -> ir.EnumSpec:
        return enum.model_copy(
            update={
                "name": self.type_name(enum.name),
                "values": [v.model_copy(update={"value": self.enum_value(enum.name, v.value)}) for v in enum.values],
            }
        )

    def state_machine(self, machine: ir.StateMachineSpec) -> ir.StateMachineSpec:
        op = self.operations
        states = [
            s.model_copy(
                update={
                    "entry_condition": self.text(s.entry_condition),
                    "allowed_operations": [op.get(n, n) for n in s.allowed_operations],
                    "prohibited_operations": [op.get(n, n) for n in s.prohibited_operations],
                }
            )
            for s in machine.states
        ]
        transitions = [
            t.model_copy(
                update={
                    "trigger": op.get(t.trigger, t.trigger),
                    "preconditions": self.texts(t.preconditions),
                    "effects": self.texts(t.effects),
                }
            )
            for t in machine.transitions
        ]
        entity = self.entities.get(machine.entity, machine.entity) if machine.entity else None
        return machine.model_copy(update={"entity": entity, "states": states, "transitions": transitions})

    def rule(self, rule: ir.RuleSpec) -> ir.RuleSpec:
        context = rule.context
        if context.exception_to:
            context = context.model_copy(update={"exception_to": self.rules.get(context.exception_to, context.exception_to)})
        return rule.model_copy(
            update={
                "name": self.rules.get(rule.name, rule.name),
                "description": self.text(rule.description),
                "clauses": [ir.RuleClause(when=self.text(c.when), then=self.text(c.then)) for c in rule.clauses],
                "validation": self.optional_text(rule.validation),
                "implementation": self.optional_text(rule.implementation),
                "example": self.optional_text(rule.example),
                "applies_to": [self.operations.get(n, n) for n in rule.applies_to],
                "context": context,
            }
        )

    def _variables(self, operation: ir.OperationSpec, test: ir.OperationTestSpec) -> dict[str, str]:
        variables = {
            b.variable: b.type_name
            for b in test.given
            if b.type_name and self.source.get_entity(b.type_name) is not None
        }
        success = next((s.type.name for s in operation.success if s.type is not None), None)
        if success and self.source.get_entity(success) is not None:
            for name in RESPONSE_SUBJECTS:
                variables.setdefault(name, success)
        return variables

    def test(self, operation: ir.OperationSpec, test: ir.OperationTestSpec) -> ir.OperationTestSpec:
        variables = self._variables(operation, test)

        given = []
        for binding in test.given:
            entity = self.source.get_entity(binding.type_name) if binding.type_name else None
            fields: dict[str, str] = {}
            for key, value in binding.fields.items():
                spec = entity.get_field(key) if entity else None
                enum = spec.type.name if spec and self.source.get_enum(spec.type.name) else None
                new_key = self.field_name(entity.name, key) if entity else key
                fields[new_key] = self.enum_literal(enum, value, variables)
            given.append(
                binding.model_copy(
                    update={
                        "type_name": self.type_name(binding.type_name) if binding.type_name else None,
                        "fields": fields,
                        "value": self.text(binding.value, variables) if binding.value is not None else None,
                    }
                )
            )

        when = test.when
        if when is not None:
            when = ir.Invocation(
                operation=self.operations.get(when.operation, when.operation),
                arguments=self.text(when.arguments, variables),
            )

        then = []
        for assertion in test.then:
            resolved = resolve_subject(self.source, operation, test, assertion.subject)
            enum = None
            if resolved and self.source.get_enum(resolved[1].type.name):
                enum = resolved[1].type.name
            then.append(
                assertion.model_copy(
                    update={
                        "subject": self.text(assertion.subject, variables),
                        "expected": self.enum_literal(enum, assertion.expected, variables),
                    }
                )
            )

        return test.model_copy(update={"given": given, "when": when, "then": then})

    def operation(self, operation: ir.OperationSpec) -> ir.OperationSpec:
        def shapes(items: list[ir.ResponseShape]) -> list[ir.ResponseShape]:
            return [
                s.model_copy(update={"type": s.type.model_copy(update={"name": self.type_name(s.type.name)})})
                if s.type is not None
                else s
                for s in items
            ]

        inputs = operation.inputs.model_copy(
            update={
                location.value: [self.field(f, None) for f in getattr(operation.inputs, location.value)]
                for location in ir.ParameterLocation
            }
        )
        errors = [
            e.model_copy(update={"condition": self.text(e.condition), "message": self.text(e.message)})
            for e in operation.errors
        ]
        return operation.model_copy(
            update={
                "name": self.operations.get(operation.name, operation.name),
                "description": self.text(operation.description),
                "inputs": inputs,
                "success": shapes(operation.success),
                "error_responses": shapes(operation.error_responses),
                "preconditions": self.texts(operation.preconditions),
                "effects": self.texts(operation.effects),
                "errors": errors,
                "rules": [self.rules.get(n, n) for n in operation.rules],
                "custom_implementations": [self.custom_implementation(c) for c in operation.custom_implementations],
                "tests": [self.test(operation, t) for t in operation.tests],
            }
        )

    def document(self) -> ir.SpecDocument:
        doc = self.source
        ops = self.operations
        return doc.model_copy(
            update={
                "entities": [self.entity(e) for e in doc.entities],
                "enums": [self.enum(e) for e in doc.enums],
                "state_machines": [self.state_machine(m) for m in doc.state_machines],
                "rules": [self.rule(r) for r in doc.rules],
                "operations": [self.operation(o) for o in doc.operations],
                "events": [
                    e.model_copy(update={"trigger": self.text(e.trigger), "payload": self.texts(e.payload)})
                    for e in doc.events
                ],
                "background_jobs": [
                    j.model_copy(update={"trigger": self.text(j.trigger), "behavior": self.texts(j.behavior)})
                    for j in doc.background_jobs
                ],
                "concerns": [
                    c.model_copy(
                        update={
                            "applies_to": [ops.get(n, n) for n in c.applies_to],
                            "behavior": self.texts(c.behavior),
                        }
                    )
                    for c in doc.concerns
                ],
            }
        )


def _check_unique(document: ir.SpecDocument) -> None:
    groups = {
        "type": document.schema_names(),
        "operation": [o.name for o in document.operations],
        "rule": [r.name for r in document.rules],
    }
    for label, names in groups.items():
        seen: set[str] = set()
        for name in names:
            if name in seen:
                raise RefactoringError(f"Renaming produces two {label}s named '{name}'")
            seen.add(name)
    for entity in document.entities:
        if len(set(entity.field_names)) != len(entity.field_names):
            raise RefactoringError(f"Renaming produces duplicate field names in entity '{entity.name}'")
    for enum in document.enums:
        if len(set(enum.value_names)) != len(enum.value_names):
            raise RefactoringError(f"Renaming produces duplicate values in enum '{enum.name}'")


# =============================================================================
# Entry point
# =============================================================================


def apply_refactoring(document: ir.SpecDocument, metadata: ir.RefactoringMetadata) -> ir.SpecDocument:
    """
    Apply refactoring metadata and return the new document.

    Args:
        document: Source document (left unchanged)
        metadata: Renames, additions, removals and modifications

    Returns:
        New SpecDocument

    Raises:
        RefactoringError: If metadata names elements that do not exist or collides names
        DanglingReferenceError: If a removal leaves references behind
    """
    # Renamed names must exist in the input, not only in the post-removal document
    _Renamer(document, metadata.renames).check()

    updated, removed = _apply_removals(document, metadata.removals)
    updated = _apply_modifications(updated, metadata.modifications)

    renamer = _Renamer(updated, metadata.renames)
    updated = renamer.document()
    _check_unique(updated)

    updated = _apply_additions(updated, metadata.additions, renamer)
    _check_dangling(updated, removed, renamer)

    logger.info(
        f"Applied refactoring to {document.source}: "
        f"{len(removed)} removal(s), "
        f"{sum(len(m) for m in [renamer.entities, renamer.enums, renamer.operations, renamer.rules])} rename(s)"
    )
    return updated


__all__ = [
    "apply_refactoring",
    "load_metadata",
    "load_metadata_file",
    "metadata_for_version",
]

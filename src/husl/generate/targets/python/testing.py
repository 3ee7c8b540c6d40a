"""
Test generation for the Python target.

Each operation with behavioural tests gets one pytest module. A test's given
bindings become local variables, its ``when`` invocation calls the service
function, and each ``then`` assertion becomes an ``assert`` statement.
"""

from __future__ import annotations

import logging
import re

from husl.core import ir
from husl.core.naming import snake_case
from husl.core.parser_impl.fields import FieldSyntaxError, split_top_level
from husl.core.references import RESPONSE_SUBJECTS, resolve_subject
from husl.generate.generator import Artifact, Generator, GeneratorResult

from .utils import (
    ELEMENT_KINDS,
    ImportSet,
    docstring,
    element_kind,
    enum_literal_names,
    function_name,
    module_path,
    python_literal,
    safe_identifier,
)

logger = logging.getLogger(__name__)

INDENT = "    "

_DOTTED_RE = re.compile(r"^[A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*$")

# Canonical assertion operator -> format string over (subject, expected)
ASSERTION_TEMPLATES: dict[str, str] = {
    "equals": "assert {subject} == {expected}",
    "not equals": "assert {subject} != {expected}",
    "greater than": "assert {subject} > {expected}",
    "less than": "assert {subject} < {expected}",
    "at least": "assert {subject} >= {expected}",
    "at most": "assert {subject} <= {expected}",
    "contains": "assert {expected} in {subject}",
    "does not contain": "assert {expected} not in {subject}",
    "matches": "assert search({expected}, str({subject}))",
    "exists": "assert {subject} is not None",
    "does not exist": "assert {subject} is None",
}

RESPONSE_VARIABLE = "response"


class OperationTestGenerator(Generator):
    """Generates one pytest module per operation with tests."""

    def generate(self) -> GeneratorResult:
        result = GeneratorResult()
        for operation in self.document.operations:
            if operation.tests and self.scope.includes("operations", operation.name):
                result.add_artifact(self.generate_tests(operation))
        return result

    def generate_tests(self, operation: ir.OperationSpec) -> Artifact:
        imports = ImportSet()
        functions = [self.test_function(operation, test, imports) for test in operation.tests]

        builder = self.builder()
        builder.lines(docstring(f"Tests for {operation.name}."))
        builder.line()
        builder.line("from __future__ import annotations")
        rendered = imports.render()
        if rendered:
            builder.line()
            builder.lines(rendered)
        for lines in functions:
            builder.line()
            builder.line()
            builder.lines(lines)
        return self.make_artifact("tests", operation.name, builder)

    def test_function(self, operation: ir.OperationSpec, test: ir.OperationTestSpec, imports: ImportSet) -> list[str]:
        lines = [f"def test_{safe_identifier(snake_case(test.name))}():"]
        lines.extend(docstring(test.name, indent=INDENT))

        variables: set[str] = set()
        for binding in test.given:
            lines.append(INDENT + self.given_line(binding, frozenset(variables), imports))
            variables.add(binding.variable)

        if test.when is not None:
            lines.append(INDENT + self.when_line(test.when, frozenset(variables), imports))
            variables.add(RESPONSE_VARIABLE)

        for assertion in test.then:
            lines.append(INDENT + self.assertion_line(operation, test, assertion, frozenset(variables), imports))
        return lines

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def given_line(self, binding: ir.GivenBinding, variables: frozenset[str], imports: ImportSet) -> str:
        name = safe_identifier(binding.variable)
        if binding.type_name is None:
            value = python_literal(binding.value or "None", self.document, variables=variables)
            self.import_literals(value, imports)
            return f"{name} = {value}"

        entity = self.document.get_entity(binding.type_name)
        pairs = []
        for key, raw in binding.fields.items():
            field = entity.get_field(key) if entity else None
            enum = self.document.get_enum(field.type.name) if field and not field.type.is_list else None
            value = python_literal(raw, self.document, enum=enum, variables=variables)
            self.import_literals(value, imports)
            pairs.append((key, value))

        if entity is None:
            items = ", ".join(f"{key!r}: {value}" for key, value in pairs)
            return f"{name} = {{{items}}}"
        self.import_element(binding.type_name, imports)
        args = ", ".join(f"{safe_identifier(key)}={value}" for key, value in pairs)
        return f"{name} = {binding.type_name}({args})"

    def when_line(self, invocation: ir.Invocation, variables: frozenset[str], imports: ImportSet) -> str:
        target = self.document.get_operation(invocation.operation)
        callee = function_name(self.config, invocation.operation)
        imports.add(module_path(self.config, "operations", invocation.operation), callee, "local")

        fields = [field for _, field in target.inputs.by_location()] if target else []
        try:
            parts = split_top_level(invocation.arguments) if invocation.arguments else []
        except FieldSyntaxError:
            logger.debug(f"Passing unbalanced arguments of {invocation} through verbatim")
            return f"{RESPONSE_VARIABLE} = {callee}({invocation.arguments})"

        args = []
        for index, part in enumerate(parts):
            if not part:
                continue
            key, sep, raw = part.partition(":")
            if not sep or not key.strip().isidentifier():
                # positional: bind to the declared input at this position
                key, raw = (fields[index].name if index < len(fields) else ""), part
            key = key.strip()
            field = next((f for f in fields if f.name == key), None)
            enum = self.document.get_enum(field.type.name) if field and not field.type.is_list else None
            value = python_literal(raw, self.document, enum=enum, variables=variables)
            self.import_literals(value, imports)
            args.append(f"{safe_identifier(key)}={value}" if key else value)
        return f"{RESPONSE_VARIABLE} = {callee}({', '.join(args)})"

    def assertion_line(
        self,
        operation: ir.OperationSpec,
        test: ir.OperationTestSpec,
        assertion: ir.Assertion,
        variables: frozenset[str],
        imports: ImportSet,
    ) -> str:
        subject = assertion.subject.strip()
        root = subject.split(".", 1)[0]
        template = ASSERTION_TEMPLATES.get(assertion.operator)
        if root in RESPONSE_SUBJECTS:
            subject = RESPONSE_VARIABLE + subject[len(root) :]
            root = RESPONSE_VARIABLE
        if template is None or not _DOTTED_RE.match(subject) or root not in variables:
            return f"# Then: {assertion.subject} {assertion.operator} {assertion.expected}".rstrip()

        resolved = resolve_subject(self.document, operation, test, assertion.subject)
        field = resolved[1] if resolved else None
        enum = self.document.get_enum(field.type.name) if field and not field.type.is_list else None
        expected = ""
        if assertion.expected:
            expected = python_literal(assertion.expected, self.document, enum=enum, variables=variables)
            self.import_literals(expected, imports)
        if assertion.operator == "matches":
            imports.add("re", "search")
        return template.format(subject=subject, expected=expected)

    # -------------------------------------------------------------------------
    # Imports
    # -------------------------------------------------------------------------

    def import_element(self, name: str, imports: ImportSet) -> None:
        kind = element_kind(self.document, name)
        if kind is not None:
            imports.add(module_path(self.config, ELEMENT_KINDS[kind], name), name, "local")

    def import_literals(self, expression: str, imports: ImportSet) -> None:
        for enum_name in enum_literal_names(self.document, expression):
            self.import_element(enum_name, imports)


__all__ = ["OperationTestGenerator", "ASSERTION_TEMPLATES"]

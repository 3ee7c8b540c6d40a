"""
Operations section parser, including embedded tests.

    Operation: GetOrder
      Endpoint: GET /orders/{orderId}
      Input:
        Path:
          orderId: UUID (required)
      Output:
        Success: 200 Order
        Error: 404 ErrorResponse
      Errors:
        - ORDER_NOT_FOUND (404): no order has this id => Order {orderId} was not found
      Rules: MinimumOrderValue
      Custom Implementation:
        - audit_lookup (after): input: Order
      Tests:
        Test: returns an existing order
          Given:
            order = Order { id: "o-1", status: draft }
          When: GetOrder(orderId: order.id)
          Then:
            - response.status equals 200
            - order.status equals draft
"""

from __future__ import annotations

import re

from .. import ir
from ..outline import OutlineNode
from .base import ParseContext, block_value, item_texts, split_keyword, split_names, strip_item
from .fields import FieldSyntaxError, find_closing, parse_field_line, parse_type_ref, split_top_level
from .schema import parse_custom_implementations

HTTP_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"})

_OPERATION_RE = re.compile(r"^Operation:\s*(?P<name>[A-Za-z_]\w*)\s*$")
_TEST_RE = re.compile(r"^(?:[-*]\s+)?Test:\s*(?P<name>.+?)\s*$")
_ENDPOINT_RE = re.compile(r"^(?P<method>[A-Za-z]+)\s+(?P<path>/\S*)$")
_RESPONSE_RE = re.compile(r"^(?P<status>\d{3})?\s*(?P<type>\S.*)?$")
_ERROR_RE = re.compile(r"^(?P<code>[A-Za-z_]\w*)\s*\(\s*(?P<status>\d{3})\s*\)\s*:\s*(?P<rest>.*)$")
_BINDING_RE = re.compile(r"^(?P<var>[A-Za-z_]\w*)\s*=\s*(?P<rest>.+)$")
_OBJECT_RE = re.compile(r"^(?P<type>[A-Za-z_]\w*)?\s*\{")
_CALL_RE = re.compile(r"^(?P<op>[A-Za-z_]\w*)\s*\(")

# Canonical operator names, longest phrases first so "is not" wins over "is".
ASSERTION_OPERATORS: dict[str, str] = {
    "greater than or equal to": "at least",
    "less than or equal to": "at most",
    "does not contain": "does not contain",
    "does not exist": "does not exist",
    "does not equal": "not equals",
    "not equals": "not equals",
    "greater than": "greater than",
    "less than": "less than",
    "at least": "at least",
    "at most": "at most",
    "is not": "not equals",
    "equals": "equals",
    "contains": "contains",
    "matches": "matches",
    "exists": "exists",
    "is": "equals",
    "!=": "not equals",
    "==": "equals",
    ">=": "at least",
    "<=": "at most",
    ">": "greater than",
    "<": "less than",
}
UNARY_OPERATORS = frozenset({"exists", "does not exist"})

_OPERATOR_RE = re.compile(
    r"\s(?P<op>" + "|".join(re.escape(op) for op in ASSERTION_OPERATORS) + r")(?=\s|$)"
)


def parse_operations_section(nodes: list[OutlineNode], ctx: ParseContext, doc: dict) -> None:
    for node in nodes:
        match = _OPERATION_RE.match(node.text)
        if match:
            operation = parse_operation(node, match.group("name"), ctx)
            if operation is not None:
                doc["operations"].append(operation)
        elif node.text.startswith("Operation:"):
            ctx.error(node, f"malformed block header '{node.text}'", "'Operation: Name'")


def parse_operation(node: OutlineNode, name: str, ctx: ParseContext) -> ir.OperationSpec | None:
    data: dict = {"name": name, "line": node.line}
    before = len(ctx.issues)

    for child in node.children:
        keyword = split_keyword(child.text)
        if keyword is None:
            ctx.error(child, f"unexpected line '{child.text}' in operation {name}", "'Key: value'")
            continue
        key, value = keyword
        if key == "description":
            data["description"] = block_value(child, value)
        elif key == "endpoint":
            match = _ENDPOINT_RE.match(value)
            if not match or match.group("method").upper() not in HTTP_METHODS:
                ctx.error(child, f"malformed endpoint '{value}'", "METHOD /path/{param}")
                continue
            data["method"] = match.group("method").upper()
            data["path"] = match.group("path")
        elif key == "input":
            data["inputs"] = _parse_inputs(child, ctx)
        elif key == "output":
            success, errors = _parse_outputs(child, ctx)
            data["success"] = success
            data["error_responses"] = errors
        elif key in ("preconditions", "effects"):
            data[key] = ([value] if value else []) + item_texts(child)
        elif key == "errors":
            data["errors"] = [e for e in (_parse_error_case(c, ctx) for c in child.children) if e]
        elif key == "sla":
            data["sla"] = _parse_sla(child, value)
        elif key == "rules":
            data["rules"] = split_names(value) + [n for t in item_texts(child) for n in split_names(t)]
        elif key == "custom implementation":
            data["custom_implementations"] = parse_custom_implementations(child, ctx)
        elif key == "tests":
            tests = []
            for test_node in child.children:
                test = parse_test(test_node, ctx)
                if test is not None:
                    tests.append(test)
            data["tests"] = tests
        else:
            ctx.error(child, f"unknown operation property '{key}'", "Endpoint, Input, Output, Errors, Tests, ...")

    if len(ctx.issues) > before:
        return None
    return ir.OperationSpec(**data)


def _field_list(node: OutlineNode, ctx: ParseContext) -> list[ir.FieldSpec]:
    fields = []
    for child in node.children:
        try:
            fields.append(parse_field_line(strip_item(child.text), line=child.line))
        except FieldSyntaxError as e:
            ctx.error(child, e.message, e.expected, column=child.indent + e.column)
    return fields


def _parse_inputs(node: OutlineNode, ctx: ParseContext) -> ir.OperationInputs:
    groups: dict[str, list[ir.FieldSpec]] = {loc.value: [] for loc in ir.ParameterLocation}
    for child in node.children:
        keyword = split_keyword(child.text)
        location = keyword[0] if keyword and not keyword[1] else None
        if location in groups:
            groups[location].extend(_field_list(child, ctx))
            continue
        # bare field lines under Input: are body parameters
        try:
            groups["body"].append(parse_field_line(strip_item(child.text), line=child.line))
        except FieldSyntaxError as e:
            ctx.error(child, e.message, "Path:, Query:, Body:, Header: or a field line")
    return ir.OperationInputs(**groups)


def _parse_response(node: OutlineNode, value: str, ctx: ParseContext) -> ir.ResponseShape | None:
    match = _RESPONSE_RE.match(value)
    if not match or not value:
        ctx.error(node, f"malformed response '{value}'", "status and/or Type")
        return None
    type_ref = None
    if match.group("type"):
        try:
            type_ref, rest = parse_type_ref(match.group("type"))
        except FieldSyntaxError as e:
            ctx.error(node, e.message, e.expected)
            return None
        if rest.strip():
            ctx.error(node, f"unexpected '{rest.strip()}' after response type", "end of line")
            return None
    status = int(match.group("status")) if match.group("status") else None
    return ir.ResponseShape(status=status, type=type_ref)


def _parse_outputs(node: OutlineNode, ctx: ParseContext) -> tuple[list[ir.ResponseShape], list[ir.ResponseShape]]:
    success: list[ir.ResponseShape] = []
    errors: list[ir.ResponseShape] = []
    for child in node.children:
        keyword = split_keyword(strip_item(child.text))
        if keyword is None or keyword[0] not in ("success", "error"):
            ctx.error(child, f"unexpected output line '{child.text}'", "Success: or Error:")
            continue
        shape = _parse_response(child, keyword[1], ctx)
        if shape is not None:
            (success if keyword[0] == "success" else errors).append(shape)
    return success, errors


def _parse_error_case(node: OutlineNode, ctx: ParseContext) -> ir.ErrorCaseSpec | None:
    text = strip_item(node.text)
    match = _ERROR_RE.match(text)
    if not match:
        ctx.error(node, f"malformed error case '{text}'", "CODE (status): condition => message")
        return None
    condition, _, message = match.group("rest").partition("=>")
    return ir.ErrorCaseSpec(
        code=match.group("code"),
        status=int(match.group("status")),
        condition=condition.strip(),
        message=message.strip(),
    )


def _parse_sla(node: OutlineNode, value: str) -> dict[str, str]:
    sla: dict[str, str] = {}
    if value:
        sla["summary"] = value
    for text in item_texts(node):
        key, sep, rest = text.partition(":")
        if sep:
            sla[key.strip().lower()] = rest.strip()
        else:
            sla[text] = ""
    return sla


# =============================================================================
# Tests
# =============================================================================


def parse_test(node: OutlineNode, ctx: ParseContext) -> ir.OperationTestSpec | None:
    match = _TEST_RE.match(node.text)
    if not match:
        ctx.error(node, f"malformed test header '{node.text}'", "'Test: name'")
        return None

    given: list[ir.GivenBinding] = []
    when: ir.Invocation | None = None
    then: list[ir.Assertion] = []
    before = len(ctx.issues)

    for child in node.children:
        keyword = split_keyword(child.text)
        key, value = keyword if keyword else ("", "")
        if key == "given":
            lines = ([(child, value)] if value else []) + [(c, strip_item(c.text)) for c in child.children]
            for line_node, text in lines:
                binding = parse_binding(text)
                if binding is None:
                    ctx.error(line_node, f"malformed given binding '{text}'", "name = Type { field: value, ... }")
                else:
                    given.append(binding)
        elif key == "when":
            when = parse_invocation(value)
            if when is None:
                ctx.error(child, f"malformed invocation '{value}'", "Operation(arguments)")
        elif key == "then":
            lines = ([(child, value)] if value else []) + [(c, strip_item(c.text)) for c in child.children]
            for line_node, text in lines:
                assertion = parse_assertion(text)
                if assertion is None:
                    ctx.error(line_node, f"malformed assertion '{text}'", "subject operator expected")
                else:
                    then.append(assertion)
        else:
            ctx.error(child, f"unexpected line '{child.text}' in test", "Given, When or Then")

    if len(ctx.issues) > before:
        return None
    return ir.OperationTestSpec(name=match.group("name"), given=given, when=when, then=then, line=node.line)


def parse_binding(text: str) -> ir.GivenBinding | None:
    """Parse ``name = Type { key: value, ... }`` or ``name = literal``."""
    match = _BINDING_RE.match(text.strip())
    if not match:
        return None
    variable, rest = match.group("var"), match.group("rest").strip()

    obj = _OBJECT_RE.match(rest)
    if not obj:
        return ir.GivenBinding(variable=variable, value=rest)

    brace = rest.index("{")
    try:
        close = find_closing(rest, brace)
        parts = split_top_level(rest[brace + 1 : close])
    except FieldSyntaxError:
        return None
    if rest[close + 1 :].strip():
        return None

    fields: dict[str, str] = {}
    for part in parts:
        if not part:
            continue
        key, sep, value = part.partition(":")
        if not sep or not key.strip().isidentifier():
            return None
        fields[key.strip()] = value.strip()
    return ir.GivenBinding(variable=variable, type_name=obj.group("type"), fields=fields)


def parse_invocation(text: str) -> ir.Invocation | None:
    """Parse ``Operation(arguments)``."""
    text = text.strip()
    match = _CALL_RE.match(text)
    if not match:
        return None
    open_index = match.end() - 1
    try:
        close = find_closing(text, open_index)
    except FieldSyntaxError:
        return None
    if text[close + 1 :].strip():
        return None
    return ir.Invocation(operation=match.group("op"), arguments=text[open_index + 1 : close].strip())


def parse_assertion(text: str) -> ir.Assertion | None:
    """Split an assertion into subject, canonical operator, and expected value."""
    text = text.strip()
    match = _OPERATOR_RE.search(text)
    if not match:
        return None
    subject = text[: match.start()].strip()
    operator = ASSERTION_OPERATORS[match.group("op")]
    expected = text[match.end() :].strip()
    if not subject:
        return None
    if operator in UNARY_OPERATORS:
        if expected:
            return None
    elif not expected:
        return None
    return ir.Assertion(subject=subject, operator=operator, expected=expected)


__all__ = [
    "HTTP_METHODS",
    "ASSERTION_OPERATORS",
    "parse_operations_section",
    "parse_operation",
    "parse_test",
    "parse_binding",
    "parse_invocation",
    "parse_assertion",
]

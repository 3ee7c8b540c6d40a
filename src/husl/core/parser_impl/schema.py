"""
Schema section parser: entities, enums, and custom types.

    Entity: Order
      Description: A customer order
      id: UUID (required, immutable, system-generated)
      status: OrderStatus (required, default:draft)
      items: List<OrderItem> (optional)
      Constraints:
        - total equals the sum of item prices
      State Machine: OrderLifecycle
      Custom Implementation:
        - pricing_helpers (extend): adds computed totals

    OrderStatus Enum:
      - draft: Being assembled
      - submitted: Awaiting payment

    Type: Sku
      Base: String
      Length: 6..12
      Allowed: [A-Z0-9-]
      Valid:
        - AB-1234
      Invalid:
        - ab => lower case is not allowed
"""

from __future__ import annotations

import re

from .. import ir
from ..outline import OutlineNode
from .base import ParseContext, block_value, item_texts, split_keyword, strip_item
from .fields import FieldSyntaxError, parse_field_line, split_top_level

_ENTITY_RE = re.compile(r"^Entity:\s*(?P<name>[A-Za-z_]\w*)\s*(?P<inline>\{.*\})?\s*$")
_ENUM_SUFFIX_RE = re.compile(r"^(?P<name>[A-Za-z_]\w*)\s+Enum:\s*$")
_ENUM_PREFIX_RE = re.compile(r"^Enum:\s*(?P<name>[A-Za-z_]\w*)\s*$")
_TYPE_RE = re.compile(r"^Type:\s*(?P<name>[A-Za-z_]\w*)\s*$")
_ENUM_VALUE_RE = re.compile(r"^(?P<value>[A-Za-z0-9_][\w-]*)\s*(?::\s*(?P<desc>.*))?$")
_CUSTOM_IMPL_RE = re.compile(
    r"^(?P<name>[A-Za-z_][\w.-]*)\s*\(\s*(?P<hook>[a-z]+)\s*\)\s*(?::\s*(?P<contract>.*))?$"
)
_LENGTH_RE = re.compile(r"^(?P<min>\d+)?\s*\.\.\s*(?P<max>\d+)?$")


def parse_schema_section(nodes: list[OutlineNode], ctx: ParseContext, doc: dict) -> None:
    """Dispatch each top-level block of the Schema section by keyword prefix."""
    for node in nodes:
        if match := _ENTITY_RE.match(node.text):
            entity = parse_entity(node, match.group("name"), match.group("inline"), ctx)
            if entity is not None:
                doc["entities"].append(entity)
        elif match := (_ENUM_SUFFIX_RE.match(node.text) or _ENUM_PREFIX_RE.match(node.text)):
            doc["enums"].append(parse_enum(node, match.group("name"), ctx))
        elif match := _TYPE_RE.match(node.text):
            doc["custom_types"].append(parse_custom_type(node, match.group("name"), ctx))
        elif node.text.startswith(("Entity:", "Type:", "Enum:")):
            ctx.error(node, f"malformed block header '{node.text}'", "'Entity: Name', 'Name Enum:' or 'Type: Name'")
        # any other top-level line is prose


def parse_custom_implementations(node: OutlineNode, ctx: ParseContext) -> list[ir.CustomImplementationSpec]:
    """Parse ``- name (hook): contract`` entries."""
    entries: list[ir.CustomImplementationSpec] = []
    for child in node.children:
        text = strip_item(child.text)
        match = _CUSTOM_IMPL_RE.match(text)
        if not match:
            ctx.error(child, f"malformed custom implementation '{text}'", "name (before|after|replace|extend): contract")
            continue
        try:
            hook = ir.HookType(match.group("hook"))
        except ValueError:
            ctx.error(child, f"unknown hook type '{match.group('hook')}'", "before, after, replace or extend")
            continue
        contract = match.group("contract") or ""
        if child.children:
            contract = block_value(child, contract)
        entries.append(
            ir.CustomImplementationSpec(name=match.group("name"), hook=hook, contract=contract.strip(), line=child.line)
        )
    return entries


def _field(node: OutlineNode, text: str, ctx: ParseContext) -> ir.FieldSpec | None:
    try:
        return parse_field_line(text, line=node.line)
    except FieldSyntaxError as e:
        ctx.error(node, e.message, e.expected, column=node.indent + e.column)
        return None


def parse_entity(node: OutlineNode, name: str, inline: str | None, ctx: ParseContext) -> ir.EntitySpec | None:
    fields: list[ir.FieldSpec] = []
    constraints: list[str] = []
    state_machine: str | None = None
    description = ""
    custom: list[ir.CustomImplementationSpec] = []
    failed = False

    if inline:
        try:
            parts = split_top_level(inline[1:-1], ";")
        except FieldSyntaxError as e:
            ctx.error(node, e.message, e.expected)
            return None
        for part in parts:
            if not part:
                continue
            field = _field(node, part, ctx)
            failed = failed or field is None
            if field is not None:
                fields.append(field)

    for child in node.children:
        keyword = split_keyword(child.text)
        key, value = keyword if keyword else ("", "")
        if key == "fields":
            for grandchild in child.children:
                field = _field(grandchild, strip_item(grandchild.text), ctx)
                failed = failed or field is None
                if field is not None:
                    fields.append(field)
        elif key == "constraints":
            constraints.extend(item_texts(child))
            if value:
                constraints.insert(0, value)
        elif key == "state machine":
            state_machine = value or None
        elif key == "description":
            description = block_value(child, value)
        elif key == "custom implementation":
            custom.extend(parse_custom_implementations(child, ctx))
        else:
            field = _field(child, strip_item(child.text), ctx)
            failed = failed or field is None
            if field is not None:
                fields.append(field)

    if failed:
        return None
    return ir.EntitySpec(
        name=name,
        fields=fields,
        constraints=constraints,
        state_machine=state_machine,
        description=description,
        custom_implementations=custom,
        line=node.line,
    )


def parse_enum_value(text: str) -> ir.EnumValueSpec | None:
    """Parse ``value: description`` (bullet already removed)."""
    match = _ENUM_VALUE_RE.match(text)
    if not match:
        return None
    return ir.EnumValueSpec(value=match.group("value"), description=(match.group("desc") or "").strip())


def parse_enum(node: OutlineNode, name: str, ctx: ParseContext) -> ir.EnumSpec:
    values: list[ir.EnumValueSpec] = []
    for child in node.children:
        text = strip_item(child.text)
        value = parse_enum_value(text)
        if value is None:
            ctx.error(child, f"malformed enum value '{text}'", "value: description")
            continue
        values.append(value)
    return ir.EnumSpec(name=name, values=values, line=node.line)


def parse_custom_type(node: OutlineNode, name: str, ctx: ParseContext) -> ir.CustomTypeSpec:
    data: dict = {"name": name, "line": node.line}
    for child in node.children:
        keyword = split_keyword(child.text)
        if keyword is None:
            ctx.error(child, f"unexpected line '{child.text}' in type {name}", "'Key: value'")
            continue
        key, value = keyword
        if key == "base":
            data["base"] = value
        elif key == "length":
            match = _LENGTH_RE.match(value)
            if not match or not (match.group("min") or match.group("max")):
                ctx.error(child, f"malformed length '{value}'", "min..max")
                continue
            data["min_length"] = int(match.group("min")) if match.group("min") else None
            data["max_length"] = int(match.group("max")) if match.group("max") else None
        elif key in ("allowed", "forbidden"):
            items = item_texts(child)
            if value:
                items.insert(0, value)
            data[key] = items
        elif key == "pattern":
            data["pattern"] = value
        elif key == "rules":
            data["rules"] = item_texts(child)
        elif key == "description":
            data["description"] = block_value(child, value)
        elif key in ("valid", "valid examples"):
            data["valid_examples"] = item_texts(child)
        elif key in ("invalid", "invalid examples"):
            examples = []
            for text in item_texts(child):
                example_value, _, reason = text.partition("=>")
                examples.append(ir.InvalidExample(value=example_value.strip(), reason=reason.strip()))
            data["invalid_examples"] = examples
        else:
            ctx.error(child, f"unknown type property '{key}'", "Base, Length, Allowed, Forbidden, Pattern, Rules, Valid or Invalid")
    return ir.CustomTypeSpec(**data)


__all__ = [
    "parse_schema_section",
    "parse_custom_implementations",
    "parse_entity",
    "parse_enum",
    "parse_enum_value",
    "parse_custom_type",
]

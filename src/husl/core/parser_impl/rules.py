"""
Rules section parser.

    ## Pricing

    Rule: MinimumOrderValue
      Description: Orders below the minimum are rejected
      Applies To: SubmitOrder
      When: order.total < 10
      Then: reject with ORDER_TOO_SMALL
      Context:
        critical
        reasoning: card fees exceed margin below 10
        status: approved

``## Heading`` lines set the default category for the rules that follow.
"""

from __future__ import annotations

import re

from .. import ir
from ..outline import OutlineNode
from .base import ParseContext, block_value, split_keyword, split_names

_RULE_RE = re.compile(r"^Rule:\s*(?P<name>[A-Za-z_][\w-]*)\s*$")
_SUBHEADING_RE = re.compile(r"^##+\s+(?P<title>.+?)\s*$")
_CONTEXT_KEYS = {"critical", "exception-to", "reasoning", "status", "todo"}


def parse_rules_section(nodes: list[OutlineNode], ctx: ParseContext, doc: dict) -> None:
    category: str | None = None
    for node in nodes:
        heading = _SUBHEADING_RE.match(node.text)
        if heading:
            category = heading.group("title")
            continue
        match = _RULE_RE.match(node.text)
        if match:
            rule = parse_rule(node, match.group("name"), category, ctx)
            if rule is not None:
                doc["rules"].append(rule)
        elif node.text.startswith("Rule:"):
            ctx.error(node, f"malformed block header '{node.text}'", "'Rule: Name'")


def parse_rule(node: OutlineNode, name: str, category: str | None, ctx: ParseContext) -> ir.RuleSpec | None:
    data: dict = {"name": name, "category": category, "line": node.line}
    clauses: list[ir.RuleClause] = []
    pending_when: OutlineNode | None = None
    pending_text = ""
    failed = False

    for child in node.children:
        keyword = split_keyword(child.text)
        if keyword is None:
            ctx.error(child, f"unexpected line '{child.text}' in rule {name}", "'Key: value'")
            failed = True
            continue
        key, value = keyword
        if key == "when":
            if pending_when is not None:
                ctx.error(pending_when, "When clause without a matching Then", "Then:")
                failed = True
            pending_when, pending_text = child, block_value(child, value)
        elif key == "then":
            if pending_when is None:
                ctx.error(child, "Then clause without a preceding When", "When:")
                failed = True
                continue
            clauses.append(ir.RuleClause(when=pending_text, then=block_value(child, value)))
            pending_when, pending_text = None, ""
        elif key == "category":
            data["category"] = value or category
        elif key in ("description", "validation", "implementation", "example"):
            data[key] = block_value(child, value)
        elif key in ("applies to", "operations"):
            data["applies_to"] = split_names(value)
        elif key == "context":
            context = _parse_context(child, ctx)
            if context is None:
                failed = True
            else:
                data["context"] = context
        else:
            ctx.error(child, f"unknown rule property '{key}'", "When, Then, Description, Applies To or Context")
            failed = True

    if pending_when is not None:
        ctx.error(pending_when, "When clause without a matching Then", "Then:")
        failed = True
    if failed:
        return None
    return ir.RuleSpec(clauses=clauses, **data)


def _parse_context(node: OutlineNode, ctx: ParseContext) -> ir.RuleContext | None:
    values: dict = {}
    ok = True
    for child in node.children:
        key, _, value = child.text.partition(":")
        key = key.strip().lower().lstrip("-* ").strip()
        value = value.strip()
        if key not in _CONTEXT_KEYS:
            ctx.error(child, f"unknown context tag '{key}'", "critical, exception-to, reasoning, status or todo")
            ok = False
            continue
        if key == "critical":
            values["critical"] = value.lower() not in ("false", "no")
        else:
            values[key.replace("-", "_")] = value or None
    return ir.RuleContext(**values) if ok else None


__all__ = ["parse_rules_section", "parse_rule"]

"""
State Machines section parser.
"""

from __future__ import annotations

import re

from .. import ir
from ..outline import OutlineNode
from .base import ParseContext, block_value, item_texts, split_keyword, split_names

_MACHINE_RE = re.compile(r"^State Machine:\s*(?P<name>[A-Za-z_]\w*)\s*$")
_STATE_RE = re.compile(r"^(?:[-*]\s+)?(?P<name>[A-Za-z_][\w-]*)\s*(?::\s*(?P<desc>.*))?$")
_TRANSITION_RE = re.compile(
    r"^(?:[-*]\s+)?(?P<source>[A-Za-z_][\w-]*)\s*->\s*(?P<target>[A-Za-z_][\w-]*)\s*:\s*(?P<trigger>[A-Za-z_]\w*)\s*$"
)


def parse_state_machines_section(nodes: list[OutlineNode], ctx: ParseContext, doc: dict) -> None:
    for node in nodes:
        match = _MACHINE_RE.match(node.text)
        if match:
            doc["state_machines"].append(parse_state_machine(node, match.group("name"), ctx))
        elif node.text.startswith("State Machine:"):
            ctx.error(node, f"malformed block header '{node.text}'", "'State Machine: Name'")


def parse_state_machine(node: OutlineNode, name: str, ctx: ParseContext) -> ir.StateMachineSpec:
    entity: str | None = None
    initial: str | None = None
    states: list[ir.StateSpec] = []
    transitions: list[ir.TransitionSpec] = []

    for child in node.children:
        keyword = split_keyword(child.text)
        if keyword is None:
            ctx.error(child, f"unexpected line '{child.text}' in state machine {name}", "Entity, Initial, States or Transitions")
            continue
        key, value = keyword
        if key == "entity":
            entity = value or None
        elif key in ("initial", "initial state"):
            initial = value or None
        elif key == "states":
            for state_node in child.children:
                state = _parse_state(state_node, ctx)
                if state is not None:
                    states.append(state)
        elif key == "transitions":
            for transition_node in child.children:
                transition = _parse_transition(transition_node, ctx)
                if transition is not None:
                    transitions.append(transition)
        else:
            ctx.error(child, f"unknown state machine property '{key}'", "Entity, Initial, States or Transitions")

    return ir.StateMachineSpec(
        name=name,
        entity=entity,
        states=states,
        initial=initial,
        transitions=transitions,
        line=node.line,
    )


def _parse_state(node: OutlineNode, ctx: ParseContext) -> ir.StateSpec | None:
    match = _STATE_RE.match(node.text)
    if not match:
        ctx.error(node, f"malformed state '{node.text}'", "name: description")
        return None

    entry = ""
    allowed: list[str] = []
    prohibited: list[str] = []
    for child in node.children:
        keyword = split_keyword(child.text)
        key, value = keyword if keyword else ("", "")
        if key in ("entry", "entry condition"):
            entry = block_value(child, value)
        elif key == "allowed":
            allowed = split_names(value)
        elif key == "prohibited":
            prohibited = split_names(value)
        else:
            ctx.error(child, f"unexpected line '{child.text}' in state", "Entry, Allowed or Prohibited")

    return ir.StateSpec(
        name=match.group("name"),
        description=(match.group("desc") or "").strip(),
        entry_condition=entry,
        allowed_operations=allowed,
        prohibited_operations=prohibited,
    )


def _parse_transition(node: OutlineNode, ctx: ParseContext) -> ir.TransitionSpec | None:
    match = _TRANSITION_RE.match(node.text)
    if not match:
        ctx.error(node, f"malformed transition '{node.text}'", "source -> target: Trigger")
        return None

    preconditions: list[str] = []
    effects: list[str] = []
    for child in node.children:
        keyword = split_keyword(child.text)
        key, value = keyword if keyword else ("", "")
        if key == "preconditions":
            preconditions = ([value] if value else []) + item_texts(child)
        elif key == "effects":
            effects = ([value] if value else []) + item_texts(child)
        else:
            ctx.error(child, f"unexpected line '{child.text}' in transition", "Preconditions or Effects")

    return ir.TransitionSpec(
        source=match.group("source"),
        target=match.group("target"),
        trigger=match.group("trigger"),
        preconditions=preconditions,
        effects=effects,
        line=node.line,
    )


__all__ = ["parse_state_machines_section", "parse_state_machine"]

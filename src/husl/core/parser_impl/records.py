"""
Parsers for events, background jobs, cross-cutting concerns, and version history.

Events, jobs and concerns are kept as named records with opaque text. Version
entries may carry a ``Refactoring:`` block of YAML, loaded with
``yaml.safe_load`` and validated into RefactoringMetadata.
"""

from __future__ import annotations

import re

import yaml
from pydantic import ValidationError as PydanticValidationError

from .. import ir
from ..outline import OutlineNode
from .base import ParseContext, block_value, item_texts, split_keyword, split_names

_EVENT_RE = re.compile(r"^Event:\s*(?P<name>[A-Za-z_]\w*)\s*$")
_JOB_RE = re.compile(r"^(?:Background )?Job:\s*(?P<name>[A-Za-z_]\w*)\s*$")
_CONCERN_RE = re.compile(r"^(?:Cross-Cutting )?Concern:\s*(?P<name>[A-Za-z_][\w-]*)\s*$")
_VERSION_RE = re.compile(r"^Version:\s*(?P<version>\S+)\s*$")


def _listing(node: OutlineNode, value: str) -> list[str]:
    return ([value] if value else []) + item_texts(node)


def parse_events_section(nodes: list[OutlineNode], ctx: ParseContext, doc: dict) -> None:
    for node in nodes:
        match = _EVENT_RE.match(node.text)
        if not match:
            if node.text.startswith("Event:"):
                ctx.error(node, f"malformed block header '{node.text}'", "'Event: Name'")
            continue
        data: dict = {"name": match.group("name"), "line": node.line}
        for child in node.children:
            keyword = split_keyword(child.text)
            key, value = keyword if keyword else ("", "")
            if key == "trigger":
                data["trigger"] = block_value(child, value)
            elif key == "payload":
                data["payload"] = split_names(value) + item_texts(child)
            elif key == "description":
                data["description"] = block_value(child, value)
            else:
                ctx.error(child, f"unexpected line '{child.text}' in event", "Trigger, Payload or Description")
        doc["events"].append(ir.EventSpec(**data))


def parse_jobs_section(nodes: list[OutlineNode], ctx: ParseContext, doc: dict) -> None:
    for node in nodes:
        match = _JOB_RE.match(node.text)
        if not match:
            if node.text.startswith(("Job:", "Background Job:")):
                ctx.error(node, f"malformed block header '{node.text}'", "'Background Job: Name'")
            continue
        data: dict = {"name": match.group("name"), "line": node.line}
        for child in node.children:
            keyword = split_keyword(child.text)
            key, value = keyword if keyword else ("", "")
            if key in ("schedule", "trigger", "description"):
                data[key] = block_value(child, value)
            elif key == "behavior":
                data["behavior"] = _listing(child, value)
            else:
                ctx.error(child, f"unexpected line '{child.text}' in job", "Schedule, Trigger, Behavior or Description")
        doc["background_jobs"].append(ir.BackgroundJobSpec(**data))


def parse_concerns_section(nodes: list[OutlineNode], ctx: ParseContext, doc: dict) -> None:
    for node in nodes:
        match = _CONCERN_RE.match(node.text)
        if not match:
            if node.text.startswith(("Concern:", "Cross-Cutting Concern:")):
                ctx.error(node, f"malformed block header '{node.text}'", "'Concern: Name'")
            continue
        data: dict = {"name": match.group("name"), "line": node.line}
        for child in node.children:
            keyword = split_keyword(child.text)
            key, value = keyword if keyword else ("", "")
            if key in ("applies to", "operations"):
                data["applies_to"] = split_names(value) + item_texts(child)
            elif key == "behavior":
                data["behavior"] = _listing(child, value)
            elif key == "description":
                data["description"] = block_value(child, value)
            else:
                ctx.error(child, f"unexpected line '{child.text}' in concern", "Applies To, Behavior or Description")
        doc["concerns"].append(ir.CrossCuttingConcernSpec(**data))


# =============================================================================
# Version history
# =============================================================================


def parse_refactoring_yaml(text: str) -> ir.RefactoringMetadata:
    """
    Load refactoring metadata from YAML text.

    Raises:
        ValueError: If the YAML is malformed or does not describe refactoring metadata
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"invalid YAML: {e}") from e
    if data is None:
        return ir.RefactoringMetadata()
    if not isinstance(data, dict):
        raise ValueError("refactoring metadata must be a mapping")
    try:
        return ir.RefactoringMetadata.model_validate(data)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}" for err in e.errors()
        )
        raise ValueError(problems) from e


def parse_version_history_section(nodes: list[OutlineNode], ctx: ParseContext, doc: dict) -> None:
    for node in nodes:
        match = _VERSION_RE.match(node.text)
        if not match:
            if node.text.startswith("Version:"):
                ctx.error(node, f"malformed block header '{node.text}'", "'Version: MAJOR.MINOR.PATCH'")
            continue
        try:
            version = ir.SemanticVersion.parse(match.group("version"))
        except ValueError as e:
            ctx.error(node, str(e), "MAJOR.MINOR.PATCH")
            continue

        data: dict = {"version": version, "line": node.line}
        for child in node.children:
            keyword = split_keyword(child.text)
            key, value = keyword if keyword else ("", "")
            if key in ("type", "change type"):
                data["change_type"] = value
            elif key == "changes":
                data["changes"] = _listing(child, value)
            elif key == "refactoring":
                text = "\n".join(part for part in (value, child.block_text()) if part)
                try:
                    data["refactoring"] = parse_refactoring_yaml(text)
                except ValueError as e:
                    ctx.error(child, f"invalid refactoring metadata: {e}", "YAML renames/additions/removals/modifications")
            else:
                ctx.error(child, f"unexpected line '{child.text}' in version entry", "Type, Changes or Refactoring")
        doc["version_history"].append(ir.VersionEntry(**data))


__all__ = [
    "parse_events_section",
    "parse_jobs_section",
    "parse_concerns_section",
    "parse_version_history_section",
    "parse_refactoring_yaml",
]

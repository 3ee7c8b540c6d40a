"""
Document parser entry points.

Top-level sections are dispatched through a fixed keyword table. Sections
whose title is not in the table are kept as opaque pass-through blocks.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from . import ir
from .errors import ArtifactIOError, ParseError
from .outline import OutlineNode, build_outline, split_sections
from .parser_impl import (
    ParseContext,
    parse_concerns_section,
    parse_events_section,
    parse_jobs_section,
    parse_operations_section,
    parse_rules_section,
    parse_schema_section,
    parse_state_machines_section,
    parse_version_history_section,
)

logger = logging.getLogger(__name__)

SectionParser = Callable[[list[OutlineNode], ParseContext, dict], None]

OVERVIEW = "overview"

# Normalised section title -> parser. Synonyms share a parser.
SECTION_PARSERS: dict[str, SectionParser] = {
    "schema": parse_schema_section,
    "data model": parse_schema_section,
    "state machines": parse_state_machines_section,
    "rules": parse_rules_section,
    "business rules": parse_rules_section,
    "operations": parse_operations_section,
    "api": parse_operations_section,
    "events": parse_events_section,
    "background jobs": parse_jobs_section,
    "jobs": parse_jobs_section,
    "cross-cutting concerns": parse_concerns_section,
    "cross cutting concerns": parse_concerns_section,
    "concerns": parse_concerns_section,
    "version history": parse_version_history_section,
}

_COLLECTIONS = (
    "entities",
    "enums",
    "custom_types",
    "state_machines",
    "rules",
    "operations",
    "events",
    "background_jobs",
    "concerns",
    "version_history",
)


def parse_document(text: str, source: str = "<string>") -> ir.SpecDocument:
    """
    Parse specification document text into a SpecDocument.

    Every malformed construct in the document is collected before raising,
    so a single run reports all defects.

    Args:
        text: Document text
        source: Path or label used in error locations

    Returns:
        Parsed SpecDocument

    Raises:
        ParseError: If any construct is malformed
    """
    ctx = ParseContext(source=source)
    doc: dict = {name: [] for name in _COLLECTIONS}
    opaque: list[ir.OpaqueSection] = []
    overview = ""
    title: str | None = None

    _, sections = split_sections(text)
    for section in sections:
        key = section.key
        if key == OVERVIEW:
            overview = section.raw.strip()
            continue
        parser = SECTION_PARSERS.get(key)
        if parser is None:
            if section is sections[0]:
                title = section.title
                if not section.lines:
                    continue
            logger.debug(f"Keeping unknown section '{section.title}' as opaque text")
            opaque.append(ir.OpaqueSection(title=section.title, text=section.raw, line=section.line))
            continue
        parser(build_outline(section.lines), ctx, doc)

    if ctx.issues:
        logger.debug(f"{source}: {len(ctx.issues)} parse issue(s)")
        raise ParseError(ctx.issues)

    return ir.SpecDocument(
        source=source,
        title=title,
        overview=overview,
        opaque_sections=opaque,
        **doc,
    )


def parse_file(path: Path | str) -> ir.SpecDocument:
    """
    Read and parse a specification document from disk.

    Raises:
        ArtifactIOError: If the file cannot be read
        ParseError: If the document is malformed
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ArtifactIOError(path, e) from e
    return parse_document(text, source=str(path))


__all__ = ["SECTION_PARSERS", "parse_document", "parse_file"]

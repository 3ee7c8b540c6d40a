"""
Line outline for HUSL specification documents.

Splits raw document text into top-level sections on ``# `` headings and turns
each section body into an indentation tree. The tree is the only structure
the per-construct parsers see; it carries line numbers and byte offsets for
error reporting.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

TAB_WIDTH = 4

_HEADING_RE = re.compile(r"^#\s+(?P<title>\S.*?)\s*$")
_NUMBERING_RE = re.compile(r"^\d+(?:\.\d+)*\.?\s+")


@dataclass
class SourceLine:
    """A single non-blank line of the document."""

    number: int  # 1-indexed
    offset: int  # byte offset of the line start
    indent: int
    text: str  # stripped content


@dataclass
class OutlineNode:
    """A line plus every more-indented line that follows it."""

    text: str
    line: int
    offset: int
    indent: int
    children: list[OutlineNode] = field(default_factory=list)

    def walk(self):
        """Yield every descendant depth-first, in document order."""
        for child in self.children:
            yield child
            yield from child.walk()

    def block_text(self) -> str:
        """Descendant lines re-joined with indentation relative to the first child."""
        descendants = list(self.walk())
        if not descendants:
            return ""
        base = min(node.indent for node in descendants)
        return "\n".join(" " * (node.indent - base) + node.text for node in descendants)


@dataclass
class Section:
    """A top-level ``# Title`` section."""

    title: str
    line: int
    offset: int
    lines: list[SourceLine] = field(default_factory=list)
    raw: str = ""

    @property
    def key(self) -> str:
        """Normalised title used for dispatch: numbering stripped, lower case."""
        title = _NUMBERING_RE.sub("", self.title).strip().lower()
        return re.sub(r"\s+", " ", title.replace("_", " "))


def _indent_of(raw: str) -> tuple[int, str]:
    expanded = raw.expandtabs(TAB_WIDTH)
    stripped = expanded.lstrip(" ")
    return len(expanded) - len(stripped), stripped.rstrip()


def split_sections(text: str) -> tuple[list[SourceLine], list[Section]]:
    """
    Split document text into sections.

    Args:
        text: Raw document text

    Returns:
        Tuple of (lines before the first heading, sections in order)
    """
    preamble: list[SourceLine] = []
    sections: list[Section] = []
    raw_lines: list[str] = []
    offset = 0
    in_fence = False

    for number, raw in enumerate(text.splitlines(keepends=True), start=1):
        line_offset = offset
        offset += len(raw.encode("utf-8"))
        content = raw.rstrip("\r\n")

        if content.lstrip().startswith("```"):
            in_fence = not in_fence
            if sections:
                raw_lines.append(content)
            continue

        heading = None if in_fence else _HEADING_RE.match(content)
        if heading:
            if sections:
                sections[-1].raw = "\n".join(raw_lines).strip("\n")
            sections.append(Section(title=heading.group("title"), line=number, offset=line_offset))
            raw_lines = []
            continue

        if sections:
            raw_lines.append(content)
        if not content.strip():
            continue

        indent, stripped = _indent_of(content)
        source_line = SourceLine(number=number, offset=line_offset, indent=indent, text=stripped)
        if sections:
            sections[-1].lines.append(source_line)
        else:
            preamble.append(source_line)

    if sections:
        sections[-1].raw = "\n".join(raw_lines).strip("\n")
    return preamble, sections


def build_outline(lines: list[SourceLine]) -> list[OutlineNode]:
    """
    Build an indentation tree from section lines.

    A line becomes a child of the nearest preceding line with a smaller
    indent. Lines at the section's minimum indent are roots.
    """
    roots: list[OutlineNode] = []
    stack: list[OutlineNode] = []

    for source_line in lines:
        node = OutlineNode(
            text=source_line.text,
            line=source_line.number,
            offset=source_line.offset,
            indent=source_line.indent,
        )
        while stack and stack[-1].indent >= node.indent:
            stack.pop()
        if stack:
            stack[-1].children.append(node)
        else:
            roots.append(node)
        stack.append(node)

    return roots


__all__ = [
    "SourceLine",
    "OutlineNode",
    "Section",
    "split_sections",
    "build_outline",
]

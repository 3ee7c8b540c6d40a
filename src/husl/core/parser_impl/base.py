"""
Shared parsing context and outline helpers.

Every section parser receives a ParseContext. Malformed constructs are
recorded on the context instead of raised, so one run reports every defect
in the document.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from ..errors import ParseIssue, make_parse_issue
from ..outline import OutlineNode

_KEYWORD_RE = re.compile(r"^(?P<key>[A-Z][A-Za-z -]*?)\s*:\s*(?P<value>.*)$")
_ITEM_RE = re.compile(r"^[-*]\s+")


@dataclass
class ParseContext:
    """Collects parse issues for one document."""

    source: str
    issues: list[ParseIssue] = field(default_factory=list)

    def error(self, node: OutlineNode, message: str, expected: str, column: int | None = None) -> None:
        """Record a malformed construct at an outline node."""
        self.issues.append(
            make_parse_issue(
                message,
                expected,
                self.source,
                node.line,
                column=column if column is not None else node.indent + 1,
                offset=node.offset,
                snippet=" " * node.indent + node.text,
            )
        )


def split_keyword(text: str) -> tuple[str, str] | None:
    """
    Split a ``Keyword: value`` line.

    Keywords start with an upper-case letter, which keeps them apart from
    camelCase field lines such as ``description: String``.

    Returns:
        (keyword, value) with the keyword normalised to lower case, or None
    """
    match = _KEYWORD_RE.match(text)
    if not match:
        return None
    return match.group("key").strip().lower(), match.group("value").strip()


def strip_item(text: str) -> str:
    """Remove a leading list bullet (``-`` or ``*``)."""
    return _ITEM_RE.sub("", text, count=1).strip()


def is_item(text: str) -> bool:
    return bool(_ITEM_RE.match(text))


def item_texts(node: OutlineNode) -> list[str]:
    """Children of a block as plain strings, bullets removed."""
    return [strip_item(child.text) for child in node.children]


def split_names(text: str) -> list[str]:
    """Split a comma-separated list of names, dropping empties."""
    return [part.strip() for part in text.split(",") if part.strip()]


def block_value(node: OutlineNode, inline: str) -> str:
    """Text of a ``Key: value`` line joined with any continuation lines."""
    parts = [inline] if inline else []
    parts.extend(strip_item(child.text) for child in node.walk())
    return "\n".join(parts)


__all__ = [
    "ParseContext",
    "split_keyword",
    "strip_item",
    "is_item",
    "item_texts",
    "split_names",
    "block_value",
]

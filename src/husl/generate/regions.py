"""
Protected-region markers and extraction.

A protected region is delimited by a start line carrying the start token, the
region name, and optional ``key=value`` attributes, and an end line carrying
the end token and the same name:

    # HUSL:BEGIN fraud_check hook=before contract=3f2a9c01b7de
    ...hand-written code...
    # HUSL:END fraud_check

Tokens are located anywhere on the line, so the surrounding comment syntax
is whatever the stack's marker template produces. The extractor is a single
pass over the lines with one piece of state: the currently open region.
"""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass, field

from husl.core.errors import RegionExtractionError
from husl.core.ir import HookType

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"\s+(?P<name>[A-Za-z_][\w.-]*)")
_ATTR_RE = re.compile(r"\s+(?P<key>\w+)=(?P<value>[\w-]+)")

# Error kinds
UNTERMINATED = "unterminated"
NESTED = "nested"
UNMATCHED_END = "unmatched-end"
MISMATCHED_END = "mismatched-end"
DUPLICATE_NAME = "duplicate-name"
MALFORMED = "malformed"


def contract_fingerprint(hook: HookType | str, contract: str) -> str:
    """First 12 hex characters of sha256 over the hook and contract text."""
    hook_value = hook.value if isinstance(hook, HookType) else hook
    digest = hashlib.sha256(f"{hook_value}\n{contract}".encode()).hexdigest()
    return digest[:12]


@dataclass(frozen=True)
class MarkerStyle:
    """Start/end tokens plus the template that renders marker lines."""

    start: str = "HUSL:BEGIN"
    end: str = "HUSL:END"
    comment: str = "#"
    template: str = "{comment} {token} {name}{attrs}"

    def start_line(self, name: str, hook: HookType, fingerprint: str) -> str:
        attrs = f" hook={hook.value} contract={fingerprint}"
        return self.template.format(comment=self.comment, token=self.start, name=name, attrs=attrs)

    def end_line(self, name: str) -> str:
        return self.template.format(comment=self.comment, token=self.end, name=name, attrs="")

    def render(self, name: str, hook: HookType, contract: str, body: str, indent: str = "") -> str:
        """
        Render a complete region: start marker, body, end marker.

        ``body`` is emitted verbatim and must end with a newline when non-empty.
        """
        start = indent + self.start_line(name, hook, contract_fingerprint(hook, contract))
        end = indent + self.end_line(name)
        return f"{start}\n{body}{end}\n"


@dataclass(frozen=True)
class ProtectedRegion:
    """
    A region captured from an existing artifact.

    Attributes:
        name: Case-sensitive region identifier
        artifact_path: Artifact the region was extracted from
        start_line: Line of the start marker (1-indexed)
        end_line: Line of the end marker (1-indexed)
        start_offset: String offset where captured content starts
        end_offset: String offset where captured content ends
        content: Text strictly between the marker lines
        hook: Hook recorded on the start marker, if recognised
        fingerprint: Contract fingerprint recorded on the start marker
    """

    name: str
    artifact_path: str
    start_line: int
    end_line: int
    start_offset: int
    end_offset: int
    content: str
    hook: HookType | None = None
    fingerprint: str | None = None


@dataclass
class ExtractionResult:
    """Regions found in one artifact plus any marker errors."""

    artifact_path: str
    regions: list[ProtectedRegion] = field(default_factory=list)
    errors: list[RegionExtractionError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def blocking_errors(self) -> list[RegionExtractionError]:
        """Errors other than duplicate names, which the merge engine reports as conflicts."""
        return [e for e in self.errors if e.kind != DUPLICATE_NAME]

    def by_name(self) -> dict[str, ProtectedRegion]:
        """First region for each name."""
        found: dict[str, ProtectedRegion] = {}
        for region in self.regions:
            found.setdefault(region.name, region)
        return found


@dataclass
class _OpenRegion:
    name: str
    line: int
    content_start: int
    hook: HookType | None
    fingerprint: str | None


class RegionExtractor:
    """
    Single-pass protected-region scanner.

    Nesting is not allowed: a start marker while another region is open is
    an error for the artifact, and the inner marker is ignored.
    """

    def __init__(self, markers: MarkerStyle | None = None):
        self.markers = markers or MarkerStyle()

    def extract(self, text: str, artifact_path: str) -> ExtractionResult:
        result = ExtractionResult(artifact_path=artifact_path)
        open_region: _OpenRegion | None = None
        seen: set[str] = set()
        offset = 0

        def error(kind: str, message: str, line: int) -> None:
            result.errors.append(RegionExtractionError(kind, message, artifact_path, line))

        for number, line in enumerate(text.splitlines(keepends=True), start=1):
            line_start = offset
            offset += len(line)

            start = self._find(line, self.markers.start)
            end = self._find(line, self.markers.end) if start is None else None

            if start is not None:
                name, attrs = self._parse_marker(line, start, self.markers.start)
                if name is None:
                    error(MALFORMED, f"Start marker without a region name: {line.strip()}", number)
                    continue
                if open_region is not None:
                    error(
                        NESTED,
                        f"Region '{name}' starts inside region '{open_region.name}' (opened on line {open_region.line})",
                        number,
                    )
                    continue
                open_region = _OpenRegion(
                    name=name,
                    line=number,
                    content_start=offset,
                    hook=_hook(attrs.get("hook")),
                    fingerprint=attrs.get("contract"),
                )
            elif end is not None:
                name, _ = self._parse_marker(line, end, self.markers.end)
                if name is None:
                    error(MALFORMED, f"End marker without a region name: {line.strip()}", number)
                    continue
                if open_region is None:
                    error(UNMATCHED_END, f"End marker for '{name}' without a matching start", number)
                    continue
                if name != open_region.name:
                    error(
                        MISMATCHED_END,
                        f"End marker for '{name}' closes region '{open_region.name}' (opened on line {open_region.line})",
                        number,
                    )
                    open_region = None
                    continue
                if name in seen:
                    error(DUPLICATE_NAME, f"Region '{name}' appears more than once", open_region.line)
                seen.add(name)
                result.regions.append(
                    ProtectedRegion(
                        name=name,
                        artifact_path=artifact_path,
                        start_line=open_region.line,
                        end_line=number,
                        start_offset=open_region.content_start,
                        end_offset=line_start,
                        content=text[open_region.content_start : line_start],
                        hook=open_region.hook,
                        fingerprint=open_region.fingerprint,
                    )
                )
                open_region = None

        if open_region is not None:
            error(UNTERMINATED, f"Region '{open_region.name}' is never closed", open_region.line)

        if result.errors:
            logger.debug(f"{artifact_path}: {len(result.errors)} marker error(s)")
        return result

    @staticmethod
    def _find(line: str, token: str) -> int | None:
        index = line.find(token)
        if index < 0:
            return None
        if index > 0 and (line[index - 1].isalnum() or line[index - 1] == "_"):
            return None
        return index

    @staticmethod
    def _parse_marker(line: str, index: int, token: str) -> tuple[str | None, dict[str, str]]:
        rest = line[index + len(token) :]
        match = _NAME_RE.match(rest)
        if not match:
            return None, {}
        attrs: dict[str, str] = {}
        position = match.end()
        while attr := _ATTR_RE.match(rest, position):
            attrs[attr.group("key")] = attr.group("value")
            position = attr.end()
        return match.group("name"), attrs


def _hook(value: str | None) -> HookType | None:
    if value is None:
        return None
    try:
        return HookType(value)
    except ValueError:
        return None


__all__ = [
    "UNTERMINATED",
    "NESTED",
    "UNMATCHED_END",
    "MISMATCHED_END",
    "DUPLICATE_NAME",
    "MALFORMED",
    "contract_fingerprint",
    "MarkerStyle",
    "ProtectedRegion",
    "ExtractionResult",
    "RegionExtractor",
]

"""
Error types for HUSL parsing, validation, generation, and refactoring.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Optional


class ExitCode(IntEnum):
    """Result codes shared by the CLI and the library entry points."""

    SUCCESS = 0
    VALIDATION_FAILURE = 1
    CONFLICT_PRESENT = 2
    PARSE_FAILURE = 3
    IO_FAILURE = 4


class HuslError(Exception):
    """Base exception for all HUSL errors."""

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


@dataclass
class ErrorContext:
    """
    Context information for an error, including source location.

    Attributes:
        file: Path (or pseudo-path) of the source document
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        offset: Byte offset of the line start within the document
        snippet: Optional source line showing the error location
    """

    file: Path | str
    line: int
    column: int = 1
    offset: int | None = None
    snippet: str | None = None

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "spec.md:10:5"
        """
        location = f"{self.file}:{self.line}:{self.column}"
        if self.snippet:
            marker = " " * (self.column - 1) + "^^^"
            return f"{location}\n{self.line:4d} | {self.snippet}\n       {marker}"
        return location


@dataclass
class ParseIssue:
    """A single malformed construct found while parsing."""

    message: str
    expected: str
    context: ErrorContext

    def format(self) -> str:
        return f"{self.context.file}:{self.context.line}:{self.context.column}: {self.message} (expected {self.expected})"


class ParseError(HuslError):
    """
    Raised when a specification document cannot be parsed.

    The parser collects every malformed construct in the document before
    raising, so ``issues`` lists all of them in document order.
    """

    def __init__(self, issues: list[ParseIssue]):
        self.issues = issues
        first = issues[0].context if issues else None
        lines = [issue.format() for issue in issues]
        summary = f"{len(issues)} parse error(s)"
        super().__init__("\n".join([summary, *lines]), None)
        self.context = first


class ValidationError(HuslError):
    """
    Raised when a SpecDocument fails semantic validation.

    Examples:
    - Field typed with an undeclared type
    - State transition triggered by a missing operation
    - Rule applied to a missing operation
    """

    def __init__(self, message: str, issues: list | None = None):
        self.issues = issues or []
        super().__init__(message)


class RegionExtractionError(HuslError):
    """
    Raised (or collected) when protected-region markers are malformed.

    Scoped to a single artifact: other artifacts in the same run still process.
    """

    def __init__(self, kind: str, message: str, artifact_path: str, line: int):
        self.kind = kind
        self.artifact_path = artifact_path
        self.line = line
        super().__init__(message, ErrorContext(file=artifact_path, line=line))

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind,
            "message": self.message,
            "path": self.artifact_path,
            "line": self.line,
        }


class MergeConflict(HuslError):
    """
    A conflict between freshly projected output and captured custom regions.

    Conflicts are never resolved automatically; the affected artifact is left
    untouched on disk.
    """

    def __init__(self, kind: str, region: str, artifact_path: str, detail: str):
        self.kind = kind
        self.region = region
        self.artifact_path = artifact_path
        self.detail = detail
        super().__init__(f"{artifact_path}: {kind} in region '{region}': {detail}")

    def to_dict(self) -> dict[str, str]:
        return {
            "kind": self.kind,
            "region": self.region,
            "path": self.artifact_path,
            "detail": self.detail,
        }


class DanglingReferenceError(HuslError):
    """
    Raised when a refactoring removal would leave unresolved references.

    Attributes:
        references: Human-readable descriptions of the remaining referrers
    """

    def __init__(self, removed: str, references: list[str]):
        self.removed = removed
        self.references = references
        listing = "\n".join(f"  - {ref}" for ref in references)
        super().__init__(f"Removing '{removed}' leaves {len(references)} dangling reference(s):\n{listing}")


class RefactoringError(HuslError):
    """Raised when refactoring metadata names missing elements or would collide names."""

    pass


class ArtifactIOError(HuslError):
    """Raised when an artifact cannot be read or written."""

    def __init__(self, path: Path | str, cause: BaseException):
        self.path = str(path)
        self.cause = cause
        super().__init__(f"I/O failure on {path}: {cause}")


class ConfigError(HuslError):
    """Raised when husl.toml or a stack configuration is invalid."""

    pass


class ScopeError(HuslError):
    """Raised when a selective-regeneration scope names unknown elements."""

    pass


def make_parse_issue(
    message: str,
    expected: str,
    file: Path | str,
    line: int,
    column: int = 1,
    offset: int | None = None,
    snippet: str | None = None,
) -> ParseIssue:
    """
    Helper to create a ParseIssue with context.

    Args:
        message: Error description
        expected: The construct the parser expected at this location
        file: Source document path
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        offset: Byte offset of the line start
        snippet: Optional source line

    Returns:
        ParseIssue with context attached
    """
    context = ErrorContext(file=file, line=line, column=column, offset=offset, snippet=snippet)
    return ParseIssue(message=message, expected=expected, context=context)


__all__ = [
    "ExitCode",
    "HuslError",
    "ErrorContext",
    "ParseIssue",
    "ParseError",
    "ValidationError",
    "RegionExtractionError",
    "MergeConflict",
    "DanglingReferenceError",
    "RefactoringError",
    "ArtifactIOError",
    "ConfigError",
    "ScopeError",
    "make_parse_issue",
]

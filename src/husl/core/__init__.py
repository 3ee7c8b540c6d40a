"""Core HUSL functionality: IR, document parser, validator, refactor applier."""

from . import ir
from .errors import (
    ArtifactIOError,
    DanglingReferenceError,
    ErrorContext,
    ExitCode,
    HuslError,
    MergeConflict,
    ParseError,
    RefactoringError,
    RegionExtractionError,
    ValidationError,
)
from .parser import parse_document, parse_file
from .refactor import apply_refactoring, load_metadata, metadata_for_version
from .validator import ValidationIssue, ValidationReport, require_valid, validate

__all__ = [
    "ir",
    "HuslError",
    "ErrorContext",
    "ExitCode",
    "ParseError",
    "ValidationError",
    "RegionExtractionError",
    "MergeConflict",
    "DanglingReferenceError",
    "RefactoringError",
    "ArtifactIOError",
    "parse_document",
    "parse_file",
    "validate",
    "require_valid",
    "ValidationIssue",
    "ValidationReport",
    "apply_refactoring",
    "load_metadata",
    "metadata_for_version",
]

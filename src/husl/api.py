"""
Library entry points.

These mirror the CLI commands:

    document = load("spec.husl.md")
    report = validate(document)
    changes = plan(document, Path("."))
    result = generate(document, Path("."))
    updated = refactor(document, version="2.0.0")

Each function takes an already parsed SpecDocument except ``load``.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from pathlib import Path

from husl.core import ir
from husl.core.parser import parse_file
from husl.core.refactor import apply_refactoring, load_metadata, metadata_for_version
from husl.core.validator import ValidationReport, require_valid
from husl.core.validator import validate as _validate
from husl.generate.config import StackConfig
from husl.generate.planner import ChangeSet
from husl.generate.planner import plan as _plan
from husl.generate.projector import project, resolve_scope
from husl.generate.runner import GenerationReport, GenerationRunner
from husl.generate.writer import ArtifactTree, sibling_paths


def load(path: Path | str) -> ir.SpecDocument:
    """
    Parse a specification document from disk.

    Raises:
        ArtifactIOError: If the file cannot be read
        ParseError: If the document is malformed
    """
    return parse_file(path)


def validate(document: ir.SpecDocument) -> ValidationReport:
    """Run every semantic check; never raises for document defects."""
    return _validate(document)


def plan(
    document: ir.SpecDocument,
    output_dir: Path | None = None,
    config: StackConfig | None = None,
    scope: Iterable[str] | None = None,
    tree: ArtifactTree | None = None,
) -> ChangeSet:
    """
    Preview generation.

    Args:
        document: Parsed document
        output_dir: Directory to snapshot (ignored when ``tree`` is given)
        config: Stack configuration (defaults when omitted)
        scope: Operation/entity names for selective regeneration
        tree: Pre-built snapshot of the persisted artifacts

    Raises:
        ValidationError: If the document has validation errors
        ScopeError: If the scope names unknown elements
        ArtifactIOError: If a persisted artifact could not be read
    """
    config = config or StackConfig()
    if tree is None:
        require_valid(_validate(document))
        selected = resolve_scope(document, scope) if scope is not None else None
        paths = project(document, config, scope=selected).paths
        if output_dir is None:
            tree = ArtifactTree.empty()
        else:
            if selected is None:
                paths = [*paths, *sibling_paths(output_dir, paths)]
            tree = ArtifactTree.read(output_dir, paths)
        return _plan(document, tree, config, scope=selected)
    return _plan(document, tree, config, scope=scope)


def generate(
    document: ir.SpecDocument,
    output_dir: Path,
    config: StackConfig | None = None,
    scope: Iterable[str] | None = None,
    max_workers: int = 1,
    cancel_event: threading.Event | None = None,
    timestamp: str | None = None,
) -> GenerationReport:
    """
    Generate artifacts into ``output_dir``, preserving protected regions.

    Raises:
        ValidationError: If the document has validation errors
        ScopeError: If the scope names unknown elements
    """
    runner = GenerationRunner(
        output_dir,
        config or StackConfig(),
        max_workers=max_workers,
        cancel_event=cancel_event,
        timestamp=timestamp,
    )
    return runner.run(document, scope=scope)


def refactor(
    document: ir.SpecDocument,
    metadata: ir.RefactoringMetadata | str | None = None,
    version: str | None = None,
) -> ir.SpecDocument:
    """
    Apply refactoring metadata and return the new document.

    Args:
        document: Parsed document
        metadata: Metadata object or YAML text
        version: Version whose recorded metadata to apply (when ``metadata``
            is omitted; defaults to the document's current version)

    Raises:
        RefactoringError: If the metadata is invalid or cannot be applied
        DanglingReferenceError: If a removal leaves references behind
    """
    if isinstance(metadata, str):
        metadata = load_metadata(metadata)
    if metadata is None:
        if version is None and document.current_version is not None:
            version = str(document.current_version)
        metadata = metadata_for_version(document, version or "")
    return apply_refactoring(document, metadata)


__all__ = ["load", "validate", "plan", "generate", "refactor"]

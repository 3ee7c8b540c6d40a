"""
Diff/planner.

Previews what generation would do without touching the filesystem: the
validated document is projected, regions are extracted from the persisted
artifacts, and a check-only merge decides each artifact's status.

Header-only differences count as unchanged, so a timestamp in the header
template never makes an artifact look modified.

On a full run, persisted files the projection no longer produces are checked
too. One that still holds protected regions is reported as a conflict with an
orphaned-region entry per region, so hand-written code is never dropped
silently.
"""

from __future__ import annotations

import difflib
import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from husl.core import ir
from husl.core.errors import ExitCode, MergeConflict, RegionExtractionError
from husl.core.validator import require_valid, validate

from .config import StackConfig
from .generator import Artifact, Scope
from .merge import ConflictKind, MergeEngine
from .projector import project, strip_header
from .writer import ArtifactTree

logger = logging.getLogger(__name__)


class ChangeStatus(str, Enum):
    """Planned outcome for one artifact."""

    UNCHANGED = "unchanged"
    WOULD_CREATE = "would-create"
    WOULD_MODIFY = "would-modify"
    WOULD_CONFLICT = "would-conflict"


@dataclass
class ArtifactChange:
    """
    Planned change for one artifact.

    Attributes:
        path: Artifact path
        status: Planned outcome
        content: Content generation would write (empty for conflicts)
        delta: Unified diff against the persisted artifact
        conflicts: Merge conflicts blocking the write
        extraction_errors: Malformed markers in the persisted artifact
    """

    path: str
    status: ChangeStatus
    content: str = ""
    delta: str = ""
    conflicts: list[MergeConflict] = field(default_factory=list)
    extraction_errors: list[RegionExtractionError] = field(default_factory=list)

    @property
    def writes(self) -> bool:
        return self.status in (ChangeStatus.WOULD_CREATE, ChangeStatus.WOULD_MODIFY)

    def reasons(self) -> list[str]:
        """Conflict kinds and marker error kinds, in report order."""
        return [e.kind for e in self.extraction_errors] + [c.kind for c in self.conflicts]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"path": self.path, "status": self.status.value}
        if self.status == ChangeStatus.WOULD_CONFLICT:
            data["conflicts"] = [e.to_dict() for e in self.extraction_errors] + [
                c.to_dict() for c in self.conflicts
            ]
        else:
            data["delta"] = self.delta
        return data


@dataclass
class ChangeSet:
    """Planned changes for every projected artifact, in projection order."""

    changes: list[ArtifactChange] = field(default_factory=list)

    def __iter__(self):
        return iter(self.changes)

    def __len__(self) -> int:
        return len(self.changes)

    def get(self, path: str) -> ArtifactChange | None:
        return next((c for c in self.changes if c.path == path), None)

    def by_status(self, status: ChangeStatus) -> list[ArtifactChange]:
        return [c for c in self.changes if c.status == status]

    def counts(self) -> dict[str, int]:
        return {status.value: len(self.by_status(status)) for status in ChangeStatus}

    @property
    def has_conflicts(self) -> bool:
        return any(c.status == ChangeStatus.WOULD_CONFLICT for c in self.changes)

    @property
    def exit_code(self) -> ExitCode:
        return ExitCode.CONFLICT_PRESENT if self.has_conflicts else ExitCode.SUCCESS

    def to_json(self, indent: int | None = 2) -> str:
        """Serialize as ``[{path, status, delta|conflicts}]``."""
        return json.dumps([c.to_dict() for c in self.changes], indent=indent)


# =============================================================================
# Per-artifact reconciliation
# =============================================================================


def unified_delta(path: str, before: str | None, after: str) -> str:
    fromfile = f"a/{path}" if before is not None else "/dev/null"
    diff = difflib.unified_diff(
        (before or "").splitlines(keepends=True),
        after.splitlines(keepends=True),
        fromfile=fromfile,
        tofile=f"b/{path}",
    )
    return "".join(diff)


def reconcile(artifact: Artifact, existing: str | None, config: StackConfig, engine: MergeEngine) -> ArtifactChange:
    """
    Decide the outcome for one artifact against its persisted content.

    Args:
        artifact: Freshly projected artifact
        existing: Persisted content, or None if the artifact does not exist
        config: Stack configuration (header size)
        engine: Merge engine configured with the stack's markers

    Returns:
        ArtifactChange carrying the content to write, if any
    """
    if existing is None:
        return ArtifactChange(
            path=artifact.path,
            status=ChangeStatus.WOULD_CREATE,
            content=artifact.content,
            delta=unified_delta(artifact.path, None, artifact.content),
        )

    extraction = engine.extractor.extract(existing, artifact.path)
    blocking = extraction.blocking_errors
    if blocking:
        return ArtifactChange(path=artifact.path, status=ChangeStatus.WOULD_CONFLICT, extraction_errors=blocking)

    merged = engine.merge(artifact, extraction.regions)
    if merged.conflicts:
        return ArtifactChange(path=artifact.path, status=ChangeStatus.WOULD_CONFLICT, conflicts=merged.conflicts)

    if strip_header(merged.content, config) == strip_header(existing, config):
        return ArtifactChange(path=artifact.path, status=ChangeStatus.UNCHANGED)

    return ArtifactChange(
        path=artifact.path,
        status=ChangeStatus.WOULD_MODIFY,
        content=merged.content,
        delta=unified_delta(artifact.path, existing, merged.content),
    )


def retired_change(path: str, existing: str, engine: MergeEngine) -> ArtifactChange | None:
    """
    Check a persisted artifact the projection no longer produces.

    Returns:
        A would-conflict change listing its regions, or None when the file
        holds no protected regions
    """
    extraction = engine.extractor.extract(existing, path)
    if extraction.blocking_errors:
        return ArtifactChange(path=path, status=ChangeStatus.WOULD_CONFLICT, extraction_errors=extraction.blocking_errors)
    if not extraction.regions:
        return None
    conflicts = [
        MergeConflict(
            ConflictKind.ORPHANED_REGION.value,
            region.name,
            path,
            f"lines {region.start_line}-{region.end_line} are in an artifact that is no longer generated",
        )
        for region in extraction.regions
    ]
    return ArtifactChange(path=path, status=ChangeStatus.WOULD_CONFLICT, conflicts=conflicts)


# =============================================================================
# Planning
# =============================================================================


def plan(
    document: ir.SpecDocument,
    tree: ArtifactTree,
    config: StackConfig,
    scope: Iterable[str] | Scope | None = None,
    timestamp: str | None = None,
) -> ChangeSet:
    """
    Preview generation against an artifact tree snapshot.

    Args:
        document: Parsed specification document
        tree: Snapshot of the persisted artifacts
        config: Stack configuration
        scope: Element names for selective regeneration
        timestamp: Header timestamp (ignored when comparing)

    Returns:
        ChangeSet with one entry per projected artifact, followed by
        retired artifacts that still hold regions (full runs only)

    Raises:
        ValidationError: If the document has validation errors
        ScopeError: If the scope names unknown elements
        ArtifactIOError: If a persisted artifact could not be read
    """
    require_valid(validate(document))
    projection = project(document, config, scope=scope, timestamp=timestamp)
    engine = MergeEngine(config.markers())

    changes = ChangeSet()
    for artifact in projection:
        error = tree.errors.get(artifact.path)
        if error is not None:
            raise error
        changes.changes.append(reconcile(artifact, tree.get(artifact.path), config, engine))

    if scope is None:
        projected = set(projection.paths)
        for path in sorted(set(tree.files) - projected):
            change = retired_change(path, tree.files[path], engine)
            if change is not None:
                changes.changes.append(change)

    summary = ", ".join(f"{count} {status}" for status, count in changes.counts().items() if count)
    logger.info(f"Plan: {summary or 'nothing to generate'}")
    return changes


__all__ = [
    "ChangeStatus",
    "ArtifactChange",
    "ChangeSet",
    "unified_delta",
    "reconcile",
    "retired_change",
    "plan",
]

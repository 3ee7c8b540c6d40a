"""
Generation runner.

Writes a projection to disk. Once the document is validated and projected,
each artifact is handled independently (read, extract, merge, write), so a
conflict or I/O failure in one artifact never blocks the others. Work may be
spread over a thread pool; a cancel event is checked before each artifact.

On a full run, files beside the artifacts that the projection no longer
produces are checked as well. One that still holds protected regions is
reported as a conflict and left in place.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from husl.core import ir
from husl.core.errors import ArtifactIOError, ExitCode
from husl.core.validator import require_valid, validate

from .config import StackConfig
from .generator import Artifact, Scope
from .merge import MergeEngine
from .planner import ArtifactChange, ChangeStatus, reconcile, retired_change
from .projector import project
from .writer import atomic_write, read_artifact, resolve_artifact, sibling_paths

logger = logging.getLogger(__name__)


class OutcomeStatus(str, Enum):
    """What happened to one artifact during a run."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    CONFLICT = "conflict"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ArtifactOutcome:
    """
    Outcome for one artifact.

    Attributes:
        path: Artifact path relative to the output directory
        status: What happened
        details: Conflict, marker or I/O error descriptions
        change: The planned change the outcome was derived from
    """

    path: str
    status: OutcomeStatus
    details: list[str] = field(default_factory=list)
    change: ArtifactChange | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "status": self.status.value, "details": list(self.details)}


@dataclass
class GenerationReport:
    """Every artifact's outcome, in projection order."""

    outcomes: list[ArtifactOutcome] = field(default_factory=list)

    def by_status(self, status: OutcomeStatus) -> list[ArtifactOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def written(self) -> list[ArtifactOutcome]:
        return [o for o in self.outcomes if o.status in (OutcomeStatus.CREATED, OutcomeStatus.UPDATED)]

    @property
    def conflicts(self) -> list[ArtifactOutcome]:
        return self.by_status(OutcomeStatus.CONFLICT)

    @property
    def failures(self) -> list[ArtifactOutcome]:
        return self.by_status(OutcomeStatus.FAILED)

    @property
    def skipped(self) -> list[ArtifactOutcome]:
        return self.by_status(OutcomeStatus.SKIPPED)

    @property
    def success(self) -> bool:
        return not self.conflicts and not self.failures and not self.skipped

    @property
    def exit_code(self) -> ExitCode:
        """I/O failures take precedence over conflicts."""
        if self.failures:
            return ExitCode.IO_FAILURE
        if self.conflicts:
            return ExitCode.CONFLICT_PRESENT
        return ExitCode.SUCCESS

    def counts(self) -> dict[str, int]:
        return {status.value: len(self.by_status(status)) for status in OutcomeStatus}


class GenerationRunner:
    """
    Write a document's projection to an output directory.

    Example:
        runner = GenerationRunner(Path("."), config, max_workers=4)
        report = runner.run(document)
        for outcome in report.outcomes:
            print(outcome.path, outcome.status.value)
    """

    def __init__(
        self,
        output_dir: Path,
        config: StackConfig,
        max_workers: int = 1,
        cancel_event: threading.Event | None = None,
        timestamp: str | None = None,
    ):
        """
        Initialize runner.

        Args:
            output_dir: Root directory artifact paths are relative to
            config: Stack configuration
            max_workers: Worker threads for per-artifact processing
            cancel_event: Set to stop before the next artifact
            timestamp: Header timestamp (defaults to the current UTC time)
        """
        self.output_dir = output_dir
        self.config = config
        self.max_workers = max(1, max_workers)
        self.cancel_event = cancel_event or threading.Event()
        self.timestamp = timestamp
        self.engine = MergeEngine(config.markers())

    def run(self, document: ir.SpecDocument, scope: Iterable[str] | Scope | None = None) -> GenerationReport:
        """
        Validate, project, merge and write.

        Returns:
            GenerationReport listing every projected artifact, then retired
            artifacts that still hold regions (full runs only)

        Raises:
            ValidationError: If the document has validation errors
            ScopeError: If the scope names unknown elements
        """
        require_valid(validate(document))
        timestamp = self.timestamp or datetime.now(UTC).isoformat(timespec="seconds")
        projection = project(document, self.config, scope=scope, timestamp=timestamp)

        artifacts = list(projection)
        if self.max_workers == 1:
            outcomes = [self.process(artifact) for artifact in artifacts]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                outcomes = list(executor.map(self.process, artifacts))

        if scope is None:
            outcomes.extend(self.check_retired(projection.paths))

        report = GenerationReport(outcomes=outcomes)
        summary = ", ".join(f"{count} {status}" for status, count in report.counts().items() if count)
        logger.info(f"Generated into {self.output_dir}: {summary or 'nothing to do'}")
        return report

    def check_retired(self, paths: list[str]) -> list[ArtifactOutcome]:
        """Report files beside the artifacts that are no longer generated but still hold regions."""
        if self.cancel_event.is_set():
            return []
        try:
            retired = sibling_paths(self.output_dir, paths)
        except ArtifactIOError as e:
            logger.warning(f"Cannot list {e.path}: {e.cause}")
            return [ArtifactOutcome(e.path, OutcomeStatus.FAILED, [str(e)])]

        outcomes: list[ArtifactOutcome] = []
        for path in retired:
            try:
                existing = read_artifact(self.output_dir, path)
            except ArtifactIOError as e:
                logger.warning(f"Cannot read {path}: {e.cause}")
                outcomes.append(ArtifactOutcome(path, OutcomeStatus.FAILED, [str(e)]))
                continue
            change = retired_change(path, existing, self.engine) if existing is not None else None
            if change is None:
                continue
            details = [e.message for e in change.extraction_errors] + [str(c) for c in change.conflicts]
            logger.warning(f"{path} is no longer generated but holds protected regions")
            outcomes.append(ArtifactOutcome(path, OutcomeStatus.CONFLICT, details, change))
        return outcomes

    def process(self, artifact: Artifact) -> ArtifactOutcome:
        """Handle one artifact; every failure is captured in the outcome."""
        if self.cancel_event.is_set():
            return ArtifactOutcome(artifact.path, OutcomeStatus.SKIPPED, ["cancelled"])

        try:
            existing = read_artifact(self.output_dir, artifact.path)
        except ArtifactIOError as e:
            logger.warning(f"Cannot read {artifact.path}: {e.cause}")
            return ArtifactOutcome(artifact.path, OutcomeStatus.FAILED, [str(e)])

        change = reconcile(artifact, existing, self.config, self.engine)
        if change.status == ChangeStatus.WOULD_CONFLICT:
            details = [e.message for e in change.extraction_errors] + [str(c) for c in change.conflicts]
            logger.warning(f"Leaving {artifact.path} untouched: {', '.join(change.reasons())}")
            return ArtifactOutcome(artifact.path, OutcomeStatus.CONFLICT, details, change)
        if change.status == ChangeStatus.UNCHANGED:
            return ArtifactOutcome(artifact.path, OutcomeStatus.UNCHANGED, change=change)

        try:
            atomic_write(resolve_artifact(self.output_dir, artifact.path), change.content)
        except ArtifactIOError as e:
            logger.warning(f"Cannot write {artifact.path}: {e.cause}")
            return ArtifactOutcome(artifact.path, OutcomeStatus.FAILED, [str(e)], change)

        status = OutcomeStatus.CREATED if change.status == ChangeStatus.WOULD_CREATE else OutcomeStatus.UPDATED
        return ArtifactOutcome(artifact.path, status, change=change)


__all__ = ["OutcomeStatus", "ArtifactOutcome", "GenerationReport", "GenerationRunner"]

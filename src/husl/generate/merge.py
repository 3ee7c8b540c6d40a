"""
Merge engine.

Combines a freshly projected artifact with the protected regions captured
from its previous version on disk. Captured content replaces a placeholder's
default body only when the region's recorded hook and contract fingerprint
still match the placeholder. Everything else is a conflict, and conflicts are
never resolved automatically.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from husl.core.errors import MergeConflict
from husl.core.ir import HookType

from .generator import Artifact
from .regions import MarkerStyle, ProtectedRegion, RegionExtractor

logger = logging.getLogger(__name__)


class ConflictKind(str, Enum):
    """Why captured content could not be merged."""

    SIGNATURE_MISMATCH = "signature-mismatch"
    ORPHANED_REGION = "orphaned-region"
    DUPLICATE_REGION = "duplicate-region"
    HOOK_TYPE_DRIFT = "hook-type-drift"


@dataclass
class MergeResult:
    """
    Outcome of merging one artifact.

    Attributes:
        path: Artifact path
        content: Merged content (fresh content with non-conflicting regions
            substituted); must not be written when ``conflicts`` is non-empty
        conflicts: Conflicts found, in region order
        substituted: Names of regions whose captured content was kept
    """

    path: str
    content: str
    conflicts: list[MergeConflict] = field(default_factory=list)
    substituted: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.conflicts


class MergeEngine:
    """Substitutes captured region content into fresh artifacts."""

    def __init__(self, markers: MarkerStyle | None = None):
        self.markers = markers or MarkerStyle()
        self.extractor = RegionExtractor(self.markers)

    def merge(self, artifact: Artifact, prior: Sequence[ProtectedRegion]) -> MergeResult:
        """
        Merge captured regions into a fresh artifact.

        Args:
            artifact: Freshly projected artifact
            prior: Regions extracted from the artifact's previous content

        Returns:
            MergeResult with merged content and any conflicts
        """
        result = MergeResult(path=artifact.path, content=artifact.content)
        counts = Counter(region.name for region in prior)
        substitutions: dict[str, str] = {}
        reported: set[str] = set()

        for region in prior:
            if counts[region.name] > 1:
                if region.name not in reported:
                    reported.add(region.name)
                    self._conflict(
                        result,
                        ConflictKind.DUPLICATE_REGION,
                        region.name,
                        f"{counts[region.name]} regions share this name",
                    )
                continue

            placeholder = artifact.placeholder(region.name)
            if placeholder is None:
                self._conflict(
                    result,
                    ConflictKind.ORPHANED_REGION,
                    region.name,
                    f"lines {region.start_line}-{region.end_line} have no Custom Implementation entry any more",
                )
                continue

            if region.hook == HookType.REPLACE and placeholder.hook != HookType.REPLACE:
                self._conflict(
                    result,
                    ConflictKind.HOOK_TYPE_DRIFT,
                    region.name,
                    f"hook changed from replace to {placeholder.hook.value}",
                )
                continue

            if region.hook != placeholder.hook or region.fingerprint != placeholder.fingerprint:
                recorded = region.hook.value if region.hook else "unknown"
                self._conflict(
                    result,
                    ConflictKind.SIGNATURE_MISMATCH,
                    region.name,
                    f"recorded hook={recorded} contract={region.fingerprint or 'none'}, "
                    f"declared hook={placeholder.hook.value} contract={placeholder.fingerprint}",
                )
                continue

            substitutions[region.name] = region.content

        if substitutions:
            result.content = self._substitute(artifact, substitutions)
            result.substituted = list(substitutions)

        if result.conflicts:
            logger.debug(f"{artifact.path}: {len(result.conflicts)} merge conflict(s)")
        return result

    def _substitute(self, artifact: Artifact, substitutions: dict[str, str]) -> str:
        """Replace placeholder bodies in the fresh content, last region first."""
        content = artifact.content
        fresh = self.extractor.extract(content, artifact.path)
        for region in reversed(fresh.regions):
            if region.name in substitutions:
                content = content[: region.start_offset] + substitutions[region.name] + content[region.end_offset :]
        return content

    @staticmethod
    def _conflict(result: MergeResult, kind: ConflictKind, region: str, detail: str) -> None:
        result.conflicts.append(MergeConflict(kind.value, region, result.path, detail))


__all__ = ["ConflictKind", "MergeResult", "MergeEngine"]

"""
Code generation: projection, region preservation, planning, and writing.

Pipeline for a real write:

    document -> project() -> RegionExtractor -> MergeEngine -> atomic_write

``plan()`` runs the same pipeline as a check-only preview and returns a
ChangeSet instead of writing.
"""

from .config import HuslConfig, PathTemplates, ProjectSettings, StackConfig, load_config
from .generator import Artifact, GeneratorResult, RegionPlaceholder, Scope
from .merge import ConflictKind, MergeEngine, MergeResult
from .planner import ArtifactChange, ChangeSet, ChangeStatus, plan
from .projector import Projection, project, resolve_scope
from .regions import ExtractionResult, MarkerStyle, ProtectedRegion, RegionExtractor, contract_fingerprint
from .runner import ArtifactOutcome, GenerationReport, GenerationRunner, OutcomeStatus
from .targets import TargetRegistry
from .writer import ArtifactTree, atomic_write

__all__ = [
    # Configuration
    "HuslConfig",
    "ProjectSettings",
    "StackConfig",
    "PathTemplates",
    "load_config",
    # Projection
    "Artifact",
    "RegionPlaceholder",
    "GeneratorResult",
    "Scope",
    "Projection",
    "project",
    "resolve_scope",
    "TargetRegistry",
    # Regions and merge
    "MarkerStyle",
    "ProtectedRegion",
    "ExtractionResult",
    "RegionExtractor",
    "contract_fingerprint",
    "ConflictKind",
    "MergeEngine",
    "MergeResult",
    # Planning and writing
    "ChangeStatus",
    "ArtifactChange",
    "ChangeSet",
    "plan",
    "ArtifactTree",
    "atomic_write",
    "OutcomeStatus",
    "ArtifactOutcome",
    "GenerationReport",
    "GenerationRunner",
]

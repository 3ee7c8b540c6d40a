"""Tests for the merge engine."""

from __future__ import annotations

import pytest

from husl.core import ir
from husl.core.parser import parse_document
from husl.generate.config import StackConfig
from husl.generate.generator import Artifact
from husl.generate.merge import ConflictKind, MergeEngine
from husl.generate.projector import project
from husl.generate.regions import ProtectedRegion, contract_fingerprint

AUDIT_SPEC = """\
# Operations

Operation: Ping
  Endpoint: GET /ping
  Custom Implementation:
    - audit ({hook}): {contract}
"""


def ping_artifact(hook: str = "before", contract: str = "logs every call") -> Artifact:
    document = parse_document(AUDIT_SPEC.format(hook=hook, contract=contract))
    return project(document, StackConfig()).get("app/services/ping.py")


def captured(
    name: str = "audit",
    hook: ir.HookType | None = ir.HookType.BEFORE,
    contract: str = "logs every call",
    content: str = "    record_call()\n",
) -> ProtectedRegion:
    return ProtectedRegion(
        name=name,
        artifact_path="app/services/ping.py",
        start_line=10,
        end_line=12,
        start_offset=0,
        end_offset=0,
        content=content,
        hook=hook,
        fingerprint=contract_fingerprint(hook, contract) if hook else None,
    )


@pytest.fixture
def engine() -> MergeEngine:
    return MergeEngine(StackConfig().markers())


class TestSubstitution:
    """Tests for conflict-free merges."""

    def test_matching_region_is_substituted(self, engine: MergeEngine) -> None:
        artifact = ping_artifact()
        result = engine.merge(artifact, [captured()])

        assert result.ok
        assert result.substituted == ["audit"]
        assert "    record_call()\n    # HUSL:END audit\n" in result.content
        assert "# contract: logs every call" not in result.content

    def test_no_prior_regions_keeps_defaults(self, engine: MergeEngine) -> None:
        artifact = ping_artifact()
        result = engine.merge(artifact, [])
        assert result.ok
        assert result.content == artifact.content


class TestConflicts:
    """Tests for each conflict kind."""

    def test_orphaned_region(self, engine: MergeEngine) -> None:
        result = engine.merge(ping_artifact(), [captured(), captured(name="retired")])
        assert [(c.kind, c.region) for c in result.conflicts] == [(ConflictKind.ORPHANED_REGION.value, "retired")]
        assert "lines 10-12" in result.conflicts[0].detail

    def test_duplicate_region_is_reported_once(self, engine: MergeEngine) -> None:
        result = engine.merge(ping_artifact(), [captured(), captured(), captured()])
        assert [c.kind for c in result.conflicts] == [ConflictKind.DUPLICATE_REGION.value]
        assert "3 regions" in result.conflicts[0].detail

    def test_contract_change_is_a_signature_mismatch(self, engine: MergeEngine) -> None:
        artifact = ping_artifact(contract="logs every call with latency")
        result = engine.merge(artifact, [captured()])
        assert [c.kind for c in result.conflicts] == [ConflictKind.SIGNATURE_MISMATCH.value]

    def test_hook_change_to_replace_is_a_signature_mismatch(self, engine: MergeEngine) -> None:
        artifact = ping_artifact(hook="replace")
        result = engine.merge(artifact, [captured()])
        assert [c.kind for c in result.conflicts] == [ConflictKind.SIGNATURE_MISMATCH.value]

    def test_hook_change_from_replace_is_drift(self, engine: MergeEngine) -> None:
        artifact = ping_artifact(hook="after")
        result = engine.merge(artifact, [captured(hook=ir.HookType.REPLACE)])
        assert [c.kind for c in result.conflicts] == [ConflictKind.HOOK_TYPE_DRIFT.value]
        assert "replace to after" in result.conflicts[0].detail

    def test_missing_fingerprint_is_a_signature_mismatch(self, engine: MergeEngine) -> None:
        result = engine.merge(ping_artifact(), [captured(hook=None)])
        assert [c.kind for c in result.conflicts] == [ConflictKind.SIGNATURE_MISMATCH.value]
        assert "recorded hook=unknown contract=none" in result.conflicts[0].detail

    def test_conflicts_do_not_block_other_regions(self, engine: MergeEngine) -> None:
        """Test a conflicted region is reported while matching ones still merge."""
        result = engine.merge(ping_artifact(), [captured(), captured(name="retired")])
        assert not result.ok
        assert result.substituted == ["audit"]

    def test_conflict_serialization(self, engine: MergeEngine) -> None:
        conflict = engine.merge(ping_artifact(), [captured(name="retired")]).conflicts[0]
        assert conflict.to_dict()["kind"] == "orphaned-region"
        assert conflict.to_dict()["region"] == "retired"
        assert "app/services/ping.py: orphaned-region in region 'retired'" in str(conflict)

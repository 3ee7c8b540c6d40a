"""Tests for the generation runner and atomic writes."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from husl import api
from husl.core import ir
from husl.core.errors import ArtifactIOError, ExitCode
from husl.core.parser import parse_document
from husl.generate.runner import OutcomeStatus
from husl.generate.writer import atomic_write, resolve_artifact

TIMESTAMP = "2024-01-01T00:00:00+00:00"


def tree_contents(root: Path) -> dict[str, str]:
    return {
        path.relative_to(root).as_posix(): path.read_text(encoding="utf-8")
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


class TestRunner:
    """Tests for GenerationRunner via api.generate."""

    def test_creates_every_artifact(self, orders_doc: ir.SpecDocument, tmp_path: Path) -> None:
        report = api.generate(orders_doc, tmp_path, timestamp=TIMESTAMP)

        assert report.exit_code == ExitCode.SUCCESS
        assert len(report.outcomes) == 8
        assert {o.status for o in report.outcomes} == {OutcomeStatus.CREATED}
        assert (tmp_path / "app/models/order.py").is_file()
        assert report.counts()["created"] == 8

    def test_no_temp_files_left_behind(self, orders_doc: ir.SpecDocument, tmp_path: Path) -> None:
        api.generate(orders_doc, tmp_path)
        assert list(tmp_path.rglob("*.tmp")) == []

    def test_worker_pool_matches_sequential(self, orders_doc: ir.SpecDocument, tmp_path: Path) -> None:
        sequential = api.generate(orders_doc, tmp_path / "one", timestamp=TIMESTAMP)
        pooled = api.generate(orders_doc, tmp_path / "four", max_workers=4, timestamp=TIMESTAMP)

        assert [o.path for o in pooled.outcomes] == [o.path for o in sequential.outcomes]
        assert tree_contents(tmp_path / "four") == tree_contents(tmp_path / "one")

    def test_cancelled_run_skips_everything(self, widget_doc: ir.SpecDocument, tmp_path: Path) -> None:
        cancel = threading.Event()
        cancel.set()
        report = api.generate(widget_doc, tmp_path, cancel_event=cancel)

        assert {o.status for o in report.outcomes} == {OutcomeStatus.SKIPPED}
        assert report.exit_code == ExitCode.SUCCESS
        assert not report.success
        assert not (tmp_path / "app").exists()

    def test_io_failure_is_scoped_to_one_artifact(self, widget_doc: ir.SpecDocument, tmp_path: Path) -> None:
        (tmp_path / "app/models/widget.py").mkdir(parents=True)
        report = api.generate(widget_doc, tmp_path)

        outcomes = {o.path: o.status for o in report.outcomes}
        assert outcomes == {
            "app/models/widget.py": OutcomeStatus.FAILED,
            "app/services/get_widget.py": OutcomeStatus.CREATED,
        }
        assert report.exit_code == ExitCode.IO_FAILURE
        assert "I/O failure" in report.failures[0].details[0]

    def test_io_failure_outranks_conflicts(self, orders_text: str, tmp_path: Path) -> None:
        api.generate(parse_document(orders_text), tmp_path)
        (tmp_path / "app/models/customer.py").unlink()
        (tmp_path / "app/models/customer.py").mkdir()
        v2 = orders_text.replace("fraud_check (before)", "fraud_check (after)")

        report = api.generate(parse_document(v2), tmp_path)
        assert report.conflicts and report.failures
        assert report.exit_code == ExitCode.IO_FAILURE

    def test_scoped_generation(self, orders_doc: ir.SpecDocument, tmp_path: Path) -> None:
        report = api.generate(orders_doc, tmp_path, scope=["Shipment"])
        assert [o.path for o in report.outcomes] == [
            "app/models/customer.py",
            "app/models/order.py",
            "app/models/shipment.py",
            "app/enums/order_status.py",
        ]

    def test_retired_artifact_is_reported_and_kept(self, tmp_path: Path) -> None:
        """Test an artifact whose operation was removed keeps its hand-written region."""
        text = "# Operations\n\nOperation: Ping\n  Endpoint: GET /ping\n"
        audit = "\nOperation: Audit\n  Endpoint: POST /audit\n  Custom Implementation:\n    - audit_log (after): records the call\n"
        api.generate(parse_document(text + audit), tmp_path)
        retired = tmp_path / "app/services/audit.py"
        before = retired.read_text()

        report = api.generate(parse_document(text), tmp_path)
        assert [o.path for o in report.conflicts] == ["app/services/audit.py"]
        assert "orphaned-region in region 'audit_log'" in report.conflicts[0].details[0]
        assert report.exit_code == ExitCode.CONFLICT_PRESENT
        assert retired.read_text() == before

    def test_outcome_to_dict(self, widget_doc: ir.SpecDocument, tmp_path: Path) -> None:
        outcome = api.generate(widget_doc, tmp_path).outcomes[0]
        assert outcome.to_dict() == {"path": "app/models/widget.py", "status": "created", "details": []}


class TestAtomicWrite:
    """Tests for atomic_write and path resolution."""

    def test_write_and_replace(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "file.py"
        atomic_write(target, "one\n")
        atomic_write(target, "two\n")
        assert target.read_text() == "two\n"
        assert [p.name for p in target.parent.iterdir()] == ["file.py"]

    def test_newlines_are_written_verbatim(self, tmp_path: Path) -> None:
        target = tmp_path / "crlf.txt"
        atomic_write(target, "a\r\nb\n")
        assert target.read_bytes() == b"a\r\nb\n"

    def test_failure_leaves_target_untouched(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(ArtifactIOError):
            atomic_write(blocker / "file.py", "content")
        assert blocker.read_text() == "not a directory"

    def test_path_cannot_escape_output_directory(self, tmp_path: Path) -> None:
        with pytest.raises(ArtifactIOError, match="escapes output directory"):
            resolve_artifact(tmp_path, "../outside.py")

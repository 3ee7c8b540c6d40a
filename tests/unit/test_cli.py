"""Tests for CLI commands."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from husl.cli import app


@pytest.fixture
def cli_runner():
    """Return a CLI test runner."""
    return CliRunner()


@pytest.fixture
def test_project(tmp_path: Path, spec_file: Path):
    """Create a temporary project with husl.toml and the orders document."""
    (tmp_path / "husl.toml").write_text(
        """
[project]
spec = "spec.husl.md"
output = "."

[stack]
package = "app"
"""
    )
    return tmp_path


def invoke(cli_runner: CliRunner, project: Path, *args: str):
    return cli_runner.invoke(app, [*args, "--config", str(project / "husl.toml")])


def test_validate_command_success(cli_runner: CliRunner, test_project: Path):
    """Test validate command with a valid document."""
    result = invoke(cli_runner, test_project, "validate")
    assert result.exit_code == 0
    assert "OK" in result.stdout


def test_validate_command_with_errors(cli_runner: CliRunner, test_project: Path):
    """Test validate command reports validation errors with exit code 1."""
    spec = test_project / "spec.husl.md"
    spec.write_text(spec.read_text().replace("total: Decimal (min:0)", "total: Money2 (min:0)"))

    result = invoke(cli_runner, test_project, "validate", "--json")
    assert result.exit_code == 1
    issues = json.loads(result.stdout)
    assert [i["code"] for i in issues if i["severity"] == "error"] == ["unknown-type"]


def test_validate_command_parse_error(cli_runner: CliRunner, test_project: Path):
    """Test malformed documents exit with code 3."""
    (test_project / "broken.husl.md").write_text("# Schema\nEntity: Widget\n  id UUID\n")

    result = invoke(cli_runner, test_project, "validate", str(test_project / "broken.husl.md"))
    assert result.exit_code == 3
    assert "Error:" in result.output


def test_validate_command_missing_file(cli_runner: CliRunner, test_project: Path):
    """Test an unreadable document exits with code 4."""
    result = invoke(cli_runner, test_project, "validate", str(test_project / "missing.husl.md"))
    assert result.exit_code == 4


def test_invalid_config(cli_runner: CliRunner, test_project: Path):
    """Test an invalid husl.toml exits with code 1."""
    (test_project / "husl.toml").write_text("[stack]\nlangauge = 'python'\n")
    result = invoke(cli_runner, test_project, "validate")
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_plan_command_json(cli_runner: CliRunner, test_project: Path):
    """Test plan --json lists would-create entries and writes nothing."""
    result = invoke(cli_runner, test_project, "plan", "--json")
    assert result.exit_code == 0

    data = json.loads(result.stdout)
    assert {entry["status"] for entry in data} == {"would-create"}
    assert "app/models/order.py" in [entry["path"] for entry in data]
    assert not (test_project / "app").exists()


def test_plan_command_unknown_scope(cli_runner: CliRunner, test_project: Path):
    """Test an unknown scope name exits with code 1."""
    result = invoke(cli_runner, test_project, "plan", "--scope", "ShipOrder")
    assert result.exit_code == 1
    assert "ShipOrder" in result.output


def test_generate_command(cli_runner: CliRunner, test_project: Path):
    """Test generate writes artifacts and a second run changes nothing."""
    result = invoke(cli_runner, test_project, "generate")
    assert result.exit_code == 0
    assert (test_project / "app/services/submit_order.py").is_file()
    assert (test_project / "tests/test_get_order.py").is_file()

    again = invoke(cli_runner, test_project, "generate", "--json")
    assert again.exit_code == 0
    assert {entry["status"] for entry in json.loads(again.stdout)} == {"unchanged"}


def test_generate_command_conflict(cli_runner: CliRunner, test_project: Path):
    """Test a conflicted artifact exits with code 2 and is left untouched."""
    assert invoke(cli_runner, test_project, "generate").exit_code == 0
    service = test_project / "app/services/submit_order.py"
    before = service.read_text()

    spec = test_project / "spec.husl.md"
    spec.write_text(spec.read_text().replace("fraud_check (before)", "fraud_check (replace)"))

    result = invoke(cli_runner, test_project, "generate")
    assert result.exit_code == 2
    assert service.read_text() == before


def test_refactor_command_version(cli_runner: CliRunner, test_project: Path):
    """Test refactor applies the metadata recorded for a version."""
    result = invoke(cli_runner, test_project, "refactor", "--version", "1.1.0")
    assert result.exit_code == 0

    model = (test_project / "app/models/order.py").read_text()
    assert "remarks" in model
    assert "notes" not in model
    assert "notes: Text (optional)" in (test_project / "spec.husl.md").read_text()


def test_refactor_command_dry_run(cli_runner: CliRunner, test_project: Path):
    """Test refactor --dry-run plans without writing."""
    result = invoke(cli_runner, test_project, "refactor", "--dry-run", "--json")
    assert result.exit_code == 0
    assert {entry["status"] for entry in json.loads(result.stdout)} == {"would-create"}
    assert not (test_project / "app").exists()


def test_refactor_command_metadata_file(cli_runner: CliRunner, test_project: Path):
    """Test refactor reads metadata from a YAML file."""
    metadata = test_project / "rename.yaml"
    metadata.write_text("renames:\n  entities: {Shipment: Parcel}\n")

    result = invoke(cli_runner, test_project, "refactor", "--metadata", str(metadata))
    assert result.exit_code == 0
    assert (test_project / "app/models/parcel.py").is_file()


def test_refactor_command_conflicting_sources(cli_runner: CliRunner, test_project: Path):
    """Test --metadata and --version cannot be combined."""
    metadata = test_project / "rename.yaml"
    metadata.write_text("renames: {}\n")
    result = invoke(cli_runner, test_project, "refactor", "--metadata", str(metadata), "--version", "1.1.0")
    assert result.exit_code == 1


def test_refactor_command_unknown_version(cli_runner: CliRunner, test_project: Path):
    """Test an unknown version exits with code 1."""
    result = invoke(cli_runner, test_project, "refactor", "--version", "3.0.0")
    assert result.exit_code == 1
    assert "not in the version history" in result.output


def test_version_option(cli_runner: CliRunner):
    """Test --version prints version information."""
    result = cli_runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "husl " in result.stdout
    assert "Targets: python" in result.stdout

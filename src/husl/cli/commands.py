"""
HUSL CLI Commands.

- validate: Check a specification document
- plan: Preview what generation would change
- generate: Write artifacts, preserving protected regions
- refactor: Apply refactoring metadata, then plan or generate
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.table import Table

from husl import api
from husl.core import ir
from husl.core.errors import ExitCode, HuslError
from husl.core.refactor import load_metadata_file
from husl.core.validator import Severity, ValidationReport
from husl.generate.planner import ChangeSet, ChangeStatus
from husl.generate.runner import GenerationReport, OutcomeStatus

from .utils import Project, console, fail, open_project

STATUS_STYLES = {
    "unchanged": "dim",
    "skipped": "dim",
    "would-create": "green",
    "created": "green",
    "would-modify": "yellow",
    "updated": "yellow",
    "would-conflict": "red",
    "conflict": "red",
    "failed": "red",
}

# =============================================================================
# Shared options
# =============================================================================

SPEC_ARGUMENT = typer.Argument(None, help="Specification document (default: [project].spec from husl.toml)")
CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Path to husl.toml (default: ./husl.toml)")
OUTPUT_OPTION = typer.Option(None, "--output", "-o", help="Output directory (overrides husl.toml)")
SCOPE_OPTION = typer.Option(None, "--scope", "-s", help="Regenerate only these operations/entities (repeatable)")
JSON_OPTION = typer.Option(False, "--json", help="Print machine-readable JSON")


def _styled(status: ChangeStatus | OutcomeStatus) -> str:
    style = STATUS_STYLES[status.value]
    return f"[{style}]{status.value}[/{style}]"


def _load(project: Project) -> ir.SpecDocument:
    try:
        return project.load()
    except HuslError as e:
        raise fail(e) from e


# =============================================================================
# Rendering
# =============================================================================


def _print_issues(report: ValidationReport) -> None:
    if not report.issues:
        return
    table = Table(title="Validation Issues")
    table.add_column("Severity")
    table.add_column("Code", style="cyan")
    table.add_column("Location")
    table.add_column("Line", justify="right")
    table.add_column("Message")
    for issue in report.issues:
        severity = "[red]error[/red]" if issue.severity == Severity.ERROR else "[yellow]warning[/yellow]"
        table.add_row(
            severity,
            issue.code,
            issue.location or "-",
            str(issue.line) if issue.line is not None else "-",
            issue.message,
        )
    console.print(table)


def _print_plan(changes: ChangeSet, show_diff: bool) -> None:
    table = Table(title="Plan")
    table.add_column("Artifact", style="cyan")
    table.add_column("Status")
    table.add_column("Reasons")
    for change in changes:
        table.add_row(change.path, _styled(change.status), ", ".join(change.reasons()) or "-")
    console.print(table)

    for change in changes:
        if change.status == ChangeStatus.WOULD_CONFLICT:
            for error in change.extraction_errors:
                typer.echo(f"{change.path}:{error.line}: {error.kind}: {error.message}")
            for conflict in change.conflicts:
                typer.echo(f"{change.path}: {conflict.kind} in region '{conflict.region}': {conflict.detail}")
        elif show_diff and change.delta:
            typer.echo(change.delta)

    counts = ", ".join(f"{count} {status}" for status, count in changes.counts().items() if count)
    console.print(counts or "Nothing to generate")


def _print_report(report: GenerationReport) -> None:
    table = Table(title="Generation")
    table.add_column("Artifact", style="cyan")
    table.add_column("Outcome")
    for outcome in report.outcomes:
        table.add_row(outcome.path, _styled(outcome.status))
    console.print(table)

    for outcome in report.outcomes:
        if outcome.status in (OutcomeStatus.CONFLICT, OutcomeStatus.FAILED):
            for detail in outcome.details:
                typer.echo(f"{outcome.path}: {detail}", err=True)

    counts = ", ".join(f"{count} {status}" for status, count in report.counts().items() if count)
    console.print(counts or "Nothing to generate")


def _finish_plan(changes: ChangeSet, as_json: bool, show_diff: bool) -> None:
    if as_json:
        typer.echo(changes.to_json())
    else:
        _print_plan(changes, show_diff)
    raise typer.Exit(code=int(changes.exit_code))


def _finish_generate(report: GenerationReport, as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps([o.to_dict() for o in report.outcomes], indent=2))
    else:
        _print_report(report)
    raise typer.Exit(code=int(report.exit_code))


# =============================================================================
# Commands
# =============================================================================


def validate_command(
    spec: Path | None = SPEC_ARGUMENT,
    config: Path | None = CONFIG_OPTION,
    as_json: bool = JSON_OPTION,
) -> None:
    """
    Validate a specification document.

    Exits 1 when the document has errors (warnings alone pass) and 3 when it
    cannot be parsed.
    """
    project = open_project(config, spec, None)
    document = _load(project)
    report = api.validate(document)

    if as_json:
        typer.echo(json.dumps([issue.to_dict() for issue in report.issues], indent=2))
    else:
        _print_issues(report)
        if report.passed:
            console.print(f"[green]OK[/green] {project.spec_path.name}: {len(report.warnings)} warning(s)")
        else:
            console.print(f"[red]FAILED[/red] {project.spec_path.name}: {len(report.errors)} error(s)")

    if not report.passed:
        raise typer.Exit(code=int(ExitCode.VALIDATION_FAILURE))


def plan_command(
    spec: Path | None = SPEC_ARGUMENT,
    config: Path | None = CONFIG_OPTION,
    output: Path | None = OUTPUT_OPTION,
    scope: list[str] | None = SCOPE_OPTION,
    as_json: bool = JSON_OPTION,
    show_diff: bool = typer.Option(False, "--diff", "-d", help="Show unified diffs for modified artifacts"),
) -> None:
    """
    Preview generation without writing anything.

    Exits 2 when any artifact would conflict.

    Examples:
        husl plan                         # Everything
        husl plan --scope GetWidget       # One operation and its dependencies
        husl plan --json                  # Machine-readable change set
    """
    project = open_project(config, spec, output)
    document = _load(project)
    try:
        changes = api.plan(document, project.output_dir, project.stack, scope=scope or None)
    except HuslError as e:
        raise fail(e) from e
    _finish_plan(changes, as_json, show_diff)


def generate_command(
    spec: Path | None = SPEC_ARGUMENT,
    config: Path | None = CONFIG_OPTION,
    output: Path | None = OUTPUT_OPTION,
    scope: list[str] | None = SCOPE_OPTION,
    workers: int = typer.Option(1, "--workers", "-w", min=1, help="Worker threads for per-artifact processing"),
    as_json: bool = JSON_OPTION,
) -> None:
    """
    Generate artifacts, preserving hand-written protected regions.

    Conflicted artifacts are left untouched. Exits 2 when any artifact
    conflicts and 4 when any artifact could not be read or written.
    """
    project = open_project(config, spec, output)
    document = _load(project)
    try:
        report = api.generate(document, project.output_dir, project.stack, scope=scope or None, max_workers=workers)
    except HuslError as e:
        raise fail(e) from e
    _finish_generate(report, as_json)


def refactor_command(
    spec: Path | None = SPEC_ARGUMENT,
    config: Path | None = CONFIG_OPTION,
    output: Path | None = OUTPUT_OPTION,
    metadata: Path | None = typer.Option(None, "--metadata", "-m", help="Refactoring metadata YAML file"),
    version: str | None = typer.Option(
        None,
        "--version",
        help="Apply the metadata recorded for this version (default: the current version)",
    ),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Plan instead of writing"),
    as_json: bool = JSON_OPTION,
) -> None:
    """
    Apply refactoring metadata and regenerate from the refactored model.

    Metadata comes from --metadata, or from the document's version history.
    The document itself is not rewritten.
    """
    if metadata is not None and version is not None:
        typer.echo("Error: --metadata and --version are mutually exclusive", err=True)
        raise typer.Exit(code=int(ExitCode.VALIDATION_FAILURE))

    project = open_project(config, spec, output)
    document = _load(project)
    try:
        loaded = load_metadata_file(metadata) if metadata is not None else None
        refactored = api.refactor(document, loaded, version=version)
        if dry_run:
            changes = api.plan(refactored, project.output_dir, project.stack)
        else:
            report = api.generate(refactored, project.output_dir, project.stack)
    except HuslError as e:
        raise fail(e) from e

    if dry_run:
        _finish_plan(changes, as_json, show_diff=False)
    else:
        _finish_generate(report, as_json)


__all__ = ["validate_command", "plan_command", "generate_command", "refactor_command"]

"""
HUSL CLI Utilities.

Shared helpers used by the command modules: version display, project
loading, and mapping library errors onto process exit codes.
"""

from __future__ import annotations

import logging
import platform
from pathlib import Path

import typer
from rich.console import Console

from husl._version import get_version
from husl.core import ir
from husl.core.errors import ArtifactIOError, ExitCode, HuslError, ParseError
from husl.core.parser import parse_file
from husl.generate.config import CONFIG_FILENAME, HuslConfig, load_config

console = Console()

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def version_callback(value: bool) -> None:
    """Display version and environment information."""
    if value:
        from husl.generate.targets import TargetRegistry

        typer.echo(f"husl {get_version()}")
        typer.echo(f"Python {platform.python_version()} ({platform.python_implementation()})")
        typer.echo(f"Targets: {', '.join(TargetRegistry.list_targets()) or 'none'}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)


def exit_code_for(error: HuslError) -> ExitCode:
    """
    Map a library error to the exit code the CLI reports.

    Validation, configuration, scope and refactoring errors all report
    VALIDATION_FAILURE.
    """
    if isinstance(error, ParseError):
        return ExitCode.PARSE_FAILURE
    if isinstance(error, ArtifactIOError):
        return ExitCode.IO_FAILURE
    return ExitCode.VALIDATION_FAILURE


def fail(error: HuslError) -> typer.Exit:
    """Print an error and return the Exit to raise."""
    typer.echo(f"Error: {error}", err=True)
    return typer.Exit(code=int(exit_code_for(error)))


class Project:
    """
    A configuration file plus the paths it resolves.

    Relative paths in ``husl.toml`` are resolved against the directory that
    holds the file; command-line overrides win over the file.
    """

    def __init__(self, config_path: Path, spec: Path | None = None, output: Path | None = None):
        self.config_path = config_path
        self.root = config_path.resolve().parent
        self.settings: HuslConfig = load_config(config_path)
        self.spec_path = spec if spec is not None else self.settings.spec_path(self.root)
        self.output_dir = output if output is not None else self.settings.output_path(self.root)

    @property
    def stack(self):
        return self.settings.stack

    def load(self) -> ir.SpecDocument:
        return parse_file(self.spec_path)


def open_project(config: Path | None, spec: Path | None, output: Path | None) -> Project:
    """
    Load the project configuration for a command.

    Raises:
        typer.Exit: If the configuration is invalid
    """
    try:
        return Project(config or Path(CONFIG_FILENAME), spec=spec, output=output)
    except HuslError as e:
        raise fail(e) from e


__all__ = [
    "console",
    "version_callback",
    "configure_logging",
    "exit_code_for",
    "fail",
    "Project",
    "open_project",
]

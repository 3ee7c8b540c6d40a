"""
HUSL command-line interface.

    husl validate [SPEC]
    husl plan [SPEC] [--scope NAME ...] [--json] [--diff]
    husl generate [SPEC] [--scope NAME ...] [--workers N]
    husl refactor [SPEC] (--metadata FILE | --version V) [--dry-run]

Exit codes follow ``husl.core.errors.ExitCode``.
"""

from __future__ import annotations

import sys

import typer

from .commands import generate_command, plan_command, refactor_command, validate_command
from .utils import configure_logging, version_callback

# =============================================================================
# Main Application
# =============================================================================

app = typer.Typer(
    help="""HUSL - specification compiler and regeneration engine

Commands:
  • validate: check a specification document
  • plan: preview generation without writing
  • generate: write artifacts, keeping protected regions
  • refactor: apply refactoring metadata and regenerate
""",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and environment information",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """HUSL CLI main callback for global options."""
    configure_logging(verbose)


app.command(name="validate")(validate_command)
app.command(name="plan")(plan_command)
app.command(name="generate")(generate_command)
app.command(name="refactor")(refactor_command)


# =============================================================================
# Main Entry Point
# =============================================================================


def main(argv: list[str] | None = None) -> None:
    app(args=argv, standalone_mode=True)


if __name__ == "__main__":
    main(sys.argv[1:])

__all__ = ["app", "main"]

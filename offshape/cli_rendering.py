"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics
and export run summaries.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .errors import OffshapeError
from .models.datatypes import ExportSummary


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, OffshapeError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_export_summary(summary: ExportSummary) -> None:
    """Print written-file and failure counts for one export run."""

    typer.echo(f"Files written: {len(summary.written)}")
    typer.echo(f"Poll passes: {summary.poll_iterations}")
    if not summary.failures:
        return
    typer.secho(f"Translations failed: {len(summary.failures)}", fg=typer.colors.YELLOW)
    for failure in summary.failures:
        typer.secho(f"- {failure.output_filename}: {failure.reason}", fg=typer.colors.YELLOW)

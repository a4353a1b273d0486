# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
sqlspy command line tools.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer

from sqlspy.config.errors import ConfigValidationError
from sqlspy.config.settings import SpySettings, load_settings
from sqlspy.profiler import ProfileReport
from sqlspy.timing import TimingUnit

app = typer.Typer(help="sqlspy: SQL traffic logging and profiling tools.")


@app.command()
def profile(
    logfile: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="Timing log to profile"
    ),
    threshold: int = typer.Option(
        100, min=0, help="Flag statements that took longer than this"
    ),
    unit: TimingUnit = typer.Option(
        TimingUnit.MSEC, case_sensitive=False, help="Unit of the threshold and report"
    ),
    top: int = typer.Option(1000, min=0, help="Number of top offenders to list"),
) -> None:
    """Profile a timing log and list the slowest statements."""
    report = ProfileReport.from_file(logfile, threshold=threshold, unit=unit)
    typer.echo(report.render(top=top))


@app.command()
def settings() -> None:
    """Show the effective instrumentation settings."""
    try:
        current = load_settings()
    except ConfigValidationError as exc:
        typer.secho(f"Invalid configuration: {exc.message}", fg=typer.colors.RED)
        raise typer.Exit(1) from exc
    typer.echo("Current sqlspy settings:")
    for key, value in current.model_dump(mode="json").items():
        typer.echo(f"  {key}: {value}")


@app.command()
def schema() -> None:
    """Show the settings schema (fields, types, defaults)."""
    typer.echo(json.dumps(SpySettings.model_json_schema(), indent=2))


def main() -> None:
    app()


if __name__ == "__main__":
    main()

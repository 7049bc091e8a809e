"""`photo-report-cleanup` command implementations."""

from __future__ import annotations

import asyncio
from typing import Annotated, Optional

import typer

from .cleanup import CleanupCoordinator
from .configuration import StorageSettings
from .exceptions import StorageError
from .factory import StorageProviderFactory
from .models import CleanupReport

app = typer.Typer(
    add_completion=False,
    invoke_without_command=True,
    help="Photo report storage maintenance (wipe, sweep).",
)


@app.callback()
def _main(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


def _coordinator() -> CleanupCoordinator:
    return CleanupCoordinator(StorageProviderFactory.create(StorageSettings.from_env()))


def _echo_report(report: CleanupReport) -> None:
    typer.echo(f"deleted {report.deleted_count} objects, {report.error_count} errors")
    for key, reason in sorted(report.failed.items()):
        typer.echo(f"  failed {key}: {reason}", err=True)


@app.command(name="wipe", help="Delete every object in the bucket (destructive).")
def wipe(
    prefix: Annotated[
        Optional[str],
        typer.Option("--prefix", help="Only delete keys starting with this prefix."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", help="Confirm destructive wipe."),
    ] = False,
) -> None:
    if not yes:
        typer.echo("error: wipe requires --yes", err=True)
        raise typer.Exit(code=1)

    try:
        report = asyncio.run(_coordinator().wipe_all(prefix))
    except StorageError as exc:
        typer.echo(f"error: failed to clean up bucket: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    _echo_report(report)


@app.command(name="sweep", help="Delete staged source images left behind by jobs.")
def sweep() -> None:
    try:
        report = asyncio.run(_coordinator().sweep_sources())
    except StorageError as exc:
        typer.echo(f"error: failed to sweep sources: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    _echo_report(report)


if __name__ == "__main__":
    app()

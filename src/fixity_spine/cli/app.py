"""
Root Typer application for the fixity-spine CLI.

    fixity-spine check --server-location http://storage.example.org:70 \\
        --store-master-db postgresql+psycopg://... --daitss-db postgresql+psycopg://...
    fixity-spine pools --store-master-db postgresql+psycopg://...
    fixity-spine --version

Every option falls back to the matching ``FIXITY_`` environment variable.
Reports go to stdout (or ``--output``); logs go to stderr.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from fixity_spine import __version__
from fixity_spine.core.errors import FixityError
from fixity_spine.core.logging import configure_logging, get_logger
from fixity_spine.core.settings import FixitySettings
from fixity_spine.runner import AnalyzerName, FixityCheckRunner, RunStatus
from fixity_spine.streams.records import FixitySchema

app = typer.Typer(
    name="fixity-spine",
    help="fixity-spine: reconcile storage pool fixity data against the store-master and DAITSS.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True)
log = get_logger(__name__)

PID_FILE_NAME = "fixity-spine.pid"


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"fixity-spine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """fixity-spine CLI: run fixity reconciliation and inspect pools."""


# ── Helpers ──────────────────────────────────────────────────────────────


def load_settings(**overrides: Any) -> FixitySettings:
    """Settings from the environment, with CLI options that were given on top."""
    given = {key: value for key, value in overrides.items() if value is not None}
    try:
        return FixitySettings(**given)
    except ValidationError as e:
        err_console.print(f"[bold red]Invalid settings:[/bold red] {e}")
        raise typer.Exit(code=2) from e


def _alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


@contextmanager
def pid_file(directory: Path | None) -> Iterator[Path | None]:
    """
    Hold a PID file in ``directory`` for the duration of a run, so two runs
    never audit (and write events) at once. A stale file left by a dead
    process is replaced.
    """
    if directory is None:
        yield None
        return

    path = directory / PID_FILE_NAME
    if path.exists():
        text = path.read_text().strip()
        if text.isdigit() and _alive(int(text)):
            raise FixityError(f"Another fixity run (pid {text}) is in progress; {path} exists").with_context(
                pid_file=str(path)
            )
        log.warning("cli.stale_pid_file", path=str(path), pid=text)

    directory.mkdir(parents=True, exist_ok=True)
    path.write_text(f"{os.getpid()}\n")
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("check")
def check(
    required_copies: int | None = typer.Option(None, "--required-copies", "-r", help="Copies each package must have."),
    expiration_days: int | None = typer.Option(
        None, "--expiration-days", "-e", help="Days after which a fixity check is expired."
    ),
    stale_days: int | None = typer.Option(None, "--stale-days", help="Skip packages stored within this many days."),
    server_location: str | None = typer.Option(
        None, "--server-location", "-s", help="Storage master URL used to build package URLs."
    ),
    store_master_db: str | None = typer.Option(None, "--store-master-db", help="Store-master database URL."),
    daitss_db: str | None = typer.Option(None, "--daitss-db", help="DAITSS database URL."),
    analyzers: list[AnalyzerName] | None = typer.Option(
        None, "--analyzer", "-a", help="Analyzer to run (repeatable); default is all of them."
    ),
    schema: FixitySchema = typer.Option(FixitySchema.V2, "--schema", help="Pool fixity CSV layout."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write reports here instead of stdout."),
    max_lines: int | None = typer.Option(None, "--max-lines", help="Abbreviate reports longer than this."),
    pid_directory: Path | None = typer.Option(None, "--pid-directory", help="Directory for the run's PID file."),
    log_level: str | None = typer.Option(None, "--log-level", "-l"),
    json_logs: bool | None = typer.Option(None, "--json-logs/--console-logs"),
) -> None:
    """Run the fixity audit and write the interesting reports, summary first."""
    settings = load_settings(
        required_copies=required_copies,
        expiration_days=expiration_days,
        stale_days=stale_days,
        server_location=server_location,
        store_master_db_url=store_master_db,
        daitss_db_url=daitss_db,
        pid_directory=pid_directory,
        log_level=log_level,
        json_logs=json_logs,
    )
    configure_logging(level=settings.log_level, json_format=settings.json_logs)

    try:
        with pid_file(settings.pid_directory):
            result = FixityCheckRunner(settings, analyzers, schema=schema).run()
    except FixityError as e:
        err_console.print(f"[bold red]Error:[/bold red] {e.message}")
        raise typer.Exit(code=1) from e

    reports = result.interesting_reports()
    out = output.open("w", encoding="utf-8") if output else sys.stdout
    try:
        for report in reports:
            if max_lines:
                report.abbreviated(out, max_lines)
            else:
                report.write(out)
    finally:
        if output:
            out.close()
        for report in result.ordered_reports():
            report.close()

    if result.status is RunStatus.FAILED:
        err_console.print(f"[bold red]Run {result.run_id} failed:[/bold red] {result.error}")
        raise typer.Exit(code=1)


@app.command("pools")
def pools(
    store_master_db: str | None = typer.Option(None, "--store-master-db", help="Store-master database URL."),
) -> None:
    """List the active pools from the store-master database."""
    from fixity_spine.db.engine import create_fixity_engine
    from fixity_spine.sources.database import list_active_pools

    settings = load_settings(store_master_db_url=store_master_db)
    try:
        settings.require("store_master_db_url")
        active = list_active_pools(create_fixity_engine(settings.store_master_db_url))
    except FixityError as e:
        err_console.print(f"[bold red]Error:[/bold red] {e.message}")
        raise typer.Exit(code=1) from e

    if not active:
        console.print("[dim]No active pools.[/dim]")
        return

    table = Table(title="Active Pools")
    table.add_column("Name", style="cyan")
    table.add_column("Services Location")
    table.add_column("Read Preference", justify="right")
    table.add_column("Auth")
    for pool in active:
        table.add_row(
            pool.name,
            pool.services_location,
            str(pool.read_preference),
            "basic" if pool.auth else "-",
        )
    console.print(table)

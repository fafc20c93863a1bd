#!/usr/bin/env python3
"""
Intranet Reconciler - command line entry point.

Usage:
    intranet-reconcile run [--only NAME]... [--output-json PATH]
    intranet-reconcile list-targets
    intranet-reconcile show-sql NAME
    intranet-reconcile purge-scaffold [--yes]

Exit codes for `run`:
    0  every target already satisfied or corrected
    1  at least one target failed (fallback SQL printed)
    2  run aborted on a transport error
    3  configuration error (missing credentials, unknown target, cycle)
"""

from pathlib import Path
from typing import List, Optional

import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from intranet_reconciler.catalog import get_targets
from intranet_reconciler.config import get_settings
from intranet_reconciler.domain.enums import ActionKind
from intranet_reconciler.engine.patcher import PatchApplier
from intranet_reconciler.engine.probe import Probe
from intranet_reconciler.engine.reporter import Reporter
from intranet_reconciler.engine.runner import ReconciliationRunner, select_targets
from intranet_reconciler.exceptions import (
    DependencyCycleError,
    StoreError,
    TransportError,
    UnknownTargetError,
)
from intranet_reconciler.observability import configure_logging, log_execution_time
from intranet_reconciler.repository.supabase import SupabaseRestClient

EXIT_CONFIG_ERROR = 3

app = typer.Typer(help="Detect and correct schema drift in the intranet Supabase project.")
console = Console(highlight=False, soft_wrap=True)


def _load_settings():
    try:
        settings = get_settings()
    except ValidationError as e:
        configure_logging("INFO")
        logger.error(f"Invalid configuration: {e}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from e
    configure_logging(settings.LOG_LEVEL)
    return settings


@app.command()
def run(
    only: Optional[List[str]] = typer.Option(
        None, "--only", help="Reconcile only this target (and its dependencies)"
    ),
    output_json: Optional[Path] = typer.Option(
        None, "--output-json", help="Also write the run report as JSON to this path"
    ),
):
    """
    Probe every target, patch what is missing, verify, and print a report.
    """
    settings = _load_settings()

    try:
        targets = select_targets(get_targets(), only)
    except UnknownTargetError as e:
        logger.error(str(e))
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from e

    logger.info(f"Target Project: {settings.SUPABASE_URL}")
    if settings.has_sql_rpc:
        logger.info(f"SQL execution RPC: {settings.SUPABASE_SQL_RPC}")
    else:
        logger.info("No SQL execution RPC configured; DDL cannot be applied over REST")

    with SupabaseRestClient.from_settings(settings) as client:
        probe = Probe(client)
        runner = ReconciliationRunner(probe, PatchApplier(client, settings))
        try:
            with log_execution_time(logger, "reconciliation", targets=len(targets)):
                report = runner.run(targets)
        except DependencyCycleError as e:
            logger.error(str(e))
            raise typer.Exit(code=EXIT_CONFIG_ERROR) from e

    reporter = Reporter(console)
    reporter.print(report)
    if output_json is not None:
        reporter.write_json(report, output_json)
        logger.info(f"Report written to {output_json}")

    raise typer.Exit(code=report.exit_code)


@app.command("list-targets")
def list_targets():
    """Show the reconciliation catalog."""
    table = Table(title="Reconciliation Targets")
    table.add_column("Target", style="cyan")
    table.add_column("Probe", style="green")
    table.add_column("Action", style="yellow")
    table.add_column("Depends On", style="dim")
    table.add_column("Description")

    for target in get_targets():
        table.add_row(
            target.name,
            f"{target.probe.kind.value}: {target.probe.table}?select={target.probe.select}",
            target.action.kind.value,
            ", ".join(target.depends_on) or "-",
            target.description,
        )
    console.print(table)


@app.command("show-sql")
def show_sql(name: str = typer.Argument(..., help="Target name")):
    """Print a target's fallback SQL for manual execution."""
    for target in get_targets():
        if target.name == name:
            console.print(target.fallback_sql, markup=False, highlight=False)
            return
    console.print(f"Unknown target: {name}", markup=False)
    raise typer.Exit(code=EXIT_CONFIG_ERROR)


@app.command("purge-scaffold")
def purge_scaffold(
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt"),
):
    """
    Delete rows the reconciler wrote in degraded mode (synthetic key prefix only).
    """
    settings = _load_settings()
    prefix = settings.SCAFFOLD_KEY_PREFIX
    scaffold_targets = [
        t for t in get_targets() if t.action.kind == ActionKind.SCAFFOLD
    ]

    logger.info("Scaffold rows matching these filters will be DELETED:")
    for t in scaffold_targets:
        logger.info(f" - {t.probe.table}.{t.action.key_column} like {prefix}*")

    if not yes and not typer.confirm("Delete these scaffold rows?"):
        logger.info("Aborted.")
        return

    deleted = 0
    with SupabaseRestClient.from_settings(settings) as client:
        for t in scaffold_targets:
            try:
                rows = client.delete(
                    t.probe.table, {t.action.key_column: f"like.{prefix}*"}
                )
            except TransportError as e:
                logger.critical(f"Aborting purge: {e}")
                raise typer.Exit(code=2) from e
            except StoreError as e:
                logger.error(f"Failed to purge scaffold rows from {t.probe.table}: {e}")
                continue
            deleted += len(rows)
            logger.success(f"Deleted {len(rows)} scaffold rows from {t.probe.table}")

    logger.success(f"Complete. {deleted} scaffold rows deleted.")


def main():
    app()


if __name__ == "__main__":
    main()

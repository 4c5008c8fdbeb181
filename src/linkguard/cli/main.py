#!/usr/bin/env python3
"""
LinkGuard Command Line Interface

Inspects relationship schemas and the records of a configured document store,
and runs cascade archives from the shell.

Usage:
    linkguard --help
    linkguard [options] [command] [arguments]

Examples:
    linkguard check-schema schemas.yaml
    linkguard --store sqlite show user 1
    linkguard archive company 1 --dry-run

Environment Variables:
    LINKGUARD_STORE: Store type (sqlite by default; memory is rejected by show and archive)
    LINKGUARD_SQLITE_PATH: Path of the SQLite database
    LINKGUARD_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

import asyncio
import json
import logging
import os
import sys
from typing import Annotated, Any, Dict, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from linkguard import __version__
from linkguard.config.loader import ENV_LOG_LEVEL, ConfigurationLoader
from linkguard.context import LinkContext
from linkguard.core.classifier import classify_descriptor
from linkguard.exceptions import ConfigurationError, LinkGuardError, RecordNotFoundError
from linkguard.schema.declarations import load_schemas
from linkguard.schema.registry import DescriptorRegistry
from linkguard.store.factory import StoreType

console = Console()
logger = logging.getLogger(__name__)

app = typer.Typer(
    name="linkguard",
    help="Relationship consistency tools for document stores",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)

# Shared state filled by the callback
state: Dict[str, Any] = {"config_dir": None, "store": None, "schema": None}


def _configure_logging(verbose: bool) -> None:
    level = "DEBUG" if verbose else os.environ.get(ENV_LOG_LEVEL, "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )
    logging.getLogger("linkguard").setLevel(level)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose output.")] = False,
    config_dir: Annotated[Optional[str], typer.Option("--config-dir", "-c", help="Directory with base_config.yaml and <store>_config.yaml.")] = None,
    store: Annotated[Optional[str], typer.Option("--store", "-s", help="Store type (sqlite, memory); defaults to sqlite.")] = None,
    schema: Annotated[Optional[str], typer.Option("--schema", help="Schema file; overrides schema.path.")] = None,
):
    """
    LinkGuard CLI.
    """
    _configure_logging(verbose)
    state.update(config_dir=config_dir, store=store, schema=schema)


def _load_context() -> LinkContext:
    loader = ConfigurationLoader(state["config_dir"])
    config = loader.load(state["store"])
    if config["store"]["type"] == StoreType.MEMORY.value:
        raise ConfigurationError(
            "The memory store starts empty on every run and cannot be inspected from the command line; "
            "select a persistent store such as --store sqlite"
        )
    if state["schema"]:
        config.setdefault("schema", {})["path"] = state["schema"]
    logging.getLogger("linkguard").setLevel(loader.get("logging.level", "INFO"))
    return LinkContext.from_config(config)


def _fail(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(code=1)


@app.command("check-schema")
def check_schema(
    path: Annotated[str, typer.Argument(help="YAML file mapping each table to its declaration.")],
):
    """Build the descriptor registry from a schema file and print it."""
    try:
        registry = DescriptorRegistry.build(load_schemas(path))
    except ConfigurationError as e:
        _fail(e.message)

    table = Table(title=f"Relationships in {path}")
    table.add_column("Table", style="cyan")
    table.add_column("Field")
    table.add_column("Relation")
    table.add_column("Related")
    table.add_column("Inverse")
    table.add_column("On archive", style="magenta")

    for name in registry.tables():
        for field_name, descriptor in registry.describe(name).items():
            table.add_row(
                name,
                field_name,
                descriptor.relation.value,
                descriptor.related_table,
                f"{descriptor.inverse.field} ({descriptor.inverse.relation.value})",
                classify_descriptor(descriptor).value,
            )

    console.print(table)
    console.print(f"[green]OK[/green] {len(registry.tables())} tables")


@app.command()
def show(
    table: Annotated[str, typer.Argument(help="Table of the record.")],
    record_id: Annotated[str, typer.Argument(help="Id of the record.")],
):
    """Print a record as JSON."""

    async def _show() -> Optional[Dict[str, Any]]:
        async with _load_context() as context:
            record = await context.fetch(table, record_id)
            return record.to_document() if record is not None else None

    try:
        document = asyncio.run(_show())
    except LinkGuardError as e:
        _fail(e.message)

    if document is None:
        _fail(f"Record '{record_id}' of table '{table}' not found")
    console.print_json(json.dumps(document))


@app.command()
def archive(
    table: Annotated[str, typer.Argument(help="Table of the record.")],
    record_id: Annotated[str, typer.Argument(help="Id of the record.")],
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Print the cascade plan without writing.")] = False,
):
    """Archive a record and everything it owns."""

    async def _archive() -> Any:
        async with _load_context() as context:
            if dry_run:
                return await context.plan_archive(table, record_id)
            return await context.archive(table, record_id)

    try:
        outcome = asyncio.run(_archive())
    except RecordNotFoundError as e:
        _fail(e.message)
    except LinkGuardError as e:
        logger.error(f"Archive failed: {e.message}")
        _fail(e.message)

    if dry_run:
        console.print(f"[bold]Cascade plan for {table}/{record_id}[/bold]")
        console.print_json(json.dumps(outcome.to_dict()))
        return

    if not outcome.deleted:
        console.print(f"[yellow]{table}/{record_id} was already archived[/yellow]")
        return
    console.print(
        f"[green]Archived[/green] {table}/{record_id}: "
        f"{outcome.archived} records archived, {outcome.patched} pointers patched"
    )


@app.command()
def version():
    """Display the current version of LinkGuard."""
    console.print(f"LinkGuard v[bold cyan]{__version__}[/bold cyan]")


def main():
    """Main entry point for the CLI."""
    try:
        app()
    except Exception as e:
        logger.error(f"Unhandled exception: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    main()

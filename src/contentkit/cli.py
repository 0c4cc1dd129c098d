"""
contentkit command line interface.

Commands:
- import:  Import (or preview) a content-model document into a SQLite store
- schema:  Show the bundles and fields of a store
- version: Show the installed version
"""

from __future__ import annotations

import json
import platform
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from contentkit._version import get_version
from contentkit.core.errors import ValidationError
from contentkit.core.importer import ContentImporter
from contentkit.core.ir import ImportResult
from contentkit.core.naming import base_fields
from contentkit.core.reporter import failed_result
from contentkit.core.settings import ImportSettings, load_settings
from contentkit.logging import get_logger, setup_logging
from contentkit.storage import SQLiteStorage

app = typer.Typer(
    help="contentkit - declarative content-model import engine",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)
logger = get_logger("cli")


def version_callback(value: bool) -> None:
    if value:
        console.print(f"contentkit {get_version()} (Python {platform.python_version()})")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version information",
    ),
) -> None:
    """contentkit CLI main callback for global options."""
    pass


def _settings(config: Path | None) -> ImportSettings:
    try:
        return load_settings(config)
    except ValidationError as e:
        err_console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(1)


def _print_result(result: ImportResult) -> None:
    if not result.success:
        err_console.print(f"[red]Import rejected:[/red] {result.error}")
        return

    for line in result.summary:
        console.print(line, markup=False, highlight=False, soft_wrap=True)

    if result.created_entities:
        table = Table(title="Preview entities" if result.preview else "Created entities")
        table.add_column("ID", style="cyan")
        table.add_column("Type")
        table.add_column("Reference", style="green")
        for entity in result.created_entities:
            table.add_row(entity.id, entity.type, entity.persisted_ref)
        console.print(table)

    if result.warnings:
        console.print(f"[yellow]{len(result.warnings)} warning(s):[/yellow]")
        for warning in result.warnings:
            console.print(f"  - {warning}", markup=False, highlight=False, style="yellow", soft_wrap=True)
    else:
        console.print("[green]No warnings[/green]")


@app.command(name="import")
def import_command(
    document: Path = typer.Argument(..., help="JSON import document"),
    preview: bool = typer.Option(
        False, "--preview", "-p", help="Show the plan without writing anything"
    ),
    db: Path | None = typer.Option(None, "--db", help="SQLite database (overrides config)"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to contentkit.toml"),
    verbose: bool = typer.Option(False, "--verbose", help="Also log to the console"),
) -> None:
    """Import a content-model document."""
    settings = _settings(config)
    setup_logging(settings.log_dir, settings.log_level, console=verbose)

    storage = SQLiteStorage(db or settings.database_path)
    importer = ContentImporter(storage, settings)
    try:
        parsed = importer.loader.load_path(document)
    except ValidationError as e:
        result = failed_result(e, preview=preview)
    else:
        result = importer.import_document(parsed, preview=preview)

    logger.debug("Import of %s finished with success=%s", document, result.success)
    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _print_result(result)

    if not result.success:
        raise typer.Exit(1)


@app.command(name="schema")
def schema_command(
    db: Path | None = typer.Option(None, "--db", help="SQLite database (overrides config)"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to contentkit.toml"),
) -> None:
    """Show bundles and their fields."""
    settings = _settings(config)
    storage = SQLiteStorage(db or settings.database_path)

    bundles = storage.list_bundles()
    if not bundles:
        console.print("[dim]No bundles defined[/dim]")
        return

    for info in bundles:
        table = Table(title=f"{info.qualified_name} ({info.label})")
        table.add_column("Field", style="cyan")
        table.add_column("Label")
        table.add_column("Type", style="green")
        table.add_column("Base", style="dim")
        for definition in base_fields(info.kind).values():
            table.add_row(definition.name, definition.label, definition.type.to_grammar(), "yes")
        for definition in storage.list_fields(info.kind, info.bundle):
            table.add_row(definition.name, definition.label, definition.type.to_grammar(), "")
        console.print(table)


@app.command(name="version")
def version_command() -> None:
    """Show the installed version."""
    console.print(f"contentkit {get_version()}")


def main() -> None:
    app(standalone_mode=True)


if __name__ == "__main__":
    main()

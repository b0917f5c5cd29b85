#!/usr/bin/env python3
"""
Hash catalog command line.

Usage:
    python -m hashcatalog.main init-db
    python -m hashcatalog.main import filelist.txt --type leak --source "Watch_Dogs filelist"
    python -m hashcatalog.main find --fnv64 B8B7A7186B90559E
    python -m hashcatalog.main hash "lol"
"""

from pathlib import Path

import click
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from hashcatalog.catalog import HashCatalog
from hashcatalog.database import ImportType, StringType, create_db_engine, drop_all_tables
from hashcatalog.deduplication.pipeline import StringEntry
from hashcatalog.exceptions import CatalogError
from hashcatalog.fingerprints import (
    FINGERPRINT_FIELDS,
    compute_fingerprints,
    parse_hex_string,
    to_hex_string,
    to_reverse_hex_string,
)
from hashcatalog.utils.logging import setup_logging


console = Console()

IMPORT_TYPES = {t.name.lower(): t for t in ImportType}
STRING_TYPES = {t.name.lower(): t for t in StringType}


def read_strings(path: Path, string_type: StringType) -> list[StringEntry]:
    """One string per line; line terminators are stripped and blank lines skipped."""
    lines = path.read_text(encoding="utf-8").replace("\r", "").split("\n")
    return [StringEntry(string=line, string_type=string_type) for line in lines if line]


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--sql", is_flag=True, help="Log every SQL statement")
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Also log to this file")
@click.option("--database-url", envvar="DATABASE_URL", default=None, help="SQLAlchemy database URL")
@click.pass_context
def cli(ctx, debug, sql, log_file, database_url):
    """Hash catalog: fingerprint strings and merge them into the catalog"""
    if debug or sql or log_file:
        setup_logging(level="DEBUG" if debug else None, log_file=log_file, sql=sql)

    ctx.ensure_object(dict)
    ctx.obj["database_url"] = database_url


def open_catalog(ctx) -> HashCatalog:
    return HashCatalog(create_db_engine(ctx.obj.get("database_url")))


@cli.command("init-db")
@click.option("--drop", is_flag=True, help="Drop existing tables before creating (USE WITH CAUTION!)")
@click.pass_context
def init_db(ctx, drop: bool):
    """Create the catalog tables."""
    catalog = open_catalog(ctx)
    try:
        if drop:
            click.confirm("Are you sure you want to drop all tables?", abort=True)
            logger.warning("Dropping all existing tables...")
            drop_all_tables(catalog.engine)
        catalog.create_tables()
        console.print("[green]Tables created[/green]")
    finally:
        catalog.dispose()


@cli.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--type", "import_type", type=click.Choice(list(IMPORT_TYPES)), default="unknown", help="Import type")
@click.option("--string-type", type=click.Choice(list(STRING_TYPES)), default="unknown", help="Type of the strings")
@click.option("--source", default=None, help="Source label stored with the import")
@click.option("--discord-id", default=None, help="Discord id stored with the import")
@click.option("--batch-size", type=int, default=None, help="Strings hashed per staging batch")
@click.pass_context
def import_file(ctx, file: Path, import_type: str, string_type: str, source, discord_id, batch_size):
    """Import every line of FILE as a string."""
    entries = read_strings(file, STRING_TYPES[string_type])
    console.print(f"\n[bold blue]Importing {len(entries):,} lines from {file}[/bold blue]")

    catalog = open_catalog(ctx)
    if batch_size:
        catalog.batch_size = batch_size
    try:
        result = catalog.run_import(
            entries,
            IMPORT_TYPES[import_type],
            source=source,
            discord_id=discord_id,
        )
    except Exception as e:
        console.print(f"[red]Import failed: {e}[/red]")
        raise SystemExit(1)
    finally:
        catalog.dispose()

    table = Table()
    table.add_column("Metric")
    table.add_column("Value")
    table.add_row("Import", str(result.import_id))
    table.add_row("Received", f"{result.entries_received:,}")
    table.add_row("Duplicates in file", f"{result.duplicates_in_batch:,}")
    table.add_row("Already known", f"{result.existing_strings:,}")
    table.add_row("New strings", f"[green]{result.new_strings:,}[/green]")
    table.add_row("Placeholders resolved", f"{result.reconciled_placeholders:,}")
    if result.duration_seconds is not None:
        table.add_row("Duration", f"{result.duration_seconds:.1f}s")
    console.print(table)


@cli.command()
@click.option("--fnv32", default=None, help="WD-FNV32 as hex")
@click.option("--fnv64", default=None, help="WD-FNV64 as hex")
@click.option("--crc32", default=None, help="CRC32 as hex")
@click.option("--crc64", default=None, help="CRC64 as hex")
@click.pass_context
def find(ctx, **hex_values):
    """Look up hashes by one fingerprint."""
    try:
        query = {name: parse_hex_string(value) for name, value in hex_values.items() if value is not None}
    except CatalogError as e:
        raise click.BadParameter(str(e))
    if len(query) != 1:
        raise click.UsageError("Give exactly one of --fnv32, --fnv64, --crc32, --crc64")

    catalog = open_catalog(ctx)
    try:
        entries = catalog.find_hash(**query)
    except CatalogError as e:
        raise click.BadParameter(str(e))
    finally:
        catalog.dispose()

    if not entries:
        console.print("[yellow]No matching hashes[/yellow]")
        return

    table = Table()
    table.add_column("ID")
    table.add_column("String")
    for name in FINGERPRINT_FIELDS:
        table.add_column(name.upper())
    for entry in entries:
        values = entry.fingerprints.as_dict()
        table.add_row(
            str(entry.id),
            escape(entry.string) if entry.string is not None else "[dim]<unknown>[/dim]",
            *(to_hex_string(values[name]) if values[name] is not None else "-" for name in FINGERPRINT_FIELDS),
        )
    console.print(table)


@cli.command("hash")
@click.argument("string")
def hash_string(string: str):
    """Print the fingerprints of STRING without touching the database."""
    fingerprints = compute_fingerprints(string)

    table = Table()
    table.add_column("Fingerprint")
    table.add_column("Hex")
    table.add_column("Reversed")
    table.add_column("Decimal")
    for name, value in fingerprints.as_dict().items():
        table.add_row(name.upper(), to_hex_string(value), to_reverse_hex_string(value), str(value))
    console.print(table)


if __name__ == "__main__":
    cli()

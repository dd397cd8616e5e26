"""
cli.py — Click CLI entrypoint for the pantry directory core.

Usage:
    pantry import-file pantries.csv --default-state PA
    pantry sync 6f1c... --token "$GRAPH_ACCESS_TOKEN"
    pantry validate-mapping 6f1c... --token "$GRAPH_ACCESS_TOKEN"
    pantry list-sites 6f1c... --search "food bank"
    pantry list-lists 6f1c...
    pantry search bethlehem --lat 40.62 --lng -75.37 --radius 10
    pantry export --backup --output backups/
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import click
import structlog

from pantry_shared.config import settings
from pantry_pipeline.errors import IngestionError
from pantry_pipeline.pipelines import ingest_flat_file, ingest_remote_list, validate_remote_mapping
from pantry_pipeline.services.export_service import (
    export_filename,
    generate_backup_csv,
    generate_csv,
    generate_sync_report,
)
from pantry_pipeline.services.search_service import search as search_records
from pantry_pipeline.sources.sharepoint import RemoteEntry, SharePointSource, StaticTokenProvider
from pantry_pipeline.stores.base import RecordStore, SyncConfigStore
from pantry_pipeline.utils.logging import configure_logging

log = structlog.get_logger(__name__)


def _open_stores(backend: str) -> tuple[RecordStore, SyncConfigStore]:
    """Record store and sync-config store for the chosen backend."""
    if backend == "supabase":
        from pantry_pipeline.stores.supabase_store import (
            SupabaseRecordStore,
            SupabaseSyncConfigStore,
        )

        return SupabaseRecordStore(), SupabaseSyncConfigStore()

    from pantry_pipeline.stores.duckdb_store import DuckDBRecordStore, DuckDBSyncConfigStore

    return DuckDBRecordStore(), DuckDBSyncConfigStore()


def _load_config(config_store: SyncConfigStore, config_id: str):
    config = config_store.get(config_id)
    if config is None:
        raise click.ClickException(f"No sync configuration with id {config_id}")
    return config


@click.group()
@click.option(
    "--log-level",
    default=settings.log_level,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level",
)
@click.option(
    "--log-format",
    default=settings.log_format,
    type=click.Choice(["json", "console"]),
    help="Log renderer",
)
@click.option(
    "--store",
    "backend",
    default=settings.store_backend,
    type=click.Choice(["duckdb", "supabase"]),
    help="Record store backend",
)
@click.pass_context
def main(ctx: click.Context, log_level: str, log_format: str, backend: str) -> None:
    """Food pantry directory: imports, sync and search."""
    configure_logging(log_level, log_format)
    ctx.obj = {"backend": backend}


@main.command("import-file")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--default-state", default=None, help="State for rows without one")
@click.option("--default-city", default=None, help="City for rows with an address but no city")
@click.pass_context
def import_file(
    ctx: click.Context, path: Path, default_state: str | None, default_city: str | None
) -> None:
    """Import pantries from a CSV file."""
    store, _ = _open_stores(ctx.obj["backend"])
    report = asyncio.run(
        ingest_flat_file(
            path.read_bytes(),
            store,
            default_state=default_state,
            default_city=default_city,
        )
    )
    click.echo(generate_sync_report(report), nl=False)
    if report.failure is not None:
        raise SystemExit(1)


@main.command()
@click.argument("config_id")
@click.option("--token", envvar="GRAPH_ACCESS_TOKEN", required=True, help="Graph bearer token")
@click.pass_context
def sync(ctx: click.Context, config_id: str, token: str) -> None:
    """Sync one SharePoint list configuration into the directory."""
    store, config_store = _open_stores(ctx.obj["backend"])
    config = _load_config(config_store, config_id)
    report = asyncio.run(
        ingest_remote_list(config, store, config_store, StaticTokenProvider(token))
    )
    click.echo(generate_sync_report(report), nl=False)
    if report.failure is not None:
        raise SystemExit(1)


@main.command("validate-mapping")
@click.argument("config_id")
@click.option("--token", envvar="GRAPH_ACCESS_TOKEN", required=True, help="Graph bearer token")
@click.pass_context
def validate_mapping(ctx: click.Context, config_id: str, token: str) -> None:
    """Check a configuration's column mapping against the live list."""
    _, config_store = _open_stores(ctx.obj["backend"])
    config = _load_config(config_store, config_id)
    result = asyncio.run(validate_remote_mapping(config, StaticTokenProvider(token)))
    if result.valid:
        click.echo("Mapping is valid.")
        return
    click.echo("Mapping is invalid:")
    for error in result.errors:
        click.echo(f"  - {error}")
    raise SystemExit(1)


def _echo_entries(entries: list[RemoteEntry], what: str) -> None:
    if not entries:
        click.echo(f"No {what} found.")
        return
    for entry in entries:
        click.echo(f"  {entry.id}  {entry.display_name or entry.name}  {entry.web_url or ''}".rstrip())
    click.echo(f"{len(entries)} {what}")


@main.command("list-sites")
@click.argument("config_id")
@click.option("--search", "query", default="", help="Site search text; omitted lists every site")
@click.option("--token", envvar="GRAPH_ACCESS_TOKEN", required=True, help="Graph bearer token")
@click.pass_context
def list_sites(ctx: click.Context, config_id: str, query: str, token: str) -> None:
    """Show SharePoint sites reachable with a configuration's credentials."""
    _, config_store = _open_stores(ctx.obj["backend"])
    source = SharePointSource(_load_config(config_store, config_id), StaticTokenProvider(token))
    try:
        entries = asyncio.run(source.search_sites(query))
    except IngestionError as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_entries(entries, "sites")


@main.command("list-lists")
@click.argument("config_id")
@click.option("--token", envvar="GRAPH_ACCESS_TOKEN", required=True, help="Graph bearer token")
@click.pass_context
def list_lists(ctx: click.Context, config_id: str, token: str) -> None:
    """Show the lists on a configuration's SharePoint site."""
    _, config_store = _open_stores(ctx.obj["backend"])
    source = SharePointSource(_load_config(config_store, config_id), StaticTokenProvider(token))
    try:
        entries = asyncio.run(source.list_lists())
    except IngestionError as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_entries(entries, "lists")


@main.command()
@click.argument("query", default="")
@click.option("--lat", type=float, default=None, help="Center latitude")
@click.option("--lng", type=float, default=None, help="Center longitude")
@click.option("--radius", type=float, default=None, help="Radius in miles")
@click.option("--limit", type=int, default=None, help="Maximum results")
@click.pass_context
def search(
    ctx: click.Context,
    query: str,
    lat: float | None,
    lng: float | None,
    radius: float | None,
    limit: int | None,
) -> None:
    """Search active pantries by text and/or distance."""
    if (lat is None) != (lng is None):
        raise click.UsageError("--lat and --lng must be given together")
    center = (lat, lng) if lat is not None else None

    store, _ = _open_stores(ctx.obj["backend"])
    try:
        results = search_records(store, query, center, radius, limit=limit)
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc

    if not results:
        click.echo("No pantries found.")
        return
    for record in results:
        where = ", ".join(part for part in (record.address, record.city, record.state) if part)
        click.echo(f"  {record.name:40s} {where}")
    click.echo(f"{len(results)} pantries")


@main.command()
@click.option("--backup", is_flag=True, help="Prefix the CSV with a backup metadata header")
@click.option(
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="File or directory to write; '-' or omitted prints to stdout",
)
@click.pass_context
def export(ctx: click.Context, backup: bool, output: Path | None) -> None:
    """Export active pantries as CSV."""
    store, _ = _open_stores(ctx.obj["backend"])
    records = store.list_active()
    content = generate_backup_csv(records) if backup else generate_csv(records)

    if output is None or str(output) == "-":
        click.echo(content, nl=False)
        return
    if output.is_dir():
        output = output / export_filename("backup" if backup else "export")
    output.write_text(content, encoding="utf-8")
    log.info("export_written", path=str(output), records=len(records))
    click.echo(f"Wrote {len(records)} pantries to {output}")


if __name__ == "__main__":
    main()

"""
pantry_pipeline — ingestion, normalization and search for the pantry directory.

Architecture:
  sources/     — flat-file (CSV upload) and SharePoint list adapters
  transforms/  — field normalizer (markup stripping, coercions)
  stores/      — Supabase and DuckDB record / sync-configuration stores
  pipelines/   — ingest_flat_file, ingest_remote_list, validate_remote_mapping
  services/    — search and CSV export
  utils/       — structlog configuration

Quick start:
    import asyncio
    import duckdb
    from pantry_pipeline import ingest_flat_file, search
    from pantry_pipeline.stores import DuckDBRecordStore

    store = DuckDBRecordStore(duckdb.connect(":memory:"))
    report = asyncio.run(ingest_flat_file(open("pantries.csv", "rb").read(), store))
    nearby = search(store, "", center=(40.62, -75.37), radius_miles=10)

CLI:
    pantry import-file pantries.csv
    pantry search --lat 40.62 --lng -75.37 --radius 10

Shared code from pantry_shared:
    from pantry_shared.config import settings
    from pantry_shared.db import get_supabase_client, get_duckdb_connection
    from pantry_shared.models import PantryRecord, SyncConfiguration
    from pantry_shared.geo import haversine_km
"""

from pantry_pipeline.pipelines import (
    IngestionReport,
    ingest_flat_file,
    ingest_remote_list,
    validate_remote_mapping,
)
from pantry_pipeline.services.search_service import search

__version__ = "0.1.0"

__all__ = [
    "IngestionReport",
    "ingest_flat_file",
    "ingest_remote_list",
    "validate_remote_mapping",
    "search",
]

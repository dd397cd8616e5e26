"""
tests/conftest.py — Shared pytest fixtures for the pipeline test suite.

Provides:
  fixture_path()          — resolves paths to tests/fixtures/
  duck_conn()             — fresh in-memory DuckDB connection per test
  record_store()          — DuckDBRecordStore on that connection
  config_store()          — DuckDBSyncConfigStore on that connection
  mock_supabase_client()  — MagicMock of the Supabase client (prevents real DB calls)
  sync_config()           — saved SyncConfiguration for the sample SharePoint list
  mock_http               — configured respx router for faking HTTP responses
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import duckdb
import pytest
import respx

from pantry_shared.models import PantryRecord, SyncConfiguration
from pantry_pipeline.stores.duckdb_store import DuckDBRecordStore, DuckDBSyncConfigStore

FIXTURES_DIR = Path(__file__).parent / "fixtures"

GRAPH_URL = "https://graph.microsoft.com/v1.0"
SITE_ID = "contoso.sharepoint.com,site-1"
LIST_ID = "list-1"
LIST_URL = f"{GRAPH_URL}/sites/{SITE_ID}/lists/{LIST_ID}"


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def fixture_path() -> Path:
    return FIXTURES_DIR


# ---------------------------------------------------------------------------
# DuckDB stores
# ---------------------------------------------------------------------------

@pytest.fixture
def duck_conn():
    conn = duckdb.connect(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def record_store(duck_conn) -> DuckDBRecordStore:
    return DuckDBRecordStore(duck_conn)


@pytest.fixture
def config_store(duck_conn) -> DuckDBSyncConfigStore:
    return DuckDBSyncConfigStore(duck_conn)


class ListRecordStore:
    """Plain in-memory RecordStore without radius push-down."""

    def __init__(self, records: list[PantryRecord] | None = None) -> None:
        self.records: list[PantryRecord] = list(records or [])

    def create(self, record: PantryRecord) -> PantryRecord:
        created = record.model_copy(update={"id": record.id or f"rec-{len(self.records) + 1}"})
        self.records.append(created)
        return created

    def list_active(self) -> list[PantryRecord]:
        return [r for r in self.records if r.is_active]

    def get_by_id(self, record_id: str) -> PantryRecord | None:
        return next((r for r in self.list_active() if r.id == record_id), None)


@pytest.fixture
def list_store() -> ListRecordStore:
    return ListRecordStore()


# ---------------------------------------------------------------------------
# Supabase client mock
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_supabase_client() -> MagicMock:
    """
    A MagicMock that simulates the supabase.Client interface.

    Every .table() query chain ends in .execute() returning empty data by
    default. Override in individual tests through client.table.return_value.
    """
    client = MagicMock()

    default_result = MagicMock()
    default_result.data = []
    default_result.count = 0

    table = client.table.return_value
    table.insert.return_value.execute.return_value = default_result
    table.select.return_value.eq.return_value.execute.return_value = default_result
    (
        table.select.return_value
        .eq.return_value
        .eq.return_value
        .limit.return_value
        .execute.return_value
    ) = default_result
    table.select.return_value.eq.return_value.limit.return_value.execute.return_value = (
        default_result
    )
    table.update.return_value.eq.return_value.execute.return_value = default_result

    return client


# ---------------------------------------------------------------------------
# SharePoint fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def sharepoint_columns() -> dict:
    return json.loads((FIXTURES_DIR / "sharepoint_columns.json").read_text())


@pytest.fixture
def sharepoint_items() -> dict:
    return json.loads((FIXTURES_DIR / "sharepoint_items.json").read_text())


@pytest.fixture
def sync_config(config_store: DuckDBSyncConfigStore) -> SyncConfiguration:
    config = SyncConfiguration(
        id="cfg-1",
        site_id=SITE_ID,
        list_id=LIST_ID,
        list_name="Pantries",
        column_mapping={
            "name": "Title",
            "address": "Address",
            "city": "City",
            "state": "State",
            "zipCode": "ZipCode",
            "website": "Website",
            "services": "Services",
            "accessType": "AccessType",
            "latitude": "Latitude",
            "longitude": "Longitude",
        },
    )
    return config_store.save(config)


# ---------------------------------------------------------------------------
# respx HTTP mock router
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_http():
    """
    Activate the respx mock router for all httpx requests.

    Usage in tests:
        def test_something(mock_http):
            mock_http.get(url__regex=r".*/columns$").mock(return_value=httpx.Response(200, json={...}))
    """
    with respx.mock(assert_all_called=False) as router:
        yield router

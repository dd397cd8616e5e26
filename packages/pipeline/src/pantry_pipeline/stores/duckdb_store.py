"""
stores/duckdb_store.py — DuckDB-backed record and sync-configuration stores.

Used for local/offline directories and in tests (":memory:"). Tables are
created on construction. The record store binds pantry_shared.geo.haversine_km
as a SQL scalar function so radius searches can be filtered in the database
with exactly the same distance computation as the Python path.

Usage:
    import duckdb
    from pantry_pipeline.stores.duckdb_store import DuckDBRecordStore

    store = DuckDBRecordStore(duckdb.connect(":memory:"))
    nearby = store.list_active_within((40.62, -75.37), radius_km=16.0934)
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any

import duckdb
import structlog
from duckdb.sqltypes import DOUBLE

from pantry_shared.constants import SYNC_STATUSES
from pantry_shared.db import get_duckdb_connection
from pantry_shared.geo import Point, haversine_km
from pantry_shared.models import PantryRecord, SyncConfiguration
from pantry_pipeline.stores.base import records_from_rows

log = structlog.get_logger(__name__)

_PANTRY_COLUMNS: tuple[str, ...] = (
    "id",
    "name",
    "address",
    "city",
    "state",
    "zip_code",
    "phone",
    "email",
    "website",
    "latitude",
    "longitude",
    "hours",
    "description",
    "services",
    "access_type",
    "is_active",
    "created_at",
)

_CREATE_PANTRIES = """
CREATE TABLE IF NOT EXISTS pantries (
    id           VARCHAR PRIMARY KEY,
    name         VARCHAR NOT NULL,
    address      VARCHAR,
    city         VARCHAR,
    state        VARCHAR NOT NULL,
    zip_code     VARCHAR,
    phone        VARCHAR,
    email        VARCHAR,
    website      VARCHAR,
    latitude     DOUBLE,
    longitude    DOUBLE,
    hours        VARCHAR,
    description  VARCHAR,
    services     VARCHAR[],
    access_type  VARCHAR,
    is_active    BOOLEAN NOT NULL DEFAULT TRUE,
    created_at   TIMESTAMP NOT NULL
)
"""

_CREATE_SYNC_SETTINGS = """
CREATE TABLE IF NOT EXISTS data_sync_settings (
    id              VARCHAR PRIMARY KEY,
    source_type     VARCHAR NOT NULL,
    site_id         VARCHAR NOT NULL,
    list_id         VARCHAR NOT NULL,
    list_name       VARCHAR,
    credentials     VARCHAR,
    column_mapping  VARCHAR,
    sync_status     VARCHAR NOT NULL DEFAULT 'pending',
    last_error      VARCHAR,
    last_sync       TIMESTAMP,
    is_active       BOOLEAN NOT NULL DEFAULT TRUE
)
"""


def _naive_utc(value: datetime) -> datetime:
    """DuckDB TIMESTAMP columns hold naive UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _fetch_dicts(
    conn: duckdb.DuckDBPyConnection, sql: str, params: list[Any] | None = None
) -> list[dict[str, Any]]:
    result = conn.execute(sql, params or [])
    columns = [d[0] for d in result.description]
    return [dict(zip(columns, row)) for row in result.fetchall()]


def register_haversine(conn: duckdb.DuckDBPyConnection) -> None:
    """Bind haversine_km(lat1, lon1, lat2, lon2) as a SQL function, once per connection."""
    (count,) = conn.execute(
        "SELECT count(*) FROM duckdb_functions() WHERE function_name = 'haversine_km'"
    ).fetchone()
    if count:
        return
    conn.create_function("haversine_km", haversine_km, [DOUBLE, DOUBLE, DOUBLE, DOUBLE], DOUBLE)


class DuckDBRecordStore:
    """RecordStore (with radius push-down) over a DuckDB `pantries` table."""

    def __init__(self, conn: duckdb.DuckDBPyConnection | None = None) -> None:
        self._conn = conn if conn is not None else get_duckdb_connection()
        self._conn.execute(_CREATE_PANTRIES)
        register_haversine(self._conn)

    def create(self, record: PantryRecord) -> PantryRecord:
        row = record.to_insert_dict()
        row["id"] = record.id or str(uuid.uuid4())
        row["created_at"] = _naive_utc(record.created_at or datetime.now(timezone.utc))

        placeholders = ", ".join(
            "?::VARCHAR[]" if column == "services" else "?" for column in _PANTRY_COLUMNS
        )
        self._conn.execute(
            f"INSERT INTO pantries ({', '.join(_PANTRY_COLUMNS)}) VALUES ({placeholders})",
            [row[column] for column in _PANTRY_COLUMNS],
        )
        log.debug("pantry_created", id=row["id"])
        return record.model_copy(update={"id": row["id"], "created_at": row["created_at"]})

    def list_active(self) -> list[PantryRecord]:
        rows = _fetch_dicts(
            self._conn,
            "SELECT * FROM pantries WHERE is_active ORDER BY created_at, id",
        )
        return records_from_rows(rows, table="pantries")

    def list_active_within(self, center: Point, radius_km: float) -> list[PantryRecord]:
        rows = _fetch_dicts(
            self._conn,
            """
            SELECT * FROM pantries
            WHERE is_active
              AND latitude IS NOT NULL
              AND longitude IS NOT NULL
              AND haversine_km(?, ?, latitude, longitude) <= ?
            ORDER BY created_at, id
            """,
            [center[0], center[1], radius_km],
        )
        return records_from_rows(rows, table="pantries")

    def get_by_id(self, record_id: str) -> PantryRecord | None:
        rows = _fetch_dicts(
            self._conn,
            "SELECT * FROM pantries WHERE id = ? AND is_active",
            [record_id],
        )
        records = records_from_rows(rows, table="pantries")
        return records[0] if records else None

    def deactivate(self, record_id: str) -> None:
        """Soft-delete a record; it disappears from list_active and search."""
        self._conn.execute("UPDATE pantries SET is_active = FALSE WHERE id = ?", [record_id])


class DuckDBSyncConfigStore:
    """SyncConfigStore over a DuckDB `data_sync_settings` table."""

    def __init__(self, conn: duckdb.DuckDBPyConnection | None = None) -> None:
        self._conn = conn if conn is not None else get_duckdb_connection()
        self._conn.execute(_CREATE_SYNC_SETTINGS)

    def save(self, config: SyncConfiguration) -> SyncConfiguration:
        """Insert or replace a configuration by id."""
        self._conn.execute(
            """
            INSERT INTO data_sync_settings (
                id, source_type, site_id, list_id, list_name, credentials,
                column_mapping, sync_status, last_error, last_sync, is_active
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (id) DO UPDATE SET
                source_type = excluded.source_type,
                site_id = excluded.site_id,
                list_id = excluded.list_id,
                list_name = excluded.list_name,
                credentials = excluded.credentials,
                column_mapping = excluded.column_mapping,
                sync_status = excluded.sync_status,
                last_error = excluded.last_error,
                last_sync = excluded.last_sync,
                is_active = excluded.is_active
            """,
            [
                config.id,
                config.source_type,
                config.site_id,
                config.list_id,
                config.list_name,
                json.dumps(config.credentials),
                json.dumps(config.column_mapping),
                config.sync_status,
                config.last_error,
                _naive_utc(config.last_sync) if config.last_sync else None,
                config.is_active,
            ],
        )
        return config

    def get(self, config_id: str) -> SyncConfiguration | None:
        rows = _fetch_dicts(
            self._conn, "SELECT * FROM data_sync_settings WHERE id = ?", [config_id]
        )
        return SyncConfiguration.from_db_row(rows[0]) if rows else None

    def update_status(
        self,
        config_id: str,
        status: str,
        *,
        last_error: str | None = None,
        last_sync: datetime | None = None,
    ) -> None:
        if status not in SYNC_STATUSES:
            raise ValueError(f"unknown sync status: {status!r}")

        assignments = ["sync_status = ?", "last_error = ?"]
        params: list[Any] = [status, last_error]
        if last_sync is not None:
            assignments.append("last_sync = ?")
            params.append(_naive_utc(last_sync))

        self._conn.execute(
            f"UPDATE data_sync_settings SET {', '.join(assignments)} WHERE id = ?",
            [*params, config_id],
        )
        log.info("sync_status_updated", config_id=config_id, status=status)

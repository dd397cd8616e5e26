"""
stores/supabase_store.py — Supabase-backed record and sync-configuration stores.

Writes go through the service-role client so RLS does not block imports.

Tables:
  pantries            — one row per PantryRecord (zip_code, access_type columns)
  data_sync_settings  — one row per SyncConfiguration

Usage:
    from pantry_pipeline.stores.supabase_store import SupabaseRecordStore

    store = SupabaseRecordStore()
    created = store.create(record)
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog
from supabase import Client

from pantry_shared.constants import SYNC_STATUSES
from pantry_shared.db import get_supabase_client
from pantry_shared.models import PantryRecord, SyncConfiguration
from pantry_pipeline.stores.base import records_from_rows

log = structlog.get_logger(__name__)

PANTRIES_TABLE = "pantries"
SYNC_SETTINGS_TABLE = "data_sync_settings"


class SupabaseRecordStore:
    """RecordStore over the Supabase `pantries` table."""

    def __init__(self, client: Client | None = None) -> None:
        self._client = client or get_supabase_client()

    def create(self, record: PantryRecord) -> PantryRecord:
        row = record.to_insert_dict()
        # Let the database assign id and created_at
        for column in ("id", "created_at"):
            if row.get(column) is None:
                row.pop(column, None)

        response = self._client.table(PANTRIES_TABLE).insert(row).execute()
        if not response.data:
            raise RuntimeError(f"insert into {PANTRIES_TABLE} returned no row")
        created = PantryRecord.from_db_row(response.data[0])
        log.debug("pantry_created", id=created.id)
        return created

    def list_active(self) -> list[PantryRecord]:
        response = (
            self._client.table(PANTRIES_TABLE)
            .select("*")
            .eq("is_active", True)
            .execute()
        )
        return records_from_rows(response.data or [], table=PANTRIES_TABLE)

    def get_by_id(self, record_id: str) -> PantryRecord | None:
        response = (
            self._client.table(PANTRIES_TABLE)
            .select("*")
            .eq("id", record_id)
            .eq("is_active", True)
            .limit(1)
            .execute()
        )
        records = records_from_rows(response.data or [], table=PANTRIES_TABLE)
        return records[0] if records else None


class SupabaseSyncConfigStore:
    """SyncConfigStore over the Supabase `data_sync_settings` table."""

    def __init__(self, client: Client | None = None) -> None:
        self._client = client or get_supabase_client()

    def get(self, config_id: str) -> SyncConfiguration | None:
        response = (
            self._client.table(SYNC_SETTINGS_TABLE)
            .select("*")
            .eq("id", config_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return SyncConfiguration.from_db_row(response.data[0])

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

        payload: dict[str, Any] = {"sync_status": status, "last_error": last_error}
        if last_sync is not None:
            payload["last_sync"] = last_sync.isoformat()

        self._client.table(SYNC_SETTINGS_TABLE).update(payload).eq("id", config_id).execute()
        log.info("sync_status_updated", config_id=config_id, status=status)

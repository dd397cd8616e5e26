"""
pantry_pipeline.stores — record and sync-configuration stores.

  SupabaseRecordStore / SupabaseSyncConfigStore — production (pantries, data_sync_settings)
  DuckDBRecordStore / DuckDBSyncConfigStore     — local file or in-memory database
"""

from pantry_pipeline.stores.base import RadiusPushdown, RecordStore, SyncConfigStore
from pantry_pipeline.stores.duckdb_store import DuckDBRecordStore, DuckDBSyncConfigStore
from pantry_pipeline.stores.supabase_store import SupabaseRecordStore, SupabaseSyncConfigStore

__all__ = [
    "RecordStore",
    "RadiusPushdown",
    "SyncConfigStore",
    "DuckDBRecordStore",
    "DuckDBSyncConfigStore",
    "SupabaseRecordStore",
    "SupabaseSyncConfigStore",
]

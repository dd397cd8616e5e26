"""
db.py — Connections for the two record-store backends.

Imports write through the Supabase service role, so that is the only
Supabase client the directory core opens. The DuckDB connection backs the
local store and may live in memory.

Usage:
    from pantry_shared.db import get_supabase_client, get_duckdb_connection

    supabase = get_supabase_client()
    duck = get_duckdb_connection()
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional

import duckdb
import structlog
from supabase import Client, create_client

from pantry_shared.config import settings

logger = structlog.get_logger(__name__)

_lock = threading.Lock()
_supabase: Optional[Client] = None
_duckdb: Optional[duckdb.DuckDBPyConnection] = None


def get_supabase_client() -> Client:
    """
    Return the process-wide service-role Supabase client.

    Raises:
        RuntimeError: SUPABASE_SERVICE_KEY is not configured.
    """
    global _supabase

    with _lock:
        if _supabase is None:
            if not settings.supabase_service_key:
                raise RuntimeError(
                    "SUPABASE_SERVICE_KEY is not set; the supabase store needs "
                    "service-role access to write pantries."
                )
            _supabase = create_client(settings.supabase_url, settings.supabase_service_key)
            logger.info("supabase_client_created", url=settings.supabase_url)
        return _supabase


def get_duckdb_connection() -> duckdb.DuckDBPyConnection:
    """Return the process-wide DuckDB connection at settings.duckdb_path."""
    global _duckdb

    with _lock:
        if _duckdb is None:
            path = settings.duckdb_path
            if path != ":memory:":
                Path(path).parent.mkdir(parents=True, exist_ok=True)
            _duckdb = duckdb.connect(path)
            logger.info("duckdb_connected", path=path)
        return _duckdb


def reset_connections() -> None:
    """Forget both cached connections, closing DuckDB. Used by tests."""
    global _supabase, _duckdb
    with _lock:
        if _duckdb is not None:
            _duckdb.close()
        _supabase = None
        _duckdb = None

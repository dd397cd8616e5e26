"""
pantry_shared — shared settings, models and geodesic helpers for the pantry directory.

Usage:
    from pantry_shared.config import settings
    from pantry_shared.db import get_supabase_client, get_duckdb_connection
    from pantry_shared.models import PantryRecord, SyncConfiguration
    from pantry_shared.geo import haversine_km, within_radius
    from pantry_shared.constants import FLAT_FILE_ALIASES, REQUIRED_MAPPED_FIELDS
"""

__version__ = "0.1.0"

"""
pantry_shared.models — Pydantic models matching each database table.

These models are used by:
- the ingestion pipelines: validate records before writing to the store
- the record stores: hydrate rows returned by Supabase / DuckDB
- the search and export services

Table-backed models provide:
  .from_db_row(row: dict) -> Model
  .to_insert_dict() -> dict
"""

from pantry_shared.models.pantry import PantryRecord
from pantry_shared.models.sync import MappingValidation, SyncConfiguration

__all__ = [
    "PantryRecord",
    "SyncConfiguration",
    "MappingValidation",
]

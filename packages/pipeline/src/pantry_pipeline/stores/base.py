"""
stores/base.py — Record store and sync-configuration store interfaces.

The pipeline and search service only talk to these protocols; concrete
stores live beside this module.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

import structlog
from pydantic import ValidationError

from pantry_shared.geo import Point
from pantry_shared.models import PantryRecord, SyncConfiguration

log = structlog.get_logger(__name__)


@runtime_checkable
class RecordStore(Protocol):
    """Durable collection of PantryRecords."""

    def create(self, record: PantryRecord) -> PantryRecord:
        """Persist a new record and return it with id and created_at set."""
        ...

    def list_active(self) -> list[PantryRecord]: ...

    def get_by_id(self, record_id: str) -> PantryRecord | None:
        """Active record with this id, or None."""
        ...


@runtime_checkable
class RadiusPushdown(Protocol):
    """
    Optional store capability: evaluate the great-circle radius filter itself.

    Implementations must use pantry_shared.geo.haversine_km with the same
    argument order (center first) and an inclusive <= threshold.
    """

    def list_active_within(self, center: Point, radius_km: float) -> list[PantryRecord]: ...


class SyncConfigStore(Protocol):
    """Holds SyncConfiguration rows and their sync status."""

    def get(self, config_id: str) -> SyncConfiguration | None: ...

    def update_status(
        self,
        config_id: str,
        status: str,
        *,
        last_error: str | None = None,
        last_sync: datetime | None = None,
    ) -> None:
        """
        Set sync_status and last_error (None clears it). last_sync is only
        written when given.
        """
        ...


def records_from_rows(rows: Iterable[dict[str, Any]], *, table: str) -> list[PantryRecord]:
    """Build records from stored rows, skipping (and logging) rows that no longer validate."""
    records: list[PantryRecord] = []
    for row in rows:
        try:
            records.append(PantryRecord.from_db_row(row))
        except ValidationError as exc:
            log.warning(
                "stored_row_invalid",
                table=table,
                id=str(row.get("id")),
                errors=exc.error_count(),
            )
    return records

"""
services/search_service.py — Text and radius search over active pantries.

Filters (conjunctive):
  - query_text: case-insensitive substring of name, address, city, state
    or postal code; blank means no text filter
  - center + radius_miles: great-circle distance (haversine, earth radius
    6371 km, 1.60934 km per mile) at most the radius; records without both
    coordinates never match

Results are ordered by name (case-insensitive), then id, so paging with
limit/offset is stable.

Usage:
    from pantry_pipeline.services.search_service import search

    search(store, "bethlehem")
    search(store, center=(40.62, -75.37), radius_miles=10)
"""

from __future__ import annotations

import structlog

from pantry_shared.geo import Point, is_valid_coordinate_pair, miles_to_km, within_radius
from pantry_shared.models import PantryRecord
from pantry_pipeline.stores.base import RadiusPushdown, RecordStore

log = structlog.get_logger(__name__)


def _searchable(record: PantryRecord) -> tuple[str | None, ...]:
    return (record.name, record.address, record.city, record.state, record.postal_code)


def _matches_text(record: PantryRecord, needle: str) -> bool:
    return any(value and needle in value.casefold() for value in _searchable(record))


def _sort_key(record: PantryRecord) -> tuple[str, str]:
    return (record.name.casefold(), record.id or "")


def search(
    store: RecordStore,
    query_text: str | None = "",
    center: Point | None = None,
    radius_miles: float | None = None,
    *,
    limit: int | None = None,
    offset: int = 0,
) -> list[PantryRecord]:
    """
    Search active records.

    The radius filter applies only when both center and radius_miles are
    given. Stores that implement RadiusPushdown pre-filter in the database
    with the same distance function.

    Raises:
        ValueError: negative radius, invalid center, or negative limit/offset.
    """
    if offset < 0 or (limit is not None and limit < 0):
        raise ValueError("limit and offset must not be negative")

    use_radius = center is not None and radius_miles is not None
    if use_radius:
        if radius_miles < 0:
            raise ValueError(f"radius_miles must not be negative: {radius_miles}")
        if not is_valid_coordinate_pair(center[0], center[1]):
            raise ValueError(f"invalid search center: {center!r}")

    if use_radius and isinstance(store, RadiusPushdown):
        records = store.list_active_within(center, miles_to_km(radius_miles))
    else:
        records = store.list_active()

    needle = (query_text or "").strip().casefold()
    matches = [
        record
        for record in records
        if record.is_active
        and (not needle or _matches_text(record, needle))
        and (not use_radius or within_radius(center, record.coordinates, radius_miles))
    ]
    matches.sort(key=_sort_key)

    log.debug(
        "search_complete",
        query=needle or None,
        radius_miles=radius_miles if use_radius else None,
        candidates=len(records),
        matches=len(matches),
    )
    end = None if limit is None else offset + limit
    return matches[offset:end]

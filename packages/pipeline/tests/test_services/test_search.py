"""
tests/test_services/test_search.py — Tests for the text + radius search service.

Every radius case runs against both a plain store (filter in Python) and the
DuckDB store (filter pushed down to SQL) and must give the same answer.
"""

from __future__ import annotations

import pytest

from pantry_shared.models import PantryRecord
from pantry_pipeline.services.search_service import search

CENTER = (40.62, -75.37)


def _record(name: str, lat: float | None = None, lng: float | None = None, **kwargs) -> PantryRecord:
    kwargs.setdefault("address", "1 Main St")
    kwargs.setdefault("city", "Bethlehem")
    kwargs.setdefault("state", "PA")
    return PantryRecord(name=name, latitude=lat, longitude=lng, **kwargs)


SAMPLE = [
    _record("Bethlehem Food Pantry", 40.6259, -75.3705, postal_code="18018"),
    _record("New Bethany Ministries", 40.6116, -75.3843, postal_code="18015"),
    _record("No Coordinates Pantry"),
    _record("Easton Area Pantry", 40.6884, -75.2207, city="Easton", postal_code="18042"),
    _record("Philly Pantry", 39.9526, -75.1652, city="Philadelphia"),
    _record("Half Pair Pantry", 40.62, None),
]


@pytest.fixture(params=["list", "duckdb"])
def store(request, list_store, record_store):
    target = list_store if request.param == "list" else record_store
    for record in SAMPLE:
        target.create(record)
    return target


def _names(records) -> list[str]:
    return [r.name for r in records]


class TestTextSearch:
    def test_blank_query_returns_all_active_sorted(self, store):
        results = search(store, "  ")
        assert _names(results) == sorted(_names(SAMPLE), key=str.casefold)

    def test_case_insensitive_substring(self, store):
        assert _names(search(store, "BETH")) == [
            "Bethlehem Food Pantry",
            "Half Pair Pantry",
            "New Bethany Ministries",
            "No Coordinates Pantry",
        ]

    def test_matches_postal_code(self, store):
        assert _names(search(store, "18042")) == ["Easton Area Pantry"]

    def test_matches_city(self, store):
        assert _names(search(store, "philadelphia")) == ["Philly Pantry"]


class TestRadiusSearch:
    def test_two_of_three_scenario(self, list_store):
        for record in SAMPLE[:3]:
            list_store.create(record)
        results = search(list_store, "", center=CENTER, radius_miles=10)
        assert _names(results) == ["Bethlehem Food Pantry", "New Bethany Ministries"]

    def test_excludes_missing_and_half_coordinates(self, store):
        for radius in (1, 10, 100, 12_000):
            names = _names(search(store, "", center=CENTER, radius_miles=radius))
            assert "No Coordinates Pantry" not in names
            assert "Half Pair Pantry" not in names

    def test_radius_is_monotonic(self, store):
        previous: set[str] = set()
        for radius in (0, 1, 5, 10, 50, 100, 1000):
            current = {r.id for r in search(store, "", center=CENTER, radius_miles=radius)}
            assert previous <= current
            previous = current

    def test_radius_and_text_are_conjunctive(self, store):
        results = search(store, "easton", center=CENTER, radius_miles=5)
        assert results == []
        results = search(store, "easton", center=CENTER, radius_miles=15)
        assert _names(results) == ["Easton Area Pantry"]

    def test_radius_without_center_is_ignored(self, store):
        assert len(search(store, "", radius_miles=1)) == len(SAMPLE)

    def test_negative_radius_rejected(self, store):
        with pytest.raises(ValueError, match="negative"):
            search(store, "", center=CENTER, radius_miles=-1)

    def test_invalid_center_rejected(self, store):
        with pytest.raises(ValueError, match="center"):
            search(store, "", center=(91.0, 0.0), radius_miles=5)


class TestPagination:
    def test_limit_and_offset(self, store):
        everything = search(store)
        assert search(store, limit=2) == everything[:2]
        assert search(store, limit=2, offset=2) == everything[2:4]
        assert search(store, offset=5) == everything[5:]

    def test_negative_limit_rejected(self, store):
        with pytest.raises(ValueError):
            search(store, limit=-1)


class TestActiveOnly:
    def test_deactivated_record_hidden(self, record_store):
        created = record_store.create(_record("Closed Pantry", 40.62, -75.37))
        record_store.deactivate(created.id)
        assert search(record_store, "closed") == []
        assert search(record_store, "", center=CENTER, radius_miles=5) == []
        assert record_store.get_by_id(created.id) is None

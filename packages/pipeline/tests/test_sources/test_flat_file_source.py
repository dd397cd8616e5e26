"""
tests/test_sources/test_flat_file_source.py — Unit tests for FlatFileSource.

Uses the WPSL-export fixture plus small inline CSVs for edge cases.
"""

from __future__ import annotations

from pathlib import Path

import polars as pl
import pytest

from pantry_pipeline.errors import MalformedFile
from pantry_pipeline.sources.flat_file import (
    FlatFileSource,
    find_unterminated_quote,
    quote_stray_quotes,
    strip_preamble,
)

FIXTURES = Path(__file__).parent.parent / "fixtures"


@pytest.fixture
def wpsl_bytes() -> bytes:
    return (FIXTURES / "pantries_wpsl.csv").read_bytes()


def _source(**kwargs) -> FlatFileSource:
    kwargs.setdefault("default_state", "PA")
    kwargs.setdefault("default_city", "Unknown")
    kwargs.setdefault("header_echo_tokens", ["wpsl_id"])
    return FlatFileSource(**kwargs)


# ---------------------------------------------------------------------------
# extract() tests
# ---------------------------------------------------------------------------

class TestFlatFileExtract:
    @pytest.mark.asyncio
    async def test_extract_returns_string_frame(self, wpsl_bytes: bytes):
        df = await _source().extract(data=wpsl_bytes)
        assert isinstance(df, pl.DataFrame)
        assert len(df) == 6
        assert all(dtype == pl.String for dtype in df.dtypes)

    @pytest.mark.asyncio
    async def test_extract_strips_bom(self):
        df = await _source().extract(data=b"\xef\xbb\xbfname,city\nTrinity Pantry,Allentown\n")
        assert df.columns == ["name", "city"]

    @pytest.mark.asyncio
    async def test_extract_keeps_embedded_newline(self, wpsl_bytes: bytes):
        df = await _source().extract(data=wpsl_bytes)
        assert "\n" in df["description"][0]

    @pytest.mark.asyncio
    async def test_unterminated_quote_is_malformed(self):
        data = b'name,address\n"Trinity Pantry,44 Church St\nOther,1 Main St\n'
        with pytest.raises(MalformedFile, match="line 2"):
            await _source().extract(data=data)

    @pytest.mark.asyncio
    async def test_empty_file_is_malformed(self):
        with pytest.raises(MalformedFile, match="empty"):
            await _source().extract(data=b"   \n")

    @pytest.mark.asyncio
    async def test_invalid_utf8_is_malformed(self):
        with pytest.raises(MalformedFile, match="UTF-8"):
            await _source().extract(data=b"name\n\xff\xfe broken\n")


class TestFindUnterminatedQuote:
    def test_balanced(self):
        assert find_unterminated_quote('a,"b ""quoted"" c",d\n') is None

    def test_embedded_newline_balanced(self):
        assert find_unterminated_quote('a,"line one\nline two"\nx,y\n') is None

    def test_reports_opening_line(self):
        assert find_unterminated_quote('h1,h2\nx,y\nz,"open\nmore\n') == 3

    def test_quote_inside_unquoted_field_ignored(self):
        assert find_unterminated_quote('name\nSal"s Kitchen\n') is None


class TestQuoteStrayQuotes:
    def test_unquoted_field_requoted(self):
        assert quote_stray_quotes('name,city\nJoe"s Pantry,Easton\n') == (
            'name,city\n"Joe""s Pantry",Easton\n'
        )

    def test_quoted_fields_untouched(self):
        text = 'a,"b ""quoted"" c","line one\nline two"\r\nx,y\n'
        assert quote_stray_quotes(text) == text

    def test_no_quotes_is_identity(self):
        assert quote_stray_quotes("a,b\nc,d\n") == "a,b\nc,d\n"


class TestStripPreamble:
    def test_drops_comment_block(self):
        text = "# Food Pantry Data Backup\n# Total Records: 1\n\nid,name\n1,Trinity\n"
        assert strip_preamble(text) == "id,name\n1,Trinity\n"

    def test_keeps_comment_like_data_rows(self):
        assert strip_preamble("name\n#1 Pantry\n") == "name\n#1 Pantry\n"


# ---------------------------------------------------------------------------
# transform() tests
# ---------------------------------------------------------------------------

class TestFlatFileTransform:
    @pytest.mark.asyncio
    async def test_candidates_in_row_order(self, wpsl_bytes: bytes):
        candidates = await _source().run(data=wpsl_bytes)
        assert [c.position for c in candidates] == [1, 2, 3, 4, 5, 6]

    @pytest.mark.asyncio
    async def test_first_row_normalized(self, wpsl_bytes: bytes):
        first = (await _source().run(data=wpsl_bytes))[0]
        assert first.rejection is None
        assert first.fields["name"] == "Bethlehem Food Pantry"
        assert first.fields["hours"] == "Mon & Wed 9-12"
        assert first.fields["description"] == "Groceries, produce and diapers"
        assert first.fields["website"] == "http://bfp.org"
        assert first.fields["postal_code"] == "18018"
        assert first.fields["latitude"] == "40.6259"
        assert first.fields["longitude"] == "-75.3705"

    @pytest.mark.asyncio
    async def test_missing_state_gets_default(self, wpsl_bytes: bytes):
        second = (await _source(default_state="NJ").run(data=wpsl_bytes))[1]
        assert second.rejection is None
        assert second.fields["state"] == "NJ"

    @pytest.mark.asyncio
    async def test_digits_only_name_rejected(self, wpsl_bytes: bytes):
        third = (await _source().run(data=wpsl_bytes))[2]
        assert third.screened_out
        assert "digits-only" in third.rejection

    @pytest.mark.asyncio
    async def test_header_echo_rejected(self, wpsl_bytes: bytes):
        fourth = (await _source().run(data=wpsl_bytes))[3]
        assert fourth.screened_out
        assert "wpsl_id" in fourth.rejection

    @pytest.mark.asyncio
    async def test_city_defaults_when_address_present(self, wpsl_bytes: bytes):
        fifth = (await _source().run(data=wpsl_bytes))[4]
        assert fifth.fields["name"] == "Helping Hands"
        assert fifth.fields["city"] == "Unknown"
        assert fifth.fields["state"] == "PA"
        assert fifth.fields["postal_code"] is None

    @pytest.mark.asyncio
    async def test_header_variants_resolved(self, fixture_path: Path):
        data = (fixture_path / "pantries_headers_variant.csv").read_bytes()
        candidates = await _source().run(data=data)
        trinity, sals = candidates
        assert trinity.fields["name"] == "Trinity Pantry"
        assert trinity.fields["address"] == "44 Church St"
        assert trinity.fields["postal_code"] == "18101"
        assert trinity.fields["phone"] == "610-555-0199"
        assert trinity.fields["hours"] == "Tue 5-7pm"
        assert trinity.fields["access_mode"] == "walk-in"
        assert sals.fields["state"] == "NJ"
        assert sals.fields["postal_code"] == "08865"
        assert sals.fields["access_mode"] == "appointment"

    @pytest.mark.asyncio
    async def test_unrecognised_name_header_rejected(self):
        data = b"PantryName,address,city,state\nGood Shepherd,1 Oak St,Easton,PA\n"
        (candidate,) = await _source().run(data=data)
        assert candidate.screened_out
        assert "missing name" in candidate.rejection
        assert candidate.fields["name"] is None

    @pytest.mark.asyncio
    async def test_first_alias_with_value_wins(self):
        data = b"name,Name,address\n,Second Choice,1 Oak St\nFirst Choice,Ignored,2 Oak St\n"
        first, second = await _source().run(data=data)
        assert first.fields["name"] == "Second Choice"
        assert second.fields["name"] == "First Choice"

    @pytest.mark.asyncio
    async def test_short_name_rejected(self):
        data = b"name,address\nAB,1 Oak St\n"
        (candidate,) = await _source().run(data=data)
        assert "shorter than 3" in candidate.rejection

    @pytest.mark.asyncio
    async def test_custom_aliases(self):
        aliases = (("name", ("Site",)), ("city", ("Town",)))
        data = b"Site,Town\nRiverside Pantry,Easton\n"
        (candidate,) = await _source(aliases=aliases).run(data=data)
        assert candidate.fields == {"name": "Riverside Pantry", "city": "Easton", "state": "PA"}

    @pytest.mark.asyncio
    async def test_services_split(self):
        data = b"name,address,services\nTrinity Pantry,44 Church St,Groceries; Diapers\n"
        (candidate,) = await _source().run(data=data)
        assert candidate.fields["services"] == ["Groceries", "Diapers"]


class TestFlatFileMetadata:
    @pytest.mark.asyncio
    async def test_metadata(self):
        meta = await _source().get_metadata()
        assert meta["source_name"] == "flat_file"
        assert meta["default_state"] == "PA"
        assert "name" in meta["fields"]

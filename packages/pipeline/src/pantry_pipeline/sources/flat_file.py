"""
sources/flat_file.py — Bulk delimited-text upload source.

Accepts the raw bytes of an uploaded CSV (typically a WP Store Locator export
or a hand-maintained spreadsheet) whose column headers vary from file to file.
Headers are resolved per canonical field through an ordered alias list; the
first alias that carries a value in a row wins.

File format:
  UTF-8 (optional BOM), comma-delimited, header row, double-quote quoting
  with "" escaping, embedded newlines allowed inside quoted fields. Leading
  "#" comment lines are skipped, and a quote in the middle of an unquoted
  field is a literal character. Empty rows are not counted.

Screening (row rejected, batch continues):
  - no name
  - name contains a header-echo token (e.g. "wpsl_id" from export artifacts)
  - name is digits only
  - name shorter than 3 characters

Usage:
    source = FlatFileSource(default_state="PA")
    candidates = await source.run(data=uploaded_bytes)
"""

from __future__ import annotations

import io
import re
from typing import Any

import polars as pl

from pantry_shared.config import settings
from pantry_shared.constants import (
    FLAT_FILE_ALIASES,
    MIN_NAME_LENGTH,
    TEXT_FIELDS,
    FieldAliases,
)
from pantry_pipeline.errors import MalformedFile
from pantry_pipeline.sources.base import BaseSource, RawCandidate
from pantry_pipeline.transforms.normalize import (
    blank_to_null,
    coerce_access_mode,
    coerce_optional_text,
    coerce_services,
    normalize_text_columns,
)

_UTF8_BOM = b"\xef\xbb\xbf"
_DIGITS_ONLY = re.compile(r"[0-9]+")


def find_unterminated_quote(text: str, delimiter: str = ",", quote: str = '"') -> int | None:
    """
    Return the 1-based line on which an unclosed quoted field starts, or None.

    A quote only opens a quoted field at the start of a field; inside one,
    a doubled quote is an escaped literal.
    """
    in_quotes = False
    at_field_start = True
    line = 1
    opened_at = 0
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if in_quotes:
            if ch == quote:
                if i + 1 < n and text[i + 1] == quote:
                    i += 1
                else:
                    in_quotes = False
            elif ch == "\n":
                line += 1
        else:
            if ch == quote and at_field_start:
                in_quotes = True
                opened_at = line
            at_field_start = ch in (delimiter, "\n", "\r")
            if ch == "\n":
                line += 1
        i += 1
    return opened_at if in_quotes else None


def quote_stray_quotes(text: str, delimiter: str = ",", quote: str = '"') -> str:
    """
    Re-quote unquoted fields that contain a literal quote character.

    `Joe"s Pantry` becomes `"Joe""s Pantry"` so the CSV reader keeps the row
    instead of failing the whole upload. Quoted fields pass through untouched.
    """
    if quote not in text:
        return text

    out: list[str] = []
    field: list[str] = []
    in_quotes = False
    quoted_field = False

    def flush() -> None:
        value = "".join(field)
        if not quoted_field and quote in value:
            value = quote + value.replace(quote, quote * 2) + quote
        out.append(value)
        field.clear()

    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if in_quotes:
            field.append(ch)
            if ch == quote:
                if i + 1 < n and text[i + 1] == quote:
                    field.append(quote)
                    i += 1
                else:
                    in_quotes = False
        elif ch in (delimiter, "\n", "\r"):
            flush()
            out.append(ch)
            quoted_field = False
        else:
            if ch == quote and not field:
                in_quotes = quoted_field = True
            field.append(ch)
        i += 1
    flush()
    return "".join(out)


def strip_preamble(text: str, comment: str = "#") -> str:
    """Drop leading blank and comment lines (e.g. a backup export's header block)."""
    lines = text.splitlines(keepends=True)
    start = 0
    while start < len(lines) and (not lines[start].strip() or lines[start].startswith(comment)):
        start += 1
    return "".join(lines[start:])


class FlatFileSource(BaseSource):
    """Parses uploaded CSV bytes into canonical pantry candidates."""

    name = "flat_file"

    def __init__(
        self,
        *,
        aliases: FieldAliases = FLAT_FILE_ALIASES,
        default_state: str | None = None,
        default_city: str | None = None,
        header_echo_tokens: list[str] | None = None,
    ) -> None:
        super().__init__()
        self._aliases = aliases
        self._default_state = (
            settings.default_state if default_state is None else default_state
        )
        self._default_city = settings.default_city if default_city is None else default_city
        tokens = settings.header_echo_tokens if header_echo_tokens is None else header_echo_tokens
        self._echo_tokens = tuple(t.lower() for t in tokens if t)

    # ------------------------------------------------------------------
    # BaseSource interface
    # ------------------------------------------------------------------

    async def extract(self, *, data: bytes, **kwargs: Any) -> pl.DataFrame:
        """
        Parse the upload into an all-String polars DataFrame.

        Raises:
            MalformedFile: invalid UTF-8, empty input, an unterminated quoted
                field, or any other parse failure. Nothing is written.
        """
        if data.startswith(_UTF8_BOM):
            data = data[len(_UTF8_BOM):]
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedFile(f"file is not valid UTF-8: {exc}") from exc

        if not text.strip():
            raise MalformedFile("file is empty")

        opened_at = find_unterminated_quote(text)
        if opened_at is not None:
            raise MalformedFile(f"unterminated quoted field starting on line {opened_at}")

        text = strip_preamble(text)
        if not text.strip():
            raise MalformedFile("file has no header row")

        try:
            return pl.read_csv(
                io.BytesIO(quote_stray_quotes(text).encode("utf-8")),
                has_header=True,
                infer_schema_length=0,
                quote_char='"',
                truncate_ragged_lines=True,
            )
        except pl.exceptions.PolarsError as exc:
            raise MalformedFile(f"could not parse delimited text: {exc}") from exc

    def transform(self, raw: pl.DataFrame) -> list[RawCandidate]:
        """Resolve header aliases, normalize, screen and default each row."""
        df = blank_to_null(raw)
        if df.columns:
            # Blank lines and all-empty rows are not records
            df = df.filter(
                ~pl.all_horizontal(
                    [pl.col(c).str.strip_chars().fill_null("") == "" for c in df.columns]
                )
            )
        resolved = df.with_columns(self._resolve_exprs(df.columns)).select(
            [field for field, _ in self._aliases]
        )
        resolved = normalize_text_columns(
            resolved, [f for f in TEXT_FIELDS if f in resolved.columns]
        )

        unmatched = [field for field, aliases in self._aliases if not set(aliases) & set(df.columns)]
        if unmatched:
            self._log.debug("unmatched_fields", fields=unmatched, headers=df.columns)

        candidates: list[RawCandidate] = []
        for position, row in enumerate(resolved.iter_rows(named=True), start=1):
            fields = self._coerce(row)
            rejection = self._screen(fields.get("name"))
            if rejection is None:
                self._apply_defaults(fields)
            candidates.append(RawCandidate(position=position, fields=fields, rejection=rejection))
        return candidates

    async def get_metadata(self) -> dict[str, Any]:
        return {
            "source_name": self.name,
            "description": "Delimited-text pantry upload with header-alias matching",
            "fields": [field for field, _ in self._aliases],
            "default_state": self._default_state,
            "default_city": self._default_city,
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve_exprs(self, columns: list[str]) -> list[pl.Expr]:
        """One expression per canonical field: first non-null alias column."""
        present = set(columns)
        exprs: list[pl.Expr] = []
        for field, aliases in self._aliases:
            matches = [alias for alias in aliases if alias in present]
            if matches:
                exprs.append(pl.coalesce([pl.col(a) for a in matches]).alias(field))
            else:
                exprs.append(pl.lit(None, dtype=pl.String).alias(field))
        return exprs

    @staticmethod
    def _coerce(row: dict[str, Any]) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        for field, value in row.items():
            if field == "services":
                fields[field] = coerce_services(value)
            elif field == "access_mode":
                fields[field] = coerce_access_mode(value)
            elif field in ("latitude", "longitude"):
                fields[field] = value
            else:
                fields[field] = coerce_optional_text(value)
        return fields

    def _screen(self, name: str | None) -> str | None:
        if not name:
            return "missing name (no recognised name column, or the value is empty)"
        lowered = name.lower()
        for token in self._echo_tokens:
            if token in lowered:
                return f"name {name!r} looks like a header or export artifact ({token})"
        if _DIGITS_ONLY.fullmatch(name.strip()):
            return f"name {name!r} is digits-only"
        if len(name.strip()) < MIN_NAME_LENGTH:
            return f"name {name!r} is shorter than {MIN_NAME_LENGTH} characters"
        return None

    def _apply_defaults(self, fields: dict[str, Any]) -> None:
        if not fields.get("state"):
            fields["state"] = self._default_state
        if not fields.get("city") and fields.get("address"):
            fields["city"] = self._default_city

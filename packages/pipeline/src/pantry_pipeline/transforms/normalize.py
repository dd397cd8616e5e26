"""
transforms/normalize.py — Field normalizer for raw source values.

Pure functions that clean scraped text and coerce loosely typed source values
into the PantryRecord shape. None of them touch I/O or shared state.

Usage:
    from pantry_pipeline.transforms.normalize import normalize_text, coerce_services

    normalize_text("<!-- wp:paragraph --><p>Mon&nbsp;&amp; Wed</p><!-- /wp:paragraph -->")
    # "Mon & Wed"
    coerce_services("Groceries; Diapers")   # ["Groceries", "Diapers"]
"""

from __future__ import annotations

import json
import re
from typing import Any

import polars as pl

from pantry_shared.constants import ACCESS_MODE_KEYWORDS, STRUCTURED_VALUE_KEYS

_BLOCK_COMMENT = re.compile(r"<!--\s*/?wp:[^>]*-->")
# A tag is a name followed only by name=value attributes, so prose such as
# "a<b and c>d" is left alone.
_TAG = re.compile(
    r"<!--.*?-->"
    r"|<![A-Za-z][^>]*>"
    r"|</?[A-Za-z][\w:-]*"
    r"(?:\s+[\w:-]+\s*=\s*(?:\"[^\"]*\"|'[^']*'|[^\s\"'=<>`]+))*"
    r"\s*/?>",
    re.DOTALL,
)
_WHITESPACE = re.compile(r"\s+")

# Order matters: &amp; is decoded before the entities it could spell
_ENTITIES: tuple[tuple[str, str], ...] = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)


def _clean_once(text: str) -> str:
    text = _BLOCK_COMMENT.sub("", text)
    text = _TAG.sub("", text)
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    return _WHITESPACE.sub(" ", text).strip()


def normalize_text(raw: Any) -> Any:
    """
    Strip block-comment markers and markup tags, decode common entities,
    collapse whitespace and trim.

    Non-string or empty input is returned unchanged. Cleaning repeats until
    the text stops changing, so the result is a fixed point:
    normalize_text(normalize_text(x)) == normalize_text(x).
    """
    if not isinstance(raw, str) or not raw:
        return raw

    text = raw
    while True:
        cleaned = _clean_once(text)
        if cleaned == text:
            return cleaned
        text = cleaned


def coerce_optional_text(value: Any) -> str | None:
    """Collapse None and "" to None; stringify everything else."""
    if value is None or value == "":
        return None
    return str(value)


def unwrap_structured(value: Any) -> Any:
    """
    Reduce a structured remote value to text.

    Hyperlink-style dicts yield the first truthy sub-key in
    STRUCTURED_VALUE_KEYS order; any other dict or list is serialized as JSON
    rather than dropped. Scalars pass through.
    """
    if isinstance(value, dict):
        for key in STRUCTURED_VALUE_KEYS:
            if value.get(key):
                return str(value[key])
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, (list, tuple)):
        return json.dumps(list(value), ensure_ascii=False)
    return value


def clean_text(value: Any) -> str | None:
    """unwrap_structured -> normalize_text -> coerce_optional_text."""
    value = unwrap_structured(value)
    if isinstance(value, float) and value.is_integer():
        # Number columns come back as 18101.0
        value = int(value)
    if isinstance(value, str):
        value = normalize_text(value)
    return coerce_optional_text(value)


def coerce_access_mode(value: Any) -> str | None:
    """Map free text such as "Walk-in only" to a canonical access mode."""
    text = clean_text(value)
    if not text:
        return None
    lowered = text.lower()
    for keyword, mode in ACCESS_MODE_KEYWORDS:
        if keyword in lowered:
            return mode
    return None


def coerce_services(value: Any) -> list[str]:
    """
    Turn a services value into an ordered list of tags.

    Strings are split on ";" (the export joins tags with "; "). Lists keep
    their order. Empty tags are dropped.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        parts = [clean_text(item) for item in value]
    else:
        text = clean_text(value)
        parts = [normalize_text(part) for part in text.split(";")] if text else []
    return [part for part in parts if part]


def _parse_degrees(value: Any, field: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"{field} is not a number: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        raise ValueError(f"{field} is not a number: {text!r}") from None


def parse_coordinate_pair(latitude: Any, longitude: Any) -> tuple[float, float] | None:
    """
    Parse a latitude/longitude pair in decimal degrees.

    Returns None when either half is absent; a lone value is discarded.
    Raises ValueError naming the field when a present value is not numeric.
    Range checks are left to PantryRecord.
    """
    lat = _parse_degrees(latitude, "latitude")
    lon = _parse_degrees(longitude, "longitude")
    if lat is None or lon is None:
        return None
    return (lat, lon)


# ---------------------------------------------------------------------------
# DataFrame helpers
# ---------------------------------------------------------------------------


def normalize_text_columns(df: pl.DataFrame, columns: list[str]) -> pl.DataFrame:
    """Apply normalize_text to the given String columns, leaving nulls as null."""
    return df.with_columns(
        [
            pl.col(c).map_elements(normalize_text, return_dtype=pl.String)
            for c in columns
            if c in df.columns
        ]
    )


def blank_to_null(df: pl.DataFrame) -> pl.DataFrame:
    """Turn empty strings into nulls in every String column."""
    return df.with_columns(
        [
            pl.when(pl.col(c).str.len_chars() > 0).then(pl.col(c)).otherwise(None).alias(c)
            for c in df.columns
            if df[c].dtype == pl.String
        ]
    )

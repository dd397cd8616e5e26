"""
constants.py — shared constants used across the pipeline, stores and CLI.

Canonical field names, flat-file header aliases, required mappings and typed
literals are defined here so they stay in sync between packages.
"""

from __future__ import annotations

from typing import Final, Literal

# ---------------------------------------------------------------------------
# Canonical PantryRecord fields targeted by source mappings
# ---------------------------------------------------------------------------
CANONICAL_FIELDS: Final[tuple[str, ...]] = (
    "name",
    "address",
    "city",
    "state",
    "postal_code",
    "phone",
    "email",
    "website",
    "hours",
    "description",
    "services",
    "access_mode",
    "latitude",
    "longitude",
)

TEXT_FIELDS: Final[tuple[str, ...]] = (
    "name",
    "address",
    "city",
    "state",
    "postal_code",
    "phone",
    "email",
    "website",
    "hours",
    "description",
)

# ---------------------------------------------------------------------------
# Flat-file header aliases: (canonical field, accepted headers in priority order)
# Case-sensitive; the first alias carrying a value in the row wins.
# ---------------------------------------------------------------------------
FieldAliases = tuple[tuple[str, tuple[str, ...]], ...]

FLAT_FILE_ALIASES: Final[FieldAliases] = (
    ("name", ("name", "Name", "pantry_name", "Pantry Name")),
    ("address", ("address", "Address", "street_address", "Street Address")),
    ("city", ("city", "City")),
    ("state", ("state", "State", "st", "ST")),
    ("postal_code", ("zip", "zipcode", "zip_code", "Zip Code", "postal_code", "zipCode")),
    ("phone", ("phone", "Phone", "telephone", "Phone Number")),
    ("email", ("email", "Email", "Email Address")),
    ("website", ("website", "Website", "url", "URL")),
    ("hours", ("hours", "Hours", "operating_hours", "Operating Hours")),
    ("description", ("description", "Description", "notes", "Notes")),
    ("services", ("services", "Services")),
    ("access_mode", ("access_type", "Access Type", "access", "access_mode", "accessType")),
    ("latitude", ("lat", "latitude")),
    ("longitude", ("lng", "longitude", "lon")),
)

MIN_NAME_LENGTH: Final[int] = 3

# ---------------------------------------------------------------------------
# Remote list mapping
# ---------------------------------------------------------------------------
REQUIRED_MAPPED_FIELDS: Final[tuple[str, ...]] = (
    "name",
    "address",
    "city",
    "state",
    "postal_code",
)

# Keys used by configurations saved before the snake_case rename
LEGACY_MAPPING_KEYS: Final[dict[str, str]] = {
    "zipCode": "postal_code",
    "accessType": "access_mode",
}

# Sub-keys tried, in order, when a remote value is a structured object
# (hyperlink columns carry {"Url": ..., "Description": ...})
STRUCTURED_VALUE_KEYS: Final[tuple[str, ...]] = (
    "Url",
    "url",
    "URL",
    "Description",
    "description",
)

UNKNOWN_PANTRY: Final[str] = "Unknown Pantry"

# ---------------------------------------------------------------------------
# Typed literals
# ---------------------------------------------------------------------------
AccessMode = Literal["walk-in", "appointment", "mobile"]
ACCESS_MODES: Final[tuple[str, ...]] = ("walk-in", "appointment", "mobile")

# Free-text keyword -> access mode, checked in order
ACCESS_MODE_KEYWORDS: Final[tuple[tuple[str, str], ...]] = (
    ("walk", "walk-in"),
    ("appointment", "appointment"),
    ("mobile", "mobile"),
)

SyncStatus = Literal["pending", "syncing", "success", "error"]
SYNC_STATUSES: Final[tuple[str, ...]] = ("pending", "syncing", "success", "error")

"""
models/sync.py — Pydantic models for data_sync_settings and mapping checks.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from pantry_shared.constants import CANONICAL_FIELDS, LEGACY_MAPPING_KEYS, SyncStatus

# Credential columns of the original data_sync_settings table
_CREDENTIAL_COLUMNS = ("tenant_id", "client_id", "client_secret", "api_key")


class SyncConfiguration(BaseModel):
    """
    One remote-list source and its column mapping.

    `column_mapping` maps canonical PantryRecord field names to the
    source-native column identifiers of the remote list. Credentials are
    opaque to the core and only handed to the token provider.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    source_type: str = "sharepoint"
    site_id: str
    list_id: str
    list_name: str | None = None
    credentials: dict[str, Any] = Field(default_factory=dict, repr=False)
    column_mapping: dict[str, str | None] = Field(default_factory=dict)
    sync_status: SyncStatus = "pending"
    last_error: str | None = None
    last_sync: datetime | None = None
    is_active: bool = True

    @field_validator("column_mapping", mode="before")
    @classmethod
    def _canonical_keys(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, str):
            value = json.loads(value) if value.strip() else {}
        if not isinstance(value, dict):
            return value

        mapping: dict[str, Any] = {}
        for key, column in value.items():
            field = LEGACY_MAPPING_KEYS.get(key, key)
            if field in mapping:
                raise ValueError(f"column mapping has duplicate entries for '{field}'")
            mapping[field] = column

        unknown = sorted(set(mapping) - set(CANONICAL_FIELDS))
        if unknown:
            raise ValueError(f"unknown field(s) in column mapping: {', '.join(unknown)}")
        return mapping

    @field_validator("credentials", mode="before")
    @classmethod
    def _credentials_dict(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, str):
            return json.loads(value) if value.strip() else {}
        return value

    def mapped_column(self, field: str) -> str | None:
        """Source column configured for a canonical field, or None if unmapped."""
        column = self.column_mapping.get(field)
        if column is None:
            return None
        column = str(column).strip()
        return column or None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "SyncConfiguration":
        data = dict(row)
        stored = data.pop("credentials", None)
        if isinstance(stored, str):
            stored = json.loads(stored) if stored.strip() else {}
        credentials = dict(stored or {})
        for column in _CREDENTIAL_COLUMNS:
            if data.get(column) is not None:
                credentials[column] = data[column]
            data.pop(column, None)
        if data.get("id") is not None:
            data["id"] = str(data["id"])
        return cls(credentials=credentials, **data)

    def to_insert_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source_type": self.source_type,
            "site_id": self.site_id,
            "list_id": self.list_id,
            "list_name": self.list_name,
            "credentials": self.credentials,
            "column_mapping": self.column_mapping,
            "sync_status": self.sync_status,
            "last_error": self.last_error,
            "last_sync": self.last_sync.isoformat() if self.last_sync else None,
            "is_active": self.is_active,
        }


class MappingValidation(BaseModel):
    """Outcome of checking a column mapping against the remote field catalog."""

    valid: bool
    errors: list[str] = Field(default_factory=list)

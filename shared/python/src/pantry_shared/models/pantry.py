"""
models/pantry.py — Pydantic model for the pantries table.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from pantry_shared.constants import ACCESS_MODES, AccessMode

# Model field -> pantries table column, where they differ
_DB_COLUMNS: dict[str, str] = {
    "postal_code": "zip_code",
    "access_mode": "access_type",
}
_MODEL_FIELDS: dict[str, str] = {column: name for name, column in _DB_COLUMNS.items()}


class PantryRecord(BaseModel):
    """
    One food-assistance location. Matches the pantries table row.

    `id` and `created_at` are assigned by the record store; `is_active=False`
    marks a soft-deleted row.
    """

    id: str | None = None
    name: str
    address: str | None = None
    city: str | None = None
    state: str
    postal_code: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    hours: str | None = None
    description: str | None = None
    services: list[str] = Field(default_factory=list)
    access_mode: AccessMode | None = None
    is_active: bool = True
    created_at: datetime | None = None

    @field_validator("name", "state", mode="before")
    @classmethod
    def _require_text(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValueError(f"{info.field_name} is required")
        return value.strip() if isinstance(value, str) else value

    @field_validator(
        "address", "city", "postal_code", "phone", "email", "website",
        "hours", "description",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("services", mode="before")
    @classmethod
    def _services_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("access_mode", mode="before")
    @classmethod
    def _access_mode(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        if isinstance(value, str) and value.strip().lower() in ACCESS_MODES:
            return value.strip().lower()
        return value

    @field_validator("latitude")
    @classmethod
    def _latitude_range(cls, value: float | None) -> float | None:
        if value is not None and not -90.0 <= value <= 90.0:
            raise ValueError("latitude must be within [-90, 90]")
        return value

    @field_validator("longitude")
    @classmethod
    def _longitude_range(cls, value: float | None) -> float | None:
        if value is not None and not -180.0 <= value <= 180.0:
            raise ValueError("longitude must be within [-180, 180]")
        return value

    @model_validator(mode="after")
    def _require_location(self) -> "PantryRecord":
        if not self.address and not self.city:
            raise ValueError("at least one of address or city is required")
        return self

    @property
    def coordinates(self) -> tuple[float, float] | None:
        """(latitude, longitude) when both are set; a half pair counts as none."""
        if self.latitude is None or self.longitude is None:
            return None
        return (self.latitude, self.longitude)

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "PantryRecord":
        data = {_MODEL_FIELDS.get(key, key): value for key, value in row.items()}
        if data.get("id") is not None:
            data["id"] = str(data["id"])
        return cls(**data)

    def to_insert_dict(self) -> dict[str, Any]:
        row = self.model_dump(exclude={"created_at"})
        if self.created_at is not None:
            row["created_at"] = self.created_at.isoformat()
        return {_DB_COLUMNS.get(key, key): value for key, value in row.items()}

"""
config.py — pydantic-settings Settings class.

All environment variables for the pantry directory core are declared here.
The pipeline, stores and CLI import `settings` from this module.

Usage:
    from pantry_shared.config import settings
    print(settings.default_state)
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_dotenv() -> Path | None:
    """Walk up from CWD to find the nearest .env file."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        candidate = parent / ".env"
        if candidate.is_file():
            return candidate
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_dotenv() or ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Record store
    # -------------------------------------------------------------------------
    store_backend: Literal["duckdb", "supabase"] = Field(default="duckdb")
    supabase_url: str = Field(default="http://localhost:54321")
    supabase_service_key: str = Field(default="")
    duckdb_path: str = Field(default="./data/pantries.duckdb")

    # -------------------------------------------------------------------------
    # Remote list source (Microsoft Graph / SharePoint lists)
    # -------------------------------------------------------------------------
    graph_base_url: str = Field(default="https://graph.microsoft.com/v1.0")
    http_timeout_s: float = Field(default=30.0)
    auth_timeout_s: float = Field(default=15.0)
    remote_page_size: int = Field(default=200, ge=1, le=5000)

    # -------------------------------------------------------------------------
    # Ingestion defaults (regional)
    # -------------------------------------------------------------------------
    default_state: str = Field(default="PA")
    default_city: str = Field(default="Unknown")
    header_echo_tokens: list[str] = Field(default_factory=lambda: ["wpsl_id"])
    max_itemized_rejections: int = Field(default=10, ge=0)

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    log_format: Literal["json", "console"] = Field(default="console")

    @field_validator("supabase_url", "graph_base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") if isinstance(v, str) else v


# ---------------------------------------------------------------------------
# Module-level singleton — import this everywhere
# ---------------------------------------------------------------------------
settings = Settings()

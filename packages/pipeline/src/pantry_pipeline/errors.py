"""
errors.py — Ingestion failure taxonomy.

Run-level failures are exceptions (subclasses of IngestionError) raised by the
adapters and captured into IngestionReport.failure by the public entry points.
Per-record failures are RejectedRecord values accumulated in the report; they
are never raised.
"""

from __future__ import annotations

from dataclasses import dataclass


class IngestionError(Exception):
    """Base class for failures that end an ingestion run."""

    error_code = "INGESTION_ERROR"


class MalformedFile(IngestionError):
    """The uploaded file could not be parsed as delimited text."""

    error_code = "MALFORMED_FILE"


class MappingInvalid(IngestionError):
    """A required field is unmapped or mapped to a column the source lacks."""

    error_code = "MAPPING_INVALID"

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__(f"Invalid column mapping: {', '.join(self.errors)}")


class AuthenticationFailed(IngestionError):
    """Credential exchange with the remote source failed or was refused."""

    error_code = "AUTHENTICATION_FAILED"


class SourceUnavailable(IngestionError):
    """Network or HTTP failure talking to the remote source."""

    error_code = "SOURCE_UNAVAILABLE"


class CatalogUnavailable(SourceUnavailable):
    """The remote list's field catalog could not be fetched."""

    error_code = "CATALOG_UNAVAILABLE"


@dataclass(frozen=True)
class RejectedRecord:
    """One candidate that failed validation or was screened out by an adapter."""

    position: int
    reason: str

    def __str__(self) -> str:
        return f"Row {self.position}: {self.reason}"

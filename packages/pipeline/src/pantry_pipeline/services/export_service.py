"""
services/export_service.py — CSV export, backups and sync report text.

Exported columns use the canonical field names, which are also accepted
headers for the flat-file import, so an export can be re-imported as is.
Services are joined with "; ".
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any, Literal

import polars as pl

from pantry_shared.models import PantryRecord
from pantry_pipeline.pipelines.ingest import IngestionReport

EXPORT_COLUMNS: tuple[str, ...] = (
    "id",
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
    "is_active",
    "created_at",
)


def _cell(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, list):
        return "; ".join(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _utcnow(now: datetime | None) -> datetime:
    return now or datetime.now(timezone.utc)


def generate_csv(records: Iterable[PantryRecord]) -> str:
    """Records as CSV text with a header row; an empty input yields only the header."""
    rows = [[_cell(getattr(record, column)) for column in EXPORT_COLUMNS] for record in records]
    df = pl.DataFrame(
        {column: [row[i] for row in rows] for i, column in enumerate(EXPORT_COLUMNS)},
        schema={column: pl.String for column in EXPORT_COLUMNS},
    )
    return df.write_csv()


def generate_backup_csv(records: Iterable[PantryRecord], now: datetime | None = None) -> str:
    """generate_csv output preceded by a commented metadata header."""
    records = list(records)
    header = (
        "# Food Pantry Data Backup\n"
        f"# Generated: {_utcnow(now).isoformat()}\n"
        f"# Total Records: {len(records)}\n"
        "# Format: Standard CSV with all fields\n"
        "\n"
    )
    return header + generate_csv(records)


def export_filename(kind: Literal["export", "backup"] = "export", now: datetime | None = None) -> str:
    """e.g. pantry-export-2024-03-01T12-30-00.csv"""
    prefix = "pantry-backup" if kind == "backup" else "pantry-export"
    return f"{prefix}-{_utcnow(now).strftime('%Y-%m-%dT%H-%M-%S')}.csv"


def generate_sync_report(report: IngestionReport, now: datetime | None = None) -> str:
    """Plain-text summary of an ingestion run."""
    errors = report.errors
    lines = [
        "# Pantry Sync Report",
        f"# Generated: {_utcnow(now).isoformat()}",
        f"# Source: {report.source}",
        f"# Status: {report.status}",
        f"# Imported: {report.accepted_count} records",
        f"# Rejected: {report.rejected_count} records",
        "",
    ]

    if errors:
        lines.append("## Errors:")
        lines.extend(f"{i}. {error}" for i, error in enumerate(errors, start=1))
        if report.truncated:
            lines.append(f"... and {report.rejected_count - len(report.rejections)} more")
        lines.append("")

    processed = report.accepted_count + report.rejected_count
    lines.append("## Summary:")
    lines.append(f"Total records processed: {processed}")
    if processed:
        lines.append(f"Success rate: {report.accepted_count / processed * 100:.1f}%")
    else:
        lines.append("Success rate: n/a")
    return "\n".join(lines) + "\n"

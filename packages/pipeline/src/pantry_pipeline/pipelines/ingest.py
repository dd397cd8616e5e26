"""
pipelines/ingest.py — Shared candidate → record → store loop.

Both entry points (flat file and remote list) funnel their RawCandidates
through ingest(). Each candidate is validated into a PantryRecord and created
in the record store one at a time; a failing candidate is recorded as a
RejectedRecord and the batch continues.

Usage:
    report = ingest(candidates, store, source="flat_file")
    print(report.accepted_count, report.rejected_count, report.errors)
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass, field

from pydantic import ValidationError

from pantry_shared.config import settings
from pantry_shared.models import PantryRecord
from pantry_pipeline.errors import IngestionError, MappingInvalid, RejectedRecord
from pantry_pipeline.sources.base import RawCandidate
from pantry_pipeline.stores.base import RecordStore
from pantry_pipeline.transforms.normalize import parse_coordinate_pair
from pantry_pipeline.utils.logging import get_logger

log = get_logger(__name__, pipeline="ingest")

_VALUE_ERROR_PREFIX = "Value error, "


@dataclass
class IngestionReport:
    """
    Outcome of one ingestion run.

    `rejections` itemizes at most `max_itemized` rejected candidates; the
    full count is always in `rejected_count`. `failure` holds the run-level
    error when the run ended before ingesting anything.
    """

    source: str
    max_itemized: int = 10
    accepted_count: int = 0
    rejected_count: int = 0
    rejections: list[RejectedRecord] = field(default_factory=list)
    created_ids: list[str] = field(default_factory=list)
    failure: IngestionError | None = None
    duration_ms: int = 0

    @classmethod
    def failed(
        cls, source: str, exc: IngestionError, *, max_itemized: int | None = None
    ) -> "IngestionReport":
        report = cls(source=source, max_itemized=_itemize_limit(max_itemized))
        report.failure = exc
        return report

    @property
    def status(self) -> str:
        return "error" if self.failure is not None else "success"

    @property
    def truncated(self) -> bool:
        return self.rejected_count > len(self.rejections)

    @property
    def errors(self) -> list[str]:
        """Run-level error messages when the run failed, else itemized rejection reasons."""
        if isinstance(self.failure, MappingInvalid):
            return list(self.failure.errors)
        if self.failure is not None:
            return [str(self.failure)]
        return [str(r) for r in self.rejections]

    def reject(self, position: int, reason: str) -> None:
        self.rejected_count += 1
        if len(self.rejections) < self.max_itemized:
            self.rejections.append(RejectedRecord(position=position, reason=reason))


def _itemize_limit(max_itemized: int | None) -> int:
    return settings.max_itemized_rejections if max_itemized is None else max_itemized


def describe_validation_error(exc: ValidationError) -> str:
    """One line per pydantic error, prefixed with the field unless the message names it."""
    parts: list[str] = []
    for error in exc.errors():
        message = error["msg"]
        if message.startswith(_VALUE_ERROR_PREFIX):
            message = message[len(_VALUE_ERROR_PREFIX):]
        location = ".".join(str(part) for part in error["loc"])
        if location and location not in message:
            message = f"{location}: {message}"
        parts.append(message)
    return "; ".join(parts)


def build_record(candidate: RawCandidate) -> PantryRecord:
    """
    Validate a candidate into a PantryRecord.

    A half coordinate pair is dropped; a non-numeric coordinate raises
    ValueError. Everything else is PantryRecord validation.
    """
    fields = dict(candidate.fields)
    coordinates = parse_coordinate_pair(
        fields.pop("latitude", None), fields.pop("longitude", None)
    )
    if coordinates is not None:
        fields["latitude"], fields["longitude"] = coordinates
    return PantryRecord(**fields)


def ingest(
    candidates: Iterable[RawCandidate],
    store: RecordStore,
    *,
    source: str,
    max_itemized: int | None = None,
) -> IngestionReport:
    """
    Validate and create each candidate in order.

    Never raises for a bad candidate: screened-out bags, validation failures
    and store errors on a single record all become rejections.
    """
    report = IngestionReport(source=source, max_itemized=_itemize_limit(max_itemized))
    t0 = time.monotonic()

    for candidate in candidates:
        if candidate.screened_out:
            report.reject(candidate.position, candidate.rejection or "rejected by source")
            continue

        try:
            record = build_record(candidate)
        except ValidationError as exc:
            report.reject(candidate.position, describe_validation_error(exc))
            continue
        except ValueError as exc:
            report.reject(candidate.position, str(exc))
            continue

        try:
            created = store.create(record)
        except Exception as exc:
            log.error("record_create_failed", position=candidate.position, error=str(exc))
            report.reject(candidate.position, f"could not be saved: {exc}")
            continue

        report.accepted_count += 1
        if created.id is not None:
            report.created_ids.append(created.id)

    report.duration_ms = int((time.monotonic() - t0) * 1000)
    log.info(
        "ingest_complete",
        source=source,
        accepted=report.accepted_count,
        rejected=report.rejected_count,
        truncated=report.truncated,
        duration_ms=report.duration_ms,
    )
    return report

"""
sources/base.py — Abstract base class for pantry source adapters.

Each concrete source must implement:
  extract()      — fetch or parse the raw payload
  transform()    — map the raw payload to canonical RawCandidate bags
  get_metadata() — return dict with source info for logs and sync reports

The run() method orchestrates extract → transform and handles timing and
logging automatically. Pipelines call run() rather than the individual
methods.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import structlog

log = structlog.get_logger(__name__)


@dataclass
class RawCandidate:
    """
    One source row/item mapped onto canonical field names, not yet validated.

    position:  1-based row (flat file) or item (remote list) number.
    fields:    canonical field name → coerced value.
    rejection: reason the adapter screened this bag out, or None.
    """

    position: int
    fields: dict[str, Any] = field(default_factory=dict)
    rejection: str | None = None

    @property
    def screened_out(self) -> bool:
        return self.rejection is not None


class BaseSource(ABC):
    """Abstract base for all pantry source adapters."""

    # Override in subclass — used for logging and IngestionReport.source
    name: str = "unknown"

    def __init__(self) -> None:
        self._log = log.bind(source_name=self.name)

    # ------------------------------------------------------------------
    # Abstract interface — subclasses must implement all three
    # ------------------------------------------------------------------

    @abstractmethod
    async def extract(self, **kwargs: Any) -> Any:
        """
        Fetch or parse the raw payload.

        Run-level failures are raised as IngestionError subclasses
        (MalformedFile, AuthenticationFailed, SourceUnavailable).
        """
        ...

    @abstractmethod
    def transform(self, raw: Any) -> list[RawCandidate]:
        """
        Map the raw payload onto canonical fields, one RawCandidate per
        source row/item, in source order. Bags that fail the adapter's
        screening carry a rejection reason instead of being dropped.
        """
        ...

    @abstractmethod
    async def get_metadata(self) -> dict[str, Any]:
        """Source-level metadata: at minimum source_name and description."""
        ...

    # ------------------------------------------------------------------
    # Orchestration — pipelines call this
    # ------------------------------------------------------------------

    async def run(self, **kwargs: Any) -> list[RawCandidate]:
        """
        Extract + transform in sequence with timing and structured logging.

        Args:
            **kwargs: Forwarded to extract(). Only their names are logged.

        Returns:
            Candidates in source order.

        Raises:
            Any exception from extract() or transform() after logging it.
        """
        run_log = self._log.bind(params=sorted(kwargs))
        run_log.info("source_run_start")

        t0 = time.monotonic()
        try:
            raw = await self.extract(**kwargs)
            run_log.info(
                "extract_complete",
                raw_rows=len(raw),
                duration_ms=int((time.monotonic() - t0) * 1000),
            )

            t1 = time.monotonic()
            candidates = self.transform(raw)
            screened = sum(1 for c in candidates if c.screened_out)
            run_log.info(
                "transform_complete",
                candidates=len(candidates),
                screened_out=screened,
                duration_ms=int((time.monotonic() - t1) * 1000),
            )

            run_log.info(
                "source_run_complete",
                total_duration_ms=int((time.monotonic() - t0) * 1000),
            )
            return candidates

        except Exception as exc:
            run_log.error(
                "source_run_failed",
                error=str(exc),
                error_type=type(exc).__name__,
                duration_ms=int((time.monotonic() - t0) * 1000),
            )
            raise

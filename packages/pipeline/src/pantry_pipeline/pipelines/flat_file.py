"""
pipelines/flat_file.py — Bulk CSV upload pipeline.

Parses the upload with FlatFileSource and creates one record per accepted
row. A file that cannot be parsed at all ends the run with a MalformedFile
failure before anything is written.

Usage:
    from pantry_pipeline.pipelines.flat_file import ingest_flat_file

    report = await ingest_flat_file(Path("pantries.csv").read_bytes(), store)
    report = await ingest_flat_file(data, store, default_state="NJ")
"""

from __future__ import annotations

from pantry_pipeline.errors import MalformedFile
from pantry_pipeline.pipelines.ingest import IngestionReport, ingest
from pantry_pipeline.sources.flat_file import FlatFileSource
from pantry_pipeline.stores.base import RecordStore
from pantry_pipeline.utils.logging import get_logger, run_context

log = get_logger(__name__, pipeline="flat_file")


async def ingest_flat_file(
    data: bytes,
    store: RecordStore,
    *,
    default_state: str | None = None,
    default_city: str | None = None,
    header_echo_tokens: list[str] | None = None,
    max_itemized: int | None = None,
) -> IngestionReport:
    """
    Ingest an uploaded delimited-text file.

    Args:
        data:               Raw file bytes.
        store:              Record store receiving accepted rows.
        default_state:      State for rows without one (settings.default_state).
        default_city:       City for rows with an address but no city.
        header_echo_tokens: Name substrings that mark export artifacts.
        max_itemized:       Cap on itemized rejections in the report.

    Returns:
        IngestionReport; report.failure is a MalformedFile when the file
        could not be parsed.
    """
    source = FlatFileSource(
        default_state=default_state,
        default_city=default_city,
        header_echo_tokens=header_echo_tokens,
    )
    with run_context(source=source.name):
        log.info("flat_file_ingest_start", size_bytes=len(data))
        try:
            candidates = await source.run(data=data)
        except MalformedFile as exc:
            log.warning("flat_file_malformed", error=str(exc))
            return IngestionReport.failed(source.name, exc, max_itemized=max_itemized)

        return ingest(candidates, store, source=source.name, max_itemized=max_itemized)

"""
pipelines/remote_list.py — SharePoint list sync pipeline.

Steps for one sync run:
  1. mark the configuration `syncing`
  2. fetch the list's field catalog and check the column mapping
  3. fetch every page of items, then validate and create records
  4. write the final status (`success` or `error`) whatever happened

Every run-level failure (authentication, catalog, mapping, page fetch)
happens before the first record is created, so a failed run leaves the
record store untouched.

Usage:
    from pantry_pipeline.pipelines.remote_list import ingest_remote_list

    report = await ingest_remote_list(config, store, config_store, token_provider)
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from pantry_shared.constants import CANONICAL_FIELDS, REQUIRED_MAPPED_FIELDS
from pantry_shared.models import MappingValidation, SyncConfiguration
from pantry_pipeline.errors import IngestionError, MappingInvalid
from pantry_pipeline.pipelines.ingest import IngestionReport, ingest
from pantry_pipeline.sources.sharepoint import SharePointSource, TokenProvider
from pantry_pipeline.stores.base import RecordStore, SyncConfigStore
from pantry_pipeline.utils.logging import get_logger, run_context

log = get_logger(__name__, pipeline="remote_list")


def check_mapping(config: SyncConfiguration, catalog: Iterable[str]) -> list[str]:
    """
    Check required fields against the remote field catalog.

    Returns one error per required field that is unmapped or mapped to a
    column the list does not have; an empty list means the mapping is usable.
    """
    available = set(catalog)
    errors: list[str] = []
    for field in REQUIRED_MAPPED_FIELDS:
        column = config.mapped_column(field)
        if column is None:
            errors.append(f"Required field '{field}' is not mapped")
        elif column not in available:
            errors.append(
                f"Mapped column '{column}' for field '{field}' does not exist in the remote list"
            )

    optional_missing = [
        field
        for field in CANONICAL_FIELDS
        if field not in REQUIRED_MAPPED_FIELDS
        and config.mapped_column(field) is not None
        and config.mapped_column(field) not in available
    ]
    if optional_missing:
        log.warning("optional_columns_missing", config_id=config.id, fields=optional_missing)
    return errors


def _make_source(
    config: SyncConfiguration,
    token_provider: TokenProvider | None,
    source: SharePointSource | None,
) -> SharePointSource:
    if source is not None:
        return source
    if token_provider is None:
        raise ValueError("either token_provider or source is required")
    return SharePointSource(config, token_provider)


async def validate_remote_mapping(
    config: SyncConfiguration,
    token_provider: TokenProvider | None = None,
    *,
    source: SharePointSource | None = None,
) -> MappingValidation:
    """
    Check a configuration's column mapping against the live list.

    Never raises for remote failures: a catalog or authentication error is
    reported as an invalid mapping.
    """
    source = _make_source(config, token_provider, source)
    try:
        catalog = await source.field_catalog()
    except IngestionError as exc:
        log.warning("mapping_validation_failed", config_id=config.id, error=str(exc))
        return MappingValidation(valid=False, errors=[f"Failed to validate mapping: {exc}"])

    errors = check_mapping(config, catalog)
    return MappingValidation(valid=not errors, errors=errors)


async def ingest_remote_list(
    config: SyncConfiguration,
    store: RecordStore,
    config_store: SyncConfigStore,
    token_provider: TokenProvider | None = None,
    *,
    source: SharePointSource | None = None,
    max_itemized: int | None = None,
) -> IngestionReport:
    """
    Run one sync of a SharePoint list into the record store.

    Run-level IngestionErrors are captured in report.failure. Any other
    exception propagates, after the configuration has been marked `error`.

    Returns:
        IngestionReport for the run.
    """
    source = _make_source(config, token_provider, source)
    report: IngestionReport | None = None
    last_error = "sync did not complete"

    with run_context(source=source.name, config_id=config.id):
        config_store.update_status(config.id, "syncing", last_error=None)
        try:
            catalog = await source.field_catalog()
            errors = check_mapping(config, catalog)
            if errors:
                raise MappingInvalid(errors)

            candidates = await source.run()
            report = ingest(candidates, store, source=source.name, max_itemized=max_itemized)

        except IngestionError as exc:
            log.warning("remote_sync_failed", error=str(exc), error_code=exc.error_code)
            report = IngestionReport.failed(source.name, exc, max_itemized=max_itemized)

        except Exception as exc:
            log.error("remote_sync_crashed", error=str(exc), error_type=type(exc).__name__)
            last_error = f"Unexpected error: {exc}"
            raise

        finally:
            if report is None:
                config_store.update_status(config.id, "error", last_error=last_error)
            elif report.failure is not None:
                config_store.update_status(config.id, "error", last_error=str(report.failure))
            else:
                summary = (
                    f"{report.rejected_count} errors occurred" if report.rejected_count else None
                )
                config_store.update_status(
                    config.id,
                    "success",
                    last_error=summary,
                    last_sync=datetime.now(timezone.utc),
                )

    log.info("remote_sync_complete", config_id=config.id, status=report.status)
    return report

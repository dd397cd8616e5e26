"""
pantry_pipeline.pipelines — ingestion entry points.

    from pantry_pipeline.pipelines import ingest_flat_file, ingest_remote_list

    report = await ingest_flat_file(data, store)
    report = await ingest_remote_list(config, store, config_store, token_provider)
"""

from pantry_pipeline.pipelines.flat_file import ingest_flat_file
from pantry_pipeline.pipelines.ingest import IngestionReport, ingest
from pantry_pipeline.pipelines.remote_list import (
    check_mapping,
    ingest_remote_list,
    validate_remote_mapping,
)

__all__ = [
    "IngestionReport",
    "ingest",
    "ingest_flat_file",
    "ingest_remote_list",
    "validate_remote_mapping",
    "check_mapping",
]

"""
pantry_pipeline.services — read-side services over a record store.

  search_service — substring + great-circle radius search
  export_service — CSV export/backup and sync report text
"""

from pantry_pipeline.services.export_service import (
    export_filename,
    generate_backup_csv,
    generate_csv,
    generate_sync_report,
)
from pantry_pipeline.services.search_service import search

__all__ = [
    "search",
    "generate_csv",
    "generate_backup_csv",
    "export_filename",
    "generate_sync_report",
]

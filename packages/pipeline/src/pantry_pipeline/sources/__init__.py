"""
pantry_pipeline.sources — pantry source adapters.

Each source turns one kind of input into canonical RawCandidate bags:
  FlatFileSource   — uploaded CSV with variable header naming
  SharePointSource — SharePoint list via Microsoft Graph, explicit column mapping
"""

from pantry_pipeline.sources.base import BaseSource, RawCandidate
from pantry_pipeline.sources.flat_file import FlatFileSource
from pantry_pipeline.sources.sharepoint import (
    RemoteEntry,
    SharePointSource,
    StaticTokenProvider,
    TokenProvider,
)

__all__ = [
    "BaseSource",
    "RawCandidate",
    "FlatFileSource",
    "RemoteEntry",
    "SharePointSource",
    "StaticTokenProvider",
    "TokenProvider",
]

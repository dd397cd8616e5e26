"""
sources/sharepoint.py — Microsoft Graph (SharePoint list) source adapter.

Reads pantry rows from a SharePoint list through the Graph API using the
administrator-defined column mapping stored on a SyncConfiguration.

Endpoints:
  GET /sites/{site_id}/lists/{list_id}                         (connection test)
  GET /sites/{site_id}/lists/{list_id}/columns                 (field catalog)
  GET /sites/{site_id}/lists/{list_id}/items?expand=fields     (paged items)
  GET /sites/{site_id}/lists                                   (list discovery)
  GET /sites?search={query}                                    (site discovery)

Items response shape:
  {
    "value": [
      { "id": "1", "fields": { "Title": "Helping Hands", "Website": {"Url": "..."} } },
      ...
    ],
    "@odata.nextLink": "https://graph.microsoft.com/v1.0/...&$skiptoken=..."
  }

Pages are fetched one after another and the whole list is collected before
any record is handed to the pipeline. Nothing is retried.

Usage:
    source = SharePointSource(config, StaticTokenProvider(token))
    candidates = await source.run()
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from pantry_shared.config import settings
from pantry_shared.constants import CANONICAL_FIELDS, TEXT_FIELDS, UNKNOWN_PANTRY
from pantry_shared.models import SyncConfiguration
from pantry_pipeline.errors import (
    AuthenticationFailed,
    CatalogUnavailable,
    IngestionError,
    SourceUnavailable,
)
from pantry_pipeline.sources.base import BaseSource, RawCandidate
from pantry_pipeline.transforms.normalize import (
    clean_text,
    coerce_access_mode,
    coerce_services,
    unwrap_structured,
)


@dataclass(frozen=True)
class RemoteEntry:
    """A site or list as listed by Graph discovery."""

    id: str
    name: str
    display_name: str | None = None
    web_url: str | None = None

    @classmethod
    def from_graph(cls, entry: dict[str, Any]) -> RemoteEntry:
        return cls(
            id=str(entry.get("id", "")),
            name=entry.get("name") or entry.get("displayName") or "",
            display_name=entry.get("displayName"),
            web_url=entry.get("webUrl"),
        )


class TokenProvider(Protocol):
    """Exchanges a configuration's credentials for a bearer token."""

    async def authenticate(self, config: SyncConfiguration) -> str: ...


class StaticTokenProvider:
    """Hands out a bearer token that was issued elsewhere."""

    def __init__(self, token: str) -> None:
        self._token = token

    async def authenticate(self, config: SyncConfiguration) -> str:
        if not self._token:
            raise AuthenticationFailed("no bearer token configured")
        return self._token


class SharePointSource(BaseSource):
    """Pulls list items from one SharePoint list and maps them to canonical fields."""

    name = "sharepoint"

    def __init__(
        self,
        config: SyncConfiguration,
        token_provider: TokenProvider,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        auth_timeout: float | None = None,
        page_size: int | None = None,
    ) -> None:
        super().__init__()
        self._config = config
        self._token_provider = token_provider
        self._base_url = (base_url or settings.graph_base_url).rstrip("/")
        self._timeout = settings.http_timeout_s if timeout is None else timeout
        self._auth_timeout = settings.auth_timeout_s if auth_timeout is None else auth_timeout
        self._page_size = page_size or settings.remote_page_size
        self._bearer: str | None = None
        self._log = self._log.bind(config_id=config.id, list_id=config.list_id)

    @property
    def list_url(self) -> str:
        return f"{self._base_url}/sites/{self._config.site_id}/lists/{self._config.list_id}"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def _token(self) -> str:
        """Obtain (once) a bearer token, time-boxed by auth_timeout."""
        if self._bearer is not None:
            return self._bearer
        try:
            token = await asyncio.wait_for(
                self._token_provider.authenticate(self._config),
                timeout=self._auth_timeout,
            )
        except AuthenticationFailed:
            raise
        except asyncio.TimeoutError as exc:
            raise AuthenticationFailed(
                f"credential exchange timed out after {self._auth_timeout}s"
            ) from exc
        except Exception as exc:
            raise AuthenticationFailed(f"credential exchange failed: {exc}") from exc
        if not token:
            raise AuthenticationFailed("credential exchange returned an empty token")
        self._bearer = token
        return token

    async def _get_json(
        self,
        client: httpx.AsyncClient,
        url: str,
        *,
        params: dict[str, str] | None = None,
        failure: type[SourceUnavailable] = SourceUnavailable,
    ) -> dict[str, Any]:
        token = await self._token()
        headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
        try:
            response = await client.get(url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise failure(f"request to {url} failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise AuthenticationFailed(
                f"remote list refused the bearer token (HTTP {response.status_code})"
            )
        if response.is_error:
            raise failure(f"{url} returned HTTP {response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise failure(f"{url} returned a body that is not JSON") from exc

    async def field_catalog(self) -> list[str]:
        """
        Source-native column names of the list.

        Raises:
            AuthenticationFailed: token exchange failed or was refused.
            CatalogUnavailable: the columns endpoint could not be read.
        """
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            payload = await self._get_json(
                client, f"{self.list_url}/columns", failure=CatalogUnavailable
            )
        columns = [col["name"] for col in payload.get("value", []) if col.get("name")]
        self._log.debug("field_catalog_fetched", columns=len(columns))
        return columns

    async def test_connection(self) -> bool:
        """True when a token can be obtained and the list endpoint answers."""
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                await self._get_json(client, self.list_url)
        except IngestionError as exc:
            self._log.warning("connection_test_failed", error=str(exc))
            return False
        self._log.info("connection_test_ok")
        return True

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def _get_all(
        self, url: str, params: dict[str, str] | None = None
    ) -> list[dict[str, Any]]:
        """Every entry of a paged Graph collection."""
        entries: list[dict[str, Any]] = []
        next_url: str | None = url
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            while next_url:
                payload = await self._get_json(client, next_url, params=params)
                entries.extend(payload.get("value", []))
                next_url = payload.get("@odata.nextLink")
                params = None
        return entries

    async def list_lists(self) -> list[RemoteEntry]:
        """Lists on the configured site, for choosing a configuration's list_id."""
        entries = await self._get_all(f"{self._base_url}/sites/{self._config.site_id}/lists")
        self._log.debug("lists_fetched", site_id=self._config.site_id, lists=len(entries))
        return [RemoteEntry.from_graph(entry) for entry in entries]

    async def search_sites(self, query: str = "") -> list[RemoteEntry]:
        """Sites visible to the configured credentials matching query ("" means all)."""
        entries = await self._get_all(
            f"{self._base_url}/sites", params={"search": query.strip() or "*"}
        )
        self._log.debug("sites_fetched", query=query, sites=len(entries))
        return [RemoteEntry.from_graph(entry) for entry in entries]

    # ------------------------------------------------------------------
    # BaseSource interface
    # ------------------------------------------------------------------

    async def extract(self, **kwargs: Any) -> list[dict[str, Any]]:
        """
        Fetch every item's `fields` bag, following @odata.nextLink.

        Raises:
            AuthenticationFailed, SourceUnavailable: on the first failing
                request. Pages already fetched are discarded.
        """
        items: list[dict[str, Any]] = []
        url: str | None = f"{self.list_url}/items"
        params: dict[str, str] | None = {"expand": "fields", "$top": str(self._page_size)}
        page = 0

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            while url:
                page += 1
                payload = await self._get_json(client, url, params=params)
                batch = payload.get("value", [])
                items.extend(item.get("fields") or {} for item in batch)
                self._log.debug("items_page_fetched", page=page, items=len(batch))
                url = payload.get("@odata.nextLink")
                # nextLink already carries the query string
                params = None

        return items

    def transform(self, raw: list[dict[str, Any]]) -> list[RawCandidate]:
        """Apply the column mapping to each item's fields, in list order."""
        candidates: list[RawCandidate] = []
        for position, item in enumerate(raw, start=1):
            fields = self._map_item(item)
            rejection = None
            name = fields.get("name")
            if not name or name == UNKNOWN_PANTRY:
                column = self._config.mapped_column("name")
                rejection = (
                    f"no usable name in mapped column {column!r}"
                    if column
                    else "name is not mapped"
                )
            candidates.append(RawCandidate(position=position, fields=fields, rejection=rejection))
        return candidates

    async def get_metadata(self) -> dict[str, Any]:
        return {
            "source_name": self.name,
            "description": "SharePoint list read through Microsoft Graph",
            "site_id": self._config.site_id,
            "list_id": self._config.list_id,
            "list_name": self._config.list_name,
            "mapped_fields": sorted(
                f for f in CANONICAL_FIELDS if self._config.mapped_column(f)
            ),
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _map_item(self, item: dict[str, Any]) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        for field in CANONICAL_FIELDS:
            column = self._config.mapped_column(field)
            value = item.get(column) if column else None
            if value is None or value == "":
                continue
            if field == "services":
                fields[field] = coerce_services(value)
            elif field == "access_mode":
                fields[field] = coerce_access_mode(value)
            elif field in TEXT_FIELDS:
                fields[field] = clean_text(value)
            else:
                fields[field] = unwrap_structured(value)
        return fields

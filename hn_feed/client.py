from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol, TypedDict, cast

import httpx

from hn_feed.constants import (
    ALGOLIA_API_BASE,
    EXTERNAL_REQUEST_SEMAPHORE,
    HN_API_BASE,
    HTTP_CONNECT_TIMEOUT,
    HTTP_TIMEOUT,
    HTTP_USER_AGENT,
)
from hn_feed.errors import FetchError, SearchError
from hn_feed.models import FeedType, Item, ItemDict, SearchHit

logger = logging.getLogger(__name__)


class ItemSource(Protocol):
    """Read-only access to the upstream id lists and item records."""

    async def list_identifiers(self, feed_type: FeedType) -> list[int]:
        """Return the current ordered id list; raise FetchError on failure."""
        ...

    async def fetch_item(self, item_id: int) -> Optional[Item]:
        """Return one item, None if upstream has none; raise FetchError on failure."""
        ...


class SearchSource(Protocol):
    async def search(self, query: str) -> list[SearchHit]:
        """Return hits for a query; raise SearchError on failure."""
        ...


class AlgoliaHit(TypedDict, total=False):
    objectID: str
    title: Optional[str]
    url: Optional[str]
    created_at_i: int


class AlgoliaSearchResponse(TypedDict, total=False):
    hits: list[AlgoliaHit]


def _default_http_client(base_url: str) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=base_url,
        follow_redirects=True,
        headers={"User-Agent": HTTP_USER_AGENT},
        timeout=httpx.Timeout(HTTP_TIMEOUT, connect=HTTP_CONNECT_TIMEOUT),
    )


class HNApiClient:
    """ItemSource backed by the official HN Firebase API."""

    def __init__(
        self,
        base_url: str = HN_API_BASE,
        max_concurrency: int = EXTERNAL_REQUEST_SEMAPHORE,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.client: httpx.AsyncClient = _default_http_client(self.base_url)
        self._sem = asyncio.Semaphore(max_concurrency)

    async def _get_json(self, path: str) -> object:
        async with self._sem:
            try:
                resp: httpx.Response = await self.client.get(path)
            except httpx.HTTPError as e:
                raise FetchError(f"Request to {path} failed: {e}") from e
        if resp.status_code != 200:
            raise FetchError(
                f"Request to {path} returned {resp.status_code}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise FetchError(f"Malformed JSON from {path}") from e

    async def list_identifiers(self, feed_type: FeedType) -> list[int]:
        data = await self._get_json(f"/{feed_type.endpoint}.json")
        if not isinstance(data, list):
            raise FetchError(f"Unexpected id list payload for {feed_type.value}")
        out: list[int] = []
        for raw in data:
            if isinstance(raw, int):
                out.append(raw)
            elif isinstance(raw, str) and raw.isdigit():
                out.append(int(raw))
        logger.debug(f"Fetched {len(out)} ids for {feed_type.value}")
        return out

    async def fetch_item(self, item_id: int) -> Optional[Item]:
        data = await self._get_json(f"/item/{item_id}.json")
        if data is None:
            return None
        if not isinstance(data, dict):
            raise FetchError(f"Unexpected payload for item {item_id}")
        return Item.from_dict(cast(ItemDict, data))

    async def close(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> HNApiClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()


class AlgoliaSearchClient:
    """SearchSource backed by the Algolia HN search API."""

    def __init__(self, base_url: str = ALGOLIA_API_BASE) -> None:
        self.base_url = base_url.rstrip("/")
        self.client: httpx.AsyncClient = _default_http_client(self.base_url)

    async def search(self, query: str) -> list[SearchHit]:
        try:
            resp: httpx.Response = await self.client.get(
                "/search", params={"query": query}
            )
        except httpx.HTTPError as e:
            raise SearchError(f"Search request failed: {e}") from e
        if resp.status_code != 200:
            raise SearchError(f"Search request returned {resp.status_code}")
        try:
            data = cast(AlgoliaSearchResponse, resp.json())
        except ValueError as e:
            raise SearchError("Malformed search response") from e

        hits: list[SearchHit] = []
        for hit in data.get("hits", []) or []:
            oid = str(hit.get("objectID", ""))
            if not oid.isdigit():
                continue
            hits.append(
                SearchHit(
                    id=int(oid),
                    title=hit.get("title") or "",
                    url=hit.get("url") or None,
                    created_at=int(hit.get("created_at_i") or 0),
                )
            )
        return hits

    async def close(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> AlgoliaSearchClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

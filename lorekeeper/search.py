"""Web search backends behind the SearchProvider protocol.

Supported backends:
- searxng:    a self-hosted SearXNG instance (JSON API, no key)
- brave:      Brave Search API (requires an API key)
- duckduckgo: DuckDuckGo Instant Answers (no key, topic-style results only)

``WebSearch`` picks a backend from Settings and honours the SearchProvider
contract: failures are logged and come back as an empty list.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from lorekeeper.config import Settings
from lorekeeper.protocols import SearchError
from lorekeeper.types import SearchHit

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0
MAX_RESULTS = 10

BRAVE_ENDPOINT = "https://api.search.brave.com/res/v1/web/search"
DUCKDUCKGO_ENDPOINT = "https://api.duckduckgo.com/"


def _get_json(client: httpx.Client, url: str, **kwargs: Any) -> dict[str, Any]:
    try:
        response = client.get(url, **kwargs)
        response.raise_for_status()
        return response.json()
    except httpx.HTTPStatusError as e:
        raise SearchError(f"{url} returned HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise SearchError(f"Request to {url} failed: {e}") from e
    except ValueError as e:
        raise SearchError(f"{url} returned invalid JSON: {e}") from e


class SearxngSearch:
    """Query a SearXNG instance's JSON API."""

    def __init__(self, base_url: str, client: httpx.Client) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client

    def search(self, query: str, limit: int) -> list[SearchHit]:
        data = _get_json(
            self._client,
            f"{self.base_url}/search",
            params={"q": query, "format": "json", "categories": "general"},
            headers={"Accept": "application/json"},
        )
        return [
            SearchHit(
                title=r.get("title") or "",
                url=r.get("url") or "",
                snippet=r.get("content") or "",
            )
            for r in (data.get("results") or [])[:limit]
        ]


class BraveSearch:
    """Query the Brave Search web API."""

    def __init__(self, api_key: str, client: httpx.Client) -> None:
        self._api_key = api_key
        self._client = client

    def search(self, query: str, limit: int) -> list[SearchHit]:
        data = _get_json(
            self._client,
            BRAVE_ENDPOINT,
            params={"q": query, "count": limit},
            headers={
                "Accept": "application/json",
                "Accept-Encoding": "gzip",
                "X-Subscription-Token": self._api_key,
            },
        )
        results = (data.get("web") or {}).get("results") or []
        return [
            SearchHit(
                title=r.get("title") or "",
                url=r.get("url") or "",
                snippet=r.get("description") or "",
            )
            for r in results[:limit]
        ]


class DuckDuckGoSearch:
    """Query DuckDuckGo Instant Answers.

    Returns the abstract (when there is one) followed by related topics, not
    full web results.
    """

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    def search(self, query: str, limit: int) -> list[SearchHit]:
        data = _get_json(
            self._client,
            DUCKDUCKGO_ENDPOINT,
            params={
                "q": query,
                "format": "json",
                "no_redirect": "1",
                "no_html": "1",
                "skip_disambig": "1",
            },
        )
        hits: list[SearchHit] = []
        if data.get("AbstractText") and data.get("AbstractURL"):
            hits.append(
                SearchHit(
                    title=data.get("AbstractSource") or "DuckDuckGo",
                    url=data["AbstractURL"],
                    snippet=data["AbstractText"],
                )
            )
        for topic in data.get("RelatedTopics") or []:
            if len(hits) >= limit:
                break
            text, url = topic.get("Text"), topic.get("FirstURL")
            if text and url:
                hits.append(SearchHit(title=text[:80], url=url, snippet=text))
        return hits[:limit]


class WebSearch:
    """SearchProvider that dispatches to the backend chosen in Settings."""

    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None) -> None:
        self._settings = settings
        self._client = client or httpx.Client(timeout=DEFAULT_TIMEOUT, follow_redirects=True)

    @property
    def configured(self) -> bool:
        return self._settings.search_configured

    @property
    def backend(self):
        name = self._settings.search_backend
        if name == "searxng":
            return SearxngSearch(self._settings.searxng_url, self._client)
        if name == "brave":
            return BraveSearch(self._settings.brave_api_key, self._client)
        return DuckDuckGoSearch(self._client)

    def search(self, query: str, limit: Optional[int] = None) -> list[SearchHit]:
        limit = max(1, min(limit or self._settings.search_max_results, MAX_RESULTS))
        try:
            hits = self.backend.search(query, limit)
        except SearchError as e:
            logger.warning("Web search for '%s' failed: %s", query, e)
            return []
        logger.debug(
            "Search '%s' via %s returned %d hit(s)", query, self._settings.search_backend, len(hits)
        )
        return hits

    def close(self) -> None:
        self._client.close()

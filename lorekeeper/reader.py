"""Page reader backed by the Jina AI Reader (https://r.jina.ai).

The reader turns any public URL into markdown text, which is what the
distillation prompt wants. Reads are bounded both in time (20 s) and in
length; any failure yields an empty string.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from lorekeeper.protocols import FetchError

logger = logging.getLogger(__name__)

JINA_READER_BASE = "https://r.jina.ai/"
DEFAULT_TIMEOUT = 20.0
DEFAULT_MAX_CHARS = 6000


class JinaReader:
    """PageFetcher that reads pages through the Jina AI Reader."""

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        *,
        base_url: str = JINA_READER_BASE,
        timeout: float = DEFAULT_TIMEOUT,
        max_chars: int = DEFAULT_MAX_CHARS,
    ) -> None:
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)
        self._base_url = base_url
        self._timeout = timeout
        self.max_chars = max_chars

    def read(self, url: str) -> str:
        """Fetch ``url`` as markdown.

        Raises:
            FetchError: on timeouts, network errors or non-2xx responses.
        """
        try:
            response = self._client.get(
                f"{self._base_url}{url}",
                headers={"Accept": "text/plain", "X-Return-Format": "markdown"},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise FetchError(f"Timed out reading {url} after {self._timeout:.0f}s") from e
        except httpx.HTTPStatusError as e:
            raise FetchError(f"Reading {url} returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"Reading {url} failed: {e}") from e
        return response.text[: self.max_chars]

    def fetch(self, url: str) -> str:
        try:
            return self.read(url)
        except FetchError as e:
            logger.warning("%s", e)
            return ""

    def close(self) -> None:
        self._client.close()

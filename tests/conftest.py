"""
Pytest fixtures and test configuration for lorekeeper tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from lorekeeper.ledger import RunLedger
from lorekeeper.memory import MemoryStore
from lorekeeper.pipeline import LearningPipeline
from lorekeeper.storage import InMemoryKeyValueStore
from lorekeeper.topics import TopicRegistry
from lorekeeper.types import SearchHit

START = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

LONG_PAGE = "# Tokio runtime\n" + "Tokio is a popular async runtime for Rust programs. " * 8


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class StubSearch:
    """SearchProvider returning canned hits per query."""

    def __init__(self, hits: Optional[Dict[str, List[SearchHit]]] = None, *,
                 default: Optional[List[SearchHit]] = None, configured: bool = True,
                 error: Optional[Exception] = None):
        self.hits = hits or {}
        self.default = default if default is not None else []
        self.configured = configured
        self.error = error
        self.queries: List[str] = []

    def search(self, query, limit):
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return list(self.hits.get(query, self.default))[:limit]


class StubFetcher:
    """PageFetcher returning canned page text per URL."""

    def __init__(self, pages: Optional[Dict[str, str]] = None, *, default: str = "",
                 error: Optional[Exception] = None):
        self.pages = pages or {}
        self.default = default
        self.error = error
        self.urls: List[str] = []

    def fetch(self, url):
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.pages.get(url, self.default)


class StubSummarizer:
    """Summarizer returning the same insights for every topic."""

    def __init__(self, insights: Optional[List[str]] = None, *, error: Optional[Exception] = None):
        self.insights = insights or []
        self.error = error
        self.calls = []

    def distill(self, topic, pages):
        self.calls.append((topic, list(pages)))
        if self.error is not None:
            raise self.error
        return list(self.insights)


def make_hits(*urls: str) -> List[SearchHit]:
    return [SearchHit(title=f"Result {i}", url=url) for i, url in enumerate(urls, start=1)]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def memory(kv_store, clock):
    return MemoryStore(kv_store, clock=clock)


@pytest.fixture
def ledger(kv_store, clock):
    return RunLedger(kv_store, clock=clock)


@pytest.fixture
def topics(kv_store, clock):
    return TopicRegistry(kv_store, clock=clock)


@pytest.fixture
def make_pipeline(memory, ledger, topics):
    """Factory building a LearningPipeline over the shared stores."""

    def _make(search=None, fetcher=None, summarizer=None, **kwargs):
        return LearningPipeline(
            memory,
            ledger,
            topics,
            fetcher=fetcher if fetcher is not None else StubFetcher(default=LONG_PAGE),
            search=search,
            summarizer=summarizer,
            **kwargs,
        )

    return _make

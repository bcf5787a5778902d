"""Learning pipeline: RETRIEVE → JUDGE → DISTILL → CONSOLIDATE.

For every enabled topic, one run:

1. RETRIEVE    – web-searches the topic (name plus optional hint)
2. JUDGE       – keeps the first N result URLs in the provider's order
3. DISTILL     – reads each page and asks the summarizer for short insights
4. CONSOLIDATE – drops near-duplicates of stored memories, saves the rest

Everything runs sequentially in the caller's thread. Collaborator failures
only shrink a topic's output; they never fail the run. Configuration
problems are raised before a run record exists. Anything else that escapes
the loop marks the run as failed in the ledger and is not re-raised.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from lorekeeper.dedup import DeduplicationFilter
from lorekeeper.ledger import RunLedger
from lorekeeper.memory import MemoryStore
from lorekeeper.protocols import (
    ConfigurationError,
    Outcome,
    PageFetcher,
    SearchProvider,
    Summarizer,
)
from lorekeeper.summarizer import MAX_INSIGHTS
from lorekeeper.topics import TopicRegistry
from lorekeeper.types import (
    LearningTopic,
    MemoryEntry,
    MemorySource,
    PageContent,
    RunStatus,
    SearchHit,
)

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 4
DEFAULT_MAX_PAGES_PER_TOPIC = 2
MAX_PAGES_PER_TOPIC = 5
MIN_PAGE_CHARS = 200
SELF_LEARNING_TAG = "self-learning"

_HEADING_RE = re.compile(r"^#\s+(.+)", re.MULTILINE)


@dataclass
class TopicReport:
    """What happened to one topic during a run."""

    topic: str
    query: str
    hits: int = 0
    urls: List[str] = field(default_factory=list)
    pages_read: int = 0
    raw_insights: int = 0
    saved: List[str] = field(default_factory=list)
    skipped: Optional[str] = None
    errors: List[str] = field(default_factory=list)


@dataclass
class RunReport:
    """Per-topic detail of the most recent run, for verbose output."""

    run_id: str
    topics: List[TopicReport] = field(default_factory=list)
    status: RunStatus = RunStatus.RUNNING
    error: Optional[str] = None

    @property
    def insights_saved(self) -> int:
        return sum(len(t.saved) for t in self.topics)

    def summary(self) -> str:
        lines = [
            f"Learning run {self.run_id[:8]}: {self.status.value}, "
            f"{self.insights_saved} new insight(s)"
        ]
        for t in self.topics:
            if t.skipped:
                lines.append(f"- {t.topic}: skipped ({t.skipped})")
                continue
            lines.append(
                f"- {t.topic}: {t.hits} result(s), {t.pages_read} page(s) read, "
                f"{t.raw_insights} insight(s), {len(t.saved)} new"
            )
            lines.extend(f"    • {s}" for s in t.saved)
        if self.error:
            lines.append(f"Error: {self.error}")
        return "\n".join(lines)


def page_title(content: str, fallback: str) -> str:
    """First markdown ``# heading`` of a page, or ``fallback``."""
    match = _HEADING_RE.search(content)
    return match.group(1).strip() if match else fallback


class LearningPipeline:
    """Orchestrates learning runs over the enabled topics.

    Holds no persistent state of its own: memories live in ``memory``,
    runs in ``ledger`` and topics in ``topics``. At most one run is active
    at a time; the ledger's latest-run status is the guard.
    """

    def __init__(
        self,
        memory: MemoryStore,
        ledger: RunLedger,
        topics: TopicRegistry,
        *,
        fetcher: PageFetcher,
        search: Optional[SearchProvider] = None,
        summarizer: Optional[Summarizer] = None,
        dedup: Optional[DeduplicationFilter] = None,
        enabled: bool = True,
        max_pages_per_topic: int = DEFAULT_MAX_PAGES_PER_TOPIC,
    ) -> None:
        self._memory = memory
        self._ledger = ledger
        self._topics = topics
        self._fetcher = fetcher
        self._search = search
        self._summarizer = summarizer
        self._dedup = dedup or DeduplicationFilter()
        self._lock = threading.Lock()
        self.enabled = enabled
        self.max_pages_per_topic = max_pages_per_topic
        self.last_report: Optional[RunReport] = None

    @property
    def max_pages_per_topic(self) -> int:
        return self._max_pages

    @max_pages_per_topic.setter
    def max_pages_per_topic(self, value: int) -> None:
        self._max_pages = max(1, min(MAX_PAGES_PER_TOPIC, int(value)))

    @property
    def configured(self) -> bool:
        """Enabled with at least one enabled topic."""
        return self.enabled and bool(self._topics.active_topics)

    @property
    def is_running(self) -> bool:
        return self._ledger.is_running

    # ---- Entry point ----

    def run_learning_loop(self) -> int:
        """Run the full loop once over all enabled topics.

        Returns:
            Number of insights saved. 0 without doing anything when the
            pipeline is disabled or a run is already in progress.

        Raises:
            ConfigurationError: no model, search not configured, or no
                enabled topics. No run record is created in that case.
        """
        with self._lock:
            if not self.enabled:
                logger.debug("Learning pipeline disabled, not running")
                return 0
            if self._ledger.is_running:
                logger.info("A learning run is already in progress, not starting another")
                return 0
            topics = self._preflight()
            run = self._ledger.start_run([t.name for t in topics])
            if run is None:
                logger.info("Another process started a learning run, not starting another")
                return 0

        report = RunReport(run_id=run.id)
        self.last_report = report
        logger.info("Learning run %s started over %d topic(s)", run.id[:8], len(topics))

        total = 0
        try:
            for topic in topics:
                topic_report = TopicReport(topic=topic.name, query=topic.query)
                report.topics.append(topic_report)
                total += self._process_topic(topic, topic_report)
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.exception("Learning run %s failed", run.id[:8])
            self._ledger.fail_run(run.id, message)
            report.status = RunStatus.ERROR
            report.error = message
            return total

        self._ledger.complete_run(run.id, total)
        report.status = RunStatus.DONE
        logger.info("Learning run %s done: %d insight(s) saved", run.id[:8], total)
        return total

    def _preflight(self) -> List[LearningTopic]:
        if self._summarizer is None:
            raise ConfigurationError("No active text-generation provider configured")
        if self._search is None or not self._search.configured:
            raise ConfigurationError("Web search is not configured")
        topics = self._topics.active_topics
        if not topics:
            raise ConfigurationError("No learning topics configured")
        return topics

    # ---- Phases ----

    def _process_topic(self, topic: LearningTopic, report: TopicReport) -> int:
        # 1. RETRIEVE
        searched = self._retrieve(topic.query)
        if not searched.ok:
            report.errors.append(searched.error)
        report.hits = len(searched.value)
        if not searched.value:
            report.skipped = "no search results"
            logger.info("No search results for '%s', skipping", topic.name)
            return 0

        # 2. JUDGE
        report.urls = self._judge(searched.value)

        # 3. DISTILL
        pages = self._read_pages(report.urls, report)
        report.pages_read = len(pages)
        if not pages:
            report.skipped = "no readable pages"
            logger.info("No readable pages for '%s', skipping", topic.name)
            return 0

        distilled = self._distill(topic.name, pages)
        if not distilled.ok:
            report.errors.append(distilled.error)
        report.raw_insights = len(distilled.value)

        # 4. CONSOLIDATE
        saved = self._consolidate(topic.name, distilled.value)
        report.saved = [entry.content for entry in saved]
        return len(saved)

    def _retrieve(self, query: str) -> Outcome[List[SearchHit]]:
        try:
            return Outcome.success(list(self._search.search(query, SEARCH_LIMIT)))
        except Exception as e:
            logger.warning("Search for '%s' failed: %s", query, e)
            return Outcome.empty([], f"search failed: {e}")

    def _judge(self, hits: List[SearchHit]) -> List[str]:
        """Top URLs in provider order; no re-ranking."""
        return [h.url for h in hits[: self.max_pages_per_topic] if h.url]

    def _fetch(self, url: str) -> Outcome[str]:
        try:
            return Outcome.success(self._fetcher.fetch(url) or "")
        except Exception as e:
            logger.warning("Reading %s failed: %s", url, e)
            return Outcome.empty("", f"fetch failed for {url}: {e}")

    def _read_pages(self, urls: List[str], report: TopicReport) -> List[PageContent]:
        pages = []
        for url in urls:
            fetched = self._fetch(url)
            if not fetched.ok:
                report.errors.append(fetched.error)
            content = fetched.value
            if len(content.strip()) < MIN_PAGE_CHARS:
                logger.debug("Page %s too short (%d chars), ignoring", url, len(content.strip()))
                continue
            pages.append(PageContent(url=url, title=page_title(content, url), content=content))
        return pages

    def _distill(self, topic: str, pages: List[PageContent]) -> Outcome[List[str]]:
        try:
            insights = self._summarizer.distill(topic, pages) or []
        except Exception as e:
            logger.warning("Distilling '%s' failed: %s", topic, e)
            return Outcome.empty([], f"distill failed: {e}")
        cleaned = [i.strip() for i in insights if isinstance(i, str) and i.strip()]
        return Outcome.success(cleaned[:MAX_INSIGHTS])

    def _consolidate(self, topic: str, insights: List[str]) -> List[MemoryEntry]:
        if not insights:
            return []
        novel = self._dedup.dedupe(insights, self._memory.all_contents())
        saved = [
            self._memory.add_entry(
                insight,
                tags=[topic, SELF_LEARNING_TAG],
                source=MemorySource.SELF_LEARNING,
            )
            for insight in novel
        ]
        logger.info("Topic '%s': %d insight(s), %d new", topic, len(insights), len(saved))
        return saved

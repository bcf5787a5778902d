"""
Lorekeeper - the composed learning service.

Wires settings, the keyed store and the collaborators into the memory
store, topic registry, run ledger, pipeline, schedule policy and context
injector. Everything is constructed explicitly; pass your own collaborators
(or a fake clock) to override any of them.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from lorekeeper.config import Settings, load_settings
from lorekeeper.context import ContextInjector
from lorekeeper.ledger import RunLedger
from lorekeeper.memory import MemoryStore
from lorekeeper.models.auto import auto_configure_model
from lorekeeper.pipeline import LearningPipeline
from lorekeeper.protocols import (
    KeyValueStore,
    ModelProtocol,
    PageFetcher,
    SearchProvider,
    Summarizer,
)
from lorekeeper.reader import JinaReader
from lorekeeper.schedule import SchedulePolicy
from lorekeeper.search import WebSearch
from lorekeeper.storage import SQLiteKeyValueStore
from lorekeeper.summarizer import ModelSummarizer
from lorekeeper.topics import TopicRegistry
from lorekeeper.types import ContextMessage, MemoryEntry, MemorySource, utc_now

logger = logging.getLogger(__name__)


class Lorekeeper:
    """Self-learning long-term memory for a conversational agent.

    Usage::

        lk = Lorekeeper()                      # settings from LOREKEEPER_* env
        lk.topics.add_topic("Rust async runtimes")
        saved = lk.run_learning_loop()
        message = lk.build_context()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        store: Optional[KeyValueStore] = None,
        model: Optional[ModelProtocol] = None,
        summarizer: Optional[Summarizer] = None,
        search: Optional[SearchProvider] = None,
        fetcher: Optional[PageFetcher] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.settings = settings or load_settings()
        self.store = store if store is not None else SQLiteKeyValueStore(self.settings.db_path)

        self.memory = MemoryStore(
            self.store,
            enabled=self.settings.memory_enabled,
            max_injected_entries=self.settings.max_injected_entries,
            clock=clock,
        )
        self.topics = TopicRegistry(self.store, clock=clock)
        self.ledger = RunLedger(self.store, clock=clock)
        # Runs left running past the stale bound belong to a dead process
        self.ledger.recover_interrupted()

        if summarizer is None:
            model = model if model is not None else auto_configure_model()
            summarizer = ModelSummarizer(model) if model is not None else None

        self.pipeline = LearningPipeline(
            self.memory,
            self.ledger,
            self.topics,
            fetcher=fetcher or JinaReader(),
            search=search or WebSearch(self.settings),
            summarizer=summarizer,
            enabled=self.settings.learning_enabled,
            max_pages_per_topic=self.settings.max_pages_per_topic,
        )
        self.schedule = SchedulePolicy(
            self.pipeline, self.ledger, self.settings.schedule, clock=clock
        )
        self.context = ContextInjector(self.memory, clock=clock)

    # ---- Memory ----

    def add_entry(
        self,
        content: str,
        tags: Iterable[str] = (),
        source: MemorySource = MemorySource.MANUAL,
    ) -> MemoryEntry:
        return self.memory.add_entry(content, tags, source)

    def get_entries_for_context(self, max_count: Optional[int] = None) -> List[MemoryEntry]:
        return self.memory.get_entries_for_context(max_count)

    def build_context(self) -> Optional[ContextMessage]:
        return self.context.build_context()

    # ---- Learning ----

    def run_learning_loop(self) -> int:
        return self.pipeline.run_learning_loop()

    def check_and_run_if_due(self) -> bool:
        return self.schedule.check_and_run_if_due()

"""Learning topics the user wants the agent to keep up to date on."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple

from lorekeeper.protocols import KeyValueStore
from lorekeeper.types import LearningTopic, new_id, utc_now

logger = logging.getLogger(__name__)

TOPICS_KEY = "self-learning/topics"


class TopicRegistry:
    """Ordered list of LearningTopic records; only enabled ones are learned."""

    def __init__(self, store: KeyValueStore, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._store = store
        self._clock = clock
        self._lock = threading.Lock()

    @staticmethod
    def _decode(raw: Optional[list]) -> Tuple[LearningTopic, ...]:
        return tuple(LearningTopic.from_dict(d) for d in (raw or []))

    @property
    def topics(self) -> Tuple[LearningTopic, ...]:
        return self._decode(self._store.get(TOPICS_KEY))

    @property
    def active_topics(self) -> List[LearningTopic]:
        return [t for t in self.topics if t.enabled]

    def get_topic(self, topic_id: str) -> Optional[LearningTopic]:
        for topic in self.topics:
            if topic.id == topic_id:
                return topic
        return None

    def _mutate(
        self, change: Callable[[Tuple[LearningTopic, ...]], Iterable[LearningTopic]]
    ) -> None:
        def apply(raw):
            return [t.to_dict() for t in change(self._decode(raw))]

        with self._lock:
            self._store.update(TOPICS_KEY, apply, [])

    def add_topic(self, name: str, hint: str = "") -> LearningTopic:
        name = name.strip()
        if not name:
            raise ValueError("Topic name cannot be empty")
        topic = LearningTopic(
            id=new_id(),
            name=name,
            hint=hint.strip(),
            enabled=True,
            created_at=self._clock(),
        )
        self._mutate(lambda topics: topics + (topic,))
        return topic

    def update_topic(
        self,
        topic_id: str,
        *,
        name: Optional[str] = None,
        hint: Optional[str] = None,
        enabled: Optional[bool] = None,
    ) -> Optional[LearningTopic]:
        changes = {}
        if name is not None:
            if not name.strip():
                raise ValueError("Topic name cannot be empty")
            changes["name"] = name.strip()
        if hint is not None:
            changes["hint"] = hint.strip()
        if enabled is not None:
            changes["enabled"] = enabled

        updated: List[LearningTopic] = []

        def change(topics):
            out = []
            for topic in topics:
                if topic.id == topic_id:
                    topic = replace(topic, **changes)
                    updated.append(topic)
                out.append(topic)
            return out

        self._mutate(change)
        return updated[0] if updated else None

    def delete_topic(self, topic_id: str) -> bool:
        removed: List[LearningTopic] = []

        def change(topics):
            removed.extend(t for t in topics if t.id == topic_id)
            return [t for t in topics if t.id != topic_id]

        self._mutate(change)
        return bool(removed)

"""Long-term memory store with a confidence lifecycle.

Entries start at a source-dependent confidence, gain confidence when they
are used, lose it with age, and are pruned once it falls below a threshold.
The highest-confidence entries are what gets injected into chat context.

Every mutation is one atomic store update over the freshly read collection,
so a reader never sees a half-applied change and concurrent writers do not
lose entries.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional, Tuple

from lorekeeper.protocols import KeyValueStore
from lorekeeper.types import (
    SOURCE_CONFIDENCE,
    MemoryEntry,
    MemorySource,
    new_id,
    utc_now,
)

logger = logging.getLogger(__name__)

ENTRIES_KEY = "memory/long-term/entries"

DEFAULT_BOOST = 0.05
DEFAULT_DECAY_RATE = 0.02  # confidence lost per week since last update
DEFAULT_PRUNE_BELOW = 0.05
DEFAULT_MAX_INJECTED = 10

_ONE_WEEK = timedelta(weeks=1)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def rank_key(entry: MemoryEntry) -> tuple:
    """Sort key: confidence desc, updated_at desc, id asc."""
    updated = entry.updated_at.timestamp() if entry.updated_at else 0.0
    return (-entry.confidence, -updated, entry.id)


@dataclass
class DecayReport:
    """Result of a decay sweep."""

    decayed: int
    pruned: int
    remaining: int


class MemoryStore:
    """Keyed collection of confidence-scored facts.

    ``enabled`` and ``max_injected_entries`` only affect what
    ``get_entries_for_context()`` returns; adding, editing and decaying work
    regardless. Reads always go to the backing store, so instances sharing
    one store see each other's writes.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        enabled: bool = True,
        max_injected_entries: int = DEFAULT_MAX_INJECTED,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._clock = clock
        self._lock = threading.Lock()
        self.enabled = enabled
        self.max_injected_entries = max_injected_entries

    # ---- Reads ----

    @staticmethod
    def _decode(raw: Optional[list]) -> Tuple[MemoryEntry, ...]:
        return tuple(MemoryEntry.from_dict(d) for d in (raw or []))

    @property
    def entries(self) -> Tuple[MemoryEntry, ...]:
        """Current snapshot, in insertion order."""
        return self._decode(self._store.get(ENTRIES_KEY))

    def __len__(self) -> int:
        return len(self.entries)

    def get_entry(self, entry_id: str) -> Optional[MemoryEntry]:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def all_contents(self) -> List[str]:
        return [entry.content for entry in self.entries]

    def sorted_entries(self) -> List[MemoryEntry]:
        return sorted(self.entries, key=rank_key)

    def get_entries_for_context(self, max_count: Optional[int] = None) -> List[MemoryEntry]:
        """Entries to inject into the chat context, best first.

        ``max_count`` of 0 means no limit; None uses ``max_injected_entries``.
        Returns nothing while the store is disabled.
        """
        if not self.enabled:
            return []
        limit = self.max_injected_entries if max_count is None else max_count
        ranked = self.sorted_entries()
        if limit > 0:
            return ranked[:limit]
        return ranked

    # ---- Writes ----

    def _mutate(
        self, change: Callable[[Tuple[MemoryEntry, ...]], Iterable[MemoryEntry]]
    ) -> Tuple[MemoryEntry, ...]:
        """Persist ``change(current entries)`` in one store update."""

        def apply(raw):
            return [e.to_dict() for e in change(self._decode(raw))]

        with self._lock:
            return self._decode(self._store.update(ENTRIES_KEY, apply, []))

    def _replace_one(
        self, entry_id: str, edit: Callable[[MemoryEntry], MemoryEntry]
    ) -> Optional[MemoryEntry]:
        found: List[MemoryEntry] = []

        def change(entries):
            out = []
            for entry in entries:
                if entry.id == entry_id:
                    entry = edit(entry)
                    found.append(entry)
                out.append(entry)
            return out

        self._mutate(change)
        return found[0] if found else None

    def add_entry(
        self,
        content: str,
        tags: Iterable[str] = (),
        source: MemorySource = MemorySource.MANUAL,
    ) -> MemoryEntry:
        """Store a new fact. No uniqueness check is made here."""
        source = MemorySource(source)
        now = self._clock()
        entry = MemoryEntry(
            id=new_id(),
            content=content.strip(),
            tags=list(tags),
            source=source,
            confidence=SOURCE_CONFIDENCE[source],
            use_count=0,
            created_at=now,
            updated_at=now,
        )
        self._mutate(lambda entries: entries + (entry,))
        logger.debug("Added %s memory %s", source.value, entry.id)
        return entry

    def update_entry(
        self, entry_id: str, content: str, tags: Optional[Iterable[str]] = None
    ) -> Optional[MemoryEntry]:
        """Edit an entry's content (and optionally tags). Returns None if not found."""
        now = self._clock()
        return self._replace_one(
            entry_id,
            lambda entry: replace(
                entry,
                content=content.strip(),
                tags=list(tags) if tags is not None else entry.tags,
                updated_at=now,
            ),
        )

    def boost_confidence(self, entry_id: str, delta: float = DEFAULT_BOOST) -> Optional[MemoryEntry]:
        """Reinforce an entry that was actually used.

        Raises confidence by ``delta`` (capped at 1.0), bumps ``use_count`` and
        refreshes ``updated_at``. Returns None if the id is unknown.
        """
        now = self._clock()
        return self._replace_one(
            entry_id,
            lambda entry: replace(
                entry,
                confidence=_clamp(entry.confidence + delta),
                use_count=entry.use_count + 1,
                updated_at=now,
            ),
        )

    def decay_confidence(
        self,
        decay_rate: float = DEFAULT_DECAY_RATE,
        prune_below: float = DEFAULT_PRUNE_BELOW,
    ) -> DecayReport:
        """Age every entry and prune the ones that fall below ``prune_below``.

        Confidence drops by ``decay_rate`` per week since ``updated_at``. The
        sweep does not touch ``updated_at``, so each sweep measures age from
        the last real use. Meant to run periodically (e.g. daily).
        """
        now = self._clock()
        counts = {"decayed": 0, "before": 0}

        def change(entries):
            counts["before"] = len(entries)
            kept = []
            for entry in entries:
                reference = entry.updated_at or entry.created_at or now
                age_weeks = (now - reference) / _ONE_WEEK
                confidence = max(0.0, entry.confidence - decay_rate * age_weeks)
                if confidence != entry.confidence:
                    counts["decayed"] += 1
                if confidence < prune_below:
                    continue
                kept.append(replace(entry, confidence=_clamp(confidence)))
            return kept

        kept = self._mutate(change)
        pruned = counts["before"] - len(kept)
        if pruned:
            logger.info("Decay sweep pruned %d memory entries", pruned)
        return DecayReport(decayed=counts["decayed"], pruned=pruned, remaining=len(kept))

    def delete_entry(self, entry_id: str) -> bool:
        removed: List[MemoryEntry] = []

        def change(entries):
            removed.extend(e for e in entries if e.id == entry_id)
            return [e for e in entries if e.id != entry_id]

        self._mutate(change)
        return bool(removed)

    def clear_all_entries(self) -> None:
        self._mutate(lambda entries: ())

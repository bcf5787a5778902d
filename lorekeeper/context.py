"""Long-term memory context for the chat system.

Before each model call the chat system asks for one context message listing
the best memories as numbered facts. The message replaces the previous one
with the same ``context_id`` rather than accumulating.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from lorekeeper.memory import MemoryStore
from lorekeeper.types import ContextMessage, MemoryEntry, new_id, utc_now

logger = logging.getLogger(__name__)

LONG_TERM_MEMORY_CONTEXT_ID = "system:long-term-memory"
REPLACE_SELF = "replace-self"
CONTEXT_HEADER = "Long-term memories about the user (always keep these in mind):"


def format_entry(index: int, entry: MemoryEntry) -> str:
    tags_note = f" [{', '.join(entry.tags)}]" if entry.tags else ""
    return f"{index}. {entry.content}{tags_note}"


class ContextInjector:
    """Builds the long-term memory context message from a MemoryStore."""

    def __init__(
        self,
        memory: MemoryStore,
        *,
        reinforce: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._memory = memory
        self._clock = clock
        # Boost every entry that gets injected
        self.reinforce = reinforce

    def build_context(self, max_count: Optional[int] = None) -> Optional[ContextMessage]:
        """Return the context message, or None when there is nothing to inject."""
        entries = self._memory.get_entries_for_context(max_count)
        if not entries:
            return None

        lines = [format_entry(i, e) for i, e in enumerate(entries, start=1)]
        if self.reinforce:
            for entry in entries:
                self._memory.boost_confidence(entry.id)

        logger.debug("Injecting %d long-term memories", len(entries))
        return ContextMessage(
            id=new_id(),
            context_id=LONG_TERM_MEMORY_CONTEXT_ID,
            strategy=REPLACE_SELF,
            text=CONTEXT_HEADER + "\n" + "\n".join(lines),
            created_at=self._clock(),
        )

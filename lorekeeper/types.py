"""
Shared types for lorekeeper.

The memory, topic and run records live here, together with the ephemeral
search and page values that only exist for the duration of one learning run.
Records are plain dataclasses; persisted records round-trip through
``to_dict()`` / ``from_dict()`` as JSON-safe dicts.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

# === Shared Utility Functions ===


def utc_now() -> datetime:
    """Get the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


def format_datetime(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return dt.isoformat()


def parse_datetime(s: Optional[str]) -> Optional[datetime]:
    """Parse an ISO datetime string, assuming UTC for naive values."""
    if not s:
        return None
    dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# === Enums ===


class MemorySource(str, Enum):
    """Who created a memory entry."""

    MANUAL = "manual"
    SELF_LEARNING = "self-learning"


# Confidence a fresh entry starts with, by source
SOURCE_CONFIDENCE = {
    MemorySource.MANUAL: 0.8,
    MemorySource.SELF_LEARNING: 0.6,
}


class RunStatus(str, Enum):
    """Lifecycle state of a learning run."""

    RUNNING = "running"
    DONE = "done"
    ERROR = "error"


# === Persisted records ===


@dataclass(frozen=True)
class MemoryEntry:
    """A long-term fact the agent should keep in mind.

    Entries are immutable: boosting, decaying or editing an entry produces a
    new value via ``dataclasses.replace``.
    """

    id: str
    content: str
    tags: List[str] = field(default_factory=list)
    source: MemorySource = MemorySource.MANUAL
    confidence: float = 0.8  # 0.0 (about to be pruned) to 1.0 (well reinforced)
    use_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "tags": list(self.tags),
            "source": self.source.value,
            "confidence": self.confidence,
            "use_count": self.use_count,
            "created_at": format_datetime(self.created_at),
            "updated_at": format_datetime(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemoryEntry":
        return cls(
            id=data["id"],
            content=data["content"],
            tags=list(data.get("tags") or []),
            source=MemorySource(data.get("source", MemorySource.MANUAL.value)),
            confidence=float(data.get("confidence", 0.8)),
            use_count=int(data.get("use_count", 0)),
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
        )


@dataclass(frozen=True)
class LearningTopic:
    """A subject the agent should proactively learn about."""

    id: str
    name: str
    hint: str = ""  # extra search refinement, e.g. "focus on 2.x releases"
    enabled: bool = True
    created_at: Optional[datetime] = None

    @property
    def query(self) -> str:
        """Search query for this topic."""
        return f"{self.name} {self.hint}" if self.hint else self.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "hint": self.hint,
            "enabled": self.enabled,
            "created_at": format_datetime(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LearningTopic":
        return cls(
            id=data["id"],
            name=data["name"],
            hint=data.get("hint") or "",
            enabled=bool(data.get("enabled", True)),
            created_at=parse_datetime(data.get("created_at")),
        )


@dataclass(frozen=True)
class LearningRun:
    """One execution of the learning loop, as recorded in the run ledger."""

    id: str
    started_at: datetime
    status: RunStatus = RunStatus.RUNNING
    topics_processed: List[str] = field(default_factory=list)
    insights_saved: int = 0
    completed_at: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not RunStatus.RUNNING

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "started_at": format_datetime(self.started_at),
            "status": self.status.value,
            "topics_processed": list(self.topics_processed),
            "insights_saved": self.insights_saved,
        }
        if self.completed_at is not None:
            data["completed_at"] = format_datetime(self.completed_at)
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LearningRun":
        return cls(
            id=data["id"],
            started_at=parse_datetime(data["started_at"]),
            status=RunStatus(data.get("status", RunStatus.RUNNING.value)),
            topics_processed=list(data.get("topics_processed") or []),
            insights_saved=int(data.get("insights_saved", 0)),
            completed_at=parse_datetime(data.get("completed_at")),
            error=data.get("error"),
        )


# === Ephemeral values (never persisted) ===


@dataclass
class SearchHit:
    """A single web search result."""

    title: str
    url: str
    snippet: str = ""


@dataclass
class PageContent:
    """Readable text of one fetched page."""

    url: str
    title: str
    content: str


@dataclass
class ContextMessage:
    """A context block handed to the chat system before each model call."""

    id: str
    context_id: str
    strategy: str
    text: str
    created_at: datetime

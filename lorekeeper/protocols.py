"""
lorekeeper Protocol Definitions
===============================

Interface contracts between the learning core and its collaborators.

Collaborators and their roles:
- SearchProvider: turns a query into ranked web results.
- PageFetcher:    turns a URL into readable page text.
- Summarizer:     turns page text into short factual insights.
- ModelProtocol:  the text-generation engine a Summarizer can be built on.
- KeyValueStore:  opaque persistence for the memory, topic and run collections.

Error handling philosophy:
- Pre-flight problems (no model, no search, no topics) raise ConfigurationError
- Collaborator failures are mapped to an empty Outcome by the pipeline, never
  raised out of a run
- Storage failures raise StorageError
- Invalid arguments raise ValueError
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Generic,
    Optional,
    Protocol,
    TypeVar,
    runtime_checkable,
)

from lorekeeper.types import PageContent, SearchHit

# =============================================================================
# ERRORS
# =============================================================================


class LorekeeperError(Exception):
    """Base for all lorekeeper errors."""

    pass


class ConfigurationError(LorekeeperError):
    """Raised when a learning run cannot start: no model, no search, no topics."""

    pass


class SearchError(LorekeeperError):
    """Raised by search backends on HTTP or decoding failures."""

    pass


class FetchError(LorekeeperError):
    """Raised by page fetchers on timeouts or network failures."""

    pass


class ExtractionError(LorekeeperError):
    """Raised when model output holds no usable insight list."""

    pass


class StorageError(LorekeeperError):
    """Raised by keyed stores on persistence failures."""

    pass


class ModelError(LorekeeperError):
    """Raised when a model provider reports an error.

    ``error_class`` is one of rate_limit, auth, timeout, server, unknown.
    """

    def __init__(self, error_class: str, message: str) -> None:
        super().__init__(message)
        self.error_class = error_class


# =============================================================================
# OUTCOMES
# =============================================================================
# Every collaborator call made by the pipeline is wrapped into an Outcome.
# A failed Outcome still carries a usable value: the empty value for that
# collaborator. The pipeline only ever reads ``.value``; ``.error`` is there
# for logging and run reports.
# =============================================================================

T = TypeVar("T")


@dataclass
class Outcome(Generic[T]):
    """Success-or-empty result of a collaborator call."""

    value: T
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def empty(cls, value: T, error: str) -> "Outcome[T]":
        return cls(value=value, error=error)


# =============================================================================
# COLLABORATORS
# =============================================================================


@runtime_checkable
class SearchProvider(Protocol):
    """Web search backend (SearXNG, Brave, DuckDuckGo, ...)."""

    @property
    def configured(self) -> bool:
        """Whether the backend has everything it needs to run a query."""
        ...

    def search(self, query: str, limit: int) -> list[SearchHit]:
        """Return up to ``limit`` results in the backend's ranking order."""
        ...


@runtime_checkable
class PageFetcher(Protocol):
    """Fetches a URL as readable text (bounded length, empty on failure)."""

    def fetch(self, url: str) -> str: ...


@runtime_checkable
class Summarizer(Protocol):
    """Distills pages about a topic into short standalone insights."""

    def distill(self, topic: str, pages: list[PageContent]) -> list[str]:
        """Return at most 8 single-sentence insights, or [] on any failure."""
        ...


@runtime_checkable
class KeyValueStore(Protocol):
    """Opaque keyed persistence. Values are JSON-compatible."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> bool: ...

    def update(self, key: str, func: Callable[[Any], Any], default: Any = None) -> Any:
        """Replace the value for ``key`` with ``func(current)`` in one atomic step."""
        ...


# =============================================================================
# MODEL PROTOCOL
# =============================================================================


@dataclass
class ModelCapabilities:
    """What a model implementation can do."""

    model_id: str
    provider: str  # "anthropic", "openai", "ollama"
    context_window: int
    max_output_tokens: int = 4096


@dataclass
class ModelMessage:
    """A message in a conversation."""

    role: str  # "system", "user", "assistant"
    content: str


@dataclass
class ModelResponse:
    """Complete response from a model."""

    content: str
    usage: dict[str, int] = field(default_factory=dict)
    stop_reason: Optional[str] = None
    model_id: Optional[str] = None


@runtime_checkable
class ModelProtocol(Protocol):
    """Interface for the text-generation engine.

    Implementations: AnthropicModel, OpenAIModel, OllamaModel.
    """

    @property
    def model_id(self) -> str:
        """Identifier (e.g., 'claude-haiku-4-5-20251001', 'llama3.2:latest')."""
        ...

    @property
    def capabilities(self) -> ModelCapabilities:
        """What this model can do."""
        ...

    def generate(
        self,
        messages: list[ModelMessage],
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        system: Optional[str] = None,
    ) -> ModelResponse:
        """Generate a complete response."""
        ...

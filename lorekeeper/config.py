"""Settings for lorekeeper, read from ``LOREKEEPER_*`` environment variables.

Every setting has a default, so ``load_settings()`` with an empty
environment yields a working (manual-schedule, learning-disabled) setup.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from lorekeeper.schedule import LearningSchedule

logger = logging.getLogger(__name__)

SEARCH_BACKENDS = ("searxng", "brave", "duckduckgo")

_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off")


def get_lorekeeper_home(env: Optional[Mapping[str, str]] = None) -> Path:
    """Directory holding the lorekeeper database (``LOREKEEPER_HOME`` or ~/.lorekeeper)."""
    env = os.environ if env is None else env
    override = env.get("LOREKEEPER_HOME", "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".lorekeeper"


@dataclass
class Settings:
    """Runtime settings for the learning loop, memory and search."""

    home: Path
    learning_enabled: bool = False
    schedule: LearningSchedule = LearningSchedule.MANUAL
    max_pages_per_topic: int = 2
    verbose_output: bool = True
    memory_enabled: bool = True
    max_injected_entries: int = 10
    search_enabled: bool = False
    search_backend: str = "duckduckgo"
    searxng_url: str = ""
    brave_api_key: str = ""
    search_max_results: int = 5

    @property
    def db_path(self) -> Path:
        return self.home / "lorekeeper.db"

    @property
    def search_configured(self) -> bool:
        if not self.search_enabled:
            return False
        if self.search_backend == "searxng":
            return bool(self.searxng_url.strip())
        if self.search_backend == "brave":
            return bool(self.brave_api_key.strip())
        return self.search_backend == "duckduckgo"


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name, "").strip().lower()
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    if raw:
        logger.warning("Ignoring unrecognised boolean %s=%r", name, raw)
    return default


def _env_int(env: Mapping[str, str], name: str, default: int, lo: int, hi: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return default
    return max(lo, min(hi, value))


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from the environment.

    Environment variables:
        LOREKEEPER_HOME: Data directory (default ~/.lorekeeper).
        LOREKEEPER_LEARNING_ENABLED: Allow learning runs (default false).
        LOREKEEPER_SCHEDULE: manual, hourly, daily or weekly.
        LOREKEEPER_MAX_PAGES_PER_TOPIC: Pages read per topic, 1-5 (default 2).
        LOREKEEPER_VERBOSE: Report per-topic details after a run (default true).
        LOREKEEPER_MEMORY_ENABLED: Inject memories into context (default true).
        LOREKEEPER_MAX_INJECTED: Entries injected per turn, 0 = all (default 10).
        LOREKEEPER_SEARCH_ENABLED: Allow web search (default false).
        LOREKEEPER_SEARCH_BACKEND: searxng, brave or duckduckgo.
        LOREKEEPER_SEARXNG_URL: Base URL of a SearXNG instance.
        LOREKEEPER_BRAVE_API_KEY: Brave Search API key.
        LOREKEEPER_SEARCH_MAX_RESULTS: Default result count, 1-10 (default 5).
    """
    env = os.environ if env is None else env

    schedule_raw = env.get("LOREKEEPER_SCHEDULE", "").strip().lower()
    try:
        schedule = LearningSchedule(schedule_raw) if schedule_raw else LearningSchedule.MANUAL
    except ValueError:
        logger.warning("Unknown schedule '%s', falling back to manual", schedule_raw)
        schedule = LearningSchedule.MANUAL

    backend = env.get("LOREKEEPER_SEARCH_BACKEND", "").strip().lower() or "duckduckgo"
    if backend not in SEARCH_BACKENDS:
        logger.warning("Unknown search backend '%s', falling back to duckduckgo", backend)
        backend = "duckduckgo"

    return Settings(
        home=get_lorekeeper_home(env),
        learning_enabled=_env_bool(env, "LOREKEEPER_LEARNING_ENABLED", False),
        schedule=schedule,
        max_pages_per_topic=_env_int(env, "LOREKEEPER_MAX_PAGES_PER_TOPIC", 2, 1, 5),
        verbose_output=_env_bool(env, "LOREKEEPER_VERBOSE", True),
        memory_enabled=_env_bool(env, "LOREKEEPER_MEMORY_ENABLED", True),
        max_injected_entries=_env_int(env, "LOREKEEPER_MAX_INJECTED", 10, 0, 1000),
        search_enabled=_env_bool(env, "LOREKEEPER_SEARCH_ENABLED", False),
        search_backend=backend,
        searxng_url=env.get("LOREKEEPER_SEARXNG_URL", "").strip(),
        brave_api_key=env.get("LOREKEEPER_BRAVE_API_KEY", "").strip(),
        search_max_results=_env_int(env, "LOREKEEPER_SEARCH_MAX_RESULTS", 5, 1, 10),
    )

"""In-process keyed store."""

from __future__ import annotations

import copy
import threading
from typing import Any, Callable, Dict, Optional


class InMemoryKeyValueStore:
    """Dict-backed KeyValueStore.

    Values are deep-copied on the way in and out so callers can never mutate
    stored state through a shared reference.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> bool:
        with self._lock:
            if key not in self._data:
                return False
            del self._data[key]
            return True

    def update(self, key: str, func: Callable[[Any], Any], default: Any = None) -> Any:
        with self._lock:
            current = copy.deepcopy(self._data.get(key, default))
            value = func(current)
            self._data[key] = copy.deepcopy(value)
            return value

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)

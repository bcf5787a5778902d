"""lorekeeper keyed stores.

The learning core treats persistence as an opaque keyed store. Two
implementations ship: an in-process dict (tests, ephemeral use) and a local
SQLite file (the default for the CLI).
"""

from .memory import InMemoryKeyValueStore
from .sqlite import SQLiteKeyValueStore

__all__ = [
    "InMemoryKeyValueStore",
    "SQLiteKeyValueStore",
]

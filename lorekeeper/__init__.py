"""
Lorekeeper - self-learning long-term memory for conversational agents.

Searches the web for topics the user cares about, distills short facts from
what it reads, and keeps them in a confidence-scored memory that is injected
into chat context.
"""

from .core import Lorekeeper
from .pipeline import LearningPipeline
from .protocols import ConfigurationError, LorekeeperError

try:
    from importlib.metadata import version

    __version__ = version("lorekeeper")
except Exception:
    __version__ = "0.0.0"

__all__ = ["Lorekeeper", "LearningPipeline", "ConfigurationError", "LorekeeperError"]

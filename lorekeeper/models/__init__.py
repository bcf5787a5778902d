"""lorekeeper model implementations.

Concrete ModelProtocol implementations the model-backed summarizer can run on.
Provider SDKs are imported lazily, inside each model's constructor.
"""

from __future__ import annotations

from lorekeeper.models.anthropic import AnthropicModel
from lorekeeper.models.auto import auto_configure_model
from lorekeeper.models.ollama import OllamaModel
from lorekeeper.models.openai import OpenAIModel

__all__ = ["AnthropicModel", "OllamaModel", "OpenAIModel", "auto_configure_model"]

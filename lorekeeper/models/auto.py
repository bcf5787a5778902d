"""Auto-configure a text-generation model from environment variables.

The learning loop refuses to start without a model, so this is what decides
whether a learning run is possible at all for CLI usage.
"""

from __future__ import annotations

import logging
import os
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

# Default models: cheap/fast, since distillation is short extraction work
_PROVIDER_DEFAULTS = {
    "anthropic": "claude-haiku-4-5-20251001",
    "openai": "gpt-4o-mini",
    "ollama": "llama3.2:latest",
}


def auto_configure_model(env: Optional[Mapping[str, str]] = None) -> Optional[object]:
    """Auto-detect and create a model from environment variables.

    Detection priority (when ``LOREKEEPER_MODEL_PROVIDER`` is not set):
    1. ``CLAUDE_API_KEY`` or ``ANTHROPIC_API_KEY`` → Anthropic
    2. ``OPENAI_API_KEY`` → OpenAI
    3. No key → ``None`` (no active provider)

    Environment variables:
        LOREKEEPER_MODEL_PROVIDER: Force a provider (anthropic, openai, ollama).
        LOREKEEPER_MODEL: Override the default model name for the provider.
        LOREKEEPER_OLLAMA_URL: Base URL of the Ollama server.

    Returns:
        A ModelProtocol instance, or None if no provider can be configured.
    """
    env = os.environ if env is None else env
    forced_provider = env.get("LOREKEEPER_MODEL_PROVIDER", "").lower().strip()
    model_override = env.get("LOREKEEPER_MODEL", "").strip() or None

    if forced_provider:
        provider = forced_provider
    elif env.get("ANTHROPIC_API_KEY") or env.get("CLAUDE_API_KEY"):
        provider = "anthropic"
    elif env.get("OPENAI_API_KEY"):
        provider = "openai"
    else:
        return None

    model_id = model_override or _PROVIDER_DEFAULTS.get(provider)

    try:
        if provider == "anthropic":
            from lorekeeper.models.anthropic import AnthropicModel

            api_key = env.get("CLAUDE_API_KEY") or env.get("ANTHROPIC_API_KEY") or None
            model = AnthropicModel(model_id=model_id, api_key=api_key)
            logger.info("Auto-configured AnthropicModel (model=%s)", model_id)
            return model

        if provider == "openai":
            from lorekeeper.models.openai import OpenAIModel

            model = OpenAIModel(model_id=model_id, api_key=env.get("OPENAI_API_KEY") or None)
            logger.info("Auto-configured OpenAIModel (model=%s)", model_id)
            return model

        if provider == "ollama":
            from lorekeeper.models.ollama import OllamaModel

            base_url = env.get("LOREKEEPER_OLLAMA_URL", "").strip()
            if base_url:
                model = OllamaModel(model_id=model_id, base_url=base_url)
            else:
                model = OllamaModel(model_id=model_id)
            logger.info("Auto-configured OllamaModel (model=%s)", model_id)
            return model
    except (ValueError, ImportError) as e:
        logger.warning("Could not configure %s model: %s", provider, e)
        return None

    logger.warning("Unknown model provider '%s', skipping auto-configuration", provider)
    return None

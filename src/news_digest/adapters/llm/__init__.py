"""Text-generation vendors."""

import logging

from news_digest.adapters.llm.claude_client import ClaudeClient
from news_digest.adapters.llm.openai_client import OpenAIClient
from news_digest.config import Settings
from news_digest.core import ConfigurationError, TextGenerator


logger = logging.getLogger(__name__)

PROVIDERS = {
    "claude": ClaudeClient,
    "openai": OpenAIClient,
}


def create_text_generator(settings: Settings) -> TextGenerator:
    """Instantiate the vendor named by settings.llm.provider."""
    provider = settings.llm.provider.lower()
    if provider not in PROVIDERS:
        raise ConfigurationError(f"Unknown LLM provider: {settings.llm.provider}")
    logger.info("Using text generator | provider=%s", provider)
    return PROVIDERS[provider](settings)


__all__ = ["ClaudeClient", "OpenAIClient", "create_text_generator"]

"""Claude API client."""

from typing import Any

from news_digest.adapters.llm.base import HTTPTextGenerator
from news_digest.config import Settings
from news_digest.core import CompletionRequest, ConfigurationError


class ClaudeClient(HTTPTextGenerator):
    """Anthropic Messages API client."""

    name = "claude"

    def __init__(self, settings: Settings) -> None:
        if not settings.anthropic_api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY is not set")
        super().__init__(settings, settings.llm.claude_model)
        self.api_key = settings.anthropic_api_key
        self.base_url = "https://api.anthropic.com/v1"
        self.endpoint = f"{self.base_url}/messages"

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }

    def _payload(self, request: CompletionRequest) -> dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": request.max_output_tokens,
            "temperature": request.temperature,
            "system": request.system_instruction,
            "messages": [
                {"role": "user", "content": request.user_content}
            ],
        }

    def _extract_text(self, data: dict[str, Any]) -> str:
        return "".join(
            block.get("text", "") for block in data["content"] if block.get("type", "text") == "text"
        )

"""OpenAI-compatible chat completions client."""

from typing import Any

from news_digest.adapters.llm.base import HTTPTextGenerator
from news_digest.config import Settings
from news_digest.core import CompletionRequest, ConfigurationError


class OpenAIClient(HTTPTextGenerator):
    name = "openai"

    def __init__(self, settings: Settings) -> None:
        if not settings.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set")
        super().__init__(settings, settings.llm.openai_model)
        self.api_key = settings.openai_api_key
        self.endpoint = f"{settings.llm.openai_base_url.rstrip('/')}/chat/completions"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "content-type": "application/json",
        }

    def _payload(self, request: CompletionRequest) -> dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": request.max_output_tokens,
            "temperature": request.temperature,
            "messages": [
                {"role": "system", "content": request.system_instruction},
                {"role": "user", "content": request.user_content},
            ],
        }

    def _extract_text(self, data: dict[str, Any]) -> str:
        return data["choices"][0]["message"]["content"] or ""

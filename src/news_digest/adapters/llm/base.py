"""Shared HTTP plumbing for text-generation vendors."""

import asyncio
import logging
from abc import abstractmethod
from typing import Any

import httpx

from news_digest.config import Settings
from news_digest.core import CompletionRequest, CompletionResult, GenerationError, TextGenerator


logger = logging.getLogger(__name__)


class HTTPTextGenerator(TextGenerator):
    """POST-based vendor client with retry on 429/5xx and an overall deadline."""

    endpoint: str = ""

    def __init__(self, settings: Settings, model: str) -> None:
        self.settings = settings
        self.model = model
        self.max_retries = settings.llm.max_retries
        self.initial_retry_delay = settings.llm.initial_retry_delay
        self.request_timeout = settings.llm.request_timeout

    @abstractmethod
    def _headers(self) -> dict[str, str]:
        pass

    @abstractmethod
    def _payload(self, request: CompletionRequest) -> dict[str, Any]:
        pass

    @abstractmethod
    def _extract_text(self, data: dict[str, Any]) -> str:
        pass

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        """Run one completion, bounded by the configured request timeout."""
        try:
            data = await asyncio.wait_for(
                self._call_api(self._payload(request)), timeout=self.request_timeout
            )
        except asyncio.TimeoutError as e:
            raise GenerationError(
                f"{self.name} request timed out after {self.request_timeout:.0f}s"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise GenerationError(f"{self.name} request failed: {type(e).__name__}: {e}") from e

        try:
            text = self._extract_text(data)
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationError(f"{self.name} returned an unexpected response shape") from e

        if not text or not text.strip():
            raise GenerationError(f"{self.name} returned an empty response")

        logger.info("Completion received | provider=%s model=%s chars=%d", self.name, self.model, len(text))
        return CompletionResult(text=text, provider=self.name, model=self.model)

    async def _call_api(self, payload: dict[str, Any]) -> dict[str, Any]:
        """POST with retry on rate limits, server and network errors."""
        last_exception = None

        for attempt in range(self.max_retries):
            try:
                async with httpx.AsyncClient(timeout=60.0) as client:
                    response = await client.post(self.endpoint, headers=self._headers(), json=payload)

                    if response.status_code == 200:
                        return response.json()

                    # Rate limit - retry with backoff
                    if response.status_code == 429:
                        retry_after = self._get_retry_delay(response, attempt)
                        logger.warning(
                            "Rate limit hit, retrying | provider=%s delay=%.1fs attempt=%d/%d",
                            self.name, retry_after, attempt + 1, self.max_retries,
                        )
                        await asyncio.sleep(retry_after)
                        continue

                    # Server errors - retry with backoff
                    if response.status_code >= 500:
                        retry_delay = self.initial_retry_delay * (2 ** attempt)
                        logger.warning(
                            "Server error, retrying | provider=%s status=%d delay=%.1fs",
                            self.name, response.status_code, retry_delay,
                        )
                        await asyncio.sleep(retry_delay)
                        continue

                    raise GenerationError(
                        f"{self.name} API error {response.status_code}: {response.text[:200]}"
                    )

            except httpx.RequestError as e:
                last_exception = e
                if attempt < self.max_retries - 1:
                    retry_delay = self.initial_retry_delay * (2 ** attempt)
                    logger.warning(
                        "Network error, retrying | provider=%s delay=%.1fs error=%s",
                        self.name, retry_delay, e,
                    )
                    await asyncio.sleep(retry_delay)
                    continue
                raise

        if last_exception:
            raise last_exception
        raise GenerationError(f"{self.name} API failed after {self.max_retries} attempts")

    def _get_retry_delay(self, response: httpx.Response, attempt: int) -> float:
        """Delay from Retry-After header, else exponential backoff."""
        retry_after = response.headers.get("retry-after")
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                pass

        return self.initial_retry_delay * (2 ** attempt)

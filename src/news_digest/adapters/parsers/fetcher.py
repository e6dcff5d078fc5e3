"""Resilient HTTP GET for news pages and feeds."""

import asyncio
import logging
import random
from typing import Optional

import httpx

from news_digest.core import FetchResult


logger = logging.getLogger(__name__)

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
]

ACCEPT = (
    "text/html,application/xhtml+xml,application/xml;q=0.9,"
    "application/rss+xml,application/atom+xml,*/*;q=0.8"
)


def build_headers() -> dict[str, str]:
    """Browser-like request headers with a randomly chosen user agent."""
    return {
        "User-Agent": random.choice(USER_AGENTS),
        "Accept": ACCEPT,
        "Accept-Language": "en-US,en;q=0.9",
        "Cache-Control": "no-cache",
    }


class Fetcher:
    """GET with per-attempt timeout, linear backoff and bounded retries.

    Never raises: every outcome is reported through FetchResult.
    """

    def __init__(
        self,
        timeout: float = 15.0,
        max_retries: int = 2,
        backoff_base: float = 1.0,
        proxy_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.proxy_url = proxy_url
        self.transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        kwargs = {"timeout": timeout, "follow_redirects": True}
        if self.transport is not None:
            kwargs["transport"] = self.transport
        elif self.proxy_url:
            kwargs["proxy"] = self.proxy_url
        return httpx.AsyncClient(**kwargs)

    async def _get(self, url: str, timeout: float) -> httpx.Response:
        async with self._client(timeout) as client:
            return await client.get(url, headers=build_headers())

    async def fetch(
        self,
        url: str,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
    ) -> FetchResult:
        timeout = self.timeout if timeout is None else timeout
        max_retries = self.max_retries if max_retries is None else max_retries
        last_reason = "unknown error"
        last_status = None

        for attempt in range(max_retries + 1):
            if attempt > 0:
                logger.info("Retrying fetch | url=%s attempt=%d/%d", url, attempt, max_retries)
                await asyncio.sleep(attempt * self.backoff_base)

            try:
                response = await asyncio.wait_for(self._get(url, timeout), timeout=timeout)
            except (asyncio.TimeoutError, httpx.TimeoutException):
                logger.warning("Fetch timed out | url=%s timeout=%.1fs", url, timeout)
                return FetchResult(success=False, reason="timeout")
            except httpx.HTTPError as e:
                last_reason = f"{type(e).__name__}: {e}"
                logger.warning("Fetch transport error | url=%s error=%s", url, last_reason)
                continue

            if response.is_success:
                return FetchResult(
                    success=True,
                    payload=response.text,
                    content_type=response.headers.get("content-type", ""),
                    status_code=response.status_code,
                )

            last_status = response.status_code
            last_reason = f"HTTP {response.status_code}"

            if 400 <= response.status_code < 500 and response.status_code != 429:
                logger.warning("Fetch rejected | url=%s status=%d", url, response.status_code)
                return FetchResult(success=False, status_code=last_status, reason=last_reason)

            logger.warning("Fetch failed | url=%s status=%d", url, response.status_code)

        return FetchResult(success=False, status_code=last_status, reason=last_reason)

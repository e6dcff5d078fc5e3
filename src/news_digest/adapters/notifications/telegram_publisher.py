"""Telegram channel publisher."""

import asyncio
import logging
import re
from typing import Any, Optional

import httpx

from news_digest.core import PublishResult, Publisher


logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4096
CONTINUATION_MARKER = "_(continued)_\n\n"


def convert_to_telegram_markdown(markdown: str) -> str:
    """Convert markdown to the subset Telegram's legacy Markdown accepts."""
    text = markdown

    # Headers become bold lines
    text = re.sub(r"^#{1,6}\s+(.+)$", r"*\1*", text, flags=re.MULTILINE)

    # **bold** -> *bold*
    text = re.sub(r"\*\*([^*]+)\*\*", r"*\1*", text)

    # Code blocks keep their content only
    text = re.sub(
        r"```[\s\S]*?```",
        lambda m: re.sub(r"```\w*\n?", "", m.group(0)).strip(),
        text,
    )

    # [text](url) -> text (url)
    text = re.sub(r"\[([^\]]+)\]\(([^)]+)\)", r"\1 (\2)", text)

    # Horizontal rules
    text = re.sub(r"^---+$", "", text, flags=re.MULTILINE)

    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _break_point(text: str, max_length: int) -> int:
    # Paragraph, then line, each only past half the limit
    point = text.rfind("\n\n", 0, max_length)
    if point == -1 or point < max_length * 0.5:
        point = text.rfind("\n", 0, max_length)

    if point == -1 or point < max_length * 0.5:
        point = text.rfind(". ", 0, max_length)
        if point != -1:
            point += 1

    if point == -1 or point < max_length * 0.3:
        point = text.rfind(" ", 0, max_length)

    if point <= 0:
        point = max_length
    return point


def split_message(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """Split text into chunks no longer than max_length.

    Break preference: paragraph, line, sentence, word, hard cut.
    """
    if len(text) <= max_length:
        return [text]

    chunks = []
    remaining = text
    while remaining:
        if len(remaining) <= max_length:
            chunks.append(remaining)
            break

        point = _break_point(remaining, max_length)
        chunk = remaining[:point].strip()
        if chunk:
            chunks.append(chunk)
        remaining = remaining[point:].strip()

    return chunks


def strip_markdown(text: str) -> str:
    return re.sub(r"[*_`]", "", text)


class TelegramPublisher(Publisher):
    """Publish text to a Telegram channel through the Bot API."""

    def __init__(
        self,
        bot_token: Optional[str],
        channel_id: Optional[str],
        parse_mode: str = "Markdown",
        max_message_length: int = MAX_MESSAGE_LENGTH,
        chunk_delay: float = 0.5,
        timeout: float = 30.0,
    ) -> None:
        self.bot_token = bot_token
        self.channel_id = channel_id
        self.parse_mode = parse_mode
        self.max_message_length = max_message_length
        self.chunk_delay = chunk_delay
        self.timeout = timeout

    async def _send_message(
        self,
        client: httpx.AsyncClient,
        text: str,
        parse_mode: Optional[str],
        disable_notification: bool,
    ) -> dict[str, Any]:
        payload = {
            "chat_id": self.channel_id,
            "text": text,
            "disable_web_page_preview": True,
            "disable_notification": disable_notification,
        }
        if parse_mode:
            payload["parse_mode"] = parse_mode

        response = await client.post(
            f"https://api.telegram.org/bot{self.bot_token}/sendMessage", json=payload
        )
        data = response.json()
        if not data.get("ok"):
            logger.warning("Telegram API error | code=%s description=%s",
                           data.get("error_code"), data.get("description"))
        return data

    async def send(self, text: str) -> PublishResult:
        if not self.bot_token:
            return PublishResult(success=False, error="TELEGRAM_BOT_TOKEN is not configured")
        if not self.channel_id:
            return PublishResult(success=False, error="TELEGRAM_CHANNEL_ID is not configured")

        chunk_limit = self.max_message_length - len(CONTINUATION_MARKER)
        chunks = split_message(convert_to_telegram_markdown(text), chunk_limit)
        logger.info("Publishing to Telegram | chunks=%d", len(chunks))

        last_message_id = None
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                for index, chunk in enumerate(chunks):
                    is_first = index == 0
                    message = chunk if is_first else f"{CONTINUATION_MARKER}{chunk}"

                    data = await self._send_message(
                        client, message, self.parse_mode, disable_notification=not is_first
                    )

                    if not data.get("ok"):
                        description = data.get("description") or ""
                        if data.get("error_code") == 400 and "parse" in description:
                            logger.info("Markdown rejected, retrying as plain text | chunk=%d", index + 1)
                            data = await self._send_message(
                                client, strip_markdown(message), None, disable_notification=not is_first
                            )

                    if not data.get("ok"):
                        return PublishResult(
                            success=False,
                            message_id=last_message_id,
                            error=data.get("description") or "Failed to send message",
                        )

                    last_message_id = (data.get("result") or {}).get("message_id")

                    if index < len(chunks) - 1:
                        await asyncio.sleep(self.chunk_delay)
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Telegram publish failed | error=%s", e)
            return PublishResult(success=False, message_id=last_message_id, error=f"{type(e).__name__}: {e}")

        logger.info("Published to Telegram | message_id=%s", last_message_id)
        return PublishResult(success=True, message_id=last_message_id)

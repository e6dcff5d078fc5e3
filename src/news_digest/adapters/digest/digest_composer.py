"""Digest composition through a text-generation vendor."""

import json
import logging
import re
from datetime import date
from typing import Optional

from news_digest.config import Settings
from news_digest.core import (
    CompletionRequest,
    DigestDraft,
    GenerationError,
    StoredItem,
    TextGenerator,
)


logger = logging.getLogger(__name__)

SHORT_SUMMARY_LIMIT = 280
TRANSLATION_FALLBACK = "_Translation is temporarily unavailable. Original digest follows._"

SHORT_SECTION_RE = re.compile(
    r"(?:#+[ \t]*)?(?:summary_short|short summary|tweet|notification)[:\s]*\n*(.+?)(?:\n\n|$)",
    re.IGNORECASE | re.DOTALL,
)
SHORT_HEADER_RE = re.compile(
    r"#+\s*(?:summary_short|short summary|tweet|notification)\s*\n*", re.IGNORECASE
)
MD_HEADER_RE = re.compile(r"^#+\s*summary_md\s*\n*", re.IGNORECASE | re.MULTILINE)
COMPREHENSIVE_HEADER_RE = re.compile(
    r"^#+\s*comprehensive.*digest\s*\n*", re.IGNORECASE | re.MULTILINE
)


def extract_sources_list(items: list[StoredItem]) -> list[str]:
    """Sorted unique source names of the items."""
    return sorted({item.source_name or item.source_id for item in items})


def build_news_section(items: list[StoredItem]) -> str:
    blocks = []
    for index, item in enumerate(items, start=1):
        published = item.published_at.strftime("%b %d") if item.published_at else "Unknown date"
        lines = [
            f"{index}. [{item.source_name or item.source_id}] {item.title}",
            f"   URL: {item.url}",
            f"   Published: {published}",
        ]
        if item.snippet:
            lines.append(f"   Summary: {item.snippet}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def _fix_json(text: str) -> str:
    """Try to fix common JSON issues."""
    # Remove trailing commas before } or ]
    return re.sub(r",(\s*[}\]])", r"\1", text)


def _extract_json(text: str) -> str:
    """Extract JSON from markdown code block or raw text."""
    code_block_match = re.search(r"```(?:json)?\s*\n(.*?)\n```", text, re.DOTALL)
    if code_block_match:
        return _fix_json(code_block_match.group(1).strip())

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return _fix_json(text[start:end + 1])

    return _fix_json(text.strip())


def _shorten(text: str) -> str:
    if len(text) > SHORT_SUMMARY_LIMIT:
        return text[:SHORT_SUMMARY_LIMIT - 3] + "..."
    return text


def parse_digest_response(content: str) -> tuple[str, str]:
    """Split a vendor response into (summary_md, summary_short).

    JSON responses are preferred; free-form markdown falls back to locating a
    short-summary section, and then to the first paragraph.
    """
    try:
        data = json.loads(_extract_json(content))
    except json.JSONDecodeError:
        data = None

    if isinstance(data, dict) and isinstance(data.get("summary_md"), str) and data["summary_md"].strip():
        summary_md = data["summary_md"].strip()
        summary_short = str(data.get("summary_short") or "").strip()
        if not summary_short:
            summary_short = _shorten(summary_md.split("\n\n")[0])
        return summary_md, summary_short

    short_match = SHORT_SECTION_RE.search(content)
    if short_match:
        summary_short = short_match.group(1).strip()
        summary_md = content.replace(short_match.group(0), "").strip()
        summary_md = SHORT_HEADER_RE.sub("", summary_md)
    else:
        summary_md = content
        summary_short = _shorten(content.split("\n\n")[0])

    summary_md = MD_HEADER_RE.sub("", summary_md, count=1)
    summary_md = COMPREHENSIVE_HEADER_RE.sub("", summary_md, count=1).strip()
    return summary_md, summary_short


class DigestComposer:
    """Turn stored items into digest text."""

    def __init__(self, generator: TextGenerator, settings: Settings) -> None:
        self.generator = generator
        self.settings = settings

    async def compose(self, items: list[StoredItem], digest_date: date) -> DigestDraft:
        """Compose a digest draft. Raises GenerationError on vendor failure."""
        date_str = digest_date.isoformat()

        if not items:
            return DigestDraft(
                summary_md=f"# AI News Digest - {date_str}\n\nNo news items were collected for this date.",
                summary_short=f"No AI news updates for {date_str}.",
                sources_list=[],
            )

        logger.info("Composing digest | date=%s items=%d", date_str, len(items))
        prompts = self.settings.prompts.digest
        request = CompletionRequest(
            system_instruction=prompts.get("system", ""),
            user_content=prompts.get("user", "").format(
                date=date_str,
                count=len(items),
                news_section=build_news_section(items),
            ),
            max_output_tokens=self.settings.llm.max_tokens,
            temperature=self.settings.llm.temperature,
        )
        result = await self.generator.complete(request)

        summary_md, summary_short = parse_digest_response(result.text)
        if not summary_md:
            raise GenerationError("Digest response contained no text")

        return DigestDraft(
            summary_md=summary_md,
            summary_short=summary_short,
            sources_list=extract_sources_list(items),
        )

    async def translate(self, summary_md: str, language: Optional[str] = None) -> str:
        """Translate a digest, returning a fallback notice when retries run out."""
        language = language or self.settings.digest.secondary_language
        attempts = max(1, self.settings.digest.translation_retries)
        system = self.settings.prompts.translation.get("system", "").format(language=language)

        for attempt in range(1, attempts + 1):
            try:
                result = await self.generator.complete(CompletionRequest(
                    system_instruction=system,
                    user_content=summary_md,
                    max_output_tokens=self.settings.llm.max_tokens * 2,
                    temperature=0.3,
                ))
                return result.text.strip()
            except GenerationError as e:
                logger.warning(
                    "Translation failed | language=%s attempt=%d/%d error=%s",
                    language, attempt, attempts, e,
                )

        logger.error("Translation retries exhausted, using fallback | language=%s", language)
        return f"{TRANSLATION_FALLBACK}\n\n{summary_md}"

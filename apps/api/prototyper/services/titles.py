"""
Prompt title summarizer.

Asks a small model for a 4-5 word Title Case name for a prompt. Any problem
(blank input, no credential, transport error, unusable output) falls back to
a deterministic title derived from the prompt text itself.
"""

from __future__ import annotations

import json
import logging
import re

from prototyper.llm.base import LLMClient

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 48
MAX_TITLE_WORDS = 5
UNTITLED = "Untitled prompt"

TITLE_OUTPUT_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {
            "type": "string",
            "description": "A descriptive 4-5 word title in Title Case with no trailing punctuation.",
        }
    },
    "required": ["title"],
    "additionalProperties": False,
}

TITLE_PROMPT = '''You create concise names for prototype ideas.

Rules:
- Provide a descriptive title that captures the intent of the request.
- Exactly 4 or 5 words. Use Title Case. No trailing punctuation or quotes.
- Focus on the product experience, not implementation details.

Prototype request:
"""
{request}
"""

Respond with JSON shaped like {{"title":"Your Title"}} and nothing else.'''

_WHITESPACE_RE = re.compile(r"\s+")
_QUOTE_OR_NEWLINE_RE = re.compile(r'["\n]')


def fallback_title(prompt_text: str) -> str:
    """Deterministic title: the trimmed text, shortened to 48 characters."""
    normalized = prompt_text.strip()
    if not normalized:
        return UNTITLED

    if len(normalized) <= MAX_TITLE_LENGTH:
        return normalized

    return f"{normalized[:MAX_TITLE_LENGTH - 3].rstrip()}..."


def normalize_generated_title(candidate: str) -> str | None:
    normalized = _WHITESPACE_RE.sub(" ", _QUOTE_OR_NEWLINE_RE.sub(" ", candidate)).strip()
    if not normalized:
        return None
    words = normalized.split(" ")[:MAX_TITLE_WORDS]
    return " ".join(words).rstrip(".!?,;:") or None


def parse_title_response(response: str | None) -> str | None:
    try:
        parsed = json.loads(response or "")
    except json.JSONDecodeError:
        return None

    if not isinstance(parsed, dict) or not isinstance(parsed.get("title"), str):
        return None

    return normalize_generated_title(parsed["title"])


class TitleSummarizer:
    """Best-effort short titles with a deterministic fallback."""

    def __init__(self, client: LLMClient, model: str):
        self._client = client
        self._model = model

    async def title_for(self, prompt_text: str) -> str:
        fallback = fallback_title(prompt_text)
        if not prompt_text.strip() or not self._client.is_configured:
            return fallback

        request = _WHITESPACE_RE.sub(" ", prompt_text.strip())
        try:
            response = await self._client.respond(
                input_text=TITLE_PROMPT.format(request=request),
                model=self._model,
                output_schema=TITLE_OUTPUT_SCHEMA,
                schema_name="prompt_title",
                reasoning_effort="low",
            )
        except Exception:
            logger.exception("Title generation failed, using fallback title")
            return fallback

        title = parse_title_response(response.content)
        if title:
            logger.info(f"Generated prompt title: {title}")
            return title

        logger.error(f"Title response missing title field: {response.content!r}")
        return fallback

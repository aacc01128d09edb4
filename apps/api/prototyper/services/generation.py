"""
Generation adapter.

Turns a prompt into React component source through the LLM client. The model
is asked for structured output ``{"jsx": "<code>"}``; everything between the
raw response and clean source (JSON parsing, field checks, stripping prose
or Markdown fences) happens here so the lifecycle engine only ever sees a
``GenerationResult`` or an exception.
"""

from __future__ import annotations

import json
import logging
import re

from prototyper.exceptions import GenerationFailed
from prototyper.llm.base import LLMClient
from prototyper.schemas import GenerationResult

logger = logging.getLogger(__name__)


OUTPUT_FIELD = "jsx"

OUTPUT_SCHEMA = {
    "type": "object",
    "properties": {
        OUTPUT_FIELD: {
            "type": "string",
            "description": (
                "Complete React component code (including imports). "
                "Output plain code without Markdown or explanations."
            ),
        }
    },
    "required": [OUTPUT_FIELD],
    "additionalProperties": False,
}

PLACEHOLDER_REQUEST = "Build a minimal placeholder component."

CODE_BLOCK_RE = re.compile(r"```(?:tsx|jsx|javascript|js)?\s*([\s\S]*?)```", re.IGNORECASE)

STATEMENT_PREFIXES = ("import ", "const ", "function ", "export ", "class ")

# Whitespace and invisible characters models sometimes emit around the JSON payload
PADDING_RE = re.compile(r"^[\s\u200b-\u200d\ufeff]+|[\s\u200b-\u200d\ufeff]+$")


def build_generation_input(prompt_text: str) -> str:
    normalized = prompt_text.strip() or PLACEHOLDER_REQUEST
    return f"User prompt:\n{normalized}"


def extract_code(response: str) -> str:
    """Pull component source out of possibly prose-wrapped model output.

    Prefers a fenced code block, then everything from the first line that
    looks like a module-level statement, then the whole trimmed text.
    """
    match = CODE_BLOCK_RE.search(response)
    if match and match.group(1):
        return match.group(1).strip()

    lines = response.split("\n")
    for index, line in enumerate(lines):
        if line.strip().startswith(STATEMENT_PREFIXES):
            return "\n".join(lines[index:]).strip()

    return response.strip()


def parse_structured_output(raw: str | None) -> str:
    """Return the extracted source from the model's JSON payload.

    Raises:
        GenerationFailed: on empty output, malformed JSON, a missing or blank
            field, or a field that extracts to nothing
    """
    text = PADDING_RE.sub("", raw or "")
    if not text:
        raise GenerationFailed("Model returned an empty response")

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise GenerationFailed(f"Model returned malformed JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise GenerationFailed("Model returned JSON that is not an object")

    value = parsed.get(OUTPUT_FIELD)
    if not isinstance(value, str) or not value.strip():
        raise GenerationFailed(f"Model did not provide '{OUTPUT_FIELD}' in the structured response")

    source = extract_code(value.strip())
    if not source:
        raise GenerationFailed("Model did not return any React component code")

    return source


class GenerationAdapter:
    """Generates component source, resuming a conversation when given a handle."""

    def __init__(self, client: LLMClient, model: str, system_prompt: str):
        self._client = client
        self._model = model
        self._system_prompt = system_prompt.strip()

    @property
    def is_configured(self) -> bool:
        return self._client.is_configured

    async def generate(self, prompt_text: str, resume_handle: str | None = None) -> GenerationResult:
        """Generate component source for a prompt.

        Raises:
            GenerationNotConfigured: no credential is configured
            GenerationUnavailable: the service could not be reached
            GenerationFailed: the output could not be turned into source
        """
        response = await self._client.respond(
            input_text=build_generation_input(prompt_text),
            model=self._model,
            instructions=self._system_prompt,
            previous_response_id=resume_handle,
            output_schema=OUTPUT_SCHEMA,
            schema_name="react_component",
        )

        source = parse_structured_output(response.content)

        if not response.id:
            raise GenerationFailed("Model response did not provide an identifier")

        if resume_handle and response.id != resume_handle:
            logger.info(f"Resumed conversation {resume_handle} as {response.id}")

        return GenerationResult(handle=response.id, source=source)

"""OpenAI Responses API client.

The Responses API stores conversation state server-side: passing the id of a
previous response as ``previous_response_id`` continues that conversation.
That id is what the rest of the system calls the generation handle.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from prototyper.exceptions import GenerationNotConfigured, GenerationUnavailable
from prototyper.llm.base import LLMClient
from prototyper.schemas import LLMResponse

logger = logging.getLogger(__name__)


class OpenAIResponsesClient(LLMClient):
    """OpenAI Responses API client over httpx."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        organization: str | None = None,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout

        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        if organization:
            headers["OpenAI-Organization"] = organization

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def respond(
        self,
        input_text: str,
        model: str,
        instructions: str | None = None,
        previous_response_id: str | None = None,
        output_schema: dict[str, Any] | None = None,
        schema_name: str = "output",
        reasoning_effort: str | None = None,
    ) -> LLMResponse:
        """Create a response via POST /responses."""
        if not self.is_configured:
            raise GenerationNotConfigured()

        payload = self._build_request(
            input_text=input_text,
            model=model,
            instructions=instructions,
            previous_response_id=previous_response_id,
            output_schema=output_schema,
            schema_name=schema_name,
            reasoning_effort=reasoning_effort,
        )

        start_time = time.perf_counter()

        try:
            response = await self._client.post("/responses", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise GenerationUnavailable(
                f"OpenAI request failed with status {e.response.status_code}: {_error_detail(e.response)}"
            ) from e
        except httpx.HTTPError as e:
            raise GenerationUnavailable(f"OpenAI request failed: {e!r}") from e
        except ValueError as e:
            raise GenerationUnavailable(f"OpenAI returned a non-JSON body: {e}") from e

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info(f"OpenAI response {data.get('id')} from {model} in {latency_ms}ms")

        return LLMResponse(
            id=data.get("id"),
            content=_output_text(data),
            model=data.get("model", model),
            usage=data.get("usage") or {},
            raw_response=data,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()


def _output_text(data: dict[str, Any]) -> str | None:
    """Concatenate the ``output_text`` parts of all message items."""
    if isinstance(data.get("output_text"), str):
        return data["output_text"]

    parts: list[str] = []
    for item in data.get("output") or []:
        if item.get("type") != "message":
            continue
        for content in item.get("content") or []:
            if content.get("type") == "output_text" and content.get("text"):
                parts.append(content["text"])

    return "".join(parts) if parts else None


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:500]
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return str(body)[:500]

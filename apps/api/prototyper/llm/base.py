"""Abstract base class for LLM clients."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from prototyper.schemas import LLMResponse


class LLMClient(ABC):
    """Abstract base class for LLM provider clients.

    Implementations keep conversation state on the provider side: each
    response carries an ``id`` that can be passed back as
    ``previous_response_id`` to continue the same conversation.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'openai')."""
        ...

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether a credential is available for this provider."""
        ...

    @abstractmethod
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
        """Send one conversation turn.

        Args:
            input_text: User input for this turn
            model: Model name
            instructions: Optional system instructions
            previous_response_id: Resume the conversation that produced this id
            output_schema: Optional JSON schema the output must follow
            schema_name: Name of the output schema
            reasoning_effort: Optional reasoning effort hint

        Returns:
            LLMResponse with the response id and output text

        Raises:
            GenerationNotConfigured: no credential is configured
            GenerationUnavailable: transport or HTTP failure
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        ...

    def _build_request(
        self,
        input_text: str,
        model: str,
        instructions: str | None,
        previous_response_id: str | None,
        output_schema: dict[str, Any] | None,
        schema_name: str,
        reasoning_effort: str | None,
    ) -> dict[str, Any]:
        """Build the API request payload.

        This is a helper method that subclasses can use or override.
        """
        payload: dict[str, Any] = {
            "model": model,
            "input": input_text,
        }

        if instructions:
            payload["instructions"] = instructions

        if previous_response_id:
            payload["previous_response_id"] = previous_response_id

        if output_schema:
            payload["text"] = {
                "format": {
                    "type": "json_schema",
                    "name": schema_name,
                    "schema": output_schema,
                    "strict": True,
                }
            }

        if reasoning_effort:
            payload["reasoning"] = {"effort": reasoning_effort}

        return payload

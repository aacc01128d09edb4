"""Pydantic schemas for the prompt lifecycle contracts.

These schemas define the contracts between:
- API endpoints and clients
- The LLM client and the adapters built on it
- The lifecycle engine and the record store
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# =============================================================================
# Enums
# =============================================================================

class PromptStatus(str, Enum):
    """Status of a prompt in the build lifecycle."""
    PENDING = "pending"
    BUILDING = "building"
    READY = "ready"
    FAILED = "failed"


class EventLevel(str, Enum):
    """Severity of a prompt event."""
    INFO = "info"
    ERROR = "error"


# Statuses the worker picks up. READY is terminal for the worker.
BUILD_ELIGIBLE_STATUSES: tuple[PromptStatus, ...] = (
    PromptStatus.PENDING,
    PromptStatus.BUILDING,
    PromptStatus.FAILED,
)


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Build Schemas
# =============================================================================

class SandboxConfig(CamelModel):
    """Execution sandbox description stored with a compiled artifact."""
    runtime: str = Field(..., description="Render target of the compiled artifact")
    allowed_globals: list[str] = Field(default_factory=list, description="Globals the sandbox provides")
    compiled_at: datetime = Field(..., description="When the artifact was compiled")


class BuildArtifacts(BaseModel):
    """Everything persisted atomically when a prompt becomes ready."""
    source: str
    compiled_artifact: str
    preview_slug: str
    sandbox_config: SandboxConfig


class GenerationResult(BaseModel):
    """Output of the generation adapter."""
    handle: str = Field(..., description="Resume handle for the conversation")
    source: str = Field(..., description="Extracted component source")


# =============================================================================
# LLM Schemas
# =============================================================================

class LLMResponse(BaseModel):
    """Response from the LLM provider."""
    id: str | None = None
    content: str | None = None
    model: str
    usage: dict[str, Any] = Field(default_factory=dict)
    raw_response: dict[str, Any] | None = None


# =============================================================================
# API Request/Response Schemas
# =============================================================================

class PromptCreateRequest(CamelModel):
    """API request to submit a new prompt."""
    prompt_text: str | None = Field(default=None, description="Natural language component description")

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {"promptText": "Build a notifications center"}
        },
    )


class PromptEventResponse(CamelModel):
    id: int
    level: EventLevel
    message: str
    context: dict[str, Any] | None = None
    created_at: datetime


class PromptResponse(CamelModel):
    """Prompt summary as shown in history lists."""
    id: str
    title: str
    prompt_text: str
    status: PromptStatus
    updated_at: datetime
    preview_slug: str | None = None
    failure_reason: str | None = None
    events: list[PromptEventResponse] = Field(default_factory=list)


class PromptDetailResponse(PromptResponse):
    """Prompt with its build artifacts."""
    created_at: datetime
    generated_source: str | None = None
    compiled_artifact: str | None = None
    sandbox_config: dict[str, Any] | None = None


class PromptEnvelope(CamelModel):
    prompt: PromptResponse


class PromptDetailEnvelope(CamelModel):
    prompt: PromptDetailResponse


class PromptListResponse(CamelModel):
    prompts: list[PromptResponse]


class PreviewResponse(CamelModel):
    """Compiled artifact addressed by preview slug."""
    preview_slug: str
    title: str
    compiled_artifact: str
    sandbox_config: dict[str, Any] | None = None


# =============================================================================
# User/Auth Schemas
# =============================================================================

class UserResponse(CamelModel):
    """API response for user data."""
    id: str
    email: str
    created_at: datetime
    last_login_at: datetime | None = None


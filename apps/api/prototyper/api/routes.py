"""FastAPI routes for the Prototyper API.

Endpoints:
- GET    /health                - Health check
- GET    /auth/me               - Current user info
- GET    /prompts               - List the caller's prompts with recent events
- POST   /prompts               - Submit a new prompt (queued as pending)
- GET    /prompts/{id}          - Prompt detail with artifacts and events
- DELETE /prompts/{id}          - Delete a prompt and its events
- GET    /previews/{slug}       - Compiled artifact of a ready prompt

Builds happen in the worker process; these endpoints only read and write
the record store.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response

from prototyper.api.deps import get_container, get_current_user
from prototyper.container import Container
from prototyper.database.models import Prompt, PromptEvent, User
from prototyper.exceptions import NotFoundError
from prototyper.schemas import (
    EventLevel,
    PreviewResponse,
    PromptCreateRequest,
    PromptDetailEnvelope,
    PromptDetailResponse,
    PromptEnvelope,
    PromptEventResponse,
    PromptListResponse,
    PromptResponse,
    PromptStatus,
    UserResponse,
)
from prototyper.services.intake import create_prompt

logger = logging.getLogger(__name__)
router = APIRouter()

LIST_EVENTS_PER_PROMPT = 5
DETAIL_EVENTS = 20


# =============================================================================
# Serialization
# =============================================================================

def serialize_event(event: PromptEvent) -> PromptEventResponse:
    return PromptEventResponse(
        id=event.id,
        level=EventLevel(event.level),
        message=event.message,
        context=event.context,
        created_at=event.created_at,
    )


def serialize_prompt(prompt: Prompt, events: list[PromptEvent] | None = None) -> PromptResponse:
    return PromptResponse(
        id=prompt.id,
        title=prompt.title,
        prompt_text=prompt.prompt_text,
        status=PromptStatus(prompt.status),
        updated_at=prompt.updated_at,
        preview_slug=prompt.preview_slug,
        failure_reason=prompt.failure_reason,
        events=[serialize_event(e) for e in events or []],
    )


def serialize_prompt_detail(prompt: Prompt, events: list[PromptEvent]) -> PromptDetailResponse:
    return PromptDetailResponse(
        **serialize_prompt(prompt, events).model_dump(),
        created_at=prompt.created_at,
        generated_source=prompt.generated_source,
        compiled_artifact=prompt.compiled_artifact,
        sandbox_config=prompt.sandbox_config,
    )


# =============================================================================
# Health Check
# =============================================================================

@router.get("/health")
async def health(container: Container = Depends(get_container)) -> dict:
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": container.settings.app_version,
        "environment": container.settings.environment,
        "generation_configured": container.generator.is_configured,
    }


# =============================================================================
# Auth Endpoints
# =============================================================================

@router.get("/auth/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        created_at=user.created_at,
        last_login_at=user.last_login_at,
    )


# =============================================================================
# Prompt Endpoints
# =============================================================================

@router.get("/prompts", response_model=PromptListResponse)
async def list_prompts(
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
) -> PromptListResponse:
    """List the caller's prompts, most recently updated first."""
    prompts = await container.prompts.list_for_owner(user.id)
    events = await container.events.list_recent_for_many(
        [p.id for p in prompts], per_prompt_limit=LIST_EVENTS_PER_PROMPT
    )
    return PromptListResponse(
        prompts=[serialize_prompt(p, events.get(p.id, [])) for p in prompts]
    )


@router.post("/prompts", response_model=PromptEnvelope, status_code=201)
async def submit_prompt(
    request: PromptCreateRequest,
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
) -> PromptEnvelope:
    """Submit a prompt.

    The prompt is stored as pending; the worker picks it up on its next
    poll. Use GET /prompts/{id} to follow its status.
    """
    prompt = await create_prompt(
        container.prompts, container.titles, user.id, request.prompt_text
    )
    return PromptEnvelope(prompt=serialize_prompt(prompt))


@router.get("/prompts/{prompt_id}", response_model=PromptDetailEnvelope)
async def get_prompt(
    prompt_id: str,
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
) -> PromptDetailEnvelope:
    prompt = await container.prompts.find_for_owner(prompt_id, user.id)
    if prompt is None:
        raise NotFoundError("Prompt")

    events = await container.events.list_recent(prompt_id, limit=DETAIL_EVENTS)
    return PromptDetailEnvelope(prompt=serialize_prompt_detail(prompt, events))


@router.delete("/prompts/{prompt_id}", status_code=204)
async def delete_prompt(
    prompt_id: str,
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
) -> Response:
    deleted = await container.prompts.delete(prompt_id, user.id)
    if deleted == 0:
        raise NotFoundError("Prompt")

    logger.info(f"Prompt {prompt_id} deleted by user {user.id}")
    return Response(status_code=204)


# =============================================================================
# Preview Endpoints
# =============================================================================

@router.get("/previews/{preview_slug}", response_model=PreviewResponse)
async def get_preview(
    preview_slug: str,
    user: User = Depends(get_current_user),
    container: Container = Depends(get_container),
) -> PreviewResponse:
    prompt = await container.prompts.find_by_preview_slug(preview_slug, user.id)
    if prompt is None or prompt.status != PromptStatus.READY.value or not prompt.compiled_artifact:
        raise NotFoundError("Preview")

    return PreviewResponse(
        preview_slug=preview_slug,
        title=prompt.title,
        compiled_artifact=prompt.compiled_artifact,
        sandbox_config=prompt.sandbox_config,
    )

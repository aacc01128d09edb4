"""
Prompt record store.

Pure data access for the prompts table. Every mutation is a single
transaction that also bumps ``updated_at``; the lifecycle engine never
writes prompt columns any other way. SQLAlchemy errors surface as
``StoreError``.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from prototyper.database.models import (
    FAILURE_REASON_MAX_LENGTH,
    Prompt,
    PromptEvent,
    utc_now,
)
from prototyper.database.session import session_scope
from prototyper.exceptions import StoreError
from prototyper.schemas import BUILD_ELIGIBLE_STATUSES, BuildArtifacts, PromptStatus

logger = logging.getLogger(__name__)


def truncate_reason(reason: str) -> str:
    return reason[:FAILURE_REASON_MAX_LENGTH]


class PromptRepository:
    """CRUD and state-transition writes for prompts."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create(self, owner_id: str, prompt_text: str, title: str) -> Prompt:
        """Insert a new prompt in ``pending``."""
        prompt = Prompt(
            user_id=owner_id,
            prompt_text=prompt_text,
            title=title,
            status=PromptStatus.PENDING.value,
        )
        try:
            async with session_scope(self._session_factory) as session:
                session.add(prompt)
        except SQLAlchemyError as e:
            raise StoreError("create", str(e)) from e
        return prompt

    async def list_for_owner(self, owner_id: str) -> list[Prompt]:
        """Prompts of one owner, most recently updated first."""
        stmt = (
            select(Prompt)
            .where(Prompt.user_id == owner_id)
            .order_by(Prompt.updated_at.desc(), Prompt.created_at.desc())
        )
        return await self._fetch_all("list_for_owner", stmt)

    async def find_for_owner(self, prompt_id: str, owner_id: str) -> Prompt | None:
        stmt = select(Prompt).where(Prompt.id == prompt_id, Prompt.user_id == owner_id)
        try:
            async with session_scope(self._session_factory) as session:
                result = await session.execute(stmt)
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreError("find_for_owner", str(e)) from e

    async def find_by_preview_slug(self, preview_slug: str, owner_id: str) -> Prompt | None:
        stmt = select(Prompt).where(
            Prompt.preview_slug == preview_slug,
            Prompt.user_id == owner_id,
        )
        try:
            async with session_scope(self._session_factory) as session:
                result = await session.execute(stmt)
                return result.scalars().first()
        except SQLAlchemyError as e:
            raise StoreError("find_by_preview_slug", str(e)) from e

    async def delete(self, prompt_id: str, owner_id: str) -> int:
        """Delete a prompt owned by ``owner_id`` along with its events.

        Returns the number of deleted prompts (0 or 1). A prompt that belongs
        to someone else counts as not found.
        """
        try:
            async with session_scope(self._session_factory) as session:
                owned = await session.execute(
                    select(Prompt.id).where(Prompt.id == prompt_id, Prompt.user_id == owner_id)
                )
                if owned.scalar_one_or_none() is None:
                    return 0
                await session.execute(delete(PromptEvent).where(PromptEvent.prompt_id == prompt_id))
                result = await session.execute(
                    delete(Prompt).where(Prompt.id == prompt_id, Prompt.user_id == owner_id)
                )
                return result.rowcount or 0
        except SQLAlchemyError as e:
            raise StoreError("delete", str(e)) from e

    async def list_eligible_for_build(self, limit: int) -> list[Prompt]:
        """Prompts the worker should build next, oldest update first."""
        stmt = (
            select(Prompt)
            .where(Prompt.status.in_([s.value for s in BUILD_ELIGIBLE_STATUSES]))
            .order_by(Prompt.updated_at.asc(), Prompt.created_at.asc())
            .limit(limit)
        )
        return await self._fetch_all("list_eligible_for_build", stmt)

    async def mark_building(self, prompt_id: str, handle: str | None = None) -> None:
        values: dict[str, Any] = {"status": PromptStatus.BUILDING.value}
        if handle:
            values["generation_handle"] = handle
        await self._update("mark_building", prompt_id, values)

    async def save_generation(self, prompt_id: str, handle: str, source: str) -> None:
        """Keep the handle and source of a successful generation.

        Status stays ``building``; a later compile failure still leaves the
        handle in place for the retry.
        """
        await self._update(
            "save_generation",
            prompt_id,
            {"generation_handle": handle, "generated_source": source},
        )

    async def mark_failed(self, prompt_id: str, reason: str) -> None:
        await self._update(
            "mark_failed",
            prompt_id,
            {
                "status": PromptStatus.FAILED.value,
                "failure_reason": truncate_reason(reason),
            },
        )

    async def save_build_result(self, prompt_id: str, artifacts: BuildArtifacts) -> None:
        """Mark the prompt ready with all of its artifacts in one update."""
        await self._update(
            "save_build_result",
            prompt_id,
            {
                "status": PromptStatus.READY.value,
                "generated_source": artifacts.source,
                "compiled_artifact": artifacts.compiled_artifact,
                "preview_slug": artifacts.preview_slug,
                "sandbox_config": artifacts.sandbox_config.model_dump(mode="json", by_alias=True),
                "failure_reason": None,
            },
        )

    async def _update(self, operation: str, prompt_id: str, values: dict[str, Any]) -> None:
        values["updated_at"] = utc_now()
        try:
            async with session_scope(self._session_factory) as session:
                await session.execute(update(Prompt).where(Prompt.id == prompt_id).values(**values))
        except SQLAlchemyError as e:
            raise StoreError(operation, str(e)) from e
        logger.debug(f"{operation} applied to prompt {prompt_id}")

    async def _fetch_all(self, operation: str, stmt) -> list[Prompt]:
        try:
            async with session_scope(self._session_factory) as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise StoreError(operation, str(e)) from e

"""
Prompt event log.

Append-only record of lifecycle transitions. Recording an event is
fire-and-forget: a failed insert is logged and dropped so that it can never
fail the build transition that produced it.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from prototyper.database.models import PromptEvent
from prototyper.database.session import session_scope
from prototyper.exceptions import StoreError
from prototyper.schemas import EventLevel

logger = logging.getLogger(__name__)


class PromptEventLog:
    """Writes and reads prompt events."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def record(
        self,
        prompt_id: str,
        level: EventLevel,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Append an event. Never raises."""
        try:
            event = PromptEvent(
                prompt_id=prompt_id,
                level=EventLevel(level).value,
                message=message,
                context=context or None,
            )
            async with session_scope(self._session_factory) as session:
                session.add(event)
        except Exception:
            logger.exception(f"Failed to record event '{message}' for prompt {prompt_id}")

    async def list_recent(self, prompt_id: str, limit: int = 50) -> list[PromptEvent]:
        """Most recent events of one prompt, newest first."""
        stmt = (
            select(PromptEvent)
            .where(PromptEvent.prompt_id == prompt_id)
            .order_by(PromptEvent.created_at.desc(), PromptEvent.id.desc())
            .limit(limit)
        )
        try:
            async with session_scope(self._session_factory) as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise StoreError("list_recent", str(e)) from e

    async def list_recent_for_many(
        self,
        prompt_ids: Sequence[str],
        per_prompt_limit: int = 5,
    ) -> dict[str, list[PromptEvent]]:
        """Most recent events for several prompts in a single query.

        Returns a mapping of prompt id to at most ``per_prompt_limit`` events,
        newest first. Prompts without events are absent from the mapping.
        The per-prompt cap is applied in SQL with a ``row_number`` window.
        """
        events_by_prompt: dict[str, list[PromptEvent]] = {}
        if not prompt_ids:
            return events_by_prompt

        ranked = (
            select(
                PromptEvent.id,
                func.row_number()
                .over(
                    partition_by=PromptEvent.prompt_id,
                    order_by=(PromptEvent.created_at.desc(), PromptEvent.id.desc()),
                )
                .label("recency"),
            )
            .where(PromptEvent.prompt_id.in_(list(prompt_ids)))
            .subquery()
        )
        stmt = (
            select(PromptEvent)
            .join(ranked, PromptEvent.id == ranked.c.id)
            .where(ranked.c.recency <= per_prompt_limit)
            .order_by(PromptEvent.created_at.desc(), PromptEvent.id.desc())
        )
        try:
            async with session_scope(self._session_factory) as session:
                result = await session.execute(stmt)
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise StoreError("list_recent_for_many", str(e)) from e

        for event in rows:
            events_by_prompt.setdefault(event.prompt_id, []).append(event)

        return events_by_prompt

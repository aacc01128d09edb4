"""Composition root.

Builds every long-lived collaborator once at process start: the database
engine, repositories, the LLM client and the adapters on top of it. The API
and the worker both start from here, and tests build their own containers
with fakes in place of the external services.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from prototyper.config import Settings
from prototyper.database.session import close_db, create_engine, create_session_factory
from prototyper.llm.base import LLMClient
from prototyper.llm.openai_responses import OpenAIResponsesClient
from prototyper.repositories.event_repository import PromptEventLog
from prototyper.repositories.prompt_repository import PromptRepository
from prototyper.repositories.user_repository import UserRepository
from prototyper.services.compiler import Compiler, EsbuildCompiler
from prototyper.services.generation import GenerationAdapter
from prototyper.services.titles import TitleSummarizer
from prototyper.worker.lifecycle import PromptLifecycle
from prototyper.worker.loop import PromptWorker

logger = logging.getLogger(__name__)


@dataclass
class Container:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    llm_client: LLMClient
    prompts: PromptRepository
    events: PromptEventLog
    users: UserRepository
    generator: GenerationAdapter
    compiler: Compiler
    titles: TitleSummarizer

    def build_lifecycle(self) -> PromptLifecycle:
        return PromptLifecycle(
            store=self.prompts,
            events=self.events,
            generator=self.generator,
            compiler=self.compiler,
        )

    def build_worker(self) -> PromptWorker:
        return PromptWorker(
            store=self.prompts,
            lifecycle=self.build_lifecycle(),
            generator=self.generator,
            poll_interval=self.settings.worker_poll_interval_seconds,
            batch_size=self.settings.worker_batch_size,
        )

    async def close(self) -> None:
        await self.llm_client.close()
        await close_db(self.engine)


def build_container(
    settings: Settings,
    engine: AsyncEngine | None = None,
    llm_client: LLMClient | None = None,
    compiler: Compiler | None = None,
) -> Container:
    """Wire the application from settings."""
    engine = engine or create_engine(settings)
    session_factory = create_session_factory(engine)

    if llm_client is None:
        llm_client = OpenAIResponsesClient(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            organization=settings.openai_organization or None,
            timeout=settings.llm_timeout_seconds,
        )

    if compiler is None:
        compiler = EsbuildCompiler(
            command=settings.compiler_command,
            allowed_commands=settings.compiler_allowed_commands,
            timeout_seconds=settings.compiler_timeout_seconds,
        )

    if not llm_client.is_configured:
        logger.warning("OPENAI_API_KEY is not set; titles fall back and builds stay idle")

    return Container(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        llm_client=llm_client,
        prompts=PromptRepository(session_factory),
        events=PromptEventLog(session_factory),
        users=UserRepository(session_factory),
        generator=GenerationAdapter(
            client=llm_client,
            model=settings.generation_model,
            system_prompt=settings.generation_system_prompt,
        ),
        compiler=compiler,
        titles=TitleSummarizer(client=llm_client, model=settings.title_model),
    )

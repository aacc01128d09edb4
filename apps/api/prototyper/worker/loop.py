"""
Prompt build worker.

Polls the record store for eligible prompts and runs each through the
lifecycle engine, one at a time. One tick handles at most ``batch_size``
prompts; ticks are ``poll_interval`` seconds apart.

Only one worker process may run against a store: eligibility is a plain
query with no row leasing, so two workers could pick the same prompt.
"""

from __future__ import annotations

import asyncio
import logging

from prototyper.repositories.prompt_repository import PromptRepository
from prototyper.worker.lifecycle import Generator, PromptLifecycle

logger = logging.getLogger(__name__)


class PromptWorker:
    """Single-process polling loop around ``PromptLifecycle``."""

    def __init__(
        self,
        store: PromptRepository,
        lifecycle: PromptLifecycle,
        generator: Generator,
        poll_interval: float = 5.0,
        batch_size: int = 2,
    ):
        self._store = store
        self._lifecycle = lifecycle
        self._generator = generator
        self.poll_interval = poll_interval
        self.batch_size = batch_size
        self._stop_event = asyncio.Event()
        self._warned_about_config = False

    @property
    def running(self) -> bool:
        return not self._stop_event.is_set()

    def stop(self) -> None:
        """Ask the loop to exit after the current tick."""
        logger.info("Prompt worker stopping...")
        self._stop_event.set()

    async def tick(self) -> int:
        """Process one batch of eligible prompts.

        Returns the number of prompts picked. A prompt whose build fails does
        not stop the batch; a store error does, and propagates.
        """
        if not self._generator.is_configured:
            if not self._warned_about_config:
                logger.info("Prompt worker idle: OPENAI_API_KEY is not configured")
                self._warned_about_config = True
            return 0

        self._warned_about_config = False

        prompts = await self._store.list_eligible_for_build(self.batch_size)
        logger.info(f"Prompt worker poll tick: found {len(prompts)}")

        for prompt in prompts:
            await self._lifecycle.process_prompt(prompt)

        return len(prompts)

    async def run(self) -> None:
        """Run ticks until ``stop()`` is called."""
        logger.info(
            f"Prompt worker started (poll_interval={self.poll_interval}s, batch_size={self.batch_size})"
        )

        while self.running:
            try:
                await self.tick()
            except Exception:
                logger.exception("Prompt worker tick failed")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass

        logger.info("Prompt worker stopped")

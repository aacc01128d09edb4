"""Prompt intake: validate, title and store a new prompt."""

from __future__ import annotations

import logging

from prototyper.database.models import Prompt
from prototyper.exceptions import PromptValidationError
from prototyper.repositories.prompt_repository import PromptRepository
from prototyper.services.titles import TitleSummarizer

logger = logging.getLogger(__name__)


async def create_prompt(
    store: PromptRepository,
    titles: TitleSummarizer,
    owner_id: str,
    prompt_text: str | None,
) -> Prompt:
    """Create a ``pending`` prompt for ``owner_id``.

    Raises:
        PromptValidationError: the text is missing or blank
    """
    if not prompt_text or not prompt_text.strip():
        raise PromptValidationError()

    title = await titles.title_for(prompt_text)
    prompt = await store.create(owner_id=owner_id, prompt_text=prompt_text, title=title)
    logger.info(f"Prompt {prompt.id} created for user {owner_id}")
    return prompt

"""Content moderation pass over a collected batch."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Sequence

from openai import AsyncOpenAI

from channel_summarizer.logging import format_log_context, get_logger
from channel_summarizer.session import CollectedMessage

logger = get_logger(__name__)


class Moderator(ABC):
    @abstractmethod
    async def is_flagged(self, text: str) -> bool:
        """Return True when the text violates the content policy."""

    async def close(self) -> None:
        """Release client resources."""


class OpenAIModerator(Moderator):
    """Moderator using the OpenAI moderation endpoint."""

    def __init__(self, client: AsyncOpenAI, model: str = "omni-moderation-latest") -> None:
        self.client = client
        self.model = model

    async def is_flagged(self, text: str) -> bool:
        response = await self.client.moderations.create(model=self.model, input=text)
        return any(result.flagged for result in response.results)

    async def close(self) -> None:
        await self.client.close()


async def filter_flagged(
    moderator: Moderator,
    messages: Sequence[CollectedMessage],
    user_id: int | None = None,
) -> list[CollectedMessage]:
    """Return the messages that passed moderation, in their original order.

    Checks run concurrently. The first moderator error cancels the checks
    still in flight and propagates: the caller must not build a prompt from a
    partially moderated batch.
    """
    tasks = [
        asyncio.ensure_future(moderator.is_flagged(m.text) if m.text else _not_flagged())
        for m in messages
    ]
    try:
        flags = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    kept = [m for m, flagged in zip(messages, flags) if not flagged]
    excluded = len(messages) - len(kept)
    if excluded:
        logger.info(
            f'{format_log_context("moderation", component="summarizer", user=user_id)} excluded={excluded}'
        )
    return kept


async def _not_flagged() -> bool:
    return False

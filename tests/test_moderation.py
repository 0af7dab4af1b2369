"""Tests for the moderation pass."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from channel_summarizer.session import CollectedMessage
from channel_summarizer.summarizer.moderation import OpenAIModerator, filter_flagged


def moderation_response(*flags):
    return SimpleNamespace(results=[SimpleNamespace(flagged=flag) for flag in flags])


def make_client(responses):
    client = MagicMock()
    client.moderations.create = AsyncMock(side_effect=responses)
    client.close = AsyncMock()
    return client


class TestOpenAIModerator:
    @pytest.mark.asyncio
    async def test_flagged(self):
        client = make_client([moderation_response(False, True)])
        moderator = OpenAIModerator(client, model="omni-moderation-latest")

        assert await moderator.is_flagged("bad") is True
        client.moderations.create.assert_awaited_once_with(model="omni-moderation-latest", input="bad")

    @pytest.mark.asyncio
    async def test_not_flagged(self):
        moderator = OpenAIModerator(make_client([moderation_response(False)]))

        assert await moderator.is_flagged("fine") is False

    @pytest.mark.asyncio
    async def test_close_closes_client(self):
        client = make_client([])

        await OpenAIModerator(client).close()

        client.close.assert_awaited_once()


class TestFilterFlagged:
    @pytest.mark.asyncio
    async def test_keeps_order_of_clean_messages(self):
        messages = [
            CollectedMessage(text="one", message_id=1),
            CollectedMessage(text="bad two", message_id=2),
            CollectedMessage(text="three", message_id=3),
        ]
        moderator = MagicMock()
        moderator.is_flagged = AsyncMock(side_effect=lambda text: text.startswith("bad"))

        kept = await filter_flagged(moderator, messages)

        assert [m.message_id for m in kept] == [1, 3]

    @pytest.mark.asyncio
    async def test_errors_propagate(self):
        moderator = MagicMock()
        moderator.is_flagged = AsyncMock(side_effect=RuntimeError("down"))

        with pytest.raises(RuntimeError):
            await filter_flagged(moderator, [CollectedMessage(text="x", message_id=1)])


class SlowModerator:
    """Fails on "bad" and blocks on everything else until cancelled."""

    def __init__(self):
        self.cancelled: list[str] = []

    async def is_flagged(self, text: str) -> bool:
        if text == "bad":
            raise RuntimeError("moderation down")
        try:
            await asyncio.sleep(60)
        except asyncio.CancelledError:
            self.cancelled.append(text)
            raise
        return False


@pytest.mark.asyncio
async def test_failure_cancels_pending_checks():
    moderator = SlowModerator()
    messages = [
        CollectedMessage(text="slow one", message_id=1),
        CollectedMessage(text="bad", message_id=2),
        CollectedMessage(text="slow two", message_id=3),
    ]

    with pytest.raises(RuntimeError):
        await filter_flagged(moderator, messages)

    assert sorted(moderator.cancelled) == ["slow one", "slow two"]

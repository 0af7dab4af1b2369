"""Tests for the collection state machine."""

from unittest.mock import AsyncMock

import pytest

from channel_summarizer.collector import (
    Collector,
    MessageCandidate,
    MessageOrigin,
    OriginKind,
)
from channel_summarizer.errors import (
    ChannelMismatch,
    InvalidOrigin,
    NoActiveSession,
    Unauthorized,
    UnsupportedContent,
)
from channel_summarizer.session import SessionState
from tests.conftest import CHANNEL_A, CHANNEL_B, USER_ID, channel_message


class TestStart:
    @pytest.mark.asyncio
    async def test_start_opens_session(self, collector, store):
        await collector.start(USER_ID)

        assert (await store.load(USER_ID)).state is SessionState.COLLECTING

    @pytest.mark.asyncio
    async def test_start_again_resets_batch(self, collector, store):
        await collector.start(USER_ID)
        await collector.submit(USER_ID, channel_message("hello", 1))

        await collector.start(USER_ID)
        session = await store.load(USER_ID)

        assert session.is_collecting
        assert session.messages == ()
        assert session.channel is None

    @pytest.mark.asyncio
    async def test_unauthorized_user_is_rejected(self, store, channel_lookup):
        access = AsyncMock()
        access.is_authorized = AsyncMock(return_value=False)
        collector = Collector(store, channel_lookup, access=access)

        with pytest.raises(Unauthorized):
            await collector.start(USER_ID)

        access.is_authorized.assert_awaited_once_with(USER_ID)
        assert (await store.load(USER_ID)).state is SessionState.IDLE

    @pytest.mark.asyncio
    async def test_authorized_user_can_start(self, store, channel_lookup):
        access = AsyncMock()
        access.is_authorized = AsyncMock(return_value=True)
        collector = Collector(store, channel_lookup, access=access)

        await collector.start(USER_ID)

        assert (await store.load(USER_ID)).is_collecting


class TestSubmit:
    @pytest.mark.asyncio
    async def test_submit_without_start_fails(self, collector, store):
        with pytest.raises(NoActiveSession):
            await collector.submit(USER_ID, channel_message("hello", 1))

        session = await store.load(USER_ID)
        assert session.state is SessionState.IDLE
        assert session.messages == ()

    @pytest.mark.asyncio
    async def test_submit_after_cancel_fails(self, collector):
        await collector.start(USER_ID)
        await collector.cancel(USER_ID)

        with pytest.raises(NoActiveSession):
            await collector.submit(USER_ID, channel_message("hello", 1))

    @pytest.mark.asyncio
    async def test_first_message_locks_channel(self, collector, store, channel_lookup):
        await collector.start(USER_ID)

        result = await collector.submit(USER_ID, channel_message("hello", 42))

        assert result.first is True
        assert result.count == 1
        assert result.channel == CHANNEL_A
        assert result.message_id == 42
        session = await store.load(USER_ID)
        assert session.channel == CHANNEL_A
        assert [(m.text, m.message_id) for m in session.messages] == [("hello", 42)]
        channel_lookup.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_channel_metadata_is_looked_up_once(self, collector, channel_lookup):
        await collector.start(USER_ID)

        await collector.submit(USER_ID, channel_message("one", 1))
        second = await collector.submit(USER_ID, channel_message("two", 2))
        third = await collector.submit(USER_ID, channel_message("one again", 1))

        assert second.first is False
        assert second.count == 2
        assert third.count == 3
        assert channel_lookup.await_count == 1

    @pytest.mark.asyncio
    async def test_other_channel_is_rejected(self, collector, store):
        await collector.start(USER_ID)
        await collector.submit(USER_ID, channel_message("from A", 1, CHANNEL_A))

        with pytest.raises(ChannelMismatch):
            await collector.submit(USER_ID, channel_message("from B", 2, CHANNEL_B))

        session = await store.load(USER_ID)
        assert session.is_collecting
        assert session.channel == CHANNEL_A
        assert [m.text for m in session.messages] == ["from A"]

    @pytest.mark.asyncio
    async def test_message_without_text_is_rejected(self, collector, store):
        await collector.start(USER_ID)

        with pytest.raises(UnsupportedContent):
            await collector.submit(USER_ID, channel_message(None, 1))

        session = await store.load(USER_ID)
        assert session.channel is None
        assert session.messages == ()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "origin",
        [
            None,
            MessageOrigin(kind=OriginKind.USER),
            MessageOrigin(kind=OriginKind.HIDDEN_USER),
            MessageOrigin(kind=OriginKind.CHAT, chat_id=-100555),
        ],
    )
    async def test_non_channel_origin_is_rejected(self, collector, store, origin):
        await collector.start(USER_ID)

        with pytest.raises(InvalidOrigin):
            await collector.submit(USER_ID, MessageCandidate(text="hi", origin=origin))

        assert (await store.load(USER_ID)).messages == ()

    @pytest.mark.asyncio
    async def test_every_stored_message_comes_from_locked_channel(self, collector, store):
        await collector.start(USER_ID)
        for message_id, channel in [(1, CHANNEL_A), (2, CHANNEL_B), (3, CHANNEL_A), (4, CHANNEL_B)]:
            try:
                await collector.submit(USER_ID, channel_message(f"m{message_id}", message_id, channel))
            except ChannelMismatch:
                pass

        session = await store.load(USER_ID)
        assert session.channel == CHANNEL_A
        assert [m.message_id for m in session.messages] == [1, 3]

    @pytest.mark.asyncio
    async def test_session_expiry_behaves_like_cancel(self, collector, store, clock):
        await collector.start(USER_ID)
        await collector.submit(USER_ID, channel_message("hello", 1))

        clock.advance(store.ttl_seconds + 1)

        with pytest.raises(NoActiveSession):
            await collector.submit(USER_ID, channel_message("late", 2))
        session = await store.load(USER_ID)
        assert session.state is SessionState.IDLE
        assert session.messages == ()
        assert session.channel is None


class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel_clears_session(self, collector, store):
        await collector.start(USER_ID)
        await collector.submit(USER_ID, channel_message("hello", 1))

        await collector.cancel(USER_ID)

        session = await store.load(USER_ID)
        assert session.state is SessionState.IDLE
        assert session.messages == ()
        assert session.channel is None

    @pytest.mark.asyncio
    async def test_cancel_is_idempotent(self, collector, store):
        await collector.cancel(USER_ID)
        await collector.cancel(USER_ID)

        assert (await store.load(USER_ID)).state is SessionState.IDLE

"""Shared fixtures and fakes for pytest."""

from unittest.mock import AsyncMock

import pytest

from channel_summarizer.collector import Collector, MessageCandidate, MessageOrigin, OriginKind
from channel_summarizer.session import ChannelInfo, MemorySessionStore
from channel_summarizer.summarizer import ModelReply, SummarizationPipeline, SummaryModel

USER_ID = 1001
CHANNEL_A = ChannelInfo(id=-1001234567890, title="Daily News", description="News every day")
CHANNEL_B = ChannelInfo(id=-1009876543210, title="Other Channel", description="")


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeModel(SummaryModel):
    """Returns `text` as the reply, or raises `error` when set."""

    def __init__(self, text: str = '{"result": []}', total_tokens: int = 0) -> None:
        self.text = text
        self.total_tokens = total_tokens
        self.error: Exception | None = None
        self.calls: list[tuple[str, str, int]] = []

    async def complete(self, system: str, payload: str, user_id: int) -> ModelReply:
        self.calls.append((system, payload, user_id))
        if self.error is not None:
            raise self.error
        return ModelReply(text=self.text, total_tokens=self.total_tokens)


def channel_message(
    text: str | None,
    message_id: int,
    channel: ChannelInfo = CHANNEL_A,
) -> MessageCandidate:
    return MessageCandidate(
        text=text,
        origin=MessageOrigin(
            kind=OriginKind.CHANNEL,
            message_id=message_id,
            chat_id=channel.id,
            chat_title=channel.title,
        ),
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return MemorySessionStore(ttl_seconds=3600, clock=clock)


@pytest.fixture
def channel_lookup():
    known = {CHANNEL_A.id: CHANNEL_A, CHANNEL_B.id: CHANNEL_B}

    async def lookup(origin: MessageOrigin) -> ChannelInfo:
        return known[origin.chat_id]

    return AsyncMock(side_effect=lookup)


@pytest.fixture
def collector(store, channel_lookup):
    return Collector(store, channel_lookup)


@pytest.fixture
def model():
    return FakeModel()


@pytest.fixture
def audit():
    sink = AsyncMock()
    sink.record = AsyncMock()
    return sink


@pytest.fixture
def pipeline(store, model, audit, clock):
    return SummarizationPipeline(store, model, audit=audit, clock=clock)

"""Per-user collection state machine.

IDLE --start--> COLLECTING --submit*--> COLLECTING --finish/cancel/expiry--> IDLE

A session accepts forwarded messages from exactly one channel: the first
accepted message locks it, later messages from any other origin are rejected
without touching the batch.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Protocol

from channel_summarizer.errors import (
    ChannelMismatch,
    InvalidOrigin,
    NoActiveSession,
    Unauthorized,
    UnsupportedContent,
)
from channel_summarizer.logging import format_log_context, get_logger
from channel_summarizer.session import ChannelInfo, CollectedMessage, SessionStore

logger = get_logger(__name__)


class OriginKind(str, Enum):
    """Where a forwarded message originally came from."""

    CHANNEL = "channel"
    USER = "user"
    HIDDEN_USER = "hidden_user"
    CHAT = "chat"


@dataclass(frozen=True)
class MessageOrigin:
    kind: OriginKind
    message_id: int | None = None
    chat_id: int | None = None
    chat_title: str = ""


@dataclass(frozen=True)
class MessageCandidate:
    """A forwarded message as seen by the collector.

    Attributes:
        text: Message text, or its caption for media messages.
        origin: Forward origin, None for messages that were not forwarded.
    """

    text: str | None
    origin: MessageOrigin | None


@dataclass(frozen=True)
class SubmitResult:
    count: int
    first: bool
    channel: ChannelInfo
    message_id: int


ChannelLookup = Callable[[MessageOrigin], Awaitable[ChannelInfo]]


class AccessControl(Protocol):
    async def is_authorized(self, user_id: int) -> bool: ...


class Collector:
    """Drives a user's session through start, submit and cancel."""

    def __init__(
        self,
        store: SessionStore,
        channel_lookup: ChannelLookup | None = None,
        access: AccessControl | None = None,
    ) -> None:
        self.store = store
        self.channel_lookup = channel_lookup
        self.access = access

    async def start(self, user_id: int) -> None:
        if self.access is not None and not await self.access.is_authorized(user_id):
            logger.info(f'{format_log_context("start_denied", channel="telegram", user=user_id)}')
            raise Unauthorized()

        await self.store.begin(user_id)
        logger.info(f'{format_log_context("session_started", channel="telegram", user=user_id)}')

    async def submit(self, user_id: int, candidate: MessageCandidate) -> SubmitResult:
        session = await self.store.load(user_id)
        if not session.is_collecting:
            raise NoActiveSession()

        if not candidate.text:
            raise UnsupportedContent()

        origin = candidate.origin
        if (
            origin is None
            or origin.kind is not OriginKind.CHANNEL
            or origin.chat_id is None
            or origin.message_id is None
        ):
            raise InvalidOrigin()

        channel = session.channel
        first = False
        if channel is None:
            if self.channel_lookup is None:
                raise RuntimeError("Collector has no channel lookup configured")
            channel = await self.channel_lookup(origin)
            first = await self.store.lock_channel(user_id, channel)
            if not first:
                # Another submit locked the session in the meantime
                channel = (await self.store.load(user_id)).channel or channel

        if channel.id != origin.chat_id:
            logger.info(
                f'{format_log_context("channel_mismatch", channel="telegram", user=user_id, source=origin.chat_id)} '
                f"locked={channel.id}"
            )
            raise ChannelMismatch()

        count = await self.store.append(
            user_id, CollectedMessage(text=candidate.text, message_id=origin.message_id)
        )
        logger.info(
            f'{format_log_context("message_collected", channel="telegram", user=user_id, source=channel.id, message_id=origin.message_id, count=count)}'
        )
        return SubmitResult(count=count, first=first, channel=channel, message_id=origin.message_id)

    async def cancel(self, user_id: int) -> None:
        await self.store.clear(user_id)
        logger.info(f'{format_log_context("session_canceled", channel="telegram", user=user_id)}')

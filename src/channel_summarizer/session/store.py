"""Ephemeral per-user session storage.

A session is backed by three keys per user (`action`, `action_channel`,
`messages`) sharing one expiry window. Every mutation refreshes the window on
all three keys, so an untouched session disappears as a whole and reads back
as IDLE.
"""

import time
from abc import ABC, abstractmethod
from typing import Callable

from channel_summarizer.session.models import (
    ChannelInfo,
    CollectedMessage,
    Session,
    SessionState,
)

DEFAULT_TTL_SECONDS = 60 * 60 * 24 * 7


def action_key(user_id: int) -> str:
    return f"action:{user_id}"


def channel_key(user_id: int) -> str:
    return f"action_channel:{user_id}"


def messages_key(user_id: int) -> str:
    return f"messages:{user_id}"


class SessionStore(ABC):
    """Abstract session store.

    Implementations must make `lock_channel` a set-if-absent and `append` an
    atomic push that returns the new length.
    """

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        self.ttl_seconds = ttl_seconds

    @abstractmethod
    async def load(self, user_id: int) -> Session:
        """Return the current session view (IDLE when absent or expired)."""

    @abstractmethod
    async def begin(self, user_id: int) -> None:
        """Reset the session to COLLECTING with no channel and no messages."""

    @abstractmethod
    async def lock_channel(self, user_id: int, channel: ChannelInfo) -> bool:
        """Lock the session to a channel. Returns False if a lock already exists."""

    @abstractmethod
    async def append(self, user_id: int, message: CollectedMessage) -> int:
        """Append a message and return the new batch length."""

    @abstractmethod
    async def clear(self, user_id: int) -> None:
        """Delete every key of the session."""

    async def close(self) -> None:
        """Release backend resources."""


class MemorySessionStore(SessionStore):
    """In-process store with per-key expiry, for development and tests.

    Mutations never await, so each one is atomic with respect to the event loop.
    Expired keys are dropped when read, and every `begin` sweeps the keys of
    sessions nobody came back to.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(ttl_seconds)
        self._clock = clock
        self._data: dict[str, tuple[object, float]] = {}

    def _get(self, key: str):
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    def _set(self, key: str, value: object) -> None:
        self._data[key] = (value, self._clock() + self.ttl_seconds)

    def _sweep(self) -> None:
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._data.items() if now >= expires_at]
        for key in expired:
            del self._data[key]

    def _touch(self, user_id: int) -> None:
        expires_at = self._clock() + self.ttl_seconds
        for key in (action_key(user_id), channel_key(user_id), messages_key(user_id)):
            if self._get(key) is not None:
                self._data[key] = (self._data[key][0], expires_at)

    async def load(self, user_id: int) -> Session:
        action = self._get(action_key(user_id))
        if action != SessionState.COLLECTING.value:
            return Session.idle(user_id)
        channel = self._get(channel_key(user_id))
        messages = self._get(messages_key(user_id)) or []
        return Session(
            user_id=user_id,
            state=SessionState.COLLECTING,
            channel=channel,
            messages=tuple(messages),
        )

    async def begin(self, user_id: int) -> None:
        self._sweep()
        self._data.pop(channel_key(user_id), None)
        self._data.pop(messages_key(user_id), None)
        self._set(action_key(user_id), SessionState.COLLECTING.value)

    async def lock_channel(self, user_id: int, channel: ChannelInfo) -> bool:
        if self._get(channel_key(user_id)) is not None:
            return False
        self._set(channel_key(user_id), channel)
        self._touch(user_id)
        return True

    async def append(self, user_id: int, message: CollectedMessage) -> int:
        key = messages_key(user_id)
        messages = self._get(key)
        if messages is None:
            messages = []
            self._set(key, messages)
        messages.append(message)
        self._touch(user_id)
        return len(messages)

    async def clear(self, user_id: int) -> None:
        for key in (action_key(user_id), channel_key(user_id), messages_key(user_id)):
            self._data.pop(key, None)

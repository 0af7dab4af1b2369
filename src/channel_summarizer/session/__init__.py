"""Per-user ephemeral session storage."""

from channel_summarizer.session.models import (
    ChannelInfo,
    CollectedMessage,
    Session,
    SessionState,
)
from channel_summarizer.session.store import MemorySessionStore, SessionStore

__all__ = [
    "ChannelInfo",
    "CollectedMessage",
    "MemorySessionStore",
    "Session",
    "SessionState",
    "SessionStore",
    "create_session_store",
]


def create_session_store(config=None) -> SessionStore:
    """Build the configured session store backend."""
    from channel_summarizer.config.settings import settings

    config = config or settings
    if config.SESSION_STORAGE == "memory":
        return MemorySessionStore(ttl_seconds=config.SESSION_TTL_SECONDS)

    from channel_summarizer.session.redis_store import RedisSessionStore

    return RedisSessionStore.from_url(config.REDIS_URL, ttl_seconds=config.SESSION_TTL_SECONDS)

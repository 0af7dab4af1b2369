"""Redis-backed session store."""

from redis.asyncio import Redis

from channel_summarizer.logging import format_log_context, get_logger
from channel_summarizer.session.models import (
    ChannelInfo,
    CollectedMessage,
    Session,
    SessionState,
)
from channel_summarizer.session.store import (
    DEFAULT_TTL_SECONDS,
    SessionStore,
    action_key,
    channel_key,
    messages_key,
)

logger = get_logger(__name__)


class RedisSessionStore(SessionStore):
    """Session store on Redis.

    Multi-key updates run in MULTI/EXEC pipelines so readers never observe a
    half-applied mutation.
    """

    def __init__(self, client: Redis, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        super().__init__(ttl_seconds)
        self._client = client

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> "RedisSessionStore":
        return cls(Redis.from_url(url, decode_responses=True), ttl_seconds)

    async def load(self, user_id: int) -> Session:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.get(action_key(user_id))
            pipe.get(channel_key(user_id))
            pipe.lrange(messages_key(user_id), 0, -1)
            action, channel_raw, messages_raw = await pipe.execute()

        if action != SessionState.COLLECTING.value:
            return Session.idle(user_id)

        return Session(
            user_id=user_id,
            state=SessionState.COLLECTING,
            channel=ChannelInfo.from_json(channel_raw) if channel_raw else None,
            messages=tuple(CollectedMessage.from_json(m) for m in messages_raw or []),
        )

    async def begin(self, user_id: int) -> None:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.delete(channel_key(user_id), messages_key(user_id))
            pipe.set(action_key(user_id), SessionState.COLLECTING.value, ex=self.ttl_seconds)
            await pipe.execute()

    async def lock_channel(self, user_id: int, channel: ChannelInfo) -> bool:
        locked = await self._client.set(
            channel_key(user_id), channel.to_json(), ex=self.ttl_seconds, nx=True
        )
        if locked:
            await self._client.expire(action_key(user_id), self.ttl_seconds)
        return bool(locked)

    async def append(self, user_id: int, message: CollectedMessage) -> int:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.rpush(messages_key(user_id), message.to_json())
            pipe.expire(messages_key(user_id), self.ttl_seconds)
            pipe.expire(channel_key(user_id), self.ttl_seconds)
            pipe.expire(action_key(user_id), self.ttl_seconds)
            length, *_ = await pipe.execute()
        return int(length)

    async def clear(self, user_id: int) -> None:
        await self._client.delete(
            messages_key(user_id), channel_key(user_id), action_key(user_id)
        )

    async def close(self) -> None:
        logger.info(f'{format_log_context("close", component="redis")}')
        await self._client.aclose()

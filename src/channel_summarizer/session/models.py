"""Session data model."""

import json
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class SessionState(str, Enum):
    """Collection state of a user's session."""

    IDLE = "idle"
    COLLECTING = "gather_messages"


@dataclass(frozen=True)
class ChannelInfo:
    """The channel a session is locked to."""

    id: int
    title: str = ""
    description: str = ""

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "ChannelInfo":
        data: dict[str, Any] = json.loads(raw)
        return cls(
            id=int(data["id"]),
            title=data.get("title") or "",
            description=data.get("description") or "",
        )


@dataclass(frozen=True)
class CollectedMessage:
    """A forwarded message awaiting summarization."""

    text: str
    message_id: int

    def to_json(self) -> str:
        return json.dumps({"text": self.text, "message_id": self.message_id}, ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "CollectedMessage":
        data = json.loads(raw)
        return cls(text=data["text"], message_id=int(data["message_id"]))


@dataclass(frozen=True)
class Session:
    """Read-only view of a user's session."""

    user_id: int
    state: SessionState = SessionState.IDLE
    channel: ChannelInfo | None = None
    messages: tuple[CollectedMessage, ...] = field(default_factory=tuple)

    @property
    def is_collecting(self) -> bool:
        return self.state is SessionState.COLLECTING

    @classmethod
    def idle(cls, user_id: int) -> "Session":
        return cls(user_id=user_id)

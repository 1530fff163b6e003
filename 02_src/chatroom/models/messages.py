"""Message-related data models."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time, timezone-aware UTC."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Normalize a datetime to UTC (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class ChatMessage:
    """A persisted chat message.

    Author fields are a snapshot taken at send time, not a live reference
    to the author's profile.
    """

    id: str
    user_id: str
    user_name: str
    content: str
    user_avatar: str | None = None
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.id:
            self.id = str(uuid.uuid4())
        self.created_at = as_utc(self.created_at)

    def to_wire(self) -> dict:
        """Realtime/JSON representation (camelCase, as the browser client uses)."""
        return {
            "id": self.id,
            "userId": self.user_id,
            "userName": self.user_name,
            "userAvatar": self.user_avatar,
            "content": self.content,
            "timestamp": self.created_at.isoformat(),
        }

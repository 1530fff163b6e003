"""Participant and profile data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Participant:
    """A whitelisted user's identity as seen by the chat room."""

    id: str
    name: str
    avatar: str | None = None

    def to_wire(self) -> dict:
        """Snapshot used in presence events."""
        return {
            "userId": self.id,
            "userName": self.name,
            "userAvatar": self.avatar,
        }


@dataclass
class UserProfile:
    """A registered account, owned by the identity gate."""

    id: str
    email: str
    name: str
    created_at: datetime
    profile_picture_url: str | None = None

    def to_participant(self) -> Participant:
        return Participant(id=self.id, name=self.name, avatar=self.profile_picture_url)

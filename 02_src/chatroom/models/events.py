"""Realtime event names and envelopes."""

from dataclasses import dataclass, field
from enum import Enum


class EventName(str, Enum):
    """Event names on the realtime channel."""

    # client -> relay
    JOIN = "user:join"
    MESSAGE_SEND = "message:send"
    TYPING_START = "typing:start"
    TYPING_STOP = "typing:stop"

    # relay -> clients
    JOINED = "user:joined"
    ONLINE = "users:online"
    MESSAGE_RECEIVED = "message:received"
    USER_TYPING = "user:typing"
    USER_STOPPED_TYPING = "user:stopped-typing"
    LEFT = "user:left"
    ERROR = "error"


class ConnectionState(str, Enum):
    """Lifecycle of a realtime connection."""

    UNJOINED = "unjoined"
    JOINED = "joined"
    CLOSED = "closed"


@dataclass
class RelayEvent:
    """One frame on the realtime channel."""

    event: str
    data: dict | list = field(default_factory=dict)

    def to_wire(self) -> dict:
        return {"event": self.event, "data": self.data}

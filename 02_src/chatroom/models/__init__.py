"""Core data models for the chat server."""

from .events import ConnectionState, EventName, RelayEvent
from .messages import ChatMessage, as_utc, utc_now
from .participant import Participant, UserProfile
from .tracing import TraceEvent

__all__ = [
    # Messages
    "ChatMessage",
    "as_utc",
    "utc_now",
    # Identity
    "Participant",
    "UserProfile",
    # Realtime
    "ConnectionState",
    "EventName",
    "RelayEvent",
    # Tracing
    "TraceEvent",
]

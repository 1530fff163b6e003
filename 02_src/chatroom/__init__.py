"""Approved chat server."""

from .admission import IMessagePipeline, MessagePipeline, RetentionSweeper
from .app import Application, IApplication
from .config import Settings
from .errors import (
    AuthenticationError,
    ChatError,
    ConflictError,
    InvalidTransitionError,
    NotApprovedError,
    NotFoundError,
    PayloadError,
)
from .identity import IdentityGate, IIdentityGate
from .models import (
    ChatMessage,
    ConnectionState,
    EventName,
    Participant,
    RelayEvent,
    TraceEvent,
    UserProfile,
)
from .presence import IPresenceRegistry, PresenceRegistry
from .relay import Connection, IRelay, Relay
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker

__all__ = [
    # Application
    "Application",
    "IApplication",
    "Settings",
    # Models
    "ChatMessage",
    "ConnectionState",
    "EventName",
    "Participant",
    "RelayEvent",
    "TraceEvent",
    "UserProfile",
    # Errors
    "AuthenticationError",
    "ChatError",
    "ConflictError",
    "InvalidTransitionError",
    "NotApprovedError",
    "NotFoundError",
    "PayloadError",
    # Components
    "IStorage",
    "Storage",
    "ITracker",
    "Tracker",
    "IIdentityGate",
    "IdentityGate",
    "IPresenceRegistry",
    "PresenceRegistry",
    "Connection",
    "IRelay",
    "Relay",
    "IMessagePipeline",
    "MessagePipeline",
    "RetentionSweeper",
]

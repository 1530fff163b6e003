"""Tracing and observability data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class TraceEvent:
    """A recorded occurrence for the observability API."""

    id: str
    event_type: str  # e.g. "message_admitted", "retention_trimmed"
    actor: str  # component that recorded it
    data: dict
    timestamp: datetime

"""In-memory presence registry."""

from typing import Protocol

from ..models import Participant


class IPresenceRegistry(Protocol):
    """Who is online, keyed by connection id."""

    def register(self, connection_id: str, participant: Participant) -> None:
        """Insert or overwrite the entry for a connection."""
        ...

    def unregister(self, connection_id: str) -> Participant | None:
        """Remove the entry if present; return the removed participant."""
        ...

    def list(self) -> list[Participant]:
        """Snapshot of online participants."""
        ...

    def lookup(self, connection_id: str) -> Participant | None:
        """Participant for a connection, or None before join."""
        ...


class PresenceRegistry:
    """Connection id -> Participant.

    Only touched from the event loop thread; no locking.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Participant] = {}

    def register(self, connection_id: str, participant: Participant) -> None:
        """Insert or overwrite the entry for a connection."""
        self._entries[connection_id] = participant

    def unregister(self, connection_id: str) -> Participant | None:
        """Remove the entry if present; return the removed participant."""
        return self._entries.pop(connection_id, None)

    def list(self) -> list[Participant]:
        """Snapshot of online participants."""
        return list(self._entries.values())

    def lookup(self, connection_id: str) -> Participant | None:
        """Participant for a connection, or None before join."""
        return self._entries.get(connection_id)

"""Per-connection state machine and outbound queue."""

import asyncio
from typing import Awaitable, Callable

from ..errors import InvalidTransitionError
from ..logging_config import get_logger
from ..models import ConnectionState, Participant, RelayEvent

logger = get_logger(__name__)

# Sends one JSON-ready frame over the underlying transport
Transport = Callable[[dict], Awaitable[None]]

DEFAULT_OUTBOX_SIZE = 1000


class Connection:
    """One live realtime session.

    States: unjoined -> joined (-> joined on re-join) -> closed.
    Outbound events are queued and drained by `pump()`.

    `principal` is the signed-in participant the transport was authenticated
    as, or None when the relay runs without authentication.
    """

    def __init__(
        self,
        connection_id: str,
        outbox_size: int = DEFAULT_OUTBOX_SIZE,
        principal: Participant | None = None,
    ):
        self.connection_id = connection_id
        self.principal = principal
        self.participant: Participant | None = None
        self.state = ConnectionState.UNJOINED
        self._outbox: asyncio.Queue[RelayEvent | None] = asyncio.Queue(maxsize=outbox_size)

    @property
    def is_joined(self) -> bool:
        return self.state == ConnectionState.JOINED

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    def join(self, participant: Participant) -> None:
        """Associate a participant (overwrites on re-join)."""
        if self.is_closed:
            raise InvalidTransitionError(f"Connection {self.connection_id} is closed")
        self.participant = participant
        self.state = ConnectionState.JOINED

    def close(self) -> Participant | None:
        """Move to closed. Returns the participant if the connection had joined."""
        if self.is_closed:
            raise InvalidTransitionError(f"Connection {self.connection_id} is already closed")
        participant = self.participant if self.is_joined else None
        self.state = ConnectionState.CLOSED
        # Wake the writer so it can exit
        try:
            self._outbox.put_nowait(None)
        except asyncio.QueueFull:
            pass
        return participant

    def enqueue(self, event: RelayEvent) -> bool:
        """Queue an event for delivery. False if closed or the queue is full."""
        if self.is_closed:
            return False
        try:
            self._outbox.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(
                "Outbox full, dropping %s for %s", event.event, self.connection_id
            )
            return False
        return True

    def pending(self) -> list[RelayEvent]:
        """Drain queued events without waiting."""
        events = []
        while not self._outbox.empty():
            event = self._outbox.get_nowait()
            if event is not None:
                events.append(event)
        return events

    async def pump(self, transport: Transport) -> bool:
        """Deliver queued events until the connection closes or the transport fails.

        Returns False if the transport failed.
        """
        while True:
            event = await self._outbox.get()
            if event is None:
                return True
            try:
                await transport(event.to_wire())
            except Exception as e:
                logger.error(
                    "Delivery to %s failed: %s", self.connection_id, e,
                    extra={"context": {"connection_id": self.connection_id, "event": event.event}},
                )
                return False

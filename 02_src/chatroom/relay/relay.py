"""Realtime relay: join / broadcast / disconnect protocol."""

import uuid
from typing import Any, Protocol

from ..errors import PayloadError
from ..logging_config import get_logger
from ..models import EventName, Participant, RelayEvent
from ..presence import IPresenceRegistry
from .connection import Connection, Transport
from .protocol import JoinPayload, MessagePayload, TypingPayload, validate_payload

logger = get_logger(__name__)


class IRelay(Protocol):
    """Fans realtime events out to connected sessions."""

    def attach(
        self, connection_id: str | None = None, principal: Participant | None = None
    ) -> Connection:
        """Create an unjoined connection, optionally bound to a signed-in participant."""
        ...

    def detach(self, connection_id: str) -> Participant | None:
        """Tear down a connection; broadcast departure if it had joined."""
        ...

    def dispatch(self, connection_id: str, event: str, data: Any) -> None:
        """Route one inbound frame."""
        ...

    def online(self) -> list[Participant]:
        """Current presence snapshot."""
        ...


class Relay:
    """Single-process relay.

    All operations are synchronous: outbound events are queued on each
    connection in processing order, and each connection's writer drains its
    own queue. The relay never touches persistent storage.
    """

    def __init__(self, registry: IPresenceRegistry):
        self._registry = registry
        self._connections: dict[str, Connection] = {}

    @property
    def registry(self) -> IPresenceRegistry:
        return self._registry

    @property
    def connections(self) -> dict[str, Connection]:
        return dict(self._connections)

    def attach(
        self, connection_id: str | None = None, principal: Participant | None = None
    ) -> Connection:
        """Create an unjoined connection, optionally bound to a signed-in participant."""
        connection = Connection(connection_id or uuid.uuid4().hex, principal=principal)
        self._connections[connection.connection_id] = connection
        logger.info("Connection attached: %s", connection.connection_id)
        return connection

    def detach(self, connection_id: str) -> Participant | None:
        """Tear down a connection; broadcast departure if it had joined.

        Abrupt transport loss and explicit disconnect both land here.
        Unknown or already-detached ids are a no-op.
        """
        connection = self._connections.pop(connection_id, None)
        participant = self._registry.unregister(connection_id)
        if connection is not None:
            connection.close()

        if participant is not None:
            self.broadcast(
                RelayEvent(
                    event=EventName.LEFT.value,
                    data={
                        "userId": participant.id,
                        "userName": participant.name,
                        "socketId": connection_id,
                    },
                )
            )
            logger.info("%s left the chat", participant.name)

        if connection is not None:
            logger.info("Connection detached: %s", connection_id)
        return participant

    def dispatch(self, connection_id: str, event: str, data: Any) -> None:
        """Route one inbound frame. Malformed payloads get an error reply."""
        handlers = {
            EventName.JOIN.value: self.join,
            EventName.MESSAGE_SEND.value: self.relay_message,
            EventName.TYPING_START.value: self.typing_start,
            EventName.TYPING_STOP.value: self.typing_stop,
        }
        handler = handlers.get(event)
        if handler is None:
            self._reply_error(connection_id, event, f"Unknown event: {event}")
            return

        try:
            handler(connection_id, data)
        except PayloadError as e:
            logger.warning("Rejected %s from %s: %s", event, connection_id, e.message)
            self._reply_error(connection_id, event, e.message)

    def join(self, connection_id: str, data: Any) -> Participant:
        """Register presence, announce to everyone, send the online list to the sender.

        A connection bound to a signed-in participant always joins as that
        participant: a different userId is rejected, and name and avatar come
        from the session rather than the payload.
        """
        payload = validate_payload(JoinPayload, data)

        connection = self._connections.get(connection_id)
        if connection is None or connection.is_closed:
            raise PayloadError(f"Connection {connection_id} is not attached")

        if connection.principal is None:
            participant = payload.to_participant()
        elif payload.userId != connection.principal.id:
            raise PayloadError("userId does not match the signed-in user")
        else:
            participant = connection.principal

        connection.join(participant)
        self._registry.register(connection_id, participant)

        self.broadcast(
            RelayEvent(
                event=EventName.JOINED.value,
                data={**participant.to_wire(), "socketId": connection_id},
            )
        )
        self.send_to(
            connection_id,
            RelayEvent(
                event=EventName.ONLINE.value,
                data=[p.to_wire() for p in self._registry.list()],
            ),
        )
        logger.info("%s joined the chat", participant.name)
        return participant

    def relay_message(self, connection_id: str, data: Any) -> int:
        """Broadcast a chat message to every connection, sender included."""
        validate_payload(MessagePayload, data)
        delivered = self.broadcast(
            RelayEvent(event=EventName.MESSAGE_RECEIVED.value, data=data)
        )
        logger.debug(
            "Message %s relayed to %d connections", data["id"], delivered,
            extra={"context": {"message_id": data["id"], "user_id": data["userId"]}},
        )
        return delivered

    def typing_start(self, connection_id: str, data: Any) -> int:
        validate_payload(TypingPayload, data)
        return self.broadcast(
            RelayEvent(event=EventName.USER_TYPING.value, data=data),
            exclude=connection_id,
        )

    def typing_stop(self, connection_id: str, data: Any) -> int:
        validate_payload(TypingPayload, data)
        return self.broadcast(
            RelayEvent(event=EventName.USER_STOPPED_TYPING.value, data=data),
            exclude=connection_id,
        )

    def broadcast(self, event: RelayEvent, exclude: str | None = None) -> int:
        """Queue an event on every connection (optionally but one).

        A failure for one connection never stops delivery to the rest.
        Returns the number of connections the event was queued for.
        """
        delivered = 0
        for connection_id, connection in list(self._connections.items()):
            if connection_id == exclude:
                continue
            try:
                if connection.enqueue(event):
                    delivered += 1
            except Exception as e:
                logger.error("Error queueing %s for %s: %s", event.event, connection_id, e)
        return delivered

    def send_to(self, connection_id: str, event: RelayEvent) -> bool:
        """Queue an event for one connection."""
        connection = self._connections.get(connection_id)
        if connection is None:
            return False
        return connection.enqueue(event)

    def online(self) -> list[Participant]:
        """Current presence snapshot."""
        return self._registry.list()

    async def deliver(self, connection_id: str, transport: Transport) -> bool:
        """Run the writer for one connection.

        A failed send detaches the connection at once, so broadcasts stop
        queueing for it. Returns False in that case.
        """
        connection = self._connections.get(connection_id)
        if connection is None:
            return True
        if await connection.pump(transport):
            return True
        self.detach(connection_id)
        return False

    def close_all(self) -> None:
        """Detach every connection (shutdown)."""
        for connection_id in list(self._connections):
            self.detach(connection_id)

    def _reply_error(self, connection_id: str, event: str, detail: str) -> None:
        self.send_to(
            connection_id,
            RelayEvent(event=EventName.ERROR.value, data={"event": event, "detail": detail}),
        )

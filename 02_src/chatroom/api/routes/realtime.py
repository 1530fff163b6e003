"""Realtime WebSocket endpoint."""

import asyncio
import contextlib
import json

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from ...app import Application
from ...errors import PayloadError
from ...logging_config import get_logger
from ...models import EventName, RelayEvent
from ...relay import parse_frame

logger = get_logger(__name__)


def create_realtime_router(app: Application) -> APIRouter:
    """Create the `/ws` router.

    Frames are JSON text: {"event": "user:join", "data": {...}}.
    Auth: `?token=<session token>` when RELAY_REQUIRE_AUTH is on.
    """
    router = APIRouter(tags=["realtime"])

    @router.websocket("/ws")
    async def realtime(websocket: WebSocket, token: str | None = Query(None)) -> None:
        principal = None
        if app.settings.relay_require_auth:
            principal = await app.identity.current_participant(token)
            if principal is None:
                await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
                return

        await websocket.accept()
        relay = app.relay
        connection = relay.attach(principal=principal)

        async def write() -> None:
            if await relay.deliver(connection.connection_id, websocket.send_json):
                return
            # Send failed and the connection is already detached; end the reader too
            try:
                await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
            except Exception as e:
                logger.debug("Close after failed send on %s: %s", connection.connection_id, e)

        writer = asyncio.create_task(write())

        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    frame = parse_frame(json.loads(raw))
                except (ValueError, PayloadError) as e:
                    detail = e.message if isinstance(e, PayloadError) else "Invalid JSON"
                    relay.send_to(
                        connection.connection_id,
                        RelayEvent(event=EventName.ERROR.value, data={"event": None, "detail": detail}),
                    )
                    continue
                relay.dispatch(connection.connection_id, frame.event, frame.data)
        except WebSocketDisconnect:
            logger.debug("Client closed %s", connection.connection_id)
        except Exception as e:
            logger.error("Connection %s dropped: %s", connection.connection_id, e)
        finally:
            # Abrupt loss and explicit disconnect are handled the same way
            relay.detach(connection.connection_id)
            writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await writer

    return router

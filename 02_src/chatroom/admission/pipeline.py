"""Message admission: persist, then enforce retention."""

from datetime import datetime, timedelta, timezone
from typing import Protocol

from ..config import HISTORY_LIMIT, MAX_RETAINED_MESSAGES, MESSAGE_TTL
from ..logging_config import get_logger
from ..models import ChatMessage
from ..storage import IStorage
from ..tracker import ITracker

logger = get_logger(__name__)


class IMessagePipeline(Protocol):
    """Admits messages into the retention store."""

    async def submit(self, message: ChatMessage) -> bool:
        """Insert, then trim. True if the insert succeeded."""
        ...

    async def trim(self) -> int:
        """Enforce age and count retention. Never raises."""
        ...

    async def load_history(self, limit: int = HISTORY_LIMIT) -> list[ChatMessage]:
        """Most recent messages, oldest first."""
        ...


class MessagePipeline:
    """Admission pipeline over a Storage.

    Concurrent submits may run overlapping trims; deletes by id are
    idempotent, so the store converges to the retention window on the
    next pass.
    """

    def __init__(
        self,
        storage: IStorage,
        tracker: ITracker,
        max_messages: int = MAX_RETAINED_MESSAGES,
        ttl: timedelta = MESSAGE_TTL,
    ):
        self._storage = storage
        self._tracker = tracker
        self._max_messages = max_messages
        self._ttl = ttl

    @property
    def max_messages(self) -> int:
        return self._max_messages

    def cutoff(self, now: datetime | None = None) -> datetime:
        """Messages created before this instant are expired."""
        return (now or datetime.now(timezone.utc)) - self._ttl

    async def submit(self, message: ChatMessage) -> bool:
        """Insert, then trim. True if the insert succeeded."""
        try:
            await self._storage.insert_message(message)
        except Exception as e:
            logger.error(
                "Failed to store message %s: %s", message.id, e,
                extra={"context": {"message_id": message.id, "user_id": message.user_id}},
            )
            return False

        await self._tracker.track(
            event_type="message_admitted",
            actor="message_pipeline",
            data={"message_id": message.id, "user_id": message.user_id},
        )

        await self.trim()
        return True

    async def trim(self) -> int:
        """Enforce age and count retention. Never raises."""
        try:
            expired = await self._storage.delete_messages_before(self.cutoff())

            remaining = await self._storage.get_messages(order="asc")
            excess = len(remaining) - self._max_messages
            overflow = 0
            if excess > 0:
                ids_to_delete = [m.id for m in remaining[:excess]]
                overflow = await self._storage.delete_messages(ids_to_delete)
        except Exception as e:
            # Stale rows stay until the next successful pass
            logger.error("Failed to trim messages: %s", e, exc_info=True)
            return 0

        deleted = expired + overflow
        if deleted:
            logger.info("Retention removed %d messages (%d expired)", deleted, expired)
            await self._tracker.track(
                event_type="retention_trimmed",
                actor="message_pipeline",
                data={"expired": expired, "overflow": overflow},
            )
        return deleted

    async def load_history(self, limit: int = HISTORY_LIMIT) -> list[ChatMessage]:
        """Most recent messages, oldest first. Expired rows are filtered out."""
        newest_first = await self._storage.get_messages(
            limit=limit, order="desc", after=self.cutoff()
        )
        return list(reversed(newest_first))

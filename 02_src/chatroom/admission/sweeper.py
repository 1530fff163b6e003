"""Periodic retention sweep."""

import asyncio

from ..logging_config import get_logger
from ..tracker import ITracker
from .pipeline import IMessagePipeline

logger = get_logger(__name__)


class RetentionSweeper:
    """Runs pipeline.trim() every `interval` seconds in a background task."""

    def __init__(self, pipeline: IMessagePipeline, tracker: ITracker, interval: float):
        self._pipeline = pipeline
        self._tracker = tracker
        self._interval = interval
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the sweep loop. An interval of 0 disables it."""
        if self._running or self._interval <= 0:
            return
        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info("Retention sweeper started (every %ss)", self._interval)

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def sweep(self) -> int:
        """One pass. Returns number of deleted messages."""
        deleted = await self._pipeline.trim()
        await self._tracker.track(
            event_type="retention_swept",
            actor="retention_sweeper",
            data={"deleted": deleted},
        )
        return deleted

    async def _run(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self._interval)
                await self.sweep()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Retention sweep error: {e}", exc_info=True)

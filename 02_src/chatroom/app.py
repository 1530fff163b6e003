"""Application bootstrap and lifecycle management."""

from datetime import timedelta
from typing import Protocol

from .admission import IMessagePipeline, MessagePipeline, RetentionSweeper
from .config import Settings, resolve_db_path
from .identity import IdentityGate
from .logging_config import get_logger
from .presence import PresenceRegistry
from .relay import Relay
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Reset data between test runs."""
        ...


class Application:
    """Main application bootstrap."""

    def __init__(self, settings: Settings | None = None, db_path: str | None = None):
        self._settings = settings or Settings.from_env()
        self._db_path = resolve_db_path(
            db_path if db_path is not None else self._settings.database_url
        )

        # Components (initialized in start())
        self._storage: IStorage | None = None
        self._tracker: ITracker | None = None
        self._identity: IdentityGate | None = None
        self._registry: PresenceRegistry | None = None
        self._relay: Relay | None = None
        self._pipeline: IMessagePipeline | None = None
        self._sweeper: RetentionSweeper | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. Storage (no dependencies)
        self._storage = Storage(self._db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. Tracker (depends on Storage)
        self._tracker = Tracker(self._storage)

        # 3. IdentityGate (depends on Storage + Tracker)
        self._identity = IdentityGate(
            storage=self._storage,
            tracker=self._tracker,
            secret=self._settings.session_secret,
            session_ttl=timedelta(minutes=self._settings.session_ttl_minutes),
        )
        for email in self._settings.approved_emails:
            await self._identity.approve_email(email)
        logger.info(
            "IdentityGate initialized (%d seeded emails)",
            len(self._settings.approved_emails),
        )

        # 4. Relay owns its own registry (no storage access)
        self._registry = PresenceRegistry()
        self._relay = Relay(self._registry)
        logger.info("Relay initialized")

        # 5. MessagePipeline (depends on Storage + Tracker)
        self._pipeline = MessagePipeline(self._storage, self._tracker)

        # 6. RetentionSweeper (depends on MessagePipeline)
        self._sweeper = RetentionSweeper(
            self._pipeline,
            self._tracker,
            interval=self._settings.retention_sweep_seconds,
        )
        await self._sweeper.start()
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._sweeper:
            await self._sweeper.stop()
        if self._relay:
            self._relay.close_all()
            logger.info("Relay connections closed")
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Reset data between test runs."""
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")
        logger.info("Reset complete")

    @property
    def storage(self) -> IStorage:
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def identity(self) -> IdentityGate:
        if not self._identity:
            raise RuntimeError("Application not started")
        return self._identity

    @property
    def relay(self) -> Relay:
        if not self._relay:
            raise RuntimeError("Application not started")
        return self._relay

    @property
    def pipeline(self) -> IMessagePipeline:
        if not self._pipeline:
            raise RuntimeError("Application not started")
        return self._pipeline

    @property
    def sweeper(self) -> RetentionSweeper:
        if not self._sweeper:
            raise RuntimeError("Application not started")
        return self._sweeper

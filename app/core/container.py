"""Service container for dependency injection."""
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.core.config import Settings, settings
from app.core.exceptions import ServiceNotInitializedError
from app.infrastructure.database.repositories import EmployeeDirectoryRepository
from app.infrastructure.database.session import (
    create_engine,
    create_session_factory,
    get_db_session,
)
from app.infrastructure.database.unit_of_work import UnitOfWork
from app.services.aws.rekognition import RekognitionFaceRegistry
from app.services.fingerprint_backfill import FingerprintBackfillService
from app.services.image_fetcher import HttpImageFetcher
from app.services.reconciliation import ReconciliationService
from app.services.run_guard import RunGuard
from app.services.scheduler import BackgroundSyncScheduler


class ServiceContainer:
    """Container for application services.

    This container manages the lifecycle and dependencies of all services in the application.
    Database engines own the connection pools; every job run borrows one session
    per database through ``index_unit_of_work`` and ``directory``.

    Example:
        ```python
        container = ServiceContainer()
        await container.initialize()

        summary = await container.reconciliation_service.sync_employees()
        ```
    """

    def __init__(self, config: Optional[Settings] = None) -> None:
        """Initialize empty container."""
        self.config = config or settings

        # Infrastructure
        self.index_engine: Optional[AsyncEngine] = None
        self.directory_engine: Optional[AsyncEngine] = None
        self._index_sessions: Optional[async_sessionmaker[AsyncSession]] = None
        self._directory_sessions: Optional[async_sessionmaker[AsyncSession]] = None
        self.image_fetcher: Optional[HttpImageFetcher] = None
        self.face_registry: Optional[RekognitionFaceRegistry] = None
        self.run_guard: Optional[RunGuard] = None

        # Jobs
        self.reconciliation_service: Optional[ReconciliationService] = None
        self.fingerprint_backfill_service: Optional[FingerprintBackfillService] = None
        self.scheduler: Optional[BackgroundSyncScheduler] = None

    @property
    def initialized(self) -> bool:
        return self.reconciliation_service is not None

    async def initialize(self) -> None:
        """Initialize all services in the correct order."""
        if self.initialized:
            return
        cfg = self.config

        self.index_engine = create_engine(cfg.index_database_url)
        self.directory_engine = create_engine(cfg.directory_database_url)
        self._index_sessions = create_session_factory(self.index_engine)
        self._directory_sessions = create_session_factory(self.directory_engine)

        self.image_fetcher = HttpImageFetcher(
            probe_timeout=cfg.IMAGE_PROBE_TIMEOUT,
            download_timeout=cfg.IMAGE_DOWNLOAD_TIMEOUT,
            min_bytes=cfg.MIN_IMAGE_BYTES,
        )
        self.face_registry = RekognitionFaceRegistry(
            collection_id=cfg.REKOGNITION_COLLECTION_ID,
            region_name=cfg.AWS_REGION,
            access_key_id=cfg.AWS_ACCESS_KEY_ID,
            secret_access_key=cfg.AWS_SECRET_ACCESS_KEY,
        )
        self.run_guard = RunGuard()

        self.reconciliation_service = ReconciliationService(
            index_scope=self.index_unit_of_work,
            directory_scope=self.directory,
            image_fetcher=self.image_fetcher,
            face_registry=self.face_registry,
            run_guard=self.run_guard,
            image_base_url=cfg.SOURCE_IMAGE_BASE_URL,
            collection_id=cfg.REKOGNITION_COLLECTION_ID,
            external_id_prefix=cfg.EXTERNAL_ID_PREFIX,
            min_image_bytes=cfg.MIN_IMAGE_BYTES,
        )
        self.fingerprint_backfill_service = FingerprintBackfillService(
            index_scope=self.index_unit_of_work,
            image_fetcher=self.image_fetcher,
            run_guard=self.run_guard,
            min_image_bytes=cfg.MIN_IMAGE_BYTES,
        )
        self.scheduler = BackgroundSyncScheduler(
            job=self.reconciliation_service.sync_employees,
            interval_seconds=cfg.SYNC_INTERVAL_SECONDS,
        )

    @asynccontextmanager
    async def index_unit_of_work(self) -> AsyncGenerator[UnitOfWork, None]:
        """Borrow one face index session for the duration of a run."""
        if self._index_sessions is None:
            raise ServiceNotInitializedError("Face index database not initialized")
        async with get_db_session(self._index_sessions) as session:
            async with UnitOfWork(session) as uow:
                yield uow

    @asynccontextmanager
    async def directory(self) -> AsyncGenerator[EmployeeDirectoryRepository, None]:
        """Borrow one employee directory session for the duration of a run."""
        if self._directory_sessions is None:
            raise ServiceNotInitializedError("Employee directory database not initialized")
        async with get_db_session(self._directory_sessions) as session:
            yield EmployeeDirectoryRepository(session, self.config.ACTIVE_STATUS)

    async def cleanup(self) -> None:
        """Cleanup all services in reverse order of initialization."""
        if self.scheduler:
            await self.scheduler.stop()
            self.scheduler = None

        self.fingerprint_backfill_service = None
        self.reconciliation_service = None
        self.face_registry = None
        self.image_fetcher = None
        self.run_guard = None

        for engine in (self.index_engine, self.directory_engine):
            if engine is not None:
                await engine.dispose()
        self.index_engine = None
        self.directory_engine = None
        self._index_sessions = None
        self._directory_sessions = None


# Global container instance
container = ServiceContainer()

"""FastAPI dependency providers."""
from typing import AsyncGenerator

from fastapi import Depends

from app.core.container import ServiceContainer, container
from app.core.exceptions import ServiceNotInitializedError
from app.services.fingerprint_backfill import FingerprintBackfillService
from app.services.reconciliation import ReconciliationService


async def get_container() -> ServiceContainer:
    """Dependency provider for the global ServiceContainer instance."""
    if not container.initialized:
        try:
            await container.initialize()
        except Exception as e:
            raise ServiceNotInitializedError(f"Service container could not be initialized: {e}")
    return container


async def get_reconciliation_service(
    container: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[ReconciliationService, None]:
    """Dependency provider for ReconciliationService."""
    if not container.reconciliation_service:
        raise ServiceNotInitializedError("ReconciliationService not found in initialized container")
    yield container.reconciliation_service


async def get_fingerprint_backfill_service(
    container: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[FingerprintBackfillService, None]:
    """Dependency provider for FingerprintBackfillService."""
    if not container.fingerprint_backfill_service:
        raise ServiceNotInitializedError("FingerprintBackfillService not found in initialized container")
    yield container.fingerprint_backfill_service

"""Job trigger API endpoints."""
from typing import Awaitable, Callable, Union

from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse

from app.api.models.jobs import JobResponse
from app.core.exceptions import JobAlreadyRunningError
from app.core.logging import get_logger
from app.infrastructure.dependencies import (
    get_fingerprint_backfill_service,
    get_reconciliation_service,
)
from app.services.fingerprint_backfill import FingerprintBackfillService
from app.services.models import BackfillSummary, SyncSummary
from app.services.reconciliation import ReconciliationService

logger = get_logger(__name__)
router = APIRouter(
    tags=["jobs"],
    responses={
        409: {"model": JobResponse, "description": "Another job is running"},
        500: {"model": JobResponse, "description": "Job failed"}
    }
)


async def _run_job(
    name: str,
    job: Callable[[], Awaitable[Union[SyncSummary, BackfillSummary]]],
) -> Union[JobResponse, JSONResponse]:
    try:
        result = await job()
        return JobResponse.ok(result)
    except JobAlreadyRunningError as e:
        logger.info("Job rejected, another run in progress", job=name, error=str(e))
        return JSONResponse(status_code=409, content=JobResponse.failed(str(e)).model_dump())
    except Exception as e:
        logger.error("Job failed", job=name, error=str(e), exc_info=True)
        return JSONResponse(status_code=500, content=JobResponse.failed(str(e)).model_dump())


@router.post(
    "/sync-employees",
    response_model=JobResponse,
    summary="Synchronize employee faces",
    description="Indexes new employees and re-indexes employees whose photo changed.",
)
async def sync_employees(
    service: ReconciliationService = Depends(get_reconciliation_service)
) -> Union[JobResponse, JSONResponse]:
    """Run a full reconciliation pass now.

    Args:
        service: Reconciliation service provided by dependency injection

    Returns:
        JobResponse with new/updated/ignored/errored counts
    """
    return await _run_job("sync-employees", service.sync_employees)


@router.post(
    "/update-fingerprints",
    response_model=JobResponse,
    summary="Backfill missing fingerprints",
    description="Computes fingerprints for active entries indexed without one.",
)
async def update_fingerprints(
    service: FingerprintBackfillService = Depends(get_fingerprint_backfill_service)
) -> Union[JobResponse, JSONResponse]:
    """Fingerprint every active entry that has none."""
    return await _run_job("update-fingerprints", service.update_missing_fingerprints)

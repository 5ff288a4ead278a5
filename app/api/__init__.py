"""API v1 router initialization."""
from fastapi import APIRouter

from .jobs import router as jobs_router

# Create v1 router
router = APIRouter()

# Include job trigger endpoints
router.include_router(
    jobs_router,
    prefix="/jobs",
    tags=["jobs"]
)

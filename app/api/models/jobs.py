"""API specific job models."""
from typing import Dict, Optional, Union

from pydantic import BaseModel, Field

from app.services.models import BackfillSummary, SyncSummary


class JobResponse(BaseModel):
    """Envelope returned by job trigger endpoints."""
    success: bool = Field(..., description="Whether the run completed")
    result: Optional[Dict[str, int]] = Field(
        None, description="Run summary counts, present on success"
    )
    error: Optional[str] = Field(None, description="Error message, present on failure")

    @classmethod
    def ok(cls, summary: Union[SyncSummary, BackfillSummary]) -> "JobResponse":
        return cls(success=True, result=summary.model_dump())

    @classmethod
    def failed(cls, error: str) -> "JobResponse":
        return cls(success=False, error=error)

"""Service-specific models.

This module contains models used by services that are independent of the API layer.
"""
from pydantic import BaseModel, Field

from app.domain.value_objects.reconciliation import ChangeClassification, ReconciliationOutcome


class SyncSummary(BaseModel):
    """Counts produced by one reconciliation run."""
    new: int = Field(0, description="Identities indexed for the first time")
    updated: int = Field(0, description="Identities re-indexed with a new photo")
    ignored: int = Field(0, description="Unchanged, refreshed or merged identities")
    errored: int = Field(0, description="Identities that failed this run")

    @property
    def total(self) -> int:
        return self.new + self.updated + self.ignored + self.errored

    def record(self, outcome: ReconciliationOutcome, classification: ChangeClassification) -> None:
        """Count one record outcome in its bucket."""
        if outcome is ReconciliationOutcome.ERROR:
            self.errored += 1
        elif outcome is ReconciliationOutcome.NEWLY_INDEXED:
            if classification is ChangeClassification.NEW_IDENTITY:
                self.new += 1
            else:
                self.updated += 1
        else:
            self.ignored += 1


class BackfillSummary(BaseModel):
    """Counts produced by one fingerprint backfill run."""
    total: int = Field(0, description="Active entries without a fingerprint")
    updated: int = Field(0, description="Entries that received a fingerprint")
    skipped: int = Field(0, description="Entries without an image URL")
    errored: int = Field(0, description="Entries whose image could not be fingerprinted")

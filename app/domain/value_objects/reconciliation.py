"""Reconciliation value objects."""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.domain.entities.index_entry import IndexEntry, ResourceMetadata


class ChangeClassification(str, Enum):
    """Why a source record does or does not need work."""
    UNCHANGED = "unchanged"
    METADATA_REFRESH_NEEDED = "metadata-refresh-needed"
    NEW_IDENTITY = "new-identity"
    URL_CHANGED = "url-changed"


class ReconciliationOutcome(str, Enum):
    """Final result of reconciling one source record."""
    UNCHANGED = "unchanged"
    METADATA_REFRESHED = "metadata-refreshed"
    MERGED_DUPLICATE = "merged-duplicate"
    NEWLY_INDEXED = "newly-indexed"
    ERROR = "error"


class ChangeDecision(BaseModel):
    """Classification of a source record plus what is needed to act on it."""
    classification: ChangeClassification
    image_url: str = Field(..., description="Resolved URL of the source image")
    current_metadata: ResourceMetadata
    existing_entries: List[IndexEntry] = Field(default_factory=list)
    url_match: Optional[IndexEntry] = Field(
        None, description="Active entry already built from the same URL, if any"
    )

    @property
    def requires_download(self) -> bool:
        return self.classification is not ChangeClassification.UNCHANGED


class RegistrationResult(BaseModel):
    """Face registered in the remote collection."""
    face_id: str
    confidence: Optional[float] = None
    raw_metadata: Dict[str, Any] = Field(default_factory=dict)

"""Core face index domain entities."""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


class ResourceMetadata(BaseModel):
    """Cheap HTTP-level change proxies for a source image."""
    size: Optional[int] = Field(None, description="Last observed Content-Length in bytes")
    modified_at: Optional[str] = Field(None, description="Last observed Last-Modified header")

    @property
    def is_known(self) -> bool:
        """Whether both change proxies were observed."""
        return self.size is not None and self.modified_at is not None

    def matches(self, other: "ResourceMetadata") -> bool:
        """Compare two observations; an absent value never matches anything."""
        return (
            self.is_known
            and other.is_known
            and self.size == other.size
            and self.modified_at == other.modified_at
        )


class SourceRecord(BaseModel):
    """Employee row read from the directory."""
    identity: str = Field(..., description="Unique person identifier")
    image_reference: str = Field(..., description="Directory-relative photo path or absolute URL")
    status: str = Field(..., description="Employment status as stored in the directory")

    @field_validator("identity", mode="before")
    @classmethod
    def normalize_identity(cls, v: Any) -> str:
        """Identifiers arrive as numbers or padded strings depending on the source column."""
        return str(v).strip()


class IndexEntry(BaseModel):
    """Local record linking an identity to its registered remote face."""
    entry_id: int = Field(..., description="Surrogate key, increasing with creation order")
    identity: str = Field(..., description="Person identifier")
    remote_face_id: Optional[str] = Field(None, description="Face id in the remote collection")
    image_source_url: str = Field(..., description="Exact URL the entry was built from")
    fingerprint: Optional[str] = Field(None, description="dHash of the indexed image")
    resource_metadata: ResourceMetadata = Field(default_factory=ResourceMetadata)
    provider_metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Opaque registration details returned by the face provider"
    )
    external_id: Optional[str] = Field(None, description="External image id sent to the provider")
    collection_id: Optional[str] = Field(None, description="Remote collection of the face")
    confidence: Optional[float] = Field(None, description="Provider detection confidence")
    active: bool = Field(True, description="False once superseded")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")

"""SQLAlchemy models for the face index sync service."""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for face index models."""
    pass


class IndexedFace(Base):
    """Face registered in the remote collection for one employee photo."""

    __tablename__ = "indexed_faces"
    __table_args__ = (
        Index("idx_indexed_faces_identity_active", "identity", "active"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    identity: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Employee identification number"
    )
    face_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        comment="Face id in the remote collection"
    )
    external_image_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="External image id sent to the face provider"
    )
    collection_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Remote collection holding the face"
    )
    image_source_url: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        comment="URL of the photo this entry was built from"
    )
    fingerprint: Mapped[Optional[str]] = mapped_column(
        String(16),
        nullable=True,
        comment="dHash of the indexed photo"
    )
    http_size: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        nullable=True,
        comment="Content-Length observed for the photo"
    )
    http_modified_at: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        comment="Last-Modified observed for the photo"
    )
    confidence: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment="Face detection confidence reported by the provider"
    )
    provider_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True,
        comment="Raw registration details from the face provider"
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow
    )


# The employee directory is owned by another system; it is only ever read.
directory_metadata = MetaData()

employee_directory = Table(
    "employee_directory",
    directory_metadata,
    Column("identity_number", String(64), nullable=False),
    Column("photo_path", String(1024), nullable=True),
    Column("employment_status", String(32), nullable=True),
)

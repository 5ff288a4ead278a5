"""Database repositories for the face index sync service."""
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DirectoryError, IndexStoreError
from app.core.logging import get_logger
from app.domain.entities.index_entry import IndexEntry, ResourceMetadata, SourceRecord
from app.domain.interfaces.storage import IndexStore, SourceDirectory
from app.infrastructure.database.models import IndexedFace, employee_directory
from app.services.change_detection import select_superseded_duplicates

logger = get_logger(__name__)


def to_entry(face: IndexedFace) -> IndexEntry:
    """Convert an ORM row to a domain entry."""
    return IndexEntry(
        entry_id=face.id,
        identity=face.identity,
        remote_face_id=face.face_id,
        image_source_url=face.image_source_url,
        fingerprint=face.fingerprint,
        resource_metadata=ResourceMetadata(
            size=face.http_size,
            modified_at=face.http_modified_at
        ),
        provider_metadata=face.provider_metadata or {},
        external_id=face.external_image_id,
        collection_id=face.collection_id,
        confidence=face.confidence,
        active=face.active,
        created_at=face.created_at,
    )


class IndexedFaceRepository(IndexStore):
    """Repository for indexed face operations.

    Mutations are flushed, never committed; the unit of work owns the transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository.

        Args:
            session: Database session
        """
        self._session = session

    async def list_active(self, identity: Optional[str] = None) -> List[IndexEntry]:
        """List active entries, optionally for a single identity.

        Args:
            identity: Employee identification number

        Returns:
            List[IndexEntry]: Active entries ordered by id

        Raises:
            IndexStoreError: If the query fails
        """
        stmt = select(IndexedFace).where(IndexedFace.active.is_(True))
        if identity is not None:
            stmt = stmt.where(IndexedFace.identity == identity)
        stmt = stmt.order_by(IndexedFace.id)
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise IndexStoreError(f"Failed to list active faces: {e}") from e
        return [to_entry(face) for face in result.scalars().all()]

    async def list_missing_fingerprints(self) -> List[IndexEntry]:
        """List active entries without a fingerprint.

        Returns:
            List[IndexEntry]: Entries ordered by id
        """
        stmt = (
            select(IndexedFace)
            .where(IndexedFace.active.is_(True), IndexedFace.fingerprint.is_(None))
            .order_by(IndexedFace.id)
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise IndexStoreError(f"Failed to list faces without fingerprint: {e}") from e
        return [to_entry(face) for face in result.scalars().all()]

    async def collapse_duplicates(self) -> List[IndexEntry]:
        """Deactivate all but the newest active entry of every identity.

        Returns:
            List[IndexEntry]: Entries that were deactivated
        """
        superseded = select_superseded_duplicates(await self.list_active())
        if not superseded:
            return []

        # Ids are resolved first: MySQL cannot update a table it selects from
        ids = [entry.entry_id for entry in superseded]
        stmt = update(IndexedFace).where(IndexedFace.id.in_(ids)).values(active=False)
        try:
            await self._session.execute(stmt)
            await self._session.flush()
        except SQLAlchemyError as e:
            raise IndexStoreError(f"Failed to collapse duplicate faces: {e}") from e

        logger.info("Collapsed duplicate active faces", count=len(ids))
        return [entry.model_copy(update={"active": False}) for entry in superseded]

    async def create(
        self,
        identity: str,
        remote_face_id: str,
        image_source_url: str,
        fingerprint: Optional[str],
        resource_metadata: ResourceMetadata,
        external_id: str,
        collection_id: str,
        confidence: Optional[float] = None,
        provider_metadata: Optional[Dict[str, Any]] = None,
    ) -> IndexEntry:
        """Create a new active face record.

        Args:
            identity: Employee identification number
            remote_face_id: Face id returned by the provider
            image_source_url: URL of the indexed photo
            fingerprint: dHash of the indexed photo
            resource_metadata: HTTP metadata observed for the photo
            external_id: External image id sent to the provider
            collection_id: Remote collection holding the face
            confidence: Detection confidence reported by the provider
            provider_metadata: Raw registration details

        Returns:
            IndexEntry: Created entry
        """
        face = IndexedFace(
            identity=identity,
            face_id=remote_face_id,
            external_image_id=external_id,
            collection_id=collection_id,
            image_source_url=image_source_url,
            fingerprint=fingerprint,
            http_size=resource_metadata.size,
            http_modified_at=resource_metadata.modified_at,
            confidence=confidence,
            provider_metadata=provider_metadata,
            active=True,
        )
        self._session.add(face)
        try:
            await self._session.flush()
        except SQLAlchemyError as e:
            raise IndexStoreError(f"Failed to create face record: {e}") from e
        return to_entry(face)

    async def update(
        self,
        entry_id: int,
        image_source_url: Optional[str] = None,
        resource_metadata: Optional[ResourceMetadata] = None,
        fingerprint: Optional[str] = None,
    ) -> None:
        """Update selected fields of a face record.

        Args:
            entry_id: Face record id
            image_source_url: New photo URL
            resource_metadata: New HTTP metadata (replaces both values)
            fingerprint: New fingerprint
        """
        values: Dict[str, Any] = {}
        if image_source_url is not None:
            values["image_source_url"] = image_source_url
        if resource_metadata is not None:
            values["http_size"] = resource_metadata.size
            values["http_modified_at"] = resource_metadata.modified_at
        if fingerprint is not None:
            values["fingerprint"] = fingerprint
        if not values:
            return

        stmt = update(IndexedFace).where(IndexedFace.id == entry_id).values(**values)
        try:
            await self._session.execute(stmt)
            await self._session.flush()
        except SQLAlchemyError as e:
            raise IndexStoreError(f"Failed to update face record {entry_id}: {e}") from e

    async def deactivate(self, entry_id: int) -> None:
        """Mark a face record inactive.

        Args:
            entry_id: Face record id
        """
        stmt = update(IndexedFace).where(IndexedFace.id == entry_id).values(active=False)
        try:
            await self._session.execute(stmt)
            await self._session.flush()
        except SQLAlchemyError as e:
            raise IndexStoreError(f"Failed to deactivate face record {entry_id}: {e}") from e


class EmployeeDirectoryRepository(SourceDirectory):
    """Read-only repository over the employee directory."""

    def __init__(self, session: AsyncSession, active_status: str) -> None:
        """Initialize repository.

        Args:
            session: Database session bound to the directory database
            active_status: Status value marking an active employee
        """
        self._session = session
        self._active_status = active_status

    async def list_active_records(self) -> List[SourceRecord]:
        """List active employees with a photo, one row per identity.

        Identities with several rows are reduced with MAX() over the photo path
        and status, so the chosen row does not depend on scan order.

        Returns:
            List[SourceRecord]: Records ordered by identity

        Raises:
            DirectoryError: If the query fails
        """
        table = employee_directory
        stmt = (
            select(
                table.c.identity_number,
                func.max(table.c.photo_path).label("photo_path"),
                func.max(table.c.employment_status).label("employment_status"),
            )
            .where(
                table.c.employment_status == self._active_status,
                table.c.photo_path.is_not(None),
                table.c.photo_path != "",
            )
            .group_by(table.c.identity_number)
            .order_by(table.c.identity_number)
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise DirectoryError(f"Failed to read employee directory: {e}") from e

        return [
            SourceRecord(
                identity=row.identity_number,
                image_reference=row.photo_path,
                status=row.employment_status,
            )
            for row in result
        ]

"""Face index store interface."""
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any, Dict, List, Optional

from ...entities.index_entry import IndexEntry, ResourceMetadata


class IndexStore(ABC):
    """Interface for reading and mutating face index entries.

    Entries are never physically removed; superseded entries are deactivated.
    """

    @abstractmethod
    async def list_active(self, identity: Optional[str] = None) -> List[IndexEntry]:
        """
        List active entries ordered by creation.

        Args:
            identity: Restrict to a single identity (None for all)

        Raises:
            IndexStoreError: If the query fails
        """
        pass

    @abstractmethod
    async def list_missing_fingerprints(self) -> List[IndexEntry]:
        """List active entries that have no stored fingerprint."""
        pass

    @abstractmethod
    async def collapse_duplicates(self) -> List[IndexEntry]:
        """
        Deactivate every active entry that is not the newest one for its identity.

        Returns:
            The entries that were deactivated
        """
        pass

    @abstractmethod
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
        """Insert a new active entry."""
        pass

    @abstractmethod
    async def update(
        self,
        entry_id: int,
        image_source_url: Optional[str] = None,
        resource_metadata: Optional[ResourceMetadata] = None,
        fingerprint: Optional[str] = None,
    ) -> None:
        """Update the given fields of an entry; None leaves a field untouched."""
        pass

    @abstractmethod
    async def deactivate(self, entry_id: int) -> None:
        """Mark an entry inactive."""
        pass


class IndexUnitOfWork(ABC):
    """Transactional scope over an index store."""

    faces: IndexStore

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def rollback(self) -> None:
        pass

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager:
        """Scope committed on success and rolled back on error."""
        pass

"""Employee directory interface."""
from abc import ABC, abstractmethod
from typing import List

from ...entities.index_entry import SourceRecord


class SourceDirectory(ABC):
    """Read-only source of record for employees and their photos."""

    @abstractmethod
    async def list_active_records(self) -> List[SourceRecord]:
        """
        List one record per identity for active employees with a photo.

        Returns:
            Source records, one per identity

        Raises:
            DirectoryError: If the directory cannot be read
        """
        pass

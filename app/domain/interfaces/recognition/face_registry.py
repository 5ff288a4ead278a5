"""Remote face registry interface."""
from abc import ABC, abstractmethod
from typing import Optional

from ...value_objects.reconciliation import RegistrationResult


class FaceRegistry(ABC):
    """Interface for registering faces in a remote recognition collection."""

    @abstractmethod
    async def register(
        self,
        image_bytes: bytes,
        external_id: str,
        collection_id: Optional[str] = None,
    ) -> RegistrationResult:
        """
        Register the main face of an image.

        Args:
            image_bytes: Raw image data
            external_id: Identifier stored alongside the face by the provider
            collection_id: Target collection (defaults to the configured one)

        Returns:
            RegistrationResult with the provider face id

        Raises:
            NoFaceDetectedError: If the image holds no usable face
            FaceRegistryError: If the provider rejects the request
        """
        pass

    @abstractmethod
    async def deregister(self, face_id: str, collection_id: Optional[str] = None) -> None:
        """
        Remove a face from the collection. Unknown ids are not an error.

        Raises:
            FaceRegistryError: If the provider rejects the request
        """
        pass

"""Custom exceptions for the face index sync service."""
from typing import Optional


class FaceIndexSyncError(Exception):
    """Base exception for face index sync operations."""

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize face index sync error.

        Args:
            message: Error description
            details: Additional error context
        """
        super().__init__(message)
        self.details = details or {}


class ImageFetchError(FaceIndexSyncError):
    """Raised when a source image cannot be downloaded (network, timeout, undersized response)."""
    pass


class InvalidImageError(FaceIndexSyncError):
    """Raised when the downloaded image is invalid or cannot be processed."""
    pass


class ImageTooSmallError(InvalidImageError):
    """Raised when the image is below the minimum byte size."""
    pass


class ImageDecodeError(InvalidImageError):
    """Raised when the image bytes cannot be decoded."""
    pass


class FaceRegistryError(FaceIndexSyncError):
    """Raised when the remote face collection rejects a registration or deregistration."""
    pass


class NoFaceDetectedError(FaceRegistryError):
    """Raised when no face is detected in the image sent for registration."""
    pass


class StoreError(FaceIndexSyncError):
    """Base exception for persistence operations."""
    pass


class IndexStoreError(StoreError):
    """Raised when a face index store operation fails."""
    pass


class DirectoryError(StoreError):
    """Raised when the employee directory cannot be read."""
    pass


class JobAlreadyRunningError(FaceIndexSyncError):
    """Raised when a job is triggered while another run is in flight."""
    pass


class ServiceNotInitializedError(FaceIndexSyncError):
    """Raised when a service is requested before the container is initialized."""
    pass

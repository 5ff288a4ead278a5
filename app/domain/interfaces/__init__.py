"""Service interfaces package."""
from .network import ImageFetcher
from .recognition import FaceRegistry
from .storage import IndexStore, IndexUnitOfWork, SourceDirectory

__all__ = ["FaceRegistry", "ImageFetcher", "IndexStore", "IndexUnitOfWork", "SourceDirectory"]

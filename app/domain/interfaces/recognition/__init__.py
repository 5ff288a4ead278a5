"""Recognition interfaces."""
from .face_registry import FaceRegistry

__all__ = ["FaceRegistry"]

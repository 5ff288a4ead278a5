"""Network interfaces."""
from .image_fetcher import ImageFetcher

__all__ = ["ImageFetcher"]

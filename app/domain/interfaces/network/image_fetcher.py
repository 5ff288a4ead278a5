"""Image fetcher interface."""
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from pathlib import Path

from ...entities.index_entry import ResourceMetadata


class ImageFetcher(ABC):
    """Interface for retrieving source images over the network."""

    @abstractmethod
    async def probe(self, url: str) -> ResourceMetadata:
        """
        Read cheap change proxies for a URL without downloading it.

        Never raises: failures yield an empty ResourceMetadata.
        """
        pass

    @abstractmethod
    def download(self, url: str) -> AbstractAsyncContextManager[Path]:
        """
        Download an image to a temporary file that lives for the scope of the context.

        Raises:
            ImageFetchError: On network errors, timeouts, bad status or undersized responses
        """
        pass

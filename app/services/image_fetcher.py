"""HTTP image fetcher for directory photos.

Uses ``requests`` off the event loop (``asyncio.to_thread``) so that slow image
hosts never block the API or the scheduler.
"""
import asyncio
import os
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

import requests

from app.core.config import settings
from app.core.exceptions import ImageFetchError
from app.core.logging import get_logger
from app.domain.entities.index_entry import ResourceMetadata
from app.domain.interfaces.network import ImageFetcher

logger = get_logger(__name__)

_CHUNK_SIZE = 64 * 1024


def _parse_content_length(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class HttpImageFetcher(ImageFetcher):
    """Fetches source images over HTTP with fixed timeouts and a size floor."""

    def __init__(
        self,
        probe_timeout: Optional[float] = None,
        download_timeout: Optional[float] = None,
        min_bytes: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Initialize the fetcher.

        Args:
            probe_timeout: Timeout of HEAD probes in seconds (defaults to settings)
            download_timeout: Timeout of downloads in seconds (defaults to settings)
            min_bytes: Smallest accepted image size (defaults to settings)
            session: Optional requests session to reuse connections
        """
        self.probe_timeout = probe_timeout or settings.IMAGE_PROBE_TIMEOUT
        self.download_timeout = download_timeout or settings.IMAGE_DOWNLOAD_TIMEOUT
        self.min_bytes = min_bytes if min_bytes is not None else settings.MIN_IMAGE_BYTES
        self._http = session or requests.Session()

    async def probe(self, url: str) -> ResourceMetadata:
        """Read Content-Length and Last-Modified with a HEAD request.

        Args:
            url: Image URL

        Returns:
            ResourceMetadata, empty when the probe fails
        """
        try:
            response = await asyncio.to_thread(
                self._http.head, url, timeout=self.probe_timeout, allow_redirects=True
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Could not probe image metadata", url=url, error=str(e))
            return ResourceMetadata()

        return ResourceMetadata(
            size=_parse_content_length(response.headers.get("Content-Length")),
            modified_at=response.headers.get("Last-Modified") or None,
        )

    @asynccontextmanager
    async def download(self, url: str) -> AsyncGenerator[Path, None]:
        """Download an image into a temporary file removed when the scope exits.

        Args:
            url: Image URL

        Yields:
            Path: Location of the downloaded image

        Raises:
            ImageFetchError: If the download fails, times out or is too small
        """
        path = await asyncio.to_thread(self._download_to_tempfile, url)
        try:
            yield path
        finally:
            await asyncio.to_thread(path.unlink, missing_ok=True)
            logger.debug("Removed temporary image", path=str(path))

    def _download_to_tempfile(self, url: str) -> Path:
        fd, name = tempfile.mkstemp(prefix="sync_", suffix=".img")
        path = Path(name)
        try:
            with os.fdopen(fd, "wb") as handle:
                written = self._stream_to(url, handle)
            if written < self.min_bytes:
                raise ImageFetchError(
                    f"Downloaded image too small ({written} bytes)",
                    {"url": url, "size": written}
                )
            return path
        except requests.Timeout as e:
            path.unlink(missing_ok=True)
            raise ImageFetchError(f"Timed out downloading {url}", {"url": url}) from e
        except requests.RequestException as e:
            path.unlink(missing_ok=True)
            raise ImageFetchError(f"Failed to download {url}: {e}", {"url": url}) from e
        except BaseException:
            path.unlink(missing_ok=True)
            raise

    def _stream_to(self, url: str, handle) -> int:
        with self._http.get(url, stream=True, timeout=self.download_timeout) as response:
            if response.status_code != 200:
                raise ImageFetchError(
                    f"Unexpected status {response.status_code} for {url}",
                    {"url": url, "status": response.status_code}
                )
            declared = _parse_content_length(response.headers.get("Content-Length"))
            if declared is not None and declared < self.min_bytes:
                raise ImageFetchError(
                    f"Declared image size too small ({declared} bytes)",
                    {"url": url, "size": declared}
                )

            written = 0
            for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                if chunk:
                    handle.write(chunk)
                    written += len(chunk)
            return written

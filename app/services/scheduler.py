"""Background scheduling of the reconciliation job."""
import asyncio
from typing import Awaitable, Callable, Optional

from app.core.exceptions import JobAlreadyRunningError
from app.core.logging import get_logger

logger = get_logger(__name__)


class BackgroundSyncScheduler:
    """Runs a job periodically in a cancellable asyncio task.

    A tick that finds another run in flight is skipped; failures are logged
    and never stop the loop.
    """

    def __init__(
        self,
        job: Callable[[], Awaitable[object]],
        interval_seconds: float,
        name: str = "background-sync",
    ) -> None:
        self._job = job
        self._interval = interval_seconds
        self._name = name
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the loop on the running event loop; a second call is a no-op."""
        if self.running:
            return
        logger.info("Starting background sync", interval_seconds=self._interval)
        self._task = asyncio.create_task(self._loop(), name=self._name)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None
        logger.info("Stopped background sync")

    async def run_once(self) -> None:
        """Execute one tick."""
        try:
            result = await self._job()
            logger.info("Background sync cycle completed", result=result)
        except JobAlreadyRunningError as e:
            logger.info("Skipping background sync cycle", reason=str(e))
        except Exception as e:
            logger.error("Background sync cycle failed", error=str(e), exc_info=True)

    async def _loop(self) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(self._interval)

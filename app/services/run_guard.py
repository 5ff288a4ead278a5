"""Mutual exclusion between jobs that mutate the face index."""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from app.core.exceptions import JobAlreadyRunningError
from app.core.logging import bind_job, get_logger

logger = get_logger(__name__)


class RunGuard:
    """Allows a single job run at a time; callers never queue behind a run."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._current: Optional[str] = None

    @property
    def current_job(self) -> Optional[str]:
        return self._current

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def hold(self, job_name: str) -> AsyncGenerator[None, None]:
        """Hold the guard for the duration of a run.

        Raises:
            JobAlreadyRunningError: If another run holds the guard
        """
        if self._lock.locked():
            raise JobAlreadyRunningError(
                f"Cannot start '{job_name}': '{self._current}' is running",
                {"requested": job_name, "running": self._current}
            )
        async with self._lock:
            self._current = job_name
            logger.debug("Run guard acquired", job=job_name)
            try:
                with bind_job(job_name):
                    yield
            finally:
                self._current = None
                logger.debug("Run guard released", job=job_name)

"""Backfill of fingerprints for entries indexed before fingerprinting existed."""
import asyncio

from app.core.exceptions import ImageFetchError, InvalidImageError, StoreError
from app.core.logging import get_logger
from app.domain.entities.index_entry import IndexEntry
from app.domain.interfaces.network import ImageFetcher
from app.domain.interfaces.storage import IndexUnitOfWork
from app.services.fingerprint import MIN_IMAGE_BYTES, compute_fingerprint
from app.services.models import BackfillSummary
from app.services.reconciliation import IndexScope
from app.services.run_guard import RunGuard

logger = get_logger(__name__)

BACKFILL_JOB_NAME = "update-fingerprints"
PROGRESS_EVERY = 10


class FingerprintBackfillService:
    """Computes and stores fingerprints for active entries missing one."""

    def __init__(
        self,
        index_scope: IndexScope,
        image_fetcher: ImageFetcher,
        run_guard: RunGuard,
        min_image_bytes: int = MIN_IMAGE_BYTES,
    ) -> None:
        self._index_scope = index_scope
        self._image_fetcher = image_fetcher
        self._run_guard = run_guard
        self._min_image_bytes = min_image_bytes

    async def update_missing_fingerprints(self) -> BackfillSummary:
        """Fingerprint every active entry that has none, one entry at a time.

        Returns:
            BackfillSummary with total/updated/skipped/errored counts

        Raises:
            JobAlreadyRunningError: If another job is running
            StoreError: If the entries cannot be loaded
        """
        async with self._run_guard.hold(BACKFILL_JOB_NAME):
            async with self._index_scope() as uow:
                try:
                    entries = await uow.faces.list_missing_fingerprints()
                except StoreError as e:
                    logger.error("Failed to load entries for backfill", error=str(e), exc_info=True)
                    raise

                summary = BackfillSummary(total=len(entries))
                logger.info("Starting fingerprint backfill", total=summary.total)

                for processed, entry in enumerate(entries, start=1):
                    await self._backfill_entry(uow, entry, summary)
                    if processed % PROGRESS_EVERY == 0:
                        logger.info(
                            "Fingerprint backfill progress",
                            processed=processed,
                            total=summary.total,
                            updated=summary.updated,
                            errored=summary.errored,
                        )

            logger.info(
                "Fingerprint backfill finished",
                total=summary.total,
                updated=summary.updated,
                skipped=summary.skipped,
                errored=summary.errored,
            )
            return summary

    async def _backfill_entry(
        self,
        uow: IndexUnitOfWork,
        entry: IndexEntry,
        summary: BackfillSummary,
    ) -> None:
        if not entry.image_source_url:
            logger.warning("Entry has no image URL, skipping", entry_id=entry.entry_id,
                           identity=entry.identity)
            summary.skipped += 1
            return

        try:
            async with self._image_fetcher.download(entry.image_source_url) as image_path:
                fingerprint = await asyncio.to_thread(
                    compute_fingerprint, image_path, self._min_image_bytes
                )
            async with uow.transaction():
                await uow.faces.update(entry.entry_id, fingerprint=fingerprint)
        except (ImageFetchError, InvalidImageError, StoreError) as e:
            logger.warning(
                "Failed to backfill fingerprint",
                entry_id=entry.entry_id,
                url=entry.image_source_url,
                error=str(e),
            )
            summary.errored += 1
            return

        logger.debug("Stored fingerprint", entry_id=entry.entry_id, fingerprint=fingerprint)
        summary.updated += 1

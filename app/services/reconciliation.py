"""Reconciliation of the face index against the employee directory."""
import asyncio
from contextlib import AbstractAsyncContextManager
from pathlib import Path
from typing import Callable, Iterable, List, Set, Tuple

from app.core.exceptions import (
    FaceIndexSyncError,
    FaceRegistryError,
    ImageFetchError,
    InvalidImageError,
    StoreError,
)
from app.core.logging import get_logger
from app.domain.entities.index_entry import IndexEntry, SourceRecord
from app.domain.interfaces.network import ImageFetcher
from app.domain.interfaces.recognition import FaceRegistry
from app.domain.interfaces.storage import IndexUnitOfWork, SourceDirectory
from app.domain.value_objects.reconciliation import (
    ChangeClassification,
    ChangeDecision,
    ReconciliationOutcome,
)
from app.services.change_detection import (
    classify_change,
    find_fingerprint_match,
    group_by_identity,
    resolve_image_url,
)
from app.services.fingerprint import MIN_IMAGE_BYTES, compute_fingerprint
from app.services.models import SyncSummary
from app.services.run_guard import RunGuard

logger = get_logger(__name__)

IndexScope = Callable[[], AbstractAsyncContextManager[IndexUnitOfWork]]
DirectoryScope = Callable[[], AbstractAsyncContextManager[SourceDirectory]]

SYNC_JOB_NAME = "sync-employees"


class ReconciliationService:
    """Service driving one reconciliation pass over the employee directory.

    Records are processed one at a time: the image host and the face provider
    are rate sensitive. A failure on one record is counted and logged and the
    pass moves on; only failures while loading state abort the run.

    Example:
        ```python
        service = ReconciliationService(
            index_scope=container.index_unit_of_work,
            directory_scope=container.directory,
            image_fetcher=HttpImageFetcher(),
            face_registry=RekognitionFaceRegistry(),
            run_guard=RunGuard(),
            image_base_url="https://directory.example.com/web",
            collection_id="employees",
        )
        summary = await service.sync_employees()
        ```
    """

    def __init__(
        self,
        index_scope: IndexScope,
        directory_scope: DirectoryScope,
        image_fetcher: ImageFetcher,
        face_registry: FaceRegistry,
        run_guard: RunGuard,
        image_base_url: str,
        collection_id: str,
        external_id_prefix: str = "employee_",
        min_image_bytes: int = MIN_IMAGE_BYTES,
    ) -> None:
        """Initialize the reconciliation service.

        Args:
            index_scope: Factory of face index units of work, one per run
            directory_scope: Factory of employee directory handles, one per run
            image_fetcher: Fetcher for source photos
            face_registry: Remote face collection
            run_guard: Guard shared with every job mutating the index
            image_base_url: Prefix for relative photo references
            collection_id: Remote collection receiving the faces
            external_id_prefix: Prefix of the external image id sent to the provider
            min_image_bytes: Smallest image accepted for fingerprinting
        """
        self._index_scope = index_scope
        self._directory_scope = directory_scope
        self._image_fetcher = image_fetcher
        self._face_registry = face_registry
        self._run_guard = run_guard
        self._image_base_url = image_base_url
        self._collection_id = collection_id
        self._external_id_prefix = external_id_prefix
        self._min_image_bytes = min_image_bytes

    async def sync_employees(self) -> SyncSummary:
        """Run a full reconciliation pass.

        Returns:
            SyncSummary with new/updated/ignored/errored counts

        Raises:
            JobAlreadyRunningError: If another job is running
            StoreError: If the index or the directory cannot be loaded
        """
        async with self._run_guard.hold(SYNC_JOB_NAME):
            logger.info("Starting employee synchronization")
            async with self._directory_scope() as directory, self._index_scope() as uow:
                summary = await self._run(directory, uow)
            logger.info(
                "Employee synchronization finished",
                new=summary.new,
                updated=summary.updated,
                ignored=summary.ignored,
                errored=summary.errored,
            )
            return summary

    async def _run(self, directory: SourceDirectory, uow: IndexUnitOfWork) -> SyncSummary:
        try:
            async with uow.transaction():
                collapsed = await uow.faces.collapse_duplicates()
            active = await uow.faces.list_active()
            records = await directory.list_active_records()
        except StoreError as e:
            logger.error("Failed to load synchronization state", error=str(e), exc_info=True)
            raise

        # Exact duplicates share the survivor's remote face, which must stay registered
        live_face_ids = {entry.remote_face_id for entry in active if entry.remote_face_id}
        await self._deregister_all(
            entry for entry in collapsed if entry.remote_face_id not in live_face_ids
        )

        existing_by_identity = group_by_identity(active)
        logger.info(
            "Loaded synchronization state",
            source_records=len(records),
            active_entries=len(active),
            collapsed_duplicates=len(collapsed),
        )

        summary = SyncSummary()
        processed: Set[str] = set()
        for record in records:
            if record.identity in processed:
                continue
            processed.add(record.identity)

            existing = existing_by_identity.get(record.identity, [])
            outcome, classification = await self._reconcile_record(uow, record, existing)
            summary.record(outcome, classification)

        return summary

    async def _reconcile_record(
        self,
        uow: IndexUnitOfWork,
        record: SourceRecord,
        existing: List[IndexEntry],
    ) -> Tuple[ReconciliationOutcome, ChangeClassification]:
        log = logger.bind(identity=record.identity)
        image_url = resolve_image_url(self._image_base_url, record.image_reference)

        current_metadata = await self._image_fetcher.probe(image_url)
        decision = classify_change(image_url, existing, current_metadata)
        if not decision.requires_download:
            return ReconciliationOutcome.UNCHANGED, decision.classification

        log.info("Photo needs validation", reason=decision.classification.value, url=image_url)
        try:
            outcome = await self._apply(uow, record, decision)
        except ImageFetchError as e:
            log.warning("Could not download photo", url=image_url, error=str(e))
            outcome = ReconciliationOutcome.ERROR
        except InvalidImageError as e:
            log.warning("Could not fingerprint photo", url=image_url, error=str(e))
            outcome = ReconciliationOutcome.ERROR
        except FaceRegistryError as e:
            log.error("Face registration failed", error=str(e), details=e.details)
            outcome = ReconciliationOutcome.ERROR
        except StoreError as e:
            log.error("Failed to persist face index changes", error=str(e))
            outcome = ReconciliationOutcome.ERROR
        except Exception as e:
            log.error("Unexpected error during reconciliation", error=str(e), exc_info=True)
            outcome = ReconciliationOutcome.ERROR

        return outcome, decision.classification

    async def _apply(
        self,
        uow: IndexUnitOfWork,
        record: SourceRecord,
        decision: ChangeDecision,
    ) -> ReconciliationOutcome:
        async with self._image_fetcher.download(decision.image_url) as image_path:
            fingerprint = await asyncio.to_thread(
                compute_fingerprint, image_path, self._min_image_bytes
            )

            match = find_fingerprint_match(fingerprint, decision.existing_entries)
            if match is not None:
                return await self._merge_duplicate(uow, decision, match)

            await self._supersede(uow, decision.existing_entries)
            return await self._index_new_face(uow, record, decision, image_path, fingerprint)

    async def _merge_duplicate(
        self,
        uow: IndexUnitOfWork,
        decision: ChangeDecision,
        match: IndexEntry,
    ) -> ReconciliationOutcome:
        """Keep the entry holding the same photo and retire the others."""
        logger.info(
            "Fingerprint matches an existing entry, refreshing URL and metadata",
            identity=match.identity,
            entry_id=match.entry_id,
        )
        others = [e for e in decision.existing_entries if e.entry_id != match.entry_id]
        async with uow.transaction():
            await uow.faces.update(
                match.entry_id,
                image_source_url=decision.image_url,
                resource_metadata=decision.current_metadata,
            )
            for entry in others:
                await uow.faces.deactivate(entry.entry_id)
        await self._deregister_all(
            entry for entry in others if entry.remote_face_id != match.remote_face_id
        )

        if decision.url_match is not None and decision.url_match.entry_id == match.entry_id:
            return ReconciliationOutcome.METADATA_REFRESHED
        return ReconciliationOutcome.MERGED_DUPLICATE

    async def _supersede(self, uow: IndexUnitOfWork, entries: List[IndexEntry]) -> None:
        """Deactivate entries ahead of a new registration, then drop their remote faces."""
        if not entries:
            return
        logger.info(
            "Replacing previous entries",
            identity=entries[0].identity,
            count=len(entries),
        )
        async with uow.transaction():
            for entry in entries:
                await uow.faces.deactivate(entry.entry_id)
        await self._deregister_all(entries)

    async def _index_new_face(
        self,
        uow: IndexUnitOfWork,
        record: SourceRecord,
        decision: ChangeDecision,
        image_path: Path,
        fingerprint: str,
    ) -> ReconciliationOutcome:
        external_id = f"{self._external_id_prefix}{record.identity}"
        image_bytes = await asyncio.to_thread(image_path.read_bytes)
        registration = await self._face_registry.register(
            image_bytes, external_id, self._collection_id
        )

        async with uow.transaction():
            entry = await uow.faces.create(
                identity=record.identity,
                remote_face_id=registration.face_id,
                image_source_url=decision.image_url,
                fingerprint=fingerprint,
                resource_metadata=decision.current_metadata,
                external_id=external_id,
                collection_id=self._collection_id,
                confidence=registration.confidence,
                provider_metadata=registration.raw_metadata,
            )

        logger.info(
            "Indexed employee face",
            identity=record.identity,
            entry_id=entry.entry_id,
            face_id=registration.face_id,
        )
        return ReconciliationOutcome.NEWLY_INDEXED

    async def _deregister_all(self, entries: Iterable[IndexEntry]) -> None:
        """Best-effort removal of remote faces; the local deactivation is authoritative."""
        for entry in entries:
            if not entry.remote_face_id:
                continue
            try:
                await self._face_registry.deregister(
                    entry.remote_face_id, entry.collection_id or self._collection_id
                )
            except FaceIndexSyncError as e:
                logger.warning(
                    "Failed to delete remote face",
                    identity=entry.identity,
                    face_id=entry.remote_face_id,
                    error=str(e),
                )

"""
Pending Upload Reaper - fails uploads that were never completed.

A pending record whose signed URL expired (plus a grace period) can no
longer be completed by its client. The sweep deletes any object that did
land at its key and marks the record failed with ``upload_expired``, using
the same conditional transition as completion so a late completion and the
sweep cannot both win.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from bookshelf.core.config import settings
from bookshelf.core.exceptions import StorageError
from bookshelf.core.logging import get_service_logger
from bookshelf.core.storage_client import StorageClient, get_storage_client
from bookshelf.models.document import DocumentStatus, FailureReason
from .document_store import DocumentStore


@dataclass
class SweepResult:
    examined: int = 0
    expired: int = 0
    cleanup_failures: int = 0
    expired_ids: List[int] = field(default_factory=list)


class PendingUploadReaper:
    """Sweeps expired pending uploads."""

    def __init__(
        self,
        store: Optional[DocumentStore] = None,
        storage: Optional[StorageClient] = None,
        grace_minutes: Optional[int] = None,
        batch_size: Optional[int] = None,
    ):
        self.store = store or DocumentStore()
        self.storage = storage or get_storage_client()
        self.grace_minutes = (
            grace_minutes if grace_minutes is not None else settings.PENDING_SWEEP_GRACE_MINUTES
        )
        self.batch_size = batch_size or settings.PENDING_SWEEP_BATCH_SIZE
        self.logger = get_service_logger("pending_reaper")

    def cutoff(self, now: datetime) -> datetime:
        """Pending records last touched before this instant are expired."""
        return now - timedelta(
            minutes=settings.UPLOAD_URL_EXPIRATION_MINUTES + self.grace_minutes
        )

    async def sweep(self, now: Optional[datetime] = None, dry_run: bool = False) -> SweepResult:
        """Expire one batch of stale pending uploads."""
        now = now or datetime.now(timezone.utc)
        result = SweepResult()

        cutoff = self.cutoff(now)
        stale = await self.store.list_stale_pending(cutoff, self.batch_size)
        result.examined = len(stale)

        for document in stale:
            if dry_run:
                result.expired_ids.append(document.id)
                continue

            # Completed or re-presigned since selection: leave record and object alone
            applied = await self.store.transition_status(
                document.id,
                DocumentStatus.PENDING,
                DocumentStatus.FAILED,
                failure_reason=FailureReason.UPLOAD_EXPIRED.value,
                updated_before=cutoff,
            )
            if not applied:
                continue

            result.expired += 1
            result.expired_ids.append(document.id)

            try:
                await self.storage.delete_object_async(document.object_key)
            except StorageError as e:
                result.cleanup_failures += 1
                self.logger.warning(
                    "Failed to delete expired upload object",
                    document_id=document.id,
                    object_key=document.object_key,
                    error=str(e),
                )

        if result.examined:
            self.logger.info(
                "Pending upload sweep finished",
                examined=result.examined,
                expired=result.expired,
                cleanup_failures=result.cleanup_failures,
                dry_run=dry_run,
            )
        return result

    async def run_forever(self, interval_seconds: Optional[int] = None) -> None:
        """Sweep periodically until cancelled."""
        interval = interval_seconds or settings.PENDING_SWEEP_INTERVAL_SECONDS
        self.logger.info("Pending upload sweeper started", interval_seconds=interval)
        while True:
            try:
                await self.sweep()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.logger.error("Pending upload sweep failed", error=str(e), exc_info=True)
            await asyncio.sleep(interval)

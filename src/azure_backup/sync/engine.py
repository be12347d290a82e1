"""Bounded-concurrency diff-and-upload pipeline for a single job."""

import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional

from ..config.settings import StorageTier
from ..destinations.base import StorageProvider, StorageUploadOptions
from ..utils.file_utils import FileHelper
from .discovery import DiscoveredFile
from .exceptions import BackupCancelledError
from .fingerprint import compute_fingerprint_async, fingerprints_match

logger = logging.getLogger(__name__)


class FileOutcome(str, Enum):
    """What happened to one file during a job."""
    UPLOADED = "uploaded"
    SKIPPED = "skipped"
    DRY_RUN = "dry_run"
    ERROR = "error"


@dataclass
class JobRunCounters:
    """Per-job tallies.

    Units report their outcome through ``record`` from the event loop thread
    only, so increments never interleave.
    """
    uploaded: int = 0
    skipped: int = 0
    dry_run: int = 0
    errors: int = 0

    def record(self, outcome: FileOutcome) -> None:
        if outcome is FileOutcome.UPLOADED:
            self.uploaded += 1
        elif outcome is FileOutcome.SKIPPED:
            self.skipped += 1
        elif outcome is FileOutcome.DRY_RUN:
            self.dry_run += 1
        else:
            self.errors += 1

    @property
    def total(self) -> int:
        return self.uploaded + self.skipped + self.dry_run + self.errors

    def as_dict(self) -> Dict[str, int]:
        return {
            'uploaded': self.uploaded,
            'skipped': self.skipped,
            'dry_run': self.dry_run,
            'errors': self.errors,
        }


class SyncEngine:
    """Decide and execute the per-file action for one job's files.

    Every file runs as its own task. A semaphore sized to the job's
    concurrency gates the pipeline; a permit is held from key resolution
    until the outcome is known, including any rehydration wait inside the
    provider's upload.
    """

    def __init__(self, stop_event: Optional[asyncio.Event] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        """Initialize the engine.

        Args:
            stop_event: When set, no new file work starts and in-flight work is cancelled
            clock: Returns the moment used for prefix tokens (UTC now by default)
        """
        self.stop_event = stop_event
        self.clock = clock

    @property
    def stop_requested(self) -> bool:
        return self.stop_event is not None and self.stop_event.is_set()

    async def run_job(
        self,
        job_name: str,
        files: List[DiscoveredFile],
        provider: StorageProvider,
        tier: StorageTier,
        prefix: Optional[str] = None,
        concurrency: int = 1,
        dry_run: bool = False,
    ) -> JobRunCounters:
        """Process all files of a job and wait for them to finish.

        Args:
            job_name: Job name, used for logging only
            files: Files found by discovery
            provider: Destination storage
            tier: Effective storage tier for uploads
            prefix: Destination key prefix template
            concurrency: Maximum files in the pipeline at once (clamped to >= 1)
            dry_run: Log would-be uploads instead of writing

        Returns:
            Outcome counters for the job

        Raises:
            BackupCancelledError: If a stop was requested before all files finished
        """
        counters = JobRunCounters()
        if self.stop_requested:
            raise BackupCancelledError(f"Cancelled before job '{job_name}' started")

        semaphore = asyncio.Semaphore(max(1, concurrency))
        tasks = [
            asyncio.create_task(
                self._run_unit(semaphore, counters, provider, item, tier, prefix, dry_run),
                name=f"sync:{item.relative_path}",
            )
            for item in files
        ]
        watcher = asyncio.create_task(self._cancel_on_stop(tasks)) if self.stop_event else None

        try:
            # Units never raise except on cancellation, which gather
            # hands back as a result instead of aborting the wait
            results = await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            if watcher is not None:
                watcher.cancel()

        for result in results:
            if isinstance(result, BaseException) and not isinstance(result, asyncio.CancelledError):
                raise result

        cancelled = any(isinstance(r, asyncio.CancelledError) for r in results)
        if cancelled or (self.stop_requested and counters.total < len(files)):
            raise BackupCancelledError(
                f"Job '{job_name}' cancelled after {counters.total} of {len(files)} files",
                counters=counters,
            )

        return counters

    async def _cancel_on_stop(self, tasks: List["asyncio.Task[None]"]) -> None:
        await self.stop_event.wait()
        pending = [t for t in tasks if not t.done()]
        if pending:
            logger.warning(f"Stop requested, cancelling {len(pending)} in-flight files")
        for task in pending:
            task.cancel()

    async def _run_unit(self, semaphore: asyncio.Semaphore, counters: JobRunCounters,
                        provider: StorageProvider, item: DiscoveredFile,
                        tier: StorageTier, prefix: Optional[str], dry_run: bool) -> None:
        if self.stop_requested:
            return

        async with semaphore:
            if self.stop_requested:
                return
            outcome = await self.process_file(provider, item, tier, prefix, dry_run)

        counters.record(outcome)

    async def process_file(self, provider: StorageProvider, item: DiscoveredFile,
                           tier: StorageTier, prefix: Optional[str] = None,
                           dry_run: bool = False) -> FileOutcome:
        """Run the skip / dry-run / upload decision for one file.

        Failures are logged and reported as ERROR; cancellation propagates.
        """
        rel = item.relative_path
        try:
            now = self.clock() if self.clock else None
            key = FileHelper.resolve_destination_key(prefix, rel, now)

            info = await provider.try_get_info(key)
            fingerprint = await compute_fingerprint_async(item.full_path)

            if info is not None and fingerprints_match(info.fingerprint, fingerprint):
                logger.info(f"Skip unchanged: {rel} (sha256={fingerprint})")
                return FileOutcome.SKIPPED

            if dry_run:
                logger.info(f"[DRY RUN] Would upload {rel} -> {key} (tier={tier.value})")
                return FileOutcome.DRY_RUN

            options = StorageUploadOptions(
                tier=tier,
                fingerprint=fingerprint,
                overwrite=True,
                content_type=FileHelper.guess_content_type(item.full_path),
            )
            with open(item.full_path, 'rb') as stream:
                size = os.fstat(stream.fileno()).st_size
                await provider.upload(key, stream, options)

            logger.info(f"Uploaded: {rel} -> {key} ({FileHelper.format_file_size(size)}, tier={tier.value})")
            return FileOutcome.UPLOADED

        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error processing {item.full_path}: {e}", exc_info=True)
            return FileOutcome.ERROR

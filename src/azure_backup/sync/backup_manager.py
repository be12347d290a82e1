"""Main backup manager orchestrating the backup process."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from ..config.settings import BackupConfig, BackupJob, ConfigError, StorageTier, load_config
from ..destinations.azure_blob import create_storage_provider
from ..destinations.base import StorageProviderFactory
from ..utils.logging import ContextualLogger, TimedOperation
from .discovery import discover_files
from .engine import JobRunCounters, SyncEngine
from .exceptions import BackupCancelledError

# Module logger
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130

STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_CANCELLED = "cancelled"


@dataclass
class JobResult:
    """Outcome of one backup job."""
    job_name: str
    tier: StorageTier
    dry_run: bool
    status: str = "started"
    counters: JobRunCounters = field(default_factory=JobRunCounters)
    files_discovered: int = 0
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def duration(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()


class BackupManager:
    """Run the configured jobs one after another.

    Only files within a job run concurrently. A job that fails as a whole
    (as opposed to individual files failing) stops the run.
    """

    def __init__(self, config: BackupConfig,
                 provider_factory: StorageProviderFactory = create_storage_provider,
                 stop_event: Optional[asyncio.Event] = None,
                 engine: Optional[SyncEngine] = None):
        """Initialize backup manager.

        Args:
            config: Backup configuration
            provider_factory: Builds the storage provider for a destination
            stop_event: Cooperative cancellation signal
            engine: Sync engine (one sharing ``stop_event`` is created by default)
        """
        self.config = config
        self.provider_factory = provider_factory
        self.engine = engine or SyncEngine()
        self.stop_event = self.engine.stop_event
        if stop_event is not None:
            self.set_stop_event(stop_event)
        self.results: List[JobResult] = []

    @classmethod
    def from_config_file(cls, config_path: Union[str, Path], dry_run: bool = False,
                         **kwargs: Any) -> "BackupManager":
        """Load a configuration file and build a manager for it.

        Args:
            config_path: Path to the configuration file
            dry_run: Force dry-run regardless of the file's setting

        Raises:
            ConfigError: If the configuration cannot be loaded
        """
        config = load_config(config_path)
        if dry_run:
            config = config.with_dry_run(True)
        logger.info(f"Configuration loaded from {config_path} ({len(config.jobs)} jobs)")
        return cls(config, **kwargs)

    def set_stop_event(self, stop_event: asyncio.Event) -> None:
        """Attach a cancellation signal created inside the running loop."""
        self.stop_event = stop_event
        self.engine.stop_event = stop_event

    @property
    def stop_requested(self) -> bool:
        return self.stop_event is not None and self.stop_event.is_set()

    async def run_backup_job(self, job: BackupJob) -> JobResult:
        """Run a single backup job.

        Args:
            job: Configuration for the backup job

        Returns:
            Job result; status is completed, failed or cancelled
        """
        job_log = ContextualLogger(logger, {"job": job.name})
        result = JobResult(
            job_name=job.name,
            tier=job.effective_tier(self.config.default),
            dry_run=self.config.default.dry_run,
        )

        if self.stop_requested:
            result.status = STATUS_CANCELLED
            result.end_time = datetime.now()
            job_log.warning("Stop requested, job not started")
            return result

        try:
            with TimedOperation(logger, f"backup job '{job.name}'"):
                job_log.info(f"Destination: {job.destination.display_name} (tier={result.tier.value})")
                provider = self.provider_factory(job.destination)
                async with provider:
                    await provider.ensure_ready()

                    files = await asyncio.to_thread(discover_files, job.source)
                    result.files_discovered = len(files)
                    job_log.info(f"Discovered {len(files)} files")
                    if not files:
                        job_log.warning("No files matched include/exclude patterns")

                    if result.dry_run:
                        job_log.info("DRY RUN - no files will be uploaded")

                    result.counters = await self.engine.run_job(
                        job.name,
                        files,
                        provider,
                        tier=result.tier,
                        prefix=job.destination.prefix,
                        concurrency=self.config.concurrency,
                        dry_run=result.dry_run,
                    )
            result.status = STATUS_COMPLETED

        except BackupCancelledError as e:
            result.status = STATUS_CANCELLED
            result.error = str(e)
            if e.counters is not None:
                result.counters = e.counters
            job_log.warning(str(e))

        except Exception as e:
            result.status = STATUS_FAILED
            result.error = str(e)
            job_log.error(f"Backup job failed: {e}", exc_info=True)

        finally:
            result.end_time = datetime.now()

        c = result.counters
        job_log.info(
            f"Job finished ({result.status}): Uploaded={c.uploaded}, Skipped={c.skipped}, "
            f"DryRuns={c.dry_run}, Errors={c.errors}"
        )
        return result

    async def run_all_jobs(self) -> List[JobResult]:
        """Run all jobs in order, stopping at the first failed or cancelled job.

        Returns:
            List of job results
        """
        self.results = []
        if not self.config.jobs:
            logger.warning("No jobs found in config.")
            return self.results

        logger.info(f"Running {len(self.config.jobs)} backup jobs")
        for job in self.config.jobs:
            job_result = await self.run_backup_job(job)
            self.results.append(job_result)
            if job_result.status != STATUS_COMPLETED:
                remaining = len(self.config.jobs) - len(self.results)
                if remaining:
                    logger.warning(f"Skipping {remaining} remaining jobs after '{job.name}' {job_result.status}")
                break

        return self.results

    async def run(self) -> int:
        """Run all jobs and translate the outcome into a process exit code."""
        results = await self.run_all_jobs()
        return self.exit_code(results)

    @staticmethod
    def exit_code(results: List[JobResult]) -> int:
        if any(r.status == STATUS_CANCELLED for r in results):
            return EXIT_CANCELLED
        if any(r.status == STATUS_FAILED for r in results):
            return EXIT_FAILURE
        return EXIT_OK

    def get_backup_summary(self, results: List[JobResult]) -> Dict[str, Any]:
        """Generate summary of backup results.

        Args:
            results: List of job results

        Returns:
            Summary dictionary
        """
        return {
            'total_jobs': len(self.config.jobs),
            'jobs_run': len(results),
            'successful_jobs': len([r for r in results if r.status == STATUS_COMPLETED]),
            'failed_jobs': len([r for r in results if r.status == STATUS_FAILED]),
            'cancelled_jobs': len([r for r in results if r.status == STATUS_CANCELLED]),
            'total_files_discovered': sum(r.files_discovered for r in results),
            'total_files_uploaded': sum(r.counters.uploaded for r in results),
            'total_files_skipped': sum(r.counters.skipped for r in results),
            'total_files_dry_run': sum(r.counters.dry_run for r in results),
            'total_errors': sum(r.counters.errors for r in results),
            'backup_time': datetime.now().isoformat(),
        }


async def run_backup(config_path: Union[str, Path], dry_run: bool = False,
                     stop_event: Optional[asyncio.Event] = None,
                     provider_factory: StorageProviderFactory = create_storage_provider,
                     on_complete: Optional[Callable[[BackupManager], None]] = None) -> int:
    """Load the configuration, run every job sequentially and return an exit code.

    Args:
        config_path: Path to the configuration file
        dry_run: Force dry-run regardless of the file's setting
        stop_event: Cooperative cancellation signal
        provider_factory: Builds the storage provider for a destination
        on_complete: Called with the manager once its jobs have run (not on config errors)

    Returns:
        0 on success, 1 on configuration or job failure, 130 when cancelled
    """
    try:
        manager = BackupManager.from_config_file(
            config_path, dry_run=dry_run, provider_factory=provider_factory, stop_event=stop_event
        )
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_FAILURE

    if manager.config.default.dry_run:
        logger.info("DRY RUN MODE - no files will be uploaded")

    try:
        return await manager.run()
    except asyncio.CancelledError:
        logger.warning("Backup run cancelled")
        return EXIT_CANCELLED
    finally:
        if on_complete is not None:
            on_complete(manager)

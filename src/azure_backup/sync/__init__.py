"""Sync engine for backup operations."""

from .discovery import DiscoveredFile, discover_files
from .engine import FileOutcome, JobRunCounters, SyncEngine
from .exceptions import BackupCancelledError, StorageError, SyncError
from .fingerprint import compute_fingerprint
from .rehydration import RehydrationState, RehydrationWaiter

__all__ = [
    "BackupCancelledError",
    "DiscoveredFile",
    "FileOutcome",
    "JobRunCounters",
    "RehydrationState",
    "RehydrationWaiter",
    "StorageError",
    "SyncEngine",
    "SyncError",
    "compute_fingerprint",
    "discover_files",
]

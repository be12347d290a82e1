"""
Exceptions for sync operations.
"""


class SyncError(Exception):
    """Base exception for sync operations."""

    pass


class BackupCancelledError(SyncError):
    """The run was stopped on request before all work finished."""

    def __init__(self, message: str, counters=None):
        super().__init__(message)
        self.counters = counters  # partial JobRunCounters, if a job was running


class StorageError(SyncError):
    """The remote store rejected or failed a request."""

    pass


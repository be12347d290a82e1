"""Storage collaborator contract used by the sync engine."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import BinaryIO, Callable, Optional

from ..config.settings import DestinationSpec, StorageTier


@dataclass(frozen=True)
class StoredObjectInfo:
    """What the remote store knows about an object."""
    key: str
    fingerprint: Optional[str] = None  # recorded at upload time, None for foreign objects
    tier: Optional[str] = None
    archive_status: Optional[str] = None  # set while a rehydration is in progress


@dataclass(frozen=True)
class StorageUploadOptions:
    """Options passed along with an upload."""
    tier: StorageTier = StorageTier.COOL
    fingerprint: Optional[str] = None
    overwrite: bool = True
    content_type: Optional[str] = None


class StorageProvider(ABC):
    """Remote object store the engine writes to.

    Implementations own authentication, transport retries and tier
    rehydration mechanics. All methods must be cancellable.
    """

    @abstractmethod
    async def ensure_ready(self) -> None:
        """Make sure the destination exists and is writable."""

    @abstractmethod
    async def try_get_info(self, key: str) -> Optional[StoredObjectInfo]:
        """Return object info, or None when the key does not exist."""

    @abstractmethod
    async def upload(self, key: str, content: BinaryIO, options: StorageUploadOptions) -> None:
        """Write content to key."""

    async def close(self) -> None:
        """Release network resources."""

    async def __aenter__(self) -> "StorageProvider":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


StorageProviderFactory = Callable[[DestinationSpec], StorageProvider]

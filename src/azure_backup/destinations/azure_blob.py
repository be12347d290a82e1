"""Azure Blob Storage destination."""

import logging
from typing import Any, BinaryIO, Dict, Optional

from azure.core.exceptions import AzureError, ResourceExistsError, ResourceNotFoundError
from azure.storage.blob import ContentSettings, StandardBlobTier
from azure.storage.blob.aio import BlobClient, BlobServiceClient, ContainerClient

from ..auth.cloud_auth import AzureAuth
from ..config.settings import ConfigError, DestinationSpec, StorageTier
from ..sync.exceptions import StorageError
from ..sync.fingerprint import FINGERPRINT_METADATA_KEY
from ..sync.rehydration import RehydrationWaiter
from .base import StoredObjectInfo, StorageProvider, StorageUploadOptions

logger = logging.getLogger(__name__)

_TIER_MAP = {
    StorageTier.HOT: StandardBlobTier.HOT,
    StorageTier.COOL: StandardBlobTier.COOL,
    StorageTier.ARCHIVE: StandardBlobTier.ARCHIVE,
}


class AzureBlobStorageProvider(StorageProvider):
    """Azure Blob Storage destination with tier and rehydration handling."""

    def __init__(self, auth: AzureAuth, container_name: str,
                 rehydration: Optional[RehydrationWaiter] = None,
                 service_client: Optional[BlobServiceClient] = None):
        """Initialize Azure Blob destination.

        Args:
            auth: Azure authentication handler
            container_name: Target container name
            rehydration: Waiter used before overwriting archived blobs
            service_client: Pre-built client (skips ``auth``)
        """
        self.auth = auth
        self.container_name = container_name
        self.rehydration = rehydration or RehydrationWaiter()
        self._client = service_client

    def _get_client(self) -> BlobServiceClient:
        """Get authenticated Azure Blob client."""
        if not self._client:
            self._client = self.auth.get_blob_service_client()
        return self._client

    def _get_container(self) -> ContainerClient:
        return self._get_client().get_container_client(self.container_name)

    def _get_blob(self, key: str) -> BlobClient:
        return self._get_container().get_blob_client(key)

    async def ensure_ready(self) -> None:
        """Create the container if it does not exist yet."""
        try:
            await self._get_container().create_container()
            logger.info(f"Created container: {self.container_name}")
        except ResourceExistsError:
            logger.debug(f"Container already exists: {self.container_name}")
        except AzureError as e:
            raise StorageError(f"Container {self.container_name} is not usable: {e}") from e

    async def try_get_info(self, key: str) -> Optional[StoredObjectInfo]:
        """Get information about a blob.

        Args:
            key: Blob name

        Returns:
            Blob information or None if not found
        """
        try:
            properties = await self._get_blob(key).get_blob_properties()
        except ResourceNotFoundError:
            return None
        except AzureError as e:
            raise StorageError(f"Cannot read properties of {key}: {e}") from e

        return self._to_info(key, properties)

    @staticmethod
    def _to_info(key: str, properties: Any) -> StoredObjectInfo:
        metadata: Dict[str, str] = properties.metadata or {}
        # blob_tier is a plain string or a StandardBlobTier depending on the call
        tier = getattr(properties.blob_tier, 'value', properties.blob_tier)
        return StoredObjectInfo(
            key=key,
            fingerprint=metadata.get(FINGERPRINT_METADATA_KEY),
            tier=tier,
            archive_status=properties.archive_status or None,
        )

    async def upload(self, key: str, content: BinaryIO, options: StorageUploadOptions) -> None:
        """Upload content, rehydrating an archived target first.

        Args:
            key: Blob name
            content: Readable binary stream
            options: Tier, fingerprint and content type for the blob
        """
        blob = self._get_blob(key)

        await self.rehydration.wait_until_ready(
            await self.try_get_info(key),
            fetch_info=lambda: self.try_get_info(key),
            request_rehydration=lambda: blob.set_standard_blob_tier(StandardBlobTier.HOT),
        )

        metadata = {}
        if options.fingerprint:
            metadata[FINGERPRINT_METADATA_KEY] = options.fingerprint

        kwargs: Dict[str, Any] = {
            'overwrite': options.overwrite,
            'metadata': metadata,
            'standard_blob_tier': _TIER_MAP.get(options.tier, StandardBlobTier.COOL),
        }
        # best-effort content type
        if options.content_type:
            kwargs['content_settings'] = ContentSettings(content_type=options.content_type)

        try:
            await blob.upload_blob(content, **kwargs)
        except AzureError as e:
            raise StorageError(f"Upload of {key} failed: {e}") from e

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
        await self.auth.close()


def create_storage_provider(destination: DestinationSpec) -> AzureBlobStorageProvider:
    """Build the storage provider for a job destination.

    Raises:
        ConfigError: If the destination is not a configured AzureBlob target
    """
    settings = destination.azure_blob
    if destination.type.lower() != "azureblob" or settings is None:
        raise ConfigError("Destination type must be AzureBlob with configuration")

    auth = AzureAuth.from_env(settings.service_uri)
    return AzureBlobStorageProvider(auth, settings.container)

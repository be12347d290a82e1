"""Backup destinations."""

from .base import StorageProvider, StorageProviderFactory, StorageUploadOptions, StoredObjectInfo
from .azure_blob import AzureBlobStorageProvider, create_storage_provider

__all__ = [
    "AzureBlobStorageProvider",
    "StorageProvider",
    "StorageProviderFactory",
    "StorageUploadOptions",
    "StoredObjectInfo",
    "create_storage_provider",
]

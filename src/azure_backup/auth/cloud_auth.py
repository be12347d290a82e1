"""Cloud storage authentication handling."""

import logging
import os
from typing import Optional
from urllib.parse import urlsplit

from azure.identity.aio import DefaultAzureCredential
from azure.storage.blob.aio import BlobServiceClient

logger = logging.getLogger(__name__)


class AzureAuth:
    """Handle Azure Blob Storage authentication."""

    def __init__(
        self,
        service_uri: str,
        account_key: Optional[str] = None,
        connection_string: Optional[str] = None,
    ):
        """Initialize Azure Blob Storage authentication.

        Args:
            service_uri: Blob service endpoint, e.g. https://account.blob.core.windows.net/
                (may carry a SAS token in its query string)
            account_key: Storage account key
            connection_string: Storage connection string
        """
        self.service_uri = service_uri
        self.account_key = account_key
        self.connection_string = connection_string
        self._credential: Optional[DefaultAzureCredential] = None

    @property
    def account_name(self) -> str:
        """Storage account name taken from the service host."""
        host = urlsplit(self.service_uri).hostname or ""
        return host.split('.', 1)[0]

    @property
    def has_sas_token(self) -> bool:
        return bool(urlsplit(self.service_uri).query)

    def get_blob_service_client(self) -> BlobServiceClient:
        """Create an authenticated async Blob Service client.

        Credentials are tried in order: connection string, account key, SAS
        token embedded in the service URI, then DefaultAzureCredential
        (environment, managed identity, Azure CLI, ...).

        Returns:
            Azure BlobServiceClient
        """
        if self.connection_string:
            logger.debug("Using storage connection string")
            return BlobServiceClient.from_connection_string(self.connection_string)

        if self.account_key:
            logger.debug(f"Using shared key for account {self.account_name}")
            return BlobServiceClient(
                account_url=self.service_uri,
                credential={"account_name": self.account_name, "account_key": self.account_key},
            )

        if self.has_sas_token:
            logger.debug("Using SAS token from service URI")
            return BlobServiceClient(account_url=self.service_uri)

        logger.debug("Using DefaultAzureCredential")
        if self._credential is None:
            self._credential = DefaultAzureCredential()
        return BlobServiceClient(account_url=self.service_uri, credential=self._credential)

    async def close(self) -> None:
        """Close the token credential, if one was created."""
        if self._credential is not None:
            await self._credential.close()
            self._credential = None

    @classmethod
    def from_env(cls, service_uri: str) -> "AzureAuth":
        """Create Azure auth from environment variables.

        Args:
            service_uri: Blob service endpoint

        Returns:
            AzureAuth instance
        """
        return cls(
            service_uri=service_uri,
            account_key=os.getenv('AZURE_STORAGE_ACCOUNT_KEY'),
            connection_string=os.getenv('AZURE_STORAGE_CONNECTION_STRING'),
        )

"""Authentication module for cloud storage."""

from .cloud_auth import AzureAuth

__all__ = ["AzureAuth"]

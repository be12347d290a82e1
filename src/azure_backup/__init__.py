"""
Azure Blob Backup

Synchronizes local file trees to Azure Blob Storage, uploading only changed
content, honoring per-job access tiers and rehydrating archived blobs
before they are overwritten.
"""

__version__ = "1.0.0"
__author__ = "Azure Backup Tool"
__description__ = "Back up local folders to tiered Azure Blob Storage"

from .config.settings import BackupConfig, load_config
from .sync.backup_manager import BackupManager, run_backup

__all__ = ["BackupConfig", "BackupManager", "load_config", "run_backup"]

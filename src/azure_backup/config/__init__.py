"""Configuration management for the backup application."""

from .settings import (
    BackupConfig,
    BackupJob,
    ConfigError,
    Defaults,
    DestinationSpec,
    SourceSpec,
    StorageTier,
    load_config,
)

__all__ = [
    "BackupConfig",
    "BackupJob",
    "ConfigError",
    "Defaults",
    "DestinationSpec",
    "SourceSpec",
    "StorageTier",
    "load_config",
]

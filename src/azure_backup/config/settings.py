"""Configuration settings and models for the backup application."""

import json
import os
import re
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, List, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

AZURE_BLOB_DESTINATION = "AzureBlob"

# Strings are matched first so that "//" inside URLs is left alone
_JSON_COMMENT_RE = re.compile(r'("(?:\\.|[^"\\])*")|//[^\n]*|/\*[\s\S]*?\*/')
_JSON_TRAILING_COMMA_RE = re.compile(r'("(?:\\.|[^"\\])*")|,(?=\s*[}\]])')


class ConfigError(Exception):
    """Raised when the configuration file is unreadable, malformed or invalid."""


class StorageTier(str, Enum):
    """Storage tiers a blob can be written to."""
    HOT = "Hot"
    COOL = "Cool"
    ARCHIVE = "Archive"

    @classmethod
    def parse(cls, value: Any) -> Any:
        """Match tier names case-insensitively, leaving anything else to pydantic."""
        if isinstance(value, str):
            for tier in cls:
                if tier.value.lower() == value.strip().lower():
                    return tier
        return value


Tier = Annotated[StorageTier, BeforeValidator(StorageTier.parse)]


class _ConfigModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Defaults(_ConfigModel):
    """Settings applied to every job unless the job overrides them."""
    concurrency: int = Field(default_factory=lambda: os.cpu_count() or 1)
    tier: Tier = StorageTier.COOL
    dry_run: bool = Field(default=False, alias="dryRun")


class SourceSpec(_ConfigModel):
    """Local file trees to back up."""
    paths: List[str] = Field(default_factory=list)
    include: List[str] = Field(default_factory=lambda: ["**/*"])
    exclude: List[str] = Field(default_factory=list)
    follow_symlinks: bool = Field(default=False, alias="followSymlinks")

    @field_validator("include", mode="after")
    @classmethod
    def default_include(cls, v):
        return v or ["**/*"]


class AzureBlobDestination(_ConfigModel):
    """Azure Blob Storage container settings."""
    service_uri: str = Field(default="", alias="serviceUri")
    container: str = ""
    prefix: Optional[str] = None
    tier: Optional[Tier] = None

    @field_validator("service_uri")
    @classmethod
    def validate_service_uri(cls, v):
        if not v or not v.strip():
            raise ValueError("serviceUri is required for AzureBlob destinations")
        if not v.lower().startswith(("https://", "http://")):
            raise ValueError(f"serviceUri must be an http(s) URL: {v}")
        return v.strip()

    @field_validator("container")
    @classmethod
    def validate_container(cls, v):
        if not v or not v.strip():
            raise ValueError("container is required for AzureBlob destinations")
        return v.strip()


class DestinationSpec(_ConfigModel):
    """Where a job's files are written."""
    type: str = AZURE_BLOB_DESTINATION
    azure_blob: Optional[AzureBlobDestination] = Field(default=None, alias="azureBlob")

    @model_validator(mode="after")
    def validate_destination(self):
        if self.type.lower() != AZURE_BLOB_DESTINATION.lower():
            raise ValueError(f"Unsupported destination type: {self.type}")
        if self.azure_blob is None:
            raise ValueError("azureBlob settings are required for AzureBlob destinations")
        self.type = AZURE_BLOB_DESTINATION
        return self

    @property
    def tier(self) -> Optional[StorageTier]:
        return self.azure_blob.tier if self.azure_blob else None

    @property
    def prefix(self) -> str:
        return (self.azure_blob.prefix or "") if self.azure_blob else ""

    @property
    def display_name(self) -> str:
        if not self.azure_blob:
            return self.type
        return f"{self.azure_blob.service_uri.rstrip('/')}/{self.azure_blob.container}"


class BackupJob(_ConfigModel):
    """Configuration for individual backup jobs."""
    name: str = "job"
    source: SourceSpec = Field(default_factory=SourceSpec)
    destination: DestinationSpec
    tier: Optional[Tier] = None

    def effective_tier(self, defaults: Defaults) -> StorageTier:
        """Resolve the tier: job override, then destination, then global default."""
        return self.tier or self.destination.tier or defaults.tier


class BackupConfig(_ConfigModel):
    """Main configuration class."""
    version: int = 1
    default: Defaults = Field(default_factory=Defaults)
    jobs: List[BackupJob] = Field(default_factory=list)

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "BackupConfig":
        """Load configuration from a JSON or YAML file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Parsed configuration

        Raises:
            ConfigError: If the file cannot be read, parsed or validated
        """
        config_path = Path(config_path)
        try:
            text = config_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read configuration file {config_path}: {e}") from e

        try:
            if config_path.suffix.lower() in (".yaml", ".yml"):
                config_data = yaml.safe_load(text)
            else:
                config_data = json.loads(_strip_json_extensions(text))
        except (ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"Malformed configuration file {config_path}: {e}") from e

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ConfigError(f"Configuration root must be an object: {config_path}")

        try:
            return cls.model_validate(config_data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e

    def with_dry_run(self, dry_run: bool = True) -> "BackupConfig":
        """Return a copy with the global dry-run flag forced."""
        defaults = self.default.model_copy(update={"dry_run": dry_run})
        return self.model_copy(update={"default": defaults})

    @property
    def concurrency(self) -> int:
        return max(1, self.default.concurrency)


def _strip_json_extensions(text: str) -> str:
    """Drop // and /* */ comments and trailing commas outside string literals."""
    text = _JSON_COMMENT_RE.sub(lambda m: m.group(1) or "", text)
    return _JSON_TRAILING_COMMA_RE.sub(lambda m: m.group(1) or "", text)


def load_config(config_path: Union[str, Path]) -> BackupConfig:
    """Load and validate a backup configuration file."""
    return BackupConfig.from_file(config_path)

"""Shared fixtures for the backup tests."""

import asyncio
import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import pytest

from azure_backup.config.settings import DestinationSpec
from azure_backup.destinations.base import StorageProvider, StorageUploadOptions, StoredObjectInfo

SERVICE_URI = "https://example.blob.core.windows.net/"


class FakeStorageProvider(StorageProvider):
    """In-memory object store that records every call."""

    def __init__(self, objects: Optional[Dict[str, StoredObjectInfo]] = None,
                 fail_on: Iterable[str] = (), delay: float = 0.0):
        self.objects: Dict[str, StoredObjectInfo] = dict(objects or {})
        self.contents: Dict[str, bytes] = {}
        self.uploads: List[Tuple[str, StorageUploadOptions]] = []
        self.lookups: List[str] = []
        self.fail_on = set(fail_on)
        self.delay = delay
        self.ready_calls = 0
        self.closed = False

    async def ensure_ready(self) -> None:
        self.ready_calls += 1

    async def try_get_info(self, key: str) -> Optional[StoredObjectInfo]:
        self.lookups.append(key)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.objects.get(key)

    async def upload(self, key, content, options: StorageUploadOptions) -> None:
        if key in self.fail_on:
            raise RuntimeError(f"simulated upload failure for {key}")
        if self.delay:
            await asyncio.sleep(self.delay)
        self.contents[key] = content.read()
        self.uploads.append((key, options))
        self.objects[key] = StoredObjectInfo(key, options.fingerprint, options.tier.value)

    async def close(self) -> None:
        self.closed = True

    @property
    def uploaded_keys(self) -> List[str]:
        return sorted(key for key, _ in self.uploads)


class FakeProviderFactory:
    """Hands out one FakeStorageProvider per container name."""

    def __init__(self, **provider_kwargs):
        self.provider_kwargs = provider_kwargs
        self.providers: Dict[str, FakeStorageProvider] = {}
        self.requested: List[DestinationSpec] = []

    def __call__(self, destination: DestinationSpec) -> FakeStorageProvider:
        self.requested.append(destination)
        container = destination.azure_blob.container
        if container not in self.providers:
            self.providers[container] = FakeStorageProvider(**self.provider_kwargs)
        return self.providers[container]


def write_files(root: Path, files: Dict[str, str]) -> None:
    for relative, text in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")


def make_job(name: str, paths: List[str], container: str = "backups", **overrides) -> dict:
    destination = {"serviceUri": SERVICE_URI, "container": container}
    destination.update(overrides.pop("azure_blob", {}))
    job = {
        "name": name,
        "source": {"paths": paths, "include": overrides.pop("include", ["**/*"]),
                   "exclude": overrides.pop("exclude", [])},
        "destination": {"type": "AzureBlob", "azureBlob": destination},
    }
    job.update(overrides)
    return job


def write_config(path: Path, jobs: List[dict], **defaults) -> Path:
    config = {
        "version": 1,
        "default": {"concurrency": 2, "tier": "Cool", "dryRun": False, **defaults},
        "jobs": jobs,
    }
    path.write_text(json.dumps(config, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def source_dir(tmp_path):
    """A source tree with three .txt files and one .log file."""
    root = tmp_path / "source"
    write_files(root, {
        "a.txt": "alpha",
        "b.txt": "bravo",
        "c.txt": "charlie",
        "notes.log": "ignored by *.txt",
    })
    return root


@pytest.fixture
def fake_provider():
    return FakeStorageProvider()


@pytest.fixture
def fake_factory():
    return FakeProviderFactory()

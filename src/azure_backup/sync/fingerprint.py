"""Content fingerprints used for change detection."""

import asyncio
import hashlib
from pathlib import Path
from typing import Union

FINGERPRINT_ALGORITHM = "sha256"

# Metadata key the fingerprint is stored under on remote objects
FINGERPRINT_METADATA_KEY = "sha256"


def compute_fingerprint(file_path: Union[str, Path], chunk_size: int = 1024 * 1024) -> str:
    """Calculate the SHA-256 hash of a file.

    Args:
        file_path: Path to the file
        chunk_size: Size of chunks to read

    Returns:
        Lower-case hex digest
    """
    digest = hashlib.new(FINGERPRINT_ALGORITHM)

    with open(file_path, 'rb') as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)

    return digest.hexdigest()


async def compute_fingerprint_async(file_path: Union[str, Path]) -> str:
    """Hash a file in a worker thread so the event loop keeps running."""
    return await asyncio.to_thread(compute_fingerprint, file_path)


def fingerprints_match(remote: str, local: str) -> bool:
    """Compare two hex fingerprints, ignoring case."""
    if not remote or not local:
        return False
    return remote.strip().lower() == local.strip().lower()

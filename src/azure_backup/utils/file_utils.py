"""File utility functions."""

import mimetypes
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

# Tokens allowed in destination prefixes, with their strftime equivalents
PREFIX_TOKENS = {
    "{yyyy}": "%Y",
    "{MM}": "%m",
    "{dd}": "%d",
    "{HH}": "%H",
}


class FileHelper:
    """Helper class for file operations."""

    @staticmethod
    def format_file_size(size_bytes: int) -> str:
        """Format file size in human readable format.

        Args:
            size_bytes: Size in bytes

        Returns:
            Formatted size string
        """
        if size_bytes == 0:
            return "0 B"

        size_names = ["B", "KB", "MB", "GB", "TB", "PB"]
        i = 0

        while size_bytes >= 1024 and i < len(size_names) - 1:
            size_bytes /= 1024.0
            i += 1

        return f"{size_bytes:.1f} {size_names[i]}"

    @staticmethod
    def guess_content_type(file_path: Union[str, Path]) -> Optional[str]:
        """Best-effort MIME type from the file name, None when unknown."""
        return mimetypes.guess_type(str(file_path))[0]

    @staticmethod
    def format_prefix(prefix: Optional[str], now: Optional[datetime] = None) -> str:
        """Substitute date tokens in a destination prefix.

        Args:
            prefix: Prefix template such as ``backups/{yyyy}/{MM}``
            now: Moment to format (defaults to the current UTC time)

        Returns:
            Prefix with {yyyy}, {MM}, {dd} and {HH} replaced
        """
        if not prefix:
            return ""

        now = now or datetime.now(timezone.utc)
        for token, fmt in PREFIX_TOKENS.items():
            prefix = prefix.replace(token, now.strftime(fmt))
        return prefix

    @staticmethod
    def resolve_destination_key(prefix: Optional[str], relative_path: str,
                                now: Optional[datetime] = None) -> str:
        """Create the remote object key for a file.

        Tokens are resolved at call time, so files resolved either side of an
        hour boundary during one run can land under different prefixes.

        Args:
            prefix: Prefix template (may be empty)
            relative_path: Path of the file relative to its source root
            now: Moment used for token substitution

        Returns:
            Object key using forward slashes
        """
        formatted = FileHelper.format_prefix(prefix, now)

        if formatted:
            key = f"{formatted.rstrip('/')}/{relative_path}"
        else:
            key = relative_path

        return key.replace('\\', '/')

    @staticmethod
    def get_relative_path(file_path: Path, base_path: Path) -> str:
        """Get relative path from base path.

        Args:
            file_path: Full file path
            base_path: Base path to calculate relative from

        Returns:
            Relative path with forward slashes
        """
        try:
            return file_path.relative_to(base_path).as_posix()
        except ValueError:
            # If paths are not related, return the full path
            return file_path.as_posix()

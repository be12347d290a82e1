"""Resolve a job's source specification into the files to back up.

Symlinked files and directories are skipped unless the source sets
``followSymlinks: true``.
"""

import logging
import os
import re
from pathlib import Path
from typing import Callable, Iterator, List, NamedTuple, Optional, Pattern, Sequence, Set, Tuple

from ..config.settings import SourceSpec
from ..utils.file_utils import FileHelper

logger = logging.getLogger(__name__)


class DiscoveredFile(NamedTuple):
    """A file found under one of a job's source roots."""

    root: str
    full_path: str
    relative_path: str  # always uses forward slashes


def glob_to_regex(pattern: str) -> Pattern[str]:
    """Compile a glob into a case-insensitive regex over '/'-separated paths.

    ``*`` and ``?`` never cross a '/', ``**`` as a whole segment matches zero
    or more directories, and ``[...]`` is a character class.
    """
    pattern = pattern.replace("\\", "/").strip()
    while pattern.startswith("./"):
        pattern = pattern[2:]
    pattern = pattern.lstrip("/")

    parts: List[str] = []
    segments = pattern.split("/")
    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        if segment == "**":
            parts.append(".*" if last else "(?:[^/]+/)*")
            continue
        parts.append(_translate_segment(segment))
        if not last:
            parts.append("/")

    return re.compile("".join(parts) + r"\Z", re.IGNORECASE | re.DOTALL)


def _translate_segment(segment: str) -> str:
    out = []
    i, n = 0, len(segment)
    while i < n:
        c = segment[i]
        i += 1
        if c == "*":
            while i < n and segment[i] == "*":
                i += 1
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            j = i
            if j < n and segment[j] in "!^":
                j += 1
            if j < n and segment[j] == "]":
                j += 1
            while j < n and segment[j] != "]":
                j += 1
            if j >= n:
                out.append(re.escape(c))
            else:
                body = segment[i:j].replace("\\", "\\\\")
                if body[:1] in "!^":
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = j + 1
        else:
            out.append(re.escape(c))
    return "".join(out)


class FileMatcher:
    """Include/exclude glob filter applied to root-relative paths."""

    def __init__(self, include: Sequence[str], exclude: Sequence[str] = ()):
        self.include = [glob_to_regex(p) for p in (include or ["**/*"]) if p.strip()]
        self.exclude = [glob_to_regex(p) for p in exclude if p.strip()]

    def matches(self, relative_path: str) -> bool:
        if not any(rx.match(relative_path) for rx in self.include):
            return False
        return not any(rx.match(relative_path) for rx in self.exclude)

    def excludes_directory(self, relative_path: str) -> bool:
        """True when an exclude pattern names the directory itself.

        Both ``cache`` and ``cache/**`` prune ``cache`` together with
        everything below it.
        """
        candidates = (relative_path, relative_path + "/")
        return any(rx.match(c) for rx in self.exclude for c in candidates)


def _walk(root: Path, follow_symlinks: bool,
          prune: Optional[Callable[[str], bool]] = None) -> Iterator[Tuple[str, List[os.DirEntry]]]:
    """Yield (directory, file entries) below root.

    ``prune`` receives each subdirectory's root-relative path; directories
    it accepts are not descended.

    When following symlinks a directory is only entered once per real
    (device, inode), so links pointing back at an ancestor terminate.
    """
    visited: Set[Tuple[int, int]] = set()
    stack = [str(root)]

    while stack:
        directory = stack.pop()
        if follow_symlinks:
            try:
                st = os.stat(directory)
            except OSError as e:
                logger.debug(f"Cannot stat directory {directory}: {e}")
                continue
            identity = (st.st_dev, st.st_ino)
            if identity in visited:
                logger.debug(f"Skipping already visited directory (symlink cycle): {directory}")
                continue
            visited.add(identity)

        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as e:
            logger.warning(f"Cannot list directory {directory}: {e}")
            continue

        files = []
        subdirs = []
        for entry in entries:
            try:
                is_link = entry.is_symlink()
                if is_link and not follow_symlinks:
                    continue
                if entry.is_dir(follow_symlinks=follow_symlinks):
                    if prune and prune(FileHelper.get_relative_path(Path(entry.path), root)):
                        logger.debug(f"Excluded directory: {entry.path}")
                        continue
                    subdirs.append(entry.path)
                elif entry.is_file(follow_symlinks=follow_symlinks):
                    files.append(entry)
            except OSError as e:
                logger.debug(f"Skipping unreadable entry {entry.path}: {e}")

        yield directory, files
        stack.extend(sorted(subdirs, reverse=True))


def discover_files(source: SourceSpec) -> List[DiscoveredFile]:
    """Enumerate files matching the source's include/exclude patterns.

    Roots that are blank or do not exist are skipped silently.

    Args:
        source: Source specification of a job

    Returns:
        Matching files across all roots, sorted by relative path per root
    """
    matcher = FileMatcher(source.include, source.exclude)
    results: List[DiscoveredFile] = []

    for root in source.paths:
        if not root or not root.strip():
            continue
        root_path = Path(root).expanduser()
        if not root_path.is_dir():
            logger.debug(f"Source path does not exist, skipping: {root}")
            continue

        found = []
        for _, entries in _walk(root_path, source.follow_symlinks, matcher.excludes_directory):
            for entry in entries:
                relative = FileHelper.get_relative_path(Path(entry.path), root_path)
                if matcher.matches(relative):
                    found.append(DiscoveredFile(root, entry.path, relative))

        found.sort(key=lambda f: f.relative_path)
        logger.debug(f"Matched {len(found)} files under {root}")
        results.extend(found)

    return results

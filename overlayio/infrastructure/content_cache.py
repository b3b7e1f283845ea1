#!/usr/bin/env python3
"""Static content cache for OverlayIO.

The static content cache is a read-only snapshot of file contents taken
once at process start. It remembers the source root it was compiled from
so that physical paths under that root can be rebased onto cache-relative
paths:

- Built from a directory tree or from an in-memory mapping
- Immutable after construction (safe for concurrent readers)
- Lookup by cache-relative path ("docs/index.html")
- Hit/miss statistics

Example:
    >>> cache = StaticContentCache.from_directory("/srv/www")
    >>> rel = cache.get_relative_path("/srv/www/docs/index.html")
    >>> cache.read(rel)
"""

import os
import posixpath
import threading
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterator, Mapping, Optional

from overlayio.core.constants import Limits
from overlayio.infrastructure.logger import Logger


def _normalize_key(relative: str) -> str:
    key = posixpath.normpath(relative.replace(os.sep, "/")).lstrip("/")
    return "" if key == "." else key


class StaticContentCache:
    """Read-only in-memory store of precompiled file contents."""

    def __init__(self, root: str, files: Mapping[str, bytes]):
        """Initialize cache.

        Args:
            root: Absolute source root the content was compiled from
            files: Mapping of root-relative paths to file contents
        """
        self._root = posixpath.normpath(os.path.abspath(root))

        entries = {_normalize_key(path): bytes(data) for path, data in files.items()}
        self._files: Mapping[str, bytes] = MappingProxyType(entries)
        self._directories: FrozenSet[str] = frozenset(self._collect_directories(entries))

        self._stats_lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @staticmethod
    def _collect_directories(entries: Dict[str, bytes]) -> set:
        directories = {""}
        for key in entries:
            parent = posixpath.dirname(key)
            while parent and parent not in directories:
                directories.add(parent)
                parent = posixpath.dirname(parent)
        return directories

    @classmethod
    def from_directory(
        cls,
        root: str,
        max_file_size: int = Limits.MAX_CACHED_FILE_SIZE,
        logger: Optional[Logger] = None,
    ) -> "StaticContentCache":
        """Compile every regular file below ``root`` into a cache.

        Files larger than ``max_file_size`` or unreadable files are left
        out; they will be served by the physical filesystem instead.

        Args:
            root: Directory to snapshot
            max_file_size: Largest file size to include, in bytes
            logger: Optional logger for skipped files

        Returns:
            New cache rooted at ``root``

        Raises:
            NotADirectoryError: If root is not a directory
        """
        if not os.path.isdir(root):
            raise NotADirectoryError(root)

        files: Dict[str, bytes] = {}
        for dirpath, _dirnames, filenames in os.walk(root):
            for name in filenames:
                full_path = os.path.join(dirpath, name)
                relative = os.path.relpath(full_path, root)
                try:
                    if not os.path.isfile(full_path):
                        continue
                    if os.path.getsize(full_path) > max_file_size:
                        if logger:
                            logger.debug("Skipping oversized file", path=full_path)
                        continue
                    with open(full_path, "rb") as f:
                        files[relative] = f.read()
                except OSError as e:
                    if logger:
                        logger.warning(f"Skipping unreadable file: {e}", path=full_path)

        if logger:
            logger.info("Static content cache compiled", root=root, files=len(files))
        return cls(root, files)

    @classmethod
    def from_mapping(cls, root: str, files: Mapping[str, bytes]) -> "StaticContentCache":
        return cls(root, files)

    @property
    def root(self) -> str:
        return self._root

    def get_relative_path(self, path: str) -> str:
        """Rebase a physical path against the cache root.

        Paths outside the root are returned unchanged.
        """
        if path == self._root:
            return ""
        prefix = self._root.rstrip("/") + "/"
        if path.startswith(prefix):
            return path[len(prefix):]
        return path

    def exists(self, relative: str) -> bool:
        """Check whether a file or directory is held at a relative path."""
        if posixpath.isabs(relative):
            return False
        key = _normalize_key(relative)
        return key in self._files or key in self._directories

    def is_directory(self, relative: str) -> bool:
        if posixpath.isabs(relative):
            return False
        return _normalize_key(relative) in self._directories

    def read(self, relative: str) -> Optional[bytes]:
        """Get the contents of a cached file.

        Args:
            relative: Root-relative path

        Returns:
            File contents, or None if no file is cached at that path
        """
        data = None
        if not posixpath.isabs(relative):
            data = self._files.get(_normalize_key(relative))

        with self._stats_lock:
            if data is None:
                self._misses += 1
            else:
                self._hits += 1
        return data

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._stats_lock:
            total_requests = self._hits + self._misses
            return {
                "files": len(self._files),
                "directories": len(self._directories),
                "size_bytes": sum(len(data) for data in self._files.values()),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / total_requests if total_requests > 0 else 0,
            }

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, relative: object) -> bool:
        return isinstance(relative, str) and self.exists(relative)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._files))

"""
FUSE filesystem operations for OverlayIO.

This module exposes a FileStreamWrapper as a mountable filesystem:
- Metadata operations (getattr, access)
- Directory operations (readdir, mkdir, rmdir)
- File operations (open, create, read, write, truncate, release, unlink, rename)

Reads go through the wrapper's layered open, so files held in the static
content cache are served from memory. Negative statuses returned by the
wrapper are raised as FuseOSError.
"""

import errno
import os
import stat
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from fuse import FuseOSError, Operations

from overlayio.infrastructure.logger import Logger
from overlayio.stream.handles import FileHandle
from overlayio.stream.wrapper import FileStreamWrapper


@dataclass
class OpenFile:
    """An open file tracked by the adapter."""

    handle: FileHandle
    path: str
    flags: int


def flags_to_mode(flags: int) -> str:
    """Map open(2) flags onto an fopen()-style mode."""
    access_mode = flags & os.O_ACCMODE

    if access_mode == os.O_RDONLY:
        return "r"
    if access_mode == os.O_WRONLY:
        if flags & os.O_APPEND:
            return "a"
        if flags & os.O_TRUNC:
            return "w"
        return "c"
    if flags & os.O_APPEND:
        return "a+"
    if flags & os.O_TRUNC:
        return "w+"
    if flags & os.O_CREAT:
        return "c+"
    return "r+"


def _check(status: int) -> None:
    if status < 0:
        raise FuseOSError(-status)


def _logical(path: str) -> str:
    """Mount-relative FUSE path ("/a/b") to a path under the source root."""
    return path.lstrip("/")


class OverlayOperations(Operations):
    """
    FUSE operations backed by a FileStreamWrapper.

    Thread Safety:
    - The open file table is guarded by a lock
    - The wrapper itself holds no mutable state
    """

    def __init__(
        self,
        wrapper: FileStreamWrapper,
        readonly: bool = False,
        logger: Optional[Logger] = None,
    ):
        """
        Initialize FUSE operations.

        Args:
            wrapper: Stream wrapper serving every request
            readonly: Reject mutations with EROFS
            logger: Logger (created if None)
        """
        self.wrapper = wrapper
        self.readonly = readonly
        self.logger = logger if logger is not None else Logger("overlayio.fuse")

        self.files: Dict[int, OpenFile] = {}
        self.fh_counter = 0
        self.fh_lock = threading.Lock()

    def _require_writable(self) -> None:
        if self.readonly:
            raise FuseOSError(errno.EROFS)

    # =========================================================================
    # Metadata Operations
    # =========================================================================

    def getattr(self, path: str, fh: Optional[int] = None) -> Dict[str, Any]:
        """
        Get file attributes.

        Falls back to the content cache for files that exist only there.

        Raises:
            FuseOSError: With the errno of the failed lstat
        """
        attrs: Dict[str, Any] = {}
        ret = self.wrapper.lstat(_logical(path), attrs, use_file_cache=True)
        if ret == 0:
            return attrs

        cached = self._cached_attrs(path)
        if cached is not None:
            return cached
        raise FuseOSError(-ret)

    def _cached_attrs(self, path: str) -> Optional[Dict[str, Any]]:
        cache = self.wrapper.context.content_cache
        if cache is None:
            return None

        translator = self.wrapper.translator
        relative = translator.cache_relative_path(self.wrapper.translate(_logical(path)))
        if os.path.isabs(relative) or not cache.exists(relative):
            return None

        if cache.is_directory(relative):
            return {"st_mode": stat.S_IFDIR | 0o555, "st_nlink": 2, "st_size": 0}

        data = cache.read(relative) or b""
        return {"st_mode": stat.S_IFREG | 0o444, "st_nlink": 1, "st_size": len(data)}

    def access(self, path: str, amode: int) -> None:
        if amode & os.W_OK:
            self._require_writable()
        _check(self.wrapper.access(_logical(path), amode, use_file_cache=True))

    # =========================================================================
    # Directory Operations
    # =========================================================================

    def readdir(self, path: str, fh: int) -> List[str]:
        """
        List directory contents (including "." and "..").

        Raises:
            FuseOSError: ENOENT if the directory cannot be opened
        """
        directory = self.wrapper.opendir(_logical(path))
        if directory is None:
            raise FuseOSError(errno.ENOENT)

        with directory:
            return list(directory)

    def mkdir(self, path: str, mode: int) -> None:
        self._require_writable()
        _check(self.wrapper.mkdir(_logical(path), mode))

    def rmdir(self, path: str) -> None:
        self._require_writable()
        _check(self.wrapper.rmdir(_logical(path)))

    # =========================================================================
    # File Operations
    # =========================================================================

    def open(self, path: str, flags: int) -> int:
        """
        Open a file and return a file handle ID.

        Raises:
            FuseOSError: EROFS for writes on a readonly mount, or the
                errno explaining why the open failed
        """
        mode = flags_to_mode(flags)
        if mode != "r":
            self._require_writable()

        handle = self.wrapper.open(_logical(path), mode)
        if handle is None:
            ret = self.wrapper.access(_logical(path), os.F_OK)
            raise FuseOSError(-ret if ret < 0 else errno.EACCES)

        return self._allocate(handle, path, flags)

    def create(self, path: str, mode: int, fi=None) -> int:
        self._require_writable()

        handle = self.wrapper.open(_logical(path), "w+")
        if handle is None:
            raise FuseOSError(errno.EACCES)

        try:
            os.chmod(self.wrapper.translate(_logical(path)), stat.S_IMODE(mode))
        except OSError as e:
            handle.close()
            raise FuseOSError(e.errno or errno.EIO)
        return self._allocate(handle, path, os.O_RDWR | os.O_CREAT | os.O_TRUNC)

    def read(self, path: str, size: int, offset: int, fh: int) -> bytes:
        open_file = self._get(fh)
        try:
            open_file.handle.seek(offset)
            return open_file.handle.read(size)
        except OSError as e:
            raise FuseOSError(e.errno or errno.EIO)

    def write(self, path: str, data: bytes, offset: int, fh: int) -> int:
        self._require_writable()
        open_file = self._get(fh)
        try:
            open_file.handle.seek(offset)
            return open_file.handle.write(data)
        except OSError as e:
            raise FuseOSError(e.errno or errno.EIO)

    def truncate(self, path: str, length: int, fh: Optional[int] = None) -> None:
        self._require_writable()
        try:
            os.truncate(self.wrapper.translate(_logical(path)), length)
        except OSError as e:
            raise FuseOSError(e.errno)

    def release(self, path: str, fh: int) -> None:
        with self.fh_lock:
            open_file = self.files.pop(fh, None)
        if open_file is not None:
            open_file.handle.close()
            self.logger.debug(f"Closed file: {path} (fh={fh})")

    def unlink(self, path: str) -> None:
        self._require_writable()
        _check(self.wrapper.unlink(_logical(path)))

    def rename(self, old: str, new: str) -> None:
        self._require_writable()
        _check(self.wrapper.rename(_logical(old), _logical(new)))

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _allocate(self, handle: FileHandle, path: str, flags: int) -> int:
        with self.fh_lock:
            fh = self.fh_counter
            self.files[fh] = OpenFile(handle=handle, path=path, flags=flags)
            self.fh_counter += 1
        self.logger.debug(f"Opened file: {path} (fh={fh})")
        return fh

    def _get(self, fh: int) -> OpenFile:
        with self.fh_lock:
            open_file = self.files.get(fh)
        if open_file is None:
            raise FuseOSError(errno.EBADF)
        return open_file

    def get_stats(self) -> Dict[str, Any]:
        cache = self.wrapper.context.content_cache
        return {
            "open_files": len(self.files),
            "readonly": self.readonly,
            "content_cache": cache.get_stats() if cache is not None else None,
        }

"""
File and directory handles returned by the stream wrapper.

Two file handle variants share one interface:
- CachedFileHandle: read-only, served from the static content cache
- PhysicalFileHandle: backed by an OS file descriptor

DirectoryHandle wraps a directory stream on the physical filesystem.

Handles report construction failures through get_last_error() rather than
raising; the wrapper turns a failed open into a logged warning and None.
"""

import errno
import io
import os
import stat
from abc import ABC, abstractmethod
from typing import Iterator, Optional

from overlayio.core.constants import READ_MODES
from overlayio.core.validators import ValidationError, validate_open_mode
from overlayio.infrastructure.content_cache import StaticContentCache

# os.open() flags for each fopen()-style mode
_OPEN_FLAGS = {
    "r": os.O_RDONLY,
    "r+": os.O_RDWR,
    "w": os.O_WRONLY | os.O_CREAT | os.O_TRUNC,
    "w+": os.O_RDWR | os.O_CREAT | os.O_TRUNC,
    "a": os.O_WRONLY | os.O_CREAT | os.O_APPEND,
    "a+": os.O_RDWR | os.O_CREAT | os.O_APPEND,
    "x": os.O_WRONLY | os.O_CREAT | os.O_EXCL,
    "x+": os.O_RDWR | os.O_CREAT | os.O_EXCL,
    "c": os.O_WRONLY | os.O_CREAT,
    "c+": os.O_RDWR | os.O_CREAT,
}

# io.FileIO modes used to wrap an already opened descriptor
_FILEIO_MODES = {
    "r": "rb",
    "r+": "r+b",
    "w": "wb",
    "w+": "r+b",
    "a": "ab",
    "a+": "a+b",
    "x": "wb",
    "x+": "r+b",
    "c": "wb",
    "c+": "r+b",
}


class FileHandle(ABC):
    """Common interface of cached and physical file handles."""

    def __init__(self):
        self.path: Optional[str] = None
        self.mode: Optional[str] = None
        self._stream: Optional[io.IOBase] = None
        self._last_error = ""
        self._eof = False

    @abstractmethod
    def open(self, path: str, mode: str) -> bool:
        """Open ``path`` with ``mode``; False on failure (see get_last_error)."""

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def get_last_error(self) -> str:
        return self._last_error

    def _require_open(self) -> io.IOBase:
        if self._stream is None:
            raise OSError(errno.EBADF, os.strerror(errno.EBADF), self.path)
        return self._stream

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes (everything remaining if negative)."""
        stream = self._require_open()
        data = stream.read(size)
        if data is None:
            data = b""
        if size < 0 or len(data) < size:
            self._eof = True
        return data

    def write(self, data: bytes) -> int:
        stream = self._require_open()
        return stream.write(data) or 0

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        self._eof = False
        return self._require_open().seek(offset, whence)

    def tell(self) -> int:
        return self._require_open().tell()

    def eof(self) -> bool:
        return self._eof

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    def __enter__(self) -> "FileHandle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"{type(self).__name__}(path={self.path!r}, mode={self.mode!r}, {state})"


class CachedFileHandle(FileHandle):
    """Read-only handle over a file held in the static content cache."""

    def __init__(self, cache: StaticContentCache):
        super().__init__()
        self.cache = cache

    def open(self, path: str, mode: str) -> bool:
        """Open a cache-relative path.

        Only read modes are served from the cache; anything else misses
        so the caller falls through to the physical filesystem.
        """
        try:
            base_mode = validate_open_mode(mode)
        except ValidationError as e:
            self._last_error = str(e)
            return False

        if base_mode not in READ_MODES:
            self._last_error = f"cache is read-only, cannot open {path} with mode {mode!r}"
            return False

        data = self.cache.read(path)
        if data is None:
            self._last_error = f"{path} is not in the static content cache"
            return False

        self.path = path
        self.mode = mode
        self._stream = io.BytesIO(data)
        return True

    def write(self, data: bytes) -> int:
        raise OSError(errno.EBADF, "static content cache is read-only", self.path)


class PhysicalFileHandle(FileHandle):
    """Handle over a file descriptor on the physical filesystem."""

    def __init__(self, create_mode: int = 0o666):
        super().__init__()
        self.create_mode = create_mode
        self.fd: Optional[int] = None

    def open(self, path: str, mode: str) -> bool:
        try:
            base_mode = validate_open_mode(mode)
        except ValidationError as e:
            self._last_error = f"failed to open stream: {path}: {e}"
            return False

        try:
            fd = os.open(path, _OPEN_FLAGS[base_mode], self.create_mode)
        except OSError as e:
            self._last_error = f"failed to open stream: {path}: {e.strerror}"
            return False

        try:
            if stat.S_ISDIR(os.fstat(fd).st_mode):
                raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), path)
            self._stream = io.FileIO(fd, _FILEIO_MODES[base_mode], closefd=True)
        except OSError as e:
            os.close(fd)
            self._last_error = f"failed to open stream: {path}: {e.strerror}"
            return False

        self.fd = fd
        self.path = path
        self.mode = mode
        return True

    def close(self) -> None:
        super().close()
        self.fd = None


class DirectoryHandle:
    """Directory stream rooted at a physical path.

    The stream is opened at construction; check is_valid() before use.
    Entries are produced one at a time by read(), starting with "." and "..".
    """

    def __init__(self, path: str):
        self.path = path
        self._last_error = ""
        self._scanner: Optional[Iterator[os.DirEntry]] = None
        self._pending = [".", ".."]
        self._open_stream()

    def _open_stream(self) -> None:
        try:
            self._scanner = os.scandir(self.path)
        except OSError as e:
            self._scanner = None
            self._last_error = f"failed to open dir: {self.path}: {e.strerror}"

    def is_valid(self) -> bool:
        return self._scanner is not None

    def get_last_error(self) -> str:
        return self._last_error

    def read(self) -> Optional[str]:
        """Return the next entry name, or None at the end of the stream."""
        if self._scanner is None:
            return None
        if self._pending:
            return self._pending.pop(0)
        try:
            return next(self._scanner).name
        except StopIteration:
            return None

    def rewind(self) -> None:
        self.close()
        self._pending = [".", ".."]
        self._open_stream()

    def close(self) -> None:
        if self._scanner is not None:
            self._scanner.close()
            self._scanner = None

    def __iter__(self) -> Iterator[str]:
        while True:
            name = self.read()
            if name is None:
                return
            yield name

    def __enter__(self) -> "DirectoryHandle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

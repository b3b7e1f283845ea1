"""
Plain-file stream wrapper for OverlayIO.

FileStreamWrapper is the single entry point for opening files and
directories, querying metadata and mutating the filesystem. Opens are
served from the static content cache when it holds the file; everything
else goes to the physical filesystem after path translation:

- Scheme stripping ("file://...") and path translation
- Layered open: content cache, then include path, then filesystem
- Metadata operations (access, stat, lstat)
- Mutations (unlink, rmdir, rename, mkdir with recursive creation)

Metadata and mutation calls return 0 on success or a negative errno;
expected failures never raise.
"""

import errno
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from overlayio.core import file_ops
from overlayio.core.constants import (
    FILE_SCHEME,
    Limits,
    LogicalPath,
    MkdirOption,
    OpenOption,
    PhysicalPath,
    RmdirOption,
)
from overlayio.infrastructure.content_cache import StaticContentCache
from overlayio.infrastructure.logger import Logger
from overlayio.stream.handles import (
    CachedFileHandle,
    DirectoryHandle,
    FileHandle,
    PhysicalFileHandle,
)
from overlayio.stream.include_path import IncludePathResolver
from overlayio.stream.translator import PathTranslator

STAT_FIELDS = (
    "st_mode",
    "st_ino",
    "st_dev",
    "st_nlink",
    "st_uid",
    "st_gid",
    "st_size",
    "st_atime",
    "st_mtime",
    "st_ctime",
)


def remove_scheme(path: LogicalPath) -> str:
    """Strip one leading "file://" prefix, if present."""
    if path.startswith(FILE_SCHEME):
        return path[len(FILE_SCHEME):]
    return path


def _status(primitive: Callable[..., Any], *args: Any) -> int:
    try:
        primitive(*args)
    except OSError as e:
        return -(e.errno or errno.EIO)
    return 0


@dataclass(frozen=True)
class WrapperContext:
    """Process-wide settings injected into a FileStreamWrapper.

    Attributes:
        content_cache: Static content cache, or None when not configured
        use_direct_copy: Select file_ops.direct_rename over file_ops.rename
        source_root: Directory relative paths resolve against (cwd if None)
        include_paths: Roots searched when opening with USE_INCLUDE_PATH
    """

    content_cache: Optional[StaticContentCache] = None
    use_direct_copy: bool = False
    source_root: Optional[str] = None
    include_paths: Tuple[str, ...] = ()


OpenStrategy = Callable[[str, str, int], Optional[FileHandle]]


class FileStreamWrapper:
    """
    Uniform access to files through the content cache and the filesystem.

    Open resolution is an ordered list of strategies; the first one that
    returns a handle wins:

    1. Content cache: the translated path, rebased onto the cache root, is
       opened as a CachedFileHandle. Misses are silent.
    2. Filesystem: with OpenOption.USE_INCLUDE_PATH the include path may
       rewrite the path first; the result is translated and opened as a
       PhysicalFileHandle. Failure is logged as a warning.

    Thread Safety:
    - The wrapper holds no mutable state after construction
    - The content cache is immutable
    - Mutations rely on the atomicity of the OS primitives
    """

    def __init__(
        self,
        context: Optional[WrapperContext] = None,
        logger: Optional[Logger] = None,
        translator: Optional[PathTranslator] = None,
        include_resolver: Optional[IncludePathResolver] = None,
    ):
        """
        Initialize the wrapper.

        Args:
            context: Injected settings (defaults: no cache, standard rename)
            logger: Diagnostic sink (created if None)
            translator: Path translator (built from context if None)
            include_resolver: Include-path resolver (built from context if None)
        """
        self.context = context if context is not None else WrapperContext()
        self.logger = logger if logger is not None else Logger("overlayio.stream")
        self.translator = (
            translator
            if translator is not None
            else PathTranslator(self.context.source_root, self.context.content_cache)
        )
        self.include_resolver = (
            include_resolver
            if include_resolver is not None
            else IncludePathResolver(self.context.include_paths, cwd=self.translator.source_root)
        )

        self._open_strategies: Sequence[OpenStrategy] = (
            self._open_from_cache,
            self._open_from_filesystem,
        )

    # =========================================================================
    # Path Resolution
    # =========================================================================

    def translate(self, path: LogicalPath, use_file_cache: bool = False) -> PhysicalPath:
        """
        Strip the scheme and translate a logical path.

        Args:
            path: Logical path, optionally "file://"-prefixed
            use_file_cache: Use the cache-aware translator

        Returns:
            Physical path
        """
        path = remove_scheme(path)
        if use_file_cache:
            return self.translator.translate_path_with_file_cache(path)
        return self.translator.translate_path(path)

    # =========================================================================
    # Open
    # =========================================================================

    def open(
        self,
        filename: LogicalPath,
        mode: str = "r",
        options: int = OpenOption.NONE,
        context: Any = None,
    ) -> Optional[FileHandle]:
        """
        Open a file, preferring the static content cache.

        Args:
            filename: Logical path
            mode: fopen()-style mode ("r", "rb", "w+", "a", ...)
            options: OpenOption bits
            context: Opaque caller context (unused)

        Returns:
            An open handle, or None if every strategy failed
        """
        fname = remove_scheme(filename)

        for strategy in self._open_strategies:
            handle = strategy(fname, mode, options)
            if handle is not None:
                return handle
        return None

    def _open_from_cache(self, fname: str, mode: str, options: int) -> Optional[FileHandle]:
        cache = self.context.content_cache
        if cache is None:
            return None

        relative = self.translator.cache_relative_path(self.translator.translate_path(fname))
        handle = CachedFileHandle(cache)
        if handle.open(relative, mode):
            self.logger.debug("Opened from content cache", path=fname, relative=relative)
            return handle

        handle.close()
        self.logger.debug("Content cache miss", path=fname, reason=handle.get_last_error())
        return None

    def _open_from_filesystem(self, fname: str, mode: str, options: int) -> Optional[FileHandle]:
        if options & OpenOption.USE_INCLUDE_PATH:
            hit = self.include_resolver.resolve(fname, "")
            if hit is not None:
                resolved, _st = hit
                self.logger.debug("Resolved on include path", path=fname, resolved=resolved)
                fname = resolved

        handle = PhysicalFileHandle()
        if not handle.open(self.translator.translate_path(fname), mode):
            self.logger.warning(handle.get_last_error())
            handle.close()
            return None
        return handle

    def opendir(self, path: LogicalPath) -> Optional[DirectoryHandle]:
        """
        Open a directory on the physical filesystem.

        Returns:
            A valid directory handle, or None (failure is logged)
        """
        directory = DirectoryHandle(self.translate(path))
        if not directory.is_valid():
            self.logger.warning(directory.get_last_error())
            directory.close()
            return None
        return directory

    # =========================================================================
    # Metadata
    # =========================================================================

    def access(self, path: LogicalPath, mode: int, use_file_cache: bool = False) -> int:
        """Check accessibility like access(2): 0 or a negative errno."""
        physical = self.translate(path, use_file_cache)
        if os.access(physical, mode):
            return 0

        # os.access() hides the errno; recover it from stat() and statvfs()
        try:
            os.stat(physical)
            read_only = bool(os.statvfs(physical).f_flag & os.ST_RDONLY)
        except OSError as e:
            return -(e.errno or errno.EIO)

        if mode & os.W_OK and read_only:
            return -errno.EROFS
        return -errno.EACCES

    def stat(self, path: LogicalPath, buf: Dict[str, Any], use_file_cache: bool = False) -> int:
        """stat(2) a path, filling ``buf`` with st_* fields on success."""
        return self._stat_into(os.stat, self.translate(path, use_file_cache), buf)

    def lstat(self, path: LogicalPath, buf: Dict[str, Any], use_file_cache: bool = False) -> int:
        """lstat(2) a path, filling ``buf`` with st_* fields on success."""
        return self._stat_into(os.lstat, self.translate(path, use_file_cache), buf)

    @staticmethod
    def _stat_into(primitive: Callable[[str], os.stat_result], physical: str, buf: Dict[str, Any]) -> int:
        try:
            st = primitive(physical)
        except OSError as e:
            return -(e.errno or errno.EIO)

        buf.update({name: getattr(st, name) for name in STAT_FIELDS})
        return 0

    # =========================================================================
    # Mutations
    # =========================================================================

    def unlink(self, path: LogicalPath) -> int:
        return _status(os.unlink, self.translate(path))

    def rmdir(self, path: LogicalPath, options: int = RmdirOption.NONE) -> int:
        """Remove an empty directory. ``options`` is reserved."""
        return _status(os.rmdir, self.translate(path))

    def rename(self, oldname: LogicalPath, newname: LogicalPath) -> int:
        """
        Rename a file, translating both paths.

        Uses file_ops.direct_rename when the context selects direct copy,
        file_ops.rename otherwise.
        """
        old_path = self.translate(oldname)
        new_path = self.translate(newname)

        if self.context.use_direct_copy:
            return file_ops.direct_rename(old_path, new_path)
        return file_ops.rename(old_path, new_path)

    def mkdir(self, path: LogicalPath, mode: int = 0o777, options: int = MkdirOption.NONE) -> int:
        """Create a directory; MkdirOption.RECURSIVE creates missing parents."""
        if options & MkdirOption.RECURSIVE:
            return self.mkdir_recursive(path, mode)
        return _status(os.mkdir, self.translate(path), mode)

    def mkdir_recursive(self, path: LogicalPath, mode: int = 0o777) -> int:
        """
        Create every missing directory along ``path``.

        Fails with -ENAMETOOLONG or -EEXIST before creating anything.
        A failure part way through returns that step's negative errno and
        leaves the directories created so far in place.
        """
        fullpath = self.translate(path)
        if len(fullpath) > Limits.MAX_PATH_LENGTH:
            return -errno.ENAMETOOLONG

        if os.access(fullpath, os.F_OK):
            return -errno.EEXIST

        for i in range(1, len(fullpath)):
            if fullpath[i] != "/":
                continue
            prefix = fullpath[:i]
            if not os.access(prefix, os.F_OK):
                ret = _status(os.mkdir, prefix, mode)
                if ret < 0:
                    self.logger.debug("mkdir failed", path=prefix, errno=-ret)
                    return ret

        if not os.access(fullpath, os.F_OK):
            return _status(os.mkdir, fullpath, mode)
        return 0

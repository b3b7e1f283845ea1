"""
OverlayIO Core: Rename strategies.

Two ways of moving a file between physical paths. Both try a plain
rename first and only copy when source and destination live on
different devices:

- rename(): copies with shutil.copy2 (data and metadata)
- direct_rename(): copies through raw descriptors, asking the kernel
  not to keep the copied pages cached

Both return 0 on success or a negative errno on failure.
"""
import errno
import os
import shutil

from overlayio.core.constants import Limits


def rename(old_path: str, new_path: str) -> int:
    """Rename a file, falling back to copy + unlink across devices."""
    try:
        os.rename(old_path, new_path)
        return 0
    except OSError as e:
        if e.errno != errno.EXDEV:
            return -e.errno

    try:
        shutil.copy2(old_path, new_path)
        os.unlink(old_path)
    except OSError as e:
        return -(e.errno or errno.EIO)
    return 0


def direct_rename(old_path: str, new_path: str) -> int:
    """Rename a file, falling back to direct_copy + unlink across devices."""
    try:
        os.rename(old_path, new_path)
        return 0
    except OSError as e:
        if e.errno != errno.EXDEV:
            return -e.errno

    ret = direct_copy(old_path, new_path)
    if ret < 0:
        return ret

    try:
        os.unlink(old_path)
    except OSError as e:
        return -e.errno
    return 0


def direct_copy(src: str, dst: str) -> int:
    """Copy file contents through raw descriptors.

    The destination is created (or truncated) with the source's
    permission bits.

    Args:
        src: Source physical path
        dst: Destination physical path

    Returns:
        0 on success, negative errno on failure
    """
    try:
        src_fd = os.open(src, os.O_RDONLY)
    except OSError as e:
        return -e.errno

    try:
        st = os.fstat(src_fd)
        dst_fd = os.open(dst, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, st.st_mode & 0o7777)
        try:
            _advise_dontneed(src_fd)
            while True:
                chunk = os.read(src_fd, Limits.COPY_CHUNK_SIZE)
                if not chunk:
                    break
                view = memoryview(chunk)
                while view:
                    written = os.write(dst_fd, view)
                    view = view[written:]
            _advise_dontneed(dst_fd)
        finally:
            os.close(dst_fd)
    except OSError as e:
        return -(e.errno or errno.EIO)
    finally:
        os.close(src_fd)

    return 0


def _advise_dontneed(fd: int) -> None:
    if hasattr(os, "posix_fadvise"):
        try:
            os.posix_fadvise(fd, 0, 0, os.POSIX_FADV_DONTNEED)
        except OSError:
            pass  # advisory only

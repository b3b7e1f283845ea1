"""Tests for file and directory handles."""

import errno
import os

import pytest

from overlayio.infrastructure.content_cache import StaticContentCache
from overlayio.stream.handles import CachedFileHandle, DirectoryHandle, PhysicalFileHandle


@pytest.fixture
def cache():
    return StaticContentCache.from_mapping("/srv/www", {"a.txt": b"abcdef", "d/b.txt": b"b"})


class TestCachedFileHandle:
    """Handles served from the static content cache."""

    def test_open_and_read(self, cache):
        handle = CachedFileHandle(cache)

        assert handle.open("a.txt", "r")
        assert handle.is_open
        assert handle.read(2) == b"ab"
        assert handle.tell() == 2
        assert not handle.eof()
        assert handle.read() == b"cdef"
        assert handle.eof()

    def test_seek_clears_eof(self, cache):
        handle = CachedFileHandle(cache)
        handle.open("a.txt", "rb")
        handle.read()

        handle.seek(1)

        assert not handle.eof()
        assert handle.read(1) == b"b"

    def test_miss(self, cache):
        handle = CachedFileHandle(cache)

        assert not handle.open("missing.txt", "r")
        assert "missing.txt" in handle.get_last_error()
        assert not handle.is_open

    def test_write_modes_miss(self, cache):
        for mode in ("w", "r+", "a", "x"):
            handle = CachedFileHandle(cache)
            assert not handle.open("a.txt", mode)
            assert "read-only" in handle.get_last_error()

    def test_write_rejected(self, cache):
        handle = CachedFileHandle(cache)
        handle.open("a.txt", "r")

        with pytest.raises(OSError) as exc_info:
            handle.write(b"x")
        assert exc_info.value.errno == errno.EBADF

    def test_invalid_mode(self, cache):
        handle = CachedFileHandle(cache)
        assert not handle.open("a.txt", "z")
        assert "Invalid open mode" in handle.get_last_error()

    def test_read_after_close(self, cache):
        handle = CachedFileHandle(cache)
        handle.open("a.txt", "r")
        handle.close()

        with pytest.raises(OSError):
            handle.read()

    def test_close_is_idempotent(self, cache):
        handle = CachedFileHandle(cache)
        handle.open("a.txt", "r")
        handle.close()
        handle.close()
        assert "closed" in repr(handle)


class TestPhysicalFileHandle:
    """Handles backed by OS file descriptors."""

    def test_read(self, source_dir):
        handle = PhysicalFileHandle()

        assert handle.open(str(source_dir / "file.txt"), "r")
        assert handle.fd is not None
        assert handle.read() == b"Hello World"
        handle.close()
        assert handle.fd is None

    def test_write_then_read_back(self, source_dir):
        path = str(source_dir / "new.txt")
        with PhysicalFileHandle() as handle:
            assert handle.open(path, "w+")
            handle.write(b"data")
            handle.seek(0)
            assert handle.read() == b"data"

        assert not handle.is_open

    def test_create_mode(self, source_dir):
        path = source_dir / "private.txt"
        old_umask = os.umask(0)
        try:
            handle = PhysicalFileHandle(create_mode=0o600)
            assert handle.open(str(path), "w")
            handle.close()
        finally:
            os.umask(old_umask)

        assert (path.stat().st_mode & 0o777) == 0o600

    def test_missing_file(self, source_dir):
        handle = PhysicalFileHandle()
        path = str(source_dir / "missing.txt")

        assert not handle.open(path, "r")
        assert handle.get_last_error() == f"failed to open stream: {path}: No such file or directory"

    def test_directory_rejected(self, source_dir):
        handle = PhysicalFileHandle()

        assert not handle.open(str(source_dir / "subdir"), "r")
        assert "Is a directory" in handle.get_last_error()
        assert handle.fd is None

    def test_invalid_mode(self, source_dir):
        handle = PhysicalFileHandle()
        assert not handle.open(str(source_dir / "file.txt"), "rw")
        assert handle.get_last_error().startswith("failed to open stream:")

    def test_read_only_handle_rejects_write(self, source_dir):
        handle = PhysicalFileHandle()
        handle.open(str(source_dir / "file.txt"), "r")

        with pytest.raises(OSError):
            handle.write(b"x")
        handle.close()


class TestDirectoryHandle:
    """Directory streams."""

    def test_dot_entries_first(self, source_dir):
        directory = DirectoryHandle(str(source_dir))

        assert directory.is_valid()
        assert directory.read() == "."
        assert directory.read() == ".."
        rest = []
        while True:
            name = directory.read()
            if name is None:
                break
            rest.append(name)
        directory.close()

        assert sorted(rest) == ["file.txt", "index.html", "subdir"]

    def test_rewind(self, source_dir):
        with DirectoryHandle(str(source_dir / "subdir")) as directory:
            first = list(directory)
            directory.rewind()
            second = list(directory)

        assert first == second == [".", "..", "nested.txt"]

    def test_invalid(self, source_dir):
        path = str(source_dir / "missing")
        directory = DirectoryHandle(path)

        assert not directory.is_valid()
        assert directory.read() is None
        assert directory.get_last_error() == f"failed to open dir: {path}: No such file or directory"

    def test_read_after_close(self, source_dir):
        directory = DirectoryHandle(str(source_dir))
        directory.close()
        assert directory.read() is None

"""Tests for IncludePathResolver."""

import os

import pytest

from overlayio.stream.include_path import IncludePathResolver


@pytest.fixture
def roots(temp_dir):
    """Two include roots and a working directory."""
    first = temp_dir / "first"
    second = temp_dir / "second"
    cwd = temp_dir / "cwd"
    for directory in (first, second, cwd):
        directory.mkdir()

    (first / "only_first.php").write_text("first")
    (first / "shared.php").write_text("first shared")
    (second / "shared.php").write_text("second shared")
    (second / "only_second.php").write_text("second")
    (second / "dir.php").mkdir()
    (cwd / "local.php").write_text("local")
    return first, second, cwd


class TestIncludePathResolver:
    """Include-path resolution order."""

    def test_first_root_wins(self, roots):
        first, second, cwd = roots
        resolver = IncludePathResolver([str(first), str(second)], cwd=str(cwd))

        path, st = resolver.resolve("shared.php")

        assert path == str(first / "shared.php")
        assert st.st_size == len("first shared")

    def test_later_root_searched(self, roots):
        first, second, cwd = roots
        resolver = IncludePathResolver([str(first), str(second)], cwd=str(cwd))

        assert resolver.resolve("only_second.php")[0] == str(second / "only_second.php")

    def test_miss_returns_none(self, roots):
        first, second, cwd = roots
        resolver = IncludePathResolver([str(first), str(second)], cwd=str(cwd))

        assert resolver.resolve("nowhere.php") is None

    def test_directories_are_not_hits(self, roots):
        first, second, cwd = roots
        resolver = IncludePathResolver([str(first), str(second)], cwd=str(cwd))

        assert resolver.resolve("dir.php") is None

    def test_relative_roots_resolve_against_cwd(self, roots, temp_dir):
        first, second, cwd = roots
        resolver = IncludePathResolver(["../first"], cwd=str(cwd))

        assert resolver.resolve("only_first.php")[0] == str(first / "only_first.php")

    def test_current_dir_searched_last(self, roots):
        first, second, cwd = roots
        resolver = IncludePathResolver([str(first)], cwd=str(cwd))

        assert resolver.resolve("only_second.php") is None
        assert resolver.resolve("only_second.php", str(second))[0] == str(second / "only_second.php")
        assert resolver.resolve("shared.php", str(second))[0] == str(first / "shared.php")

    def test_dot_relative_uses_cwd_only(self, roots):
        first, second, cwd = roots
        resolver = IncludePathResolver([str(first)], cwd=str(cwd))

        assert resolver.resolve("./local.php")[0] == str(cwd / "local.php")
        assert resolver.resolve("./only_first.php") is None
        assert resolver.resolve("../first/only_first.php")[0] == str(first / "only_first.php")

    def test_absolute_path_checked_as_is(self, roots):
        first, second, cwd = roots
        resolver = IncludePathResolver([], cwd=str(cwd))

        assert resolver.resolve(str(second / "shared.php"))[0] == str(second / "shared.php")
        assert resolver.resolve(str(second / "missing.php")) is None

    def test_empty_path(self, roots):
        resolver = IncludePathResolver([str(roots[0])])
        assert resolver.resolve("") is None

    def test_empty_entries_are_dropped(self):
        resolver = IncludePathResolver(["", "/usr/share/php", ""])
        assert resolver.include_paths == ["/usr/share/php"]

    def test_defaults_to_process_cwd(self):
        assert IncludePathResolver().cwd == os.getcwd()

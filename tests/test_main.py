"""Tests for OverlayIO component wiring.

This module tests:
- Logger construction from configuration
- WrapperContext construction and cache compilation
- Wrapper construction
- FUSE mounting
"""

import logging.handlers
from unittest.mock import patch

import pytest

from overlayio.core.constants import ErrorCode
from overlayio.infrastructure.config_manager import ConfigError, ConfigManager
from overlayio.infrastructure.logger import LogLevel
from overlayio.main import build_context, build_logger, build_wrapper, mount
from overlayio.stream.wrapper import FileStreamWrapper


class TestBuildLogger:
    """Test build_logger()."""

    def test_level_from_config(self):
        logger = build_logger({"logging": {"level": "DEBUG"}}, name="overlayio.test.level")
        assert logger.get_level() == LogLevel.DEBUG

    def test_default_level(self):
        assert build_logger({}, name="overlayio.test.default").get_level() == LogLevel.INFO

    def test_file_handler_added(self, temp_dir):
        log_file = temp_dir / "overlayio.log"
        logger = build_logger(
            {"logging": {"level": "INFO", "file": str(log_file)}}, name="overlayio.test.file"
        )

        handlers = logger.logger.handlers
        assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in handlers)
        for handler in handlers:
            handler.close()


class TestBuildContext:
    """Test build_context()."""

    def test_full_section(self, sample_config, source_dir, include_dir, mock_logger):
        context = build_context(sample_config["overlayio"], mock_logger)

        assert context.source_root == str(source_dir)
        assert context.include_paths == (str(include_dir),)
        assert context.use_direct_copy is True
        assert context.content_cache is not None
        assert context.content_cache.root == str(source_dir)
        assert context.content_cache.read("file.txt") == b"Hello World"

    def test_defaults(self):
        context = build_context(ConfigManager(environ={}).section())

        assert context.content_cache is None
        assert context.use_direct_copy is False
        assert context.source_root is None
        assert context.include_paths == ()

    def test_invalid_section(self):
        with pytest.raises(ConfigError) as exc_info:
            build_context({"use_direct_copy": "sometimes"})
        assert exc_info.value.error_code == ErrorCode.INVALID_INPUT

    def test_missing_cache_root(self, temp_dir):
        section = {"content_cache": {"enabled": True, "root": str(temp_dir / "missing")}}

        with pytest.raises(ConfigError) as exc_info:
            build_context(section)
        assert exc_info.value.error_code == ErrorCode.NOT_FOUND

    def test_disabled_cache_is_not_compiled(self, source_dir):
        section = {"content_cache": {"enabled": False, "root": str(source_dir)}}

        with patch("overlayio.main.StaticContentCache.from_directory") as from_directory:
            context = build_context(section)

        from_directory.assert_not_called()
        assert context.content_cache is None


class TestBuildWrapper:
    """Test build_wrapper()."""

    def test_build_wrapper(self, config_file, source_dir, mock_logger):
        wrapper = build_wrapper(ConfigManager(str(config_file), environ={}), mock_logger)

        assert isinstance(wrapper, FileStreamWrapper)
        assert wrapper.logger is mock_logger
        assert wrapper.translate("x") == str(source_dir / "x")
        mock_logger.debug.assert_called()

    def test_build_wrapper_creates_logger(self, config_file):
        wrapper = build_wrapper(ConfigManager(str(config_file), environ={}))
        assert wrapper.logger.get_level() == LogLevel.DEBUG


class TestMount:
    """Test mount()."""

    @pytest.fixture(autouse=True)
    def _require_fuse(self):
        try:
            import fuse  # noqa: F401
        except (ImportError, OSError):
            pytest.skip("fusepy/libfuse not available")

    def test_mount_success(self, wrapper, mock_logger, temp_dir):
        with patch("fuse.FUSE") as fuse:
            assert mount(wrapper, str(temp_dir), mock_logger, foreground=True, readonly=True) == 0

        args, kwargs = fuse.call_args
        assert args[1] == str(temp_dir)
        assert kwargs == {"foreground": True, "ro": True}

    def test_mount_allow_other(self, wrapper, mock_logger, temp_dir):
        with patch("fuse.FUSE") as fuse:
            mount(wrapper, str(temp_dir), mock_logger, allow_other=True)

        assert fuse.call_args.kwargs["allow_other"] is True

    def test_mount_failure(self, wrapper, mock_logger, temp_dir):
        with patch("fuse.FUSE", side_effect=RuntimeError("1")):
            assert mount(wrapper, str(temp_dir), mock_logger) == 1

        mock_logger.error.assert_called_once()

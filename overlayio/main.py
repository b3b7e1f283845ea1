#!/usr/bin/env python3
"""Component wiring for OverlayIO.

This module handles:
- Turning the merged configuration into a WrapperContext
- Compiling the static content cache at startup
- Building the logger and the FileStreamWrapper
- Mounting the wrapper through FUSE

Example:
    >>> from overlayio.main import build_wrapper
    >>> wrapper = build_wrapper(ConfigManager("overlayio.yaml"))
"""

import os
import sys
from typing import Any, Dict, Optional

from overlayio.core.constants import ConfigKey, ErrorCode
from overlayio.core.validators import ValidationError, validate_config
from overlayio.infrastructure.config_manager import ConfigError, ConfigManager
from overlayio.infrastructure.content_cache import StaticContentCache
from overlayio.infrastructure.logger import Logger
from overlayio.stream.wrapper import FileStreamWrapper, WrapperContext


def build_logger(section: Dict[str, Any], name: str = "overlayio") -> Logger:
    """
    Create a logger from the "logging" configuration section.

    Args:
        section: Merged "overlayio" configuration section
        name: Logger name

    Returns:
        Configured logger
    """
    logging_config = section.get(ConfigKey.LOGGING) or {}
    logger = Logger(name, level=logging_config.get(ConfigKey.LOG_LEVEL, "INFO"))

    log_file = logging_config.get(ConfigKey.LOG_FILE)
    if log_file:
        logger.add_handler(logger.create_file_handler(log_file))

    return logger


def build_context(section: Dict[str, Any], logger: Optional[Logger] = None) -> WrapperContext:
    """
    Create the wrapper context from the "overlayio" configuration section.

    The content cache is compiled here, once, when enabled.

    Args:
        section: Merged "overlayio" configuration section
        logger: Logger for cache compilation

    Returns:
        WrapperContext

    Raises:
        ConfigError: If the configuration is invalid or the cache root is missing
    """
    try:
        validate_config(section)
    except ValidationError as e:
        raise ConfigError(str(e), e.error_code)

    source_root = section.get(ConfigKey.SOURCE_ROOT)
    if source_root is not None:
        source_root = os.path.abspath(os.path.expanduser(source_root))

    content_cache = None
    cache_config = section.get(ConfigKey.CONTENT_CACHE) or {}
    if cache_config.get(ConfigKey.CACHE_ENABLED, False):
        cache_root = os.path.expanduser(cache_config[ConfigKey.CACHE_ROOT])
        try:
            content_cache = StaticContentCache.from_directory(cache_root, logger=logger)
        except NotADirectoryError:
            raise ConfigError(f"Content cache root is not a directory: {cache_root}", ErrorCode.NOT_FOUND)

    include_paths = tuple(section.get(ConfigKey.INCLUDE_PATH) or ())

    return WrapperContext(
        content_cache=content_cache,
        use_direct_copy=section.get(ConfigKey.USE_DIRECT_COPY, False),
        source_root=source_root,
        include_paths=include_paths,
    )


def build_wrapper(config: ConfigManager, logger: Optional[Logger] = None) -> FileStreamWrapper:
    """
    Build a FileStreamWrapper from a configuration manager.

    Args:
        config: Configuration manager
        logger: Logger (built from configuration if None)

    Returns:
        Ready-to-use wrapper
    """
    section = config.section()
    if logger is None:
        logger = build_logger(section)

    context = build_context(section, logger)
    logger.debug(
        "Stream wrapper configured",
        source_root=context.source_root,
        include_paths=len(context.include_paths),
        content_cache=context.content_cache is not None,
        use_direct_copy=context.use_direct_copy,
    )
    return FileStreamWrapper(context, logger=logger)


def mount(
    wrapper: FileStreamWrapper,
    mount_point: str,
    logger: Logger,
    foreground: bool = False,
    allow_other: bool = False,
    readonly: bool = False,
) -> int:
    """
    Mount a wrapper with FUSE. Blocks until the filesystem is unmounted.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    # libfuse is loaded on import; keep it out of non-mount code paths
    from fuse import FUSE

    from overlayio.fuse.operations import OverlayOperations

    operations = OverlayOperations(wrapper, readonly=readonly, logger=logger)

    options = {"foreground": foreground}
    if allow_other:
        options["allow_other"] = True
    if readonly:
        options["ro"] = True

    logger.info(f"Mounting OverlayIO at: {mount_point}")
    try:
        FUSE(operations, mount_point, **options)
    except RuntimeError as e:
        logger.error(f"FUSE mount failed: {e}")
        return 1

    logger.info("FUSE unmounted successfully", stats=operations.get_stats())
    return 0


def main():
    """Entry point when run as a module; defers to the CLI."""
    from overlayio.cli import main as cli_main

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())

"""
OverlayIO Core: Constants and Type Definitions

This module provides system-wide constants, option bit masks, error codes
and type aliases shared by the stream wrapper and its collaborators.
"""
from enum import IntEnum, IntFlag
from typing import TypeAlias

# Version information
OVERLAYIO_VERSION = "1.0.0"

# Literal scheme prefix accepted on logical paths
FILE_SCHEME = "file://"


# Error codes carried by ConfigError and ValidationError
class ErrorCode(IntEnum):
    """Standardized error codes for configuration and validation failures."""

    SUCCESS = 0  # Operation completed successfully
    INVALID_INPUT = 1  # Bad path, invalid configuration
    NOT_FOUND = 2  # File or resource doesn't exist
    INTERNAL_ERROR = 3  # Unreadable file or unexpected failure


class OpenOption(IntFlag):
    """Option bits accepted by FileStreamWrapper.open()."""

    NONE = 0
    USE_INCLUDE_PATH = 1


class MkdirOption(IntFlag):
    """Option bits accepted by FileStreamWrapper.mkdir()."""

    NONE = 0
    RECURSIVE = 1


class RmdirOption(IntFlag):
    """Option bits accepted by FileStreamWrapper.rmdir() (reserved)."""

    NONE = 0


# Type aliases for clarity
LogicalPath: TypeAlias = str
PhysicalPath: TypeAlias = str
RelativePath: TypeAlias = str


class Limits:
    """System resource limits and default values."""

    # Path limits
    MAX_PATH_LENGTH = 4096

    # Copy buffer used by the rename strategies
    COPY_CHUNK_SIZE = 1024 * 1024

    # Cache overlay build limits
    MAX_CACHED_FILE_SIZE = 64 * 1024 * 1024


# Open modes understood by the file handles, without "b"/"t" qualifiers
READ_MODES = frozenset({"r"})
FILE_MODES = frozenset({"r", "r+", "w", "w+", "a", "a+", "x", "x+", "c", "c+"})


class ConfigKey:
    """Configuration key constants (relative to the "overlayio" section)."""

    SOURCE_ROOT = "source_root"
    INCLUDE_PATH = "include_path"
    USE_DIRECT_COPY = "use_direct_copy"
    CONTENT_CACHE = "content_cache"
    LOGGING = "logging"

    CACHE_ENABLED = "enabled"
    CACHE_ROOT = "root"

    LOG_LEVEL = "level"
    LOG_FILE = "file"


# Default configuration values
DEFAULT_CONFIG = {
    ConfigKey.SOURCE_ROOT: None,
    ConfigKey.INCLUDE_PATH: [],
    ConfigKey.USE_DIRECT_COPY: False,
    ConfigKey.CONTENT_CACHE: {
        ConfigKey.CACHE_ENABLED: False,
        ConfigKey.CACHE_ROOT: None,
    },
    ConfigKey.LOGGING: {
        ConfigKey.LOG_LEVEL: "INFO",
        ConfigKey.LOG_FILE: None,
    },
}

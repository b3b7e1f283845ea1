"""
OverlayIO Core: Input Validators.

This module provides validation functions for wrapper configuration,
configured directories, file open modes and permission modes.
"""
from typing import Any, Dict, Union

from overlayio.core.constants import FILE_MODES, ConfigKey, ErrorCode, Limits


class ValidationError(Exception):
    """Base exception for validation errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        """Initialize ValidationError.

        Args:
            message: Error message
            error_code: Associated error code
        """
        super().__init__(message)
        self.error_code = error_code


def validate_config(config: Dict[str, Any]) -> bool:
    """Validate the "overlayio" configuration section.

    Args:
        config: Configuration dictionary (contents of the "overlayio" key)

    Returns:
        True if valid

    Raises:
        ValidationError: If configuration is invalid
    """
    if not isinstance(config, dict):
        raise ValidationError("Configuration must be a dictionary")

    source_root = config.get(ConfigKey.SOURCE_ROOT)
    if source_root is not None:
        try:
            validate_directory(source_root)
        except ValidationError as e:
            raise ValidationError(f"Invalid source_root: {e}")

    include_path = config.get(ConfigKey.INCLUDE_PATH, [])
    if include_path is None:
        include_path = []
    if not isinstance(include_path, list):
        raise ValidationError("include_path must be a list")

    for i, root in enumerate(include_path):
        try:
            validate_directory(root)
        except ValidationError as e:
            raise ValidationError(f"Invalid include_path entry at index {i}: {e}")

    use_direct_copy = config.get(ConfigKey.USE_DIRECT_COPY, False)
    if not isinstance(use_direct_copy, bool):
        raise ValidationError(f"use_direct_copy must be boolean: {use_direct_copy}")

    if config.get(ConfigKey.CONTENT_CACHE) is not None:
        validate_content_cache_config(config[ConfigKey.CONTENT_CACHE])

    if config.get(ConfigKey.LOGGING) is not None:
        validate_logging_config(config[ConfigKey.LOGGING])

    return True


def validate_content_cache_config(cache: Dict[str, Any]) -> bool:
    """Validate content cache configuration.

    Args:
        cache: Content cache configuration dictionary

    Returns:
        True if valid

    Raises:
        ValidationError: If cache config is invalid
    """
    if not isinstance(cache, dict):
        raise ValidationError("Content cache configuration must be a dictionary")

    valid_fields = {ConfigKey.CACHE_ENABLED, ConfigKey.CACHE_ROOT}
    unknown_fields = set(cache.keys()) - valid_fields
    if unknown_fields:
        raise ValidationError(
            f"Unknown content cache configuration fields: {', '.join(sorted(unknown_fields))}"
        )

    enabled = cache.get(ConfigKey.CACHE_ENABLED, False)
    if not isinstance(enabled, bool):
        raise ValidationError(f"Content cache enabled must be boolean: {enabled}")

    root = cache.get(ConfigKey.CACHE_ROOT)
    if enabled and root is None:
        raise ValidationError("Content cache is enabled but has no 'root'")
    if root is not None:
        validate_directory(root)

    return True


def validate_logging_config(logging_config: Dict[str, Any]) -> bool:
    """Validate logging configuration.

    Raises:
        ValidationError: If logging config is invalid
    """
    if not isinstance(logging_config, dict):
        raise ValidationError("Logging configuration must be a dictionary")

    level = logging_config.get(ConfigKey.LOG_LEVEL, "INFO")
    valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if not isinstance(level, str) or level.upper() not in valid_levels:
        raise ValidationError(f"Invalid log level: {level}. Must be one of {sorted(valid_levels)}")

    log_file = logging_config.get(ConfigKey.LOG_FILE)
    if log_file is not None and not isinstance(log_file, str):
        raise ValidationError(f"Log file must be a string: {log_file}")

    return True


def validate_directory(path: str) -> bool:
    """Validate a configured directory path.

    Only the path text is checked; the directory need not exist yet.

    Args:
        path: Path to validate

    Returns:
        True if valid

    Raises:
        ValidationError: If path is invalid
    """
    if not isinstance(path, str):
        raise ValidationError(f"Path must be string, got {type(path)}")

    if not path:
        raise ValidationError("Path cannot be empty")

    if len(path) > Limits.MAX_PATH_LENGTH:
        raise ValidationError(f"Path exceeds maximum length ({Limits.MAX_PATH_LENGTH})")

    if "\0" in path:
        raise ValidationError("Path contains null bytes")

    return True


def validate_open_mode(mode: str) -> str:
    """Validate a fopen()-style mode string.

    Args:
        mode: Mode such as "r", "rb", "w+", "a", "x+b"

    Returns:
        The mode with "b" and "t" qualifiers removed

    Raises:
        ValidationError: If the mode is not recognized
    """
    if not isinstance(mode, str) or not mode:
        raise ValidationError(f"Invalid open mode: {mode!r}")

    base = mode.replace("b", "").replace("t", "")
    if base not in FILE_MODES:
        raise ValidationError(f"Invalid open mode: {mode!r}")

    return base


def validate_permissions(mode: Union[int, str]) -> int:
    """Validate a permission mode for directory creation.

    Args:
        mode: Permission mode (octal int or octal string)

    Returns:
        The mode as an integer

    Raises:
        ValidationError: If mode is invalid
    """
    try:
        if isinstance(mode, str):
            mode_int = int(mode, 8)
        else:
            mode_int = int(mode)
    except (ValueError, TypeError):
        raise ValidationError(f"Invalid permission mode (must be octal): {mode}")

    if mode_int < 0 or mode_int > 0o7777:
        raise ValidationError(f"Permission mode must be in range 0-7777, got: {mode_int:o}")

    return mode_int

"""OverlayIO Infrastructure Layer.

This layer provides services used by the stream wrapper:
- ConfigManager: Hierarchical configuration (YAML files, environment)
- StaticContentCache: Read-only precompiled content overlay
- Logger: Structured logging system (the diagnostic sink)
"""

from .config_manager import ConfigError
from .config_manager import ConfigManager as Config
from .config_manager import ConfigSource, ConfigValue, get_config_manager, parse_env_value, set_global_config
from .content_cache import StaticContentCache
from .logger import ContextFormatter, Logger, LogLevel, get_logger, set_global_logger

__all__ = [
    # Logger exports
    "Logger",
    "LogLevel",
    "ContextFormatter",
    "get_logger",
    "set_global_logger",
    # Content cache exports
    "StaticContentCache",
    # ConfigManager exports
    "ConfigSource",
    "ConfigValue",
    "ConfigError",
    "Config",
    "get_config_manager",
    "set_global_config",
    "parse_env_value",
]

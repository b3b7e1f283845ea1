#!/usr/bin/env python3
"""Layered configuration for OverlayIO.

Settings live under a single top-level ``overlayio`` section and are read
from several sources; a source with higher precedence overrides the keys
it defines and leaves the rest to the sources below it:

    COMPILED_DEFAULTS < SYSTEM_CONFIG < USER_CONFIG < ENVIRONMENT < CLI_ARGS < RUNTIME

Environment variables are named ``OVERLAYIO_<KEY>``; a double underscore
descends into a sub-section (``OVERLAYIO_CONTENT_CACHE__ROOT=/srv/www``).

Example:
    >>> config = ConfigManager("overlayio.yaml")
    >>> config.get("overlayio.content_cache.root")
    >>> config.section()["use_direct_copy"]
"""

import copy
import os
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from overlayio.core.constants import DEFAULT_CONFIG, ErrorCode

SECTION = "overlayio"
ENV_PREFIX = "OVERLAYIO_"
ENV_NESTING = "__"

_TRUE_WORDS = ("true", "yes", "on")
_FALSE_WORDS = ("false", "no", "off")


class ConfigSource(Enum):
    """Configuration sources, lowest precedence first."""

    COMPILED_DEFAULTS = 1
    SYSTEM_CONFIG = 2
    USER_CONFIG = 3
    ENVIRONMENT = 4
    CLI_ARGS = 5
    RUNTIME = 6


@dataclass
class ConfigValue:
    """One source's settings and when they were loaded."""

    value: Any
    source: ConfigSource
    timestamp: float = field(default_factory=time.time)


class ConfigError(Exception):
    """Configuration could not be loaded or is invalid."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


def _merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively overlay ``override`` on a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _lookup(tree: Any, parts: List[str]) -> Any:
    for part in parts:
        if not isinstance(tree, dict) or part not in tree:
            return None
        tree = tree[part]
    return tree


def parse_env_value(raw: str) -> Any:
    """Interpret an environment string as bool, int, path list or str."""
    lowered = raw.strip().lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    try:
        return int(raw)
    except ValueError:
        pass
    # PATH-style lists, e.g. OVERLAYIO_INCLUDE_PATH=/usr/share/php:/opt/lib
    if os.pathsep in raw:
        return [entry for entry in raw.split(os.pathsep) if entry]
    return raw


def shape_like_default(value: Any, default: Any) -> Any:
    """Coerce a parsed environment value towards the type of its default.

    "1" and "0" become booleans for boolean keys, and a single path becomes
    a one-entry list for list keys.
    """
    if isinstance(default, bool) and isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(default, list) and not isinstance(value, list):
        return [str(value)] if value != "" else []
    return value


class ConfigManager:
    """Thread-safe stack of configuration sources.

    Each source holds a whole nested dictionary; reads walk the sources
    from highest to lowest precedence and return the first defined value.
    """

    def __init__(self, config_file: Optional[str] = None, environ: Optional[Mapping[str, str]] = None):
        """
        Args:
            config_file: YAML file loaded as USER_CONFIG
            environ: Mapping scanned for OVERLAYIO_* variables (os.environ if None)
        """
        self._lock = threading.RLock()
        self._layers: Dict[ConfigSource, ConfigValue] = {}
        self._put(ConfigSource.COMPILED_DEFAULTS, {SECTION: copy.deepcopy(DEFAULT_CONFIG)})

        if config_file:
            self.load_file(config_file)
        self.load_environment(os.environ if environ is None else environ)

    def _put(self, source: ConfigSource, data: Dict[str, Any]) -> None:
        with self._lock:
            self._layers[source] = ConfigValue(value=data, source=source)

    def _ordered(self, highest_first: bool = False) -> List[ConfigValue]:
        return sorted(self._layers.values(), key=lambda layer: layer.source.value, reverse=highest_first)

    def load_file(self, file_path: str, source: ConfigSource = ConfigSource.USER_CONFIG) -> None:
        """Load a YAML file as one source.

        Raises:
            ConfigError: NOT_FOUND if the file is missing, INVALID_INPUT if
                it is not a YAML mapping, INTERNAL_ERROR if it cannot be read
        """
        path = Path(file_path).expanduser()
        if not path.is_file():
            raise ConfigError(f"Config file not found: {file_path}", ErrorCode.NOT_FOUND)

        try:
            data = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML parse error in {file_path}: {e}", ErrorCode.INVALID_INPUT)
        except OSError as e:
            raise ConfigError(f"Error loading config {file_path}: {e}", ErrorCode.INTERNAL_ERROR)

        if not isinstance(data, dict):
            raise ConfigError(f"Invalid config format in {file_path}", ErrorCode.INVALID_INPUT)
        self._put(source, data)

    def load_dict(self, data: Mapping[str, Any], source: ConfigSource = ConfigSource.RUNTIME) -> None:
        self._put(source, copy.deepcopy(dict(data)))

    def load_environment(self, environ: Mapping[str, str]) -> None:
        """Collect OVERLAYIO_* variables into the ENVIRONMENT source."""
        section: Dict[str, Any] = {}
        for name, raw in environ.items():
            if not name.startswith(ENV_PREFIX):
                continue
            *parents, leaf = name[len(ENV_PREFIX):].lower().split(ENV_NESTING)
            node = section
            for parent in parents:
                node = node.setdefault(parent, {})
            default = _lookup(DEFAULT_CONFIG, parents + [leaf])
            node[leaf] = shape_like_default(parse_env_value(raw), default)

        if section:
            self._put(ConfigSource.ENVIRONMENT, {SECTION: section})

    def get(self, key: str, default: Any = None) -> Any:
        """Value at a dotted key ("overlayio.content_cache.root"), or ``default``."""
        parts = key.split(".")
        with self._lock:
            for layer in self._ordered(highest_first=True):
                value = _lookup(layer.value, parts)
                if value is not None:
                    return value
        return default

    def set(self, key: str, value: Any, source: ConfigSource = ConfigSource.RUNTIME) -> None:
        """Set a dotted key in one source, creating the source if needed."""
        *parents, leaf = key.split(".")
        with self._lock:
            layer = self._layers.get(source)
            if layer is None:
                layer = self._layers[source] = ConfigValue(value={}, source=source)
            node = layer.value
            for parent in parents:
                node = node.setdefault(parent, {})
            node[leaf] = value
            layer.timestamp = time.time()

    def get_all(self) -> Dict[str, Any]:
        """All sources merged into one dictionary."""
        merged: Dict[str, Any] = {}
        with self._lock:
            for layer in self._ordered():
                merged = _merge(merged, layer.value)
        return merged

    def section(self, name: str = SECTION) -> Dict[str, Any]:
        return self.get_all().get(name, {})

    def sources(self) -> List[ConfigSource]:
        """Sources currently loaded, lowest precedence first."""
        with self._lock:
            return [layer.source for layer in self._ordered()]

    def clear(self, source: Optional[ConfigSource] = None) -> None:
        """Drop one source, or every source except the compiled defaults."""
        with self._lock:
            doomed = [source] if source is not None else list(self._layers)
            for s in doomed:
                if s is not ConfigSource.COMPILED_DEFAULTS:
                    self._layers.pop(s, None)


_global_config: Optional[ConfigManager] = None


def get_config_manager(config_file: Optional[str] = None) -> ConfigManager:
    global _global_config
    if _global_config is None:
        _global_config = ConfigManager(config_file)
    return _global_config


def set_global_config(config: ConfigManager) -> None:
    global _global_config
    _global_config = config

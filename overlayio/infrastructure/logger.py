#!/usr/bin/env python3
"""Structured logging for OverlayIO.

The stream wrapper reports failed opens as warnings and cache or
include-path misses as debug messages. Every message can carry key-value
context, either per call or pushed for a block with add_context(); the
context travels on the LogRecord and is rendered by ContextFormatter:

    2024-05-01 12:00:00 - overlayio.stream - DEBUG - Content cache miss | path=a.txt

Example:
    >>> logger = Logger("overlayio.stream", level=LogLevel.INFO)
    >>> logger.warning("failed to open stream: /tmp/missing: No such file or directory")
    >>> with logger.add_context(op="mkdir"):
    ...     logger.debug("creating prefix", prefix="/tmp/a")
"""

import logging
import logging.handlers
import threading
from contextlib import contextmanager
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

LINE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Rotation defaults for --log-file
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


class LogLevel(IntEnum):
    """Log levels matching Python's logging module."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def coerce(cls, level: Union["LogLevel", int, str]) -> "LogLevel":
        """Accept a LogLevel, its numeric value or a case-insensitive name."""
        if isinstance(level, str):
            return cls[level.upper()]
        return cls(level)


class ContextFormatter(logging.Formatter):
    """Formatter that appends a record's context as "key=value" pairs."""

    def __init__(self, fmt: str = LINE_FORMAT, datefmt: str = DATE_FORMAT):
        super().__init__(fmt, datefmt=datefmt)

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        context = getattr(record, "context", None)
        if context:
            pairs = " ".join(f"{key}={value}" for key, value in context.items())
            line = f"{line} | {pairs}"
        return line


class _ContextFrames(threading.local):
    """Per-thread stack of context dictionaries pushed by add_context()."""

    def __init__(self):
        self.frames: List[Dict[str, Any]] = []

    def merged(self) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}
        for frame in self.frames:
            merged.update(frame)
        return merged


class Logger:
    """Named logger whose messages carry structured context.

    Output goes to stderr unless explicit handlers are given; handlers
    already attached to the underlying stdlib logger are replaced so that
    building a logger twice under one name does not duplicate lines.
    """

    def __init__(
        self,
        name: str = "overlayio",
        level: Union[LogLevel, str] = LogLevel.INFO,
        handlers: Optional[List[logging.Handler]] = None,
    ):
        self.name = name
        self._frames = _ContextFrames()
        self.logger = logging.getLogger(name)
        self.logger.propagate = False
        self.set_level(level)

        self.logger.handlers.clear()
        if handlers is None:
            console = logging.StreamHandler()
            console.setFormatter(ContextFormatter())
            handlers = [console]
        for handler in handlers:
            self.add_handler(handler)

    def create_file_handler(
        self,
        filename: Union[str, Path],
        max_bytes: int = LOG_FILE_MAX_BYTES,
        backup_count: int = LOG_FILE_BACKUPS,
    ) -> logging.handlers.RotatingFileHandler:
        """Create a rotating file handler using the context-aware format.

        Args:
            filename: Path to log file
            max_bytes: Size at which the file is rotated
            backup_count: Number of rotated files to keep
        """
        handler = logging.handlers.RotatingFileHandler(
            filename, maxBytes=max_bytes, backupCount=backup_count
        )
        handler.setFormatter(ContextFormatter())
        return handler

    def add_handler(self, handler: logging.Handler) -> None:
        self.logger.addHandler(handler)

    def remove_handler(self, handler: logging.Handler) -> None:
        self.logger.removeHandler(handler)

    def set_level(self, level: Union[LogLevel, str]) -> None:
        self.logger.setLevel(LogLevel.coerce(level))

    def get_level(self) -> LogLevel:
        return LogLevel(self.logger.level)

    def is_enabled_for(self, level: Union[LogLevel, str]) -> bool:
        return self.logger.isEnabledFor(LogLevel.coerce(level))

    @contextmanager
    def add_context(self, **fields: Any) -> Iterator[None]:
        """Attach ``fields`` to every message logged by this thread in the block."""
        self._frames.frames.append(fields)
        try:
            yield
        finally:
            self._frames.frames.pop()

    def log(self, level: LogLevel, msg: str, **fields: Any) -> None:
        """Log ``msg`` at ``level`` with the active context plus ``fields``."""
        if not self.logger.isEnabledFor(level):
            return
        context = self._frames.merged()
        context.update(fields)
        self.logger.log(level, msg, extra={"context": context})

    def debug(self, msg: str, **fields: Any) -> None:
        self.log(LogLevel.DEBUG, msg, **fields)

    def info(self, msg: str, **fields: Any) -> None:
        self.log(LogLevel.INFO, msg, **fields)

    def warning(self, msg: str, **fields: Any) -> None:
        self.log(LogLevel.WARNING, msg, **fields)

    def error(self, msg: str, **fields: Any) -> None:
        self.log(LogLevel.ERROR, msg, **fields)

    def exception(self, msg: str, exc: BaseException, **fields: Any) -> None:
        """Log ``msg`` at ERROR with the traceback of ``exc``."""
        context = self._frames.merged()
        context.update(fields)
        context["exception_type"] = type(exc).__name__
        context["exception_message"] = str(exc)
        self.logger.error(msg, exc_info=exc, extra={"context": context})


_global_logger: Optional[Logger] = None


def get_logger(name: str = "overlayio") -> Logger:
    """Return the process-wide logger, creating it when the name changes."""
    global _global_logger
    if _global_logger is None or _global_logger.name != name:
        _global_logger = Logger(name=name)
    return _global_logger


def set_global_logger(logger: Logger) -> None:
    global _global_logger
    _global_logger = logger

"""
Structured Logger - structured diagnostics for the feature compiler

Every compile stage reports through a StructuredLogger: warnings about
unused Examples headers, truncated outline expansions, skipped tags or
per-file failures are emitted as NDJSON lines (or human-readable text) so a
CI run can grep or aggregate them.

Usage:
    from featurecli.logging.structured_logger import LoggerFactory

    logger = LoggerFactory.get_logger("featurecli.readers")
    logger.warning("Examples has unused headers", headers=["id"], line=12)

    file_logger = logger.with_context(uri="features/login.feature")
    file_logger.info("Feature parsed", scenarios=4)
"""

import json
import sys
import traceback
from datetime import datetime, timezone
from typing import Dict, Any, Optional, TextIO
from enum import IntEnum


class LogLevel(IntEnum):
    """Standard log levels compatible with Python logging"""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


class StructuredLogger:
    """
    Logger writing one structured entry per line.

    Field values longer than `max_field_length` characters are shortened so a
    large doc string or table never floods the log.

    Example:
        logger = StructuredLogger("featurecli.parser", level=LogLevel.INFO)
        logger.info("Feature parsed", uri="login.feature", scenarios=3)

        # Output:
        # {"timestamp":"2024-01-20T10:15:30.123456+00:00","level":"INFO","logger":"featurecli.parser","message":"Feature parsed","uri":"login.feature","scenarios":3}
    """

    RESERVED_KEYS = ("timestamp", "level", "logger", "message")

    def __init__(
        self,
        name: str,
        level: LogLevel = LogLevel.INFO,
        output_stream: TextIO = None,
        format_style: str = "json",
        max_field_length: int = 500,
    ):
        self.name = name
        self.level = level
        self.output_stream = output_stream or sys.stderr
        self.format_style = format_style
        self.max_field_length = max_field_length
        self._context: Dict[str, Any] = {}

    def _should_log(self, level: LogLevel) -> bool:
        return level.value >= self.level.value

    def _shorten(self, value: Any) -> Any:
        if isinstance(value, str) and len(value) > self.max_field_length:
            return f"{value[:self.max_field_length]}... ({len(value)} chars)"
        return value

    def _format_log(self, level: LogLevel, message: str, extra: Optional[Dict[str, Any]] = None) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.name,
            "logger": self.name,
            "message": message,
        }
        for fields in (self._context, extra or {}):
            for key, value in fields.items():
                log_entry[key] = self._shorten(value)

        if self.format_style == "json":
            return json.dumps(log_entry, default=str, ensure_ascii=False)

        level_str = f"[{log_entry['level']}]".ljust(10)
        extra_str = " ".join(f"{key}={value}" for key, value in log_entry.items() if key not in self.RESERVED_KEYS)
        line = f"{log_entry['timestamp']} {level_str} {self.name.ljust(20)} | {message}"
        return f"{line} | {extra_str}" if extra_str else line

    def _write(self, level: LogLevel, message: str, extra: Optional[Dict[str, Any]] = None, exc_info: bool = False):
        if not self._should_log(level):
            return

        if exc_info:
            extra = dict(extra or {})
            exc_type, exc_value, exc_tb = sys.exc_info()
            if exc_type is not None:
                extra["exception"] = {
                    "type": exc_type.__name__,
                    "message": str(exc_value),
                    "traceback": "".join(traceback.format_tb(exc_tb)),
                }

        log_line = self._format_log(level, message, extra)
        try:
            self.output_stream.write(log_line + "\n")
            self.output_stream.flush()
        except (OSError, ValueError):
            # closed or broken stream
            if self.output_stream is not sys.stderr:
                sys.stderr.write(log_line + "\n")

    def debug(self, message: str, **extra):
        self._write(LogLevel.DEBUG, message, extra)

    def info(self, message: str, **extra):
        self._write(LogLevel.INFO, message, extra)

    def warning(self, message: str, **extra):
        """
        Log warning message.

        Soft failures of the compiler (truncated expansions, unused headers,
        orphaned tags) are reported at this level.
        """
        self._write(LogLevel.WARNING, message, extra)

    def error(self, message: str, exc_info: bool = False, **extra):
        self._write(LogLevel.ERROR, message, extra, exc_info=exc_info)

    def critical(self, message: str, exc_info: bool = False, **extra):
        self._write(LogLevel.CRITICAL, message, extra, exc_info=exc_info)

    def with_context(self, **context) -> "StructuredLogger":
        """
        Return a logger that adds `context` fields to every entry.

        Example:
            file_logger = logger.with_context(uri="login.feature")
            file_logger.warning("Orphaned tags skipped", line=3)
        """
        new_logger = StructuredLogger(
            self.name, self.level, self.output_stream, self.format_style, self.max_field_length
        )
        new_logger._context = {**self._context, **context}
        return new_logger

    def set_context(self, **context):
        self._context.update(context)

    def clear_context(self):
        self._context = {}

    def set_level(self, level: LogLevel):
        self.level = level


class LoggerFactory:
    """
    Factory for creating loggers with consistent configuration.

    Loggers are cached by name; `configure` and `reset` update every cached
    logger in place, so module-level loggers follow later configuration.
    """

    _default_level = LogLevel.INFO
    _default_format = "json"
    _default_stream = sys.stderr
    _loggers: Dict[str, StructuredLogger] = {}

    @classmethod
    def configure(cls, level: str = "INFO", format_style: str = "json", stream: TextIO = None):
        """
        Configure default logger settings.

        Example:
            LoggerFactory.configure(level="DEBUG", format_style="text")
        """
        level_upper = level.upper()
        if level_upper not in LogLevel.__members__:
            raise ValueError(f"Invalid log level: {level}. Must be one of: {', '.join(LogLevel.__members__)}")
        if format_style not in ["json", "text"]:
            raise ValueError(f"Invalid format style: {format_style}. Must be 'json' or 'text'")

        cls._default_level = LogLevel[level_upper]
        cls._default_format = format_style
        if stream:
            cls._default_stream = stream
        cls._apply_defaults()

    @classmethod
    def _apply_defaults(cls):
        for logger in cls._loggers.values():
            logger.level = cls._default_level
            logger.format_style = cls._default_format
            logger.output_stream = cls._default_stream

    @classmethod
    def get_logger(cls, name: str) -> StructuredLogger:
        if name not in cls._loggers:
            cls._loggers[name] = StructuredLogger(name, cls._default_level, cls._default_stream, cls._default_format)
        return cls._loggers[name]

    @classmethod
    def reset(cls):
        """Restore default settings on the factory and on every cached logger"""
        cls._default_level = LogLevel.INFO
        cls._default_format = "json"
        cls._default_stream = sys.stderr
        cls._apply_defaults()

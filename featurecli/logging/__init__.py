"""
Feature CLI Logging Module

Structured diagnostics for the feature compiler.

Provides:
- Structured logging (NDJSON and text formats)
- File output with automatic rotation
- Configuration from the `logging:` section of the YAML config file and
  FEATURECLI_LOG_* environment variables

Usage:
    from featurecli.logging import get_logger

    logger = get_logger("featurecli.readers.examples_parser")
    logger.warning("Outline expansion truncated", outline="try login", limit=1000)

Configuration:
    export FEATURECLI_LOG_ENABLED=true
    export FEATURECLI_LOG_LEVEL=DEBUG
    export FEATURECLI_LOG_FORMAT=text

    from featurecli.logging.config import LoggingConfig
    LoggingConfig.setup_logging(config_path="config.yml")
"""

from featurecli.logging.structured_logger import LoggerFactory, StructuredLogger, LogLevel

__all__ = [
    "LoggerFactory",
    "StructuredLogger",
    "LogLevel",
    "get_logger",
]


def get_logger(name: str) -> StructuredLogger:
    """
    Get a logger instance with default configuration.

    Args:
        name: Logger name (usually the module path)

    Returns:
        StructuredLogger instance
    """
    return LoggerFactory.get_logger(name)

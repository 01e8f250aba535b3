"""
Configuration System - logging configuration for the feature compiler

Loads the `logging:` section of the YAML config file, applies
FEATURECLI_LOG_* environment overrides and `${VAR}` substitution, and
configures the LoggerFactory accordingly.
"""

import os
import re
import sys
from pathlib import Path
from typing import Dict, Any, Optional

import yaml


class LoggingConfig:
    """
    Centralized logging configuration.

    Example configuration file (config.yml):
        logging:
          enabled: true
          level: WARNING
          format: text        # json or text
          output: stderr      # stderr, stdout, file
          file_path: /var/log/featurecli/compile.log
          max_bytes: 10485760
          backup_count: 5
    """

    DEFAULT_CONFIG = {
        "enabled": True,
        "level": "WARNING",
        "format": "text",
        "output": "stderr",
        "file_path": None,
        "max_bytes": 10485760,  # 10MB
        "backup_count": 5,
    }

    ENV_PREFIX = "FEATURECLI_LOG_"

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Load configuration from file and environment.

        Precedence: Environment > File > Default
        """
        config = cls.DEFAULT_CONFIG.copy()

        if config_path and Path(config_path).is_file():
            file_config = cls._load_from_file(config_path)
            if isinstance(file_config, dict) and isinstance(file_config.get("logging"), dict):
                config.update(file_config["logging"])

        config = cls._apply_env_overrides(config)
        return cls._substitute_env_vars(config)

    @classmethod
    def _load_from_file(cls, config_path: str) -> Optional[Dict[str, Any]]:
        try:
            with open(config_path, encoding="utf-8") as f:
                return yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            sys.stderr.write(f"Error loading config file {config_path}: {e}\n")
            return None

    @classmethod
    def _apply_env_overrides(cls, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Environment variables:
            FEATURECLI_LOG_ENABLED: true, false, yes, no, 1, 0
            FEATURECLI_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL
            FEATURECLI_LOG_FORMAT: json, text
            FEATURECLI_LOG_OUTPUT: stderr, stdout, file
            FEATURECLI_LOG_FILE: log file path
            FEATURECLI_LOG_MAX_BYTES: max log file size before rotation
            FEATURECLI_LOG_BACKUP_COUNT: number of rotated files to keep
        """
        enabled = os.environ.get(f"{cls.ENV_PREFIX}ENABLED")
        if enabled is not None:
            config["enabled"] = enabled.lower() in ("true", "yes", "1", "on")

        for suffix, config_key in (("LEVEL", "level"), ("FORMAT", "format"), ("OUTPUT", "output"), ("FILE", "file_path")):
            value = os.environ.get(f"{cls.ENV_PREFIX}{suffix}")
            if value is not None:
                config[config_key] = value

        for suffix, config_key in (("MAX_BYTES", "max_bytes"), ("BACKUP_COUNT", "backup_count")):
            value = os.environ.get(f"{cls.ENV_PREFIX}{suffix}")
            if value is not None:
                try:
                    config[config_key] = int(value)
                except ValueError:
                    sys.stderr.write(f"Ignoring non-numeric {cls.ENV_PREFIX}{suffix}={value}\n")

        return config

    @classmethod
    def _substitute_env_vars(cls, config: Any) -> Any:
        """Recursively replace ${VAR_NAME} references with environment values"""
        if isinstance(config, str):
            return re.sub(r"\$\{([^}]+)\}", lambda match: os.environ.get(match.group(1), match.group(0)), config)
        if isinstance(config, dict):
            return {k: cls._substitute_env_vars(v) for k, v in config.items()}
        if isinstance(config, list):
            return [cls._substitute_env_vars(item) for item in config]
        return config

    @classmethod
    def setup_logging(cls, config_path: Optional[str] = None, **overrides):
        """
        Configure the LoggerFactory from file, environment and overrides.

        Example:
            LoggingConfig.setup_logging(config_path="config.yml", level="DEBUG")
        """
        from featurecli.logging.file_handler import RotatingFileHandler
        from featurecli.logging.structured_logger import LoggerFactory

        config = cls.load(config_path)
        config.update(overrides)

        is_valid, error = cls.validate(config)
        if not is_valid:
            sys.stderr.write(f"Invalid logging configuration: {error}. Using defaults.\n")
            config = cls.DEFAULT_CONFIG.copy()

        if not config.get("enabled", True):
            LoggerFactory.configure(level="CRITICAL", format_style="json", stream=open(os.devnull, "w"))
            return

        output_type = config.get("output", "stderr")
        if output_type == "stdout":
            stream = sys.stdout
        elif output_type == "file":
            stream = RotatingFileHandler(
                config["file_path"], max_bytes=config.get("max_bytes", 10485760), backup_count=config.get("backup_count", 5)
            )
        else:
            stream = sys.stderr

        LoggerFactory.configure(level=config.get("level", "WARNING"), format_style=config.get("format", "text"), stream=stream)

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> tuple:
        """
        Validate configuration.

        Returns:
            Tuple of (is_valid, error_message)
        """
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        level = str(config.get("level", "WARNING")).upper()
        if level not in valid_levels:
            return False, f"Invalid log level '{level}'. Must be one of: {', '.join(valid_levels)}"

        valid_formats = ["json", "text"]
        format_style = config.get("format", "text")
        if format_style not in valid_formats:
            return False, f"Invalid format '{format_style}'. Must be one of: {', '.join(valid_formats)}"

        valid_outputs = ["stderr", "stdout", "file"]
        output = config.get("output", "stderr")
        if output not in valid_outputs:
            return False, f"Invalid output '{output}'. Must be one of: {', '.join(valid_outputs)}"

        if output == "file" and not config.get("file_path"):
            return False, "file_path required when output is 'file'"

        return True, ""

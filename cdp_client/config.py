"""Configuration management for the CDP client.

Supports multiple configuration sources with precedence:
Explicit overrides > Environment variables > Config file > Defaults

Usage:
    >>> config = Configuration()
    >>> config.load_from_file("~/.cdprc")
    >>> config.load_from_env()
    >>> config.merge(port=9333)  # explicit overrides
    >>> print(config.port)
    9333
"""

import os
import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class Configuration:
    """Configuration manager with layered precedence.

    Precedence order (highest to lowest):
    1. Explicit overrides (via merge method)
    2. Environment variables (CDP_* prefix)
    3. Config file (~/.cdprc JSON)
    4. Default values

    Attributes:
        host: Chrome host for target discovery (default: "localhost")
        port: Chrome remote debugging port (default: 9222)
        timeout: CDP command timeout in seconds (default: 30.0)
        discovery_timeout: HTTP timeout for the /json endpoint (default: 5.0)
        max_size: Maximum WebSocket message size in bytes (default: 2MB)
        log_level: Logging level (default: "INFO")
        log_format: Log output format "text" or "json" (default: "text")
    """

    DEFAULTS = {
        "host": "localhost",
        "port": 9222,
        "timeout": 30.0,
        "discovery_timeout": 5.0,
        "max_size": 2_097_152,  # 2MB
        "log_level": "INFO",
        "log_format": "text",
    }

    ENV_MAPPINGS = {
        "CDP_HOST": ("host", str),
        "CDP_PORT": ("port", int),
        "CDP_TIMEOUT": ("timeout", float),
        "CDP_DISCOVERY_TIMEOUT": ("discovery_timeout", float),
        "CDP_MAX_SIZE": ("max_size", int),
        "CDP_LOG_LEVEL": ("log_level", str),
        "CDP_LOG_FORMAT": ("log_format", str),
    }

    def __init__(self):
        """Initialize configuration with default values."""
        self.host: str = self.DEFAULTS["host"]
        self.port: int = self.DEFAULTS["port"]
        self.timeout: float = self.DEFAULTS["timeout"]
        self.discovery_timeout: float = self.DEFAULTS["discovery_timeout"]
        self.max_size: int = self.DEFAULTS["max_size"]
        self.log_level: str = self.DEFAULTS["log_level"]
        self.log_format: str = self.DEFAULTS["log_format"]

    @classmethod
    def load(cls, file_path: str = "~/.cdprc", **overrides) -> "Configuration":
        """Build a configuration from every layer in precedence order.

        Example:
            >>> config = Configuration.load(timeout=10.0)
        """
        config = cls()
        config.load_from_file(file_path)
        config.load_from_env()
        config.merge(**overrides)
        return config

    def load_from_file(self, file_path: str) -> None:
        """Load configuration from JSON file.

        Args:
            file_path: Path to config file (typically ~/.cdprc)

        Note:
            Invalid JSON or missing file is ignored with a log record.
            Partial configs are merged with existing values.
        """
        path = Path(file_path).expanduser()

        if not path.exists():
            logger.debug(f"Config file not found: {path}")
            return

        try:
            with open(path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON in config file {path}: {e}")
            return
        except OSError as e:
            logger.warning(f"Error loading config file {path}: {e}")
            return

        if not isinstance(data, dict):
            logger.warning(f"Config file {path} must contain a JSON object")
            return

        self._merge_dict(data)
        logger.info(f"Loaded configuration from {path}")

    def load_from_env(self) -> None:
        """Load configuration from environment variables.

        Environment variables use CDP_ prefix:
        - CDP_HOST
        - CDP_PORT
        - CDP_TIMEOUT
        - CDP_DISCOVERY_TIMEOUT
        - CDP_MAX_SIZE
        - CDP_LOG_LEVEL
        - CDP_LOG_FORMAT

        Invalid values are ignored with warning log.
        """
        for env_var, (attr_name, type_converter) in self.ENV_MAPPINGS.items():
            value = os.getenv(env_var)
            if value is not None:
                try:
                    converted_value = type_converter(value)
                    setattr(self, attr_name, converted_value)
                    logger.debug(f"Loaded {attr_name}={converted_value} from {env_var}")
                except (ValueError, TypeError) as e:
                    logger.warning(f"Invalid value for {env_var}: {value} ({e})")

    def merge(self, **kwargs) -> None:
        """Merge explicit overrides into configuration (highest precedence).

        Example:
            >>> config.merge(port=9333, timeout=15.0)
        """
        self._merge_dict(kwargs)

    def _merge_dict(self, data: dict) -> None:
        for key, value in data.items():
            if key in self.DEFAULTS and value is not None:
                setattr(self, key, value)
                logger.debug(f"Set {key}={value}")

    def to_dict(self) -> dict:
        """Export configuration as dictionary."""
        return {key: getattr(self, key) for key in self.DEFAULTS}

    def __repr__(self) -> str:
        return f"Configuration({self.to_dict()})"

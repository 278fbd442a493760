"""
Logging configuration module.

This module provides configuration management for the logging system: which
bundled sinks are enabled, their levels and formats, and loading those
settings from ``SINKLOG_*`` environment variables or a ``.env`` file.
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from dotenv import dotenv_values

from ..errors import ConfigurationError
from .formatters import JsonFormatter, LogFormatter, TextFormatter
from .logger import LogLevel
from .sinks import ConsoleSink, FileSink, LogSink, RemoteSink

ENV_PREFIX = "SINKLOG_"
ENV_FILE_VARIABLE = "SINKLOG_ENV_FILE"
DEFAULT_LOG_FILE = Path("logs") / "sinklog.log"

FORMATTERS = {
    "text": TextFormatter,
    "json": JsonFormatter,
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class LoggingConfig:
    """Configuration for the bundled sinks."""

    # Default minimum level for sinks without their own
    level: str = "VERBOSE"

    console_enabled: bool = True
    console_format: str = "text"  # or "json"
    console_level: Optional[str] = None  # None means use the default level

    file_enabled: bool = False
    file_path: Optional[Path] = None
    file_format: str = "json"  # or "text"
    file_level: Optional[str] = None

    remote_enabled: bool = False
    remote_url: Optional[str] = None
    remote_auth_token: Optional[str] = None
    remote_level: Optional[str] = None
    remote_timeout: float = 30.0  # seconds

    def __post_init__(self):
        """Process the configuration after initialization."""
        if self.file_path is not None:
            self.file_path = Path(self.file_path)
        elif self.file_enabled:
            self.file_path = DEFAULT_LOG_FILE

    def get_level(self) -> LogLevel:
        """Get the configured default level."""
        return LogLevel.from_string(self.level)

    def _sink_level(self, override: Optional[str]) -> LogLevel:
        return LogLevel.from_string(override) if override else self.get_level()

    @staticmethod
    def _formatter(name: str) -> LogFormatter:
        formatter_class = FORMATTERS.get(str(name).lower())
        if formatter_class is None:
            raise ConfigurationError(f"Unknown log format: {name}. Valid formats are: {', '.join(FORMATTERS)}")
        return formatter_class()

    def build_sinks(self) -> List[LogSink]:
        """
        Instantiate the enabled sinks.

        Returns:
            Console, file and remote sinks, in that order, for those enabled
        """
        sinks: List[LogSink] = []

        if self.console_enabled:
            sinks.append(ConsoleSink(
                minimum_level=self._sink_level(self.console_level),
                formatter=self._formatter(self.console_format),
            ))

        if self.file_enabled:
            sinks.append(FileSink(
                file_path=self.file_path or DEFAULT_LOG_FILE,
                minimum_level=self._sink_level(self.file_level),
                formatter=self._formatter(self.file_format),
            ))

        if self.remote_enabled:
            if not self.remote_url:
                raise ConfigurationError("Remote logging is enabled but no remote_url is set")
            sinks.append(RemoteSink(
                url=self.remote_url,
                minimum_level=self._sink_level(self.remote_level),
                auth_token=self.remote_auth_token,
                timeout=self.remote_timeout,
            ))

        return sinks

    def from_dict(self, config_dict: Mapping[str, Any]) -> "LoggingConfig":
        """
        Update configuration from a dictionary.

        Args:
            config_dict: Dictionary containing configuration values

        Returns:
            Self for method chaining
        """
        field_names = {item.name for item in fields(self)}
        for key, value in config_dict.items():
            if key in field_names:
                setattr(self, key, value)

        self.__post_init__()
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a dictionary."""
        result = {}
        for item in fields(self):
            value = getattr(self, item.name)
            result[item.name] = str(value) if isinstance(value, Path) else value
        return result

    @classmethod
    def from_env(cls,
                 env_file: Optional[Union[str, Path]] = None,
                 environ: Optional[Mapping[str, str]] = None) -> "LoggingConfig":
        """
        Build a configuration from ``SINKLOG_*`` variables.

        Values in the ``.env`` file override the process environment.

        Args:
            env_file: Path to a ``.env`` file (defaults to ``$SINKLOG_ENV_FILE``)
            environ: Environment mapping to read instead of ``os.environ``
        """
        values: Dict[str, Optional[str]] = dict(os.environ if environ is None else environ)

        env_file = env_file or values.get(ENV_FILE_VARIABLE)
        if env_file and Path(env_file).exists():
            values.update(dotenv_values(env_file))

        field_names = {item.name for item in fields(cls)}
        overrides: Dict[str, Any] = {}
        for env_name, env_value in values.items():
            if not env_name.startswith(ENV_PREFIX) or env_value is None:
                continue
            key = env_name[len(ENV_PREFIX):].lower()
            if key in field_names:
                overrides[key] = _convert_env_value(key, env_value)

        return cls().from_dict(overrides)


def _convert_env_value(key: str, raw: str) -> Any:
    """Convert an environment string to the type of the matching field."""
    if key.endswith("_enabled"):
        lowered = raw.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ConfigurationError(f"Invalid boolean for {ENV_PREFIX}{key.upper()}: {raw!r}")

    if key == "remote_timeout":
        try:
            return float(raw)
        except ValueError:
            raise ConfigurationError(f"Invalid number for {ENV_PREFIX}{key.upper()}: {raw!r}") from None

    if key == "file_path":
        return Path(raw)

    return raw

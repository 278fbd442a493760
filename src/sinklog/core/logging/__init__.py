"""
Multi-destination logging for sinklog.

Named loggers fan every event out to independently filtered sinks: console,
file, remote HTTP endpoint, or anything else implementing the sink contract.
"""

from typing import List, Optional

from .logger import Logger, LogLevel, LogEvent, meets_threshold
from .sinks import LogSink, ConsoleSink, FileSink, RemoteSink, CallbackSink
from .formatters import LogFormatter, JsonFormatter, TextFormatter
from .dispatch import DeliveryDispatcher
from .registry import LogRegistry, get_logger, logger_with_output, add_log_sinks
from .config import LoggingConfig

__all__ = [
    "Logger",
    "LogLevel",
    "LogEvent",
    "meets_threshold",
    "LogSink",
    "ConsoleSink",
    "FileSink",
    "RemoteSink",
    "CallbackSink",
    "LogFormatter",
    "JsonFormatter",
    "TextFormatter",
    "DeliveryDispatcher",
    "LogRegistry",
    "LoggingConfig",
    "configure_logging",
    "get_logger",
    "logger_with_output",
    "add_log_sinks",
]

# Global logging configuration
_logging_config = LoggingConfig()


def configure_logging(config: Optional[LoggingConfig] = None,
                      registry: Optional[LogRegistry] = None) -> List[LogSink]:
    """
    Build the sinks described by ``config`` and register them globally.

    Loggers created before this call keep their previous sinks.

    Returns:
        The sinks that were registered
    """
    global _logging_config
    if config is not None:
        _logging_config = config

    sinks = _logging_config.build_sinks()
    (registry or LogRegistry.instance()).add_log_sinks(sinks)
    return sinks

"""sinklog: named loggers fanning out to console, file and remote sinks."""

__version__ = "0.1.0"

from .core import (
    LoggingError,
    ConfigurationError,
    SinkDeliveryFailure,
    Logger,
    LogLevel,
    LogEvent,
    LogRegistry,
    LoggingConfig,
    configure_logging,
    get_logger,
    logger_with_output,
    add_log_sinks,
)
from .core.logging import ConsoleSink, FileSink, RemoteSink, CallbackSink, LogSink

__all__ = [
    "LoggingError",
    "ConfigurationError",
    "SinkDeliveryFailure",
    "Logger",
    "LogLevel",
    "LogEvent",
    "LogSink",
    "LogRegistry",
    "LoggingConfig",
    "ConsoleSink",
    "FileSink",
    "RemoteSink",
    "CallbackSink",
    "configure_logging",
    "get_logger",
    "logger_with_output",
    "add_log_sinks",
]

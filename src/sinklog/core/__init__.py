"""Core components for sinklog."""

# Errors first, the logging package depends on them
from .errors import LoggingError, ConfigurationError, SinkDeliveryFailure

from .logging import (
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

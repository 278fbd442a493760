"""
Exception hierarchy for sinklog.

Configuration problems are programming errors and surface synchronously to the
caller. Delivery failures are runtime transients: they are captured at the
dispatch boundary and reported to diagnostics, never raised to the code that
called a level method.
"""

from typing import Optional


class LoggingError(Exception):
    """Base exception class for all sinklog errors."""
    pass


class ConfigurationError(LoggingError):
    """Exception raised for invalid registry or configuration input."""
    pass


class SinkDeliveryFailure(LoggingError):
    """
    Exception describing a single sink's failed delivery.
    
    Args:
        sink_name: Name of the sink whose delivery failed
        message: Human-readable description of the failure
        cause: The original exception, if any
    """
    
    def __init__(self, sink_name: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"Sink '{sink_name}' failed to deliver: {message}")
        self.sink_name = sink_name
        self.cause = cause

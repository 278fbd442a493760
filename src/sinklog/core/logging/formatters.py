"""
Log formatters for converting log events to text.

This module provides formatters for different output formats, including text and JSON.
"""

import json
from abc import ABC, abstractmethod
from typing import Optional

from .logger import LogEvent


class LogFormatter(ABC):
    """Base abstract class for log formatters."""

    @abstractmethod
    def format(self, event: LogEvent) -> str:
        """
        Format a log event into a string representation.

        Args:
            event: The event to format

        Returns:
            Formatted string
        """
        pass


class JsonFormatter(LogFormatter):
    """
    Formatter for JSON output.

    This formatter converts log events to a JSON string format, which is useful
    for structured logging and machine processing.
    """

    def __init__(self, indent: Optional[int] = None, ensure_ascii: bool = False):
        """
        Initialize the JSON formatter.

        Args:
            indent: Number of spaces for indentation (None for compact format)
            ensure_ascii: Whether to escape non-ASCII characters
        """
        self.indent = indent
        self.ensure_ascii = ensure_ascii

    def format(self, event: LogEvent) -> str:
        return json.dumps(event.to_dict(), indent=self.indent, ensure_ascii=self.ensure_ascii)


class TextFormatter(LogFormatter):
    """
    Formatter for human-readable text output.

    Produces ``[timestamp] [LEVEL   ] [source] message`` followed by the error
    and, on the next lines, the stack trace when present.
    """

    TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

    def __init__(self,
                 include_timestamp: bool = True,
                 include_level: bool = True,
                 include_source: bool = True,
                 include_error: bool = True,
                 include_stack_trace: bool = True):
        """
        Initialize the text formatter.

        Args:
            include_timestamp: Whether to include timestamp in output
            include_level: Whether to include log level in output
            include_source: Whether to include the logger name in output
            include_error: Whether to append the error object
            include_stack_trace: Whether to append the stack trace
        """
        self.include_timestamp = include_timestamp
        self.include_level = include_level
        self.include_source = include_source
        self.include_error = include_error
        self.include_stack_trace = include_stack_trace

    def format(self, event: LogEvent) -> str:
        parts = []

        if self.include_timestamp:
            # Local time, millisecond precision
            time_str = event.timestamp.astimezone().strftime(self.TIMESTAMP_FORMAT)[:-3]
            parts.append(f"[{time_str}]")

        if self.include_level:
            parts.append(f"[{event.level.label.ljust(8)}]")

        if self.include_source:
            parts.append(f"[{event.source}]")

        parts.append(event.message)

        if self.include_error and event.error is not None:
            parts.append(f"| {self._describe_error(event.error)}")

        line = " ".join(parts)

        if self.include_stack_trace and event.stack_trace:
            line = f"{line}\n{event.stack_trace.rstrip()}"

        return line

    @staticmethod
    def _describe_error(error: object) -> str:
        if isinstance(error, BaseException):
            return f"{type(error).__name__}: {error}"
        return str(error)

"""
Core logging functionality for sinklog.

This module defines the severity levels, the immutable event built for every
log call, and the logger facade that stamps events and fans them out to the
sinks it was bound to at construction.
"""

import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from types import TracebackType
from typing import Any, Dict, Optional, Sequence, Tuple, Union, TYPE_CHECKING

from ..errors import ConfigurationError

if TYPE_CHECKING:
    from .dispatch import DeliveryDispatcher
    from .sinks import LogSink


class LogLevel(IntEnum):
    """Log level enumeration in order of increasing severity."""
    VERBOSE = 0
    DEBUG = 1
    INFO = 2
    WARNING = 3
    ERROR = 4
    FATAL = 5
    WTF = 6

    @classmethod
    def from_string(cls, level_str: str) -> "LogLevel":
        """Convert a string representation to a LogLevel enum value."""
        normalized = str(level_str).strip().upper()
        if normalized not in cls.__members__:
            valid = ", ".join(cls.__members__)
            raise ConfigurationError(f"Invalid log level: {level_str}. Valid levels are: {valid}")

        return cls[normalized]

    @classmethod
    def coerce(cls, value: Union["LogLevel", str, int]) -> "LogLevel":
        """Accept a LogLevel, a level name or a rank."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls.from_string(value)
        try:
            return cls(value)
        except ValueError:
            raise ConfigurationError(f"Invalid log level rank: {value!r}") from None

    @property
    def rank(self) -> int:
        return int(self)

    @property
    def label(self) -> str:
        return self.name

    @property
    def style(self) -> str:
        """Rich style used by presentation sinks."""
        return _LEVEL_STYLES[self]

    def meets(self, threshold: Union["LogLevel", str, int]) -> bool:
        return meets_threshold(self, LogLevel.coerce(threshold))

    def __str__(self) -> str:
        """Convert the enum value to a string representation."""
        return self.name


_LEVEL_STYLES = {
    LogLevel.VERBOSE: "dim",
    LogLevel.DEBUG: "cyan",
    LogLevel.INFO: "green",
    LogLevel.WARNING: "yellow",
    LogLevel.ERROR: "red",
    LogLevel.FATAL: "bold red",
    LogLevel.WTF: "bold white on red",
}


def meets_threshold(candidate: LogLevel, threshold: LogLevel) -> bool:
    """Return True when ``candidate`` is at least as severe as ``threshold``."""
    return candidate.rank >= threshold.rank


@dataclass(frozen=True)
class LogEvent:
    """A single log call, as handed to every bound sink."""

    level: LogLevel
    message: str
    source: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: Any = None
    stack_trace: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert the event to a JSON-ready dictionary."""
        return {
            "level": self.level.label,
            "message": self.message,
            "error": None if self.error is None else str(self.error),
            "stack_trace": self.stack_trace,
            "timestamp": self.timestamp.isoformat(),
            "source": self.source,
        }


def resolve_stack_trace(error: Any, stack_trace: Any = None) -> str:
    """
    Render the stack trace to attach to an event.

    An explicit trace wins. Otherwise the traceback carried by an exception
    ``error`` is used, and anything else yields an empty string.
    """
    if stack_trace is not None:
        if isinstance(stack_trace, str):
            return stack_trace
        if isinstance(stack_trace, TracebackType):
            return "".join(traceback.format_tb(stack_trace))
        if isinstance(stack_trace, traceback.StackSummary):
            return "".join(stack_trace.format())
        return str(stack_trace)

    if isinstance(error, BaseException) and error.__traceback__ is not None:
        return "".join(traceback.format_exception(type(error), error, error.__traceback__))

    return ""


class Logger:
    """
    Named logging facade bound to a fixed sequence of sinks.

    The logger does no level gating of its own: every call is stamped with
    the logger name and a timestamp, then handed to each sink, which applies
    its own ``minimum_level``. Sinks are snapshotted at construction and
    never change afterwards.
    """

    def __init__(self,
                 name: str,
                 sinks: Sequence["LogSink"] = (),
                 dispatcher: Optional["DeliveryDispatcher"] = None):
        """
        Initialize a new logger.

        Args:
            name: The logger name, used as the source of every event
            sinks: The sinks this logger dispatches to (may be empty)
            dispatcher: Dispatcher used for fan-out (defaults to the shared one)
        """
        if dispatcher is None:
            from .dispatch import DeliveryDispatcher
            dispatcher = DeliveryDispatcher.shared()

        self._name = name
        self._sinks: Tuple["LogSink", ...] = tuple(sinks)
        self._dispatcher = dispatcher

    @property
    def name(self) -> str:
        return self._name

    @property
    def sinks(self) -> Tuple["LogSink", ...]:
        return self._sinks

    def _make_event(self, level: LogLevel, message: str, error: Any, stack_trace: Any) -> LogEvent:
        return LogEvent(
            level=LogLevel.coerce(level),
            message=str(message),
            source=self._name,
            timestamp=datetime.now(timezone.utc),
            error=error,
            stack_trace=resolve_stack_trace(error, stack_trace),
        )

    def log(self, level: LogLevel, message: str, error: Any = None, stack_trace: Any = None) -> None:
        """
        Log a message at the specified level.

        Returns as soon as delivery has been started for every sink; slow
        sinks complete in the background.
        """
        event = self._make_event(level, message, error, stack_trace)
        self._dispatcher.dispatch(self._sinks, event)

    async def log_async(self, level: LogLevel, message: str, error: Any = None, stack_trace: Any = None) -> None:
        """Log a message and wait until every sink has finished with it."""
        event = self._make_event(level, message, error, stack_trace)
        await self._dispatcher.dispatch_and_wait(self._sinks, event)

    # Log level-specific methods

    def verbose(self, message: str, error: Any = None, stack_trace: Any = None) -> None:
        self.log(LogLevel.VERBOSE, message, error, stack_trace)

    def debug(self, message: str, error: Any = None, stack_trace: Any = None) -> None:
        self.log(LogLevel.DEBUG, message, error, stack_trace)

    def info(self, message: str, error: Any = None, stack_trace: Any = None) -> None:
        self.log(LogLevel.INFO, message, error, stack_trace)

    def warning(self, message: str, error: Any = None, stack_trace: Any = None) -> None:
        self.log(LogLevel.WARNING, message, error, stack_trace)

    def error(self, message: str, error: Any = None, stack_trace: Any = None) -> None:
        self.log(LogLevel.ERROR, message, error, stack_trace)

    def fatal(self, message: str, error: Any = None, stack_trace: Any = None) -> None:
        self.log(LogLevel.FATAL, message, error, stack_trace)

    def wtf(self, message: str, error: Any = None, stack_trace: Any = None) -> None:
        """Log a condition that should never happen."""
        self.log(LogLevel.WTF, message, error, stack_trace)

    # Completion helpers

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Block until pending background deliveries finish."""
        return self._dispatcher.flush(timeout)

    async def aflush(self, timeout: Optional[float] = None) -> bool:
        """Wait for pending deliveries from inside an event loop."""
        return await self._dispatcher.aflush(timeout)

    def __repr__(self) -> str:
        sink_names = ", ".join(getattr(sink, "name", "?") for sink in self._sinks)
        return f"Logger(name={self._name!r}, sinks=[{sink_names}])"

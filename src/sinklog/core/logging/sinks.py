"""
Log sinks for different output destinations.

A sink is anything with a ``name``, an optional ``minimum_level`` and a
``deliver(event)`` method; no base class is required. This module defines
that contract and the bundled console, file, remote and callback sinks.
"""

import asyncio
import threading
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, TextIO, Union, runtime_checkable

import aiohttp
from rich.console import Console

from ..errors import SinkDeliveryFailure
from .formatters import JsonFormatter, LogFormatter, TextFormatter
from .logger import LogEvent, LogLevel

LevelLike = Union[LogLevel, str, int]


@runtime_checkable
class LogSink(Protocol):
    """
    Capability contract for a log destination.

    A sink may also carry a ``minimum_level`` (a LogLevel, level name or
    rank); without one it receives every event.
    """

    name: str

    def deliver(self, event: LogEvent) -> Optional[Awaitable[None]]:
        """
        Accept one event.

        May raise, or return an awaitable that completes later. Either way a
        failure stays with this sink.
        """
        ...


def is_log_sink(obj: Any) -> bool:
    """Check that ``obj`` satisfies the sink contract."""
    return isinstance(getattr(obj, "name", None), str) and callable(getattr(obj, "deliver", None))


def accepts(sink: Any, event: LogEvent) -> bool:
    """Apply the sink's own ``minimum_level`` (VERBOSE when it has none)."""
    threshold = getattr(sink, "minimum_level", None)
    if threshold is None:
        return True
    return event.level.meets(LogLevel.coerce(threshold))


class ConsoleSink:
    """Sink rendering events to the terminal through rich."""

    def __init__(self,
                 minimum_level: LevelLike = LogLevel.VERBOSE,
                 formatter: Optional[LogFormatter] = None,
                 console: Optional[Console] = None,
                 error_console: Optional[Console] = None,
                 use_stderr_for_error: bool = True,
                 colorize: bool = True,
                 name: str = "console"):
        """
        Initialize the console sink.

        Args:
            minimum_level: Minimum log level to render
            formatter: Formatter to use (defaults to TextFormatter)
            console: Console for regular output (defaults to stdout)
            error_console: Console for ERROR and above (defaults to stderr,
                or to ``console`` when only that one is given)
            use_stderr_for_error: Whether to route ERROR and above to ``error_console``
            colorize: Whether to style the output based on log level
            name: Sink name used in diagnostics
        """
        self.name = name
        self.minimum_level = LogLevel.coerce(minimum_level)
        self.formatter = formatter or TextFormatter()
        self.console = console or Console(highlight=False)
        if error_console is None:
            error_console = console if console is not None else Console(stderr=True, highlight=False)
        self.error_console = error_console
        self.use_stderr_for_error = use_stderr_for_error
        self.colorize = colorize

    def deliver(self, event: LogEvent) -> None:
        if not accepts(self, event):
            return

        formatted = self.formatter.format(event)
        target = self.console
        if self.use_stderr_for_error and event.level >= LogLevel.ERROR:
            target = self.error_console

        target.print(
            formatted,
            style=event.level.style if self.colorize else None,
            markup=False,
            highlight=False,
            soft_wrap=True,
        )


class FileSink:
    """
    Sink appending one formatted line per event to a file.

    The file is opened lazily in append mode and guarded by a lock so
    several threads may log to the same sink.
    """

    def __init__(self,
                 file_path: Union[str, Path],
                 minimum_level: LevelLike = LogLevel.VERBOSE,
                 formatter: Optional[LogFormatter] = None,
                 immediate_flush: bool = True,
                 name: str = "file"):
        """
        Initialize the file sink.

        Args:
            file_path: Path to the log file; parent directories are created
            minimum_level: Minimum log level to write
            formatter: Formatter to use (defaults to JsonFormatter)
            immediate_flush: Whether to flush after each write
            name: Sink name used in diagnostics
        """
        self.name = name
        self.minimum_level = LogLevel.coerce(minimum_level)
        self.formatter = formatter or JsonFormatter()
        self.file_path = Path(file_path)
        self.immediate_flush = immediate_flush

        self.file_path.parent.mkdir(parents=True, exist_ok=True)

        self.file: Optional[TextIO] = None
        self.lock = threading.RLock()

    def _open_file(self) -> TextIO:
        if self.file is None:
            self.file = open(self.file_path, "a", encoding="utf-8")
        return self.file

    def deliver(self, event: LogEvent) -> None:
        if not accepts(self, event):
            return

        formatted = self.formatter.format(event)
        with self.lock:
            handle = self._open_file()
            handle.write(formatted + "\n")
            if self.immediate_flush:
                handle.flush()

    def flush(self) -> None:
        """Flush the file buffer."""
        with self.lock:
            if self.file is not None:
                self.file.flush()

    def close(self) -> None:
        """Close the file; a later delivery reopens it."""
        with self.lock:
            if self.file is not None:
                self.file.close()
                self.file = None


class RemoteSink:
    """
    Sink POSTing each event as JSON to an HTTP endpoint.

    Delivery is a coroutine, so the calling code never waits on the network.
    Transport errors and non-2xx responses raise SinkDeliveryFailure; there
    are no retries.
    """

    def __init__(self,
                 url: str,
                 minimum_level: LevelLike = LogLevel.VERBOSE,
                 auth_token: Optional[str] = None,
                 timeout: float = 30.0,
                 session_factory: Optional[Callable[[], aiohttp.ClientSession]] = None,
                 name: str = "remote"):
        """
        Initialize the remote sink.

        Args:
            url: URL of the remote endpoint
            minimum_level: Minimum log level to send
            auth_token: Optional bearer token
            timeout: Total request timeout (seconds)
            session_factory: Callable returning a fresh client session for one
                request; called inside the event loop that performs it
            name: Sink name used in diagnostics
        """
        self.name = name
        self.minimum_level = LogLevel.coerce(minimum_level)
        self.url = url
        self.auth_token = auth_token
        self.timeout = timeout
        self._session_factory = session_factory or self._default_session

    def _default_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))

    @staticmethod
    def build_payload(event: LogEvent) -> Dict[str, Any]:
        """Body sent for one event."""
        return {
            "level": event.level.label,
            "message": event.message,
            "error": None if event.error is None else str(event.error),
            "timestamp": event.timestamp.isoformat(),
            "source": event.source,
        }

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    async def deliver(self, event: LogEvent) -> None:
        if not accepts(self, event):
            return

        payload = self.build_payload(event)
        try:
            async with self._session_factory() as session:
                async with session.post(self.url, json=payload, headers=self._headers()) as response:
                    if not 200 <= response.status < 300:
                        body = await response.text()
                        raise SinkDeliveryFailure(self.name, f"{self.url} answered {response.status} {body}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SinkDeliveryFailure(self.name, f"{self.url} unreachable: {e}", cause=e) from e


class CallbackSink:
    """Sink wrapping a plain function or coroutine function."""

    def __init__(self,
                 callback: Callable[[LogEvent], Any],
                 name: Optional[str] = None,
                 minimum_level: LevelLike = LogLevel.VERBOSE):
        self.callback = callback
        self.name = name or getattr(callback, "__name__", "callback")
        self.minimum_level = LogLevel.coerce(minimum_level)

    def deliver(self, event: LogEvent) -> Optional[Awaitable[None]]:
        if not accepts(self, event):
            return None
        return self.callback(event)

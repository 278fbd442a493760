"""
Registry of named loggers and globally registered sinks.

The registry hands out loggers by name. A logger obtained through
``get_logger`` is bound to a snapshot of the global sinks taken when it is
first created; sinks added later only reach loggers created (or explicitly
refreshed) afterwards.
"""

import logging
import threading
from collections.abc import Iterable
from typing import Any, Dict, List, Optional, Tuple

from ..errors import ConfigurationError
from .dispatch import DeliveryDispatcher
from .logger import Logger
from .sinks import LogSink, is_log_sink

# Create module-specific logger
logger = logging.getLogger(__name__)

DEFAULT_LOGGER_NAME = "default"


def _validate_name(name: Any) -> str:
    if not isinstance(name, str):
        raise ConfigurationError(f"Logger name must be a string, got {type(name).__name__}")
    return name


def _validate_sinks(sinks: Any) -> Tuple[LogSink, ...]:
    """Materialize ``sinks`` and check every element against the sink contract."""
    if isinstance(sinks, (str, bytes)) or not isinstance(sinks, Iterable):
        raise ConfigurationError(f"Expected a sequence of sinks, got {type(sinks).__name__}")

    resolved = tuple(sinks)
    for index, sink in enumerate(resolved):
        if not is_log_sink(sink):
            raise ConfigurationError(
                f"Sink #{index} ({type(sink).__name__}) needs a string 'name' and a callable 'deliver'"
            )
    return resolved


class LogRegistry:
    """
    Process-wide registry of loggers and global sinks.

    ``LogRegistry.instance()`` returns the lazily created singleton; separate
    instances can also be constructed and passed around explicitly. All
    registry state is guarded by one lock, and no sink is ever called while
    that lock is held.
    """

    # Singleton instance
    _instance: Optional["LogRegistry"] = None
    _instance_lock = threading.Lock()

    @classmethod
    def instance(cls) -> "LogRegistry":
        """Get the process-wide registry, creating it on first access."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def __init__(self, dispatcher: Optional[DeliveryDispatcher] = None):
        """
        Initialize an empty registry.

        Args:
            dispatcher: Dispatcher handed to every logger (defaults to the shared one)
        """
        self._lock = threading.Lock()
        self._global_sinks: List[LogSink] = []
        self._loggers: Dict[str, Logger] = {}
        self._dispatcher = dispatcher or DeliveryDispatcher.shared()

    @property
    def dispatcher(self) -> DeliveryDispatcher:
        return self._dispatcher

    @property
    def global_sinks(self) -> Tuple[LogSink, ...]:
        """Snapshot of the currently registered global sinks."""
        with self._lock:
            return tuple(self._global_sinks)

    def get_logger(self, name: str = DEFAULT_LOGGER_NAME) -> Logger:
        """
        Get or create a logger with the specified name.

        A new logger is bound to the global sinks registered at this moment.

        Args:
            name: The logger name

        Returns:
            The cached Logger for ``name``
        """
        _validate_name(name)
        with self._lock:
            cached = self._loggers.get(name)
            if cached is None:
                cached = Logger(name, tuple(self._global_sinks), self._dispatcher)
                self._loggers[name] = cached
                logger.debug("Created logger %r with %d global sink(s)", name, len(cached.sinks))
            return cached

    def logger_with_output(self, name: str, sinks: Iterable) -> Logger:
        """
        Create a logger bound to exactly ``sinks``, replacing any cached one.

        Global sinks are not included.
        """
        _validate_name(name)
        resolved = _validate_sinks(sinks)
        created = Logger(name, resolved, self._dispatcher)
        with self._lock:
            self._loggers[name] = created
        logger.debug("Created logger %r with %d custom sink(s)", name, len(resolved))
        return created

    def add_log_sinks(self, sinks: Iterable) -> None:
        """
        Append sinks to the global sink list.

        Order is preserved and duplicates are kept. Loggers already cached
        keep their sinks; see ``refresh_logger``.
        """
        resolved = _validate_sinks(sinks)
        with self._lock:
            self._global_sinks.extend(resolved)
        logger.debug("Registered %d global sink(s)", len(resolved))

    def refresh_logger(self, name: str = DEFAULT_LOGGER_NAME) -> Logger:
        """Rebind ``name`` to the current global sinks and cache the new logger."""
        _validate_name(name)
        with self._lock:
            refreshed = Logger(name, tuple(self._global_sinks), self._dispatcher)
            self._loggers[name] = refreshed
            return refreshed

    def reset(self) -> None:
        """Drop every cached logger and global sink."""
        with self._lock:
            self._loggers.clear()
            self._global_sinks.clear()

    def shutdown(self, timeout: Optional[float] = 5.0) -> None:
        """
        Flush pending deliveries and close every known sink that can be closed.

        Args:
            timeout: Seconds to wait for pending deliveries
        """
        if not self._dispatcher.flush(timeout):
            logger.warning("Some log deliveries were still pending at shutdown")

        with self._lock:
            candidates = list(self._global_sinks)
            for cached in self._loggers.values():
                candidates.extend(cached.sinks)

        closed = set()
        for sink in candidates:
            if id(sink) in closed:
                continue
            closed.add(id(sink))
            close = getattr(sink, "close", None)
            if not callable(close):
                continue
            try:
                close()
            except Exception:
                logger.warning("Failed to close sink %r", getattr(sink, "name", sink), exc_info=True)


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> Logger:
    """Get a logger from the process-wide registry."""
    return LogRegistry.instance().get_logger(name)


def logger_with_output(name: str, sinks: Iterable) -> Logger:
    """Create a logger with its own sinks in the process-wide registry."""
    return LogRegistry.instance().logger_with_output(name, sinks)


def add_log_sinks(sinks: Iterable) -> None:
    """Register global sinks in the process-wide registry."""
    LogRegistry.instance().add_log_sinks(sinks)

"""
Fan-out of log events to sinks.

Every sink delivery runs inside its own failure boundary and off the
caller's thread. Coroutine sinks are scheduled as independent tasks, on the
caller's running event loop when there is one, otherwise on a background
loop thread owned by the dispatcher. Synchronous sinks run on a
single-worker lane of their own, so a blocking sink delays only itself and
each sink still sees its events in call order. Callers never wait for any of
this unless they ask to.
"""

import asyncio
import concurrent.futures
import inspect
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Awaitable, Dict, Iterable, List, Optional, Set, Union, TYPE_CHECKING

from ..errors import SinkDeliveryFailure

if TYPE_CHECKING:
    from .logger import LogEvent
    from .sinks import LogSink

# Diagnostics channel for sink failures
logger = logging.getLogger(__name__)

PendingDelivery = Union["asyncio.Task[None]", "concurrent.futures.Future[None]"]


class DeliveryDispatcher:
    """
    Delivers one event to many sinks with isolated failures.

    A single shared instance is used by default; tests and embedders may
    create their own and pass it to a LogRegistry or Logger.
    """

    _shared: Optional["DeliveryDispatcher"] = None
    _shared_lock = threading.Lock()

    @classmethod
    def shared(cls) -> "DeliveryDispatcher":
        """Get the process-wide dispatcher, creating it on first use."""
        with cls._shared_lock:
            if cls._shared is None:
                cls._shared = cls()
            return cls._shared

    def __init__(self):
        self._lock = threading.Lock()
        self._pending: Set[PendingDelivery] = set()
        self._lanes: Dict[int, ThreadPoolExecutor] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._failure_count = 0

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def failure_count(self) -> int:
        """Number of sink deliveries that failed since creation."""
        with self._lock:
            return self._failure_count

    def dispatch(self, sinks: Iterable["LogSink"], event: "LogEvent") -> None:
        """Start delivery of ``event`` to every sink without waiting for completion."""
        for sink in sinks:
            if _is_coroutine_sink(sink):
                awaitable = self._start_delivery(sink, event)
                if awaitable is not None:
                    self._schedule(sink, awaitable)
            else:
                self._submit(sink, event)

    async def dispatch_and_wait(self, sinks: Iterable["LogSink"], event: "LogEvent") -> None:
        """Deliver ``event`` to every sink and wait until all deliveries finish."""
        waiters = []
        for sink in sinks:
            if _is_coroutine_sink(sink):
                awaitable = self._start_delivery(sink, event)
                if awaitable is not None:
                    waiters.append(self._guarded(sink, awaitable))
            else:
                waiters.append(asyncio.wrap_future(self._submit(sink, event)))

        if waiters:
            await asyncio.gather(*waiters)

    def _start_delivery(self, sink: "LogSink", event: "LogEvent") -> Optional[Awaitable[Any]]:
        try:
            result = sink.deliver(event)
        except Exception as e:
            self._report(sink, e)
            return None

        if inspect.isawaitable(result):
            return result
        return None

    async def _guarded(self, sink: "LogSink", awaitable: Awaitable[Any]) -> None:
        try:
            await awaitable
        except Exception as e:
            self._report(sink, e)

    def _lane(self, sink: "LogSink") -> ThreadPoolExecutor:
        with self._lock:
            lane = self._lanes.get(id(sink))
            if lane is None:
                lane = ThreadPoolExecutor(
                    max_workers=1,
                    thread_name_prefix=f"sinklog-{getattr(sink, 'name', 'sink')}",
                )
                self._lanes[id(sink)] = lane
            return lane

    def _submit(self, sink: "LogSink", event: "LogEvent") -> "concurrent.futures.Future[None]":
        pending = self._lane(sink).submit(self._run_on_lane, sink, event)
        with self._lock:
            self._pending.add(pending)
        pending.add_done_callback(self._discard)
        return pending

    def _run_on_lane(self, sink: "LogSink", event: "LogEvent") -> None:
        awaitable = self._start_delivery(sink, event)
        if awaitable is None:
            return
        # A plain deliver() that hands back a coroutine; keep the lane busy until it ends
        future = asyncio.run_coroutine_threadsafe(self._guarded(sink, awaitable), self._background_loop())
        future.result()

    def _schedule(self, sink: "LogSink", awaitable: Awaitable[Any]) -> None:
        coro = self._guarded(sink, awaitable)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        pending: PendingDelivery
        if loop is not None:
            pending = loop.create_task(coro)
        else:
            pending = asyncio.run_coroutine_threadsafe(coro, self._background_loop())

        with self._lock:
            self._pending.add(pending)
        pending.add_done_callback(self._discard)

    def _discard(self, pending: PendingDelivery) -> None:
        with self._lock:
            self._pending.discard(pending)

    def _report(self, sink: "LogSink", error: Exception) -> None:
        sink_name = getattr(sink, "name", type(sink).__name__)
        if isinstance(error, SinkDeliveryFailure):
            failure = error
        else:
            failure = SinkDeliveryFailure(sink_name, str(error) or type(error).__name__, cause=error)

        with self._lock:
            self._failure_count += 1
        logger.warning("%s", failure, exc_info=(type(error), error, error.__traceback__))

    def _background_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None or self._loop.is_closed():
                loop = asyncio.new_event_loop()
                thread = threading.Thread(
                    target=self._run_loop,
                    args=(loop,),
                    name="sinklog-dispatch",
                    daemon=True,
                )
                thread.start()
                self._loop = loop
                self._thread = thread
            return self._loop

    @staticmethod
    def _run_loop(loop: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop)
        loop.run_forever()

    def _snapshot(self) -> List[PendingDelivery]:
        with self._lock:
            return list(self._pending)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Block until background deliveries finish.

        Tasks running on a caller's event loop cannot be waited for from
        synchronous code; use ``aflush`` inside the loop for those.

        Returns:
            True if nothing is left pending, False otherwise
        """
        pending = self._snapshot()
        futures = [p for p in pending if isinstance(p, concurrent.futures.Future)]
        loop_tasks = len(pending) - len(futures)
        if loop_tasks:
            logger.debug("flush() skipped %d task(s) bound to a running loop", loop_tasks)

        if futures:
            _, not_done = concurrent.futures.wait(futures, timeout=timeout)
            if not_done:
                return False

        return loop_tasks == 0

    async def aflush(self, timeout: Optional[float] = None) -> bool:
        """Wait for background deliveries and tasks on the current loop."""
        current = asyncio.get_running_loop()
        waiters = []
        for pending in self._snapshot():
            if isinstance(pending, concurrent.futures.Future):
                waiters.append(asyncio.wrap_future(pending))
            elif pending.get_loop() is current:
                waiters.append(pending)

        if not waiters:
            return True

        _, not_done = await asyncio.wait(waiters, timeout=timeout)
        return not not_done

    def close(self, timeout: Optional[float] = None) -> None:
        """Flush background deliveries, then stop the sink lanes and the background loop."""
        self.flush(timeout)

        with self._lock:
            lanes = list(self._lanes.values())
            self._lanes.clear()
            loop, thread = self._loop, self._thread
            self._loop = None
            self._thread = None

        for lane in lanes:
            lane.shutdown(wait=False)

        if loop is None:
            return

        loop.call_soon_threadsafe(loop.stop)
        if thread is not None:
            thread.join(timeout)
            if thread.is_alive():
                return
        loop.close()


def _is_coroutine_sink(sink: Any) -> bool:
    """True when ``deliver`` is a coroutine function and calling it cannot block."""
    return inspect.iscoroutinefunction(getattr(sink, "deliver", None))

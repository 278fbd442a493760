"""
Tests for the bundled sinks.
"""

import io
import json
from datetime import datetime, timezone

import aiohttp
import pytest
from rich.console import Console

from ...core.errors import SinkDeliveryFailure
from ...core.logging import (
    CallbackSink,
    ConsoleSink,
    DeliveryDispatcher,
    FileSink,
    LogEvent,
    LogLevel,
    LogRegistry,
    LogSink,
    RemoteSink,
    TextFormatter,
)
from ...core.logging.sinks import accepts, is_log_sink
from ..test_data.fake_sinks import FakeSession, RecordingSink


def make_event(level=LogLevel.INFO, message="started", source="App", error=None, stack_trace=""):
    return LogEvent(
        level=level,
        message=message,
        source=source,
        timestamp=datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc),
        error=error,
        stack_trace=stack_trace,
    )


def plain_console(buffer):
    return Console(file=buffer, width=200, color_system=None, force_terminal=False)


@pytest.fixture
def dispatcher():
    dispatcher = DeliveryDispatcher()
    yield dispatcher
    dispatcher.close(timeout=1)


class TestConsoleSink:
    def test_renders_text_line(self):
        out = io.StringIO()
        sink = ConsoleSink(console=plain_console(out), formatter=TextFormatter(include_timestamp=False))

        sink.deliver(make_event())

        assert out.getvalue() == "[INFO    ] [App] started\n"

    def test_respects_minimum_level(self):
        out = io.StringIO()
        sink = ConsoleSink(minimum_level="warning", console=plain_console(out))

        sink.deliver(make_event(level=LogLevel.INFO))

        assert out.getvalue() == ""

    def test_errors_go_to_error_console(self):
        out = io.StringIO()
        err = io.StringIO()
        sink = ConsoleSink(
            console=plain_console(out),
            error_console=plain_console(err),
            formatter=TextFormatter(include_timestamp=False),
        )

        sink.deliver(make_event(level=LogLevel.INFO, message="fine"))
        sink.deliver(make_event(level=LogLevel.FATAL, message="bad"))

        assert "fine" in out.getvalue()
        assert "bad" not in out.getvalue()
        assert "[FATAL   ] [App] bad" in err.getvalue()

    def test_single_console_receives_everything(self):
        out = io.StringIO()
        sink = ConsoleSink(console=plain_console(out), colorize=False)

        sink.deliver(make_event(level=LogLevel.ERROR, message="oops"))

        assert "oops" in out.getvalue()

    def test_markup_is_not_interpreted(self):
        out = io.StringIO()
        sink = ConsoleSink(console=plain_console(out), formatter=TextFormatter(include_timestamp=False))

        sink.deliver(make_event(message="[bold]literal[/bold]"))

        assert "[bold]literal[/bold]" in out.getvalue()


class TestFileSink:
    def test_appends_json_lines(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "app.log"
        sink = FileSink(path)

        sink.deliver(make_event(message="one"))
        sink.deliver(make_event(message="two", level=LogLevel.ERROR, error=ValueError("x")))
        sink.close()

        lines = path.read_text(encoding="utf-8").splitlines()
        records = [json.loads(line) for line in lines]
        assert [r["message"] for r in records] == ["one", "two"]
        assert records[1]["level"] == "ERROR"
        assert records[1]["error"] == "x"
        assert records[0]["source"] == "App"
        assert records[0]["timestamp"] == "2024-05-01T12:30:00+00:00"

    def test_reopens_after_close(self, tmp_path):
        path = tmp_path / "app.log"
        sink = FileSink(path, formatter=TextFormatter(include_timestamp=False))

        sink.deliver(make_event(message="before"))
        sink.close()
        sink.deliver(make_event(message="after"))
        sink.flush()

        assert path.read_text(encoding="utf-8").splitlines() == [
            "[INFO    ] [App] before",
            "[INFO    ] [App] after",
        ]
        sink.close()

    def test_respects_minimum_level(self, tmp_path):
        path = tmp_path / "errors.log"
        sink = FileSink(path, minimum_level=LogLevel.ERROR)

        sink.deliver(make_event(level=LogLevel.WARNING))

        assert not path.exists() or path.read_text(encoding="utf-8") == ""


class TestRemoteSink:
    @pytest.mark.asyncio
    async def test_posts_json_body(self):
        session = FakeSession()
        sink = RemoteSink("https://logs.example.com/ingest", auth_token="secret", session_factory=lambda: session)

        await sink.deliver(make_event(level=LogLevel.ERROR, message="boom", error=ValueError("x")))

        assert len(session.requests) == 1
        request = session.requests[0]
        assert request["url"] == "https://logs.example.com/ingest"
        assert request["json"] == {
            "level": "ERROR",
            "message": "boom",
            "error": "x",
            "timestamp": "2024-05-01T12:30:00+00:00",
            "source": "App",
        }
        assert request["headers"]["Authorization"] == "Bearer secret"
        assert request["headers"]["Content-Type"] == "application/json"
        assert session.closed

    @pytest.mark.asyncio
    async def test_skips_events_below_minimum_level(self):
        session = FakeSession()
        sink = RemoteSink("https://logs.example.com", minimum_level="error", session_factory=lambda: session)

        await sink.deliver(make_event(level=LogLevel.WARNING))

        assert session.requests == []

    @pytest.mark.asyncio
    async def test_non_2xx_response_fails(self):
        session = FakeSession(status=503, body="unavailable")
        sink = RemoteSink("https://logs.example.com", session_factory=lambda: session)

        with pytest.raises(SinkDeliveryFailure, match="503") as info:
            await sink.deliver(make_event())

        assert info.value.sink_name == "remote"

    @pytest.mark.asyncio
    async def test_transport_error_fails(self):
        cause = aiohttp.ClientConnectionError("connection refused")
        session = FakeSession(error=cause)
        sink = RemoteSink("https://logs.example.com", session_factory=lambda: session)

        with pytest.raises(SinkDeliveryFailure) as info:
            await sink.deliver(make_event())

        assert info.value.cause is cause

    def test_logger_error_reaches_remote_sink(self, dispatcher):
        session = FakeSession()
        remote = RemoteSink("https://logs.example.com", session_factory=lambda: session)
        witness = RecordingSink()
        registry = LogRegistry(dispatcher=dispatcher)
        log = registry.logger_with_output("Remote", [remote, witness])

        error = RuntimeError("x")
        log.error("boom", error)

        assert log.flush(timeout=5) is True
        assert session.requests[0]["json"]["level"] == "ERROR"
        assert session.requests[0]["json"]["message"] == "boom"
        assert session.requests[0]["json"]["error"] == "x"
        event = witness.events[0]
        assert event.error is error
        assert event.stack_trace == ""

    def test_failed_post_does_not_reach_caller(self, dispatcher):
        remote = RemoteSink("https://logs.example.com", session_factory=lambda: FakeSession(status=500))
        witness = RecordingSink()
        log = LogRegistry(dispatcher=dispatcher).logger_with_output("Remote", [remote, witness])

        log.fatal("server down")

        assert log.flush(timeout=5) is True
        assert len(witness.events) == 1
        assert dispatcher.failure_count == 1


class TestCallbackSink:
    def test_wraps_plain_function(self):
        seen = []
        sink = CallbackSink(seen.append, name="collector", minimum_level="debug")

        sink.deliver(make_event(level=LogLevel.VERBOSE))
        sink.deliver(make_event(level=LogLevel.DEBUG))

        assert [e.level for e in seen] == [LogLevel.DEBUG]
        assert sink.name == "collector"

    @pytest.mark.asyncio
    async def test_wraps_coroutine_function(self):
        seen = []

        async def collect(event):
            seen.append(event)

        sink = CallbackSink(collect)
        await sink.deliver(make_event())

        assert sink.name == "collect"
        assert len(seen) == 1


def test_bundled_sinks_satisfy_the_contract(tmp_path):
    sinks = [
        ConsoleSink(console=plain_console(io.StringIO())),
        FileSink(tmp_path / "contract.log"),
        RemoteSink("https://logs.example.com"),
        CallbackSink(print),
        RecordingSink(),
    ]

    for sink in sinks:
        assert is_log_sink(sink)
        assert isinstance(sink, LogSink)

    assert not is_log_sink(object())


class LevelNamedSink:
    """Custom sink declaring its threshold by name."""

    name = "level-named"
    minimum_level = "warning"

    def __init__(self):
        self.events = []

    def deliver(self, event):
        if accepts(self, event):
            self.events.append(event)


class ThresholdlessSink:
    """Custom sink with no minimum_level at all."""

    name = "thresholdless"

    def __init__(self):
        self.events = []

    def deliver(self, event):
        if accepts(self, event):
            self.events.append(event)


def test_accepts_coerces_named_threshold():
    sink = LevelNamedSink()

    sink.deliver(make_event(level=LogLevel.INFO))
    sink.deliver(make_event(level=LogLevel.ERROR))

    assert [e.level for e in sink.events] == [LogLevel.ERROR]


def test_sink_without_minimum_level_gets_everything(dispatcher):
    sink = ThresholdlessSink()

    assert is_log_sink(sink)
    assert isinstance(sink, LogSink)

    log = LogRegistry(dispatcher=dispatcher).logger_with_output("plain", [sink])
    log.verbose("lowest")

    assert log.flush(timeout=5) is True
    assert [e.message for e in sink.events] == ["lowest"]

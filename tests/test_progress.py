"""Tests for progress events, sinks and the reporter."""

import logging

import pytest

from pgvault.progress import (
    ListSink,
    LoggingSink,
    NullSink,
    ProgressEvent,
    ProgressReporter,
    QueueSink,
)


class TestProgressEvent:
    """ProgressEvent serialization."""

    def test_to_wire_camel_case_and_mirrors(self):
        event = ProgressEvent(
            kind="log",
            stage="tables",
            message="Dumping",
            progress=30,
            current_table="public.users",
            row_count=12,
        )
        wire = event.to_wire()
        assert wire["type"] == "log"
        assert wire["logType"] == "info"
        assert wire["currentTable"] == "public.users"
        assert wire["rowCount"] == 12
        assert "statementPreview" not in wire

    def test_is_terminal(self):
        assert ProgressEvent(kind="complete", stage="c", message="m").is_terminal
        assert ProgressEvent(kind="error", stage="e", message="m").is_terminal
        assert not ProgressEvent(kind="log", stage="l", message="m").is_terminal


class TestProgressReporter:
    """Reporter invariants."""

    def test_progress_never_decreases(self):
        sink = ListSink()
        reporter = ProgressReporter(sink)
        reporter.log("a", "first", progress=40)
        reporter.log("b", "lower", progress=10)
        reporter.log("c", "keep")
        assert [e.progress for e in sink.events] == [40, 40, 40]

    def test_progress_clamped_to_range(self):
        sink = ListSink()
        reporter = ProgressReporter(sink)
        reporter.log("a", "neg", progress=-5)
        reporter.log("a", "big", progress=250)
        assert [e.progress for e in sink.events] == [0, 100]

    def test_complete_is_100_and_terminal(self):
        sink = ListSink()
        reporter = ProgressReporter(sink)
        event = reporter.complete("done", success_count=3)
        assert event.progress == 100
        assert event.kind == "complete"
        assert event.success_count == 3
        assert reporter.finished

    def test_error_keeps_current_progress(self):
        reporter = ProgressReporter(ListSink())
        reporter.log("x", "m", progress=35)
        event = reporter.error("boom")
        assert event.progress == 35
        assert event.severity == "error"

    def test_emit_after_terminal_raises(self):
        reporter = ProgressReporter(ListSink())
        reporter.error("boom")
        with pytest.raises(RuntimeError, match="already finished"):
            reporter.log("x", "late")
        with pytest.raises(RuntimeError):
            reporter.complete("late")

    def test_warning_severity(self):
        sink = ListSink()
        ProgressReporter(sink).warning("cleanup", "could not drop")
        assert sink.last.severity == "warning"
        assert sink.last.kind == "log"

    def test_default_sink_is_null(self):
        reporter = ProgressReporter()
        reporter.log("a", "m", progress=5)
        assert reporter.progress == 5


class TestSinks:
    """Sink implementations."""

    def test_list_sink_stages(self):
        sink = ListSink()
        reporter = ProgressReporter(sink)
        for stage in ("connecting", "parsing", "parsing", "executing"):
            reporter.log(stage, "m")
        assert sink.stages() == ["connecting", "parsing", "executing"]

    def test_null_sink_accepts_events(self):
        NullSink().emit(ProgressEvent(stage="s", message="m"))

    def test_logging_sink_levels(self, caplog):
        sink = LoggingSink(logging.getLogger("pgvault.test"))
        with caplog.at_level(logging.INFO, logger="pgvault.test"):
            sink.emit(ProgressEvent(stage="s", message="hello", progress=7))
            sink.emit(ProgressEvent(stage="s", message="uh oh", severity="warning"))
        assert "[s]   7% hello" in caplog.text
        assert caplog.records[1].levelno == logging.WARNING

    def test_queue_sink_drops_oldest(self):
        sink = QueueSink(maxsize=2)
        reporter = ProgressReporter(sink)
        reporter.log("a", "one")
        reporter.log("b", "two")
        reporter.log("c", "three")
        assert sink.dropped == 1

    async def test_queue_sink_iterates_to_terminal(self):
        sink = QueueSink(maxsize=2)
        reporter = ProgressReporter(sink)
        reporter.log("a", "one")
        reporter.log("b", "two")
        reporter.complete("done")

        received = [event async for event in sink.events()]
        assert [e.message for e in received] == ["two", "done"]
        assert received[-1].is_terminal

"""Progress events and sinks.

Dump and restore runs report progress through a single abstract sink
(``ProgressSink``) injected by the caller.  The engine never talks to a
transport directly: a web layer can hand events to a ``QueueSink`` and
stream them, the CLI renders them with rich, and tests record them with
``ListSink``.

Every component emits through a ``ProgressReporter``, which enforces the
run invariants:

- ``progress`` never decreases within one run (lower values are clamped).
- A ``complete`` or ``error`` event is terminal -- emitting anything after
  it raises ``RuntimeError``.

Usage:
    from pgvault.progress import ListSink, ProgressReporter

    sink = ListSink()
    reporter = ProgressReporter(sink)
    reporter.log("connecting", "Connecting to database...", icon="🔌", progress=5)
    reporter.complete("Restore completed", success_count=10, error_count=0)
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any, Literal, Protocol

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

EventKind = Literal["log", "complete", "error"]
Severity = Literal["info", "success", "warning", "error"]


class ProgressEvent(BaseModel):
    """A single progress update.

    Example:
        >>> event = ProgressEvent(kind="log", stage="tables", message="Dumping tables", progress=30)
        >>> event.to_wire()["type"]
        'log'
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    kind: EventKind = "log"
    stage: str
    icon: str = "ℹ️"
    message: str
    severity: Severity = "info"
    progress: int = Field(default=0, ge=0, le=100)

    # Stage-specific counters (all optional)
    current_table: str | None = None
    row_count: int | None = None
    statements_executed: int | None = None
    total_statements: int | None = None
    statement_preview: str | None = None
    success_count: int | None = None
    error_count: int | None = None
    errors: list[dict[str, str]] | None = None
    metadata: dict[str, Any] | None = None

    @property
    def is_terminal(self) -> bool:
        """True for ``complete`` and ``error`` events."""
        return self.kind in ("complete", "error")

    def to_wire(self) -> dict[str, Any]:
        """Serialize for a push transport (camelCase, ``None`` values dropped).

        Adds ``type`` and ``logType`` mirrors of ``kind``/``severity`` so
        existing front-ends keyed on those names keep working.
        """
        data = self.model_dump(by_alias=True, exclude_none=True)
        data["type"] = self.kind
        data["logType"] = self.severity
        return data


class ProgressSink(Protocol):
    """Accepts progress events.  Implementations must not block."""

    def emit(self, event: ProgressEvent) -> None:
        ...


class NullSink:
    """Discards every event (headless runs)."""

    def emit(self, event: ProgressEvent) -> None:
        pass


class ListSink:
    """Records events in memory.  Used by tests and by callers that poll."""

    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []

    def emit(self, event: ProgressEvent) -> None:
        self.events.append(event)

    @property
    def last(self) -> ProgressEvent | None:
        return self.events[-1] if self.events else None

    def stages(self) -> list[str]:
        """Distinct stages in first-seen order."""
        seen: list[str] = []
        for event in self.events:
            if event.stage not in seen:
                seen.append(event.stage)
        return seen


class LoggingSink:
    """Forwards events to the standard ``logging`` module."""

    _LEVELS = {
        "info": logging.INFO,
        "success": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
    }

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def emit(self, event: ProgressEvent) -> None:
        self._log.log(
            self._LEVELS[event.severity],
            f"[{event.stage}] {event.progress:3d}% {event.message}",
        )


class QueueSink:
    """Hands events to an ``asyncio.Queue`` without ever blocking the run.

    When the queue is full the oldest buffered event is dropped to make
    room, so a slow consumer loses intermediate updates instead of stalling
    statement execution.  Terminal events are always enqueued.

    Example:
        sink = QueueSink(maxsize=256)
        task = asyncio.create_task(restore_backup(url, path, options, sink=sink))
        async for event in sink.events():
            await send(event.to_wire())
    """

    def __init__(self, maxsize: int = 1000) -> None:
        self._queue: asyncio.Queue[ProgressEvent] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def emit(self, event: ProgressEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self._queue.get_nowait()
            self.dropped += 1
            self._queue.put_nowait(event)

    async def events(self) -> AsyncIterator[ProgressEvent]:
        """Yield events until (and including) the terminal event."""
        while True:
            event = await self._queue.get()
            yield event
            if event.is_terminal:
                return


class ProgressReporter:
    """Emits events for one run, enforcing monotonic progress and a single terminal event.

    Args:
        sink: Destination for events.  ``None`` means ``NullSink``.
    """

    def __init__(self, sink: ProgressSink | None = None) -> None:
        self._sink: ProgressSink = sink if sink is not None else NullSink()
        self._progress = 0
        self._finished = False

    @property
    def progress(self) -> int:
        """Last emitted progress value."""
        return self._progress

    @property
    def finished(self) -> bool:
        """True once a terminal event has been emitted."""
        return self._finished

    def log(
        self,
        stage: str,
        message: str,
        *,
        icon: str = "ℹ️",
        severity: Severity = "info",
        progress: int | None = None,
        **counters: Any,
    ) -> ProgressEvent:
        """Emit a ``log`` event.  ``progress=None`` keeps the current value."""
        return self._emit("log", stage, message, icon, severity, progress, counters)

    def warning(self, stage: str, message: str, **counters: Any) -> ProgressEvent:
        """Emit a ``log`` event with warning severity."""
        return self._emit("log", stage, message, "⚠️", "warning", None, counters)

    def complete(self, message: str, *, stage: str = "complete", **counters: Any) -> ProgressEvent:
        """Emit the terminal ``complete`` event at 100%."""
        return self._emit("complete", stage, message, "✅", "success", 100, counters)

    def error(self, message: str, *, stage: str = "error", **counters: Any) -> ProgressEvent:
        """Emit the terminal ``error`` event at the current progress."""
        return self._emit("error", stage, message, "❌", "error", None, counters)

    def _emit(
        self,
        kind: EventKind,
        stage: str,
        message: str,
        icon: str,
        severity: Severity,
        progress: int | None,
        counters: dict[str, Any],
    ) -> ProgressEvent:
        if self._finished:
            raise RuntimeError(f"Run already finished; cannot emit '{kind}' event: {message}")

        if progress is not None:
            self._progress = max(self._progress, min(100, max(0, int(progress))))

        event = ProgressEvent(
            kind=kind,
            stage=stage,
            icon=icon,
            message=message,
            severity=severity,
            progress=self._progress,
            **counters,
        )
        if event.is_terminal:
            self._finished = True

        self._sink.emit(event)
        return event

"""Health report sinks.

The monitored process only decides *whether* it is healthy; where that
verdict goes is a sink. The container deployment uses the file sink that
the runtime's probe reads.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from .record import HealthRecord
from .writer import HeartbeatWriter


class HealthReporter(Protocol):
    def report(self, healthy: bool, detail: str = "") -> None: ...

    def clear(self) -> None: ...


class FileHealthReporter:
    """Reports into a health record file via an atomic writer."""

    def __init__(self, path: Path | None = None, writer: HeartbeatWriter | None = None) -> None:
        if writer is None:
            if path is None:
                raise ValueError("FileHealthReporter needs a path or a writer")
            writer = HeartbeatWriter(path)
        self.writer = writer

    @property
    def path(self) -> Path:
        return self.writer.path

    def report(self, healthy: bool, detail: str = "") -> None:
        self.writer.write(healthy, detail)

    def clear(self) -> None:
        self.writer.clear()


class MemoryHealthReporter:
    """Keeps every report in memory, for tests and embedding."""

    def __init__(self) -> None:
        self.records: list[HealthRecord] = []
        self.cleared = 0

    @property
    def last(self) -> HealthRecord | None:
        return self.records[-1] if self.records else None

    def report(self, healthy: bool, detail: str = "") -> None:
        self.records.append(HealthRecord(healthy=healthy, detail=detail))

    def clear(self) -> None:
        self.cleared += 1

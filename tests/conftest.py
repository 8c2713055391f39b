"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.health.reporter import FileHealthReporter, MemoryHealthReporter
from src.health.writer import HeartbeatWriter


@pytest.fixture
def record_path(tmp_path: Path) -> Path:
    """Record path inside a directory that does not exist yet."""
    return tmp_path / "health" / "status"


@pytest.fixture
def writer(record_path: Path) -> HeartbeatWriter:
    return HeartbeatWriter(record_path)


@pytest.fixture
def file_reporter(writer: HeartbeatWriter) -> FileHealthReporter:
    return FileHealthReporter(writer=writer)


@pytest.fixture
def memory_reporter() -> MemoryHealthReporter:
    return MemoryHealthReporter()

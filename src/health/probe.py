"""Read side of the health record — the check the container runtime executes.

A probe reads the record once and reports healthy only when the content
contains the sentinel. A missing file, a read error or any other content is
unhealthy. Probing never raises.

Used as the image HEALTHCHECK:
    HEALTHCHECK --interval=30s CMD ["safety-probe"]
"""

from __future__ import annotations

import argparse
import sys
import time
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from src.config import settings

from .record import SENTINEL, is_healthy


class ProbeStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass
class ProbeResult:
    """Outcome of a single probe of the health record."""

    status: ProbeStatus
    message: str
    path: str = ""
    latency_ms: float = 0.0
    timestamp: str = ""

    def __post_init__(self) -> None:
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()

    @property
    def healthy(self) -> bool:
        return self.status == ProbeStatus.HEALTHY

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "path": self.path,
            "latency_ms": self.latency_ms,
            "timestamp": self.timestamp,
        }


def run_probe(
    path: Path | str,
    sentinel: str = SENTINEL,
    max_age: float | None = None,
) -> ProbeResult:
    """Probe the record at *path*.

    With *max_age* set, a record last modified more than *max_age* seconds ago
    is unhealthy even if it still says ``OK: true``.
    """
    path = Path(path)
    t0 = time.perf_counter()

    def _result(status: ProbeStatus, message: str) -> ProbeResult:
        latency = (time.perf_counter() - t0) * 1000
        return ProbeResult(
            status=status, message=message, path=str(path), latency_ms=round(latency, 1),
        )

    try:
        with path.open("r", encoding="utf-8", errors="replace") as fh:
            content = fh.read()
            mtime = path.stat().st_mtime if max_age is not None else None
    except FileNotFoundError:
        return _result(ProbeStatus.UNHEALTHY, f"Health record not found: {path}")
    except Exception as e:
        return _result(ProbeStatus.UNHEALTHY, f"Read error: {type(e).__name__}: {e}")

    status_line = content.strip().splitlines()[0] if content.strip() else ""

    if not is_healthy(content, sentinel):
        if not status_line:
            return _result(ProbeStatus.UNHEALTHY, "Health record is empty")
        return _result(ProbeStatus.UNHEALTHY, f"Unhealthy record: {status_line[:200]}")

    if mtime is not None:
        age = time.time() - mtime
        if age > max_age:
            return _result(
                ProbeStatus.UNHEALTHY,
                f"Stale record: last written {age:.0f}s ago (max {max_age:.0f}s)",
            )

    return _result(ProbeStatus.HEALTHY, status_line[:200])


def add_probe_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--path", default=str(settings.health_path), help="Health record path")
    parser.add_argument(
        "--max-age", type=float, default=settings.probe_max_age,
        help="Treat records older than this many seconds as unhealthy",
    )


def check(path: Path | str, max_age: float | None = None) -> int:
    """Probe once, print the verdict and return the process exit code."""
    result = run_probe(path, max_age=max_age)
    # The container runtime keeps stdout in its health log
    print(f"{result.status.value}: {result.message}")
    return 0 if result.healthy else 1


def probe_main(argv: Sequence[str] | None = None) -> int:
    """Console entry point: exit 0 when healthy, 1 otherwise."""
    parser = argparse.ArgumentParser(
        prog="safety-probe", description="Check the safety health record",
    )
    add_probe_arguments(parser)
    args = parser.parse_args(argv)
    return check(args.path, max_age=args.max_age)


def cli() -> None:
    sys.exit(probe_main())

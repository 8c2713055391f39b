"""Heartbeat service — the monitored process's side of the liveness contract.

Every tick the service runs its registered liveness checks and reports the
verdict to a health sink. The process is healthy only when every check
passes; a check that raises counts as failed and its error becomes the
record's detail.

The container runtime never talks to this service directly: it only reads
what the sink leaves behind.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any

from src.health.record import HealthRecordError
from src.health.reporter import HealthReporter

logger = logging.getLogger(__name__)

# How often the record is refreshed (seconds); well inside the 30s probe interval
DEFAULT_HEARTBEAT_INTERVAL = 10.0

LivenessCheck = Callable[[], bool]


class HeartbeatService:
    """Periodically evaluates liveness checks and reports through a sink.

    Lifecycle:
        service = HeartbeatService(FileHealthReporter(path))
        service.add_check("loop", lambda: True)
        await service.start()
        ...
        await service.stop()
    """

    def __init__(
        self,
        reporter: HealthReporter,
        interval: float = DEFAULT_HEARTBEAT_INTERVAL,
        clear_on_shutdown: bool = True,
    ) -> None:
        self.reporter = reporter
        self.interval = interval
        self.clear_on_shutdown = clear_on_shutdown
        self._checks: dict[str, LivenessCheck] = {}
        self._executor: ThreadPoolExecutor | None = None
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._started_at: float | None = None
        self._beats = 0
        self._report_errors = 0
        self._last_beat: dict[str, Any] = {}

    # -- public API ------------------------------------------------------------

    def add_check(self, name: str, check: LivenessCheck) -> None:
        """Register a liveness check; replaces any check with the same name."""
        self._checks[name] = check

    def remove_check(self, name: str) -> None:
        self._checks.pop(name, None)

    @property
    def checks(self) -> list[str]:
        return sorted(self._checks)

    @property
    def running(self) -> bool:
        return self._running

    def evaluate(self) -> tuple[bool, str]:
        """Run every check. Returns (healthy, detail)."""
        failures: list[str] = []
        for name, check in self._checks.items():
            try:
                if not check():
                    failures.append(f"{name} failed")
            except Exception as e:
                failures.append(f"{name} error: {type(e).__name__}: {e}")

        if failures:
            return False, "; ".join(failures)
        return True, ""

    def beat(self) -> dict[str, Any]:
        """Evaluate and report once. Sink errors propagate to the caller."""
        healthy, detail = self.evaluate()
        self.reporter.report(healthy, detail)
        self._beats += 1
        self._last_beat = {
            "healthy": healthy,
            "detail": detail,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if not healthy:
            logger.warning("Heartbeat unhealthy: %s", detail)
        return dict(self._last_beat)

    async def start(self) -> None:
        if self._running:
            return
        # A record left by a previous run must not vouch for this one
        try:
            self.reporter.clear()
        except HealthRecordError:
            logger.exception("Could not clear stale health record")
        self._running = True
        self._started_at = time.time()
        self._executor = ThreadPoolExecutor(max_workers=1)
        self._task = asyncio.create_task(
            self._heartbeat_loop(self._executor), name="safety-heartbeat",
        )
        logger.info(
            "Heartbeat started (interval=%ss, checks=%s)",
            self.interval, ", ".join(self.checks) or "none",
        )

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._executor:
            # A beat already running in the pool would rewrite the record after clear()
            executor, self._executor = self._executor, None
            await asyncio.get_running_loop().run_in_executor(None, executor.shutdown, True)
        if self.clear_on_shutdown:
            try:
                self.reporter.clear()
            except HealthRecordError:
                logger.exception("Could not clear health record on shutdown")
        logger.info("Heartbeat stopped after %d beats", self._beats)

    def status(self) -> dict[str, Any]:
        uptime = time.time() - self._started_at if self._started_at else 0.0
        return {
            "running": self._running,
            "interval": self.interval,
            "checks": self.checks,
            "beats": self._beats,
            "report_errors": self._report_errors,
            "uptime_seconds": round(uptime, 1),
            "last_beat": self._last_beat,
        }

    # -- core loop -------------------------------------------------------------

    async def _heartbeat_loop(self, executor: ThreadPoolExecutor) -> None:
        """Main loop: beat → sleep → repeat."""
        loop = asyncio.get_running_loop()
        while self._running:
            try:
                await loop.run_in_executor(executor, self.beat)
            except asyncio.CancelledError:
                break
            except Exception:
                self._report_errors += 1
                logger.exception("Heartbeat report failed")

            try:
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                break

"""Supervisor view — how the container runtime sees the monitored process.

In production the runtime owns this policy (HEALTHCHECK interval, timeout,
retries). ``ProbeSupervisor`` reproduces it for local runs and tests:

    starting ──success──▶ healthy ◀──success── unhealthy
        │                    │                     ▲
        └── N failures ──────┴──── N failures ─────┘

``stopped`` is terminal and only reached through ``stop()``, never through a
probe result.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import deque
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from .probe import ProbeResult, ProbeStatus, run_probe
from .record import SENTINEL

logger = logging.getLogger(__name__)

DEFAULT_PROBE_INTERVAL = 30.0
DEFAULT_PROBE_TIMEOUT = 5.0
DEFAULT_FAILURE_THRESHOLD = 3


class SupervisorState(str, Enum):
    STARTING = "starting"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    STOPPED = "stopped"


TransitionCallback = Callable[[SupervisorState, SupervisorState, ProbeResult | None], Any]


class SupervisorView:
    """Tracks consecutive probe outcomes and derives the process state."""

    def __init__(self, failure_threshold: int = DEFAULT_FAILURE_THRESHOLD) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        self.failure_threshold = failure_threshold
        self.state = SupervisorState.STARTING
        self.consecutive_failures = 0
        self.consecutive_successes = 0
        self.total_probes = 0
        self.last_probe: ProbeResult | None = None
        self.last_transition: str | None = None
        self.transitions: deque[dict[str, Any]] = deque(maxlen=50)

    def observe(self, result: ProbeResult) -> SupervisorState:
        """Fold one probe result into the view and return the new state."""
        if self.state == SupervisorState.STOPPED:
            logger.debug("Probe ignored, supervisor is stopped")
            return self.state

        self.total_probes += 1
        self.last_probe = result

        if result.healthy:
            self.consecutive_failures = 0
            self.consecutive_successes += 1
            if self.state != SupervisorState.HEALTHY:
                self._transition(SupervisorState.HEALTHY, result)
        else:
            self.consecutive_successes = 0
            self.consecutive_failures += 1
            if (
                self.state != SupervisorState.UNHEALTHY
                and self.consecutive_failures >= self.failure_threshold
            ):
                self._transition(SupervisorState.UNHEALTHY, result)

        return self.state

    def stop(self) -> None:
        if self.state != SupervisorState.STOPPED:
            self._transition(SupervisorState.STOPPED, None)

    def _transition(self, new: SupervisorState, result: ProbeResult | None) -> None:
        old = self.state
        self.state = new
        now = datetime.now(timezone.utc).isoformat()
        self.last_transition = f"{old.value}→{new.value} @ {now}"
        self.transitions.append({
            "from": old.value,
            "to": new.value,
            "at": now,
            "message": result.message if result else "",
        })

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "consecutive_failures": self.consecutive_failures,
            "consecutive_successes": self.consecutive_successes,
            "failure_threshold": self.failure_threshold,
            "total_probes": self.total_probes,
            "last_probe": self.last_probe.to_dict() if self.last_probe else None,
            "last_transition": self.last_transition,
        }


class ProbeSupervisor:
    """Probes a health record on a fixed interval and tracks a SupervisorView.

    Lifecycle:
        supervisor = ProbeSupervisor(path, on_transition=...)
        await supervisor.start()
        ...
        await supervisor.stop()
    """

    def __init__(
        self,
        path: Path,
        interval: float = DEFAULT_PROBE_INTERVAL,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        max_age: float | None = None,
        sentinel: str = SENTINEL,
        on_transition: TransitionCallback | None = None,
        on_result: Callable[[ProbeResult], Any] | None = None,
    ) -> None:
        self.path = Path(path)
        self.interval = interval
        self.timeout = timeout
        self.max_age = max_age
        self.sentinel = sentinel
        self.on_transition = on_transition
        self.on_result = on_result
        self.view = SupervisorView(failure_threshold=failure_threshold)
        self._executor: ThreadPoolExecutor | None = None
        self._task: asyncio.Task[None] | None = None
        self._running = False

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._probe_loop(), name="safety-supervisor")
        logger.info(
            "Supervisor started (path=%s, interval=%ss, timeout=%ss, threshold=%d)",
            self.path, self.interval, self.timeout, self.view.failure_threshold,
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
        old = self.view.state
        self.view.stop()
        await self._notify(old, self.view.state, None)
        if self._executor:
            self._executor.shutdown(wait=False)
            self._executor = None
        logger.info("Supervisor stopped")

    async def probe_once(self) -> ProbeResult:
        """Run a single probe; a missed deadline counts as unhealthy."""
        loop = asyncio.get_running_loop()
        try:
            result = await asyncio.wait_for(
                loop.run_in_executor(
                    self._pool(), run_probe, self.path, self.sentinel, self.max_age,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            result = ProbeResult(
                status=ProbeStatus.UNHEALTHY,
                message=f"Probe timed out after {self.timeout}s",
                path=str(self.path),
                latency_ms=self.timeout * 1000,
            )

        old = self.view.state
        new = self.view.observe(result)

        if self.on_result:
            try:
                self.on_result(result)
            except Exception:
                logger.exception("Probe result callback error")

        if new != old:
            log = logger.warning if new == SupervisorState.UNHEALTHY else logger.info
            log("Process %s → %s: %s", old.value, new.value, result.message)
            await self._notify(old, new, result)
        else:
            logger.debug(
                "Probe %s (%d consecutive failures): %s",
                result.status.value, self.view.consecutive_failures, result.message,
            )
        return result

    def _pool(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1)
        return self._executor

    def status(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "path": str(self.path),
            "interval": self.interval,
            "timeout": self.timeout,
            "max_age": self.max_age,
            **self.view.to_dict(),
        }

    async def _notify(
        self, old: SupervisorState, new: SupervisorState, result: ProbeResult | None,
    ) -> None:
        if not self.on_transition or old == new:
            return
        try:
            ret = self.on_transition(old, new, result)
            if inspect.isawaitable(ret):
                await ret
        except Exception:
            logger.exception("Transition callback error")

    async def _probe_loop(self) -> None:
        """Sleep → probe → repeat, like the container runtime."""
        while self._running:
            try:
                await asyncio.sleep(self.interval)
                if not self._running:
                    break
                await self.probe_once()
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Supervisor probe error: %s", self.path)

"""Event-loop watchdog — a liveness check for the process's own main loop.

A small task stamps the time every ``tick`` seconds. If the loop is blocked
or dead, the stamp goes stale and ``check()`` starts failing, which turns the
health record to ``OK: false`` on the next heartbeat.
"""

from __future__ import annotations

import asyncio
import time


class LoopWatchdog:
    def __init__(self, tick: float = 1.0, max_lag: float = 15.0) -> None:
        self.tick = tick
        self.max_lag = max_lag
        self.last_tick: float | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def lag(self) -> float | None:
        if self.last_tick is None:
            return None
        return time.monotonic() - self.last_tick

    def check(self) -> bool:
        lag = self.lag
        if lag is None:
            raise RuntimeError("event loop watchdog not started")
        if lag > self.max_lag:
            raise RuntimeError(f"event loop stalled for {lag:.1f}s")
        return True

    async def start(self) -> None:
        if self._task:
            return
        self.last_tick = time.monotonic()
        self._task = asyncio.create_task(self._tick_loop(), name="safety-watchdog")

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _tick_loop(self) -> None:
        while True:
            self.last_tick = time.monotonic()
            await asyncio.sleep(self.tick)

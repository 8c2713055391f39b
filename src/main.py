"""Entry point for the safety process — `safety` console script.

With no arguments the process runs its main loop and keeps the health
record fresh until SIGINT/SIGTERM.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Sequence

import uvicorn
from rich.console import Console
from rich.panel import Panel

from src.config import settings
from src.health.probe import ProbeResult, add_probe_arguments, check
from src.health.reporter import FileHealthReporter
from src.health.supervisor import ProbeSupervisor, SupervisorState
from src.monitor.heartbeat import HeartbeatService
from src.monitor.watchdog import LoopWatchdog
from src.notifications import get_notifier

console = Console()
logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )


async def _wait_for_shutdown() -> None:
    """Block until SIGINT or SIGTERM."""
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:  # Windows
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop.set))
    await stop.wait()


async def _run_monitor() -> None:
    watchdog = LoopWatchdog(max_lag=max(settings.heartbeat_interval, 15.0))
    service = HeartbeatService(
        FileHealthReporter(settings.health_path),
        interval=settings.heartbeat_interval,
        clear_on_shutdown=settings.clear_on_shutdown,
    )
    service.add_check("event-loop", watchdog.check)

    await watchdog.start()
    await service.start()
    try:
        await _wait_for_shutdown()
    finally:
        logger.info("Shutting down")
        await service.stop()
        await watchdog.stop()


def run_monitor() -> None:
    """Run the monitored process main loop."""
    console.print(
        Panel.fit(
            f"[bold]Safety[/bold]\n"
            f"Health record: {settings.health_path}\n"
            f"Heartbeat:     every {settings.heartbeat_interval:g}s",
            title="safety",
            border_style="green",
        )
    )
    asyncio.run(_run_monitor())


def run_server() -> None:
    """Start the FastAPI status server (heartbeat runs in its lifespan)."""
    console.print(Panel("Starting Safety status server", style="bold green"))
    uvicorn.run(
        "src.api.server:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
        reload=False,
    )


async def _run_supervisor(interval: float, threshold: int, max_age: float | None) -> None:
    notifier = get_notifier()

    async def on_transition(
        old: SupervisorState, new: SupervisorState, result: ProbeResult | None,
    ) -> None:
        style = {"healthy": "green", "unhealthy": "bold red"}.get(new.value, "yellow")
        console.print(f"[{style}]{old.value} → {new.value}[/{style}]"
                      + (f"  {result.message}" if result else ""))
        await notifier.notify_health_transition(
            old.value, new.value,
            message=result.message if result else "",
            path=str(settings.health_path),
        )

    supervisor = ProbeSupervisor(
        settings.health_path,
        interval=interval,
        timeout=settings.probe_timeout,
        failure_threshold=threshold,
        max_age=max_age,
        on_transition=on_transition,
    )
    await supervisor.start()
    try:
        await _wait_for_shutdown()
    finally:
        await supervisor.stop()


def run_supervisor(interval: float, threshold: int, max_age: float | None) -> None:
    """Probe the health record the way the container runtime does."""
    console.print(
        Panel.fit(
            f"[bold]Safety supervisor[/bold]\n"
            f"Record:    {settings.health_path}\n"
            f"Interval:  {interval:g}s (timeout {settings.probe_timeout:g}s)\n"
            f"Threshold: {threshold} consecutive failures\n"
            f"Notify:    {'on' if get_notifier().is_enabled else 'off'}",
            title="safety supervise",
            border_style="blue",
        )
    )
    asyncio.run(_run_supervisor(interval, threshold, max_age))


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="safety", description="Safety process")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Run the heartbeat behind the HTTP status API")

    probe_parser = sub.add_parser("probe", help="Check the health record once (exit 0/1)")
    add_probe_arguments(probe_parser)

    sup_parser = sub.add_parser("supervise", help="Probe the health record on an interval")
    sup_parser.add_argument("--interval", type=float, default=settings.probe_interval)
    sup_parser.add_argument("--threshold", type=int, default=settings.failure_threshold)
    sup_parser.add_argument("--max-age", type=float, default=settings.probe_max_age)

    args = parser.parse_args(argv)

    if args.command == "probe":
        sys.exit(check(args.path, max_age=args.max_age))

    _configure_logging()

    if args.command is None:
        run_monitor()
    elif args.command == "serve":
        run_server()
    elif args.command == "supervise":
        run_supervisor(args.interval, args.threshold, args.max_age)


if __name__ == "__main__":
    main()

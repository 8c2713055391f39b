"""Monitored process runtime — heartbeat service and loop watchdog."""

from .heartbeat import HeartbeatService
from .watchdog import LoopWatchdog

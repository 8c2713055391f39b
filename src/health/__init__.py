"""Health subsystem — record format, atomic writer, probe, supervisor view."""

from .probe import ProbeResult, ProbeStatus, run_probe
from .record import SENTINEL, HealthRecord, HealthRecordError, is_healthy
from .reporter import FileHealthReporter, HealthReporter, MemoryHealthReporter
from .supervisor import ProbeSupervisor, SupervisorState, SupervisorView
from .writer import HeartbeatWriter

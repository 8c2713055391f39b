"""Write side of the health record — atomic replace-by-rename.

The record lives in a directory shared with the container runtime. Every
update goes to a temporary file in that same directory and is then moved
over the record with ``os.replace``, so a concurrent reader observes either
the previous record or the new one, never a truncated write.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path

from .record import HealthRecord, HealthRecordError

logger = logging.getLogger(__name__)


class HeartbeatWriter:
    """Single writer for one health record path.

    Lifecycle:
        writer = HeartbeatWriter(Path("/tmp/safety/health/status"))
        writer.clear()          # never trust a record from a previous run
        writer.write(True)
        ...
        writer.clear()
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self.last_record: HealthRecord | None = None
        self.writes = 0

    def write(self, healthy: bool, detail: str = "") -> HealthRecord:
        """Atomically replace the record. Raises HealthRecordError on I/O failure."""
        record = HealthRecord(healthy=healthy, detail=detail)
        payload = record.render().encode("utf-8")

        with self._lock:
            tmp_name: str | None = None
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent,
                )
                with os.fdopen(fd, "wb") as fh:
                    fh.write(payload)
                    fh.flush()
                    os.fsync(fh.fileno())
                # Readers run as another process; keep the record world-readable
                os.chmod(tmp_name, 0o644)
                os.replace(tmp_name, self.path)
                tmp_name = None
            except OSError as e:
                raise HealthRecordError(f"Cannot write health record {self.path}: {e}") from e
            finally:
                if tmp_name is not None:
                    try:
                        os.unlink(tmp_name)
                    except OSError:
                        logger.debug("Temp record %s already gone", tmp_name)

            self.last_record = record
            self.writes += 1

        logger.debug("Health record %s <- %r", self.path, record.render().strip())
        return record

    def clear(self) -> bool:
        """Remove the record. Returns True if a record was removed."""
        with self._lock:
            try:
                self.path.unlink()
            except FileNotFoundError:
                return False
            except OSError as e:
                raise HealthRecordError(f"Cannot remove health record {self.path}: {e}") from e
            self.last_record = None
        logger.info("Health record cleared: %s", self.path)
        return True

    def read(self) -> str | None:
        """Return the current record text, or None when there is none."""
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

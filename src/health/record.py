"""Health record format — the text the monitored process leaves for the probe.

A record is a single short line. Only the exact substring ``OK: true`` means
healthy; ``OK: false``, ``OK:true`` and anything else do not.
"""

from __future__ import annotations

from dataclasses import dataclass

SENTINEL = "OK: true"


class HealthRecordError(Exception):
    """Raised when the health record cannot be written or removed."""


@dataclass(frozen=True)
class HealthRecord:
    healthy: bool
    detail: str = ""

    def render(self) -> str:
        line = f"OK: {'true' if self.healthy else 'false'}"
        # One line, and the detail must never carry the sentinel itself
        detail = " ".join(self.detail.split())
        while SENTINEL in detail:
            detail = detail.replace(SENTINEL, "OK=true")
        if detail:
            line += f" ({detail})"
        return line + "\n"


def is_healthy(content: str, sentinel: str = SENTINEL) -> bool:
    """Return True when *content* contains the sentinel verbatim."""
    return bool(sentinel) and sentinel in content

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class SessionStats:
    """Counters exposed to the consumer in place of console diagnostics."""

    connects: int = 0
    reconnect_attempts: int = 0
    frames_received: int = 0
    frames_dropped: int = 0
    frames_sent: int = 0
    last_connected_at: datetime | None = None

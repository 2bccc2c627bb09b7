"""Health tracking for the calendar_enhancer proxy."""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from typing import Optional


@dataclass
class HealthStatus:
    """Health status information for the server."""

    status: str  # "ok" or "degraded"
    uptime_seconds: int
    pid: int
    streams_served: int
    streams_failed: int
    last_failure_reason: Optional[str]


class HealthTracker:
    """In-memory counters for proxied calendar streams."""

    # Degraded when more than this share of recent streams failed
    DEGRADED_FAILURE_RATIO = 0.5

    def __init__(self) -> None:
        self._start_time: float = time.time()
        self._streams_served = 0
        self._streams_failed = 0
        self._last_failure_reason: Optional[str] = None

    def record_stream_success(self) -> None:
        self._streams_served += 1

    def record_stream_failure(self, reason: str) -> None:
        """Record a subscription that could not be served completely.

        Args:
            reason: Short machine-friendly reason, e.g. "upstream_status"
        """
        self._streams_failed += 1
        self._last_failure_reason = reason

    def get_uptime_seconds(self) -> int:
        return int(time.time() - self._start_time)

    def get_health_status(self) -> HealthStatus:
        """Build a snapshot of the current health."""
        total = self._streams_served + self._streams_failed
        degraded = total > 0 and self._streams_failed / total > self.DEGRADED_FAILURE_RATIO

        return HealthStatus(
            status="degraded" if degraded else "ok",
            uptime_seconds=self.get_uptime_seconds(),
            pid=os.getpid(),
            streams_served=self._streams_served,
            streams_failed=self._streams_failed,
            last_failure_reason=self._last_failure_reason,
        )

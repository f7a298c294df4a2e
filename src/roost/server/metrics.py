"""Per-worker request counters.

Owned by a single worker process and touched only from its accept
loop, so no locking.
"""

import time
from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class Metrics:
    """Request and error counts plus cumulative latency (seconds)."""

    requests: int = 0
    errors: int = 0
    start_time: float = field(default_factory=time.time)
    total_response_time: float = 0.0

    @property
    def avg_response_time(self) -> float:
        if self.requests == 0:
            return 0.0
        return self.total_response_time / self.requests

    def record_request(self) -> None:
        """A complete message was received."""
        self.requests += 1

    def record_error(self) -> None:
        self.errors += 1

    def record_latency(self, seconds: float) -> None:
        self.total_response_time += seconds

    @property
    def uptime(self) -> float:
        return time.time() - self.start_time

    def snapshot(self) -> dict[str, Any]:
        return {
            "requests": self.requests,
            "errors": self.errors,
            "start_time": self.start_time,
            "uptime": self.uptime,
            "total_response_time": self.total_response_time,
            "avg_response_time": self.avg_response_time,
        }

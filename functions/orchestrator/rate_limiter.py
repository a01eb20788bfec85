"""
functions/orchestrator/rate_limiter.py

Per-client fixed-window admission control.

Each client identifier owns one bucket `(count, window_start)`. A request
opens a fresh window when there is no bucket yet or the current window has
elapsed; otherwise it is counted against the window until the limit is hit.
Rejected requests are not counted.

Fixed windows allow up to twice the nominal rate across a window boundary.
Buckets are never evicted, which is fine for a single process with moderate
traffic but grows with the number of distinct clients.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class RateBucket:
    count: int
    window_start: float


class FixedWindowRateLimiter:
    def __init__(
        self,
        *,
        max_requests: int = 20,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._buckets: Dict[str, RateBucket] = {}
        self._lock = threading.Lock()

    def admit(self, client_id: str, now: Optional[float] = None) -> bool:
        """Return True if the request from `client_id` is allowed."""
        now = self._clock() if now is None else now

        with self._lock:
            bucket = self._buckets.get(client_id)

            if bucket is None or now - bucket.window_start >= self.window_seconds:
                self._buckets[client_id] = RateBucket(count=1, window_start=now)
                return True

            if bucket.count >= self.max_requests:
                logger.info(
                    "rate_limit_rejected",
                    client_id=client_id,
                    count=bucket.count,
                    max_requests=self.max_requests,
                )
                return False

            bucket.count += 1
            return True

    def __len__(self) -> int:
        return len(self._buckets)

"""
functions/orchestrator/result_cache.py

TTL cache mapping a plate key to its interpreted DMV result.

- Entries expire `ttl_seconds` after they were stored.
- Expired entries are evicted lazily, on the next lookup of that key.
- There is no capacity bound; plate keys are a small keyspace.
- `unavailable` results are never stored, so transient DMV failures are
  not replayed to later callers.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import structlog

from schemas.output_schema import PlateCheckResult

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    result: PlateCheckResult
    expires_at: float


class PlateResultCache:
    def __init__(
        self,
        *,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")

        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, plate: str, now: Optional[float] = None) -> Optional[PlateCheckResult]:
        """Return the cached result for `plate`, or None if absent or expired."""
        now = self._clock() if now is None else now

        with self._lock:
            entry = self._entries.get(plate)
            if entry is None:
                return None

            if now > entry.expires_at:
                del self._entries[plate]
                return None

            return entry.result

    def put(self, plate: str, result: PlateCheckResult, now: Optional[float] = None) -> None:
        """Store `result` for `plate`, overwriting any previous entry."""
        if result.status == "unavailable":
            logger.warning("cache_put_skipped_unavailable", plate=plate)
            return

        now = self._clock() if now is None else now

        with self._lock:
            self._entries[plate] = CacheEntry(result=result, expires_at=now + self.ttl_seconds)

    def __contains__(self, plate: object) -> bool:
        return plate in self._entries

    def __len__(self) -> int:
        return len(self._entries)

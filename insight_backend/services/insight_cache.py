"""
TTL cache for generated insight sets.

Maps a request fingerprint to the insights produced for it, so repeated
identical requests inside the TTL cost no model call.

Rules:
- get() is a hit only while now - created_at < ttl. Expired entries read as a
  miss and are left for the sweeper (lazy expiry).
- put() is last-writer-wins: it replaces any entry for the key with a new
  timestamp. Only fully parsed, non-empty model output is ever put; fallback
  content never reaches the cache.
- sweep() physically removes expired entries. The background sweeper runs it
  every `ttl_seconds` so memory stays bounded without read traffic.

Fingerprints:
    make_cache_key(subject, dataset, model) serializes the dataset as canonical
    JSON (metric names sorted, dates ISO formatted) and hashes it with SHA-256,
    so identical inputs always produce the same key.
"""

import asyncio
import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from insight_backend.models import Insight, PerformanceDataPoint, Subject

logger = logging.getLogger(__name__)


# =============================================================================
# Fingerprint
# =============================================================================


def make_cache_key(
    subject: Subject,
    dataset: Sequence[PerformanceDataPoint],
    model: str,
) -> str:
    """
    Build the deterministic fingerprint for a request.

    Args:
        subject: Athlete or team the request is about.
        dataset: Performance data points, in the order the caller supplied them.
        model: Model identifier.

    Returns:
        Key of the form '<kind>:<id>:<model>:<sha256 of dataset>'.
    """
    payload = [
        {
            "date": point.date.isoformat(),
            "metrics": point.metrics,
            "notes": point.notes,
        }
        for point in dataset
    ]
    serialized = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    digest = hashlib.sha256(serialized.encode("utf-8")).hexdigest()
    return f"{subject.key}:{model}:{digest}"


# =============================================================================
# Cache
# =============================================================================


@dataclass(frozen=True)
class CacheEntry:
    """A cached insight set and the time it was stored."""
    key: str
    insights: Tuple[Insight, ...]
    created_at: float


class InsightCache:
    """
    In-memory TTL store keyed by request fingerprint.

    Args:
        ttl_seconds: Lifetime of an entry; also the sweep period.
        clock: Monotonic time source in seconds. Injected in tests.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._sweeper: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Optional[List[Insight]]:
        """
        Look up a fresh entry.

        Returns:
            The cached insights, or None on a miss or an expired entry.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            age = self._clock() - entry.created_at
            if age >= self.ttl_seconds:
                return None
            return list(entry.insights)

    def put(self, key: str, insights: Sequence[Insight]) -> None:
        """
        Store an insight set, replacing any existing entry for the key.

        Raises:
            ValueError: If insights is empty.
        """
        if not insights:
            raise ValueError("refusing to cache an empty insight set")
        with self._lock:
            self._entries[key] = CacheEntry(
                key=key,
                insights=tuple(insights),
                created_at=self._clock(),
            )

    def sweep(self) -> int:
        """
        Remove every entry whose age has reached the TTL.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            now = self._clock()
            expired = [
                key for key, entry in self._entries.items()
                if now - entry.created_at >= self.ttl_seconds
            ]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info(f"Insight cache sweep removed {len(expired)} expired entries")
        return len(expired)

    def clear(self) -> int:
        """Drop all entries. Returns the number removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        return count

    # -------------------------------------------------------------------------
    # Background sweeper
    # -------------------------------------------------------------------------

    def start_sweeper(self) -> asyncio.Task:
        """
        Start the periodic sweep on the running event loop.

        Idempotent while the sweeper is alive.
        """
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_forever())
        return self._sweeper

    async def stop_sweeper(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.ttl_seconds)
            self.sweep()

"""
Rate limiter guarding calls to the external language model.

Enforces two rules on every permitted request:
1. MINIMUM INTERVAL - at least `min_interval_seconds` between two permitted requests
2. ROLLING WINDOW - at most `max_requests` permitted requests in any rolling
   window of `window_seconds`

check_rate_limit() is synchronous and is meant to be called immediately before
the network call, so a denied request never touches the network. A denied
check records nothing: only a permitted request mutates the state, which is
what makes the limiter safe to retry against.

Capacity is never refunded. A request that is later superseded or fails still
used its slot.

Usage:
    limiter = RateLimiter(min_interval_seconds=5, window_seconds=60, max_requests=10)
    try:
        limiter.check_rate_limit()
    except RateLimitExceeded as exc:
        print(exc.retry_after_seconds)
"""

import math
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, List, Optional


# =============================================================================
# Exceptions
# =============================================================================


class RateLimitExceeded(Exception):
    """
    Raised when a request is denied by the rate limiter.

    Attributes:
        retry_after_seconds: Time until a retry could be permitted.
    """

    def __init__(self, retry_after_seconds: float, message: str):
        super().__init__(message)
        self.retry_after_seconds = max(0.0, retry_after_seconds)
        self.message = message


# =============================================================================
# State
# =============================================================================


@dataclass
class RateLimiterState:
    """
    Mutable limiter state.

    Attributes:
        request_timestamps: Permitted request times still inside the window,
            oldest first. Pruned lazily on each check.
        last_request_time: Time of the most recent permitted request, or None
            before the first one.
    """
    request_timestamps: Deque[float] = field(default_factory=deque)
    last_request_time: Optional[float] = None


@dataclass(frozen=True)
class RateLimiterSnapshot:
    """Read-only copy of the limiter state at a point in time."""
    request_timestamps: List[float]
    last_request_time: Optional[float]
    taken_at: float


# =============================================================================
# Rate Limiter
# =============================================================================


class RateLimiter:
    """
    Minimum-interval plus rolling-window rate limiter.

    One instance is shared by every request in the process. The lock makes the
    prune/check/record sequence atomic even when callers run on worker threads.

    Args:
        min_interval_seconds: Minimum spacing between permitted requests (Tmin).
        window_seconds: Rolling window length (W).
        max_requests: Maximum permitted requests per window (Nmax).
        clock: Monotonic time source in seconds. Injected in tests.
    """

    def __init__(
        self,
        min_interval_seconds: float,
        window_seconds: float,
        max_requests: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if min_interval_seconds < 0:
            raise ValueError("min_interval_seconds must not be negative")

        self.min_interval_seconds = min_interval_seconds
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._clock = clock
        self._state = RateLimiterState()
        self._lock = threading.Lock()

    def check_rate_limit(self) -> None:
        """
        Permit or deny one request.

        Steps:
        1. Drop window timestamps older than the window
        2. Deny if the last permitted request is closer than the minimum interval
        3. Deny if the window already holds max_requests timestamps
        4. Otherwise record now as the last request and as a window timestamp

        Raises:
            RateLimitExceeded: If the request is denied. State is left unchanged
                apart from the pruning in step 1.
        """
        with self._lock:
            now = self._clock()
            self._prune(now)

            last = self._state.last_request_time
            if last is not None and now - last < self.min_interval_seconds:
                wait = self.min_interval_seconds - (now - last)
                raise RateLimitExceeded(
                    wait,
                    f"Please wait {math.ceil(wait)} seconds between requests.",
                )

            timestamps = self._state.request_timestamps
            if len(timestamps) >= self.max_requests:
                wait = self.window_seconds - (now - timestamps[0])
                raise RateLimitExceeded(
                    wait,
                    f"Rate limit exceeded. Please wait {math.ceil(wait)} "
                    f"seconds before trying again.",
                )

            self._state.last_request_time = now
            timestamps.append(now)

    def _prune(self, now: float) -> None:
        timestamps = self._state.request_timestamps
        while timestamps and now - timestamps[0] >= self.window_seconds:
            timestamps.popleft()

    def snapshot(self) -> RateLimiterSnapshot:
        """Return a copy of the current state, pruned to the current window."""
        with self._lock:
            now = self._clock()
            self._prune(now)
            return RateLimiterSnapshot(
                request_timestamps=list(self._state.request_timestamps),
                last_request_time=self._state.last_request_time,
                taken_at=now,
            )

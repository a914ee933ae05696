"""
Pytest Configuration and Shared Fixtures for Team Insights Backend Tests.

This module provides fixtures and configuration for all backend tests, supporting:
- Async test execution with pytest-asyncio
- A controllable clock for rate limiter and cache timing
- A scripted fake chat-completion client that records every call
- Sample performance datasets for athletes and teams
- Mock asyncpg pool fixtures for testing data access without a database

Time-dependent behavior is driven by FakeClock rather than sleeping; only the
orchestrator tests that exercise debounce and timeouts use real (short) delays.
"""

import asyncio
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Union
from unittest.mock import AsyncMock, MagicMock

import pytest

from insight_backend.models import (
    MetricKind,
    MetricResponseRow,
    PerformanceDataPoint,
    Subject,
)
from insight_backend.services.cancellation import CancellationToken
from insight_backend.services.insight_cache import InsightCache
from insight_backend.services.insight_service import InsightService
from insight_backend.services.prompt_builder import ChatPrompt
from insight_backend.services.rate_limiter import RateLimiter


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """
    Configure custom pytest markers for test organization.

    Custom markers defined:
    - slow: Marks tests as slow (deselect with -m "not slow")
    - integration: Marks integration tests requiring external services
    """
    config.addinivalue_line(
        'markers',
        'slow: marks tests as slow (deselect with -m "not slow")'
    )
    config.addinivalue_line(
        'markers',
        'integration: marks tests requiring external service connectivity'
    )


# ============================================================
# TEST DOUBLES
# ============================================================

class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


Reply = Union[str, Exception, Callable[[], Any]]


class FakeLLMClient:
    """
    LLMClient double that returns scripted replies in order.

    A reply may be a string (returned), an exception (raised) or a zero-arg
    coroutine function (awaited, for replies that need to block). The last
    reply repeats once the script is exhausted.

    Attributes:
        calls: (prompt, model) pairs in call order.
        cancelled: Number of calls cancelled while in progress.
    """

    def __init__(self, *replies: Reply):
        self.replies: List[Reply] = list(replies) or [GOOD_RESPONSE]
        self.calls: List[tuple] = []
        self.cancelled = 0

    async def complete(self, prompt: ChatPrompt, model: str) -> str:
        index = min(len(self.calls), len(self.replies) - 1)
        reply = self.replies[index]
        self.calls.append((prompt, model))
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            try:
                return await reply()
            except asyncio.CancelledError:
                self.cancelled += 1
                raise
        return reply


class Gate:
    """A reply that blocks until released, then returns its text."""

    def __init__(self, text: str):
        self.text = text
        self.started = asyncio.Event()
        self._release = asyncio.Event()

    def release(self) -> None:
        self._release.set()

    async def __call__(self) -> str:
        self.started.set()
        await self._release.wait()
        return self.text


GOOD_RESPONSE = (
    "Sleep Quality|Sleep quality dipped from 4 to 3 over the week|Keep bedtimes consistent\n"
    "Energy|Energy is steady around 3.5|Maintain the current training load\n"
    "Recovery|Soreness notes appear after interval days|Add a mobility session after intervals"
)


# ============================================================
# TIME / SERVICE FIXTURES
# ============================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rate_limiter(clock: FakeClock) -> RateLimiter:
    """Limiter with a 5s minimum interval and 10 requests per 60s."""
    return RateLimiter(
        min_interval_seconds=5.0,
        window_seconds=60.0,
        max_requests=10,
        clock=clock,
    )


@pytest.fixture
def cache(clock: FakeClock) -> InsightCache:
    return InsightCache(ttl_seconds=300.0, clock=clock)


@pytest.fixture
def fake_client() -> FakeLLMClient:
    return FakeLLMClient(GOOD_RESPONSE)


@pytest.fixture
def make_service(rate_limiter: RateLimiter, cache: InsightCache) -> Callable[..., InsightService]:
    """
    Factory for services sharing the fixture limiter and cache.

    Debounce defaults to zero so tests only wait where they mean to.
    """
    def _make(client: Any, **overrides: Any) -> InsightService:
        options: Dict[str, Any] = {
            "default_model": "gpt-3.5-turbo",
            "request_timeout_seconds": 1.0,
            "debounce_seconds": 0.0,
        }
        options.update(overrides)
        return InsightService(client=client, rate_limiter=rate_limiter, cache=cache, **options)

    return _make


# ============================================================
# SAMPLE DATA FIXTURES
# ============================================================

def make_dataset(
    days: int = 8,
    start: date = date(2025, 1, 1),
    metrics: Optional[Dict[str, Callable[[int], float]]] = None,
) -> List[PerformanceDataPoint]:
    """Build a daily dataset; each metric is a function of the day index."""
    metrics = metrics or {
        "Sleep Quality": lambda i: 3.0 + i * 0.25,
        "Energy": lambda i: 3.5,
        "Soreness": lambda i: 4.0 - i * 0.25,
    }
    return [
        PerformanceDataPoint(
            date=start + timedelta(days=i),
            metrics={name: fn(i) for name, fn in metrics.items()},
            notes="Notes: legs heavy" if i % 3 == 0 else "",
        )
        for i in range(days)
    ]


@pytest.fixture
def athlete() -> Subject:
    return Subject(athleteId="athlete-1")


@pytest.fixture
def other_athlete() -> Subject:
    return Subject(athleteId="athlete-2")


@pytest.fixture
def team() -> Subject:
    return Subject(teamId="manager-9")


@pytest.fixture
def sample_dataset() -> List[PerformanceDataPoint]:
    """Eight days: Sleep Quality improving, Energy flat, Soreness declining."""
    return make_dataset()


@pytest.fixture
def token() -> CancellationToken:
    return CancellationToken("test")


def make_row(
    day: int,
    title: str,
    rating: Optional[float] = None,
    text: Optional[str] = None,
    athlete_id: str = "athlete-1",
    hour: int = 9,
) -> MetricResponseRow:
    return MetricResponseRow(
        athlete_id=athlete_id,
        created_at=datetime(2025, 1, day, hour, 0, tzinfo=timezone.utc),
        metric_title=title,
        metric_type=MetricKind.TEXT if text is not None else MetricKind.RATING,
        rating_value=rating,
        text_value=text,
    )


# ============================================================
# DATABASE MOCK FIXTURES
# ============================================================

@pytest.fixture
def mock_db_pool() -> MagicMock:
    """
    Mock asyncpg pool whose acquire() context yields `pool.connection`.

    Set `pool.connection.fetch.return_value` / `fetchrow.return_value` (or
    side_effect) per test.
    """
    connection = AsyncMock()
    connection.fetch = AsyncMock(return_value=[])
    connection.fetchrow = AsyncMock(return_value=None)

    acquire_ctx = MagicMock()
    acquire_ctx.__aenter__ = AsyncMock(return_value=connection)
    acquire_ctx.__aexit__ = AsyncMock(return_value=None)

    pool = MagicMock()
    pool.acquire = MagicMock(return_value=acquire_ctx)
    pool.connection = connection
    return pool

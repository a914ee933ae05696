"""
Insight generation orchestrator.

InsightService.generate_insights() is the single entry point UI-facing code
uses. It coordinates the cache, the rate limiter, supersession of stale
requests, the prompt/model/parse pipeline and fallback substitution, and it
never raises: every path resolves to a non-empty InsightResult.

Request lifecycle:

    Idle
      -> CacheCheck        hit: Done with cached insights (no network, no rate slot)
      -> Joining           an identical request already live: await its result
      -> Cancelling        cancel the live request for the same subject + model
      -> Debouncing        short delay; a newer request arriving now supersedes this one
      -> RateCheck         denied: FallingBack with the wait-time message
      -> Calling           model call raced against cancellation and the timeout
      -> Parsing           empty parse or any network error: FallingBack
      -> Cached            write-through to the cache
      -> Done

A superseded request is discarded at whatever stage it reached: it writes
nothing to the cache and its caller receives the result of the request that
replaced it, flagged `superseded=True`. A cache hit also supersedes the live
request for its subject, whose caller then receives the cached insights. The
rate-limit slot a superseded request consumed stays consumed.

On shutdown() every pending caller resolves to fallback content.

Each request runs in its own task owned by the service, so a caller that stops
waiting (e.g. an HTTP client disconnect) does not cancel the pipeline that a
successor may be chained to.

Concurrency model: single event loop, no parallel execution of the pipeline.
Suspension happens only in Debouncing and Calling. The subject table is only
touched between awaits, so registration and supersession are atomic.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

from insight_backend.models import (
    InsightResult,
    InsightSource,
    PerformanceDataPoint,
    RequestState,
    ServiceStatus,
    Subject,
)
from insight_backend.services.cancellation import CancellationToken, RequestSuperseded
from insight_backend.services.fallback import generate_fallback_insights
from insight_backend.services.insight_cache import InsightCache, make_cache_key
from insight_backend.services.llm_client import InsightTimeout, LLMClient
from insight_backend.services.prompt_builder import ChatPrompt, build_prompt
from insight_backend.services.rate_limiter import RateLimiter, RateLimitExceeded
from insight_backend.services.response_parser import (
    DEFAULT_CONFIDENCE,
    InsightParseError,
    attach_supporting_data,
    parse_insights,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Advisory Messages
# =============================================================================

NO_DATA_MESSAGE = "No performance data available yet. Showing general guidance."
UNAVAILABLE_MESSAGE = "AI analysis is unavailable right now. Showing insights computed from the data."
TIMEOUT_MESSAGE = "AI analysis took too long. Showing insights computed from the data."
UNREADABLE_MESSAGE = "AI analysis returned an unreadable answer. Showing insights computed from the data."
SHUTDOWN_MESSAGE = "Insight service is shutting down. Showing insights computed from the data."


# =============================================================================
# In-flight Bookkeeping
# =============================================================================


@dataclass
class _InFlight:
    """One live request: its token, its result future and the request that replaced it."""
    subject_key: str
    cache_key: str
    token: CancellationToken
    future: "asyncio.Future[InsightResult]"
    state: RequestState = RequestState.IDLE
    successor: Optional["_InFlight"] = None
    task: Optional[asyncio.Task] = field(default=None, repr=False)


class InsightService:
    """
    Orchestrates insight generation for athletes and teams.

    The rate limiter and cache are passed in so one process-wide pair can be
    shared, while tests build isolated instances.

    Args:
        client: Chat-completion client.
        rate_limiter: Shared rate limiter.
        cache: Shared insight cache.
        default_model: Model used when a request names none.
        request_timeout_seconds: Upper bound on the Calling stage.
        debounce_seconds: Delay before RateCheck absorbing bursts; 0 disables it.
        default_confidence: Confidence assigned to parsed model insights.
    """

    def __init__(
        self,
        client: LLMClient,
        rate_limiter: RateLimiter,
        cache: InsightCache,
        default_model: str = "gpt-3.5-turbo",
        request_timeout_seconds: float = 30.0,
        debounce_seconds: float = 0.1,
        default_confidence: float = DEFAULT_CONFIDENCE,
    ):
        self.client = client
        self.rate_limiter = rate_limiter
        self.cache = cache
        self.default_model = default_model
        self.request_timeout_seconds = request_timeout_seconds
        self.debounce_seconds = debounce_seconds
        self.default_confidence = default_confidence
        self._live: Dict[str, _InFlight] = {}
        self._tasks: Set[asyncio.Task] = set()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def generate_insights(
        self,
        subject: Subject,
        dataset: Sequence[PerformanceDataPoint],
        model: Optional[str] = None,
    ) -> InsightResult:
        """
        Generate insights for a subject, cancelling any older request for it.

        A request identical to the one already live for the subject joins it
        instead of issuing a second model call.

        Args:
            subject: Athlete or team the data belongs to.
            dataset: Performance data points; treated as already validated.
            model: Model identifier; defaults to the service default.

        Returns:
            InsightResult with at least one insight. Never raises, including
            when shutdown() interrupts the request.
        """
        model = model or self.default_model
        points = list(dataset)

        if not points:
            logger.info(f"No data for {subject.key}; returning fallback insights")
            return self._fallback(subject, points, model, InsightSource.FALLBACK, NO_DATA_MESSAGE)

        subject_key = f"{subject.key}|{model}"
        cache_key = make_cache_key(subject, points, model)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info(f"Insight cache hit for {subject.key} ({model})")
            result = InsightResult(insights=cached, source=InsightSource.CACHE, model=model)
            self._supersede_with(subject_key, cache_key, result)
            return result

        live = self._live.get(subject_key)
        if live is not None and live.cache_key == cache_key and not live.token.cancelled:
            logger.info(f"Joining in-flight insight request for {subject_key}")
            return await asyncio.shield(live.future)

        record = self._register(subject_key, cache_key)
        record.task = asyncio.create_task(self._drive(record, subject, points, model))
        self._tasks.add(record.task)
        record.task.add_done_callback(self._tasks.discard)
        return await asyncio.shield(record.future)

    def status(self) -> ServiceStatus:
        """Snapshot of cache size, live requests and rate limiter usage."""
        snapshot = self.rate_limiter.snapshot()
        since_last = None
        if snapshot.last_request_time is not None:
            since_last = max(0.0, snapshot.taken_at - snapshot.last_request_time)
        return ServiceStatus(
            cacheEntries=len(self.cache),
            inFlight={key: record.state for key, record in self._live.items()},
            requestsInWindow=len(snapshot.request_timestamps),
            secondsSinceLastRequest=since_last,
            minRequestIntervalSeconds=self.rate_limiter.min_interval_seconds,
            rateLimitWindowSeconds=self.rate_limiter.window_seconds,
            maxRequestsPerWindow=self.rate_limiter.max_requests,
            cacheTtlSeconds=self.cache.ttl_seconds,
        )

    async def shutdown(self) -> None:
        """Cancel every running pipeline task; pending callers receive fallback content."""
        for record in list(self._live.values()):
            record.token.cancel("shutdown")
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._live.clear()

    # -------------------------------------------------------------------------
    # Registration / supersession
    # -------------------------------------------------------------------------

    def _register(self, subject_key: str, cache_key: str) -> _InFlight:
        loop = asyncio.get_running_loop()
        record = _InFlight(
            subject_key=subject_key,
            cache_key=cache_key,
            token=CancellationToken(subject_key),
            future=loop.create_future(),
        )

        prior = self._live.get(subject_key)
        if prior is not None:
            record.state = RequestState.CANCELLING
            prior.successor = record
            prior.token.cancel("superseded")
            logger.info(f"Superseding in-flight insight request for {subject_key}")

        self._live[subject_key] = record
        return record

    def _supersede_with(self, subject_key: str, cache_key: str, result: InsightResult) -> None:
        """Cancel the live request for `subject_key` in favour of an already known result."""
        prior = self._live.pop(subject_key, None)
        if prior is None:
            return
        settled = _InFlight(
            subject_key=subject_key,
            cache_key=cache_key,
            token=CancellationToken(subject_key),
            future=asyncio.get_running_loop().create_future(),
            state=RequestState.DONE,
        )
        settled.future.set_result(result)
        prior.successor = settled
        prior.token.cancel("superseded")
        logger.info(f"Cache hit superseded in-flight insight request for {subject_key}")

    def _release(self, record: _InFlight) -> None:
        if self._live.get(record.subject_key) is record:
            del self._live[record.subject_key]

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    async def _drive(
        self,
        record: _InFlight,
        subject: Subject,
        dataset: List[PerformanceDataPoint],
        model: str,
    ) -> None:
        """Run the pipeline for one request and resolve its future."""
        try:
            try:
                result = await self._pipeline(record, subject, dataset, model)
            except RequestSuperseded:
                logger.info(f"Discarding superseded insight request for {record.subject_key}")
                result = await self._successor_result(record, subject, dataset, model)
            except Exception:
                logger.exception(f"Unexpected error generating insights for {record.subject_key}")
                result = self._fallback(
                    subject, dataset, model, InsightSource.FALLBACK, UNAVAILABLE_MESSAGE
                )
        except asyncio.CancelledError:
            if not record.future.done():
                record.future.set_result(
                    self._fallback(subject, dataset, model, InsightSource.FALLBACK, SHUTDOWN_MESSAGE)
                )
            raise
        finally:
            self._release(record)

        record.state = RequestState.DONE
        if not record.future.done():
            record.future.set_result(result)

    async def _pipeline(
        self,
        record: _InFlight,
        subject: Subject,
        dataset: List[PerformanceDataPoint],
        model: str,
    ) -> InsightResult:
        token = record.token

        if self.debounce_seconds > 0:
            record.state = RequestState.DEBOUNCING
            await self._wait_or_cancel(token, self.debounce_seconds)
        token.raise_if_cancelled()

        record.state = RequestState.RATE_CHECK
        try:
            self.rate_limiter.check_rate_limit()
        except RateLimitExceeded as exc:
            logger.warning(f"Rate limit denied insight request for {record.subject_key}: {exc.message}")
            record.state = RequestState.FALLING_BACK
            return self._fallback(
                subject,
                dataset,
                model,
                InsightSource.RATE_LIMITED,
                exc.message,
                retry_after=exc.retry_after_seconds,
            )

        record.state = RequestState.CALLING
        prompt = build_prompt(dataset, subject.kind)
        try:
            text = await self._call_model(prompt, model, token)
        except RequestSuperseded:
            raise
        except InsightTimeout as exc:
            token.raise_if_cancelled()
            logger.warning(f"Insight request for {record.subject_key} timed out: {exc}")
            record.state = RequestState.FALLING_BACK
            return self._fallback(subject, dataset, model, InsightSource.FALLBACK, TIMEOUT_MESSAGE)
        except Exception as exc:
            token.raise_if_cancelled()
            logger.warning(f"Model call failed for {record.subject_key}: {exc}")
            record.state = RequestState.FALLING_BACK
            return self._fallback(subject, dataset, model, InsightSource.FALLBACK, UNAVAILABLE_MESSAGE)

        record.state = RequestState.PARSING
        logger.debug(f"Raw model response for {record.subject_key}: {text!r}")
        try:
            insights = parse_insights(text, self.default_confidence)
            if not insights:
                raise InsightParseError("model response contained no insight lines")
        except InsightParseError as exc:
            token.raise_if_cancelled()
            logger.warning(f"Could not parse model response for {record.subject_key}: {exc}")
            record.state = RequestState.FALLING_BACK
            return self._fallback(subject, dataset, model, InsightSource.FALLBACK, UNREADABLE_MESSAGE)

        insights = attach_supporting_data(insights, dataset)

        # Last check before any shared state is written
        token.raise_if_cancelled()
        record.state = RequestState.CACHED
        self.cache.put(record.cache_key, insights)
        logger.info(f"Generated {len(insights)} insights for {record.subject_key}")
        return InsightResult(insights=insights, source=InsightSource.MODEL, model=model)

    async def _call_model(self, prompt: ChatPrompt, model: str, token: CancellationToken) -> str:
        """
        Run the model call, racing it against cancellation and the timeout.

        Raises:
            RequestSuperseded: If the token was cancelled first.
            InsightTimeout: If the call did not finish in time.
            Exception: Whatever the client raised.
        """
        call = asyncio.ensure_future(self.client.complete(prompt, model))
        cancelled = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait(
                {call, cancelled},
                timeout=self.request_timeout_seconds,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            call.cancel()
            raise
        finally:
            cancelled.cancel()

        if call in done:
            return call.result()

        call.cancel()
        token.raise_if_cancelled()
        raise InsightTimeout(
            f"model did not respond within {self.request_timeout_seconds:g} seconds"
        )

    @staticmethod
    async def _wait_or_cancel(token: CancellationToken, delay: float) -> None:
        """Sleep for `delay` seconds, returning early if the token is cancelled."""
        try:
            await asyncio.wait_for(token.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    async def _successor_result(
        self,
        record: _InFlight,
        subject: Subject,
        dataset: List[PerformanceDataPoint],
        model: str,
    ) -> InsightResult:
        """Result handed to the caller of a superseded request."""
        successor = record.successor
        if successor is None:
            return self._fallback(
                subject, dataset, model, InsightSource.FALLBACK, UNAVAILABLE_MESSAGE
            ).model_copy(update={"superseded": True})
        result = await asyncio.shield(successor.future)
        return result.model_copy(update={"superseded": True})

    def _fallback(
        self,
        subject: Subject,
        dataset: List[PerformanceDataPoint],
        model: str,
        source: InsightSource,
        message: str,
        retry_after: Optional[float] = None,
    ) -> InsightResult:
        return InsightResult(
            insights=generate_fallback_insights(dataset, subject.kind),
            source=source,
            model=model,
            message=message,
            retryAfterSeconds=retry_after,
        )

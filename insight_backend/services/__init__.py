"""
Backend Services Module

Business logic for insight generation. Everything except the orchestrator and
the subject-data fetchers is pure and stateless; the rate limiter and cache
hold process-wide state and are passed into the orchestrator explicitly.

Services:
- rate_limiter: Minimum-interval plus rolling-window admission control
- insight_cache: Fingerprint-keyed TTL cache with a periodic sweeper
- prompt_builder: Deterministic chat prompt construction
- response_parser: Tolerant line parser for model completions
- series: numpy helpers over daily metric series
- fallback: Data-grounded template insights
- llm_client: LLMClient protocol and the OpenAI adapter
- cancellation: Cooperative cancellation tokens
- insight_service: Request orchestrator (generate_insights)
- subject_data: Dataset assembly from stored metric responses

All services are designed to be consumed by the API layer (insight_backend/api/).
"""

# =============================================================================
# Rate Limiting / Caching
# =============================================================================

from insight_backend.services.rate_limiter import (
    RateLimiter,
    RateLimiterSnapshot,
    RateLimitExceeded,
)
from insight_backend.services.insight_cache import (
    CacheEntry,
    InsightCache,
    make_cache_key,
)

# =============================================================================
# Prompt / Parse / Fallback
# =============================================================================

from insight_backend.services.prompt_builder import (
    ChatPrompt,
    build_prompt,
    serialize_dataset,
)
from insight_backend.services.response_parser import (
    InsightParseError,
    attach_supporting_data,
    parse_insights,
    parse_line,
)
from insight_backend.services.fallback import generate_fallback_insights

# =============================================================================
# Model Client / Orchestration
# =============================================================================

from insight_backend.services.llm_client import (
    InsightTimeout,
    LLMClient,
    LLMClientError,
    OpenAIChatClient,
)
from insight_backend.services.cancellation import CancellationToken, RequestSuperseded
from insight_backend.services.insight_service import InsightService

# =============================================================================
# Subject Data
# =============================================================================

from insight_backend.services.subject_data import (
    SubjectNotFound,
    build_dataset,
    fetch_athlete_dataset,
    fetch_team_dataset,
    roll_up_team,
)

__all__ = [
    # ----- Rate Limiting / Caching -----
    'RateLimiter',
    'RateLimiterSnapshot',
    'RateLimitExceeded',
    'CacheEntry',
    'InsightCache',
    'make_cache_key',
    # ----- Prompt / Parse / Fallback -----
    'ChatPrompt',
    'build_prompt',
    'serialize_dataset',
    'InsightParseError',
    'attach_supporting_data',
    'parse_insights',
    'parse_line',
    'generate_fallback_insights',
    # ----- Model Client / Orchestration -----
    'InsightTimeout',
    'LLMClient',
    'LLMClientError',
    'OpenAIChatClient',
    'CancellationToken',
    'RequestSuperseded',
    'InsightService',
    # ----- Subject Data -----
    'SubjectNotFound',
    'build_dataset',
    'fetch_athlete_dataset',
    'fetch_team_dataset',
    'roll_up_team',
]

"""
Enumeration definitions for the Team Insights backend.

All enums inherit from both `str` and `Enum` to ensure JSON serialization
compatibility with Pydantic models, enabling automatic serialization in API
responses.
"""

from enum import Enum


class SubjectKind(str, Enum):
    """
    Kind of entity an insight request is about.

    - athlete: a single athlete's daily readings
    - team: a synthetic roll-up averaging the team's athletes per day
    """
    ATHLETE = "athlete"
    TEAM = "team"


class MetricKind(str, Enum):
    """
    Type of a stored custom metric.

    Rating metrics carry a numeric value and become dataset metrics; text
    metrics carry free text and are folded into the day's notes.
    """
    RATING = "rating"
    TEXT = "text"


class InsightSource(str, Enum):
    """
    Where the insights in a result came from.

    - model: freshly generated by the language model and parsed
    - cache: served from the insight cache without a network call
    - fallback: deterministic local content after a network or parse failure
    - rate_limited: deterministic local content because the rate limiter
      denied the call; the result carries a wait-time message
    """
    MODEL = "model"
    CACHE = "cache"
    FALLBACK = "fallback"
    RATE_LIMITED = "rate_limited"


class RequestState(str, Enum):
    """
    States of one insight generation request.

    Order of traversal:
        idle -> cache_check -> cancelling -> debouncing -> rate_check
        -> calling -> parsing -> (cached | falling_back) -> done

    A cache hit goes straight from cache_check to done. Any failure after
    cache_check routes through falling_back.
    """
    IDLE = "idle"
    CACHE_CHECK = "cache_check"
    CANCELLING = "cancelling"
    DEBOUNCING = "debouncing"
    RATE_CHECK = "rate_check"
    CALLING = "calling"
    PARSING = "parsing"
    CACHED = "cached"
    FALLING_BACK = "falling_back"
    DONE = "done"


class TrendDirection(str, Enum):
    """Direction of a metric over the dataset, comparing first and second half means."""
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"

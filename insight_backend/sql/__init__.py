"""
SQL Query Module for the Team Insights backend.

Re-exports the parameterized queries used to assemble insight datasets so
callers can import from insight_backend.sql directly.

Example usage:
    from insight_backend.sql import get_metric_responses_query

    rows = await execute_query(get_metric_responses_query(), [athlete_id])
"""

from insight_backend.sql.subject_queries import (
    ACTIVE_CONNECTION_STATUS,
    DEFAULT_LOOKBACK_DAYS,
    get_athlete_profile_query,
    get_metric_responses_query,
    get_team_members_query,
)

__all__ = [
    "ACTIVE_CONNECTION_STATUS",
    "DEFAULT_LOOKBACK_DAYS",
    "get_athlete_profile_query",
    "get_metric_responses_query",
    "get_team_members_query",
]

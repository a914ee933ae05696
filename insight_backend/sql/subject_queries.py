"""
Subject Queries Module for the Team Insights backend.

Provides parameterized PostgreSQL queries for assembling insight datasets:
- Athlete lookup in profiles
- Rating/text metric responses for one or more athletes
- Active team membership from athlete_manager_connections

Values are always bound as asyncpg positional parameters ($1, $2, ...); the
functions only return query text, so callers pass arguments to
core.database.execute_query().
"""

from typing import Optional


# =============================================================================
# CONSTANTS
# =============================================================================

# Default lookback for insight datasets, in days
DEFAULT_LOOKBACK_DAYS: int = 30

# Connection status that counts an athlete as a team member
ACTIVE_CONNECTION_STATUS: str = "active"


# =============================================================================
# PROFILE QUERIES
# =============================================================================

def get_athlete_profile_query() -> str:
    """
    Query returning the profile row for one athlete.

    Parameters:
        $1: athlete id

    Returns:
        Query yielding (id, full_name, manager_id) or no row.
    """
    return """
    SELECT id::text AS id, full_name, manager_id::text AS manager_id
    FROM profiles
    WHERE id::text = $1
      AND role = 'athlete'
    """


def get_team_members_query() -> str:
    """
    Query returning the active athletes connected to a manager.

    The manager id doubles as the team id.

    Parameters:
        $1: manager (team) id
        $2: connection status, normally ACTIVE_CONNECTION_STATUS
    """
    return """
    SELECT DISTINCT c.athlete_id::text AS athlete_id
    FROM athlete_manager_connections c
    WHERE c.manager_id::text = $1
      AND c.status = $2
    ORDER BY athlete_id
    """


# =============================================================================
# METRIC RESPONSE QUERIES
# =============================================================================

def get_metric_responses_query(lookback_days: Optional[int] = DEFAULT_LOOKBACK_DAYS) -> str:
    """
    Query returning metric responses joined with their metric definitions.

    Parameters:
        $1: array of athlete ids (text[])

    Args:
        lookback_days: Restrict to responses from the last N days; None
            returns the full history.

    Returns:
        Query yielding rows shaped like models.MetricResponseRow, ordered by
        created_at ascending.
    """
    window = ""
    if lookback_days is not None:
        window = f"AND r.created_at >= NOW() - INTERVAL '{int(lookback_days)} days'"

    return f"""
    SELECT
        r.athlete_id::text AS athlete_id,
        r.created_at,
        m.title AS metric_title,
        m.type AS metric_type,
        r.rating_value,
        r.text_value
    FROM metric_responses r
    JOIN custom_metrics m ON m.id = r.metric_id
    WHERE r.athlete_id::text = ANY($1::text[])
      {window}
    ORDER BY r.created_at ASC, m.title ASC
    """

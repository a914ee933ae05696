"""
FastAPI router module for insight generation endpoints.

This module implements a thin HTTP surface over InsightService:
- Generate insights for a caller-supplied dataset
- Generate insights for a stored athlete or team dataset
- Service status (cache size, live requests, rate limiter usage)
- Operator cache invalidation

Degraded outcomes (rate limited, model unavailable, unreadable answer) are
still 200 responses: the body's `source` and `message` describe them. Only
request validation (422), unknown subjects (404) and database failures (503)
are HTTP errors.
"""

import logging
from typing import Dict, List, Optional

import asyncpg
from fastapi import APIRouter, HTTPException, Query

from insight_backend.core.database import DatabaseNotConfiguredError
from insight_backend.core.dependencies import InsightServiceDep, SettingsDep
from insight_backend.models import (
    InsightRequest,
    InsightResult,
    PerformanceDataPoint,
    ServiceStatus,
    Subject,
)
from insight_backend.services.subject_data import (
    SubjectNotFound,
    fetch_athlete_dataset,
    fetch_team_dataset,
)

# Configure logging
logger = logging.getLogger(__name__)

# Create router with prefix and tags for OpenAPI documentation
router = APIRouter(prefix="/insights", tags=["insights"])


# =============================================================================
# Helper Functions
# =============================================================================


async def _load_dataset(subject: Subject, lookback_days: int) -> List[PerformanceDataPoint]:
    """
    Fetch the stored dataset for a subject, mapping failures to HTTP errors.

    Raises:
        HTTPException 404: If the athlete or team does not exist
        HTTPException 503: If the database is unreachable or not configured
    """
    try:
        if subject.athleteId:
            return await fetch_athlete_dataset(subject.athleteId, lookback_days=lookback_days)
        return await fetch_team_dataset(subject.subject_id, lookback_days=lookback_days)
    except SubjectNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (DatabaseNotConfiguredError, asyncpg.PostgresError, OSError) as e:
        logger.error(f"Database error loading data for {subject.key}: {e}", exc_info=True)
        raise HTTPException(
            status_code=503,
            detail="Performance data is temporarily unavailable",
        )


# =============================================================================
# Generation Endpoints
# =============================================================================


@router.post("/generate", response_model=InsightResult)
async def generate_insights_endpoint(
    request: InsightRequest,
    service: InsightServiceDep,
) -> InsightResult:
    """
    Generate insights for the dataset in the request body.

    A newer request for the same subject and model supersedes this one; the
    response then carries the newer request's insights with `superseded`
    set.

    Args:
        request: Subject, dataset and optional model identifier

    Returns:
        InsightResult with at least one insight
    """
    return await service.generate_insights(request.subject, request.dataset, request.model)


@router.post("/athletes/{athlete_id}", response_model=InsightResult)
async def generate_athlete_insights(
    athlete_id: str,
    service: InsightServiceDep,
    settings: SettingsDep,
    model: Optional[str] = Query(None, description="Model identifier; defaults to the configured model"),
) -> InsightResult:
    """
    Generate insights from an athlete's stored metric responses.

    Raises:
        HTTPException 404: If the athlete does not exist
        HTTPException 503: If the database is unavailable
    """
    subject = Subject(athleteId=athlete_id)
    dataset = await _load_dataset(subject, settings.insights_lookback_days)
    return await service.generate_insights(subject, dataset, model)


@router.post("/teams/{team_id}", response_model=InsightResult)
async def generate_team_insights(
    team_id: str,
    service: InsightServiceDep,
    settings: SettingsDep,
    model: Optional[str] = Query(None, description="Model identifier; defaults to the configured model"),
) -> InsightResult:
    """
    Generate insights from the roll-up of a team's active athletes.

    Raises:
        HTTPException 404: If the team has no active athletes
        HTTPException 503: If the database is unavailable
    """
    subject = Subject(teamId=team_id)
    dataset = await _load_dataset(subject, settings.insights_lookback_days)
    return await service.generate_insights(subject, dataset, model)


# =============================================================================
# Operations Endpoints
# =============================================================================


@router.get("/status", response_model=ServiceStatus)
async def get_status(service: InsightServiceDep) -> ServiceStatus:
    """Report cache size, live requests and rate limiter usage."""
    return service.status()


@router.delete("/cache")
async def clear_cache(service: InsightServiceDep) -> Dict[str, int]:
    """Drop every cached insight list."""
    cleared = service.cache.clear()
    logger.info(f"Cleared {cleared} cached insight entries")
    return {"cleared": cleared}

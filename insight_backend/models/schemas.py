"""
Pydantic request/response models for the Team Insights backend.

This module provides type-safe data validation and serialization for the
insight generation contracts:
- Performance datasets handed to the generator (PerformanceDataPoint)
- Structured coaching observations returned to callers (Insight)
- Request subjects (single athlete or team roll-up)
- API request/response envelopes (InsightRequest, InsightResult, ServiceStatus)
- Raw metric response rows read from the database (MetricResponseRow)

Field names are camelCase to match the dashboard front-end contracts.
All models use Pydantic v2 syntax.
"""

from datetime import datetime, date as DateType
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from insight_backend.models.enums import (
    InsightSource,
    MetricKind,
    RequestState,
    SubjectKind,
)


# =============================================================================
# Performance Data
# =============================================================================


class PerformanceDataPoint(BaseModel):
    """
    One day's aggregated readings for one subject.

    The metrics mapping holds metric name -> numeric value. Its insertion
    order is the order used in prompts; cache fingerprints sort the names,
    so two mappings with the same items always share a fingerprint.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "date": "2025-01-27",
                "metrics": {"Sleep Quality": 4, "Energy": 3.5},
                "notes": "Soreness: legs heavy after intervals",
            }
        }
    )

    date: DateType = Field(..., description="Calendar date of the readings")
    metrics: Dict[str, float] = Field(
        default_factory=dict,
        description="Metric name to numeric value"
    )
    notes: str = Field(default="", description="Free-text notes for the day")


# =============================================================================
# Insights
# =============================================================================


class SupportingData(BaseModel):
    """Evidence attached to an insight: the metrics it references and their series."""
    model_config = ConfigDict(frozen=True)

    metrics: List[str] = Field(default_factory=list)
    dateRange: str = Field(
        ...,
        description="Inclusive date range label, e.g. '2025-01-01 to 2025-01-14'"
    )
    trendValues: List[float] = Field(
        default_factory=list,
        description="Chronological series of the first referenced metric"
    )


class Insight(BaseModel):
    """
    A structured coaching observation derived from performance data.

    Immutable: the pipeline builds new instances (model_copy) rather than
    modifying an insight after construction.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "area": "Recovery",
                "trend": "Sleep quality dropped from 4.2 to 3.1 over 10 days",
                "recommendation": "Reduce session volume by 20% this week",
                "confidence": 0.7,
            }
        }
    )

    area: str = Field(..., description="Short label for the insight area")
    trend: str = Field(..., description="Descriptive sentence about the trend")
    recommendation: str = Field(..., description="Actionable sentence")
    confidence: float = Field(..., ge=0.0, le=1.0)
    supportingData: Optional[SupportingData] = None


# =============================================================================
# Subjects and Requests
# =============================================================================


class Subject(BaseModel):
    """
    The entity an insight request is about.

    At least one of athleteId / teamId is required. When both are given the
    athlete wins, matching the dashboard which passes `athleteId || teamId`.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    athleteId: Optional[str] = None
    teamId: Optional[str] = None

    @model_validator(mode="after")
    def _require_identifier(self) -> "Subject":
        if not self.athleteId and not self.teamId:
            raise ValueError("subject requires athleteId or teamId")
        return self

    @property
    def kind(self) -> SubjectKind:
        return SubjectKind.ATHLETE if self.athleteId else SubjectKind.TEAM

    @property
    def subject_id(self) -> str:
        return self.athleteId or self.teamId or ""

    @property
    def key(self) -> str:
        """Stable identifier such as 'athlete:42' used for cache keys and in-flight tracking."""
        return f"{self.kind.value}:{self.subject_id}"


class InsightRequest(BaseModel):
    """Request body for generating insights over a caller-supplied dataset."""

    subject: Subject
    dataset: List[PerformanceDataPoint] = Field(default_factory=list)
    model: Optional[str] = Field(
        default=None,
        description="Model identifier; the configured default is used when omitted"
    )


class InsightResult(BaseModel):
    """
    Outcome of one insight generation request.

    `insights` is never empty: failures resolve to fallback content. `source`
    and `message` tell the caller what kind of content it received.
    """

    insights: List[Insight] = Field(..., min_length=1)
    source: InsightSource
    model: str
    message: Optional[str] = None
    retryAfterSeconds: Optional[float] = None
    superseded: bool = Field(
        default=False,
        description="True when a newer request for the same subject replaced this one"
    )


class ServiceStatus(BaseModel):
    """Operational snapshot of the insight service."""

    cacheEntries: int
    inFlight: Dict[str, RequestState] = Field(
        default_factory=dict,
        description="Live request state per subject and model"
    )
    requestsInWindow: int
    secondsSinceLastRequest: Optional[float] = None
    minRequestIntervalSeconds: float
    rateLimitWindowSeconds: float
    maxRequestsPerWindow: int
    cacheTtlSeconds: float


# =============================================================================
# Database Rows
# =============================================================================


class MetricResponseRow(BaseModel):
    """
    One stored answer to a custom metric, joined with the metric definition.

    Mirrors metric_responses JOIN custom_metrics.
    """

    athlete_id: str
    created_at: datetime
    metric_title: str
    metric_type: MetricKind
    rating_value: Optional[float] = None
    text_value: Optional[str] = None

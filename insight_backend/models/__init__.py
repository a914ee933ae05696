"""
Package initialization file for backend models.

This module exports all Pydantic schemas and enumerations from schemas.py and
enums.py, making them importable from insight_backend.models directly.

Usage:
    from insight_backend.models import (
        Insight,
        PerformanceDataPoint,
        Subject,
        InsightSource,
    )
"""

# =============================================================================
# Enums
# =============================================================================

from insight_backend.models.enums import (
    SubjectKind,
    MetricKind,
    InsightSource,
    RequestState,
    TrendDirection,
)


# =============================================================================
# Schemas
# =============================================================================

from insight_backend.models.schemas import (
    # Performance data
    PerformanceDataPoint,
    # Insights
    SupportingData,
    Insight,
    # Requests / responses
    Subject,
    InsightRequest,
    InsightResult,
    ServiceStatus,
    # Database rows
    MetricResponseRow,
)


__all__ = [
    # Enums
    'SubjectKind',
    'MetricKind',
    'InsightSource',
    'RequestState',
    'TrendDirection',
    # Schemas
    'PerformanceDataPoint',
    'SupportingData',
    'Insight',
    'Subject',
    'InsightRequest',
    'InsightResult',
    'ServiceStatus',
    'MetricResponseRow',
]

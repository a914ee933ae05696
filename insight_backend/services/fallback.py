"""
Deterministic fallback insights.

Used whenever the model call cannot be completed or parsed: rate-limit
denials, timeouts, transport errors, empty or unusable output. The generator
only looks at what is available locally (metric names, dates, values) and
fills fixed templates for three slots:

1. Performance Overview - which metrics exist and the period they cover
2. Recovery & Readiness - how regularly readings were reported
3. Training Response - per-metric direction, first half vs second half

generate_fallback_insights() is pure and total: for any dataset, including an
empty one or one without metrics, it returns the same non-empty list every time
and never raises.
"""

from typing import Dict, List, Sequence

from insight_backend.models import (
    Insight,
    PerformanceDataPoint,
    SubjectKind,
    SupportingData,
    TrendDirection,
)
from insight_backend.services.series import (
    MIN_POINTS_FOR_TREND,
    date_range_label,
    metric_names,
    metric_series,
    span_days,
    trend_direction,
)

# Reporting below this share of days is flagged as inconsistent
CONSISTENCY_THRESHOLD = 70

OVERVIEW_CONFIDENCE = 0.6
RECOVERY_CONFIDENCE = 0.5
TRAINING_CONFIDENCE = 0.5


def _join(names: Sequence[str]) -> str:
    return ", ".join(names)


def _consistency_score(dataset: Sequence[PerformanceDataPoint]) -> int:
    """Percent of days in the covered span with at least one reading, capped at 100."""
    days = span_days(dataset)
    if days == 0:
        return 0
    reported = len({point.date for point in dataset if point.metrics or point.notes.strip()})
    return min(100, round(reported / days * 100))


def _overview(dataset: Sequence[PerformanceDataPoint], names: List[str], who: str) -> Insight:
    if not names:
        return Insight(
            area="Performance Overview",
            trend=f"No metric readings are available yet for {who}.",
            recommendation="Start logging daily ratings so trends can be analyzed.",
            confidence=OVERVIEW_CONFIDENCE,
        )
    days = span_days(dataset)
    label = date_range_label(dataset)
    return Insight(
        area="Performance Overview",
        trend=(
            f"{len(names)} metrics tracked for {who} over {days} days "
            f"({label}): {_join(names)}."
        ),
        recommendation="Review these metrics weekly and compare each week against the previous one.",
        confidence=OVERVIEW_CONFIDENCE,
        supportingData=SupportingData(
            metrics=names,
            dateRange=label,
            trendValues=metric_series(dataset, names[0]),
        ),
    )


def _recovery(dataset: Sequence[PerformanceDataPoint], who: str) -> Insight:
    days = span_days(dataset)
    score = _consistency_score(dataset)
    if days == 0:
        trend = f"No daily check-ins have been recorded for {who}."
    else:
        trend = f"Readings were reported on {score}% of the {days} days covered."
    if score < CONSISTENCY_THRESHOLD:
        recommendation = (
            "Encourage daily check-ins; gaps in reporting make recovery and "
            "readiness trends hard to read."
        )
    else:
        recommendation = (
            "Reporting is consistent; use the daily readings to plan rest days "
            "and lighter sessions."
        )
    return Insight(
        area="Recovery & Readiness",
        trend=trend,
        recommendation=recommendation,
        confidence=RECOVERY_CONFIDENCE,
    )


def _training_response(
    dataset: Sequence[PerformanceDataPoint],
    names: List[str],
) -> Insight:
    directions: Dict[TrendDirection, List[str]] = {
        TrendDirection.IMPROVING: [],
        TrendDirection.DECLINING: [],
        TrendDirection.STABLE: [],
    }
    for name in names:
        series = metric_series(dataset, name)
        if len(series) >= MIN_POINTS_FOR_TREND:
            directions[trend_direction(series)].append(name)

    moving = directions[TrendDirection.IMPROVING] + directions[TrendDirection.DECLINING]
    judged = moving + directions[TrendDirection.STABLE]
    if not judged:
        return Insight(
            area="Training Response",
            trend=(
                f"Not enough readings yet to judge training response "
                f"(at least {MIN_POINTS_FOR_TREND} per metric are needed)."
            ),
            recommendation="Keep the current plan and revisit once more data is logged.",
            confidence=TRAINING_CONFIDENCE,
        )

    parts = []
    for direction in (TrendDirection.IMPROVING, TrendDirection.DECLINING, TrendDirection.STABLE):
        if directions[direction]:
            parts.append(f"{direction.value.capitalize()}: {_join(directions[direction])}")
    trend = ". ".join(parts) + "."

    declining = directions[TrendDirection.DECLINING]
    if declining:
        recommendation = (
            f"Discuss {_join(declining)} at the next check-in and consider "
            f"easing training load until the trend stabilizes."
        )
    else:
        recommendation = "Current training appears well tolerated; progress load gradually."

    return Insight(
        area="Training Response",
        trend=trend,
        recommendation=recommendation,
        confidence=TRAINING_CONFIDENCE,
        supportingData=SupportingData(
            metrics=judged,
            dateRange=date_range_label(dataset),
            trendValues=metric_series(dataset, judged[0]),
        ),
    )


def generate_fallback_insights(
    dataset: Sequence[PerformanceDataPoint],
    subject_kind: SubjectKind = SubjectKind.ATHLETE,
) -> List[Insight]:
    """
    Derive three template insights from locally available data.

    Args:
        dataset: Performance data points; may be empty.
        subject_kind: Athlete or team; only changes wording.

    Returns:
        Exactly three insights: overview, recovery and training response.
    """
    who = "the team" if subject_kind == SubjectKind.TEAM else "the athlete"
    names = metric_names(dataset)
    return [
        _overview(dataset, names, who),
        _recovery(dataset, who),
        _training_response(dataset, names),
    ]

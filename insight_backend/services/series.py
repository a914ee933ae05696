"""
Time-series helpers over performance datasets.

Small pure functions shared by the response parser (supporting data) and the
fallback generator. All of them order data points chronologically and never
raise on an empty dataset.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np

from insight_backend.models import PerformanceDataPoint, TrendDirection


# Half-over-half mean change needed before a metric counts as moving
TREND_DEAD_BAND = 0.3

# Minimum readings before a direction is reported
MIN_POINTS_FOR_TREND = 4


def chronological(dataset: Sequence[PerformanceDataPoint]) -> List[PerformanceDataPoint]:
    """Return the data points sorted by date (stable for equal dates)."""
    return sorted(dataset, key=lambda point: point.date)


def metric_names(dataset: Sequence[PerformanceDataPoint]) -> List[str]:
    """Distinct metric names in order of first appearance, oldest day first."""
    names: List[str] = []
    seen = set()
    for point in chronological(dataset):
        for name in point.metrics:
            if name not in seen:
                seen.add(name)
                names.append(name)
    return names


def metric_series(dataset: Sequence[PerformanceDataPoint], name: str) -> List[float]:
    """Chronological finite values of one metric; days without it are skipped."""
    values = [
        float(point.metrics[name])
        for point in chronological(dataset)
        if name in point.metrics
    ]
    return [value for value in values if np.isfinite(value)]


def date_bounds(
    dataset: Sequence[PerformanceDataPoint],
) -> Optional[Tuple[str, str]]:
    """Inclusive (start, end) ISO dates, or None for an empty dataset."""
    if not dataset:
        return None
    dates = [point.date for point in dataset]
    return min(dates).isoformat(), max(dates).isoformat()


def date_range_label(dataset: Sequence[PerformanceDataPoint]) -> str:
    """Label such as '2025-01-01 to 2025-01-14'; 'no data' when empty."""
    bounds = date_bounds(dataset)
    if bounds is None:
        return "no data"
    start, end = bounds
    return start if start == end else f"{start} to {end}"


def span_days(dataset: Sequence[PerformanceDataPoint]) -> int:
    """Number of calendar days covered, inclusive. Zero when empty."""
    if not dataset:
        return 0
    dates = [point.date for point in dataset]
    return (max(dates) - min(dates)).days + 1


def trend_direction(values: Sequence[float]) -> TrendDirection:
    """
    Compare the mean of the second half of a series with the first half.

    Series shorter than MIN_POINTS_FOR_TREND are reported as stable.
    """
    if len(values) < MIN_POINTS_FOR_TREND:
        return TrendDirection.STABLE
    arr = np.asarray(values, dtype=float)
    mid = len(arr) // 2
    first_avg = float(np.mean(arr[:mid]))
    second_avg = float(np.mean(arr[mid:]))
    if second_avg > first_avg + TREND_DEAD_BAND:
        return TrendDirection.IMPROVING
    if second_avg < first_avg - TREND_DEAD_BAND:
        return TrendDirection.DECLINING
    return TrendDirection.STABLE

"""
Parsing of free-text model output into Insight records.

The model is asked for `area|trend|recommendation` lines but nothing
guarantees it complies, so parsing is tolerant:
- the text is split into lines and blank lines are discarded
- each remaining line yields exactly one Insight
- fields are split on the first two `|` delimiters; any further `|` stays in
  the recommendation
- missing fields default to empty strings instead of raising
- a leading list marker ("- ", "* ", "1. ", "2) ") is dropped

An empty result is the caller's signal of a parse failure.
"""

import re
from typing import List, Optional, Sequence

from insight_backend.models import Insight, PerformanceDataPoint, SupportingData
from insight_backend.services.prompt_builder import FIELD_DELIMITER
from insight_backend.services.series import date_range_label, metric_names, metric_series

DEFAULT_CONFIDENCE = 0.7

_LIST_MARKER = re.compile(r"^(?:[-*•]|\d+[.)])\s+")


class InsightParseError(Exception):
    """Raised when model output contains no usable insight lines."""


def parse_line(line: str, confidence: float = DEFAULT_CONFIDENCE) -> Optional[Insight]:
    """
    Parse one line of model output.

    Returns:
        An Insight, or None for a blank line.
    """
    stripped = _LIST_MARKER.sub("", line.strip()).strip()
    if not stripped:
        return None
    parts = [part.strip() for part in stripped.split(FIELD_DELIMITER, 2)]
    parts += [""] * (3 - len(parts))
    area, trend, recommendation = parts
    return Insight(
        area=area,
        trend=trend,
        recommendation=recommendation,
        confidence=confidence,
    )


def parse_insights(text: Optional[str], confidence: float = DEFAULT_CONFIDENCE) -> List[Insight]:
    """
    Parse a whole model response.

    Args:
        text: Raw completion text; None is treated as empty.
        confidence: Confidence assigned to every parsed record.

    Returns:
        One Insight per non-blank line, in response order. Never raises on
        malformed lines.
    """
    if not text:
        return []
    insights: List[Insight] = []
    for line in text.splitlines():
        insight = parse_line(line, confidence)
        if insight is not None:
            insights.append(insight)
    return insights


def attach_supporting_data(
    insights: Sequence[Insight],
    dataset: Sequence[PerformanceDataPoint],
) -> List[Insight]:
    """
    Return copies of the insights with supportingData filled in where possible.

    An insight gets supporting data when its text mentions one or more metric
    names from the dataset (case-insensitive). The series is that of the first
    referenced metric. Insights that mention no metric are returned unchanged.
    """
    names = metric_names(dataset)
    if not names:
        return list(insights)
    label = date_range_label(dataset)

    enriched: List[Insight] = []
    for insight in insights:
        haystack = " ".join((insight.area, insight.trend, insight.recommendation)).lower()
        referenced = [name for name in names if name.lower() in haystack]
        if not referenced:
            enriched.append(insight)
            continue
        support = SupportingData(
            metrics=referenced,
            dateRange=label,
            trendValues=metric_series(dataset, referenced[0]),
        )
        enriched.append(insight.model_copy(update={"supportingData": support}))
    return enriched

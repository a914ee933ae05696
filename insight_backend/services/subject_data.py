"""
Subject data collaborator: builds insight datasets from stored metric responses.

Athletes answer custom metrics daily. Rating answers become numeric metrics of
the day (a later answer for the same metric and day replaces the earlier one);
text answers are appended to the day's notes as "<metric title>: <text>", one
per line. Days are keyed by the UTC calendar date of created_at.

A team dataset is the per-day average of every metric across the team's active
athletes, with their notes concatenated. The manager id is the team id.

The pure builders (build_dataset, roll_up_team) carry the logic and are tested
directly; the async fetchers only run the queries.
"""

import logging
from collections import defaultdict
from datetime import date, timezone
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from insight_backend.core.database import execute_query, execute_query_one
from insight_backend.models import MetricKind, MetricResponseRow, PerformanceDataPoint
from insight_backend.sql import (
    ACTIVE_CONNECTION_STATUS,
    DEFAULT_LOOKBACK_DAYS,
    get_athlete_profile_query,
    get_metric_responses_query,
    get_team_members_query,
)

logger = logging.getLogger(__name__)


class SubjectNotFound(LookupError):
    """The requested athlete or team does not exist."""


def _row_date(row: MetricResponseRow) -> date:
    created = row.created_at
    if created.tzinfo is not None:
        created = created.astimezone(timezone.utc)
    return created.date()


def build_dataset(rows: Iterable[MetricResponseRow]) -> List[PerformanceDataPoint]:
    """
    Group one athlete's metric responses into daily data points.

    Args:
        rows: Responses in created_at order.

    Returns:
        Data points in ascending date order; days with neither a rating nor a
        text answer are omitted.
    """
    metrics: Dict[date, Dict[str, float]] = defaultdict(dict)
    notes: Dict[date, List[str]] = defaultdict(list)

    for row in rows:
        day = _row_date(row)
        if row.metric_type == MetricKind.RATING and row.rating_value is not None:
            metrics[day][row.metric_title] = float(row.rating_value)
        elif row.metric_type == MetricKind.TEXT and row.text_value:
            notes[day].append(f"{row.metric_title}: {row.text_value}")

    days = sorted(set(metrics) | set(notes))
    return [
        PerformanceDataPoint(date=day, metrics=metrics.get(day, {}), notes="\n".join(notes.get(day, [])))
        for day in days
    ]


def roll_up_team(datasets: Sequence[Sequence[PerformanceDataPoint]]) -> List[PerformanceDataPoint]:
    """
    Combine athlete datasets into one team dataset.

    Each metric of a day is the mean over the athletes that reported it that
    day. Metric order follows first appearance across the inputs.
    """
    values: Dict[date, Dict[str, List[float]]] = defaultdict(dict)
    notes: Dict[date, List[str]] = defaultdict(list)

    for dataset in datasets:
        for point in dataset:
            day_values = values[point.date]
            for name, value in point.metrics.items():
                day_values.setdefault(name, []).append(value)
            if point.notes:
                notes[point.date].append(point.notes)

    rolled = []
    for day in sorted(set(values) | set(notes)):
        averaged = {
            name: round(float(np.mean(series)), 2)
            for name, series in values.get(day, {}).items()
        }
        rolled.append(PerformanceDataPoint(date=day, metrics=averaged, notes="\n".join(notes.get(day, []))))
    return rolled


def _rows_from_records(records) -> List[MetricResponseRow]:
    return [MetricResponseRow(**dict(record)) for record in records]


async def fetch_athlete_dataset(
    athlete_id: str,
    lookback_days: Optional[int] = DEFAULT_LOOKBACK_DAYS,
) -> List[PerformanceDataPoint]:
    """
    Load an athlete's dataset from the database.

    Raises:
        SubjectNotFound: If no athlete profile has this id.
    """
    profile = await execute_query_one(get_athlete_profile_query(), athlete_id)
    if profile is None:
        raise SubjectNotFound(f"Athlete {athlete_id} not found")

    records = await execute_query(get_metric_responses_query(lookback_days), [athlete_id])
    dataset = build_dataset(_rows_from_records(records))
    logger.info(f"Loaded {len(dataset)} days of data for athlete {athlete_id}")
    return dataset


async def fetch_team_dataset(
    team_id: str,
    lookback_days: Optional[int] = DEFAULT_LOOKBACK_DAYS,
) -> List[PerformanceDataPoint]:
    """
    Load the roll-up dataset for a manager's team.

    Raises:
        SubjectNotFound: If the team has no active athletes.
    """
    members = await execute_query(get_team_members_query(), team_id, ACTIVE_CONNECTION_STATUS)
    athlete_ids = [record["athlete_id"] for record in members]
    if not athlete_ids:
        raise SubjectNotFound(f"Team {team_id} has no active athletes")

    records = await execute_query(get_metric_responses_query(lookback_days), athlete_ids)
    by_athlete: Dict[str, List[MetricResponseRow]] = defaultdict(list)
    for row in _rows_from_records(records):
        by_athlete[row.athlete_id].append(row)

    dataset = roll_up_team([build_dataset(by_athlete[athlete_id]) for athlete_id in athlete_ids])
    logger.info(
        f"Loaded {len(dataset)} days of team data for {team_id} "
        f"across {len(athlete_ids)} athletes"
    )
    return dataset

"""
Prompt construction for insight generation.

build_prompt() turns a performance dataset into a chat prompt: a fixed system
instruction (role and output shape) plus a user message carrying the
serialized data and the request for exactly three `area|trend|recommendation`
lines.

The output is a pure function of its inputs. Data points are listed
chronologically (stable for equal dates) and each day's metrics keep the
insertion order of the original mapping.
"""

from dataclasses import dataclass
from typing import List, Sequence

from insight_backend.models import PerformanceDataPoint, SubjectKind


INSIGHT_COUNT = 3
FIELD_DELIMITER = "|"

ATHLETE_SYSTEM_INSTRUCTION = (
    "You are an expert sports performance analyst. Analyze the data "
    "chronologically and provide insights that consider historical patterns "
    "and recent trends. Reply with one insight per line, formatted exactly as: "
    "area|trend|recommendation"
)

TEAM_SYSTEM_INSTRUCTION = (
    "You are an expert sports team performance analyst. The data is a daily "
    "roll-up averaged across the team's athletes. Reply with one insight per "
    "line, formatted exactly as: area|trend|recommendation"
)

_ATHLETE_FOCUS = (
    "1. Performance Progression: compare recent performance with historical data\n"
    "2. Recovery Patterns: identify trends in recovery and rest periods\n"
    "3. Training Response: how the athlete responds to different training intensities\n"
    "4. Key Metrics Correlation: relationships between the metrics\n"
    "5. Risk Factors: potential overtraining or injury risk patterns"
)

_TEAM_FOCUS = (
    "1. Team-wide performance progression\n"
    "2. Collective recovery and readiness patterns\n"
    "3. Training load response across the squad\n"
    "4. Risk factors that affect the group"
)


@dataclass(frozen=True)
class ChatPrompt:
    """System instruction and user message for a chat-completion call."""
    system: str
    user: str


def _format_value(value: float) -> str:
    return f"{value:g}"


def serialize_dataset(dataset: Sequence[PerformanceDataPoint]) -> str:
    """
    Render the dataset as plain text, one block per day, oldest first.

    Example:
        2025-01-02
          Sleep Quality: 4
          Energy: 3.5
          Notes: legs heavy
    """
    ordered = sorted(dataset, key=lambda point: point.date)
    blocks: List[str] = []
    for point in ordered:
        lines = [point.date.isoformat()]
        for name, value in point.metrics.items():
            lines.append(f"  {name}: {_format_value(value)}")
        notes = point.notes.strip()
        if notes:
            # Keep each note on one line so it cannot be mistaken for output format
            lines.append("  Notes: " + " / ".join(notes.splitlines()))
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def build_prompt(
    dataset: Sequence[PerformanceDataPoint],
    subject_kind: SubjectKind = SubjectKind.ATHLETE,
) -> ChatPrompt:
    """
    Compose the chat prompt for one generation request.

    Args:
        dataset: Performance data points for the subject.
        subject_kind: Athlete or team; selects the instruction wording.

    Returns:
        ChatPrompt with the system instruction and the user message.
    """
    if subject_kind == SubjectKind.TEAM:
        system = TEAM_SYSTEM_INSTRUCTION
        focus = _TEAM_FOCUS
        who = "this team's"
    else:
        system = ATHLETE_SYSTEM_INSTRUCTION
        focus = _ATHLETE_FOCUS
        who = "this athlete's"

    user = (
        f"Analyze {who} performance data in chronological order. Focus on:\n\n"
        f"{focus}\n\n"
        f"Performance data:\n{serialize_dataset(dataset)}\n\n"
        f"Provide exactly {INSIGHT_COUNT} insights with clear trends and actionable "
        f"recommendations. Write each insight on its own line as "
        f"area{FIELD_DELIMITER}trend{FIELD_DELIMITER}recommendation with no "
        f"numbering, headings or extra text."
    )
    return ChatPrompt(system=system, user=user)

"""
Pytest test module for prompt construction and response parsing.

Covers:
- Deterministic, chronological dataset serialization
- Athlete vs team instruction wording
- Tolerant line parsing with empty-string defaults
- Supporting data attached from referenced metric names
"""

from datetime import date

import pytest

from insight_backend.models import PerformanceDataPoint, SubjectKind
from insight_backend.services.prompt_builder import (
    ATHLETE_SYSTEM_INSTRUCTION,
    TEAM_SYSTEM_INSTRUCTION,
    build_prompt,
    serialize_dataset,
)
from insight_backend.services.response_parser import (
    DEFAULT_CONFIDENCE,
    attach_supporting_data,
    parse_insights,
    parse_line,
)


class TestSerializeDataset:

    def test_days_are_listed_oldest_first(self):
        dataset = [
            PerformanceDataPoint(date=date(2025, 1, 3), metrics={"Energy": 3}),
            PerformanceDataPoint(date=date(2025, 1, 1), metrics={"Energy": 4}),
        ]

        text = serialize_dataset(dataset)

        assert text.index("2025-01-01") < text.index("2025-01-03")

    def test_metrics_keep_insertion_order_and_compact_numbers(self):
        point = PerformanceDataPoint(
            date=date(2025, 1, 1),
            metrics={"Sleep Quality": 4.0, "Energy": 3.5},
            notes="Soreness: legs heavy\nMood: good",
        )

        assert serialize_dataset([point]) == (
            "2025-01-01\n"
            "  Sleep Quality: 4\n"
            "  Energy: 3.5\n"
            "  Notes: Soreness: legs heavy / Mood: good"
        )

    def test_empty_dataset_serializes_to_empty_text(self):
        assert serialize_dataset([]) == ""


class TestBuildPrompt:

    def test_prompt_is_deterministic(self, sample_dataset):
        assert build_prompt(sample_dataset) == build_prompt(list(sample_dataset))

    def test_athlete_prompt_requests_three_delimited_lines(self, sample_dataset):
        prompt = build_prompt(sample_dataset)

        assert prompt.system == ATHLETE_SYSTEM_INSTRUCTION
        assert "exactly 3 insights" in prompt.user
        assert "area|trend|recommendation" in prompt.user
        assert serialize_dataset(sample_dataset) in prompt.user

    def test_team_prompt_uses_team_wording(self, sample_dataset):
        prompt = build_prompt(sample_dataset, SubjectKind.TEAM)

        assert prompt.system == TEAM_SYSTEM_INSTRUCTION
        assert "this team's" in prompt.user


class TestParseLine:

    def test_well_formed_line(self):
        insight = parse_line("Recovery | Stable | Maintain")

        assert (insight.area, insight.trend, insight.recommendation) == (
            "Recovery", "Stable", "Maintain"
        )
        assert insight.confidence == DEFAULT_CONFIDENCE

    def test_missing_fields_default_to_empty_strings(self):
        insight = parse_line("Recovery|Stable")

        assert insight.area == "Recovery"
        assert insight.trend == "Stable"
        assert insight.recommendation == ""

    def test_extra_delimiters_stay_in_recommendation(self):
        insight = parse_line("Load|Up|Cut volume | then reassess")

        assert insight.recommendation == "Cut volume | then reassess"

    @pytest.mark.parametrize("line", ["1. Load|Up|Rest", "- Load|Up|Rest", "2) Load|Up|Rest"])
    def test_list_markers_are_stripped(self, line):
        assert parse_line(line).area == "Load"

    @pytest.mark.parametrize("line", ["", "   ", "\t"])
    def test_blank_lines_yield_nothing(self, line):
        assert parse_line(line) is None


class TestParseInsights:

    def test_malformed_lines_degrade_instead_of_failing(self):
        text = (
            "Training Load|Improving|Keep going\n"
            "garbled line without delimiters\n"
            "Recovery|Stable|Maintain"
        )

        insights = parse_insights(text)

        assert len(insights) == 3
        assert insights[0].area == "Training Load"
        assert insights[1].area == "garbled line without delimiters"
        assert insights[1].trend == ""
        assert insights[1].recommendation == ""
        assert insights[2].recommendation == "Maintain"

    def test_blank_lines_are_discarded(self):
        assert len(parse_insights("\n\nA|b|c\n   \nD|e|f\n")) == 2

    @pytest.mark.parametrize("text", [None, "", "\n \n"])
    def test_empty_output_parses_to_nothing(self, text):
        assert parse_insights(text) == []

    def test_custom_confidence_is_applied(self):
        assert parse_insights("A|b|c", confidence=0.4)[0].confidence == 0.4


class TestAttachSupportingData:

    def test_referenced_metrics_get_series_and_range(self, sample_dataset):
        insights = parse_insights("Sleep|sleep quality is rising, energy flat|Keep it up")

        enriched = attach_supporting_data(insights, sample_dataset)

        support = enriched[0].supportingData
        assert support.metrics == ["Sleep Quality", "Energy"]
        assert support.dateRange == "2025-01-01 to 2025-01-08"
        assert support.trendValues == [3.0 + i * 0.25 for i in range(8)]

    def test_unreferenced_insight_is_unchanged(self, sample_dataset):
        insights = parse_insights("Mindset|Positive|Keep journaling")

        enriched = attach_supporting_data(insights, sample_dataset)

        assert enriched[0] is insights[0]
        assert enriched[0].supportingData is None

    def test_original_insights_are_not_mutated(self, sample_dataset):
        insights = parse_insights("Energy|Energy flat|Hold load")

        attach_supporting_data(insights, sample_dataset)

        assert insights[0].supportingData is None

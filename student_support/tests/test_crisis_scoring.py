"""
Unit tests for crisis scoring and keyword helpers
"""
import csv
import io
from datetime import timedelta

import pytest

from conftest import NOW
from student_support.crisis.scoring import (
    CSV_HEADERS,
    calculate_crisis_score,
    create_sample_keywords,
    default_export_filename,
    detect_crisis_keywords,
    format_trigger_count,
    get_crisis_score_status,
    get_severity_level_display,
    get_severity_weight_color,
    keywords_to_csv,
    time_since_last_trigger,
    write_keywords_csv,
)
from student_support.models.schemas import CrisisKeyword, DetectedKeyword
from student_support.utils.validators import validate_keyword_data


class TestCrisisScore:
    """calculate_crisis_score"""

    def test_no_matches_scores_zero(self):
        assert calculate_crisis_score([]) == 0
        assert calculate_crisis_score(None) == 0

    def test_score_is_capped_at_100(self):
        assert calculate_crisis_score([{"severity_weight": 60}, {"severity_weight": 50}]) == 100

    def test_sums_weights_of_models(self):
        matches = [
            DetectedKeyword(keyword="hopeless", severity_weight=30),
            DetectedKeyword(keyword="alone", severity_weight=15),
        ]
        assert calculate_crisis_score(matches) == 45

    def test_missing_weight_counts_as_zero(self):
        assert calculate_crisis_score([{"keyword": "x"}, {"severity_weight": 10}]) == 10


class TestCrisisScoreStatus:
    """Band boundaries are inclusive on the lower bound"""

    @pytest.mark.parametrize("score,status", [
        (100, "Critical"),
        (80, "Critical"),
        (79, "High Risk"),
        (60, "High Risk"),
        (59, "Moderate Risk"),
        (40, "Moderate Risk"),
        (39, "Low Risk"),
        (20, "Low Risk"),
        (19, "Minimal Risk"),
        (0, "Minimal Risk"),
    ])
    def test_bands(self, score, status):
        assert get_crisis_score_status(score).status == status

    def test_out_of_range_scores_are_clamped(self):
        assert get_crisis_score_status(250).status == "Critical"
        assert get_crisis_score_status(-5).status == "Minimal Risk"

    def test_recommendations(self):
        assert get_crisis_score_status(85).recommendation == "Immediate intervention required"
        assert get_crisis_score_status(65).recommendation == "Priority assignment needed"
        assert get_crisis_score_status(5).recommendation == "Normal handling"


class TestDetection:
    """Built-in crisis phrase detection"""

    def test_detects_phrase_case_insensitively(self):
        assert detect_crisis_keywords("Lately I feel HOPELESS about everything")

    def test_plain_text_is_not_a_crisis(self):
        assert not detect_crisis_keywords("My exam timetable clashes with a lab")

    def test_empty_text(self):
        assert not detect_crisis_keywords("")


class TestDisplayHelpers:
    """Severity display and trigger formatting"""

    def test_severity_display(self):
        assert get_severity_level_display("critical").label == "Critical"
        assert get_severity_level_display("bogus").label == "Unknown"

    def test_weight_color_thresholds(self):
        assert get_severity_weight_color(80) == "text-red-600 font-bold"
        assert get_severity_weight_color(79) == "text-orange-600 font-semibold"
        assert get_severity_weight_color(5) == "text-gray-600"

    @pytest.mark.parametrize("count,text", [
        (0, "Never triggered"),
        (1, "1 trigger"),
        (42, "42 triggers"),
        (1500, "1.5K triggers"),
        (2500000, "2.5M triggers"),
    ])
    def test_format_trigger_count(self, count, text):
        assert format_trigger_count(count) == text

    def test_time_since_last_trigger(self):
        assert time_since_last_trigger(None, NOW) == "Never"
        assert time_since_last_trigger(NOW - timedelta(seconds=20), NOW) == "Just now"
        assert time_since_last_trigger(NOW - timedelta(minutes=5), NOW) == "5 min ago"
        assert time_since_last_trigger(NOW - timedelta(hours=1), NOW) == "1 hour ago"
        assert time_since_last_trigger(NOW - timedelta(hours=3), NOW) == "3 hours ago"
        assert time_since_last_trigger(NOW - timedelta(days=2), NOW) == "2 days ago"
        assert time_since_last_trigger(NOW - timedelta(days=14), NOW) == "2 weeks ago"
        assert time_since_last_trigger(NOW - timedelta(days=90), NOW) == "3 months ago"

    def test_time_since_accepts_iso_strings(self):
        assert time_since_last_trigger("2024-03-15T11:30:00Z", NOW) == "30 min ago"


class TestSampleKeywords:
    """Default keyword set"""

    def test_ten_valid_samples(self):
        samples = create_sample_keywords()
        assert len(samples) == 10
        for sample in samples:
            assert validate_keyword_data(sample.model_dump()) == []


class TestCsvExport:
    """keywords_to_csv / write_keywords_csv"""

    @pytest.fixture
    def keywords(self):
        return [
            CrisisKeyword(
                id=1,
                keyword='feel "trapped"',
                severity_level="high",
                severity_weight=70,
                trigger_count=3,
                categories=[{"id": 1, "name": "Mental Health"}, {"id": 2, "name": "Crisis"}],
            ),
            {"id": 2, "keyword": "alone", "severity_level": "low", "severity_weight": 10, "is_active": False},
        ]

    def test_csv_layout(self, keywords):
        lines = keywords_to_csv(keywords).split("\n")
        assert lines[0] == ",".join(CSV_HEADERS)
        assert lines[1] == '"feel ""trapped""",high,70,true,3,"Mental Health; Crisis"'
        assert lines[2] == '"alone",low,10,false,0,""'

    def test_csv_parses_back(self, keywords):
        rows = list(csv.DictReader(io.StringIO(keywords_to_csv(keywords))))
        assert rows[0]["keyword"] == 'feel "trapped"'
        assert rows[0]["categories"] == "Mental Health; Crisis"

    def test_write_to_directory_uses_default_name(self, keywords, tmp_path):
        path = write_keywords_csv(keywords, tmp_path)
        assert path.name == default_export_filename()
        assert path.read_text(encoding="utf-8").startswith("keyword,")

    def test_write_to_file(self, keywords, tmp_path):
        target = tmp_path / "export.csv"
        assert write_keywords_csv(keywords, target) == target
        assert target.exists()

"""
Tests for the File Profiler
============================
"""

import pytest

from dataqa.config import QAConfig
from dataqa.profile import build_file_profile
from dataqa.types import FileProfile


COLUMNS = ["Country", "City", "Revenue", "Cost", "Status"]


class TestClassification:

    @pytest.fixture
    def profile(self, sales_rows):
        return build_file_profile(COLUMNS, sales_rows)

    def test_overview_lists(self, profile):
        assert profile.row_count == 7
        assert profile.column_count == 5
        assert profile.numeric_columns == ["Revenue", "Cost"]
        assert profile.categorical_columns == ["Country", "City", "Status"]
        assert profile.date_columns == []
        assert profile.high_cardinality_columns == []

    def test_numeric_stats_skip_blanks_and_text(self, profile):
        revenue = profile.get_column("Revenue")
        assert revenue.inferred_type == "number"
        assert revenue.null_count == 2
        assert revenue.non_null_count == 5
        stats = revenue.numeric_stats
        assert stats["count"] == 4
        assert stats["sum"] == pytest.approx(2250.5)
        assert stats["min"] == pytest.approx(250.5)
        assert stats["max"] == pytest.approx(1200)

    def test_categorical_column(self, profile):
        country = profile.get_column("Country")
        assert country.inferred_type == "string"
        assert country.null_count == 1
        assert country.distinct_count == 3
        assert country.sample_values == ["France", "Spain", "Italy"]
        assert country.top_values[0] == {"value": "France", "count": 2}

    def test_null_string_counts_as_blank(self, profile):
        assert profile.get_column("Status").null_count == 1

    def test_date_column(self):
        rows = [{"When": "2024-01-05"}, {"When": "2024-02-10"}, {"When": "2024-03-01"}]
        profile = build_file_profile(["When"], rows)
        assert profile.date_columns == ["When"]
        assert profile.categorical_columns == []
        when = profile.get_column("When")
        assert when.inferred_type == "date"
        assert when.date_stats["min"].startswith("2024-01-05")
        assert when.date_stats["max"].startswith("2024-03-01")

    def test_boolean_column_is_categorical(self):
        rows = [{"Flag": "yes"}, {"Flag": "no"}, {"Flag": "Yes"}]
        profile = build_file_profile(["Flag"], rows)
        assert profile.get_column("Flag").inferred_type == "boolean"
        assert profile.categorical_columns == ["Flag"]

    def test_mixed_column_is_neither(self):
        rows = [{"Code": "1"}, {"Code": "2"}, {"Code": "x"}, {"Code": "y"}]
        profile = build_file_profile(["Code"], rows)
        assert profile.get_column("Code").inferred_type == "mixed"
        assert profile.numeric_columns == []
        assert profile.categorical_columns == []

    def test_high_cardinality(self):
        letters = "abcdefghijklmnopqrstuvwxyz"
        rows = [{"Key": f"code-{letters[i % 26]}{letters[i // 26]}"} for i in range(30)]
        profile = build_file_profile(["Key"], rows)
        assert profile.high_cardinality_columns == ["Key"]

    def test_all_blank_column(self):
        profile = build_file_profile(["Empty"], [{"Empty": ""}, {"Empty": None}])
        assert profile.get_column("Empty").inferred_type == "unknown"
        assert profile.categorical_columns == []


class TestSampling:

    def test_sample_limit(self, sales_rows):
        config = QAConfig(profile_sample_rows=2)
        profile = build_file_profile(COLUMNS, sales_rows, config=config)
        assert profile.get_column("Country").non_null_count == 2
        assert profile.row_count == 7

    def test_row_count_override(self, sales_rows):
        assert build_file_profile(COLUMNS, sales_rows, row_count=100).row_count == 100

    def test_custom_thresholds(self, sales_rows):
        # Revenue is 4/5 numeric
        profile = build_file_profile(COLUMNS, sales_rows, QAConfig(numeric_threshold=0.9))
        assert profile.numeric_columns == ["Cost"]


class TestSerialization:

    def test_dict_round_trip(self, sales_rows):
        profile = build_file_profile(COLUMNS, sales_rows)
        data = profile.to_dict()
        assert data["overview"]["numericColumns"] == ["Revenue", "Cost"]
        assert FileProfile.from_dict(data) == profile

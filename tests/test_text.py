"""
Tests for text normalization and cell-value helpers
====================================================
"""

import pytest

from dataqa.text import (
    format_number,
    is_blank_like,
    normalize_cell_value,
    normalize_text,
    parse_numeric_value,
    preview_list,
    tokenize,
)


class TestNormalizeText:

    def test_lowercases_and_collapses_punctuation(self):
        assert normalize_text("  Total_Revenue (USD)!! ") == "total revenue usd"

    def test_none_is_empty(self):
        assert normalize_text(None) == ""

    def test_tokenize_skips_empty(self):
        assert tokenize("net  sales") == ["net", "sales"]


class TestBlankLike:

    @pytest.mark.parametrize("value", [None, "", "   ", "-", "NULL", "NaN", "n/a", " N/A "])
    def test_blank_like_values(self, value):
        assert is_blank_like(value)
        assert normalize_cell_value(value) == ""

    def test_real_values_are_trimmed(self):
        assert normalize_cell_value("  Paris ") == "Paris"
        assert normalize_cell_value(0) == "0"
        assert normalize_cell_value(True) == "true"


class TestParseNumericValue:

    @pytest.mark.parametrize("raw, expected", [
        ("10", 10.0),
        ("1,200", 1200.0),
        (" -3.5 ", -3.5),
        ("+7", 7.0),
        (".5", 0.5),
        ("2e3", 2000.0),
        (42, 42.0),
        (1.25, 1.25),
    ])
    def test_numeric_tokens(self, raw, expected):
        assert parse_numeric_value(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", ["abc", "12abc", "$10", "n/a", "-", "", None, True, float("nan"), "1 000"])
    def test_non_numeric(self, raw):
        assert parse_numeric_value(raw) is None


class TestFormatting:

    def test_format_number_strips_trailing_zeros(self):
        assert format_number(15.0) == "15"
        assert format_number(1234.5) == "1,234.5"
        assert format_number(1234.567) == "1,234.57"
        assert format_number(-2500) == "-2,500"

    def test_format_number_non_finite(self):
        assert format_number(float("inf")) == "0"
        assert format_number(None) == "0"

    def test_preview_list_adds_remainder(self):
        names = [f"c{i}" for i in range(10)]
        assert preview_list(names) == "c0, c1, c2, c3, c4, c5, c6, c7 and 2 more"
        assert preview_list(["a", "b"]) == "a, b"

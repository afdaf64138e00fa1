"""Tests for app/review/periods.py."""
from __future__ import annotations

from datetime import date

import pytest

from app.review.periods import (
    nth_saturday,
    ordinal_suffix,
    parse_release_info,
    period_sort_key,
    sort_periods,
)


class TestOrdering:
    def test_ordinal_first_word(self):
        assert sort_periods(["Third Release", "first release", "Second Release"]) == [
            "first release",
            "Second Release",
            "Third Release",
        ]

    def test_other_labels_follow_lexically(self):
        assert sort_periods(["zeta", "Alpha", "Fourth Release", "beta"]) == [
            "Fourth Release",
            "Alpha",
            "beta",
            "zeta",
        ]

    def test_empty_label_sorts_with_lexical_group(self):
        assert period_sort_key("")[0] == 1


class TestReleaseInfo:
    def test_numbered_release_undergraduate(self):
        info = parse_release_info("2025_Undergraduate_First-Release.csv", year=2025)
        assert info.release_period == "First Release"
        assert info.academic_level == "Undergraduate"
        assert info.due_date is None

    def test_numbered_release_defaults_to_graduate(self):
        info = parse_release_info("third-release.xlsx")
        assert info.release_period == "Third Release"
        assert info.academic_level == "Graduate"

    def test_weekly_release(self):
        info = parse_release_info("march_2ndweek.csv", year=2025)
        assert info.release_period == "March 2nd Week"
        assert info.academic_level is None
        # 2nd Saturday of March 2025 is the 8th; due two weeks later.
        assert info.due_date == date(2025, 3, 22)

    def test_unknown_month_has_no_due_date(self):
        info = parse_release_info("smarch_1stweek.csv", year=2025)
        assert info.release_period == "Smarch 1st Week"
        assert info.due_date is None

    def test_unrecognized_name(self):
        info = parse_release_info("protocols.csv")
        assert (info.release_period, info.academic_level, info.due_date) == ("", None, None)


class TestHelpers:
    def test_nth_saturday(self):
        assert nth_saturday(2025, 3, 1) == date(2025, 3, 1)
        assert nth_saturday(2025, 4, 1) == date(2025, 4, 5)

    def test_nth_saturday_outside_month(self):
        assert nth_saturday(2025, 2, 5) is None

    @pytest.mark.parametrize(
        "number, suffix",
        [(1, "st"), (2, "nd"), (3, "rd"), (4, "th"), (11, "th"), (12, "th"), (13, "th"), (21, "st")],
    )
    def test_ordinal_suffix(self, number, suffix):
        assert ordinal_suffix(number) == suffix

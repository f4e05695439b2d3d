"""Tests for recurrence date arithmetic.

Covers:
  - Each named frequency
  - Month-end clamping
  - Custom day counts overriding the frequency
  - Bounded iteration (count / until)
"""
import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from modules.planning.models import Frequency
from modules.planning.recurrence import (
    DEFAULT_CUSTOM_DAYS,
    iter_occurrences,
    next_occurrence,
)


class TestNextOccurrence:
    """Test next_occurrence for every frequency."""

    @pytest.mark.parametrize("frequency, expected", [
        (Frequency.WEEKLY, date(2024, 3, 22)),
        (Frequency.MONTHLY, date(2024, 4, 15)),
        (Frequency.QUARTERLY, date(2024, 6, 15)),
        (Frequency.SEMIANNUAL, date(2024, 9, 15)),
        (Frequency.ANNUAL, date(2025, 3, 15)),
    ])
    def test_named_frequencies(self, frequency, expected):
        assert next_occurrence(date(2024, 3, 15), frequency) == expected

    def test_accepts_string_values(self):
        assert next_occurrence(date(2024, 3, 15), "MONTHLY") == date(2024, 4, 15)

    def test_month_end_clamps_to_last_day(self):
        assert next_occurrence(date(2024, 1, 31), Frequency.MONTHLY) == date(2024, 2, 29)
        assert next_occurrence(date(2023, 1, 31), Frequency.MONTHLY) == date(2023, 2, 28)

    def test_annual_from_leap_day(self):
        assert next_occurrence(date(2024, 2, 29), Frequency.ANNUAL) == date(2025, 2, 28)

    def test_weekly_crosses_year(self):
        assert next_occurrence(date(2024, 12, 28), Frequency.WEEKLY) == date(2025, 1, 4)

    def test_custom_days_override_frequency(self):
        assert next_occurrence(date(2024, 3, 15), Frequency.ANNUAL, 10) == date(2024, 3, 25)

    def test_custom_without_days_uses_default(self):
        result = next_occurrence(date(2024, 3, 1), Frequency.CUSTOM)
        assert (result - date(2024, 3, 1)).days == DEFAULT_CUSTOM_DAYS

    def test_deterministic(self):
        ref = date(2024, 5, 31)
        assert next_occurrence(ref, Frequency.QUARTERLY, None) == \
            next_occurrence(ref, Frequency.QUARTERLY, None)

    @pytest.mark.parametrize("days", [0, -5])
    def test_non_positive_custom_days_ignored(self, days):
        assert next_occurrence(date(2024, 3, 15), Frequency.MONTHLY, days) == date(2024, 4, 15)

    def test_zero_custom_days_on_custom_uses_default(self):
        result = next_occurrence(date(2024, 3, 1), Frequency.CUSTOM, 0)
        assert (result - date(2024, 3, 1)).days == DEFAULT_CUSTOM_DAYS

    def test_unknown_frequency_rejected(self):
        with pytest.raises(ValueError):
            next_occurrence(date(2024, 3, 15), "FORTNIGHTLY")


class TestIterOccurrences:
    """Test bounded iteration of a recurrence."""

    def test_count_bound(self):
        dates = list(iter_occurrences(date(2024, 1, 15), Frequency.MONTHLY, count=3))
        assert dates == [date(2024, 1, 15), date(2024, 2, 15), date(2024, 3, 15)]

    def test_until_bound_is_inclusive(self):
        dates = list(iter_occurrences(
            date(2024, 1, 1), Frequency.WEEKLY, until=date(2024, 1, 15)
        ))
        assert dates == [date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15)]

    def test_count_wins_over_until(self):
        dates = list(iter_occurrences(
            date(2024, 1, 1), Frequency.MONTHLY, count=4, until=date(2024, 1, 31)
        ))
        assert len(dates) == 4

    def test_first_after_until_yields_nothing(self):
        assert list(iter_occurrences(
            date(2024, 2, 1), Frequency.MONTHLY, until=date(2024, 1, 31)
        )) == []

    def test_requires_a_bound(self):
        with pytest.raises(ValueError):
            list(iter_occurrences(date(2024, 1, 1), Frequency.MONTHLY))

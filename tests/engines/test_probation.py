"""Tests for the Probation Scheduler."""

from datetime import date

import pytest

from payroll_config.schema import StatutoryConfig
from payroll_engines.probation import add_months, is_on_probation, probation_end_date


class TestAddMonths:

    @pytest.mark.parametrize(
        "start, months, expected",
        [
            (date(2025, 1, 31), 1, date(2025, 2, 28)),
            (date(2024, 1, 31), 1, date(2024, 2, 29)),
            (date(2025, 8, 31), 6, date(2026, 2, 28)),
            (date(2025, 3, 15), 6, date(2025, 9, 15)),
            (date(2025, 11, 30), 3, date(2026, 2, 28)),
            (date(2025, 5, 10), 0, date(2025, 5, 10)),
            (date(2025, 12, 31), 12, date(2026, 12, 31)),
        ],
    )
    def test_calendar_addition_clamps_day(self, start, months, expected):
        assert add_months(start, months) == expected


class TestProbationEndDate:

    def test_default_six_months(self):
        assert probation_end_date(date(2025, 7, 17)) == date(2026, 1, 17)

    def test_explicit_length(self):
        assert probation_end_date(date(2025, 7, 17), 3) == date(2025, 10, 17)

    def test_configured_default(self):
        config = StatutoryConfig(default_probation_months=2)
        assert probation_end_date(date(2025, 1, 31), config=config) == date(2025, 3, 31)

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            probation_end_date(date(2025, 1, 1), -1)


class TestIsOnProbation:

    def test_before_end(self):
        assert is_on_probation(date(2026, 1, 17), date(2026, 1, 16))

    def test_on_end_date(self):
        assert not is_on_probation(date(2026, 1, 17), date(2026, 1, 17))

    def test_no_end_date(self):
        assert not is_on_probation(None, date(2026, 1, 1))

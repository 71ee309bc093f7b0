# backend/tests/unit/test_date_calculator.py
"""
Tests for the pure calendar logic behind recurring shifts.

Reference instant for most cases is Wednesday 2025-01-15 09:00 UTC, so
"tomorrow" is Thursday 2025-01-16.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from shift_scheduler.services.date_calculator import (
    add_months,
    clamp_day_of_month,
    compute_occurrences,
    monthly_occurrences,
    week_start,
    weekly_occurrences,
)


@pytest.mark.unit
class TestCalendarHelpers:
    def test_clamp_day_of_month_short_months(self):
        assert clamp_day_of_month(2025, 2, 31) == date(2025, 2, 28)
        assert clamp_day_of_month(2024, 2, 31) == date(2024, 2, 29)
        assert clamp_day_of_month(2025, 4, 31) == date(2025, 4, 30)
        assert clamp_day_of_month(2025, 1, 15) == date(2025, 1, 15)

    def test_add_months_rolls_over_year(self):
        assert add_months(2025, 12, 1) == (2026, 1)
        assert add_months(2025, 11, 3) == (2026, 2)
        assert add_months(2025, 1, -1) == (2024, 12)
        assert add_months(2025, 6, 0) == (2025, 6)

    def test_week_start_is_monday(self):
        assert week_start(date(2025, 1, 15)) == date(2025, 1, 13)
        assert week_start(date(2025, 1, 13)) == date(2025, 1, 13)
        assert week_start(date(2025, 1, 19)) == date(2025, 1, 13)


@pytest.mark.unit
class TestWeeklyOccurrences:
    def test_every_matching_weekday_in_horizon(self, weekly_model, reference):
        model = weekly_model(day_of_week=0)

        assert weekly_occurrences(model, reference, 14) == [
            date(2025, 1, 20),
            date(2025, 1, 27),
        ]

    def test_reference_date_never_produced(self, weekly_model, reference):
        """Wednesday model on a Wednesday reference starts next week."""
        model = weekly_model(day_of_week=2)

        dates = weekly_occurrences(model, reference, 7)

        assert dates == [date(2025, 1, 22)]
        assert reference.date() not in dates

    def test_horizon_of_one_day_only_covers_tomorrow(self, weekly_model, reference):
        thursday = weekly_model(day_of_week=3)
        friday = weekly_model(day_of_week=4)

        assert weekly_occurrences(thursday, reference, 1) == [date(2025, 1, 16)]
        assert weekly_occurrences(friday, reference, 1) == []

    def test_interval_weeks_anchored_at_start_date_week(self, weekly_model, reference):
        model = weekly_model(
            day_of_week=0, interval_weeks=2, start_date=date(2025, 1, 6)
        )

        assert weekly_occurrences(model, reference, 35) == [
            date(2025, 1, 20),
            date(2025, 2, 3),
            date(2025, 2, 17),
        ]

    def test_interval_weeks_without_start_date_use_fixed_epoch(
        self, weekly_model, reference
    ):
        model = weekly_model(day_of_week=4, interval_weeks=2)

        # Week of 2025-01-13 is an odd number of weeks after 0001-01-01
        assert weekly_occurrences(model, reference, 42) == [
            date(2025, 1, 24),
            date(2025, 2, 7),
            date(2025, 2, 21),
        ]

    @pytest.mark.parametrize("days_later", [1, 3, 7, 12])
    def test_interval_weeks_phase_is_stable_across_references(
        self, weekly_model, reference, days_later
    ):
        model = weekly_model(day_of_week=4, interval_weeks=2)
        later = reference + timedelta(days=days_later)

        first = set(weekly_occurrences(model, reference, 60))
        second = set(weekly_occurrences(model, later, 60))

        # Dates both runs can see must agree
        window_start = later.date() + timedelta(days=1)
        window_end = reference.date() + timedelta(days=60)
        assert {d for d in first if d >= window_start} == {
            d for d in second if d <= window_end
        }

    def test_model_date_bounds_are_applied(self, weekly_model, reference):
        ending = weekly_model(day_of_week=0, end_date=date(2025, 1, 27))
        starting = weekly_model(day_of_week=0, start_date=date(2025, 2, 1))

        assert weekly_occurrences(ending, reference, 30) == [
            date(2025, 1, 20),
            date(2025, 1, 27),
        ]
        assert weekly_occurrences(starting, reference, 30) == [
            date(2025, 2, 3),
            date(2025, 2, 10),
        ]


@pytest.mark.unit
class TestMonthlyOccurrences:
    def test_day_31_clamps_in_non_leap_year(self, monthly_model, reference):
        model = monthly_model(day_of_month=31)

        assert monthly_occurrences(model, reference, 3) == [
            date(2025, 1, 31),
            date(2025, 2, 28),
            date(2025, 3, 31),
        ]

    def test_day_31_clamps_to_29_in_leap_year(self, monthly_model):
        reference = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)
        model = monthly_model(day_of_month=31)

        assert monthly_occurrences(model, reference, 3) == [
            date(2024, 1, 31),
            date(2024, 2, 29),
            date(2024, 3, 31),
        ]

    def test_clamp_recomputed_each_month(self, monthly_model):
        """February's clamp does not stick to the following months."""
        reference = datetime(2025, 1, 31, 9, 0, tzinfo=timezone.utc)
        model = monthly_model(day_of_month=30)

        assert monthly_occurrences(model, reference, 3) == [
            date(2025, 2, 28),
            date(2025, 3, 30),
            date(2025, 4, 30),
        ]

    def test_day_already_passed_starts_next_month(self, monthly_model, reference):
        model = monthly_model(day_of_month=10)

        assert monthly_occurrences(model, reference, 2) == [
            date(2025, 2, 10),
            date(2025, 3, 10),
        ]

    def test_reference_day_itself_is_skipped(self, monthly_model, reference):
        model = monthly_model(day_of_month=15)

        dates = monthly_occurrences(model, reference, 1)

        assert dates == [date(2025, 2, 15)]

    def test_tomorrow_is_included(self, monthly_model, reference):
        model = monthly_model(day_of_month=16)

        assert monthly_occurrences(model, reference, 1) == [date(2025, 1, 16)]

    def test_year_rollover(self, monthly_model):
        reference = datetime(2025, 11, 20, 9, 0, tzinfo=timezone.utc)
        model = monthly_model(day_of_month=5)

        assert monthly_occurrences(model, reference, 3) == [
            date(2025, 12, 5),
            date(2026, 1, 5),
            date(2026, 2, 5),
        ]

    def test_end_date_bounds_months(self, monthly_model, reference):
        model = monthly_model(day_of_month=20, end_date=date(2025, 2, 25))

        assert monthly_occurrences(model, reference, 3) == [
            date(2025, 1, 20),
            date(2025, 2, 20),
        ]


@pytest.mark.unit
class TestComputeOccurrences:
    @pytest.mark.parametrize("horizon", [0, -3, None])
    def test_non_positive_horizon_yields_nothing(
        self, weekly_model, monthly_model, reference, horizon
    ):
        assert compute_occurrences(weekly_model(), reference, horizon) == []
        assert compute_occurrences(monthly_model(), reference, horizon) == []

    def test_dispatches_on_cadence(self, weekly_model, monthly_model, reference):
        assert compute_occurrences(weekly_model(), reference, 14) == [
            date(2025, 1, 20),
            date(2025, 1, 27),
        ]
        assert compute_occurrences(monthly_model(), reference, 1) == [
            date(2025, 1, 31)
        ]

    def test_same_inputs_same_sequence(self, weekly_model, reference):
        model = weekly_model(day_of_week=5, interval_weeks=2)

        first = compute_occurrences(model, reference, 90)
        second = compute_occurrences(model, reference, 90)

        assert first == second
        assert first == sorted(set(first))

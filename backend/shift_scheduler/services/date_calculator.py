# backend/shift_scheduler/services/date_calculator.py
"""
Date Calculator - pure calendar logic for recurring shifts.

Given a schedule model and a reference instant, produces the ordered candidate
dates a run should materialize. Nothing here touches storage or the clock, so
the same inputs always yield the same sequence; reconciliation relies on that
to recognise previously generated shifts as duplicates.

Rules:
- Nothing is ever produced on or before the reference instant's calendar date.
- Weekly: every matching weekday in [tomorrow, reference date + advance days],
  thinned to every N-th week for multi-week models. Weeks are counted from the
  Monday of the week holding the model's start date, or from 0001-01-01 (a
  Monday) when the model has no start date, so the on-weeks never move
  between runs.
- Monthly: the model's day-of-month in each of the next N calendar months,
  starting with the first occurrence on or after tomorrow. Days past the end
  of a month clamp to its last day; the clamp is recomputed from the model's
  day every month.
- Model start/end dates bound the result on both cadences.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from ..enums import Cadence
from ..models.schedule_model import ScheduleModel
from ..utils.time_utils import tomorrow_of


def clamp_day_of_month(year: int, month: int, day: int) -> date:
    """Date for ``day`` in the given month, clamped to the month's last day."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def add_months(year: int, month: int, months: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


# 0001-01-01 is a Monday
EPOCH_WEEK_START = date.min


def week_start(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def _within_model_bounds(model: ScheduleModel, day: date) -> bool:
    if model.start_date and day < model.start_date:
        return False
    if model.end_date and day > model.end_date:
        return False
    return True


def weekly_occurrences(
    model: ScheduleModel, reference: datetime, advance_days: int
) -> List[date]:
    first = tomorrow_of(reference)
    last = reference.date() + timedelta(days=advance_days)
    if last < first:
        return []

    # First matching weekday on or after tomorrow
    offset = (model.day_of_week - first.weekday()) % 7
    current = first + timedelta(days=offset)

    anchor = week_start(model.start_date) if model.start_date else EPOCH_WEEK_START
    interval = max(model.interval_weeks, 1)

    occurrences: List[date] = []
    while current <= last:
        weeks_from_anchor = (week_start(current) - anchor).days // 7
        if weeks_from_anchor % interval == 0 and _within_model_bounds(model, current):
            occurrences.append(current)
        current += timedelta(weeks=1)
    return occurrences


def monthly_occurrences(
    model: ScheduleModel, reference: datetime, months_ahead: int
) -> List[date]:
    if months_ahead <= 0:
        return []

    tomorrow = tomorrow_of(reference)
    year, month = tomorrow.year, tomorrow.month
    if clamp_day_of_month(year, month, model.day_of_month) < tomorrow:
        year, month = add_months(year, month, 1)

    occurrences: List[date] = []
    for step in range(months_ahead):
        target_year, target_month = add_months(year, month, step)
        candidate = clamp_day_of_month(target_year, target_month, model.day_of_month)
        if _within_model_bounds(model, candidate):
            occurrences.append(candidate)
    return occurrences


def compute_occurrences(
    model: ScheduleModel, reference: datetime, horizon: Optional[int]
) -> List[date]:
    """
    Ordered candidate dates for ``model``.

    Args:
        model: Schedule model to expand
        reference: Run reference instant; its calendar date is never emitted
        horizon: Advance days for weekly models, months ahead for monthly ones

    Returns:
        Chronologically ordered list of distinct dates
    """
    if not horizon or horizon <= 0:
        return []
    if model.cadence == Cadence.WEEKLY:
        return weekly_occurrences(model, reference, horizon)
    return monthly_occurrences(model, reference, horizon)

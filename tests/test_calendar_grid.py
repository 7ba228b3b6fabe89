import calendar
from datetime import date

import pytest

from duty_scheduler.utils.calendar_grid import GRID_DAYS, MonthGrid, shift_month


def test_july_2025_starts_on_sunday_before_the_first():
    grid = MonthGrid(2025, 7)
    days = list(grid)

    assert len(days) == GRID_DAYS == 42
    assert days[0] == date(2025, 6, 29)
    assert days[-1] == date(2025, 8, 9)


def test_month_starting_on_first_weekday_has_no_leading_days():
    # June 2025 begins on a Sunday
    assert next(iter(MonthGrid(2025, 6))) == date(2025, 6, 1)


def test_monday_first_grid():
    grid = MonthGrid(2025, 7, first_weekday=calendar.MONDAY)
    assert next(iter(grid)) == date(2025, 6, 30)


def test_iteration_is_restartable():
    grid = MonthGrid(2024, 2)
    assert list(grid) == list(grid)


def test_days_are_consecutive_and_cover_the_month():
    grid = MonthGrid(2024, 2)
    days = list(grid)

    assert all((b - a).days == 1 for a, b in zip(days, days[1:]))
    assert sum(grid.is_current_month(d) for d in days) == 29


def test_weeks_are_six_rows_of_seven():
    weeks = MonthGrid(2025, 3).weeks()
    assert len(weeks) == 6
    assert all(len(week) == 7 and week[0].weekday() == calendar.SUNDAY for week in weeks)


def test_contains():
    grid = MonthGrid(2025, 7)
    assert date(2025, 6, 29) in grid
    assert date(2025, 8, 10) not in grid
    assert "2025-07-01" not in grid


@pytest.mark.parametrize(
    "start, delta, expected",
    [((2025, 7), 1, (2025, 8)), ((2025, 12), 1, (2026, 1)), ((2025, 1), -1, (2024, 12)), ((2025, 7), -19, (2023, 12))],
)
def test_shift_month(start, delta, expected):
    assert shift_month(*start, delta) == expected


def test_invalid_month():
    with pytest.raises(ValueError):
        MonthGrid(2025, 13)

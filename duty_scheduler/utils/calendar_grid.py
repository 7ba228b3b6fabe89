"""Month grid projection for day display and selection"""
import calendar
from datetime import date, timedelta
from typing import Iterator

GRID_WEEKS = 6
GRID_DAYS = GRID_WEEKS * 7


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move (year, month) by `delta` months, e.g. (2025, 12, 1) -> (2026, 1)"""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


class MonthGrid:
    """
    The 6x7 block of dates displayed for one month.

    The first cell is the first day of the week on or before the 1st of the
    month; leading and trailing cells belong to the adjacent months. Iteration
    is lazy and can be restarted any number of times. No I/O, no cache access.
    """

    def __init__(self, year: int, month: int, first_weekday: int = calendar.SUNDAY):
        if not 1 <= month <= 12:
            raise ValueError(f"Month must be in 1..12, got {month}")
        self.year = year
        self.month = month
        self.first_weekday = first_weekday

    @property
    def start(self) -> date:
        first = date(self.year, self.month, 1)
        return first - timedelta(days=(first.weekday() - self.first_weekday) % 7)

    def __iter__(self) -> Iterator[date]:
        start = self.start
        return (start + timedelta(days=offset) for offset in range(GRID_DAYS))

    def __len__(self) -> int:
        return GRID_DAYS

    def __contains__(self, day: object) -> bool:
        if not isinstance(day, date):
            return False
        return 0 <= (day - self.start).days < GRID_DAYS

    def weeks(self) -> list[list[date]]:
        days = list(self)
        return [days[i : i + 7] for i in range(0, GRID_DAYS, 7)]

    def is_current_month(self, day: date) -> bool:
        return day.year == self.year and day.month == self.month

    def __repr__(self) -> str:
        return f"MonthGrid({self.year}, {self.month})"

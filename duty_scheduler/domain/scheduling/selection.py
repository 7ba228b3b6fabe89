"""Day selection for the schedule editor"""
from datetime import date
from enum import Enum
from typing import Iterator, Optional, Union

from ...errors import ValidationError
from ...shared.validators import parse_date_key


class SelectionMode(str, Enum):
    SINGLE = "single"
    MULTI = "multi"


class SelectionSet:
    """
    Either one date (single mode) or a set of distinct dates (multi mode).
    Switching mode always starts from an empty selection.

    Days may be given as `date` objects or ISO keys ("2025-07-14"); both are
    stored as `date` so they match the cache keys.
    """

    def __init__(self, mode: SelectionMode = SelectionMode.SINGLE):
        self.mode = mode
        self._dates: set[date] = set()

    @property
    def dates(self) -> frozenset[date]:
        return frozenset(self._dates)

    @property
    def single(self) -> Optional[date]:
        """The selected date when exactly one is selected"""
        if len(self._dates) == 1:
            return next(iter(self._dates))
        return None

    def select(self, day: Union[date, str]) -> None:
        """
        Single mode replaces the selection; multi mode toggles the date.

        Raises:
            ValidationError: If the day is not a valid ISO date
        """
        day = parse_date_key(day)
        if self.mode == SelectionMode.SINGLE:
            self._dates = {day}
        elif day in self._dates:
            self._dates.discard(day)
        else:
            self._dates.add(day)

    def toggle_mode(self) -> SelectionMode:
        self.mode = (
            SelectionMode.MULTI if self.mode == SelectionMode.SINGLE else SelectionMode.SINGLE
        )
        self.clear()
        return self.mode

    def clear(self) -> None:
        self._dates.clear()

    @property
    def is_empty(self) -> bool:
        return not self._dates

    def __len__(self) -> int:
        return len(self._dates)

    def __iter__(self) -> Iterator[date]:
        return iter(sorted(self._dates))

    def __contains__(self, day: object) -> bool:
        if not isinstance(day, (date, str)):
            return False
        try:
            return parse_date_key(day) in self._dates
        except ValidationError:
            return False

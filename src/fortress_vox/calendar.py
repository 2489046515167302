"""
Fortress calendar.

The in-game year has twelve months of 33600 ticks each. Plant growths are
timed against the tick, so the export can pretend to be any month.
"""

from enum import Enum
from typing import Optional, Union

TICKS_PER_MONTH = 33600


class Month(Enum):
    GRANITE = 0
    SLATE = 1
    FELSITE = 2
    HEMATITE = 3
    MALACHITE = 4
    GALENA = 5
    LIMESTONE = 6
    SANDSTONE = 7
    TIMBER = 8
    MOONSTONE = 9
    OPAL = 10
    OBSIDIAN = 11

    @property
    def index(self) -> int:
        return self.value

    @property
    def year_tick(self) -> int:
        """First tick of the month."""
        return self.value * TICKS_PER_MONTH

    @property
    def display_name(self) -> str:
        return self.name.capitalize()

    def __add__(self, months: int) -> "Month":
        return Month((self.value + months) % 12)

    def __sub__(self, months: int) -> "Month":
        return Month((self.value - months) % 12)

    @classmethod
    def from_name(cls, name: str) -> "Month":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            names = ", ".join(m.display_name for m in cls)
            raise ValueError(f"Unknown month '{name}', expected one of: {names}") from None

    @classmethod
    def from_tick(cls, tick: int) -> "Month":
        return cls((tick // TICKS_PER_MONTH) % 12)


class TimeOfTheYear:
    """
    Either the current in-game time, or a fixed month.

    Usage:
        TimeOfTheYear.current().ticks(source)
        TimeOfTheYear.month(Month.TIMBER).ticks(source)
    """

    def __init__(self, month: Optional[Month] = None):
        self._month = month

    @classmethod
    def current(cls) -> "TimeOfTheYear":
        return cls(None)

    @classmethod
    def month(cls, month: Union[Month, str]) -> "TimeOfTheYear":
        if isinstance(month, str):
            month = Month.from_name(month)
        return cls(month)

    @property
    def is_current(self) -> bool:
        return self._month is None

    def ticks(self, source) -> int:
        """Resolve to a year tick, asking the source when set to current."""
        if self._month is None:
            return source.current_tick()
        return self._month.year_tick

    def __repr__(self) -> str:
        if self._month is None:
            return "TimeOfTheYear(current)"
        return f"TimeOfTheYear({self._month.display_name})"

"""Data model for one cell of the weekly grid."""

from dataclasses import dataclass
from typing import Optional

from config.defaults import DAY_NAMES, PERIOD_NAMES


@dataclass(frozen=True)
class TimeSlot:
    """One (day, period) cell of the weekly grid.

    Immutable (frozen=True) so it can be used as dict key / set element.
    """

    # Day index (0=Monday, ..., 5=Saturday)
    day: int
    # Period index (0-based, 0 = "Period 1")
    period: int

    @property
    def day_name(self) -> str:
        return DAY_NAMES[self.day] if self.day < len(DAY_NAMES) else str(self.day)

    @property
    def period_name(self) -> str:
        if self.period < len(PERIOD_NAMES):
            return PERIOD_NAMES[self.period]
        return str(self.period)

    @classmethod
    def from_names(cls, day: str, period: str) -> Optional["TimeSlot"]:
        """Resolve display names ("Monday", "Period 1"); None if unknown."""
        if day not in DAY_NAMES or period not in PERIOD_NAMES:
            return None
        return cls(DAY_NAMES.index(day), PERIOD_NAMES.index(period))

    def __repr__(self) -> str:
        return f"TimeSlot({self.day_name}, {self.period_name})"

    def __str__(self) -> str:
        return f"{self.day_name[:3]} P{self.period + 1}"


def all_slots() -> list[TimeSlot]:
    """All 36 grid slots in scan order (day-major)."""
    return [
        TimeSlot(d, p)
        for d in range(len(DAY_NAMES))
        for p in range(len(PERIOD_NAMES))
    ]

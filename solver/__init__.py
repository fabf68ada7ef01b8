"""Solver module (genetic timetable search)."""

from .individual import Individual, ScheduleEntry
from .scheduler import GenerationResult, TimetableEngine, UnknownBatchError

__all__ = [
    "TimetableEngine",
    "GenerationResult",
    "UnknownBatchError",
    "ScheduleEntry",
    "Individual",
]

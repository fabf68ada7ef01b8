"""Schedule entries, candidate timetables and slot occupancy."""

import copy
from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Iterable, Optional

from models.timeslot import TimeSlot


@dataclass
class ScheduleEntry:
    """One scheduled class (or lunch break) of one batch in one slot."""

    batch_id: str
    subject_id: Optional[str]      # None for lunch breaks
    faculty_id: Optional[str]      # None for lunch breaks / unassigned teacher
    classroom_id: Optional[str]    # None for lunch breaks
    day: int                       # 0-based (0=Monday)
    period: int                    # 0-based (0="Period 1")
    preferred: bool = False        # matches a known slot preference
    fallback_classroom: bool = False
    fixed_slot: bool = False       # placed by a fixed reservation, never moved
    is_break: bool = False
    reservation_id: Optional[str] = None
    start_time: str = ""
    end_time: str = ""
    has_teacher_collision: bool = False
    has_classroom_collision: bool = False
    has_batch_collision: bool = False

    @property
    def slot(self) -> TimeSlot:
        return TimeSlot(self.day, self.period)

    @property
    def pinned(self) -> bool:
        """Reserved entries keep their slot through crossover, mutation and repair."""
        return self.fixed_slot or self.is_break

    @property
    def group_key(self) -> tuple:
        """(batch, subject) for classes, (batch, reservation) for breaks."""
        return (self.batch_id, self.subject_id or self.reservation_id)


@dataclass
class Individual:
    """One complete candidate timetable."""

    entries: list[ScheduleEntry]
    fitness: float = float("-inf")

    def copy(self) -> "Individual":
        return Individual(
            entries=[copy.copy(e) for e in self.entries],
            fitness=self.fitness,
        )

    def entries_for_batch(self, batch_id: str) -> list[ScheduleEntry]:
        return [e for e in self.entries if e.batch_id == batch_id]

    def keyed_entries(self) -> dict[tuple, ScheduleEntry]:
        """Entries keyed by (batch, subject/reservation, n).

        n counts the group's entries in slot order, so two individuals can be
        compared class by class even when their entry lists are ordered
        differently.
        """
        groups: dict[tuple, list[ScheduleEntry]] = defaultdict(list)
        for e in self.entries:
            groups[e.group_key].append(e)
        keyed: dict[tuple, ScheduleEntry] = {}
        for key, group in groups.items():
            group.sort(key=lambda e: (e.day, e.period))
            for n, e in enumerate(group):
                keyed[(*key, n)] = e
        return keyed


def difference_ratio(a: Individual, b: Individual) -> float:
    """Share of classes placed differently (slot or classroom) in a and b."""
    ka = a.keyed_entries()
    kb = b.keyed_entries()
    keys = ka.keys() | kb.keys()
    if not keys:
        return 0.0
    differ = 0
    for k in keys:
        ea, eb = ka.get(k), kb.get(k)
        if ea is None or eb is None:
            differ += 1
        elif (ea.day, ea.period, ea.classroom_id) != (eb.day, eb.period, eb.classroom_id):
            differ += 1
    return differ / len(keys)


class Occupancy:
    """Counts of batch, teacher and classroom bookings per slot.

    Lunch breaks occupy their batch only.
    """

    def __init__(self) -> None:
        self.batch: Counter = Counter()        # (batch_id, slot) -> n
        self.teacher: Counter = Counter()      # (faculty_id, slot) -> n
        self.classroom: Counter = Counter()    # (classroom_id, slot) -> n
        self.classroom_usage: Counter = Counter()  # classroom_id -> n
        self.subject_day: Counter = Counter()  # (batch_id, subject_id, day) -> n

    @classmethod
    def from_entries(
        cls,
        entries: Iterable[ScheduleEntry],
        exclude: Optional[ScheduleEntry] = None,
    ) -> "Occupancy":
        occ = cls()
        for e in entries:
            if e is exclude:
                continue
            occ.add(e)
        return occ

    def add(self, e: ScheduleEntry) -> None:
        slot = e.slot
        self.batch[(e.batch_id, slot)] += 1
        if e.is_break:
            return
        if e.faculty_id:
            self.teacher[(e.faculty_id, slot)] += 1
        if e.classroom_id:
            self.classroom[(e.classroom_id, slot)] += 1
            self.classroom_usage[e.classroom_id] += 1
        if e.subject_id:
            self.subject_day[(e.batch_id, e.subject_id, e.day)] += 1

    def remove(self, e: ScheduleEntry) -> None:
        slot = e.slot
        _decrement(self.batch, (e.batch_id, slot))
        if e.is_break:
            return
        if e.faculty_id:
            _decrement(self.teacher, (e.faculty_id, slot))
        if e.classroom_id:
            _decrement(self.classroom, (e.classroom_id, slot))
            _decrement(self.classroom_usage, e.classroom_id)
        if e.subject_id:
            _decrement(self.subject_day, (e.batch_id, e.subject_id, e.day))

    def batch_free(self, batch_id: str, slot: TimeSlot) -> bool:
        return self.batch[(batch_id, slot)] == 0

    def teacher_free(self, faculty_id: Optional[str], slot: TimeSlot) -> bool:
        return not faculty_id or self.teacher[(faculty_id, slot)] == 0

    def classroom_free(self, classroom_id: Optional[str], slot: TimeSlot) -> bool:
        return not classroom_id or self.classroom[(classroom_id, slot)] == 0


def _decrement(counter: Counter, key) -> None:
    counter[key] -= 1
    if counter[key] <= 0:
        del counter[key]

"""Precomputed lookup structures over one SchedulingData snapshot.

Built once per run, read-only afterwards. Dangling references (unknown
batch, subject, classroom, faculty, day or period) are skipped with a
warning instead of raising.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Optional

from config.defaults import PERIOD_NAMES
from models.constraint import ConstraintType, FixedReservation, ReservationType
from models.scheduling_data import SchedulingData
from models.timeslot import TimeSlot
from solver.individual import Occupancy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Quota:
    weekly_required: int
    daily_max: int


@dataclass(frozen=True)
class SlotDirective:
    """'Place one class of subject X for batch B here' (subject-slot preference)."""

    constraint_id: str
    batch_id: str
    subject_id: str
    slot: TimeSlot


@dataclass(frozen=True)
class ReservedSlot:
    reservation: FixedReservation
    slot: TimeSlot


@dataclass(frozen=True)
class ClassroomChoice:
    classroom_id: Optional[str]
    fallback: bool = False         # not the batch's first choice
    preferred: bool = False        # matches a classroom-slot preference
    outside_subset: bool = False   # outside a restricted batch's allowed set
    conflicting: bool = False      # already booked at this slot


class ConstraintIndex:
    """Quotas, slot preferences and classroom sets of the active batches."""

    def __init__(self, data: SchedulingData, batch_ids: Optional[list[str]] = None) -> None:
        self.data = data
        self.subjects = {s.id: s for s in data.subjects}
        self.faculty = {f.id: f for f in data.faculty}
        self.classrooms = {c.id: c for c in data.classrooms}
        self.classroom_order: list[str] = [c.id for c in data.classrooms]

        wanted = set(batch_ids) if batch_ids is not None else None
        self.batches = {
            b.id: b for b in data.batches if wanted is None or b.id in wanted
        }
        self.batch_order: list[str] = list(self.batches)

        self.quota: dict[str, Quota] = {
            s.id: Quota(s.required_per_week, s.daily_cap) for s in data.subjects
        }
        self.batch_subjects: dict[str, list[str]] = {}
        self.teacher_for: dict[tuple[str, str], str] = {}
        self.allowed_classrooms: dict[str, tuple[str, ...]] = {}

        self.single_slot_constraints: list[SlotDirective] = []
        self.directives_by_batch: dict[str, list[SlotDirective]] = defaultdict(list)
        self.preferred_slots: dict[tuple[str, str], list[TimeSlot]] = defaultdict(list)
        self.classroom_slot_prefs: dict[tuple[str, TimeSlot], str] = {}
        self.teacher_slot_prefs: dict[tuple[str, TimeSlot], set[str]] = defaultdict(set)
        self.teacher_pref_slots: dict[tuple[str, str], list[TimeSlot]] = defaultdict(list)

        self.lunch_slots: dict[str, list[ReservedSlot]] = defaultdict(list)
        self.fixed_slots: dict[str, list[ReservedSlot]] = defaultdict(list)

        self.skipped: list[str] = []

        self._index_batches()
        self._index_constraints()
        self._index_reservations()

        if self.skipped:
            logger.info(f"Constraint index: {len(self.skipped)} dangling references skipped")

    # ─── Build ───

    def _skip(self, message: str) -> None:
        self.skipped.append(message)
        logger.warning(message)

    def _index_batches(self) -> None:
        for b in self.batches.values():
            subjects = []
            for sid in b.subject_ids:
                if sid not in self.subjects:
                    self._skip(f"Batch {b.id}: unknown subject '{sid}' skipped")
                    continue
                subjects.append(sid)
                fid = b.subject_teachers.get(sid)
                if fid is None:
                    continue
                if fid not in self.faculty:
                    self._skip(f"Batch {b.id}: unknown teacher '{fid}' for '{sid}' skipped")
                    continue
                self.teacher_for[(b.id, sid)] = fid
            self.batch_subjects[b.id] = subjects
            self.allowed_classrooms[b.id] = tuple(
                c for c in b.classroom_ids if c in self.classrooms
            )

    def _index_constraints(self) -> None:
        for c in self.data.constraints:
            if c.batch_id not in self.batches:
                # constraints of batches outside this run are simply irrelevant
                if self.data.get_batch(c.batch_id) is None:
                    self._skip(f"Constraint {c.id}: unknown batch '{c.batch_id}'")
                continue
            slot = TimeSlot.from_names(c.day, c.slot)
            if slot is None:
                self._skip(f"Constraint {c.id}: unknown slot '{c.day}'/'{c.slot}'")
                continue

            if c.type == ConstraintType.SUBJECT_SLOT:
                if c.subject_id not in self.subjects:
                    self._skip(f"Constraint {c.id}: unknown subject '{c.subject_id}'")
                    continue
                directive = SlotDirective(c.id, c.batch_id, c.subject_id, slot)
                self.single_slot_constraints.append(directive)
                self.directives_by_batch[c.batch_id].append(directive)
                self.preferred_slots[(c.batch_id, c.subject_id)].append(slot)

            elif c.type == ConstraintType.CLASSROOM_SLOT:
                if c.classroom_id not in self.classrooms:
                    self._skip(f"Constraint {c.id}: unknown classroom '{c.classroom_id}'")
                    continue
                # first preference for a (batch, slot) wins
                self.classroom_slot_prefs.setdefault((c.batch_id, slot), c.classroom_id)

            elif c.type == ConstraintType.TEACHER_SLOT:
                if c.faculty_id not in self.faculty:
                    self._skip(f"Constraint {c.id}: unknown teacher '{c.faculty_id}'")
                    continue
                self.teacher_slot_prefs[(c.batch_id, slot)].add(c.faculty_id)
                self.teacher_pref_slots[(c.batch_id, c.faculty_id)].append(slot)

    def _index_reservations(self) -> None:
        for r in self.data.reservations:
            if r.batch_id not in self.batches:
                if self.data.get_batch(r.batch_id) is None:
                    self._skip(f"Reservation {r.id}: unknown batch '{r.batch_id}'")
                continue
            if r.type == ReservationType.FIXED_SLOT and r.subject_id not in self.subjects:
                self._skip(f"Reservation {r.id}: fixed slot without a valid subject")
                continue
            for period in r.slots:
                slot = TimeSlot.from_names(r.day, period)
                if slot is None:
                    self._skip(f"Reservation {r.id}: unknown slot '{r.day}'/'{period}'")
                    continue
                target = self.lunch_slots if r.type == ReservationType.LUNCH_BREAK else self.fixed_slots
                target[r.batch_id].append(ReservedSlot(r, slot))

    # ─── Lookup ───

    def quota_for(self, subject_id: Optional[str]) -> Quota:
        return self.quota.get(subject_id, Quota(0, len(PERIOD_NAMES)))

    def daily_cap(self, subject_id: Optional[str]) -> int:
        return self.quota_for(subject_id).daily_max

    def allowed(self, batch_id: str) -> tuple[str, ...]:
        return self.allowed_classrooms.get(batch_id, ())

    def is_allowed_classroom(self, batch_id: str, classroom_id: Optional[str]) -> bool:
        allowed = self.allowed(batch_id)
        return not allowed or classroom_id in allowed

    def is_known_preference(
        self,
        batch_id: str,
        subject_id: Optional[str],
        faculty_id: Optional[str],
        slot: TimeSlot,
        classroom_id: Optional[str] = None,
    ) -> bool:
        """True if any subject-, teacher- or classroom-slot preference matches."""
        if subject_id and slot in self.preferred_slots.get((batch_id, subject_id), ()):
            return True
        if faculty_id and faculty_id in self.teacher_slot_prefs.get((batch_id, slot), ()):
            return True
        pref = self.classroom_slot_prefs.get((batch_id, slot))
        return pref is not None and pref == classroom_id

    # ─── Classroom choice ───

    def choose_classroom(
        self,
        batch_id: str,
        slot: TimeSlot,
        occ: Occupancy,
        allow_outside: bool = False,
    ) -> ClassroomChoice:
        """Pick a classroom for one class of batch_id at slot.

        Order: classroom-slot preference (if free and allowed), least-used free
        classroom of the batch's subset, least-used free classroom overall.
        A restricted batch with a fully booked subset gets its first allowed
        classroom flagged as conflicting, unless allow_outside permits a free
        classroom outside the subset.
        """
        allowed = self.allowed(batch_id)

        pref = self.classroom_slot_prefs.get((batch_id, slot))
        if pref is not None and occ.classroom_free(pref, slot) and (not allowed or pref in allowed):
            return ClassroomChoice(pref, preferred=True)

        if allowed:
            free = [c for c in allowed if occ.classroom_free(c, slot)]
            if free:
                return ClassroomChoice(self._least_used(free, occ))
            if allow_outside:
                outside = [
                    c for c in self.classroom_order
                    if c not in allowed and occ.classroom_free(c, slot)
                ]
                if outside:
                    return ClassroomChoice(
                        self._least_used(outside, occ), fallback=True, outside_subset=True
                    )
            return ClassroomChoice(allowed[0], fallback=True, conflicting=True)

        if not self.classroom_order:
            return ClassroomChoice(None, fallback=True)
        free = [c for c in self.classroom_order if occ.classroom_free(c, slot)]
        if free:
            return ClassroomChoice(self._least_used(free, occ))
        return ClassroomChoice(
            self._least_used(self.classroom_order, occ), fallback=True, conflicting=True
        )

    @staticmethod
    def _least_used(candidates: list[str], occ: Occupancy) -> str:
        # min() keeps the first of equally used classrooms
        return min(candidates, key=lambda c: occ.classroom_usage[c])

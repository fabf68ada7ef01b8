"""Constructive generation of one candidate timetable.

Per batch: reservations first, then subject-slot directives, then the
remaining weekly quota (teacher-slot preferences, then a shuffled spread
over the week). The assembled individual is repaired before it is returned.
"""

import logging
import random
from collections import Counter
from typing import Optional

from config.defaults import DAY_NAMES, PERIOD_NAMES
from models.timeslot import TimeSlot
from solver.constraint_index import ConstraintIndex, ReservedSlot
from solver.individual import Individual, Occupancy, ScheduleEntry
from solver.repair import ConflictRepairer

logger = logging.getLogger(__name__)


class IndividualBuilder:
    """Builds randomised, repaired individuals from a ConstraintIndex."""

    def __init__(self, index: ConstraintIndex, repairer: ConflictRepairer, rng: random.Random) -> None:
        self.index = index
        self.repairer = repairer
        self.rng = rng

    def build(self) -> Individual:
        entries: list[ScheduleEntry] = []
        occ = Occupancy()

        for batch_id in self.index.batch_order:
            counts: Counter = Counter()  # subject_id -> classes placed this week
            self._place_reservations(batch_id, entries, occ, counts)
            self._apply_directives(batch_id, entries, occ, counts)
            self._fill_quotas(batch_id, entries, occ, counts)

        individual = Individual(entries)
        self.repairer.resolve_conflicts(individual)
        self.repairer.validate_and_fix_batch_classrooms(individual)
        self.repairer.balance_classroom_distribution(individual)
        self.repairer.mark_collisions(individual)
        return individual

    # ─── Placement ───

    def _place(
        self,
        entries: list[ScheduleEntry],
        occ: Occupancy,
        batch_id: str,
        subject_id: Optional[str],
        slot: TimeSlot,
        preferred: bool = False,
        reserved: Optional[ReservedSlot] = None,
    ) -> ScheduleEntry:
        faculty_id = self.index.teacher_for.get((batch_id, subject_id)) if subject_id else None
        room = self.index.choose_classroom(batch_id, slot, occ)
        entry = ScheduleEntry(
            batch_id=batch_id,
            subject_id=subject_id,
            faculty_id=faculty_id,
            classroom_id=room.classroom_id,
            day=slot.day,
            period=slot.period,
            preferred=preferred or room.preferred,
            fallback_classroom=room.fallback,
        )
        if reserved is not None:
            entry.fixed_slot = True
            entry.preferred = True
            entry.reservation_id = reserved.reservation.id
            entry.start_time = reserved.reservation.start_time
            entry.end_time = reserved.reservation.end_time
        entries.append(entry)
        occ.add(entry)
        return entry

    def _place_reservations(self, batch_id, entries, occ, counts) -> None:
        for reserved in self.index.lunch_slots.get(batch_id, ()):
            if not occ.batch_free(batch_id, reserved.slot):
                logger.warning(
                    f"Batch {batch_id}: reservation {reserved.reservation.id} "
                    f"overlaps {reserved.slot}, skipped"
                )
                continue
            entry = ScheduleEntry(
                batch_id=batch_id,
                subject_id=None,
                faculty_id=None,
                classroom_id=None,
                day=reserved.slot.day,
                period=reserved.slot.period,
                preferred=True,
                fixed_slot=True,
                is_break=True,
                reservation_id=reserved.reservation.id,
                start_time=reserved.reservation.start_time,
                end_time=reserved.reservation.end_time,
            )
            entries.append(entry)
            occ.add(entry)

        for reserved in self.index.fixed_slots.get(batch_id, ()):
            if not occ.batch_free(batch_id, reserved.slot):
                logger.warning(
                    f"Batch {batch_id}: reservation {reserved.reservation.id} "
                    f"overlaps {reserved.slot}, skipped"
                )
                continue
            subject_id = reserved.reservation.subject_id
            self._place(entries, occ, batch_id, subject_id, reserved.slot, reserved=reserved)
            counts[subject_id] += 1

    def _apply_directives(self, batch_id, entries, occ, counts) -> None:
        """At most one class per directive, never beyond the quotas."""
        for directive in self.index.directives_by_batch.get(batch_id, ()):
            subject_id = directive.subject_id
            slot = directive.slot
            quota = self.index.quota_for(subject_id)
            if counts[subject_id] >= quota.weekly_required:
                continue
            if occ.subject_day[(batch_id, subject_id, slot.day)] >= quota.daily_max:
                continue
            if not occ.batch_free(batch_id, slot):
                continue
            if not occ.teacher_free(self.index.teacher_for.get((batch_id, subject_id)), slot):
                continue
            if self.index.choose_classroom(batch_id, slot, occ).conflicting:
                continue
            self._place(entries, occ, batch_id, subject_id, slot, preferred=True)
            counts[subject_id] += 1

    def _fill_quotas(self, batch_id, entries, occ, counts) -> None:
        for subject_id in self.index.batch_subjects.get(batch_id, ()):
            quota = self.index.quota_for(subject_id)
            remaining = quota.weekly_required - counts[subject_id]
            if remaining <= 0:
                continue
            faculty_id = self.index.teacher_for.get((batch_id, subject_id))

            # teacher-slot preferences of the assigned teacher
            if faculty_id:
                for slot in self.index.teacher_pref_slots.get((batch_id, faculty_id), ()):
                    if remaining == 0:
                        break
                    if occ.subject_day[(batch_id, subject_id, slot.day)] >= quota.daily_max:
                        continue
                    if occ.batch_free(batch_id, slot) and occ.teacher_free(faculty_id, slot):
                        self._place(entries, occ, batch_id, subject_id, slot, preferred=True)
                        remaining -= 1

            # spread the rest over a shuffled week, one class per day and pass
            days = list(range(len(DAY_NAMES)))
            while remaining > 0:
                self.rng.shuffle(days)
                placed = 0
                for day in days:
                    if remaining == 0:
                        break
                    if occ.subject_day[(batch_id, subject_id, day)] >= quota.daily_max:
                        continue
                    slot = self._pick_period(batch_id, faculty_id, day, occ)
                    if slot is None:
                        continue
                    self._place(entries, occ, batch_id, subject_id, slot)
                    remaining -= 1
                    placed += 1
                if placed == 0:
                    logger.debug(
                        f"Batch {batch_id}: {remaining} classes of {subject_id} left unplaced"
                    )
                    break

    def _pick_period(
        self, batch_id: str, faculty_id: Optional[str], day: int, occ: Occupancy
    ) -> Optional[TimeSlot]:
        """Random free period of day; prefers periods free for teacher and a classroom."""
        free = [
            TimeSlot(day, p) for p in range(len(PERIOD_NAMES))
            if occ.batch_free(batch_id, TimeSlot(day, p))
        ]
        if not free:
            return None
        teacher_ok = [s for s in free if occ.teacher_free(faculty_id, s)]
        clean = [
            s for s in teacher_ok
            if not self.index.choose_classroom(batch_id, s, occ).conflicting
        ]
        for tier in (clean, teacher_ok, free):
            if tier:
                return self.rng.choice(tier)
        return None

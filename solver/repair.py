"""Conflict detection and repair passes over one Individual.

Every pass mutates only the Individual it is given. Pinned entries (lunch
breaks, fixed reservations) never change their slot.
"""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Optional

from config.defaults import DAY_NAMES
from config.schema import RepairConfig
from models.timeslot import TimeSlot, all_slots
from solver.constraint_index import ConstraintIndex
from solver.individual import Individual, Occupancy, ScheduleEntry

logger = logging.getLogger(__name__)


CONFLICT_PRIORITY = {"batch": 0, "teacher": 1, "classroom": 2}

PREFERENCE_BONUS = 50.0
DAILY_CAP_BONUS = 20.0
OUTSIDE_SUBSET_PENALTY = -1000.0


@dataclass(frozen=True)
class Conflict:
    kind: str      # "batch" | "teacher" | "classroom"
    slot: TimeSlot
    first: int     # index of the entry seen first
    second: int    # index of the entry seen second


@dataclass(frozen=True)
class SlotChoice:
    slot: TimeSlot
    classroom_id: Optional[str]
    score: float
    fallback: bool = False


class ConflictRepairer:
    """Detects double bookings and relocates, reassigns or removes entries."""

    def __init__(self, index: ConstraintIndex, config: Optional[RepairConfig] = None) -> None:
        self.index = index
        self.config = config or RepairConfig()

    # ─── Detection ───

    def detect_conflicts(self, individual: Individual) -> list[Conflict]:
        """All double bookings, batch conflicts first, then teacher, then classroom."""
        seen_batch: dict[tuple, int] = {}
        seen_teacher: dict[tuple, int] = {}
        seen_classroom: dict[tuple, int] = {}
        conflicts: list[Conflict] = []

        for i, e in enumerate(individual.entries):
            slot = e.slot
            key = (e.batch_id, slot)
            if key in seen_batch:
                conflicts.append(Conflict("batch", slot, seen_batch[key], i))
            else:
                seen_batch[key] = i
            if e.is_break:
                continue
            if e.faculty_id:
                key = (e.faculty_id, slot)
                if key in seen_teacher:
                    conflicts.append(Conflict("teacher", slot, seen_teacher[key], i))
                else:
                    seen_teacher[key] = i
            if e.classroom_id:
                key = (e.classroom_id, slot)
                if key in seen_classroom:
                    conflicts.append(Conflict("classroom", slot, seen_classroom[key], i))
                else:
                    seen_classroom[key] = i

        conflicts.sort(key=lambda c: CONFLICT_PRIORITY[c.kind])
        return conflicts

    # ─── Resolution ───

    def resolve_conflicts(self, individual: Individual) -> int:
        """Relocate conflicting entries, up to the retry budget.

        Returns the number of conflicts left afterwards.
        """
        for attempt in range(self.config.conflict_retry_budget):
            conflicts = self.detect_conflicts(individual)
            if not conflicts:
                return 0
            moved = 0
            handled: set[int] = set()
            for c in conflicts:
                pos = c.second
                if individual.entries[pos].pinned:
                    pos = c.first
                entry = individual.entries[pos]
                if entry.pinned or pos in handled:
                    continue
                handled.add(pos)
                occ = Occupancy.from_entries(individual.entries, exclude=entry)
                if not self._clashes(entry, occ):
                    continue  # already fixed by an earlier move
                choice = self.find_best_alternative_slot(individual, entry, occ=occ)
                if choice is None:
                    continue
                self.move_entry(entry, choice.slot, choice.classroom_id, choice.fallback)
                moved += 1
            logger.debug(
                f"Repair round {attempt + 1}: {len(conflicts)} conflicts, {moved} moved"
            )
            if moved == 0:
                break
        remaining = len(self.detect_conflicts(individual))
        if remaining:
            logger.debug(f"{remaining} conflicts left after repair")
        return remaining

    def find_best_alternative_slot(
        self,
        individual: Individual,
        entry: ScheduleEntry,
        occ: Optional[Occupancy] = None,
        days: Optional[set[int]] = None,
    ) -> Optional[SlotChoice]:
        """Best conflict-free slot for entry, or None.

        Slots clashing with the batch, the teacher or every usable classroom
        are excluded. Score: -1000 for a classroom outside the batch's subset,
        +50 for a known slot preference, +20 while the day stays under the
        subject's daily cap. Ties keep scan order.
        """
        if occ is None:
            occ = Occupancy.from_entries(individual.entries, exclude=entry)
        cap = self.index.daily_cap(entry.subject_id)

        best: Optional[SlotChoice] = None
        for slot in all_slots():
            if days is not None and slot.day not in days:
                continue
            if not occ.batch_free(entry.batch_id, slot):
                continue
            if not occ.teacher_free(entry.faculty_id, slot):
                continue
            room = self.index.choose_classroom(entry.batch_id, slot, occ, allow_outside=True)
            if room.conflicting:
                continue

            score = 0.0
            if room.outside_subset:
                score += OUTSIDE_SUBSET_PENALTY
            if self.index.is_known_preference(
                entry.batch_id, entry.subject_id, entry.faculty_id, slot, room.classroom_id
            ):
                score += PREFERENCE_BONUS
            if entry.subject_id and occ.subject_day[(entry.batch_id, entry.subject_id, slot.day)] < cap:
                score += DAILY_CAP_BONUS

            if best is None or score > best.score:
                best = SlotChoice(slot, room.classroom_id, score, room.fallback)
        return best

    def move_entry(
        self,
        entry: ScheduleEntry,
        slot: TimeSlot,
        classroom_id: Optional[str],
        fallback: bool = False,
    ) -> None:
        """Move entry and refresh its preferred flag."""
        entry.day = slot.day
        entry.period = slot.period
        entry.classroom_id = classroom_id
        entry.fallback_classroom = fallback
        entry.preferred = self.index.is_known_preference(
            entry.batch_id, entry.subject_id, entry.faculty_id, slot, classroom_id
        )

    @staticmethod
    def _clashes(entry: ScheduleEntry, occ: Occupancy) -> bool:
        slot = entry.slot
        if not occ.batch_free(entry.batch_id, slot):
            return True
        if entry.is_break:
            return False
        return not occ.teacher_free(entry.faculty_id, slot) or not occ.classroom_free(
            entry.classroom_id, slot
        )

    # ─── Classroom restriction ───

    def validate_and_fix_batch_classrooms(self, individual: Individual) -> int:
        """Move entries of restricted batches back into their allowed classrooms.

        Falls back to the first allowed classroom when all are booked at the
        entry's slot. Returns the number of reassigned entries; 0 on an
        already valid individual.
        """
        fixed = 0
        for entry in individual.entries:
            if entry.is_break:
                continue
            allowed = self.index.allowed(entry.batch_id)
            if not allowed or entry.classroom_id in allowed:
                continue
            occ = Occupancy.from_entries(individual.entries, exclude=entry)
            free = [c for c in allowed if occ.classroom_free(c, entry.slot)]
            if free:
                entry.classroom_id = min(free, key=lambda c: occ.classroom_usage[c])
                entry.fallback_classroom = False
            else:
                entry.classroom_id = allowed[0]
                entry.fallback_classroom = True
            fixed += 1
        if fixed:
            logger.debug(f"{fixed} entries moved into their batch's classrooms")
        return fixed

    def balance_classroom_distribution(self, individual: Individual) -> int:
        """Even out classroom usage within each restricted batch's subset."""
        changed = 0
        occ = Occupancy.from_entries(individual.entries)
        for batch_id in self.index.batch_order:
            allowed = self.index.allowed(batch_id)
            if len(allowed) < 2:
                continue
            entries = [
                e for e in individual.entries
                if e.batch_id == batch_id and not e.pinned and e.classroom_id in allowed
            ]
            usage = Counter({c: 0 for c in allowed})
            usage.update(e.classroom_id for e in entries)

            for e in entries:
                if self.index.classroom_slot_prefs.get((batch_id, e.slot)) == e.classroom_id:
                    continue
                target = min(allowed, key=lambda c: usage[c])
                if usage[e.classroom_id] - usage[target] <= 1:
                    continue
                if not occ.classroom_free(target, e.slot):
                    continue
                occ.remove(e)
                usage[e.classroom_id] -= 1
                e.classroom_id = target
                e.fallback_classroom = False
                usage[target] += 1
                occ.add(e)
                changed += 1
        return changed

    # ─── Quotas ───

    def validate_and_fix_over_scheduling(self, individual: Individual) -> int:
        """Enforce daily caps and weekly quotas per (batch, subject).

        A day's surplus class is first moved to a day with spare capacity
        (when relocate_daily_excess is set), otherwise removed. Weekly
        surplus is removed. Preferred entries are removed last, pinned
        entries never. Returns the number of removed entries.
        """
        groups: dict[tuple, list[ScheduleEntry]] = defaultdict(list)
        for e in individual.entries:
            if e.subject_id and not e.is_break:
                groups[(e.batch_id, e.subject_id)].append(e)

        removed: set[int] = set()
        relocated = 0
        for (batch_id, subject_id), group in groups.items():
            quota = self.index.quota_for(subject_id)

            per_day: dict[int, list[ScheduleEntry]] = defaultdict(list)
            for e in group:
                per_day[e.day].append(e)
            for day in sorted(per_day):
                day_entries = per_day[day]
                excess = len(day_entries) - quota.daily_max
                if excess <= 0:
                    continue
                for e in self._removal_order(day_entries)[:excess]:
                    if e.pinned:
                        continue
                    if self.config.relocate_daily_excess and self._relocate_to_spare_day(
                        individual, e, per_day, quota.daily_max, removed
                    ):
                        relocated += 1
                        continue
                    removed.add(id(e))

            alive = [e for e in group if id(e) not in removed]
            excess = len(alive) - quota.weekly_required
            if excess > 0:
                for e in self._removal_order(alive)[:excess]:
                    if not e.pinned:
                        removed.add(id(e))

        if removed:
            individual.entries = [e for e in individual.entries if id(e) not in removed]
            logger.debug(f"Over-scheduling: {len(removed)} removed, {relocated} relocated")
        return len(removed)

    def _relocate_to_spare_day(
        self,
        individual: Individual,
        entry: ScheduleEntry,
        per_day: dict[int, list[ScheduleEntry]],
        cap: int,
        removed: set[int],
    ) -> bool:
        spare = {d for d in range(len(DAY_NAMES)) if len(per_day.get(d, ())) < cap}
        if not spare:
            return False
        alive = [e for e in individual.entries if id(e) not in removed]
        occ = Occupancy.from_entries(alive, exclude=entry)
        choice = self.find_best_alternative_slot(individual, entry, occ=occ, days=spare)
        if choice is None or choice.score < 0:
            return False
        per_day[entry.day].remove(entry)
        self.move_entry(entry, choice.slot, choice.classroom_id, choice.fallback)
        per_day[entry.day].append(entry)
        return True

    @staticmethod
    def _removal_order(entries: list[ScheduleEntry]) -> list[ScheduleEntry]:
        """Entries to drop first: plain before preferred before pinned, later before earlier."""
        ranked = list(enumerate(entries))
        ranked.sort(key=lambda p: (p[1].pinned, p[1].preferred, -p[0]))
        return [e for _, e in ranked]

    # ─── Final pass ───

    def final_repair(self, individual: Individual) -> Individual:
        """Conflict repair, quota enforcement, classroom restriction, collision flags."""
        self.resolve_conflicts(individual)
        self.validate_and_fix_over_scheduling(individual)
        self.validate_and_fix_batch_classrooms(individual)
        self.mark_collisions(individual)
        return individual

    @staticmethod
    def mark_collisions(individual: Individual) -> int:
        """Set the has_*_collision flags; returns the number of flagged entries."""
        batch = Counter()
        teacher = Counter()
        classroom = Counter()
        for e in individual.entries:
            batch[(e.batch_id, e.slot)] += 1
            if e.is_break:
                continue
            if e.faculty_id:
                teacher[(e.faculty_id, e.slot)] += 1
            if e.classroom_id:
                classroom[(e.classroom_id, e.slot)] += 1

        flagged = 0
        for e in individual.entries:
            e.has_batch_collision = batch[(e.batch_id, e.slot)] > 1
            e.has_teacher_collision = (
                not e.is_break and bool(e.faculty_id) and teacher[(e.faculty_id, e.slot)] > 1
            )
            e.has_classroom_collision = (
                not e.is_break and bool(e.classroom_id) and classroom[(e.classroom_id, e.slot)] > 1
            )
            if e.has_batch_collision or e.has_teacher_collision or e.has_classroom_collision:
                flagged += 1
        return flagged

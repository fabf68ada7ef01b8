"""Weighted multi-objective fitness of an Individual."""

from collections import Counter
from typing import Optional

from pydantic import BaseModel

from config.defaults import GRID_SIZE
from config.schema import FitnessWeights
from solver.constraint_index import ConstraintIndex
from solver.individual import Individual


class FitnessBreakdown(BaseModel):
    """Objective values and the counts they were computed from."""

    conflicts: float = 0.0
    constraint_violations: float = 0.0
    preference_satisfaction: float = 0.0
    load_balance: float = 0.0
    resource_utilization: float = 0.0   # percent of the batches' grids occupied
    penalties: float = 0.0
    total: float = 0.0

    batch_clashes: int = 0
    teacher_clashes: int = 0
    classroom_clashes: int = 0
    disallowed_classrooms: int = 0
    unmet_classroom_preferences: int = 0
    satisfied_directives: int = 0
    unresolved_directives: int = 0
    preferred_entries: int = 0


class FitnessEvaluator:
    """Scores individuals against one ConstraintIndex. Higher is better."""

    def __init__(self, index: ConstraintIndex, weights: Optional[FitnessWeights] = None) -> None:
        self.index = index
        self.w = weights or FitnessWeights()

    def evaluate(self, individual: Individual) -> FitnessBreakdown:
        """Score individual and store the total in individual.fitness."""
        index = self.index
        w = self.w

        batch_use: Counter = Counter()
        teacher_use: Counter = Counter()
        classroom_use: Counter = Counter()
        weekly: Counter = Counter()
        daily: Counter = Counter()
        placed: set[tuple] = set()

        b = FitnessBreakdown()
        for e in individual.entries:
            slot = e.slot
            batch_use[(e.batch_id, slot)] += 1
            if batch_use[(e.batch_id, slot)] > 1:
                b.batch_clashes += 1
            if e.preferred and not e.is_break:
                b.preferred_entries += 1
            if e.is_break:
                continue
            if e.faculty_id:
                teacher_use[(e.faculty_id, slot)] += 1
                if teacher_use[(e.faculty_id, slot)] > 1:
                    b.teacher_clashes += 1
            if e.classroom_id:
                classroom_use[(e.classroom_id, slot)] += 1
                if classroom_use[(e.classroom_id, slot)] > 1:
                    b.classroom_clashes += 1
                if not index.is_allowed_classroom(e.batch_id, e.classroom_id):
                    b.disallowed_classrooms += 1
            pref = index.classroom_slot_prefs.get((e.batch_id, slot))
            if pref is not None and e.classroom_id != pref:
                b.unmet_classroom_preferences += 1
            if e.subject_id:
                weekly[(e.batch_id, e.subject_id)] += 1
                daily[(e.batch_id, e.subject_id, e.day)] += 1
                placed.add((e.batch_id, e.subject_id, slot))

        for d in index.single_slot_constraints:
            if (d.batch_id, d.subject_id, d.slot) in placed:
                b.satisfied_directives += 1
        b.unresolved_directives = len(index.single_slot_constraints) - b.satisfied_directives

        b.conflicts = -(
            w.batch_clash * b.batch_clashes
            + w.classroom_clash * b.classroom_clashes
            + w.teacher_clash * b.teacher_clashes
        )
        b.constraint_violations = (
            w.directive_bonus * b.satisfied_directives
            - w.disallowed_classroom * b.disallowed_classrooms
            - w.unmet_classroom_preference * b.unmet_classroom_preferences
        )
        b.preference_satisfaction = w.preferred_bonus * b.preferred_entries
        b.load_balance = self._load_balance(weekly, daily)

        if index.batch_order:
            b.resource_utilization = len(batch_use) / (GRID_SIZE * len(index.batch_order)) * 100

        b.penalties = -(
            w.teacher_collision_penalty * b.teacher_clashes
            + w.classroom_constraint_penalty * b.disallowed_classrooms
            + w.unresolved_directive_penalty * b.unresolved_directives
        )
        b.total = (
            w.weight_conflicts * b.conflicts
            + w.weight_constraint_violations * b.constraint_violations
            + w.weight_preference * b.preference_satisfaction
            + w.weight_load_balance * b.load_balance
            + w.weight_utilization * b.resource_utilization
            + b.penalties
        )
        individual.fitness = b.total
        return b

    def _load_balance(self, weekly: Counter, daily: Counter) -> float:
        score = 0.0
        for (batch_id, subject_id, _day), n in daily.items():
            over = n - self.index.daily_cap(subject_id)
            if over > 0:
                score -= self.w.daily_excess * over

        pairs = set(weekly)
        for batch_id in self.index.batch_order:
            for subject_id in self.index.batch_subjects.get(batch_id, ()):
                pairs.add((batch_id, subject_id))
        for batch_id, subject_id in pairs:
            required = self.index.quota_for(subject_id).weekly_required
            n = weekly[(batch_id, subject_id)]
            if n < required:
                score -= self.w.weekly_shortfall * (required - n)
            elif n > required:
                score -= self.w.weekly_excess * (n - required)
        return score

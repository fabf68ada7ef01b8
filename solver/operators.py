"""Selection, crossover and mutation operators.

All randomness comes from the random.Random passed in; operators never
touch pinned entries.
"""

import copy
import random
from typing import Callable

from models.timeslot import TimeSlot, all_slots
from solver.constraint_index import ConstraintIndex
from solver.individual import Individual, Occupancy, ScheduleEntry
from solver.repair import ConflictRepairer


# ─── Selection ───

def tournament_select(population: list[Individual], rng: random.Random, size: int) -> Individual:
    """Fittest of `size` randomly drawn individuals."""
    contenders = rng.sample(population, min(size, len(population)))
    return max(contenders, key=lambda ind: ind.fitness)


# ─── Crossover ───

def uniform_crossover(p1: Individual, p2: Individual, rng: random.Random) -> Individual:
    """Per class, take slot and classroom from either parent with equal odds."""
    child = p1.copy()
    other = p2.keyed_entries()
    for key, entry in child.keyed_entries().items():
        donor = other.get(key)
        if donor is None or entry.pinned or donor.pinned:
            continue
        if rng.random() < 0.5:
            entry.day = donor.day
            entry.period = donor.period
            entry.classroom_id = donor.classroom_id
            entry.fallback_classroom = donor.fallback_classroom
            entry.preferred = donor.preferred
    return child


def batch_crossover(p1: Individual, p2: Individual, rng: random.Random) -> Individual:
    """Child = p1 with one whole batch taken from p2."""
    batch_ids = sorted({e.batch_id for e in p2.entries})
    if not batch_ids:
        return p1.copy()
    batch_id = rng.choice(batch_ids)
    entries = [copy.copy(e) for e in p1.entries if e.batch_id != batch_id]
    entries += [copy.copy(e) for e in p2.entries if e.batch_id == batch_id]
    return Individual(entries)


def subject_crossover(p1: Individual, p2: Individual, rng: random.Random) -> Individual:
    """Child = p1 with the classes of one (batch, subject) taken from p2."""
    pairs = sorted({
        (e.batch_id, e.subject_id) for e in p2.entries if e.subject_id and not e.pinned
    })
    if not pairs:
        return p1.copy()
    pair = rng.choice(pairs)

    def in_pair(e: ScheduleEntry) -> bool:
        return not e.pinned and (e.batch_id, e.subject_id) == pair

    entries = [copy.copy(e) for e in p1.entries if not in_pair(e)]
    entries += [copy.copy(e) for e in p2.entries if in_pair(e)]
    return Individual(entries)


CROSSOVER_STRATEGIES: tuple[Callable[[Individual, Individual, random.Random], Individual], ...] = (
    uniform_crossover,
    batch_crossover,
    subject_crossover,
)


def decayed_mutation_rate(base: float, floor: float, generation: int, generations: int) -> float:
    """Linear decay from base (first generation) towards floor."""
    if generations <= 1:
        return base
    progress = generation / (generations - 1)
    return max(floor, base * (1.0 - progress))


# ─── Mutation ───

class Mutator:
    """Per-entry mutation with five operators, followed by conflict repair."""

    DIRECTIVE_SNAP_PROBABILITY = 0.9

    def __init__(self, index: ConstraintIndex, repairer: ConflictRepairer, rng: random.Random) -> None:
        self.index = index
        self.repairer = repairer
        self.rng = rng
        self.operators: tuple[Callable[[Individual, ScheduleEntry], bool], ...] = (
            self.random_reslot,
            self.swap_with_other,
            self.guided_reslot,
            self.reassign_classroom,
            self.directive_reslot,
        )

    def mutate(self, individual: Individual, rate: float) -> int:
        """Mutate each unpinned entry with probability rate. Returns the number changed."""
        changed = 0
        for entry in list(individual.entries):
            if entry.pinned or self.rng.random() >= rate:
                continue
            op = self.rng.choice(self.operators)
            if op(individual, entry):
                changed += 1
        if changed:
            self.repairer.resolve_conflicts(individual)
        return changed

    def _reslot(self, individual: Individual, entry: ScheduleEntry, slot: TimeSlot) -> bool:
        if slot == entry.slot:
            return False
        occ = Occupancy.from_entries(individual.entries, exclude=entry)
        room = self.index.choose_classroom(entry.batch_id, slot, occ)
        self.repairer.move_entry(entry, slot, room.classroom_id, room.fallback)
        return True

    def random_reslot(self, individual: Individual, entry: ScheduleEntry) -> bool:
        return self._reslot(individual, entry, self.rng.choice(all_slots()))

    def swap_with_other(self, individual: Individual, entry: ScheduleEntry) -> bool:
        """Swap slot and classroom with another class of the same batch."""
        others = [
            e for e in individual.entries
            if e is not entry and e.batch_id == entry.batch_id and not e.pinned
        ]
        if not others:
            return False
        other = self.rng.choice(others)
        a_slot, a_room, a_fb = entry.slot, entry.classroom_id, entry.fallback_classroom
        self.repairer.move_entry(entry, other.slot, other.classroom_id, other.fallback_classroom)
        self.repairer.move_entry(other, a_slot, a_room, a_fb)
        return True

    def guided_reslot(self, individual: Individual, entry: ScheduleEntry) -> bool:
        choice = self.repairer.find_best_alternative_slot(individual, entry)
        if choice is None:
            return False
        self.repairer.move_entry(entry, choice.slot, choice.classroom_id, choice.fallback)
        return True

    def reassign_classroom(self, individual: Individual, entry: ScheduleEntry) -> bool:
        """Random free classroom of the batch's subset (any classroom if unrestricted)."""
        pool = self.index.allowed(entry.batch_id) or tuple(self.index.classroom_order)
        occ = Occupancy.from_entries(individual.entries, exclude=entry)
        free = [c for c in pool if c != entry.classroom_id and occ.classroom_free(c, entry.slot)]
        if not free:
            return False
        self.repairer.move_entry(entry, entry.slot, self.rng.choice(free))
        return True

    def directive_reslot(self, individual: Individual, entry: ScheduleEntry) -> bool:
        """Snap to a subject-slot directive of this (batch, subject) when one exists."""
        targets = self.index.preferred_slots.get((entry.batch_id, entry.subject_id), ())
        if targets and self.rng.random() < self.DIRECTIVE_SNAP_PROBABILITY:
            return self._reslot(individual, entry, self.rng.choice(targets))
        return self.random_reslot(individual, entry)

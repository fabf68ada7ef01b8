"""Genetic search loop.

Population of repaired individuals, tournament selection, three crossover
strategies, decaying mutation rate, elitism, diversity injection,
stagnation restarts and a closing local search on the best individual.
Stops after a fixed number of generations.
"""

import logging
import math
import random
from typing import Callable, Optional

from pydantic import BaseModel

from config.schema import EngineConfig
from solver.constraint_index import ConstraintIndex
from solver.construction import IndividualBuilder
from solver.fitness import FitnessEvaluator
from solver.individual import Individual, difference_ratio
from solver.operators import (
    CROSSOVER_STRATEGIES,
    Mutator,
    decayed_mutation_rate,
    tournament_select,
)
from solver.repair import ConflictRepairer

logger = logging.getLogger(__name__)


class GenerationStats(BaseModel):
    """One row of the search history."""

    generation: int
    best_fitness: float
    average_fitness: float
    diversity: float
    mutation_rate: float
    injected: int = 0       # fresh individuals added this generation


ProgressCallback = Callable[[GenerationStats], None]


class GeneticSearch:
    """Evolves timetables for the batches of one ConstraintIndex.

    Usage:
        search = GeneticSearch(index, config, random.Random(42))
        best = search.run()
    """

    def __init__(
        self,
        index: ConstraintIndex,
        config: EngineConfig,
        rng: random.Random,
        on_generation: Optional[ProgressCallback] = None,
    ) -> None:
        self.index = index
        self.config = config
        self.params = config.genetic
        self.rng = rng
        self.on_generation = on_generation

        self.repairer = ConflictRepairer(index, config.repair)
        self.evaluator = FitnessEvaluator(index, config.fitness)
        self.builder = IndividualBuilder(index, self.repairer, rng)
        self.mutator = Mutator(index, self.repairer, rng)

        self.history: list[GenerationStats] = []

    # ─── Public API ───────────────────────────────────────────────────────────

    def run(self) -> Individual:
        p = self.params
        population = [self._fresh() for _ in range(p.population_size)]
        population.sort(key=lambda ind: ind.fitness, reverse=True)
        best = population[0].copy()
        last_best = best.fitness
        stagnant = 0

        logger.info(
            f"Genetic search: population {p.population_size}, "
            f"{p.generations} generations, initial best {best.fitness:.1f}"
        )

        for gen in range(p.generations):
            population.sort(key=lambda ind: ind.fitness, reverse=True)
            leader = population[0]
            if leader.fitness > best.fitness:
                best = leader.copy()

            if abs(leader.fitness - last_best) < p.stagnation_epsilon:
                stagnant += 1
            else:
                stagnant = 0
            last_best = leader.fitness

            # At most one injection per generation: a restart replaces the diversity pass.
            injected = 0
            restarted = stagnant >= p.stagnation_limit
            if restarted:
                injected = self._replace_worst(population, p.stagnation_replacement)
                logger.debug(f"Gen {gen}: stagnation, {injected} individuals replaced")
                stagnant = 0

            diversity = self._diversity(population)
            if not restarted and diversity < p.diversity_threshold:
                injected = self._replace_worst(population, p.diversity_replacement)
                logger.debug(f"Gen {gen}: diversity {diversity:.3f}, {injected} individuals replaced")

            rate = decayed_mutation_rate(p.mutation_rate, p.min_mutation_rate, gen, p.generations)
            stats = GenerationStats(
                generation=gen,
                best_fitness=best.fitness,
                average_fitness=sum(ind.fitness for ind in population) / len(population),
                diversity=diversity,
                mutation_rate=rate,
                injected=injected,
            )
            self.history.append(stats)
            if self.on_generation is not None:
                self.on_generation(stats)
            if gen % p.log_every == 0 or gen == p.generations - 1:
                logger.info(
                    f"  Gen {gen} | best {stats.best_fitness:.1f} | "
                    f"avg {stats.average_fitness:.1f} | diversity {diversity:.2f} | "
                    f"mutation {rate:.3f}"
                )

            next_gen = [ind.copy() for ind in population[:p.elite_size]]
            while len(next_gen) < p.population_size:
                next_gen.append(self._offspring(population, rate))
            population = next_gen

        population.sort(key=lambda ind: ind.fitness, reverse=True)
        if population[0].fitness > best.fitness:
            best = population[0].copy()

        best = self.local_search(best)
        self.repairer.final_repair(best)
        self.evaluator.evaluate(best)
        logger.info(f"Genetic search finished: best fitness {best.fitness:.1f}")
        return best

    # ─── Population ───────────────────────────────────────────────────────────

    def _fresh(self) -> Individual:
        individual = self.builder.build()
        self.evaluator.evaluate(individual)
        return individual

    def _replace_worst(self, population: list[Individual], fraction: float) -> int:
        """Replace the worst non-elite individuals with fresh ones.

        Expects the population sorted best first and leaves it sorted again.
        """
        replaceable = len(population) - self.params.elite_size
        n = min(replaceable, math.ceil(fraction * replaceable))
        for i in range(len(population) - n, len(population)):
            population[i] = self._fresh()
        if n:
            population.sort(key=lambda ind: ind.fitness, reverse=True)
        return n

    def _diversity(self, population: list[Individual]) -> float:
        """Average pairwise difference ratio over a sample of the population."""
        size = self.params.diversity_sample_size
        sample = population if len(population) <= size else self.rng.sample(population, size)
        if len(sample) < 2:
            return 1.0
        total = 0.0
        pairs = 0
        for i in range(len(sample)):
            for j in range(i + 1, len(sample)):
                total += difference_ratio(sample[i], sample[j])
                pairs += 1
        return total / pairs

    def _offspring(self, population: list[Individual], rate: float) -> Individual:
        p = self.params
        p1 = tournament_select(population, self.rng, p.tournament_size)
        p2 = tournament_select(population, self.rng, p.tournament_size)

        if self.rng.random() < p.crossover_rate:
            strategy = self.rng.choice(CROSSOVER_STRATEGIES)
            child = strategy(p1, p2, self.rng)
            self.repairer.resolve_conflicts(child)
            self.repairer.validate_and_fix_batch_classrooms(child)
        else:
            child = p1.copy()

        self.mutator.mutate(child, rate)
        self.evaluator.evaluate(child)

        if child.fitness >= p1.fitness and self.rng.random() < p.local_search_probability:
            child = self.local_search(child)
        return child

    # ─── Local search ─────────────────────────────────────────────────────────

    def local_search(self, individual: Individual) -> Individual:
        """Hill-climb every unpinned entry to its best alternative slot.

        Only strict fitness improvements are kept. A classroom balancing
        pass is tried at the end under the same rule.
        """
        candidate = individual.copy()
        current = self.evaluator.evaluate(candidate).total

        for entry in candidate.entries:
            if entry.pinned:
                continue
            choice = self.repairer.find_best_alternative_slot(candidate, entry)
            if choice is None:
                continue
            if choice.slot == entry.slot and choice.classroom_id == entry.classroom_id:
                continue
            saved = (entry.day, entry.period, entry.classroom_id,
                     entry.fallback_classroom, entry.preferred)
            self.repairer.move_entry(entry, choice.slot, choice.classroom_id, choice.fallback)
            score = self.evaluator.evaluate(candidate).total
            if score > current:
                current = score
            else:
                (entry.day, entry.period, entry.classroom_id,
                 entry.fallback_classroom, entry.preferred) = saved

        balanced = candidate.copy()
        if self.repairer.balance_classroom_distribution(balanced):
            if self.evaluator.evaluate(balanced).total > current:
                candidate = balanced

        self.evaluator.evaluate(candidate)
        return candidate

"""Timetable generation engine: one run from input snapshot to result.

Pipeline:
  - ConstraintIndex over the active batches
  - GeneticSearch (construction, repair, fitness, evolution)
  - final repair and collision flags
  - statistics, reservation status and violation report

A run is a pure function of its SchedulingData snapshot, config and seed;
nothing is persisted.
"""

import random
import time
import logging
from pathlib import Path
from typing import Literal, Optional, Union

from pydantic import BaseModel

from analysis.quality_report import QualityAnalyzer, ScheduleStatistics, SpecialPlacement
from analysis.violation_report import ViolationReport, ViolationReporter
from config.defaults import DAY_NAMES, PERIOD_NAMES
from config.schema import EngineConfig
from models.scheduling_data import SchedulingData
from solver.constraint_index import ConstraintIndex
from solver.fitness import FitnessBreakdown, FitnessEvaluator
from solver.genetic import GenerationStats, GeneticSearch, ProgressCallback
from solver.individual import ScheduleEntry

logger = logging.getLogger(__name__)


class UnknownBatchError(ValueError):
    """Raised when a single-batch run names a batch that is not in the data set."""


# ─── Result model ─────────────────────────────────────────────────────────────

class GenerationResult(BaseModel):
    """Complete result of one generation run."""

    mode: Literal["single_batch", "all_batches"]
    selected_batch_id: Optional[str] = None
    days: list[str]
    periods: list[str]
    entries: list[ScheduleEntry]
    batch_timetables: dict[str, list[ScheduleEntry]] = {}
    statistics: ScheduleStatistics
    fitness: FitnessBreakdown
    violations: ViolationReport
    special_placements: dict[str, SpecialPlacement] = {}
    is_conflict_free: bool
    history: list[GenerationStats] = []
    seed: Optional[int] = None
    solve_time_seconds: float

    @property
    def can_save(self) -> bool:
        """Only conflict-free timetables should be accepted by the caller."""
        return self.is_conflict_free

    def timetable(self) -> Union[list[ScheduleEntry], dict[str, list[ScheduleEntry]]]:
        """Flat entry list (single batch) or batch_id -> entries (all batches)."""
        if self.mode == "all_batches":
            return self.batch_timetables
        return self.entries

    def get_batch_schedule(self, batch_id: str) -> list[ScheduleEntry]:
        """All entries of one batch, in grid order."""
        return sorted(
            (e for e in self.entries if e.batch_id == batch_id),
            key=lambda e: (e.day, e.period),
        )

    def save_json(self, path: Path) -> None:
        """Save the result as JSON."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.model_dump_json(indent=2))

    @classmethod
    def load_json(cls, path: Path) -> "GenerationResult":
        """Load a saved result from JSON."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Result not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate_json(f.read())


# ─── Engine ───────────────────────────────────────────────────────────────────

class TimetableEngine:
    """Genetic timetable generator.

    Usage:
        engine = TimetableEngine(data, config)
        result = engine.generate()              # all batches
        result = engine.generate("batch-1")     # one batch
    """

    def __init__(self, data: SchedulingData, config: Optional[EngineConfig] = None) -> None:
        self.data = data
        self.config = config or EngineConfig()
        self.index: Optional[ConstraintIndex] = None   # index of the last run

    def generate(
        self,
        batch_id: Optional[str] = None,
        seed: Optional[int] = None,
        on_generation: Optional[ProgressCallback] = None,
    ) -> GenerationResult:
        """Run the full pipeline. seed overrides config.genetic.seed."""
        if batch_id is not None and self.data.get_batch(batch_id) is None:
            raise UnknownBatchError(f"Unknown batch: {batch_id}")

        run_seed = seed if seed is not None else self.config.genetic.seed
        rng = random.Random(run_seed)
        t0 = time.time()

        batch_ids = [batch_id] if batch_id is not None else None
        index = ConstraintIndex(self.data, batch_ids)
        self.index = index
        logger.info(
            f"Generating timetable for {len(index.batch_order)} batch(es), seed={run_seed}"
        )

        search = GeneticSearch(index, self.config, rng, on_generation=on_generation)
        best = search.run()
        breakdown = FitnessEvaluator(index, self.config.fitness).evaluate(best)

        entries = sorted(
            best.entries,
            key=lambda e: (index.batch_order.index(e.batch_id), e.day, e.period),
        )
        analyzer = QualityAnalyzer(index)
        statistics = analyzer.statistics(entries)
        violations = ViolationReporter(index).build(entries)

        if statistics.fallback_classrooms:
            logger.warning(f"{statistics.fallback_classrooms} classes use a fallback classroom")
        unplaced = [v for v in violations.quota if v.status == "under_scheduled"]
        if unplaced:
            logger.warning(f"{len(unplaced)} weekly quotas could not be met")

        elapsed = time.time() - t0
        logger.info(
            f"Generation finished in {elapsed:.1f}s | fitness {breakdown.total:.1f} | "
            f"{statistics.total_classes} classes | "
            f"{violations.summary.total} violations"
        )

        if batch_id is None:
            timetables = {
                b: [e for e in entries if e.batch_id == b] for b in index.batch_order
            }
        else:
            timetables = {}

        return GenerationResult(
            mode="single_batch" if batch_id is not None else "all_batches",
            selected_batch_id=batch_id,
            days=list(DAY_NAMES),
            periods=list(PERIOD_NAMES),
            entries=entries,
            batch_timetables=timetables,
            statistics=statistics,
            fitness=breakdown,
            violations=violations,
            special_placements=analyzer.special_placements(entries),
            is_conflict_free=statistics.is_conflict_free,
            history=search.history,
            seed=run_seed,
            solve_time_seconds=elapsed,
        )

from typing import Optional

from pydantic import BaseModel, Field, model_validator


# ─── GENETIC SEARCH ───

class GeneticConfig(BaseModel):
    """Parameters of the genetic search loop."""
    # Number of individuals kept per generation
    population_size: int = Field(50, ge=2, le=1000,
        description="Individuals per generation")
    # Fixed stopping criterion (no time limit)
    generations: int = Field(100, ge=0, le=10000,
        description="Number of generations")
    # Per-entry mutation probability at generation 0
    mutation_rate: float = Field(0.3, ge=0.0, le=1.0,
        description="Base mutation rate (decays linearly)")
    # Lower bound of the decayed mutation rate
    min_mutation_rate: float = Field(0.02, ge=0.0, le=1.0,
        description="Floor for the decayed mutation rate")
    # Probability that two parents are recombined instead of copied
    crossover_rate: float = Field(0.8, ge=0.0, le=1.0,
        description="Crossover probability")
    # Top individuals carried over unmodified
    elite_size: int = Field(5, ge=0,
        description="Elitism: individuals carried over unchanged")
    # Contenders per tournament
    tournament_size: int = Field(5, ge=1,
        description="Tournament size for parent selection")
    # Average pairwise difference below which fresh individuals are injected
    diversity_threshold: float = Field(0.1, ge=0.0, le=1.0,
        description="Minimum average pairwise difference ratio")
    # Fraction of the population replaced on low diversity
    diversity_replacement: float = Field(0.2, ge=0.0, le=1.0,
        description="Fraction replaced on low diversity")
    # Individuals sampled for the pairwise diversity estimate
    diversity_sample_size: int = Field(12, ge=2,
        description="Sample size for diversity estimation")
    # Generations without improvement before forced replacement
    stagnation_limit: int = Field(15, ge=1,
        description="Generations without progress before restart")
    # Best-fitness change below which a generation counts as stagnant
    stagnation_epsilon: float = Field(1e-3, ge=0.0,
        description="Minimum best-fitness change")
    # Fraction of the non-elite population replaced on stagnation
    stagnation_replacement: float = Field(0.3, ge=0.0, le=1.0,
        description="Fraction of non-elites replaced on stagnation")
    # Probability of hill-climbing a promising offspring
    local_search_probability: float = Field(0.05, ge=0.0, le=1.0,
        description="Local search probability for offspring")
    # Log progress every N generations
    log_every: int = Field(10, ge=1,
        description="Progress log interval (generations)")
    # Seed for the run's random generator (None = nondeterministic)
    seed: Optional[int] = Field(42,
        description="Random seed")

    @model_validator(mode='after')
    def _check_sizes(self):
        if self.elite_size >= self.population_size:
            raise ValueError(
                f"elite_size ({self.elite_size}) must be smaller than "
                f"population_size ({self.population_size})")
        if self.tournament_size > self.population_size:
            raise ValueError(
                f"tournament_size ({self.tournament_size}) > "
                f"population_size ({self.population_size})")
        if self.min_mutation_rate > self.mutation_rate:
            raise ValueError(
                f"min_mutation_rate ({self.min_mutation_rate}) > "
                f"mutation_rate ({self.mutation_rate})")
        return self


# ─── REPAIR ───

class RepairConfig(BaseModel):
    """Conflict repair settings."""
    # Rounds of detect -> relocate before giving up
    conflict_retry_budget: int = Field(10, ge=1, le=100,
        description="Conflict resolution rounds")
    # Try moving a day's surplus class to another day before dropping it
    relocate_daily_excess: bool = Field(True,
        description="Relocate daily excess before removing it")


# ─── FITNESS ───

class FitnessWeights(BaseModel):
    """Objective weights and flat penalties of the fitness function."""
    weight_conflicts: float = Field(0.40, ge=0.0)
    weight_constraint_violations: float = Field(0.25, ge=0.0)
    weight_preference: float = Field(0.15, ge=0.0)
    weight_load_balance: float = Field(0.15, ge=0.0)
    weight_utilization: float = Field(0.05, ge=0.0)

    # Conflict objective (per clash)
    batch_clash: float = 5.0
    classroom_clash: float = 10.0
    teacher_clash: float = 20.0

    # Constraint objective
    directive_bonus: float = 100.0
    disallowed_classroom: float = 50.0
    unmet_classroom_preference: float = 3.0

    # Preference objective (per preferred entry)
    preferred_bonus: float = 10.0

    # Load balance objective
    daily_excess: float = 10.0
    weekly_shortfall: float = 20.0
    weekly_excess: float = 10.0

    # Flat penalties on top of the weighted sum
    teacher_collision_penalty: float = 100.0
    classroom_constraint_penalty: float = 50.0
    unresolved_directive_penalty: float = 100.0


# ─── ENGINE CONFIG ───

class EngineConfig(BaseModel):
    """Complete engine configuration."""
    # Genetic search parameters
    genetic: GeneticConfig = Field(default_factory=GeneticConfig)
    # Conflict repair parameters
    repair: RepairConfig = Field(default_factory=RepairConfig)
    # Fitness weights
    fitness: FitnessWeights = Field(default_factory=FitnessWeights)

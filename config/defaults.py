from config.schema import EngineConfig, GeneticConfig, RepairConfig, FitnessWeights


# The weekly grid is fixed for the whole run: 6 days x 6 periods.
DAY_NAMES: list[str] = [
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday",
]

PERIOD_NAMES: list[str] = [
    "Period 1", "Period 2", "Period 3", "Period 4", "Period 5", "Period 6",
]

GRID_SIZE = len(DAY_NAMES) * len(PERIOD_NAMES)

# Subject label used for lunch-break entries in rendered output
LUNCH_BREAK_LABEL = "Lunch Break"


def default_engine_config() -> EngineConfig:
    """Standard engine configuration.

    Population 50 over 100 generations, mutation 0.3 decaying to 0.02,
    5 elites, 5-way tournaments, 10 conflict-repair rounds.
    """
    return EngineConfig(
        genetic=GeneticConfig(),
        repair=RepairConfig(),
        fitness=FitnessWeights(),
    )


def fast_engine_config(seed: int = 42) -> EngineConfig:
    """Small configuration for quick runs (demo data, tests)."""
    return EngineConfig(
        genetic=GeneticConfig(
            population_size=12,
            generations=8,
            elite_size=2,
            tournament_size=3,
            diversity_sample_size=6,
            stagnation_limit=4,
            seed=seed,
        ),
        repair=RepairConfig(conflict_retry_budget=6),
    )

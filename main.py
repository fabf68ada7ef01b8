"""Timetable generator – main CLI.

Usage:
  python main.py config init               Write the default engine configuration
  python main.py config show               Show the engine configuration
  python main.py demo                      Write a demo input data set
  python main.py validate                  Feasibility check of the input data
  python main.py solve                     Generate timetables for all batches
  python main.py solve --batch <id>        Generate the timetable of one batch
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich import box

console = Console()

# Default path for input data
DEFAULT_DATA_JSON = Path("output/scheduling_data.json")


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load_config(path: Optional[str]):
    """Load the engine configuration (defaults when no file exists)."""
    from config.manager import ConfigManager
    mgr = ConfigManager(Path(path) if path else None)
    try:
        return mgr.load_or_default()
    except ValueError as e:
        console.print(f"[red bold]Invalid configuration:[/red bold]\n{e}")
        sys.exit(1)


def _load_data_or_abort(json_path: str, use_demo: bool):
    from models.scheduling_data import SchedulingData

    if use_demo:
        from data.fake_data import DemoDataGenerator
        return DemoDataGenerator(seed=42).generate()

    p = Path(json_path)
    if not p.exists():
        console.print(
            f"[red]No input data found: {p}[/red]\n"
            "Run [bold]python main.py demo[/bold] or pass [bold]--demo[/bold]."
        )
        sys.exit(1)
    console.print(f"[bold]Loading data set:[/bold] {p}")
    return SchedulingData.load_json(p)


# ─── CONFIG ───────────────────────────────────────────────────────────────────

@click.group("config")
def cmd_config():
    """Create or show the engine configuration."""


@cmd_config.command("init")
@click.option("--path", "config_path", default=None, help="Target YAML file.")
@click.option("--fast", is_flag=True, default=False,
              help="Small population / few generations for quick runs.")
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing file.")
def config_init(config_path: Optional[str], fast: bool, force: bool):
    """Write the default configuration as commented YAML."""
    from config.defaults import default_engine_config, fast_engine_config
    from config.manager import ConfigManager

    mgr = ConfigManager(Path(config_path) if config_path else None)
    if not mgr.first_run_check() and not force:
        console.print(
            f"[yellow]Configuration already exists: {mgr.DEFAULT_CONFIG}[/yellow]\n"
            "Use [bold]--force[/bold] to overwrite it."
        )
        sys.exit(1)
    mgr.save(fast_engine_config() if fast else default_engine_config())


@cmd_config.command("show")
@click.option("--path", "config_path", default=None, help="YAML file to read.")
def config_show(config_path: Optional[str]):
    """Show the active configuration."""
    config = _load_config(config_path)

    g = config.genetic
    console.print(Panel(
        f"Population: [bold]{g.population_size}[/bold] | "
        f"Generations: [bold]{g.generations}[/bold] | Seed: {g.seed}\n"
        f"Mutation: {g.mutation_rate} → {g.min_mutation_rate} | "
        f"Crossover: {g.crossover_rate} | Elite: {g.elite_size} | "
        f"Tournament: {g.tournament_size}\n"
        f"Diversity: < {g.diversity_threshold} → replace {g.diversity_replacement:.0%} | "
        f"Stagnation: {g.stagnation_limit} gens → replace {g.stagnation_replacement:.0%}",
        title="Genetic search",
        border_style="cyan",
    ))

    f = config.fitness
    table = Table(title="Fitness weights", box=box.ROUNDED)
    table.add_column("Objective")
    table.add_column("Weight", justify="right")
    table.add_row("Conflicts", f"{f.weight_conflicts:.2f}")
    table.add_row("Constraint violations", f"{f.weight_constraint_violations:.2f}")
    table.add_row("Preferences", f"{f.weight_preference:.2f}")
    table.add_row("Load balance", f"{f.weight_load_balance:.2f}")
    table.add_row("Utilization", f"{f.weight_utilization:.2f}")
    console.print(table)

    r = config.repair
    console.print(
        f"[bold]Repair:[/bold] {r.conflict_retry_budget} rounds | "
        f"relocate daily excess: {r.relocate_daily_excess}"
    )


# ─── DEMO ─────────────────────────────────────────────────────────────────────

@click.command("demo")
@click.option("--seed", default=42, help="Random seed for reproducible data.")
@click.option("--batches", "num_batches", default=None, type=int,
              help="Number of batches (default: all).")
@click.option("--json-path", default=str(DEFAULT_DATA_JSON), help="Output JSON path.")
def cmd_demo(seed: int, num_batches: Optional[int], json_path: str):
    """Write a demo input data set as JSON."""
    from data.fake_data import DemoDataGenerator

    gen = DemoDataGenerator(seed=seed, num_batches=num_batches)
    data = gen.generate()
    gen.print_summary(data)
    console.print(f"\n[dim]{data.summary()}[/dim]")

    out_path = Path(json_path)
    data.save_json(out_path)
    console.print(f"[green]✓[/green] Data saved: {out_path}")


# ─── VALIDATE ─────────────────────────────────────────────────────────────────

@click.command("validate")
@click.option("--json-path", default=str(DEFAULT_DATA_JSON), help="Input JSON path.")
@click.option("--demo", "use_demo", is_flag=True, default=False,
              help="Check the built-in demo data instead.")
def cmd_validate(json_path: str, use_demo: bool):
    """Feasibility check of the input data set."""
    data = _load_data_or_abort(json_path, use_demo)
    console.print(f"\n{data.summary()}\n")
    report = data.validate_feasibility()
    report.print_rich()
    sys.exit(0 if report.is_feasible else 1)


# ─── SOLVE ────────────────────────────────────────────────────────────────────

@click.command("solve")
@click.option("--json-path", default=str(DEFAULT_DATA_JSON), help="Input JSON path.")
@click.option("--demo", "use_demo", is_flag=True, default=False,
              help="Use the built-in demo data.")
@click.option("--batch", "batch_id", default=None, help="Only this batch (default: all).")
@click.option("--config", "config_path", default=None, help="Engine configuration YAML.")
@click.option("--seed", default=None, type=int, help="Override the configured seed.")
@click.option("--generations", default=None, type=int, help="Override the generation count.")
@click.option("--output", "-o", default=None, help="Save the result as JSON.")
@click.option("--show/--no-show", default=True, help="Print the timetable grids.")
def cmd_solve(
    json_path: str,
    use_demo: bool,
    batch_id: Optional[str],
    config_path: Optional[str],
    seed: Optional[int],
    generations: Optional[int],
    output: Optional[str],
    show: bool,
):
    """Generate timetables and print statistics and violations."""
    from solver.scheduler import TimetableEngine, UnknownBatchError
    from analysis.quality_report import QualityAnalyzer
    from export.tui_renderer import print_grid, render_batch_rows

    data = _load_data_or_abort(json_path, use_demo)
    config = _load_config(config_path)
    if generations is not None:
        config = config.model_copy(update={
            "genetic": config.genetic.model_copy(update={"generations": generations}),
        })

    feasibility = data.validate_feasibility()
    if not feasibility.is_feasible:
        feasibility.print_rich()
        console.print("[yellow]Continuing: the result will report what could not be placed.[/yellow]")

    engine = TimetableEngine(data, config)
    try:
        result = engine.generate(batch_id=batch_id, seed=seed)
    except UnknownBatchError as e:
        console.print(f"[red bold]{e}[/red bold]")
        sys.exit(1)

    if show:
        batch_ids = [batch_id] if batch_id else [b.id for b in data.batches]
        for bid in batch_ids:
            batch = data.get_batch(bid)
            print_grid(f"Timetable {batch.name}", render_batch_rows(bid, result, data))

    QualityAnalyzer(engine.index).print_rich(result.statistics, result.special_placements)
    result.violations.print_rich()
    console.print(
        f"[bold]Fitness:[/bold] {result.fitness.total:.1f} | "
        f"Time: {result.solve_time_seconds:.1f}s | Seed: {result.seed}"
    )

    if output:
        out_path = Path(output)
        result.save_json(out_path)
        console.print(f"[green]✓[/green] Result saved: {out_path}")


# ─── MAIN CLI ─────────────────────────────────────────────────────────────────

@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug logging.")
def cli(verbose: bool):
    """Genetic timetable generator for batches, teachers and classrooms.

    Start with: python main.py demo && python main.py solve
    """
    _setup_logging(verbose)


def main():
    """Entry point."""
    cli()


# Register commands
cli.add_command(cmd_config)
cli.add_command(cmd_demo)
cli.add_command(cmd_validate)
cli.add_command(cmd_solve)


if __name__ == "__main__":
    main()

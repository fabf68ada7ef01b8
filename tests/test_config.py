"""Tests for the configuration system and the input data models."""

import pytest

from config.schema import EngineConfig, FitnessWeights, GeneticConfig, RepairConfig
from config.defaults import (
    DAY_NAMES,
    GRID_SIZE,
    PERIOD_NAMES,
    default_engine_config,
    fast_engine_config,
)
from config.manager import ConfigManager
from models import (
    Batch,
    Classroom,
    Constraint,
    ConstraintType,
    Faculty,
    FixedReservation,
    ReservationType,
    SchedulingData,
    Subject,
    TimeSlot,
    all_slots,
)


# ─── DEFAULT CONFIGURATION ────────────────────────────────────────────────────

class TestDefaultConfig:
    def test_grid_is_six_by_six(self):
        assert len(DAY_NAMES) == 6
        assert len(PERIOD_NAMES) == 6
        assert GRID_SIZE == 36

    def test_default_genetic_parameters(self):
        """Standard run: population 50, 100 generations, mutation 0.3."""
        g = default_engine_config().genetic
        assert g.population_size == 50
        assert g.generations == 100
        assert g.mutation_rate == pytest.approx(0.3)
        assert g.elite_size < g.population_size

    def test_fitness_weights_sum_to_one(self):
        f = FitnessWeights()
        total = (
            f.weight_conflicts + f.weight_constraint_violations + f.weight_preference
            + f.weight_load_balance + f.weight_utilization
        )
        assert total == pytest.approx(1.0)

    def test_fitness_penalties(self):
        f = FitnessWeights()
        assert f.teacher_collision_penalty == 100.0
        assert f.classroom_constraint_penalty == 50.0
        assert f.unresolved_directive_penalty == 100.0

    def test_fast_config_is_small(self):
        fast = fast_engine_config(seed=7)
        assert fast.genetic.population_size < default_engine_config().genetic.population_size
        assert fast.genetic.seed == 7

    def test_repair_defaults(self):
        r = RepairConfig()
        assert r.conflict_retry_budget == 10
        assert r.relocate_daily_excess is True


# ─── PYDANTIC VALIDATION ──────────────────────────────────────────────────────

class TestPydanticValidation:
    def test_elite_must_be_smaller_than_population(self):
        with pytest.raises(ValueError):
            GeneticConfig(population_size=5, elite_size=5)

    def test_tournament_larger_than_population_rejected(self):
        with pytest.raises(ValueError):
            GeneticConfig(population_size=4, elite_size=1, tournament_size=5)

    def test_min_mutation_above_base_rejected(self):
        with pytest.raises(ValueError):
            GeneticConfig(mutation_rate=0.1, min_mutation_rate=0.2)

    def test_mutation_rate_range(self):
        with pytest.raises(ValueError):
            GeneticConfig(mutation_rate=1.5)

    def test_retry_budget_range(self):
        with pytest.raises(ValueError):
            RepairConfig(conflict_retry_budget=0)

    def test_negative_quota_rejected(self):
        with pytest.raises(ValueError):
            Subject(id="s", name="S", required_per_week=-1)

    def test_seed_may_be_none(self):
        g = GeneticConfig(seed=None)
        assert g.seed is None


# ─── CONFIG MANAGER ───────────────────────────────────────────────────────────

class TestConfigManager:
    def test_first_run_check(self, tmp_path):
        mgr = ConfigManager(tmp_path / "engine.yaml")
        assert mgr.first_run_check() is True

    def test_save_and_load_roundtrip(self, tmp_path):
        """Saved YAML loads back into an identical EngineConfig."""
        mgr = ConfigManager(tmp_path / "engine.yaml")
        config = fast_engine_config(seed=123)
        mgr.save(config)
        assert mgr.first_run_check() is False

        loaded = mgr.load()
        assert loaded == config
        assert loaded.genetic.seed == 123

    def test_saved_file_has_section_comments(self, tmp_path):
        mgr = ConfigManager(tmp_path / "engine.yaml")
        path = mgr.save(default_engine_config())
        text = path.read_text(encoding="utf-8")
        assert "Genetic search" in text
        assert "population_size" in text

    def test_load_missing_file(self, tmp_path):
        mgr = ConfigManager(tmp_path / "missing.yaml")
        with pytest.raises(FileNotFoundError):
            mgr.load()

    def test_load_or_default_without_file(self, tmp_path):
        mgr = ConfigManager(tmp_path / "missing.yaml")
        assert mgr.load_or_default() == EngineConfig()

    def test_invalid_file_raises_value_error(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("genetic:\n  population_size: 1\n", encoding="utf-8")
        with pytest.raises(ValueError):
            ConfigManager(path).load()

    def test_partial_file_uses_defaults(self, tmp_path):
        path = tmp_path / "partial.yaml"
        path.write_text("repair:\n  conflict_retry_budget: 3\n", encoding="utf-8")
        config = ConfigManager(path).load()
        assert config.repair.conflict_retry_budget == 3
        assert config.genetic.population_size == 50


# ─── TIMESLOT ─────────────────────────────────────────────────────────────────

class TestTimeSlot:
    def test_from_names(self):
        slot = TimeSlot.from_names("Tuesday", "Period 3")
        assert slot == TimeSlot(1, 2)
        assert slot.day_name == "Tuesday"
        assert slot.period_name == "Period 3"

    def test_unknown_names(self):
        assert TimeSlot.from_names("Sunday", "Period 1") is None
        assert TimeSlot.from_names("Monday", "Period 7") is None

    def test_hashable(self):
        assert len({TimeSlot(0, 0), TimeSlot(0, 0), TimeSlot(0, 1)}) == 2

    def test_all_slots_scan_order(self):
        slots = all_slots()
        assert len(slots) == GRID_SIZE
        assert slots[0] == TimeSlot(0, 0)
        assert slots[1] == TimeSlot(0, 1)
        assert slots[-1] == TimeSlot(5, 5)

    def test_str(self):
        assert str(TimeSlot(0, 0)) == "Mon P1"


# ─── INPUT MODELS ─────────────────────────────────────────────────────────────

class TestInputModels:
    def test_daily_cap_defaults_to_period_count(self):
        assert Subject(id="s", name="S", required_per_week=3).daily_cap == len(PERIOD_NAMES)
        assert Subject(id="s", name="S", required_per_week=3, max_per_day=1).daily_cap == 1

    def test_batch_restriction(self):
        assert Batch(id="b", name="B").is_restricted is False
        assert Batch(id="b", name="B", classroom_ids=["r1"]).is_restricted is True

    def test_constraint_types(self):
        c = Constraint(
            id="c1", type=ConstraintType.TEACHER_SLOT, batch_id="b",
            day="Monday", slot="Period 1", faculty_id="t1",
        )
        assert c.type.value == "teacher_slot_preference"


# ─── FEASIBILITY ──────────────────────────────────────────────────────────────

def _make_data(required: int = 2, reservations=None, classrooms=None) -> SchedulingData:
    return SchedulingData(
        batches=[Batch(
            id="b1", name="B1", subject_ids=["s1"], subject_teachers={"s1": "t1"},
        )],
        subjects=[Subject(id="s1", name="Subject 1", required_per_week=required)],
        faculty=[Faculty(id="t1", name="Teacher 1")],
        classrooms=classrooms if classrooms is not None else [Classroom(id="r1", name="R1")],
        reservations=reservations or [],
    )


class TestFeasibility:
    def test_feasible(self):
        report = _make_data().validate_feasibility()
        assert report.is_feasible
        assert report.errors == []

    def test_no_classrooms(self):
        report = _make_data(classrooms=[]).validate_feasibility()
        assert not report.is_feasible

    def test_need_exceeds_free_slots(self):
        """All but one slot reserved, two classes required."""
        reservations = [
            FixedReservation(
                id=f"l{d}", type=ReservationType.LUNCH_BREAK, batch_id="b1",
                day=day, slots=list(PERIOD_NAMES if d else PERIOD_NAMES[1:]),
            )
            for d, day in enumerate(DAY_NAMES)
        ]
        report = _make_data(required=2, reservations=reservations).validate_feasibility()
        assert not report.is_feasible
        assert any("free slots" in e for e in report.errors)

    def test_unknown_reservation_batch_is_warning(self):
        reservations = [FixedReservation(
            id="x", type=ReservationType.LUNCH_BREAK, batch_id="ghost",
            day="Monday", slots=["Period 4"],
        )]
        report = _make_data(reservations=reservations).validate_feasibility()
        assert report.is_feasible
        assert any("ghost" in w for w in report.warnings)

    def test_json_roundtrip(self, tmp_path):
        data = _make_data()
        path = tmp_path / "data.json"
        data.save_json(path)
        loaded = SchedulingData.load_json(path)
        assert loaded.batches == data.batches
        assert loaded.created_at is not None
        assert data.created_at is None

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            SchedulingData.load_json(tmp_path / "nope.json")


# ─── DEMO DATA ────────────────────────────────────────────────────────────────

class TestDemoData:
    def test_demo_is_feasible(self):
        from data.fake_data import DemoDataGenerator
        data = DemoDataGenerator(seed=42).generate()
        report = data.validate_feasibility()
        assert report.is_feasible, report.errors
        assert len(data.batches) == 5

    def test_demo_is_reproducible(self):
        from data.fake_data import DemoDataGenerator
        a = DemoDataGenerator(seed=1).generate()
        b = DemoDataGenerator(seed=1).generate()
        assert a == b

    def test_num_batches(self):
        from data.fake_data import DemoDataGenerator
        data = DemoDataGenerator(seed=1, num_batches=2).generate()
        assert [b.id for b in data.batches] == ["cse1a", "cse1b"]
        assert {r.batch_id for r in data.reservations} <= {"cse1a", "cse1b"}


# ─── MAIN.PY CLI ──────────────────────────────────────────────────────────────

class TestCli:
    def test_help(self):
        """main.py --help prints the usage."""
        from click.testing import CliRunner
        from main import cli
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Usage" in result.output

    def test_config_init_and_show(self, tmp_path):
        """config init --fast writes a loadable file; config show reads it."""
        from click.testing import CliRunner
        from main import cli
        path = tmp_path / "engine.yaml"
        runner = CliRunner()
        result = runner.invoke(cli, ["config", "init", "--fast", "--path", str(path)])
        assert result.exit_code == 0, result.output
        assert ConfigManager(path).load() == fast_engine_config()

        result = runner.invoke(cli, ["config", "show", "--path", str(path)])
        assert result.exit_code == 0
        assert "Population" in result.output

    def test_config_init_refuses_overwrite(self, tmp_path):
        from click.testing import CliRunner
        from main import cli
        path = tmp_path / "engine.yaml"
        runner = CliRunner()
        runner.invoke(cli, ["config", "init", "--path", str(path)])
        result = runner.invoke(cli, ["config", "init", "--path", str(path)])
        assert result.exit_code == 1
        result = runner.invoke(cli, ["config", "init", "--fast", "--force", "--path", str(path)])
        assert result.exit_code == 0

    def test_demo_and_validate(self, tmp_path):
        from click.testing import CliRunner
        from main import cli
        data_path = tmp_path / "data.json"
        runner = CliRunner()
        result = runner.invoke(cli, ["demo", "--batches", "2", "--json-path", str(data_path)])
        assert result.exit_code == 0, result.output
        assert len(SchedulingData.load_json(data_path).batches) == 2

        result = runner.invoke(cli, ["validate", "--json-path", str(data_path)])
        assert result.exit_code == 0

    def test_validate_missing_data(self, tmp_path):
        from click.testing import CliRunner
        from main import cli
        runner = CliRunner()
        result = runner.invoke(cli, ["validate", "--json-path", str(tmp_path / "none.json")])
        assert result.exit_code == 1

    def test_solve(self, tmp_path):
        """solve on demo data writes a result JSON."""
        from click.testing import CliRunner
        from main import cli
        from solver.scheduler import GenerationResult
        config_path = tmp_path / "engine.yaml"
        out_path = tmp_path / "result.json"
        ConfigManager(config_path).save(fast_engine_config())

        runner = CliRunner()
        result = runner.invoke(cli, [
            "solve", "--demo", "--batch", "cse1a", "--config", str(config_path),
            "--generations", "2", "--no-show", "-o", str(out_path),
        ])
        assert result.exit_code == 0, result.output
        saved = GenerationResult.load_json(out_path)
        assert saved.mode == "single_batch"
        assert len(saved.history) == 2

    def test_solve_unknown_batch(self, tmp_path):
        from click.testing import CliRunner
        from main import cli
        config_path = tmp_path / "engine.yaml"
        ConfigManager(config_path).save(fast_engine_config())
        runner = CliRunner()
        result = runner.invoke(cli, [
            "solve", "--demo", "--batch", "nope", "--config", str(config_path), "--no-show",
        ])
        assert result.exit_code == 1
        assert "Unknown batch" in result.output

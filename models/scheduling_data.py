"""SchedulingData: input snapshot of one generation run + feasibility check (Pydantic v2)."""

from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from config.defaults import DAY_NAMES, GRID_SIZE, PERIOD_NAMES
from models.batch import Batch
from models.classroom import Classroom
from models.constraint import Constraint, FixedReservation, ReservationType
from models.faculty import Faculty
from models.subject import Subject


class FeasibilityReport(BaseModel):
    """Result of the feasibility pre-check."""

    is_feasible: bool
    errors: list[str]      # generation will leave classes unplaced
    warnings: list[str]    # possible, but expect fallbacks / collisions

    def print_rich(self) -> None:
        """Print the report through rich."""
        from rich.console import Console
        from rich.panel import Panel

        console = Console()
        if self.is_feasible:
            status = "[bold green]✓ FEASIBLE[/bold green]"
        else:
            status = "[bold red]✗ NOT FEASIBLE[/bold red]"

        lines = [status]
        if self.errors:
            lines.append("\n[red bold]Errors:[/red bold]")
            for e in self.errors:
                lines.append(f"  [red]• {e}[/red]")
        if self.warnings:
            lines.append("\n[yellow bold]Warnings:[/yellow bold]")
            for w in self.warnings:
                lines.append(f"  [yellow]• {w}[/yellow]")
        if not self.errors and not self.warnings:
            lines.append("[dim]No problems found.[/dim]")

        console.print(Panel("\n".join(lines), title="Feasibility check", border_style="cyan"))


class SchedulingData(BaseModel):
    """Everything the engine reads for one run. Never mutated by the engine."""

    batches: list[Batch]
    subjects: list[Subject]
    faculty: list[Faculty]
    classrooms: list[Classroom]
    constraints: list[Constraint] = []
    reservations: list[FixedReservation] = []
    created_at: Optional[datetime] = None

    # ─── Overview ───

    def summary(self) -> str:
        """Short overview of the data set."""
        subject_map = {s.id: s for s in self.subjects}
        total_need = sum(
            subject_map[sid].required_per_week
            for b in self.batches for sid in b.subject_ids if sid in subject_map
        )
        lines = [
            f"Batches: {len(self.batches)}",
            f"Subjects: {len(self.subjects)}",
            f"Faculty: {len(self.faculty)}",
            f"Classrooms: {len(self.classrooms)}",
            f"Constraints: {len(self.constraints)}",
            f"Reservations: {len(self.reservations)}",
            f"Required classes/week: {total_need} "
            f"(grid capacity {GRID_SIZE * len(self.batches)})",
        ]
        return "\n".join(lines)

    # ─── Feasibility check ───

    def validate_feasibility(self) -> FeasibilityReport:
        """Check whether the input can be scheduled at all.

        Checks:
        1. Per batch: required classes <= free grid slots (36 - reservations)
        2. Per batch: every subject has an assigned teacher
        3. Per batch: restricted classroom subset references existing rooms
        4. Per teacher: total classes <= 36 slots
        5. Dangling references in constraints and reservations
        """
        errors: list[str] = []
        warnings: list[str] = []

        subject_map = {s.id: s for s in self.subjects}
        faculty_ids = {f.id for f in self.faculty}
        classroom_ids = {c.id for c in self.classrooms}
        batch_ids = {b.id for b in self.batches}

        if not self.classrooms:
            errors.append("No classrooms defined – no class can be placed.")

        teacher_load: Counter = Counter()

        for batch in self.batches:
            reserved = set()
            for r in self.reservations:
                if r.batch_id == batch.id:
                    for s in r.slots:
                        reserved.add((r.day, s))
            free = GRID_SIZE - len(reserved)

            need = 0
            for sid in batch.subject_ids:
                subj = subject_map.get(sid)
                if subj is None:
                    warnings.append(f"Batch {batch.name}: unknown subject '{sid}' is skipped.")
                    continue
                need += subj.required_per_week
                fid = batch.subject_teachers.get(sid)
                if fid is None:
                    warnings.append(
                        f"Batch {batch.name}: no teacher assigned for {subj.name}."
                    )
                elif fid not in faculty_ids:
                    warnings.append(
                        f"Batch {batch.name}: teacher '{fid}' for {subj.name} does not exist."
                    )
                else:
                    teacher_load[fid] += subj.required_per_week
                if subj.required_per_week > subj.daily_cap * len(DAY_NAMES):
                    errors.append(
                        f"{subj.name}: {subj.required_per_week} classes/week cannot fit "
                        f"with max {subj.daily_cap}/day."
                    )

            if need > free:
                errors.append(
                    f"Batch {batch.name}: {need} classes/week required, "
                    f"only {free} free slots."
                )
            elif free and need > free * 0.9:
                warnings.append(
                    f"Batch {batch.name}: grid almost full ({need}/{free} slots)."
                )

            missing_rooms = [c for c in batch.classroom_ids if c not in classroom_ids]
            if batch.classroom_ids and len(missing_rooms) == len(batch.classroom_ids):
                errors.append(
                    f"Batch {batch.name}: none of the allowed classrooms exist."
                )
            elif missing_rooms:
                warnings.append(
                    f"Batch {batch.name}: unknown classrooms {missing_rooms} are ignored."
                )

        for fid, load in teacher_load.items():
            if load > GRID_SIZE:
                errors.append(
                    f"Teacher {fid}: {load} classes/week exceed the {GRID_SIZE}-slot grid."
                )

        for c in self.constraints:
            if c.batch_id not in batch_ids:
                warnings.append(f"Constraint {c.id}: unknown batch '{c.batch_id}' (ignored).")
            if c.slot not in PERIOD_NAMES:
                warnings.append(f"Constraint {c.id}: unknown period '{c.slot}' (ignored).")

        for r in self.reservations:
            if r.batch_id not in batch_ids:
                warnings.append(f"Reservation {r.id}: unknown batch '{r.batch_id}' (ignored).")
            if r.type == ReservationType.FIXED_SLOT and r.subject_id not in subject_map:
                warnings.append(f"Reservation {r.id}: fixed slot without a valid subject (ignored).")

        return FeasibilityReport(
            is_feasible=not errors,
            errors=errors,
            warnings=warnings,
        )

    # ─── Lookup ───

    def get_batch(self, batch_id: str) -> Optional[Batch]:
        return next((b for b in self.batches if b.id == batch_id), None)

    # ─── JSON ───

    def save_json(self, path: Path) -> None:
        """Save the data set as JSON."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        updated = self.model_copy(update={
            "created_at": self.created_at or datetime.now(timezone.utc),
        })
        with open(path, "w", encoding="utf-8") as f:
            f.write(updated.model_dump_json(indent=2))

    @classmethod
    def load_json(cls, path: Path) -> "SchedulingData":
        """Load a data set from JSON."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Input data not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate_json(f.read())

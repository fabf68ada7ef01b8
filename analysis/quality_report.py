"""Statistics and reservation placement status for a finished timetable.

Reads collision flags as set by the final repair pass; never modifies
the entries it is given.
"""

from collections import defaultdict
from typing import Optional

from pydantic import BaseModel

from config.defaults import LUNCH_BREAK_LABEL
from models.constraint import ReservationType
from solver.constraint_index import ConstraintIndex
from solver.individual import ScheduleEntry


# ─── Result models ────────────────────────────────────────────────────────────

class ScheduleStatistics(BaseModel):
    """Headline numbers of one generated timetable."""

    total_classes: int          # scheduled classes, lunch breaks excluded
    lunch_breaks: int
    teacher_conflicts: int      # entries flagged with a teacher collision
    classroom_conflicts: int    # classroom collisions without a teacher collision
    batch_conflicts: int
    fallback_classrooms: int    # fallback rooms on otherwise collision-free entries
    unique_faculty: int
    classrooms_used: int

    @property
    def is_conflict_free(self) -> bool:
        return (
            self.teacher_conflicts == 0
            and self.classroom_conflicts == 0
            and self.batch_conflicts == 0
        )


class PlacementItem(BaseModel):
    type: ReservationType
    day: str
    period: str
    subject: str               # subject name, LUNCH_BREAK_LABEL for breaks


class SpecialPlacement(BaseModel):
    """Which reserved slots of one batch ended up in the timetable."""

    all_placed: bool
    items: list[PlacementItem]
    missing: list[PlacementItem]
    total_required: int


# ─── Analyzer ─────────────────────────────────────────────────────────────────

class QualityAnalyzer:
    """Computes statistics and reservation status against one ConstraintIndex."""

    def __init__(self, index: ConstraintIndex) -> None:
        self.index = index

    def statistics(self, entries: list[ScheduleEntry]) -> ScheduleStatistics:
        classes = [e for e in entries if not e.is_break]
        return ScheduleStatistics(
            total_classes=len(classes),
            lunch_breaks=len(entries) - len(classes),
            teacher_conflicts=sum(1 for e in classes if e.has_teacher_collision),
            classroom_conflicts=sum(
                1 for e in classes
                if e.has_classroom_collision and not e.has_teacher_collision
            ),
            batch_conflicts=sum(1 for e in entries if e.has_batch_collision),
            fallback_classrooms=sum(
                1 for e in classes
                if e.fallback_classroom
                and not e.has_teacher_collision
                and not e.has_classroom_collision
            ),
            unique_faculty=len({e.faculty_id for e in classes if e.faculty_id}),
            classrooms_used=len({e.classroom_id for e in classes if e.classroom_id}),
        )

    def special_placements(self, entries: list[ScheduleEntry]) -> dict[str, SpecialPlacement]:
        """Placement status per batch that has reservations; other batches are omitted."""
        present: dict[str, set[tuple]] = defaultdict(set)
        for e in entries:
            key = e.subject_id if e.subject_id else LUNCH_BREAK_LABEL
            present[e.batch_id].add((e.day, e.period, key))

        result: dict[str, SpecialPlacement] = {}
        for batch_id in self.index.batch_order:
            reserved = (
                self.index.lunch_slots.get(batch_id, [])
                + self.index.fixed_slots.get(batch_id, [])
            )
            if not reserved:
                continue
            placed: list[PlacementItem] = []
            missing: list[PlacementItem] = []
            for r in reserved:
                res = r.reservation
                is_lunch = res.type == ReservationType.LUNCH_BREAK
                key = LUNCH_BREAK_LABEL if is_lunch else res.subject_id
                item = PlacementItem(
                    type=res.type,
                    day=r.slot.day_name,
                    period=r.slot.period_name,
                    subject=LUNCH_BREAK_LABEL if is_lunch else self._subject_name(res.subject_id),
                )
                if (r.slot.day, r.slot.period, key) in present[batch_id]:
                    placed.append(item)
                else:
                    missing.append(item)
            result[batch_id] = SpecialPlacement(
                all_placed=not missing,
                items=placed,
                missing=missing,
                total_required=len(reserved),
            )
        return result

    def _subject_name(self, subject_id: Optional[str]) -> str:
        subject = self.index.subjects.get(subject_id)
        return subject.name if subject else "Subject"

    def print_rich(
        self,
        stats: ScheduleStatistics,
        placements: Optional[dict[str, SpecialPlacement]] = None,
    ) -> None:
        """Print statistics and reservation status through rich."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()

        status = (
            "[bold green]✓ conflict-free – can be saved[/bold green]"
            if stats.is_conflict_free
            else "[bold red]✗ conflicts left – review before saving[/bold red]"
        )
        console.print(Panel(
            f"{status}\n"
            f"Classes: [bold]{stats.total_classes}[/bold] | "
            f"Lunch breaks: {stats.lunch_breaks} | "
            f"Faculty: {stats.unique_faculty} | "
            f"Classrooms: {stats.classrooms_used}\n"
            f"Teacher conflicts: {stats.teacher_conflicts} | "
            f"Classroom conflicts: {stats.classroom_conflicts} | "
            f"Batch conflicts: {stats.batch_conflicts} | "
            f"Fallback classrooms: {stats.fallback_classrooms}",
            title="Timetable statistics",
            border_style="cyan",
        ))

        if not placements:
            return

        table = Table(title="Reserved slots", box=box.ROUNDED)
        table.add_column("Batch", style="cyan")
        table.add_column("Placed", justify="right")
        table.add_column("Missing")
        for batch_id, sp in placements.items():
            batch = self.index.batches.get(batch_id)
            placed = f"{len(sp.items)}/{sp.total_required}"
            missing = ", ".join(f"{m.subject} {m.day[:3]} {m.period}" for m in sp.missing)
            color = "green" if sp.all_placed else "red"
            table.add_row(
                batch.name if batch else batch_id,
                f"[{color}]{placed}[/{color}]",
                missing or "–",
            )
        console.print(table)

"""Terminal timetable rendering.

Builds plain row lists (one row per period) that cmd_solve feeds
into a rich Table.
"""

from typing import TYPE_CHECKING

from config.defaults import DAY_NAMES, PERIOD_NAMES
from export.helpers import entries_by_slot, format_entries

if TYPE_CHECKING:
    from models.scheduling_data import SchedulingData
    from solver.scheduler import GenerationResult


def _grid_rows(entries, data, mode: str) -> list[list[str]]:
    slot_map = entries_by_slot(entries)
    rows: list[list[str]] = []
    for p, period_name in enumerate(PERIOD_NAMES):
        cells = [period_name]
        for d in range(len(DAY_NAMES)):
            cell = format_entries(slot_map.get((d, p), []), data, mode)
            cells.append(cell or "—")
        rows.append(cells)
    return rows


def render_batch_rows(
    batch_id: str,
    result: "GenerationResult",
    data: "SchedulingData",
) -> list[list[str]]:
    """Table rows for one batch's timetable.

    Each row: [period, Mon, Tue, Wed, Thu, Fri, Sat]
    """
    return _grid_rows(result.get_batch_schedule(batch_id), data, "batch")


def render_teacher_rows(
    faculty_id: str,
    result: "GenerationResult",
    data: "SchedulingData",
) -> list[list[str]]:
    """Table rows for one teacher across all batches of the result."""
    entries = [e for e in result.entries if e.faculty_id == faculty_id and not e.is_break]
    return _grid_rows(entries, data, "teacher")


def render_classroom_rows(
    classroom_id: str,
    result: "GenerationResult",
    data: "SchedulingData",
) -> list[list[str]]:
    """Table rows for one classroom across all batches of the result."""
    entries = [e for e in result.entries if e.classroom_id == classroom_id and not e.is_break]
    return _grid_rows(entries, data, "classroom")


def print_grid(title: str, rows: list[list[str]]) -> None:
    """Print rendered rows as a rich table."""
    from rich.console import Console
    from rich.table import Table
    from rich import box

    table = Table(title=title, box=box.ROUNDED, show_lines=True)
    table.add_column("", style="bold", no_wrap=True)
    for day in DAY_NAMES:
        table.add_column(day, min_width=12)
    for row in rows:
        table.add_row(*row)
    Console().print(table)

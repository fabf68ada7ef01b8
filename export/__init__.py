"""Export module: terminal rendering of generated timetables (rich)."""

from export.tui_renderer import (
    print_grid,
    render_batch_rows,
    render_classroom_rows,
    render_teacher_rows,
)

__all__ = ["print_grid", "render_batch_rows", "render_classroom_rows", "render_teacher_rows"]

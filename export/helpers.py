"""Shared helpers for rendering timetable cells."""

from collections import defaultdict
from typing import Optional

from config.defaults import LUNCH_BREAK_LABEL
from models.scheduling_data import SchedulingData
from solver.individual import ScheduleEntry


# ─── Lookup ───────────────────────────────────────────────────────────────────

def entries_by_slot(entries: list[ScheduleEntry]) -> dict[tuple[int, int], list[ScheduleEntry]]:
    """Group entries by (day, period)."""
    slot_map: dict[tuple[int, int], list[ScheduleEntry]] = defaultdict(list)
    for e in entries:
        slot_map[(e.day, e.period)].append(e)
    return slot_map


def _name(items: list, item_id: Optional[str]) -> str:
    if item_id is None:
        return "–"
    return next((i.name for i in items if i.id == item_id), item_id)


# ─── Collision markers ────────────────────────────────────────────────────────

def collision_marker(entry: ScheduleEntry) -> str:
    """Short flag string: T=teacher, C=classroom, B=batch collision, F=fallback classroom."""
    marks = ""
    if entry.has_teacher_collision:
        marks += "T"
    if entry.has_classroom_collision:
        marks += "C"
    if entry.has_batch_collision:
        marks += "B"
    if entry.fallback_classroom and not marks:
        marks += "F"
    return f" [!{marks}]" if marks else ""


# ─── Cell formatting ──────────────────────────────────────────────────────────

def format_entry(entry: ScheduleEntry, data: SchedulingData, mode: str = "batch") -> str:
    """Format one entry as cell content.

    mode='batch':     "Subject\\nTeacher\\nClassroom"
    mode='teacher':   "Subject\\nBatch\\nClassroom"
    mode='classroom': "Batch\\nSubject"
    """
    if entry.is_break:
        return LUNCH_BREAK_LABEL

    subject = _name(data.subjects, entry.subject_id)
    if entry.preferred:
        subject = f"★ {subject}"
    subject += collision_marker(entry)

    if mode == "batch":
        return (
            f"{subject}\n{_name(data.faculty, entry.faculty_id)}"
            f"\n{_name(data.classrooms, entry.classroom_id)}"
        )
    elif mode == "teacher":
        return (
            f"{subject}\n{_name(data.batches, entry.batch_id)}"
            f"\n{_name(data.classrooms, entry.classroom_id)}"
        )
    elif mode == "classroom":
        return f"{_name(data.batches, entry.batch_id)}\n{subject}"
    return subject


def format_entries(entries: list[ScheduleEntry], data: SchedulingData, mode: str = "batch") -> str:
    """Format several entries for one cell (separated by ──).

    More than one entry per cell only happens on unresolved collisions.
    """
    if not entries:
        return ""
    if len(entries) == 1:
        return format_entry(entries[0], data, mode)
    return "\n──\n".join(format_entry(e, data, mode) for e in entries)

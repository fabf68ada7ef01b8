"""Data model for a batch (student cohort sharing one timetable, Pydantic v2)."""

from typing import Optional

from pydantic import BaseModel


class Batch(BaseModel):
    """A cohort of students that attends one timetable."""

    id: str
    name: str
    department: str = ""
    shift: str = ""
    semester: Optional[int] = None
    subject_ids: list[str] = []             # subjects taught to this batch
    classroom_ids: list[str] = []           # allowed classrooms (empty = unrestricted)
    subject_teachers: dict[str, str] = {}   # subject_id -> faculty_id

    @property
    def is_restricted(self) -> bool:
        """True if the batch may only use its own classroom subset."""
        return bool(self.classroom_ids)

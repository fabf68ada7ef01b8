"""Slot preference constraints and fixed reservations (Pydantic v2)."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class ConstraintType(str, Enum):
    SUBJECT_SLOT = "subject_slot_preference"
    CLASSROOM_SLOT = "classroom_preference"
    TEACHER_SLOT = "teacher_slot_preference"


class Constraint(BaseModel):
    """A soft preference binding one resource of a batch to one slot.

    Only the reference matching the type is read:
    subject_slot -> subject_id, classroom -> classroom_id,
    teacher_slot -> faculty_id.
    """

    id: str
    type: ConstraintType
    batch_id: str
    day: str                      # "Monday" .. "Saturday"
    slot: str                     # "Period 1" .. "Period 6"
    subject_id: Optional[str] = None
    classroom_id: Optional[str] = None
    faculty_id: Optional[str] = None


class ReservationType(str, Enum):
    LUNCH_BREAK = "lunch_break"
    FIXED_SLOT = "fixed_slot"


class FixedReservation(BaseModel):
    """Slots of one batch/day blocked before generation.

    lunch_break: no subject, no teacher, no classroom.
    fixed_slot: the subject is placed exactly in these slots.
    """

    id: str
    name: str = ""
    type: ReservationType
    batch_id: str
    day: str
    slots: list[str] = []         # period names, e.g. ["Period 4"]
    subject_id: Optional[str] = None
    start_time: str = ""
    end_time: str = ""

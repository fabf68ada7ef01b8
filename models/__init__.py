from models.batch import Batch
from models.subject import Subject
from models.faculty import Faculty
from models.classroom import Classroom
from models.constraint import Constraint, ConstraintType, FixedReservation, ReservationType
from models.timeslot import TimeSlot, all_slots
from models.scheduling_data import SchedulingData, FeasibilityReport

__all__ = [
    "Batch",
    "Subject",
    "Faculty",
    "Classroom",
    "Constraint",
    "ConstraintType",
    "FixedReservation",
    "ReservationType",
    "TimeSlot",
    "all_slots",
    "SchedulingData",
    "FeasibilityReport",
]

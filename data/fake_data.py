"""Demo data generator for the timetable engine.

Builds a small university data set with deliberate bottlenecks:
  1. Shared lecture hall: first-year CSE batches are restricted to A101/A102
  2. Shared teachers: Mathematics I and Programming are taught by the same
     faculty member to two batches
  3. Lunch break in Period 4 for every batch, Monday to Friday
  4. Slot preferences of all three kinds, one of them competing with a
     reservation

Guarantees: every batch needs fewer classes than it has free slots, and
no teacher exceeds the 36-slot grid, so a conflict-free timetable exists.
"""

import random
from typing import Optional

from models.batch import Batch
from models.classroom import Classroom
from models.constraint import Constraint, ConstraintType, FixedReservation, ReservationType
from models.faculty import Faculty
from models.scheduling_data import SchedulingData
from models.subject import Subject
from config.defaults import DAY_NAMES, PERIOD_NAMES

# ─── Catalogue ────────────────────────────────────────────────────────────────

# (id, name, code, department, required_per_week, max_per_day)
_SUBJECTS: list[tuple[str, str, str, str, int, int]] = [
    ("math1", "Mathematics I", "MATH101", "CSE", 4, 1),
    ("phy", "Physics", "PHY101", "CSE", 3, 1),
    ("prog", "Programming", "CSE101", "CSE", 4, 1),
    ("math2", "Mathematics II", "MATH201", "CSE", 4, 1),
    ("elec", "Electronics", "ECE101", "ECE", 3, 1),
    ("dlogic", "Digital Logic", "ECE201", "ECE", 4, 1),
    ("ds", "Data Structures", "CSE201", "CSE", 4, 1),
    ("algo", "Algorithms", "CSE301", "CSE", 4, 2),
    ("micro", "Microprocessors", "ECE301", "ECE", 3, 1),
    ("os", "Operating Systems", "CSE401", "CSE", 4, 1),
]

# (id, name, capacity, room_type)
_CLASSROOMS: list[tuple[str, str, int, str]] = [
    ("A101", "A101", 40, "lecture"),
    ("A102", "A102", 40, "lecture"),
    ("B201", "B201", 35, "lecture"),
    ("B202", "B202", 35, "lecture"),
    ("LAB1", "Lab 1", 25, "laboratory"),
    ("LAB2", "Lab 2", 25, "laboratory"),
]

_FIRST_NAMES = [
    "Aarav", "Diya", "Ishaan", "Kavya", "Rohan", "Ananya", "Vikram",
    "Meera", "Arjun", "Priya", "Neha", "Sanjay", "Lakshmi", "Rahul",
]

_LAST_NAMES = [
    "Sharma", "Singh", "Gupta", "Verma", "Rao", "Kumar", "Patel",
    "Mehta", "Joshi", "Nair", "Iyer", "Reddy", "Das", "Menon",
]

# (batch id, name, department, semester, shift, subjects, allowed classrooms)
_BATCHES: list[tuple[str, str, str, int, str, list[str], list[str]]] = [
    ("cse1a", "CSE 1A", "CSE", 1, "morning", ["math1", "phy", "prog"], ["A101", "A102"]),
    ("cse1b", "CSE 1B", "CSE", 1, "morning", ["math1", "phy", "prog"], ["A101", "A102"]),
    ("cse2a", "CSE 2A", "CSE", 3, "morning", ["math2", "ds", "algo"], []),
    ("ece2a", "ECE 2A", "ECE", 3, "evening", ["elec", "dlogic", "micro"], ["B201", "B202", "LAB2"]),
    ("cse4a", "CSE 4A", "CSE", 7, "evening", ["os", "algo", "ds"], []),
]


class DemoDataGenerator:
    """Generates a complete, schedulable SchedulingData snapshot."""

    def __init__(self, seed: Optional[int] = None, num_batches: Optional[int] = None) -> None:
        self.rng = random.Random(seed)
        self.num_batches = num_batches or len(_BATCHES)

    # ─── Entities ─────────────────────────────────────────────────────────────

    def _generate_subjects(self) -> list[Subject]:
        return [
            Subject(id=sid, name=name, code=code, department=dept,
                    required_per_week=req, max_per_day=cap)
            for sid, name, code, dept, req, cap in _SUBJECTS
        ]

    def _generate_classrooms(self) -> list[Classroom]:
        return [
            Classroom(id=cid, name=name, capacity=cap, room_type=rtype)
            for cid, name, cap, rtype in _CLASSROOMS
        ]

    def _generate_faculty(self) -> list[Faculty]:
        """One teacher per subject; Mathematics I and Programming share one."""
        names = self.rng.sample(
            [f"Dr. {f} {l}" for f in _FIRST_NAMES for l in _LAST_NAMES], len(_SUBJECTS)
        )
        faculty = []
        for i, (sid, _name, _code, dept, _req, _cap) in enumerate(_SUBJECTS):
            if sid == "prog":
                continue
            subject_ids = [sid, "prog"] if sid == "math1" else [sid]
            slug = names[i].split()[-1].lower()
            faculty.append(Faculty(
                id=f"f-{sid}",
                name=names[i],
                department=dept,
                email=f"{slug}.{sid}@univ.edu",
                subject_ids=subject_ids,
            ))
        return faculty

    def _teacher_for(self, subject_id: str) -> str:
        return "f-math1" if subject_id == "prog" else f"f-{subject_id}"

    def _generate_batches(self) -> list[Batch]:
        batches = []
        for bid, name, dept, sem, shift, subjects, rooms in _BATCHES[:self.num_batches]:
            batches.append(Batch(
                id=bid,
                name=name,
                department=dept,
                semester=sem,
                shift=shift,
                subject_ids=list(subjects),
                classroom_ids=list(rooms),
                subject_teachers={s: self._teacher_for(s) for s in subjects},
            ))
        return batches

    # ─── Constraints & reservations ───────────────────────────────────────────

    def _generate_reservations(self, batches: list[Batch]) -> list[FixedReservation]:
        reservations = []
        for b in batches:
            for day in DAY_NAMES[:5]:
                reservations.append(FixedReservation(
                    id=f"lunch-{b.id}-{day[:3].lower()}",
                    name="Lunch Break",
                    type=ReservationType.LUNCH_BREAK,
                    batch_id=b.id,
                    day=day,
                    slots=[PERIOD_NAMES[3]],
                    start_time="12:30",
                    end_time="13:15",
                ))
        if batches:
            first = batches[0]
            reservations.append(FixedReservation(
                id=f"fixed-{first.id}-lab",
                name="Physics lab",
                type=ReservationType.FIXED_SLOT,
                batch_id=first.id,
                day=DAY_NAMES[2],
                slots=[PERIOD_NAMES[5]],
                subject_id="phy",
                start_time="15:00",
                end_time="15:45",
            ))
        return reservations

    def _generate_constraints(self, batches: list[Batch]) -> list[Constraint]:
        constraints = []
        for i, b in enumerate(batches):
            subject_id = self.rng.choice(b.subject_ids)
            constraints.append(Constraint(
                id=f"c-subj-{b.id}",
                type=ConstraintType.SUBJECT_SLOT,
                batch_id=b.id,
                day=DAY_NAMES[i % len(DAY_NAMES)],
                slot=PERIOD_NAMES[0],
                subject_id=subject_id,
            ))
            if b.classroom_ids:
                constraints.append(Constraint(
                    id=f"c-room-{b.id}",
                    type=ConstraintType.CLASSROOM_SLOT,
                    batch_id=b.id,
                    day=DAY_NAMES[(i + 1) % len(DAY_NAMES)],
                    slot=PERIOD_NAMES[1],
                    classroom_id=b.classroom_ids[-1],
                ))
        if batches:
            first = batches[0]
            # competes with the lunch break in Period 4
            constraints.append(Constraint(
                id=f"c-teacher-{first.id}",
                type=ConstraintType.TEACHER_SLOT,
                batch_id=first.id,
                day=DAY_NAMES[0],
                slot=PERIOD_NAMES[3],
                faculty_id=self._teacher_for(first.subject_ids[0]),
            ))
            constraints.append(Constraint(
                id=f"c-teacher-{first.id}-2",
                type=ConstraintType.TEACHER_SLOT,
                batch_id=first.id,
                day=DAY_NAMES[1],
                slot=PERIOD_NAMES[2],
                faculty_id=self._teacher_for(first.subject_ids[0]),
            ))
        return constraints

    # ─── Full data set ────────────────────────────────────────────────────────

    def generate(self) -> SchedulingData:
        """Build the full data set."""
        batches = self._generate_batches()
        return SchedulingData(
            batches=batches,
            subjects=self._generate_subjects(),
            faculty=self._generate_faculty(),
            classrooms=self._generate_classrooms(),
            constraints=self._generate_constraints(batches),
            reservations=self._generate_reservations(batches),
        )

    def print_summary(self, data: SchedulingData) -> None:
        """Print an overview table of the generated data through rich."""
        from rich.console import Console
        from rich.table import Table
        from rich import box

        console = Console()
        table = Table(title="Generated demo data", box=box.ROUNDED)
        table.add_column("Category", style="bold cyan")
        table.add_column("Count", justify="right")
        table.add_column("Details")

        restricted = sum(1 for b in data.batches if b.is_restricted)
        table.add_row("Batches", str(len(data.batches)), f"{restricted} with restricted classrooms")
        table.add_row("Subjects", str(len(data.subjects)), "")
        table.add_row("Faculty", str(len(data.faculty)), "")
        table.add_row("Classrooms", str(len(data.classrooms)), "")
        table.add_row("Constraints", str(len(data.constraints)), "")
        table.add_row("Reservations", str(len(data.reservations)), "")
        console.print(table)

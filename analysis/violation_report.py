"""Advisory violation report for a finished timetable.

Re-walks the entries against the ConstraintIndex from scratch and lists
every unmet preference, classroom restriction, residual clash and quota
mismatch, plus recommendations. Never modifies the timetable.
"""

from collections import Counter, defaultdict
from typing import Literal, Optional

from pydantic import BaseModel

from config.defaults import DAY_NAMES
from solver.constraint_index import ConstraintIndex
from solver.individual import ScheduleEntry


Severity = Literal["medium", "high"]
Status = Literal[
    "wrong_slot", "not_scheduled", "wrong_classroom",
    "clash", "disallowed_classroom", "under_scheduled", "over_scheduled",
]


class Violation(BaseModel):
    """One unmet constraint or residual clash."""

    category: str           # subject_slot | classroom_slot | teacher_slot | classroom_restriction | conflict | quota
    severity: Severity
    status: Status
    batch_id: str
    description: str
    day: Optional[str] = None
    period: Optional[str] = None
    subject_id: Optional[str] = None
    classroom_id: Optional[str] = None
    faculty_id: Optional[str] = None


class SlotUse(BaseModel):
    """One class of a restricted batch: where and when it is held."""

    day: str
    period: str
    classroom_id: Optional[str] = None
    subject_id: Optional[str] = None
    allowed: bool = True


class RestrictedBatchUsage(BaseModel):
    """Classroom usage of a batch with an allowed-classroom subset."""

    batch_id: str
    batch_name: str
    allowed_classrooms: list[str]
    usage: dict[str, int]       # classroom_id -> classes held there
    slots: list[SlotUse] = []   # grid order
    total_classes: int
    outside_uses: int


class ViolationSummary(BaseModel):
    total: int
    high: int
    medium: int
    by_category: dict[str, int]


class ViolationReport(BaseModel):
    summary: ViolationSummary
    restricted_batches: list[RestrictedBatchUsage] = []
    classroom_violations: list[Violation] = []
    conflicts: list[Violation] = []
    subject_slot: list[Violation] = []
    classroom_slot: list[Violation] = []
    teacher_slot: list[Violation] = []
    quota: list[Violation] = []
    recommendations: list[str] = []

    def all_violations(self) -> list[Violation]:
        return (
            self.classroom_violations + self.conflicts + self.subject_slot
            + self.classroom_slot + self.teacher_slot + self.quota
        )

    def print_rich(self) -> None:
        """Print the report through rich."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        s = self.summary
        status = (
            "[bold green]✓ NO VIOLATIONS[/bold green]"
            if s.total == 0
            else "[bold yellow]⚠ VIOLATIONS FOUND[/bold yellow]"
        )
        console.print(Panel(
            f"{status}\nTotal: {s.total} | High: {s.high} | Medium: {s.medium}",
            title="Violation report",
            border_style="cyan",
        ))

        if self.restricted_batches:
            rt = Table(title="Restricted batches", box=box.ROUNDED)
            rt.add_column("Batch", style="cyan")
            rt.add_column("Allowed")
            rt.add_column("Usage")
            rt.add_column("Outside", justify="right")
            rt.add_column("Slots")
            for r in self.restricted_batches:
                usage = ", ".join(f"{c}: {n}" for c, n in r.usage.items())
                slots = "\n".join(
                    f"{u.day[:3]} {u.period}: {u.classroom_id}" + ("" if u.allowed else " (!)")
                    for u in r.slots
                )
                color = "red" if r.outside_uses else "green"
                rt.add_row(
                    r.batch_name,
                    ", ".join(r.allowed_classrooms),
                    usage or "–",
                    f"[{color}]{r.outside_uses}[/{color}]",
                    slots or "–",
                )
            console.print(rt)

        violations = self.all_violations()
        if violations:
            table = Table(box=box.ROUNDED, show_lines=True)
            table.add_column("Severity", width=8)
            table.add_column("Category", width=22)
            table.add_column("Batch", width=10)
            table.add_column("Description")
            for v in violations:
                color = "red" if v.severity == "high" else "yellow"
                table.add_row(
                    f"[{color}]{v.severity.upper()}[/{color}]",
                    v.category,
                    v.batch_id,
                    v.description,
                )
            console.print(table)

        if self.recommendations:
            console.print("[bold]Recommendations:[/bold]")
            for rec in self.recommendations:
                console.print(f"  • {rec}")


class ViolationReporter:
    """Builds a ViolationReport for the batches of one ConstraintIndex."""

    def __init__(self, index: ConstraintIndex) -> None:
        self.index = index

    def build(self, entries: list[ScheduleEntry]) -> ViolationReport:
        classes = [e for e in entries if not e.is_break]

        restricted = self._restricted_batches(classes)
        classroom_violations = self._classroom_restriction(classes)
        conflicts = self._conflicts(entries)
        subject_slot = self._subject_slot(classes)
        classroom_slot = self._classroom_slot(classes)
        teacher_slot = self._teacher_slot(classes)
        quota = self._quota(classes)

        all_v = (
            classroom_violations + conflicts + subject_slot
            + classroom_slot + teacher_slot + quota
        )
        summary = ViolationSummary(
            total=len(all_v),
            high=sum(1 for v in all_v if v.severity == "high"),
            medium=sum(1 for v in all_v if v.severity == "medium"),
            by_category=dict(Counter(v.category for v in all_v)),
        )
        return ViolationReport(
            summary=summary,
            restricted_batches=restricted,
            classroom_violations=classroom_violations,
            conflicts=conflicts,
            subject_slot=subject_slot,
            classroom_slot=classroom_slot,
            teacher_slot=teacher_slot,
            quota=quota,
            recommendations=self._recommendations(restricted, all_v),
        )

    # ─── Names ────────────────────────────────────────────────────────────────

    def _batch(self, batch_id: str) -> str:
        b = self.index.batches.get(batch_id)
        return b.name if b else batch_id

    def _subject(self, subject_id: Optional[str]) -> str:
        s = self.index.subjects.get(subject_id)
        return s.name if s else str(subject_id)

    def _classroom(self, classroom_id: Optional[str]) -> str:
        c = self.index.classrooms.get(classroom_id)
        return c.name if c else str(classroom_id)

    def _teacher(self, faculty_id: Optional[str]) -> str:
        f = self.index.faculty.get(faculty_id)
        return f.name if f else str(faculty_id)

    # ─── Classroom restriction ────────────────────────────────────────────────

    def _restricted_batches(self, classes: list[ScheduleEntry]) -> list[RestrictedBatchUsage]:
        result = []
        for batch_id in self.index.batch_order:
            allowed = self.index.allowed(batch_id)
            if not allowed:
                continue
            mine = sorted(
                (e for e in classes if e.batch_id == batch_id),
                key=lambda e: (e.day, e.period),
            )
            usage = Counter(e.classroom_id for e in mine if e.classroom_id)
            slots = [
                SlotUse(
                    day=e.slot.day_name,
                    period=e.slot.period_name,
                    classroom_id=e.classroom_id,
                    subject_id=e.subject_id,
                    allowed=e.classroom_id in allowed,
                )
                for e in mine
            ]
            result.append(RestrictedBatchUsage(
                batch_id=batch_id,
                batch_name=self._batch(batch_id),
                allowed_classrooms=list(allowed),
                usage=dict(usage),
                slots=slots,
                total_classes=len(mine),
                outside_uses=sum(n for c, n in usage.items() if c not in allowed),
            ))
        return result

    def _classroom_restriction(self, classes: list[ScheduleEntry]) -> list[Violation]:
        violations = []
        for e in classes:
            if self.index.is_allowed_classroom(e.batch_id, e.classroom_id):
                continue
            slot = e.slot
            violations.append(Violation(
                category="classroom_restriction",
                severity="high",
                status="disallowed_classroom",
                batch_id=e.batch_id,
                day=slot.day_name,
                period=slot.period_name,
                subject_id=e.subject_id,
                classroom_id=e.classroom_id,
                description=(
                    f"{self._batch(e.batch_id)} uses {self._classroom(e.classroom_id)} "
                    f"on {slot.day_name} {slot.period_name}, outside its allowed classrooms"
                ),
            ))
        return violations

    # ─── Residual clashes ─────────────────────────────────────────────────────

    def _conflicts(self, entries: list[ScheduleEntry]) -> list[Violation]:
        by_batch: dict[tuple, list[ScheduleEntry]] = defaultdict(list)
        by_teacher: dict[tuple, list[ScheduleEntry]] = defaultdict(list)
        by_classroom: dict[tuple, list[ScheduleEntry]] = defaultdict(list)
        for e in entries:
            by_batch[(e.batch_id, e.slot)].append(e)
            if e.is_break:
                continue
            if e.faculty_id:
                by_teacher[(e.faculty_id, e.slot)].append(e)
            if e.classroom_id:
                by_classroom[(e.classroom_id, e.slot)].append(e)

        violations = []
        for (batch_id, slot), group in by_batch.items():
            if len(group) > 1:
                violations.append(Violation(
                    category="conflict", severity="high", status="clash",
                    batch_id=batch_id, day=slot.day_name, period=slot.period_name,
                    description=(
                        f"{self._batch(batch_id)} has {len(group)} entries on "
                        f"{slot.day_name} {slot.period_name}"
                    ),
                ))
        for (faculty_id, slot), group in by_teacher.items():
            if len(group) > 1:
                batches = ", ".join(self._batch(e.batch_id) for e in group)
                violations.append(Violation(
                    category="conflict", severity="high", status="clash",
                    batch_id=group[-1].batch_id, day=slot.day_name, period=slot.period_name,
                    faculty_id=faculty_id,
                    description=(
                        f"Teacher {self._teacher(faculty_id)} is double-booked on "
                        f"{slot.day_name} {slot.period_name} ({batches})"
                    ),
                ))
        for (classroom_id, slot), group in by_classroom.items():
            if len(group) > 1:
                subjects = ", ".join(
                    f"{self._subject(e.subject_id)} ({self._batch(e.batch_id)})" for e in group
                )
                violations.append(Violation(
                    category="conflict", severity="high", status="clash",
                    batch_id=group[-1].batch_id, day=slot.day_name, period=slot.period_name,
                    classroom_id=classroom_id,
                    description=(
                        f"Classroom {self._classroom(classroom_id)} holds {len(group)} classes on "
                        f"{slot.day_name} {slot.period_name}: {subjects}"
                    ),
                ))
        return violations

    # ─── Slot preferences ─────────────────────────────────────────────────────

    def _subject_slot(self, classes: list[ScheduleEntry]) -> list[Violation]:
        placed = {(e.batch_id, e.subject_id, e.slot) for e in classes}
        scheduled = {(e.batch_id, e.subject_id) for e in classes}
        violations = []
        for d in self.index.single_slot_constraints:
            if (d.batch_id, d.subject_id, d.slot) in placed:
                continue
            anywhere = (d.batch_id, d.subject_id) in scheduled
            violations.append(Violation(
                category="subject_slot",
                severity="medium" if anywhere else "high",
                status="wrong_slot" if anywhere else "not_scheduled",
                batch_id=d.batch_id,
                day=d.slot.day_name,
                period=d.slot.period_name,
                subject_id=d.subject_id,
                description=(
                    f"{self._subject(d.subject_id)} for {self._batch(d.batch_id)} wanted on "
                    f"{d.slot.day_name} {d.slot.period_name}: "
                    + ("scheduled in another slot" if anywhere else "not scheduled at all")
                ),
            ))
        return violations

    def _classroom_slot(self, classes: list[ScheduleEntry]) -> list[Violation]:
        at_slot: dict[tuple, ScheduleEntry] = {}
        for e in classes:
            at_slot.setdefault((e.batch_id, e.slot), e)
        violations = []
        for (batch_id, slot), classroom_id in self.index.classroom_slot_prefs.items():
            e = at_slot.get((batch_id, slot))
            if e is not None and e.classroom_id == classroom_id:
                continue
            wrong = e is not None
            violations.append(Violation(
                category="classroom_slot",
                severity="medium" if wrong else "high",
                status="wrong_classroom" if wrong else "not_scheduled",
                batch_id=batch_id,
                day=slot.day_name,
                period=slot.period_name,
                classroom_id=classroom_id,
                subject_id=e.subject_id if e else None,
                description=(
                    f"{self._batch(batch_id)} wanted {self._classroom(classroom_id)} on "
                    f"{slot.day_name} {slot.period_name}: "
                    + (f"got {self._classroom(e.classroom_id)}" if wrong else "no class in that slot")
                ),
            ))
        return violations

    def _teacher_slot(self, classes: list[ScheduleEntry]) -> list[Violation]:
        taught = {(e.batch_id, e.faculty_id, e.slot) for e in classes if e.faculty_id}
        teaches_batch = {(e.batch_id, e.faculty_id) for e in classes if e.faculty_id}
        violations = []
        for (batch_id, faculty_id), slots in self.index.teacher_pref_slots.items():
            for slot in slots:
                if (batch_id, faculty_id, slot) in taught:
                    continue
                anywhere = (batch_id, faculty_id) in teaches_batch
                violations.append(Violation(
                    category="teacher_slot",
                    severity="medium" if anywhere else "high",
                    status="wrong_slot" if anywhere else "not_scheduled",
                    batch_id=batch_id,
                    day=slot.day_name,
                    period=slot.period_name,
                    faculty_id=faculty_id,
                    description=(
                        f"{self._teacher(faculty_id)} wanted for {self._batch(batch_id)} on "
                        f"{slot.day_name} {slot.period_name}: "
                        + ("teaches in other slots" if anywhere else "does not teach this batch")
                    ),
                ))
        return violations

    # ─── Quotas ───────────────────────────────────────────────────────────────

    def _quota(self, classes: list[ScheduleEntry]) -> list[Violation]:
        weekly = Counter((e.batch_id, e.subject_id) for e in classes if e.subject_id)
        daily = Counter((e.batch_id, e.subject_id, e.day) for e in classes if e.subject_id)

        violations = []
        for batch_id in self.index.batch_order:
            subjects = list(self.index.batch_subjects.get(batch_id, []))
            subjects += [s for (b, s) in weekly if b == batch_id and s not in subjects]
            for subject_id in subjects:
                required = self.index.quota_for(subject_id).weekly_required
                n = weekly[(batch_id, subject_id)]
                if n == required:
                    continue
                under = n < required
                violations.append(Violation(
                    category="quota",
                    severity="high" if under else "medium",
                    status="under_scheduled" if under else "over_scheduled",
                    batch_id=batch_id,
                    subject_id=subject_id,
                    description=(
                        f"{self._subject(subject_id)} for {self._batch(batch_id)}: "
                        f"{n} of {required} classes/week"
                    ),
                ))

        for (batch_id, subject_id, day), n in daily.items():
            cap = self.index.daily_cap(subject_id)
            if n > cap:
                violations.append(Violation(
                    category="quota",
                    severity="medium",
                    status="over_scheduled",
                    batch_id=batch_id,
                    subject_id=subject_id,
                    day=self._day_name(day),
                    description=(
                        f"{self._subject(subject_id)} for {self._batch(batch_id)}: "
                        f"{n} classes on {self._day_name(day)} (max {cap})"
                    ),
                ))
        return violations

    @staticmethod
    def _day_name(day: int) -> str:
        return DAY_NAMES[day] if day < len(DAY_NAMES) else str(day)

    # ─── Recommendations ──────────────────────────────────────────────────────

    def _recommendations(
        self, restricted: list[RestrictedBatchUsage], violations: list[Violation]
    ) -> list[str]:
        recs: list[str] = []

        def add(text: str) -> None:
            if text not in recs:
                recs.append(text)

        crowded = {
            v.batch_id for v in violations
            if v.category in ("classroom_restriction", "conflict") and v.classroom_id
        }
        for r in restricted:
            if r.outside_uses or r.batch_id in crowded:
                add(
                    f"Add classrooms to the allowed set of {r.batch_name} "
                    f"({len(r.allowed_classrooms)} allowed, {r.total_classes} classes/week)."
                )

        for v in violations:
            if v.category == "conflict" and v.faculty_id:
                add(
                    f"Teacher {self._teacher(v.faculty_id)} is overbooked: assign a second "
                    f"teacher or spread their batches over more slots."
                )
            elif v.category == "conflict" and not v.classroom_id:
                add(
                    f"{self._batch(v.batch_id)} has more classes than free slots: "
                    f"remove reservations or lower weekly requirements."
                )
            elif v.category == "quota" and v.status == "under_scheduled":
                add(
                    f"{self._batch(v.batch_id)} cannot fit all {self._subject(v.subject_id)} "
                    f"classes: free up slots or lower the weekly requirement."
                )
            elif v.category == "subject_slot" and v.status == "not_scheduled":
                add(
                    f"Check the quota of {self._subject(v.subject_id)} for "
                    f"{self._batch(v.batch_id)}: its slot preference could not be used."
                )
            elif v.category in ("subject_slot", "teacher_slot", "classroom_slot"):
                add(
                    f"Slot preferences of {self._batch(v.batch_id)} compete with each other "
                    f"or with reservations; consider relaxing some of them."
                )

        if not recs and not violations:
            add("All constraints are satisfied.")
        return recs

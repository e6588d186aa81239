from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from .config import TIME_OFF_LABEL
from .errors import MalformedInput
from .hours import compute_analytics
from .models import (
    AnalyticsReport, Assignment, Employee, EmployeeSchedule, EntryError, ErrorKind,
    ScheduleEntry, ShiftConflict, ShiftType, TimeOffRequest, TimeOffStatus, Week,
)
from .utils import email_key, name_key, parse_date
from .weeks import week_label, week_of

log = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────────────────
# Week filters
# ──────────────────────────────────────────────────────────────────────────────

def filter_assignments(rows: Iterable[Assignment], week: Week) -> List[Assignment]:
    """Assignments dated inside ``week``; rows with unparseable dates are skipped."""
    out: List[Assignment] = []
    for row in rows:
        try:
            d = parse_date(row.date)
        except MalformedInput as e:
            log.warning("Skipping schedule row %r: %s", row, e)
            continue
        if d in week:
            out.append(Assignment(date=d, employee_name=row.employee_name, shift_name=row.shift_name))
    return out


def overlaps(start: date, end: date, week: Week) -> bool:
    return start <= week.end and end >= week.start


def approved_time_off(requests: Iterable[TimeOffRequest], week: Week) -> List[TimeOffRequest]:
    return [
        r for r in requests
        if r.status == TimeOffStatus.APPROVED and overlaps(r.start_date, r.end_date, week)
    ]


def expand_time_off(request: TimeOffRequest, week: Week) -> List[ScheduleEntry]:
    """One Time Off entry per day of ``request`` that falls inside ``week``."""
    cur = max(request.start_date, week.start)
    stop = min(request.end_date, week.end)
    out = []
    while cur <= stop:
        out.append(ScheduleEntry(date=cur, shift_name=TIME_OFF_LABEL))
        cur += timedelta(days=1)
    return out


# ──────────────────────────────────────────────────────────────────────────────
# Per-employee view
# ──────────────────────────────────────────────────────────────────────────────

def _emails_by_name(employees: Iterable[Employee]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for e in employees:
        out.setdefault(name_key(e.name), email_key(e.email))
    return out


def employee_schedule(
    email: str,
    assignments: Iterable[Assignment],
    employees: Iterable[Employee],
    shifts_by_name: Dict[str, ShiftType],
    time_off: Iterable[TimeOffRequest],
    week: Week,
) -> EmployeeSchedule:
    target = email_key(email)
    by_name = _emails_by_name(employees)
    result = EmployeeSchedule(email=target)

    for a in assignments:
        if by_name.get(name_key(a.employee_name)) != target:
            continue
        st = shifts_by_name.get(a.shift_name)
        if st is None:
            result.errors.append(EntryError(
                kind=ErrorKind.NOT_FOUND,
                message=f"Shift '{a.shift_name}' on {a.date.isoformat()} is not in the shift list.",
                assignment=a,
            ))
            continue
        result.entries.append(ScheduleEntry(date=a.date, shift_name=st.name, start=st.start, end=st.end))

    for r in time_off:
        if email_key(r.employee_email) == target:
            result.entries.extend(expand_time_off(r, week))

    # stable: a same-day shift stays ahead of its Time Off entry
    result.entries = sorted(result.entries, key=lambda e: e.date)
    return result


# ──────────────────────────────────────────────────────────────────────────────
# Soft warnings for the assign path
# ──────────────────────────────────────────────────────────────────────────────

def find_conflicts(assignments: Iterable[Assignment], employee_name: str, on: date,
                   proposed_shift: str) -> List[ShiftConflict]:
    key = name_key(employee_name)
    out = []
    for a in assignments:
        try:
            d = parse_date(a.date)
        except MalformedInput:
            continue
        if d == on and name_key(a.employee_name) == key and a.shift_name != proposed_shift:
            out.append(ShiftConflict(existing_shift=a.shift_name, date=d))
    return out


def time_off_on(requests: Iterable[TimeOffRequest], employee_email: str, on: date) -> List[TimeOffRequest]:
    target = email_key(employee_email)
    return [
        r for r in requests
        if r.status == TimeOffStatus.APPROVED
        and email_key(r.employee_email) == target
        and r.start_date <= on <= r.end_date
    ]


# ──────────────────────────────────────────────────────────────────────────────
# Assembler
# ──────────────────────────────────────────────────────────────────────────────

@dataclass
class WeekSchedule:
    week: Week
    employees: List[Employee]
    shifts_by_name: Dict[str, ShiftType]
    assignments: List[Assignment]
    approved_time_off: List[TimeOffRequest]
    _per_employee: Dict[str, EmployeeSchedule] = field(default_factory=dict, repr=False)
    _analytics: Optional[AnalyticsReport] = field(default=None, repr=False)

    @property
    def week_range(self) -> str:
        return week_label(self.week)

    @property
    def shifts(self) -> List[ShiftType]:
        return list(self.shifts_by_name.values())

    def for_employee(self, email: str) -> EmployeeSchedule:
        key = email_key(email)
        if key not in self._per_employee:
            self._per_employee[key] = employee_schedule(
                key, self.assignments, self.employees, self.shifts_by_name,
                self.approved_time_off, self.week,
            )
        return self._per_employee[key]

    @property
    def analytics(self) -> AnalyticsReport:
        if self._analytics is None:
            self._analytics = compute_analytics(self.assignments, self.employees, self.shifts_by_name)
        return self._analytics

    def assignment_for(self, employee_name: str, on: date) -> Optional[Assignment]:
        key = name_key(employee_name)
        for a in self.assignments:
            if a.date == on and name_key(a.employee_name) == key:
                return a
        return None

    def time_off_for(self, employee_email: str, on: date) -> List[TimeOffRequest]:
        return time_off_on(self.approved_time_off, employee_email, on)


class WeekScheduleAssembler:
    """Builds a :class:`WeekSchedule` from already-loaded rows. No I/O."""

    def __init__(self, employees: List[Employee], shifts: List[ShiftType]):
        self.employees = list(employees)
        self.shifts_by_name: Dict[str, ShiftType] = {}
        for s in shifts:
            self.shifts_by_name.setdefault(s.name, s)

    def assemble(self, week_start, assignments: Iterable[Assignment],
                 time_off: Iterable[TimeOffRequest]) -> WeekSchedule:
        week = week_of(week_start)
        return WeekSchedule(
            week=week,
            employees=self.employees,
            shifts_by_name=self.shifts_by_name,
            assignments=filter_assignments(assignments, week),
            approved_time_off=approved_time_off(time_off, week),
        )

from __future__ import annotations
from collections import Counter, defaultdict
from datetime import time
from typing import Dict, Iterable, List

from .models import AnalyticsReport, Assignment, Employee, ShiftType
from .utils import name_key


# ──────────────────────────────────────────────────────────────────────────────
# Shift duration (overnight wrap)
# ──────────────────────────────────────────────────────────────────────────────

def _minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def shift_minutes(start: time, end: time) -> int:
    """Length of a start→end shift. ``end < start`` wraps past midnight."""
    mins = _minutes(end) - _minutes(start)
    if mins < 0:
        mins += 24 * 60
    return mins


def shift_hours(start: time, end: time) -> float:
    return shift_minutes(start, end) / 60.0


# ──────────────────────────────────────────────────────────────────────────────
# Workload / distribution / coverage
# ──────────────────────────────────────────────────────────────────────────────

def workload(assignments: Iterable[Assignment], employees: List[Employee],
             shifts_by_name: Dict[str, ShiftType]) -> List[tuple]:
    """Hours per employee, keyed by ``name_key`` and reported under the roster name."""
    display: Dict[str, str] = {}
    hours: Dict[str, float] = defaultdict(float)
    for e in employees:
        key = name_key(e.name)
        display.setdefault(key, e.name)
        hours[key] += 0.0
    for a in assignments:
        st = shifts_by_name.get(a.shift_name)
        if st is None:
            continue
        key = name_key(a.employee_name)
        display.setdefault(key, a.employee_name)
        hours[key] += shift_hours(st.start, st.end)
    out = [(display[key], round(h, 1)) for key, h in hours.items()]
    # stable on insertion order for ties
    out.sort(key=lambda x: x[1], reverse=True)
    return out


def distribution(assignments: Iterable[Assignment]) -> List[tuple]:
    counts = Counter(a.shift_name for a in assignments)
    out = list(counts.items())
    out.sort(key=lambda x: x[1], reverse=True)
    return out


def coverage(assignment_count: int, employee_count: int) -> int:
    if employee_count <= 0:
        return 0
    # half-up rounding
    return int(assignment_count / (employee_count * 7) * 100 + 0.5)


def compute_analytics(assignments: List[Assignment], employees: List[Employee],
                      shifts_by_name: Dict[str, ShiftType]) -> AnalyticsReport:
    load = workload(assignments, employees, shifts_by_name)
    return AnalyticsReport(
        workload=load,
        distribution=distribution(assignments),
        coverage=coverage(len(assignments), len(employees)),
        total_hours=round(sum(h for _, h in load), 1),
    )

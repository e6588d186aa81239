from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Dict, List, Optional

from .config import STATUS_APPROVED, STATUS_DENIED, STATUS_PENDING, TIME_OFF_LABEL


@dataclass(frozen=True)
class Employee:
    id: str
    name: str
    email: str
    role: str = ""


@dataclass(frozen=True)
class ShiftType:
    name: str
    start: time
    end: time

    @property
    def overnight(self) -> bool:
        return self.end < self.start


@dataclass(frozen=True)
class Assignment:
    date: date
    employee_name: str
    shift_name: str


class TimeOffStatus(str, Enum):
    PENDING = STATUS_PENDING
    APPROVED = STATUS_APPROVED
    DENIED = STATUS_DENIED


@dataclass(frozen=True)
class TimeOffRequest:
    request_id: str
    employee_name: str
    employee_email: str
    start_date: date
    end_date: date
    reason: str
    status: TimeOffStatus
    request_date: Optional[datetime] = None


@dataclass(frozen=True)
class Week:
    start: date
    end: date

    @property
    def start_dt(self) -> datetime:
        return datetime.combine(self.start, time.min)

    @property
    def end_dt(self) -> datetime:
        # Sunday 23:59:59.999
        return datetime.combine(self.end, time(23, 59, 59, 999000))

    def days(self) -> List[date]:
        return [self.start + timedelta(days=i) for i in range(7)]

    def __contains__(self, d: date) -> bool:
        return self.start <= d <= self.end


@dataclass(frozen=True)
class ScheduleEntry:
    """One row of an employee's week: a shift (with times) or a Time Off day."""
    date: date
    shift_name: str
    start: Optional[time] = None
    end: Optional[time] = None

    @property
    def is_time_off(self) -> bool:
        return self.shift_name == TIME_OFF_LABEL and self.start is None


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class EntryError:
    kind: ErrorKind
    message: str
    assignment: Optional[Assignment] = None


@dataclass
class EmployeeSchedule:
    email: str
    entries: List[ScheduleEntry] = field(default_factory=list)
    errors: List[EntryError] = field(default_factory=list)


@dataclass(frozen=True)
class ShiftConflict:
    existing_shift: str
    date: date


@dataclass
class AnalyticsReport:
    workload: List[tuple] = field(default_factory=list)        # [(employee_name, hours)]
    distribution: List[tuple] = field(default_factory=list)    # [(shift_name, count)]
    coverage: int = 0
    total_hours: float = 0.0

    def workload_map(self) -> Dict[str, float]:
        return dict(self.workload)

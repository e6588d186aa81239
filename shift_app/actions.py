# shift_app/actions.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import List, Optional, Tuple

from .errors import Conflict, MalformedInput, NotFound, PermissionDenied
from .models import (
    Employee, EmployeeSchedule, ShiftConflict, ShiftType, TimeOffRequest, TimeOffStatus,
)
from .notify import Notifier, notify_best_effort
from .schedule import WeekSchedule, WeekScheduleAssembler, find_conflicts, time_off_on
from .store import Stores
from .utils import email_key, is_authorized_role, parse_date

log = logging.getLogger(__name__)


# ───────────────────────── Identity ─────────────────────────
@dataclass(frozen=True)
class Actor:
    email: str
    employee: Employee

    @property
    def role(self) -> str:
        return self.employee.role

    @property
    def is_manager(self) -> bool:
        return is_authorized_role(self.employee.role)


def resolve_actor(stores: Stores, email: str) -> Actor:
    """Sign-in by row lookup: the email must be on the Employees sheet."""
    if not email_key(email):
        raise MalformedInput("Enter your email in the sidebar first.")
    try:
        emp = stores.employees.get_by_email(email)
    except NotFound:
        raise NotFound("Your email is not on the Employees sheet. Ask a manager to add you.") from None
    return Actor(email=email_key(email), employee=emp)


def require_manager(actor: Actor, what: str) -> None:
    if not actor.is_manager:
        log.warning("Permission denied: %s tried to %s", actor.email, what)
        raise PermissionDenied(f"Permission Denied. Only authorized managers can {what}.")


# ───────────────────────── Reads ─────────────────────────
def get_schedule_data(stores: Stores, week_start) -> WeekSchedule:
    assembler = WeekScheduleAssembler(stores.employees.list(), stores.shifts.list())
    return assembler.assemble(week_start, stores.assignments.list_all(), stores.time_off.list_all())


def get_my_schedule(stores: Stores, actor: Actor, week_start) -> Tuple[WeekSchedule, EmployeeSchedule]:
    data = get_schedule_data(stores, week_start)
    return data, data.for_employee(actor.email)


# ───────────────────────── Shifts ─────────────────────────
@dataclass
class AssignResult:
    message: str
    removed: list = field(default_factory=list)
    conflicts: List[ShiftConflict] = field(default_factory=list)
    time_off: List[TimeOffRequest] = field(default_factory=list)

    @property
    def warnings(self) -> List[str]:
        out = [
            f"Replaced {c.existing_shift} on {c.date.isoformat()}." for c in self.conflicts
        ]
        out += [
            f"{r.employee_name} has approved time off {r.start_date.isoformat()} to {r.end_date.isoformat()}."
            for r in self.time_off
        ]
        return out


def check_shift_conflicts(stores: Stores, employee_name: str, on, shift_name: str) -> List[ShiftConflict]:
    return find_conflicts(stores.assignments.list_all(), employee_name, parse_date(on), shift_name)


def assign_shift(stores: Stores, actor: Actor, *, employee_name: str, on, shift_name: Optional[str]) -> AssignResult:
    require_manager(actor, "edit schedules")
    on = parse_date(on)
    emp = stores.employees.get_by_name(employee_name)
    shift_name = (shift_name or "").strip()
    if shift_name:
        stores.shifts.get(shift_name)

    conflicts = find_conflicts(stores.assignments.list_all(), emp.name, on, shift_name) if shift_name else []
    away = time_off_on(stores.time_off.list_all(), emp.email, on) if shift_name else []
    removed = stores.assignments.upsert(on, emp.name, shift_name)

    if shift_name:
        msg = f"Assigned **{emp.name}** to **{shift_name}** on {on.isoformat()}."
    elif removed:
        msg = f"Cleared **{emp.name}** on {on.isoformat()}."
    else:
        msg = f"{emp.name} had no shift on {on.isoformat()}."
    return AssignResult(message=msg, removed=removed, conflicts=conflicts, time_off=away)


def add_shift_type(stores: Stores, actor: Actor, *, name: str, start, end) -> ShiftType:
    require_manager(actor, "add shift types")
    return stores.shifts.add(name, start, end)


# ───────────────────────── Employees ─────────────────────────
def add_employee(stores: Stores, actor: Actor, *, name: str, email: str, role: str) -> Employee:
    require_manager(actor, "add employees")
    return stores.employees.add(name, email, role)


def delete_employee(stores: Stores, actor: Actor, *, email: str, today: Optional[date] = None) -> Tuple[Employee, int]:
    """Remove the employee and their assignments from ``today`` on."""
    require_manager(actor, "delete employees")
    if email_key(email) == actor.email:
        raise Conflict("You cannot delete your own account.")
    emp = stores.employees.delete(email)
    dropped = stores.assignments.delete_for_employee(emp.name, today or date.today())
    log.info("Deleted %s and %d future shift(s)", emp.email, dropped)
    return emp, dropped


# ───────────────────────── Time off ─────────────────────────
def _manager_emails(stores: Stores) -> List[str]:
    return [e.email for e in stores.employees.list() if is_authorized_role(e.role)]


def submit_time_off(stores: Stores, notifier: Optional[Notifier], actor: Actor, *,
                    start, end, reason: str) -> TimeOffRequest:
    start_d, end_d = parse_date(start), parse_date(end)
    if end_d < start_d:
        raise MalformedInput("End date must be on or after the start date.")
    req = stores.time_off.add(actor.employee, start_d, end_d, reason)
    notify_best_effort(
        notifier, _manager_emails(stores),
        f"New time-off request from {req.employee_name}",
        f"{req.employee_name} requested time off from {start_d.isoformat()} to {end_d.isoformat()}.\n"
        f"Reason: {req.reason or '(none)'}\n",
    )
    return req


def get_pending_requests(stores: Stores, actor: Actor) -> List[TimeOffRequest]:
    require_manager(actor, "review time-off requests")
    pending = [r for r in stores.time_off.list_all() if r.status == TimeOffStatus.PENDING]
    pending.sort(key=lambda r: (r.start_date, r.employee_name))
    return pending


def get_my_requests(stores: Stores, actor: Actor) -> List[TimeOffRequest]:
    mine = [r for r in stores.time_off.list_all() if email_key(r.employee_email) == actor.email]
    mine.sort(key=lambda r: r.start_date, reverse=True)
    return mine


def process_time_off(stores: Stores, notifier: Optional[Notifier], actor: Actor, *,
                     request_id: str, status) -> TimeOffRequest:
    require_manager(actor, "approve or deny time off")
    try:
        new_status = TimeOffStatus(str(getattr(status, "value", status)).strip().title())
    except ValueError:
        raise MalformedInput(f"Unknown status '{status}'.") from None
    if new_status == TimeOffStatus.PENDING:
        raise MalformedInput("A request can only be Approved or Denied.")
    req = stores.time_off.get(request_id)
    if req.status != TimeOffStatus.PENDING:
        raise Conflict(f"Request {request_id} is already {req.status.value}.")
    stores.time_off.set_status(request_id, new_status)
    notify_best_effort(
        notifier, [req.employee_email],
        f"Your time-off request has been {new_status.value}",
        f"Hi {req.employee_name},\n\nYour request for {req.start_date.isoformat()} to "
        f"{req.end_date.isoformat()} has been {new_status.value.lower()} by {actor.employee.name}.\n",
    )
    return replace(req, status=new_status)

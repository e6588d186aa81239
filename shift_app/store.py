from __future__ import annotations
import logging
import uuid
from datetime import date, datetime
from typing import Dict, List, Optional

import gspread
import gspread.utils as a1

from .config import (
    EMPLOYEES_SHEET, READ_CACHE_TTL_SEC, REQUIRED_SHEETS, SCHEDULE_LOG_SHEET,
    SHIFTS_SHEET, TIME_OFF_SHEET,
)
from .errors import Conflict, MalformedInput, NotFound, StoreError
from .models import Assignment, Employee, ShiftType, TimeOffRequest, TimeOffStatus
from .quotas import ReadCache, with_backoff
from .utils import email_key, fmt_hm, name_key, parse_date, parse_time_str, parse_timestamp

log = logging.getLogger(__name__)


def _pad(row: List[str], width: int) -> List[str]:
    row = [str(c) if c is not None else "" for c in (row or [])]
    return row + [""] * (width - len(row)) if len(row) < width else row[:width]


def _is_blank(row: List[str]) -> bool:
    return not any(str(c).strip() for c in row)


# ──────────────────────────────────────────────────────────────────────────────
# Workbook context
# ──────────────────────────────────────────────────────────────────────────────

class SheetContext:
    """One open workbook plus its read cache.

    Build one per session and hand it to the stores; nothing here is global.
    """

    def __init__(self, ss: gspread.Spreadsheet, ttl_sec: float = READ_CACHE_TTL_SEC):
        self.ss = ss
        self.cache = ReadCache(ttl_sec)
        self._ws_map: Optional[Dict[str, gspread.Worksheet]] = None

    def _load_ws_map(self) -> Dict[str, gspread.Worksheet]:
        if self._ws_map is None:
            self._ws_map = {ws.title: ws for ws in with_backoff(self.ss.worksheets)}
        return self._ws_map

    def titles(self) -> List[str]:
        return list(self._load_ws_map().keys())

    def find(self, title: str) -> Optional[gspread.Worksheet]:
        return self._load_ws_map().get(title)

    def worksheet(self, title: str) -> gspread.Worksheet:
        ws = self.find(title)
        if ws is not None:
            return ws
        if title in REQUIRED_SHEETS:
            return self.ensure_sheet(title, REQUIRED_SHEETS[title])
        raise NotFound(f"The '{title}' sheet was not found.")

    def ensure_sheet(self, title: str, header: List[str]) -> gspread.Worksheet:
        ws = self.find(title)
        if ws is not None:
            return ws
        log.info("Creating worksheet %s", title)
        ws = with_backoff(self.ss.add_worksheet, title=title, rows=1000, cols=max(len(header), 1))
        end = a1.rowcol_to_a1(1, len(header))
        with_backoff(ws.update, range_name=f"A1:{end}", values=[header])
        with_backoff(ws.format, f"A1:{end}", {"textFormat": {"bold": True}})
        with_backoff(ws.freeze, rows=1)
        self._load_ws_map()[title] = ws
        return ws

    def setup_sheets(self) -> None:
        for title, header in REQUIRED_SHEETS.items():
            self.ensure_sheet(title, header)

    def add_worksheet(self, title: str, rows: int, cols: int, index: int = 0) -> gspread.Worksheet:
        ws = with_backoff(self.ss.add_worksheet, title=title, rows=rows, cols=cols, index=index)
        self._load_ws_map()[title] = ws
        return ws

    def rows(self, title: str, fresh: bool = False) -> List[List[str]]:
        """Data rows (header dropped), padded to the header width."""
        if not fresh:
            cached = self.cache.get(title)
            if cached is not None:
                return cached
        ws = self.worksheet(title)
        try:
            values = with_backoff(ws.get_all_values)
        except gspread.exceptions.APIError as e:
            raise StoreError(f"Could not read '{title}': {e}") from e
        width = len(REQUIRED_SHEETS.get(title) or (values[0] if values else []))
        data = [_pad(r, width) for r in values[1:]]
        self.cache.put(title, data)
        return data

    def invalidate(self, title: str = None) -> None:
        self.cache.invalidate(title)


# ──────────────────────────────────────────────────────────────────────────────
# Employees
# ──────────────────────────────────────────────────────────────────────────────

class EmployeeStore:
    def __init__(self, ctx: SheetContext):
        self.ctx = ctx

    def list(self) -> List[Employee]:
        out = []
        for r in self.ctx.rows(EMPLOYEES_SHEET):
            if _is_blank(r):
                continue
            emp_id, name, email, role = (c.strip() for c in r)
            if not name or not email:
                log.warning("Skipping employee row without name/email: %r", r)
                continue
            out.append(Employee(id=emp_id, name=name, email=email, role=role))
        return out

    def by_email(self) -> Dict[str, Employee]:
        out: Dict[str, Employee] = {}
        for e in self.list():
            out.setdefault(email_key(e.email), e)
        return out

    def get_by_email(self, email: str) -> Employee:
        emp = self.by_email().get(email_key(email))
        if emp is None:
            raise NotFound(f"No employee with email {email}.")
        return emp

    def get_by_name(self, name: str) -> Employee:
        key = name_key(name)
        for e in self.list():
            if name_key(e.name) == key:
                return e
        raise NotFound(f"No employee named '{name}'.")

    def add(self, name: str, email: str, role: str) -> Employee:
        name, email, role = (name or "").strip(), (email or "").strip(), (role or "").strip()
        if not name or not email:
            raise MalformedInput("Name and email are required.")
        if email_key(email) in self.by_email():
            raise Conflict(f"An employee with the email {email} already exists.")
        emp = Employee(id=str(uuid.uuid4()), name=name, email=email, role=role)
        ws = self.ctx.worksheet(EMPLOYEES_SHEET)
        with_backoff(ws.append_row, [emp.id, emp.name, emp.email, emp.role], value_input_option="RAW")
        self.ctx.invalidate(EMPLOYEES_SHEET)
        log.info("Added employee %s <%s>", emp.name, emp.email)
        return emp

    def delete(self, email: str) -> Employee:
        key = email_key(email)
        rows = self.ctx.rows(EMPLOYEES_SHEET, fresh=True)
        for idx, r in enumerate(rows, start=2):
            if email_key(r[2]) == key:
                ws = self.ctx.worksheet(EMPLOYEES_SHEET)
                with_backoff(ws.delete_rows, idx)
                self.ctx.invalidate(EMPLOYEES_SHEET)
                log.info("Deleted employee %s", email)
                return Employee(id=r[0].strip(), name=r[1].strip(), email=r[2].strip(), role=r[3].strip())
        raise NotFound(f"No employee with email {email}.")


# ──────────────────────────────────────────────────────────────────────────────
# Shift types
# ──────────────────────────────────────────────────────────────────────────────

class ShiftStore:
    def __init__(self, ctx: SheetContext):
        self.ctx = ctx

    def list(self) -> List[ShiftType]:
        out = []
        for r in self.ctx.rows(SHIFTS_SHEET):
            if _is_blank(r):
                continue
            name = r[0].strip()
            try:
                out.append(ShiftType(name=name, start=parse_time_str(r[1]), end=parse_time_str(r[2])))
            except MalformedInput as e:
                log.warning("Skipping shift row %r: %s", r, e)
        return out

    def by_name(self) -> Dict[str, ShiftType]:
        out: Dict[str, ShiftType] = {}
        for s in self.list():
            out.setdefault(s.name, s)
        return out

    def get(self, name: str) -> ShiftType:
        st = self.by_name().get(name)
        if st is None:
            raise NotFound(f"Shift '{name}' does not exist.")
        return st

    def add(self, name: str, start, end) -> ShiftType:
        name = (name or "").strip()
        if not name:
            raise MalformedInput("Shift name is required.")
        if name in self.by_name():
            raise Conflict(f"A shift named '{name}' already exists.")
        st = ShiftType(name=name, start=parse_time_str(start), end=parse_time_str(end))
        ws = self.ctx.worksheet(SHIFTS_SHEET)
        with_backoff(ws.append_row, [st.name, fmt_hm(st.start), fmt_hm(st.end)], value_input_option="RAW")
        self.ctx.invalidate(SHIFTS_SHEET)
        log.info("Added shift %s %s-%s", st.name, fmt_hm(st.start), fmt_hm(st.end))
        return st


# ──────────────────────────────────────────────────────────────────────────────
# Schedule log
# ──────────────────────────────────────────────────────────────────────────────

class AssignmentStore:
    def __init__(self, ctx: SheetContext):
        self.ctx = ctx

    def list_all(self) -> List[Assignment]:
        out = []
        for r in self.ctx.rows(SCHEDULE_LOG_SHEET):
            if _is_blank(r):
                continue
            try:
                d = parse_date(r[0])
            except MalformedInput as e:
                log.warning("Skipping schedule row %r: %s", r, e)
                continue
            out.append(Assignment(date=d, employee_name=r[1].strip(), shift_name=r[2].strip()))
        return out

    def _delete_rows(self, row_numbers: List[int]) -> None:
        ws = self.ctx.worksheet(SCHEDULE_LOG_SHEET)
        # bottom-up so earlier row numbers stay valid
        for n in sorted(row_numbers, reverse=True):
            with_backoff(ws.delete_rows, n)

    def upsert(self, on: date, employee_name: str, shift_name: str) -> List[Assignment]:
        """Replace the (date, employee) row; an empty shift name just deletes it.

        Returns the rows that were removed.
        """
        on = parse_date(on)
        key = name_key(employee_name)
        removed, doomed = [], []
        for idx, r in enumerate(self.ctx.rows(SCHEDULE_LOG_SHEET, fresh=True), start=2):
            try:
                d = parse_date(r[0])
            except MalformedInput:
                continue
            if d == on and name_key(r[1]) == key:
                doomed.append(idx)
                removed.append(Assignment(date=d, employee_name=r[1].strip(), shift_name=r[2].strip()))
        shift_name = (shift_name or "").strip()
        try:
            self._delete_rows(doomed)
            if shift_name:
                ws = self.ctx.worksheet(SCHEDULE_LOG_SHEET)
                with_backoff(ws.append_row, [on.isoformat(), employee_name.strip(), shift_name],
                             value_input_option="RAW")
        finally:
            self.ctx.invalidate(SCHEDULE_LOG_SHEET)
        log.info("Schedule %s %s -> %s", on.isoformat(), employee_name, shift_name or "(none)")
        return removed

    def delete_for_employee(self, employee_name: str, on_or_after: date) -> int:
        key = name_key(employee_name)
        doomed = []
        for idx, r in enumerate(self.ctx.rows(SCHEDULE_LOG_SHEET, fresh=True), start=2):
            if name_key(r[1]) != key:
                continue
            try:
                d = parse_date(r[0])
            except MalformedInput:
                continue
            if d >= on_or_after:
                doomed.append(idx)
        try:
            self._delete_rows(doomed)
        finally:
            self.ctx.invalidate(SCHEDULE_LOG_SHEET)
        return len(doomed)


# ──────────────────────────────────────────────────────────────────────────────
# Time off
# ──────────────────────────────────────────────────────────────────────────────

_STATUS_COL = REQUIRED_SHEETS[TIME_OFF_SHEET].index("Status") + 1


class TimeOffStore:
    def __init__(self, ctx: SheetContext):
        self.ctx = ctx

    @staticmethod
    def _from_row(r: List[str]) -> TimeOffRequest:
        try:
            status = TimeOffStatus(r[6].strip().title())
        except ValueError as e:
            raise MalformedInput(f"Unknown status '{r[6]}'.") from e
        return TimeOffRequest(
            request_id=r[0].strip(),
            employee_name=r[1].strip(),
            employee_email=r[2].strip(),
            start_date=parse_date(r[3]),
            end_date=parse_date(r[4]),
            reason=r[5].strip(),
            status=status,
            request_date=parse_timestamp(r[7]),
        )

    def list_all(self) -> List[TimeOffRequest]:
        out = []
        for r in self.ctx.rows(TIME_OFF_SHEET):
            if _is_blank(r):
                continue
            try:
                out.append(self._from_row(r))
            except MalformedInput as e:
                log.warning("Skipping time-off row %r: %s", r, e)
        return out

    def by_id(self) -> Dict[str, TimeOffRequest]:
        out: Dict[str, TimeOffRequest] = {}
        for r in self.list_all():
            out.setdefault(r.request_id, r)
        return out

    def get(self, request_id: str) -> TimeOffRequest:
        req = self.by_id().get((request_id or "").strip())
        if req is not None:
            return req
        raise NotFound(f"Request {request_id} not found.")

    def add(self, employee: Employee, start_date: date, end_date: date, reason: str) -> TimeOffRequest:
        req = TimeOffRequest(
            request_id=str(uuid.uuid4()),
            employee_name=employee.name,
            employee_email=employee.email,
            start_date=start_date,
            end_date=end_date,
            reason=(reason or "").strip(),
            status=TimeOffStatus.PENDING,
            request_date=datetime.now().replace(microsecond=0),
        )
        ws = self.ctx.worksheet(TIME_OFF_SHEET)
        with_backoff(ws.append_row, [
            req.request_id, req.employee_name, req.employee_email,
            req.start_date.isoformat(), req.end_date.isoformat(), req.reason,
            req.status.value, req.request_date.isoformat(),
        ], value_input_option="RAW")
        self.ctx.invalidate(TIME_OFF_SHEET)
        log.info("Time-off request %s from %s", req.request_id, req.employee_email)
        return req

    def set_status(self, request_id: str, status: TimeOffStatus) -> None:
        for idx, r in enumerate(self.ctx.rows(TIME_OFF_SHEET, fresh=True), start=2):
            if r[0].strip() == request_id:
                ws = self.ctx.worksheet(TIME_OFF_SHEET)
                ref = a1.rowcol_to_a1(idx, _STATUS_COL)
                with_backoff(ws.update, range_name=ref, values=[[TimeOffStatus(status).value]])
                self.ctx.invalidate(TIME_OFF_SHEET)
                log.info("Request %s -> %s", request_id, TimeOffStatus(status).value)
                return
        raise NotFound(f"Request {request_id} not found.")


class Stores:
    """The four stores over one SheetContext."""

    def __init__(self, ctx: SheetContext):
        self.ctx = ctx
        self.employees = EmployeeStore(ctx)
        self.shifts = ShiftStore(ctx)
        self.assignments = AssignmentStore(ctx)
        self.time_off = TimeOffStore(ctx)

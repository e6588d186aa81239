from datetime import date

import pytest

from shift_app.actions import (
    add_employee, add_shift_type, assign_shift, check_shift_conflicts, delete_employee,
    get_my_requests, get_my_schedule, get_pending_requests, get_schedule_data,
    process_time_off, resolve_actor, submit_time_off,
)
from shift_app.errors import Conflict, MalformedInput, NotFound, PermissionDenied
from shift_app.models import TimeOffStatus
from shift_app.notify import RecordingNotifier


def test_resolve_actor_by_email(stores):
    actor = resolve_actor(stores, " Cara@X.com ")
    assert actor.employee.name == "Cara Diaz"
    assert actor.is_manager  # "assistant manager " matches case-insensitively
    assert not resolve_actor(stores, "bob@x.com").is_manager
    with pytest.raises(NotFound):
        resolve_actor(stores, "stranger@x.com")
    with pytest.raises(MalformedInput):
        resolve_actor(stores, "   ")


def test_assign_requires_manager(stores, cashier, seeded):
    with pytest.raises(PermissionDenied):
        assign_shift(stores, cashier, employee_name="Bob Stone", on="2024-01-15", shift_name="Day")
    assert seeded.worksheet("Schedule_Log").data[1:] == []


def test_assign_then_unassign_leaves_no_rows(stores, manager):
    assign_shift(stores, manager, employee_name="Bob Stone", on=date(2024, 1, 15), shift_name="Day")
    res = assign_shift(stores, manager, employee_name="Bob Stone", on=date(2024, 1, 15), shift_name="")
    assert "Cleared" in res.message
    assert stores.assignments.list_all() == []


def test_reassign_reports_conflict_but_overwrites(stores, manager):
    assign_shift(stores, manager, employee_name="Bob Stone", on=date(2024, 1, 15), shift_name="Day")
    conflicts = check_shift_conflicts(stores, "Bob Stone", "2024-01-15", "Evening")
    assert [(c.existing_shift, c.date) for c in conflicts] == [("Day", date(2024, 1, 15))]

    res = assign_shift(stores, manager, employee_name="Bob Stone", on=date(2024, 1, 15), shift_name="Evening")
    assert res.warnings == ["Replaced Day on 2024-01-15."]
    rows = stores.assignments.list_all()
    assert [(r.shift_name, r.date) for r in rows] == [("Evening", date(2024, 1, 15))]


def test_assign_unknown_shift_or_employee(stores, manager):
    with pytest.raises(NotFound):
        assign_shift(stores, manager, employee_name="Bob Stone", on="2024-01-15", shift_name="Brunch")
    with pytest.raises(NotFound):
        assign_shift(stores, manager, employee_name="Zed", on="2024-01-15", shift_name="Day")


def test_assign_warns_about_approved_time_off(stores, manager, cashier, notifier):
    req = submit_time_off(stores, notifier, cashier, start="2024-01-16", end="2024-01-17", reason="trip")
    process_time_off(stores, notifier, manager, request_id=req.request_id, status="approved")
    res = assign_shift(stores, manager, employee_name="Bob Stone", on="2024-01-16", shift_name="Day")
    assert any("approved time off" in w for w in res.warnings)
    assert len(stores.assignments.list_all()) == 1


def test_time_off_round_trip_notifies(stores, manager, cashier, notifier):
    req = submit_time_off(stores, notifier, cashier, start=date(2024, 1, 16), end=date(2024, 1, 18), reason="trip")
    assert req.status == TimeOffStatus.PENDING
    assert sorted(notifier.sent[0]["to"]) == ["alice@x.com", "cara@x.com"]

    assert [r.request_id for r in get_pending_requests(stores, manager)] == [req.request_id]
    with pytest.raises(PermissionDenied):
        get_pending_requests(stores, cashier)

    done = process_time_off(stores, notifier, manager, request_id=req.request_id, status=TimeOffStatus.DENIED)
    assert done.status == TimeOffStatus.DENIED
    assert notifier.sent[-1]["to"] == ["bob@x.com"]
    assert "Denied" in notifier.sent[-1]["subject"]
    assert get_pending_requests(stores, manager) == []
    assert get_my_requests(stores, cashier)[0].status == TimeOffStatus.DENIED


def test_processed_request_cannot_be_processed_again(stores, manager, cashier, notifier):
    req = submit_time_off(stores, notifier, cashier, start="2024-01-16", end="2024-01-16", reason="")
    process_time_off(stores, notifier, manager, request_id=req.request_id, status="Approved")
    with pytest.raises(Conflict):
        process_time_off(stores, notifier, manager, request_id=req.request_id, status="Denied")
    with pytest.raises(MalformedInput):
        process_time_off(stores, notifier, manager, request_id=req.request_id, status="Pending")


def test_submit_validates_range(stores, cashier, notifier):
    with pytest.raises(MalformedInput):
        submit_time_off(stores, notifier, cashier, start="2024-01-18", end="2024-01-16", reason="")
    assert notifier.sent == []


def test_notification_failure_does_not_fail_submission(stores, cashier, caplog):
    broken = RecordingNotifier(fail=True)
    req = submit_time_off(stores, broken, cashier, start="2024-01-16", end="2024-01-16", reason="")
    assert stores.time_off.get(req.request_id).status == TimeOffStatus.PENDING
    assert "failed" in caplog.text


def test_my_schedule_includes_approved_time_off(stores, manager, cashier, notifier):
    assign_shift(stores, manager, employee_name="Bob Stone", on="2024-01-15", shift_name="Night")
    req = submit_time_off(stores, notifier, cashier, start="2024-01-19", end="2024-01-23", reason="")
    process_time_off(stores, notifier, manager, request_id=req.request_id, status="Approved")

    data, mine = get_my_schedule(stores, cashier, "2024-01-17")
    assert data.week_range == "Jan 15 - Jan 21"
    assert [(e.date.day, e.shift_name) for e in mine.entries] == [
        (15, "Night"), (19, "Time Off"), (20, "Time Off"), (21, "Time Off"),
    ]
    assert data.analytics.workload_map()["Bob Stone"] == 8.0


def test_delete_employee_cascades_future_shifts(stores, manager):
    assign_shift(stores, manager, employee_name="Bob Stone", on="2024-01-10", shift_name="Day")
    assign_shift(stores, manager, employee_name="Bob Stone", on="2024-01-20", shift_name="Day")
    emp, dropped = delete_employee(stores, manager, email="bob@x.com", today=date(2024, 1, 15))
    assert emp.name == "Bob Stone" and dropped == 1
    assert [r.date.day for r in stores.assignments.list_all()] == [10]
    with pytest.raises(NotFound):
        stores.employees.get_by_email("bob@x.com")


def test_manager_cannot_delete_self(stores, manager):
    with pytest.raises(Conflict):
        delete_employee(stores, manager, email="ALICE@x.com")


def test_admin_forms_require_manager(stores, manager, cashier):
    with pytest.raises(PermissionDenied):
        add_employee(stores, cashier, name="Eve", email="eve@x.com", role="Cashier")
    with pytest.raises(PermissionDenied):
        add_shift_type(stores, cashier, name="Brunch", start="10:00", end="14:00")

    add_employee(stores, manager, name="Eve", email="eve@x.com", role="Cashier")
    shift = add_shift_type(stores, manager, name="Graveyard", start="23:00", end="07:00")
    assert shift.overnight
    data = get_schedule_data(stores, "2024-01-15")
    assert "Eve" in [e.name for e in data.employees]
    assert "Graveyard" in data.shifts_by_name

from __future__ import annotations
import json
import logging
import os, sys
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import streamlit as st
import gspread
from google.oauth2.service_account import Credentials
from gspread.exceptions import APIError
from datetime import date

from shift_app.config import (
    DEFAULT_SHEET_URL, LOG_FORMAT, STATUS_APPROVED, STATUS_DENIED, get_setting,
)
from shift_app.errors import SchedulerError
from shift_app.quotas import with_backoff
from shift_app.store import SheetContext, Stores
from shift_app.notify import notifier_from_settings
from shift_app.actions import (
    add_employee, add_shift_type, assign_shift, check_shift_conflicts, delete_employee,
    get_my_requests, get_my_schedule, get_pending_requests, get_schedule_data,
    process_time_off, resolve_actor, submit_time_off,
)
from shift_app.publish import publish_schedule
from shift_app.schedule_query import (
    build_schedule_dataframe, build_week_grid, render_analytics,
    render_schedule_dataframe, render_schedule_viz,
)
from shift_app.ui_peek import peek_exact
from shift_app.utils import fmt_time
from shift_app.weeks import shift_week, week_of

logging.basicConfig(level=str(get_setting("LOG_LEVEL", "INFO")).upper(), format=LOG_FORMAT)
log = logging.getLogger("shift_app.app")


@st.cache_resource(show_spinner=False)
def get_gspread_client() -> gspread.Client:
    raw = get_setting("gcp_service_account", {}) or {}
    # env var holds the key file as JSON text
    creds_dict = json.loads(raw) if isinstance(raw, str) else dict(raw)
    if not creds_dict:
        st.error("Missing service account in secrets (gcp_service_account).")
        st.stop()
    scopes = [
        "https://www.googleapis.com/auth/spreadsheets",
        "https://www.googleapis.com/auth/drive.readonly",
    ]
    credentials = Credentials.from_service_account_info(creds_dict, scopes=scopes)
    return gspread.authorize(credentials)


@st.cache_resource(show_spinner=False)
def open_spreadsheet(spreadsheet_url: str) -> gspread.Spreadsheet:
    client = get_gspread_client()
    return with_backoff(client.open_by_url, spreadsheet_url)


def get_stores(ss: gspread.Spreadsheet) -> Stores:
    """One SheetContext per browser session and workbook."""
    key = f"STORES_{ss.id}"
    if key not in st.session_state:
        ctx = SheetContext(ss)
        ctx.setup_sheets()
        st.session_state[key] = Stores(ctx)
    return st.session_state[key]


def run(fn, *args, **kwargs):
    """Call an action; show its error instead of crashing the page."""
    try:
        return fn(*args, **kwargs)
    except SchedulerError as e:
        st.error(f"❌ {e}")
    except APIError as e:
        log.exception("Sheets API error")
        st.error(f"❌ Google Sheets error: {e}")
    return None


# ---------- page ----------
st.set_page_config(page_title="Shift Scheduler", page_icon="🗓️", layout="wide")
st.title("🗓️ Shift Scheduler")

SHEET_URL = get_setting("SHEET_URL", DEFAULT_SHEET_URL)
if not SHEET_URL:
    st.error("Missing SHEET_URL in secrets/environment.")
    st.stop()

ss = open_spreadsheet(SHEET_URL)
stores = get_stores(ss)
notifier = notifier_from_settings()

# ---------- sidebar ----------
with st.sidebar:
    st.subheader("Who are you?")
    email = st.text_input("Your email (must match the Employees sheet)", key="actor_email")
    st.session_state.setdefault("week_pick", date.today())
    prev_col, next_col = st.columns(2)
    for col, label, step in ((prev_col, "◀ Prev week", -1), (next_col, "Next week ▶", 1)):
        if col.button(label, key=f"week_step_{step}"):
            st.session_state["week_pick"] = shift_week(week_of(st.session_state["week_pick"]), step).start
    picked = st.date_input("Week of", key="week_pick")
    week = week_of(picked)
    st.caption(f"Week: {week.start:%a %b %d} – {week.end:%a %b %d}")
    if st.button("🧹 Refresh data"):
        stores.ctx.invalidate()
        st.rerun()

if not email:
    st.info("Enter your email in the sidebar to continue.")
    st.stop()

actor = run(resolve_actor, stores, email)
if actor is None:
    st.stop()

st.caption(f"Signed in as **{actor.employee.name}** ({actor.role or 'no role'})")


# ---------- employee view ----------
def render_my_week():
    result = run(get_my_schedule, stores, actor, week.start)
    if result is None:
        return
    data, mine = result
    for err in mine.errors:
        st.warning(err.message)
    df = build_schedule_dataframe(mine)
    render_schedule_viz(st, df, data.week.days(), title=f"{actor.employee.name} · {data.week_range}")
    render_schedule_dataframe(st, df)


def render_time_off_form():
    st.markdown("### Request time off")
    with st.form("time_off_form", clear_on_submit=True):
        c1, c2 = st.columns(2)
        start = c1.date_input("From", value=date.today())
        end = c2.date_input("To", value=date.today())
        reason = st.text_area("Reason", "")
        if st.form_submit_button("Submit request"):
            req = run(submit_time_off, stores, notifier, actor, start=start, end=end, reason=reason)
            if req is not None:
                st.success(f"✅ Request submitted for {req.start_date} to {req.end_date}.")

    mine = run(get_my_requests, stores, actor) or []
    if mine:
        st.markdown("### My requests")
        st.dataframe(
            [{"From": r.start_date, "To": r.end_date, "Reason": r.reason, "Status": r.status.value}
             for r in mine],
            use_container_width=True, hide_index=True,
        )


# ---------- manager view ----------
def render_schedule_editor():
    data = run(get_schedule_data, stores, week.start)
    if data is None:
        return
    st.markdown(f"### {data.week_range}")
    st.dataframe(build_week_grid(data), use_container_width=True, hide_index=True)

    if not data.employees or not data.shifts:
        st.info("Add employees and shift types on the Team tab first.")
        return

    st.markdown("#### Assign a shift")
    c1, c2, c3 = st.columns(3)
    emp_name = c1.selectbox("Employee", [e.name for e in data.employees], key="assign_emp")
    day = c2.selectbox("Day", data.week.days(), format_func=lambda d: d.strftime("%a %b %d"), key="assign_day")
    shift_labels = {"": "(none: clear the day)"}
    shift_labels.update({s.name: f"{s.name} ({fmt_time(s.start)}–{fmt_time(s.end)})" for s in data.shifts})
    shift_name = c3.selectbox("Shift", list(shift_labels), format_func=shift_labels.get, key="assign_shift")

    if shift_name:
        for c in run(check_shift_conflicts, stores, emp_name, day, shift_name) or []:
            st.warning(f"⚠️ {emp_name} is already on **{c.existing_shift}** that day; saving replaces it.")
        emp = next(e for e in data.employees if e.name == emp_name)
        for r in data.time_off_for(emp.email, day):
            st.warning(f"⚠️ {emp_name} has approved time off {r.start_date} to {r.end_date}.")

    if st.button("Save assignment", type="primary"):
        res = run(assign_shift, stores, actor, employee_name=emp_name, on=day, shift_name=shift_name)
        if res is not None:
            st.success(f"✅ {res.message}")
            st.rerun()


def render_requests():
    pending = run(get_pending_requests, stores, actor)
    if not pending:
        st.info("No pending time-off requests.")
        return
    for r in pending:
        with st.container(border=True):
            st.markdown(f"**{r.employee_name}** · {r.start_date} → {r.end_date}")
            st.caption(r.reason or "(no reason given)")
            c1, c2 = st.columns(2)
            for col, label, status in ((c1, "Approve", STATUS_APPROVED), (c2, "Deny", STATUS_DENIED)):
                if col.button(label, key=f"{status}_{r.request_id}"):
                    done = run(process_time_off, stores, notifier, actor, request_id=r.request_id, status=status)
                    if done is not None:
                        st.toast(f"Request has been {done.status.value}")
                        st.rerun()


def render_team():
    left, right = st.columns(2)
    with left:
        st.markdown("### Add employee")
        with st.form("add_employee", clear_on_submit=True):
            name = st.text_input("Name")
            new_email = st.text_input("Email")
            role = st.text_input("Role", "Sales Associate")
            if st.form_submit_button("Add employee"):
                emp = run(add_employee, stores, actor, name=name, email=new_email, role=role)
                if emp is not None:
                    st.success(f"✅ Added {emp.name}.")
    with right:
        st.markdown("### Add shift type")
        with st.form("add_shift", clear_on_submit=True):
            name = st.text_input("Shift name")
            c1, c2 = st.columns(2)
            start = c1.text_input("Start (HH:MM)", "09:00")
            end = c2.text_input("End (HH:MM)", "17:00")
            if st.form_submit_button("Add shift"):
                shift = run(add_shift_type, stores, actor, name=name, start=start, end=end)
                if shift is not None:
                    st.success(f"✅ Added {shift.name}{' (overnight)' if shift.overnight else ''}.")

    st.markdown("### Delete employee")
    others = [e for e in stores.employees.list() if e.email.lower() != actor.email]
    if others:
        victim = st.selectbox("Employee", others, format_func=lambda e: f"{e.name} <{e.email}>", key="del_emp")
        if st.checkbox("Also removes their shifts from today on", key="del_confirm") and st.button("Delete"):
            res = run(delete_employee, stores, actor, email=victim.email)
            if res is not None:
                st.success(f"✅ Deleted {res[0].name} ({res[1]} future shift(s) removed).")
                st.rerun()


if actor.is_manager:
    tabs = st.tabs(["Schedule", "Time off", "Analytics", "Team", "My week"])
    with tabs[0]:
        render_schedule_editor()
        if st.button("📣 Publish this week"):
            msg = run(publish_schedule, stores, actor, week.start)
            if msg:
                st.success(f"✅ {msg}")
        peek_exact(stores.ctx)
    with tabs[1]:
        render_requests()
    with tabs[2]:
        data = run(get_schedule_data, stores, week.start)
        if data is not None:
            render_analytics(st, data.analytics)
    with tabs[3]:
        render_team()
    with tabs[4]:
        render_my_week()
        render_time_off_form()
else:
    tabs = st.tabs(["My week", "Time off"])
    with tabs[0]:
        render_my_week()
    with tabs[1]:
        render_time_off_form()

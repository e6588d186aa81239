# shift_app/schedule_query.py
from datetime import datetime, timedelta, date, time
from typing import List

import pandas as pd
import plotly.express as px

from .hours import shift_minutes
from .models import EmployeeSchedule, AnalyticsReport
from .schedule import WeekSchedule
from .utils import fmt_time, fmt_hours

_SOURCE_COLOR = {
    "Shift": "#2563eb",
    "Time Off": "#9ca3af",
}

_SCHEDULE_COLUMNS = [
    "Date", "Day", "Shift", "Start", "End", "DurationMin", "Duration",
    "PlotStartDT", "PlotEndDT", "Kind",
]


# ──────────────────────────────────────────────────────────────────────────────
# Employee week → DataFrame
# ──────────────────────────────────────────────────────────────────────────────

def build_schedule_dataframe(sched: EmployeeSchedule) -> pd.DataFrame:
    """
    Flatten one employee's week into a DataFrame:
    Columns: Date, Day, Shift, Start, End, DurationMin, Duration, Kind
    Plot-only: PlotStartDT, PlotEndDT (end rolled to the next day for overnight shifts)
    """
    rows = []
    for e in sched.entries:
        if e.is_time_off:
            rows.append({
                "Date": e.date, "Day": e.date.strftime("%A"), "Shift": e.shift_name,
                "Start": "", "End": "", "DurationMin": 0, "Duration": "",
                "PlotStartDT": datetime.combine(e.date, time.min),
                "PlotEndDT": datetime.combine(e.date + timedelta(days=1), time.min),
                "Kind": "Time Off",
            })
            continue
        mins = shift_minutes(e.start, e.end)
        plot_start = datetime.combine(e.date, e.start)
        rows.append({
            "Date": e.date,
            "Day": e.date.strftime("%A"),
            "Shift": e.shift_name,
            "Start": fmt_time(e.start),
            "End": fmt_time(e.end),
            "DurationMin": mins,
            "Duration": fmt_hours(mins / 60.0),
            "PlotStartDT": plot_start,
            "PlotEndDT": plot_start + timedelta(minutes=mins),
            "Kind": "Shift",
        })
    if not rows:
        return pd.DataFrame(columns=_SCHEDULE_COLUMNS)
    df = pd.DataFrame(rows, columns=_SCHEDULE_COLUMNS)
    df.sort_values(["Date", "PlotStartDT"], inplace=True, kind="stable")
    df.reset_index(drop=True, inplace=True)
    return df


def _segments(start: datetime, end: datetime):
    """Split a bar at midnight so an overnight shift shows on both days."""
    cur = start
    while cur < end:
        midnight = datetime.combine(cur.date() + timedelta(days=1), time.min)
        seg_end = min(end, midnight)
        yield cur.date(), (cur - datetime.combine(cur.date(), time.min)).total_seconds() / 3600.0, \
            (seg_end - cur).total_seconds() / 3600.0
        cur = seg_end


def render_schedule_viz(st, df: pd.DataFrame, days: List[date], *, title: str = "This Week's Schedule"):
    """
    Calendar view:
      • X-axis: the seven days of the week (Mon → Sun)
      • Y-axis: time of day, midnight at the top
      • Time Off drawn as a full-day grey block
    """
    if df.empty:
        st.info("No shifts scheduled this week.")
        return

    import plotly.graph_objects as go

    labels = {d: f"{d.strftime('%a')}<br>{d.strftime('%b %d')}" for d in days}
    seen = set()
    bars = []
    for _, r in df.iterrows():
        for d, base, dur in _segments(r["PlotStartDT"], r["PlotEndDT"]):
            if d not in labels or dur <= 0:
                continue
            kind = r["Kind"]
            text = r["Shift"] if kind == "Time Off" else f"{r['Start']}–{r['End']}<br>{r['Shift']}"
            bars.append(go.Bar(
                x=[labels[d]], y=[dur], base=[base],
                marker=dict(color=_SOURCE_COLOR.get(kind, "#6b7280"), line=dict(width=0)),
                width=0.5, name=kind, showlegend=kind not in seen,
                text=[text], texttemplate="%{text}", textposition="inside",
                insidetextanchor="middle", textfont=dict(color="white", size=11),
                hovertemplate=f"{r['Day']}<br>{text}<extra></extra>",
            ))
            seen.add(kind)

    fig = go.Figure(bars)
    y_ticks = list(range(0, 25, 2))
    fig.update_xaxes(type="category", categoryorder="array", categoryarray=[labels[d] for d in days],
                     side="top", showline=True, linecolor="#e5e7eb")
    fig.update_yaxes(title="Time", tickmode="array", tickvals=y_ticks,
                     ticktext=[fmt_time(time(h % 24, 0)) for h in y_ticks],
                     range=[24, 0], showgrid=True, gridcolor="#eef2f7", zeroline=False)
    fig.update_layout(title=title, barmode="overlay", plot_bgcolor="#ffffff", paper_bgcolor="#ffffff",
                      legend_title_text="", margin=dict(l=10, r=10, t=60, b=10), height=720)
    st.plotly_chart(fig, use_container_width=True, theme="streamlit")


def render_schedule_dataframe(st, df: pd.DataFrame):
    if df.empty:
        return
    show = df[["Date", "Day", "Shift", "Start", "End", "Duration"]].copy()
    st.markdown("### Full Schedule Table")
    st.dataframe(show, use_container_width=True, hide_index=True)


# ──────────────────────────────────────────────────────────────────────────────
# Manager views
# ──────────────────────────────────────────────────────────────────────────────

def build_week_grid(data: WeekSchedule) -> pd.DataFrame:
    """Employee × day grid of shift names ('' when free, 'Time Off' when away)."""
    days = data.week.days()
    cols = [d.strftime("%a %m/%d") for d in days]
    rows = []
    for emp in data.employees:
        row = {"Employee": emp.name, "Role": emp.role}
        for d, col in zip(days, cols):
            a = data.assignment_for(emp.name, d)
            if a is not None:
                row[col] = a.shift_name
            elif data.time_off_for(emp.email, d):
                row[col] = "Time Off"
            else:
                row[col] = ""
        rows.append(row)
    return pd.DataFrame(rows, columns=["Employee", "Role"] + cols)


def workload_dataframe(report: AnalyticsReport) -> pd.DataFrame:
    return pd.DataFrame(report.workload, columns=["Employee", "Hours"])


def distribution_dataframe(report: AnalyticsReport) -> pd.DataFrame:
    return pd.DataFrame(report.distribution, columns=["Shift", "Count"])


def render_analytics(st, report: AnalyticsReport):
    c1, c2, c3 = st.columns(3)
    c1.metric("Coverage", f"{report.coverage}%")
    c2.metric("Scheduled hours", f"{report.total_hours:.1f}")
    c3.metric("Shifts assigned", sum(n for _, n in report.distribution))
    st.progress(min(report.coverage / 100.0, 1.0))

    load = workload_dataframe(report)
    dist = distribution_dataframe(report)
    left, right = st.columns(2)
    with left:
        if load.empty:
            st.info("No employees yet.")
        else:
            st.plotly_chart(px.bar(load, x="Employee", y="Hours", title="Workload (hours)"),
                            use_container_width=True)
    with right:
        if dist.empty:
            st.info("No shifts assigned this week.")
        else:
            st.plotly_chart(px.pie(dist, names="Shift", values="Count", title="Shift distribution"),
                            use_container_width=True)

from __future__ import annotations
from datetime import date, datetime, timedelta

from .config import PUBLISHED_PREFIX
from .models import Week
from .utils import parse_date


def week_of(d: date | datetime | str) -> Week:
    """Monday-aligned 7-day window containing ``d``.

    Sunday belongs to the week that started the previous Monday. Only the
    calendar date is used; any time-of-day on ``d`` is dropped.
    """
    day = parse_date(d)
    # isoweekday: Mon=1..Sun=7, so the offset back to Monday is isoweekday-1
    start = day - timedelta(days=day.isoweekday() - 1)
    return Week(start=start, end=start + timedelta(days=6))


def week_label(week: Week) -> str:
    return f"{_short(week.start)} - {_short(week.end)}"


def _short(d: date) -> str:
    return f"{d.strftime('%b')} {d.day}"


def shift_week(week: Week, weeks: int) -> Week:
    return week_of(week.start + timedelta(days=7 * weeks))


def published_sheet_title(week: Week) -> str:
    return f"{PUBLISHED_PREFIX}{week.start.strftime('%m-%d')} to {week.end.strftime('%m-%d')}"


def day_header(d: date) -> str:
    return f"{d.strftime('%a, %b')} {d.day}"

import re
import unicodedata
from datetime import datetime, date, time
from dateutil import parser as dateparser

from .config import AUTHORIZED_ROLES
from .errors import MalformedInput


def collapse_spaces(s: str) -> str:
    return re.sub(r"\s+", " ", s).strip()


def name_key(name: str) -> str:
    return collapse_spaces(unicodedata.normalize("NFKC", name or "")).lower()


def email_key(email: str) -> str:
    return (email or "").strip().lower()


def is_authorized_role(role: str | None) -> bool:
    r = (role or "").strip().lower()
    return bool(r) and any(r == a.lower() for a in AUTHORIZED_ROLES)


def parse_time_str(t) -> time:
    if isinstance(t, time):
        return t.replace(second=0, microsecond=0)
    if isinstance(t, datetime):
        return time(t.hour, t.minute)
    t = str(t or "").strip().lower().replace(".", "")
    if not t:
        raise MalformedInput("Empty time value.")
    t = re.sub(r"\b(\d{1,2}(?::\d{2})?)\s*([ap])\b", lambda m: f"{m.group(1)}{m.group(2)}m", t)
    if t in {"24:00", "24", "midnight", "12am", "12:00am"}:
        return time(0, 0)
    m = re.match(r"^(\d{1,2})(?::(\d{2}))?(?::\d{2})?$", t)
    if m:
        hh = int(m.group(1)) % 24; mm = int(m.group(2) or 0)
        if mm < 60:
            return time(hh, mm)
    try:
        dt = dateparser.parse(t)
    except (ValueError, OverflowError) as e:
        raise MalformedInput(f"Could not parse time: {t}") from e
    return time(dt.hour, dt.minute)


def parse_date(value) -> date:
    """Sheet cell / form value -> calendar date. ISO first, then dateutil."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value or "").strip()
    if not s:
        raise MalformedInput("Empty date value.")
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        pass
    try:
        return dateparser.parse(s).date()
    except (ValueError, OverflowError) as e:
        raise MalformedInput(f"Could not parse date: {s}") from e


def parse_timestamp(value) -> datetime | None:
    s = str(value or "").strip()
    if not s:
        return None
    try:
        return dateparser.parse(s)
    except (ValueError, OverflowError):
        return None


def fmt_time(t: time) -> str:
    return t.strftime("%I:%M %p").lstrip("0")


def fmt_hm(t: time) -> str:
    return t.strftime("%H:%M")


def fmt_hours(hours: float) -> str:
    mins = int(round(hours * 60))
    h, m = divmod(max(0, mins), 60)
    return f"{h}h" if m == 0 else f"{h}h {m}m"

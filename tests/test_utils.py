from datetime import date, datetime, time

import pytest

from shift_app.errors import MalformedInput
from shift_app.utils import (
    email_key, fmt_hours, fmt_time, is_authorized_role, name_key, parse_date, parse_time_str,
)


@pytest.mark.parametrize("raw,expected", [
    ("09:00", time(9, 0)),
    ("9", time(9, 0)),
    ("5:30 pm", time(17, 30)),
    ("11p", time(23, 0)),
    ("midnight", time(0, 0)),
    ("24:00", time(0, 0)),
    (time(6, 15, 42), time(6, 15)),
])
def test_parse_time_str(raw, expected):
    assert parse_time_str(raw) == expected


def test_parse_time_str_rejects_junk():
    with pytest.raises(MalformedInput):
        parse_time_str("")
    with pytest.raises(MalformedInput):
        parse_time_str("lunchtime")


def test_parse_date_accepts_sheet_formats():
    assert parse_date("2024-01-15") == date(2024, 1, 15)
    assert parse_date("2024-01-15T23:30:00") == date(2024, 1, 15)
    assert parse_date("1/15/2024") == date(2024, 1, 15)
    assert parse_date(datetime(2024, 1, 15, 8)) == date(2024, 1, 15)
    with pytest.raises(MalformedInput):
        parse_date("  ")


def test_keys_and_roles():
    assert name_key("  Alice   PARK ") == "alice park"
    assert email_key(" A@X.Com ") == "a@x.com"
    assert is_authorized_role(" assistant MANAGER")
    assert not is_authorized_role("Cashier")
    assert not is_authorized_role(None)


def test_formatting():
    assert fmt_time(time(9, 0)) == "9:00 AM"
    assert fmt_time(time(0, 30)) == "12:30 AM"
    assert fmt_hours(8) == "8h"
    assert fmt_hours(7.5) == "7h 30m"

from datetime import date, datetime, timedelta

import pytest

from shift_app.weeks import day_header, published_sheet_title, shift_week, week_label, week_of


def test_monday_is_identity():
    w = week_of(date(2024, 1, 15))
    assert w.start == date(2024, 1, 15)
    assert w.end == date(2024, 1, 21)


def test_sunday_rolls_back_to_previous_monday():
    w = week_of(date(2024, 1, 21))
    assert w.start == date(2024, 1, 15)


@pytest.mark.parametrize("offset", range(7))
def test_every_day_of_week_maps_to_same_monday(offset):
    d = date(2024, 2, 26) + timedelta(days=offset)
    w = week_of(d)
    assert w.start == date(2024, 2, 26)
    assert w.start.weekday() == 0


def test_window_spans_six_days_to_end_of_sunday():
    w = week_of(datetime(2024, 3, 6, 15, 30))
    assert w.end_dt - w.start_dt == timedelta(days=6, hours=23, minutes=59, seconds=59, milliseconds=999)
    assert w.start_dt.time() == datetime.min.time()


def test_accepts_strings_and_crosses_year_boundary():
    w = week_of("2025-01-01")
    assert w.start == date(2024, 12, 30)
    assert w.end == date(2025, 1, 5)
    assert len(w.days()) == 7


def test_membership_is_inclusive():
    w = week_of(date(2024, 1, 17))
    assert date(2024, 1, 15) in w
    assert date(2024, 1, 21) in w
    assert date(2024, 1, 22) not in w


def test_labels():
    w = week_of(date(2024, 1, 17))
    assert week_label(w) == "Jan 15 - Jan 21"
    assert published_sheet_title(w) == "Schedule 01-15 to 01-21"
    assert day_header(date(2024, 1, 15)) == "Mon, Jan 15"


def test_shift_week():
    w = week_of(date(2024, 1, 17))
    assert shift_week(w, 1).start == date(2024, 1, 22)
    assert shift_week(w, -1).start == date(2024, 1, 8)

from datetime import datetime, timedelta

import pytest
import pytz

from erphub.config import settings
from erphub.errors import InvalidInputError, NotFoundError
from erphub.services import attendance
from erphub.services.time_rules import local_day_bounds, local_today, to_local


def test_clock_in_twice_is_rejected(db, staff):
    attendance.clock_in(db, staff.id)
    with pytest.raises(InvalidInputError, match="already clocked in today"):
        attendance.clock_in(db, staff.id)


def test_clock_in_after_completed_day_is_rejected(db, staff):
    attendance.clock_in(db, staff.id)
    attendance.clock_out(db, staff.id)
    with pytest.raises(InvalidInputError, match="only clock in once per day"):
        attendance.clock_in(db, staff.id)


def test_clock_out_computes_hours(db, staff):
    start, _ = local_day_bounds(local_today())
    attendance.clock_in(db, staff.id, at=start + timedelta(hours=8))
    record = attendance.clock_out(db, staff.id, at=start + timedelta(hours=16, minutes=30))

    assert record.total_hours == 8.5


def test_clock_out_without_clock_in(db, staff):
    with pytest.raises(NotFoundError):
        attendance.clock_out(db, staff.id)


def test_clock_out_twice(db, staff):
    attendance.clock_in(db, staff.id)
    attendance.clock_out(db, staff.id)
    with pytest.raises(InvalidInputError, match="already clocked out"):
        attendance.clock_out(db, staff.id)


def test_clock_in_stored_in_utc_and_read_in_local_time(db, staff):
    tz = pytz.timezone(settings.tz_default)
    day = local_today()
    at = tz.localize(datetime(day.year, day.month, day.day, 9, 15))
    record = attendance.clock_in(db, staff.id, at=at)

    local = to_local(record.clock_in)
    assert (local.hour, local.minute) == (9, 15)


def test_get_attendance_filters_by_user(db, company, make_user):
    a = make_user(company=company)
    b = make_user(company=company)
    attendance.clock_in(db, a.id)
    attendance.clock_in(db, b.id)

    records = attendance.get_attendance(db, user_id=a.id)
    assert [r.user_id for r in records] == [a.id]

from datetime import date

import pytest

from erphub.errors import InvalidInputError, NotFoundError
from erphub.models.models import LeaveBalance
from erphub.services import leave


def test_balance_defaults_without_row(db, staff):
    balance = leave.get_leave_balance(db, staff.id)

    assert balance["annual"] == {"total": 20, "used": 0, "remaining": 20}
    assert balance["sick"]["total"] == 10
    assert balance["emergency"]["total"] == 5
    # Reading never creates a row
    assert db.query(LeaveBalance).count() == 0


def test_approval_charges_used_days_once(db, staff, admin):
    req = leave.create_leave_request(db, staff.id, "annual", date(2024, 7, 1), date(2024, 7, 3), reason="Trip")
    assert req.status == "pending"

    leave.update_leave_request(db, req.id, "approved", approved_by=admin.id)
    leave.update_leave_request(db, req.id, "approved", approved_by=admin.id)

    balance = leave.get_leave_balance(db, staff.id)
    assert balance["annual"]["used"] == 3
    assert balance["annual"]["remaining"] == 17


def test_rejection_does_not_charge(db, staff, admin):
    req = leave.create_leave_request(db, staff.id, "sick", date(2024, 7, 1), date(2024, 7, 1))
    decided = leave.update_leave_request(db, req.id, "rejected", approved_by=admin.id)

    assert decided.approved_by == admin.id
    assert decided.approved_at is not None
    assert leave.get_leave_balance(db, staff.id)["sick"]["used"] == 0


def test_invalid_leave_input(db, staff):
    with pytest.raises(InvalidInputError):
        leave.create_leave_request(db, staff.id, "sabbatical", date(2024, 7, 1), date(2024, 7, 2))
    with pytest.raises(InvalidInputError):
        leave.create_leave_request(db, staff.id, "annual", date(2024, 7, 5), date(2024, 7, 2))


def test_unknown_request(db):
    with pytest.raises(NotFoundError):
        leave.get_leave_request(db, "00000000-0000-0000-0000-000000000000")


def test_update_balance_rejects_unknown_fields(db, staff):
    with pytest.raises(InvalidInputError):
        leave.update_leave_balance(db, staff.id, vacation_total=3)


def test_leave_days_is_inclusive():
    assert leave.leave_days(date(2024, 1, 1), date(2024, 1, 1)) == 1
    assert leave.leave_days(date(2024, 1, 30), date(2024, 2, 2)) == 4


def test_balance_reads_are_repeatable(db, staff):
    req = leave.create_leave_request(db, staff.id, "sick", date(2024, 2, 5), date(2024, 2, 6))
    leave.update_leave_request(db, req.id, "approved")

    first = leave.get_leave_balance(db, staff.id)
    second = leave.get_leave_balance(db, staff.id)

    assert first == second
    assert first["sick"] == {"total": 10, "used": 2, "remaining": 8}

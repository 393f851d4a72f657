"""
Leave requests and per-user leave balances.
"""
from datetime import date, datetime, timezone
from typing import Optional, Dict, List

import structlog
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import InvalidInputError, NotFoundError
from ..models.models import LeaveRequest, LeaveBalance
from .context import as_uuid, optional_uuid

logger = structlog.get_logger(__name__)

LEAVE_TYPES = ("annual", "sick", "emergency")
LEAVE_STATUSES = ("pending", "approved", "rejected")


def _default_totals() -> Dict[str, int]:
    return {
        "annual": settings.leave_default_annual,
        "sick": settings.leave_default_sick,
        "emergency": settings.leave_default_emergency,
    }


def leave_days(start_date: date, end_date: date) -> int:
    """Inclusive number of calendar days covered by a request."""
    return (end_date - start_date).days + 1


def get_leave_balance(db: Session, user_id) -> Dict[str, Dict[str, int]]:
    """
    Return {annual|sick|emergency: {total, used, remaining}} for a user.

    Read-only: falls back to the configured defaults when no balance row exists.
    """
    uid = as_uuid(user_id, "User ID")
    row = db.query(LeaveBalance).filter(LeaveBalance.user_id == uid).first()
    defaults = _default_totals()
    result = {}
    for leave_type in LEAVE_TYPES:
        if row is not None:
            total = getattr(row, f"{leave_type}_total")
            used = getattr(row, f"{leave_type}_used")
        else:
            total, used = defaults[leave_type], 0
        result[leave_type] = {"total": total, "used": used, "remaining": total - used}
    return result


def _get_or_create_balance(db: Session, user_id) -> LeaveBalance:
    row = db.query(LeaveBalance).filter(LeaveBalance.user_id == user_id).first()
    if row is None:
        defaults = _default_totals()
        row = LeaveBalance(
            user_id=user_id,
            annual_total=defaults["annual"],
            sick_total=defaults["sick"],
            emergency_total=defaults["emergency"],
            annual_used=0,
            sick_used=0,
            emergency_used=0,
        )
        db.add(row)
        db.flush()
    return row


def create_leave_request(
    db: Session,
    user_id,
    type: str,
    start_date: date,
    end_date: date,
    reason: Optional[str] = None,
    company_id=None,
) -> LeaveRequest:
    if type not in LEAVE_TYPES:
        raise InvalidInputError(f"Invalid leave type '{type}'. Must be one of: {', '.join(LEAVE_TYPES)}")
    if end_date < start_date:
        raise InvalidInputError("End date must be on or after start date")
    req = LeaveRequest(
        user_id=as_uuid(user_id, "User ID"),
        company_id=optional_uuid(company_id, "Company ID"),
        type=type,
        start_date=start_date,
        end_date=end_date,
        reason=reason,
        status="pending",
    )
    db.add(req)
    db.commit()
    db.refresh(req)
    return req


def get_leave_request(db: Session, request_id) -> LeaveRequest:
    req = db.query(LeaveRequest).filter(LeaveRequest.id == as_uuid(request_id, "Leave request ID")).first()
    if req is None:
        raise NotFoundError("Leave request not found")
    return req


def get_leave_requests(db: Session, user_id) -> List[LeaveRequest]:
    return (
        db.query(LeaveRequest)
        .filter(LeaveRequest.user_id == as_uuid(user_id, "User ID"))
        .order_by(LeaveRequest.created_at.desc())
        .all()
    )


def get_all_leave_requests(db: Session, status: Optional[str] = None, company_id=None) -> List[LeaveRequest]:
    query = db.query(LeaveRequest)
    if status:
        query = query.filter(LeaveRequest.status == status)
    if company_id:
        query = query.filter(LeaveRequest.company_id == as_uuid(company_id, "Company ID"))
    return query.order_by(LeaveRequest.created_at.desc()).all()


def update_leave_request(db: Session, request_id, status: str, approved_by=None) -> LeaveRequest:
    """
    Approve or reject a request.

    The used-days counter is charged once, on the transition into "approved".
    """
    if status not in LEAVE_STATUSES:
        raise InvalidInputError(f"Invalid leave status '{status}'")
    req = get_leave_request(db, request_id)
    previous = req.status
    req.status = status
    if status in ("approved", "rejected"):
        req.approved_by = optional_uuid(approved_by, "Approver ID")
        req.approved_at = datetime.now(timezone.utc)

    if status == "approved" and previous != "approved":
        balance = _get_or_create_balance(db, req.user_id)
        field = f"{req.type}_used"
        days = leave_days(req.start_date, req.end_date)
        setattr(balance, field, (getattr(balance, field) or 0) + days)
        logger.info("leave_balance_charged", user_id=str(req.user_id), leave_type=req.type, days=days)

    db.commit()
    db.refresh(req)
    return req


def get_all_leave_balances(db: Session) -> List[LeaveBalance]:
    return db.query(LeaveBalance).all()


def update_leave_balance(db: Session, user_id, **fields) -> LeaveBalance:
    """Set any of annual_total/annual_used/sick_total/... for a user."""
    allowed = {f"{t}_{k}" for t in LEAVE_TYPES for k in ("total", "used")}
    unknown = set(fields) - allowed
    if unknown:
        raise InvalidInputError(f"Unknown balance fields: {', '.join(sorted(unknown))}")
    balance = _get_or_create_balance(db, as_uuid(user_id, "User ID"))
    for key, value in fields.items():
        if value is None:
            continue
        if value < 0:
            raise InvalidInputError(f"{key} must not be negative")
        setattr(balance, key, value)
    db.commit()
    db.refresh(balance)
    return balance

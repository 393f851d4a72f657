"""
Clock-in / clock-out attendance records. One attendance record per user per local day.
"""
from datetime import datetime, date
from typing import Optional, List

import structlog
from sqlalchemy.orm import Session

from ..errors import InvalidInputError, NotFoundError
from ..models.models import Attendance
from .context import as_uuid
from .time_rules import ensure_utc, now_utc, local_today, local_day_bounds, utc_day_bounds

logger = structlog.get_logger(__name__)


def get_today_attendance(db: Session, user_id) -> Optional[Attendance]:
    start, end = local_day_bounds(local_today())
    return (
        db.query(Attendance)
        .filter(
            Attendance.user_id == as_uuid(user_id, "User ID"),
            Attendance.clock_in >= start,
            Attendance.clock_in < end,
        )
        .order_by(Attendance.clock_in.desc())
        .first()
    )


def clock_in(db: Session, user_id, at: Optional[datetime] = None, notes: Optional[str] = None) -> Attendance:
    existing = get_today_attendance(db, user_id)
    if existing is not None:
        if existing.clock_out is None:
            raise InvalidInputError("You have already clocked in today. Please clock out first.")
        raise InvalidInputError(
            "You have already completed attendance for today. You can only clock in once per day."
        )
    record = Attendance(
        user_id=as_uuid(user_id, "User ID"),
        clock_in=ensure_utc(at) if at else now_utc(),
        notes=notes,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("clock_in", user_id=str(record.user_id))
    return record


def clock_out(db: Session, user_id, at: Optional[datetime] = None) -> Attendance:
    record = get_today_attendance(db, user_id)
    if record is None:
        raise NotFoundError("Attendance record not found.")
    if record.clock_out is not None:
        raise InvalidInputError("You have already clocked out for this session.")
    out = ensure_utc(at) if at else now_utc()
    record.clock_out = out
    record.total_hours = round((out - ensure_utc(record.clock_in)).total_seconds() / 3600.0, 2)
    db.commit()
    db.refresh(record)
    logger.info("clock_out", user_id=str(record.user_id), total_hours=record.total_hours)
    return record


def get_attendance(
    db: Session,
    user_id=None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
) -> List[Attendance]:
    query = db.query(Attendance)
    if user_id:
        query = query.filter(Attendance.user_id == as_uuid(user_id, "User ID"))
    start, end = utc_day_bounds(start_date, end_date)
    if since is not None:
        start = ensure_utc(since)
    if until is not None:
        end = ensure_utc(until)
    if start is not None:
        query = query.filter(Attendance.clock_in >= start)
    if end is not None:
        query = query.filter(Attendance.clock_in < end)
    return query.order_by(Attendance.clock_in.desc()).all()

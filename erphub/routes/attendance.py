from datetime import date
from typing import Optional, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..db import get_db
from ..models.models import User
from ..schemas.attendance import ClockInRequest, AttendanceOut
from ..services import attendance


router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.post("/clock-in", response_model=AttendanceOut)
def clock_in(payload: ClockInRequest, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return attendance.clock_in(db, user.id, notes=payload.notes)


@router.post("/clock-out", response_model=AttendanceOut)
def clock_out(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return attendance.clock_out(db, user.id)


@router.get("/today", response_model=Optional[AttendanceOut])
def today(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return attendance.get_today_attendance(db, user.id)


@router.get("", response_model=List[AttendanceOut])
def list_attendance(
    user_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    # Staff only ever see their own records
    if user.role != "admin":
        user_id = user.id
    return attendance.get_attendance(db, user_id=user_id, start_date=start_date, end_date=end_date)

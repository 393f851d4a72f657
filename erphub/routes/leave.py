from typing import Optional, List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, require_roles, ensure_owner_or_admin
from ..db import get_db
from ..models.models import User
from ..schemas.leave import (
    LeaveRequestCreate,
    LeaveDecision,
    LeaveRequestOut,
    LeaveBalanceOut,
    LeaveBalanceRow,
    LeaveBalanceUpdate,
)
from ..services import leave as leave_service
from ..services.audit import log_action
from ..services.notifications import notify_leave_decision


router = APIRouter(prefix="/leave", tags=["leave"])


@router.post("/requests", response_model=LeaveRequestOut)
def create_leave_request(
    payload: LeaveRequestCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    req = leave_service.create_leave_request(
        db,
        user_id=user.id,
        type=payload.type,
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=payload.reason,
        company_id=user.company_id,
    )
    log_action(db, user, "CREATE", "leave_request", req.id, payload.model_dump(mode="json"), request)
    return req


@router.get("/requests/mine", response_model=List[LeaveRequestOut])
def my_leave_requests(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return leave_service.get_leave_requests(db, user.id)


@router.get("/requests", response_model=List[LeaveRequestOut])
def list_leave_requests(
    status: Optional[str] = None,
    company_id: Optional[str] = None,
    db: Session = Depends(get_db),
    _=Depends(require_roles("admin")),
):
    return leave_service.get_all_leave_requests(db, status=status, company_id=company_id)


@router.get("/requests/{request_id}", response_model=LeaveRequestOut)
def get_leave_request(request_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    req = leave_service.get_leave_request(db, request_id)
    ensure_owner_or_admin(user, req.user_id)
    return req


@router.patch("/requests/{request_id}", response_model=LeaveRequestOut)
def decide_leave_request(
    request_id: str,
    payload: LeaveDecision,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("admin")),
):
    before = leave_service.get_leave_request(db, request_id).status
    req = leave_service.update_leave_request(db, request_id, payload.status, approved_by=user.id)
    if req.status != before and req.status in ("approved", "rejected"):
        notify_leave_decision(db, req)
    action = {"approved": "APPROVE", "rejected": "REJECT"}.get(req.status, "UPDATE")
    log_action(db, user, action, "leave_request", req.id,
               {"status": {"before": before, "after": req.status}}, request)
    return req


@router.get("/balance", response_model=LeaveBalanceOut)
def my_leave_balance(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return leave_service.get_leave_balance(db, user.id)


@router.get("/balance/{user_id}", response_model=LeaveBalanceOut)
def user_leave_balance(user_id: str, db: Session = Depends(get_db), _=Depends(require_roles("admin"))):
    return leave_service.get_leave_balance(db, user_id)


@router.get("/balances", response_model=List[LeaveBalanceRow])
def list_leave_balances(db: Session = Depends(get_db), _=Depends(require_roles("admin"))):
    return leave_service.get_all_leave_balances(db)


@router.put("/balances/{user_id}", response_model=LeaveBalanceRow)
def update_leave_balance(
    user_id: str,
    payload: LeaveBalanceUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("admin")),
):
    fields = payload.model_dump(exclude_unset=True)
    row = leave_service.update_leave_balance(db, user_id, **fields)
    log_action(db, user, "UPDATE", "leave_balance", row.user_id, fields, request)
    return row

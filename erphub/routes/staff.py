from typing import Optional, List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, require_roles
from ..db import get_db
from ..models.models import User
from ..schemas.staff import StaffCreate, StaffUpdate, StaffOut
from ..services import staff as staff_service
from ..services.audit import log_action
from ..services.background import detached


router = APIRouter(prefix="/staff", tags=["staff"])


@router.get("", response_model=List[StaffOut])
def list_staff(company_id: Optional[str] = None, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if user.role != "admin":
        company_id = user.company_id
    return staff_service.get_all_staff(db, company_id)


@router.post("", response_model=StaffOut)
def create_staff(
    payload: StaffCreate,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("admin")),
):
    data = payload.model_dump(exclude={"send_welcome_email"})
    staff = staff_service.create_staff(db, **data)
    if payload.send_welcome_email:
        background_tasks.add_task(
            detached("welcome_email", staff_service.send_welcome_email),
            staff.email,
            staff.full_name,
            payload.password,
        )
    log_action(db, user, "CREATE", "user", staff.id,
               payload.model_dump(mode="json", exclude={"password", "send_welcome_email"}), request)
    return staff


@router.get("/{staff_id}", response_model=StaffOut)
def get_staff(staff_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    staff = staff_service.get_staff(db, staff_id)
    if user.role != "admin" and staff.company_id != user.company_id:
        raise HTTPException(status_code=403, detail="Forbidden")
    return staff


@router.put("/{staff_id}", response_model=StaffOut)
def update_staff(
    staff_id: str,
    payload: StaffUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if user.role != "admin" and str(user.id) != staff_id:
        raise HTTPException(status_code=403, detail="Forbidden")
    fields = payload.model_dump(exclude_unset=True)
    if user.role != "admin" and "role" in fields:
        raise HTTPException(status_code=403, detail="Only administrators can change roles")
    staff = staff_service.update_staff(db, staff_id, user.role, **fields)
    log_action(db, user, "UPDATE", "user", staff.id,
               payload.model_dump(mode="json", exclude_unset=True, exclude={"password"}), request)
    return staff


@router.post("/{staff_id}/ban", response_model=StaffOut)
def ban_staff(staff_id: str, request: Request, db: Session = Depends(get_db), user: User = Depends(require_roles("admin"))):
    if str(user.id) == staff_id:
        raise HTTPException(status_code=400, detail="You cannot ban yourself")
    staff = staff_service.ban_staff(db, staff_id)
    log_action(db, user, "BAN", "user", staff.id, None, request)
    return staff


@router.post("/{staff_id}/unban", response_model=StaffOut)
def unban_staff(staff_id: str, request: Request, db: Session = Depends(get_db), user: User = Depends(require_roles("admin"))):
    staff = staff_service.unban_staff(db, staff_id)
    log_action(db, user, "UNBAN", "user", staff.id, None, request)
    return staff


@router.delete("/{staff_id}")
def delete_staff(staff_id: str, request: Request, db: Session = Depends(get_db), user: User = Depends(require_roles("admin"))):
    if str(user.id) == staff_id:
        raise HTTPException(status_code=400, detail="You cannot delete yourself")
    staff_service.delete_staff(db, staff_id)
    log_action(db, user, "DELETE", "user", staff_id, None, request)
    return {"status": "ok"}

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..db import get_db
from ..models.models import User
from ..schemas.messaging import NotificationOut
from ..services import notifications


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationOut])
def list_notifications(unread_only: bool = False, limit: int = 50, db: Session = Depends(get_db),
                       user: User = Depends(get_current_user)):
    return notifications.get_notifications(db, user.id, unread_only=unread_only, limit=limit)


@router.get("/unread-count")
def unread_count(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"count": notifications.count_unread(db, user.id)}


@router.post("/{notification_id}/read", response_model=NotificationOut)
def mark_read(notification_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return notifications.mark_notification_read(db, notification_id, user.id)


@router.post("/read-all")
def mark_all_read(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"updated": notifications.mark_all_read(db, user.id)}

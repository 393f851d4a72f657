"""
In-app notifications. Clients poll the unread list.
"""
from typing import Optional, List

from sqlalchemy.orm import Session

from ..errors import NotFoundError
from ..models.models import Notification
from .context import as_uuid


def create_notification(
    db: Session,
    user_id,
    title: str,
    message: str,
    type: str = "default",
    related_id: Optional[str] = None,
) -> Notification:
    notification = Notification(
        user_id=as_uuid(user_id, "User ID"),
        type=type,
        title=title,
        message=message,
        related_id=str(related_id) if related_id else None,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def notify_leave_decision(db: Session, leave_request) -> Notification:
    return create_notification(
        db,
        leave_request.user_id,
        title=f"Leave request {leave_request.status}",
        message=(
            f"Your {leave_request.type} leave from {leave_request.start_date.isoformat()} "
            f"to {leave_request.end_date.isoformat()} was {leave_request.status}."
        ),
        type="leave",
        related_id=str(leave_request.id),
    )


def get_notifications(db: Session, user_id, unread_only: bool = False, limit: int = 50) -> List[Notification]:
    query = db.query(Notification).filter(Notification.user_id == as_uuid(user_id, "User ID"))
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc()).limit(limit).all()


def mark_notification_read(db: Session, notification_id, user_id) -> Notification:
    notification = db.query(Notification).filter(
        Notification.id == as_uuid(notification_id, "Notification ID"),
        Notification.user_id == as_uuid(user_id, "User ID"),
    ).first()
    if notification is None:
        raise NotFoundError("Notification not found")
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification


def mark_all_read(db: Session, user_id) -> int:
    count = db.query(Notification).filter(
        Notification.user_id == as_uuid(user_id, "User ID"),
        Notification.is_read.is_(False),
    ).update({Notification.is_read: True}, synchronize_session=False)
    db.commit()
    return count


def count_unread(db: Session, user_id) -> int:
    return db.query(Notification).filter(
        Notification.user_id == as_uuid(user_id, "User ID"),
        Notification.is_read.is_(False),
    ).count()

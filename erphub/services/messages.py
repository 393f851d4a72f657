"""
Direct messages between users.
"""
from typing import Optional, List, Dict, Any

from sqlalchemy import or_, and_
from sqlalchemy.orm import Session

from ..errors import InvalidInputError, NotFoundError
from ..models.models import Message, User
from .context import as_uuid


def send_message(db: Session, from_user_id, to_user_id, content: str, subject: Optional[str] = None) -> Message:
    sender = as_uuid(from_user_id, "Sender ID")
    recipient = as_uuid(to_user_id, "Recipient ID")
    if sender == recipient:
        raise InvalidInputError("Cannot send a message to yourself")
    if not content or not content.strip():
        raise InvalidInputError("Message content is required")
    if db.query(User).filter(User.id == recipient).first() is None:
        raise NotFoundError("Recipient not found")
    message = Message(from_user_id=sender, to_user_id=recipient, subject=subject, content=content.strip())
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def get_thread(db: Session, user_id, other_user_id) -> List[Message]:
    me = as_uuid(user_id, "User ID")
    other = as_uuid(other_user_id, "User ID")
    return db.query(Message).filter(
        or_(
            and_(Message.from_user_id == me, Message.to_user_id == other),
            and_(Message.from_user_id == other, Message.to_user_id == me),
        )
    ).order_by(Message.created_at).all()


def get_conversations(db: Session, user_id) -> List[Dict[str, Any]]:
    """One entry per counterpart, newest first, with the last message and unread count."""
    me = as_uuid(user_id, "User ID")
    messages = db.query(Message).filter(
        or_(Message.from_user_id == me, Message.to_user_id == me)
    ).order_by(Message.created_at.desc()).all()

    conversations: Dict[Any, Dict[str, Any]] = {}
    for msg in messages:
        other = msg.to_user_id if msg.from_user_id == me else msg.from_user_id
        entry = conversations.get(other)
        if entry is None:
            entry = {"user_id": other, "last_message": msg, "unread_count": 0}
            conversations[other] = entry
        if msg.to_user_id == me and not msg.is_read:
            entry["unread_count"] += 1
    return list(conversations.values())


def count_unread(db: Session, user_id) -> int:
    return db.query(Message).filter(
        Message.to_user_id == as_uuid(user_id, "User ID"),
        Message.is_read.is_(False),
    ).count()


def mark_read(db: Session, user_id, other_user_id) -> int:
    """Mark every message from other_user_id to user_id as read."""
    count = db.query(Message).filter(
        Message.to_user_id == as_uuid(user_id, "User ID"),
        Message.from_user_id == as_uuid(other_user_id, "User ID"),
        Message.is_read.is_(False),
    ).update({Message.is_read: True}, synchronize_session=False)
    db.commit()
    return count

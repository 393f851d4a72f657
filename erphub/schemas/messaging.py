import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from .common import CamelModel


class MessageCreate(CamelModel):
    to_user_id: uuid.UUID
    subject: Optional[str] = None
    content: str = Field(min_length=1)


class MessageOut(CamelModel):
    id: uuid.UUID
    from_user_id: uuid.UUID
    to_user_id: uuid.UUID
    subject: Optional[str] = None
    content: str
    is_read: bool
    created_at: datetime


class ConversationOut(CamelModel):
    user_id: uuid.UUID
    last_message: MessageOut
    unread_count: int


class NotificationOut(CamelModel):
    id: uuid.UUID
    type: str
    title: str
    message: str
    is_read: bool
    related_id: Optional[str] = None
    created_at: datetime


class EmailSendRequest(CamelModel):
    to: Optional[str] = None
    subject: Optional[str] = None
    html: Optional[str] = None


class EmailSendResponse(CamelModel):
    success: bool
    error: Optional[str] = None

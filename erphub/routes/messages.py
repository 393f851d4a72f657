from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..db import get_db
from ..models.models import User
from ..schemas.messaging import MessageCreate, MessageOut, ConversationOut
from ..services import messages


router = APIRouter(prefix="/messages", tags=["messages"])


@router.post("", response_model=MessageOut)
def send_message(payload: MessageCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return messages.send_message(db, user.id, payload.to_user_id, payload.content, payload.subject)


@router.get("/conversations", response_model=List[ConversationOut])
def list_conversations(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return messages.get_conversations(db, user.id)


@router.get("/unread-count")
def unread_count(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"count": messages.count_unread(db, user.id)}


@router.get("/with/{other_user_id}", response_model=List[MessageOut])
def get_thread(other_user_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return messages.get_thread(db, user.id, other_user_id)


@router.post("/with/{other_user_id}/read")
def mark_thread_read(other_user_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"updated": messages.mark_read(db, user.id, other_user_id)}

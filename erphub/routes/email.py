from fastapi import APIRouter, Depends

from ..auth.security import require_roles
from ..schemas.messaging import EmailSendRequest, EmailSendResponse
from ..services.email import send_email


router = APIRouter(prefix="/email", tags=["email"])


@router.post("/send", response_model=EmailSendResponse)
def send(payload: EmailSendRequest, _=Depends(require_roles("admin"))):
    result = send_email(payload.to, payload.subject, payload.html)
    return EmailSendResponse(success=result.success, error=result.error)

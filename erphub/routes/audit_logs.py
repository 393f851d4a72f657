from typing import Optional, List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth.security import require_roles
from ..db import get_db
from ..schemas.audit import AuditLogOut
from ..services.audit import get_audit_logs


router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("", response_model=List[AuditLogOut])
def list_audit_logs(
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    user_id: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    _=Depends(require_roles("admin")),
):
    return get_audit_logs(db, entity_type=entity_type, entity_id=entity_id, user_id=user_id,
                          limit=limit, offset=offset)

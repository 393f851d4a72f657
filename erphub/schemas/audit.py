import uuid
from datetime import datetime
from typing import Optional, Dict, Any

from .common import CamelModel


class AuditLogOut(CamelModel):
    id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    action: str
    entity_type: str
    entity_id: str
    changes: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    integrity_hash: Optional[str] = None
    created_at: datetime

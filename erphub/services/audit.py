"""
Audit logging service.
Append-only audit log with integrity hashing.
"""
import hashlib
import json
from typing import Optional, Dict, Any, List

from sqlalchemy.orm import Session

from ..config import settings
from ..models.models import AuditLog
from .context import optional_uuid
from .time_rules import now_utc


def integrity_hash_for(entry: Dict[str, Any], secret: str) -> str:
    canonical = {k: v for k, v in entry.items() if v is not None}
    canonical_json = json.dumps(canonical, sort_keys=True, default=str)
    return hashlib.sha256(f"{canonical_json}:{secret}".encode()).hexdigest()


def create_audit_log(
    db: Session,
    entity_type: str,
    entity_id,
    action: str,
    user_id=None,
    changes: Optional[Dict] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    integrity_secret: Optional[str] = None,
) -> AuditLog:
    """
    Create an append-only audit log entry.

    Args:
        db: Database session
        entity_type: Type of entity (invoice|proposal|leave_request|user|...)
        entity_id: Entity ID
        action: Action performed (CREATE|UPDATE|DELETE|APPROVE|REJECT|BAN|UNBAN)
        user_id: User who performed the action
        changes: Before/after diff or created values
        integrity_secret: Secret for integrity hash (defaults to JWT_SECRET)

    Returns:
        Created AuditLog object
    """
    created_at = now_utc()
    secret = settings.jwt_secret if integrity_secret is None else integrity_secret
    integrity_hash = None
    if secret:
        integrity_hash = integrity_hash_for(
            {
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "action": action,
                "user_id": str(user_id) if user_id else None,
                "created_at": created_at.isoformat(),
                "changes": changes,
            },
            secret,
        )

    audit_log = AuditLog(
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        user_id=optional_uuid(user_id, "User ID"),
        changes=changes,
        ip_address=ip_address,
        user_agent=user_agent,
        integrity_hash=integrity_hash,
        created_at=created_at,
    )
    db.add(audit_log)
    db.commit()
    db.refresh(audit_log)
    return audit_log


def get_audit_logs(
    db: Session,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    user_id=None,
    limit: int = 100,
    offset: int = 0,
) -> List[AuditLog]:
    query = db.query(AuditLog)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if entity_id:
        query = query.filter(AuditLog.entity_id == str(entity_id))
    if user_id:
        query = query.filter(AuditLog.user_id == optional_uuid(user_id, "User ID"))
    return query.order_by(AuditLog.created_at.desc()).limit(limit).offset(offset).all()


def compute_diff(before: Dict, after: Dict) -> Dict:
    """Return {field: {"before": x, "after": y}} for every field whose value changed."""
    diff = {}
    for key in set(before.keys()) | set(after.keys()):
        before_val = before.get(key)
        after_val = after.get(key)
        if before_val != after_val:
            diff[key] = {"before": before_val, "after": after_val}
    return diff


def log_action(db: Session, user, action: str, entity_type: str, entity_id,
               changes: Optional[Dict] = None, request=None) -> AuditLog:
    """Record an action taken through the API, with the caller's address and user agent."""
    ip_address = request.client.host if request is not None and request.client else None
    user_agent = request.headers.get("user-agent") if request is not None else None
    return create_audit_log(
        db,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        user_id=user.id if user is not None else None,
        changes=changes,
        ip_address=ip_address,
        user_agent=user_agent,
    )

"""
Identifier parsing and role-scoped data filters.

Staff callers are always pinned to their own user and company; admins get
organization-wide filters (none), except for explicitly personal data.
"""
import uuid
from typing import Optional, Dict, Any

from ..errors import InvalidInputError
from ..schemas.assistant import SystemContext


def as_uuid(value: Any, label: str = "ID") -> uuid.UUID:
    if value is None or value == "":
        raise InvalidInputError(f"{label} is required and must be a valid UUID")
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        raise InvalidInputError(f"Invalid {label} format. Must be a valid UUID.")


def optional_uuid(value: Any, label: str = "ID") -> Optional[uuid.UUID]:
    if value is None or value == "":
        return None
    return as_uuid(value, label)


def context_for_user(user) -> SystemContext:
    """Build the assistant context for an authenticated user. Clients are scoped like staff."""
    return SystemContext(
        user_id=str(user.id),
        user_role="admin" if user.role == "admin" else "staff",
        company_id=str(user.company_id) if user.company_id else None,
    )


def scoped_filters(context: SystemContext) -> Dict[str, Optional[uuid.UUID]]:
    """Return user_id/company_id filters for the caller, or {} for admins."""
    if not context.is_staff:
        return {}
    if not context.user_id:
        raise InvalidInputError("User ID required for staff-scoped queries")
    return {
        "user_id": as_uuid(context.user_id, "User ID"),
        "company_id": optional_uuid(context.company_id, "Company ID"),
    }


def personal_user_id(context: SystemContext) -> uuid.UUID:
    """The caller's own user id, for data that is always personal (goals, leave, attendance)."""
    if not context.user_id:
        raise InvalidInputError("User ID required")
    return as_uuid(context.user_id, "User ID")


def resolve_company_id(context: SystemContext, requested: Any = None) -> uuid.UUID:
    """Company a new record belongs to: staff always write into their own company."""
    if context.is_staff or requested in (None, ""):
        return as_uuid(context.company_id, "Company ID")
    return as_uuid(requested, "Company ID")

"""
Staff accounts (users with role staff or admin).
"""
import re
from typing import Optional, List

import structlog
from sqlalchemy.orm import Session

from ..auth.security import get_password_hash
from ..config import settings
from ..errors import InvalidInputError, NotFoundError
from ..models.models import User
from .context import as_uuid, optional_uuid
from .email import send_or_raise, welcome_email_html

logger = structlog.get_logger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
ROLES = ("admin", "staff", "client")
MIN_PASSWORD_LENGTH = 6


def create_staff(
    db: Session,
    email: str,
    password: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    role: str = "staff",
    company_id=None,
    department: Optional[str] = None,
    position: Optional[str] = None,
    phone: Optional[str] = None,
) -> User:
    if not email or not password:
        raise InvalidInputError("Email and password are required")
    email = email.strip().lower()
    if not EMAIL_RE.match(email):
        raise InvalidInputError("Invalid email format")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidInputError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if role not in ROLES:
        raise InvalidInputError(f"Invalid role '{role}'")
    if db.query(User).filter(User.email == email).first():
        raise InvalidInputError("A user with this email already exists. Please use a different email.")

    user = User(
        email=email,
        password_hash=get_password_hash(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
        company_id=optional_uuid(company_id, "Company ID"),
        department=department,
        position=position,
        phone=phone,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("staff_created", user_id=str(user.id), role=role)
    return user


def send_welcome_email(email: str, name: str, password: Optional[str] = None) -> None:
    send_or_raise(email, f"Welcome to {settings.app_name}", welcome_email_html(name, email, password))


def get_staff(db: Session, staff_id) -> User:
    user = db.query(User).filter(User.id == as_uuid(staff_id, "Staff ID")).first()
    if user is None:
        raise NotFoundError("Staff member not found")
    return user


def get_all_staff(db: Session, company_id=None) -> List[User]:
    query = db.query(User).filter(User.role.in_(("admin", "staff")))
    if company_id:
        query = query.filter(User.company_id == as_uuid(company_id, "Company ID"))
    return query.order_by(User.last_name, User.first_name).all()


def update_staff(db: Session, staff_id, actor_role: str, **fields) -> User:
    user = get_staff(db, staff_id)
    if "company_id" in fields:
        new_company = optional_uuid(fields.pop("company_id"), "Company ID")
        if new_company != user.company_id:
            if actor_role != "admin":
                raise InvalidInputError("Only administrators can assign or change company assignments for staff members.")
            user.company_id = new_company
    if fields.get("role") is not None and fields["role"] not in ROLES:
        raise InvalidInputError(f"Invalid role '{fields['role']}'")
    password = fields.pop("password", None)
    if password:
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidInputError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
        user.password_hash = get_password_hash(password)
    for key, value in fields.items():
        if value is not None and hasattr(user, key):
            setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return user


def delete_staff(db: Session, staff_id) -> None:
    db.delete(get_staff(db, staff_id))
    db.commit()


def ban_staff(db: Session, staff_id) -> User:
    user = get_staff(db, staff_id)
    user.is_banned = True
    db.commit()
    db.refresh(user)
    return user


def unban_staff(db: Session, staff_id) -> User:
    user = get_staff(db, staff_id)
    user.is_banned = False
    db.commit()
    db.refresh(user)
    return user

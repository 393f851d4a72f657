import uuid
from datetime import datetime
from typing import Optional, Literal

from pydantic import EmailStr, Field

from .common import CamelModel

Role = Literal["admin", "staff", "client"]


class StaffCreate(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Role = "staff"
    company_id: Optional[uuid.UUID] = None
    department: Optional[str] = None
    position: Optional[str] = None
    phone: Optional[str] = None
    send_welcome_email: bool = True


class StaffUpdate(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[Role] = None
    company_id: Optional[uuid.UUID] = None
    department: Optional[str] = None
    position: Optional[str] = None
    phone: Optional[str] = None
    is_active: Optional[bool] = None
    password: Optional[str] = None


class StaffOut(CamelModel):
    id: uuid.UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    company_id: Optional[uuid.UUID] = None
    department: Optional[str] = None
    position: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool
    is_banned: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from .common import CamelModel


class LoginRequest(CamelModel):
    email: str
    password: str


class RefreshRequest(CamelModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class MeResponse(CamelModel):
    id: uuid.UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: str
    role: str
    company_id: Optional[uuid.UUID] = None
    department: Optional[str] = None
    position: Optional[str] = None
    last_login_at: Optional[datetime] = None

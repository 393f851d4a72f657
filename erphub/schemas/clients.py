import uuid
from datetime import datetime
from typing import Optional

from .common import CamelModel


class CompanyCreate(CamelModel):
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    logo: Optional[str] = None
    website: Optional[str] = None
    tax_id: Optional[str] = None


class CompanyOut(CompanyCreate):
    id: uuid.UUID
    is_active: bool
    created_at: datetime


class ClientCreate(CamelModel):
    name: str
    email: str
    company_id: Optional[uuid.UUID] = None
    assigned_to: Optional[uuid.UUID] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    contact_person: Optional[str] = None
    notes: Optional[str] = None
    currency: Optional[str] = None


class ClientOut(CamelModel):
    id: uuid.UUID
    company_id: uuid.UUID
    created_by: Optional[uuid.UUID] = None
    assigned_to: Optional[uuid.UUID] = None
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    contact_person: Optional[str] = None
    notes: Optional[str] = None
    currency: Optional[str] = None
    is_active: bool
    created_at: datetime

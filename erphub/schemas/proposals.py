import uuid
from datetime import date, datetime
from typing import Optional, List

from .common import CamelModel
from .invoices import LineItemIn, LineItemOut


class ProposalCreate(CamelModel):
    title: str
    client_name: str
    client_email: Optional[str] = None
    client_id: Optional[uuid.UUID] = None
    company_id: Optional[uuid.UUID] = None
    description: Optional[str] = None
    items: List[LineItemIn] = []
    amount: Optional[float] = None
    tax: float = 0.0
    currency: str = "USD"
    valid_until: Optional[date] = None
    notes: Optional[str] = None


class ProposalUpdate(CamelModel):
    title: Optional[str] = None
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    description: Optional[str] = None
    items: Optional[List[LineItemIn]] = None
    tax: Optional[float] = None
    currency: Optional[str] = None
    status: Optional[str] = None
    valid_until: Optional[date] = None
    notes: Optional[str] = None


class ProposalOut(CamelModel):
    id: uuid.UUID
    proposal_number: str
    version: int
    company_id: uuid.UUID
    created_by: Optional[uuid.UUID] = None
    client_id: Optional[uuid.UUID] = None
    client_name: str
    client_email: Optional[str] = None
    title: str
    description: Optional[str] = None
    amount: float
    tax: float
    total: float
    currency: str
    status: str
    valid_until: Optional[date] = None
    notes: Optional[str] = None
    items: List[LineItemOut] = []
    created_at: datetime

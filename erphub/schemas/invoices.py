import uuid
from datetime import date, datetime
from typing import Optional, List

from pydantic import Field

from .common import CamelModel


class LineItemIn(CamelModel):
    description: str
    quantity: float = Field(default=1, gt=0)
    unit_price: float = Field(default=0, ge=0)


class LineItemOut(CamelModel):
    id: uuid.UUID
    description: str
    quantity: float
    unit_price: float
    total: float


class InvoiceCreate(CamelModel):
    client_name: str
    client_email: Optional[str] = None
    client_address: Optional[str] = None
    client_id: Optional[uuid.UUID] = None
    company_id: Optional[uuid.UUID] = None
    items: List[LineItemIn] = []
    amount: Optional[float] = None
    tax: float = 0.0
    currency: str = "USD"
    status: str = "draft"
    due_date: Optional[date] = None
    notes: Optional[str] = None


class InvoiceUpdate(CamelModel):
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    client_address: Optional[str] = None
    items: Optional[List[LineItemIn]] = None
    tax: Optional[float] = None
    currency: Optional[str] = None
    status: Optional[str] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None


class InvoiceStatusUpdate(CamelModel):
    status: str


class InvoiceOut(CamelModel):
    id: uuid.UUID
    invoice_number: str
    company_id: uuid.UUID
    created_by: Optional[uuid.UUID] = None
    client_id: Optional[uuid.UUID] = None
    client_name: str
    client_email: Optional[str] = None
    client_address: Optional[str] = None
    amount: float
    tax: float
    total: float
    currency: str
    status: str
    due_date: Optional[date] = None
    notes: Optional[str] = None
    sent_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    items: List[LineItemOut] = []
    created_at: datetime

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from .common import CamelModel


class ProductCreate(CamelModel):
    name: str
    company_id: Optional[uuid.UUID] = None
    description: Optional[str] = None
    image: Optional[str] = None
    size: Optional[str] = None
    color: Optional[str] = None
    reference_number: Optional[str] = None
    car_number: Optional[str] = None
    quantity: int = Field(default=1, ge=0)


class ProductUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    size: Optional[str] = None
    color: Optional[str] = None
    reference_number: Optional[str] = None
    car_number: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    status: Optional[str] = None


class ProductOut(CamelModel):
    id: uuid.UUID
    company_id: uuid.UUID
    created_by: Optional[uuid.UUID] = None
    name: str
    description: Optional[str] = None
    image: Optional[str] = None
    size: Optional[str] = None
    color: Optional[str] = None
    reference_number: Optional[str] = None
    car_number: Optional[str] = None
    quantity: int
    status: str
    created_at: datetime


class SaleCreate(CamelModel):
    client_name: str
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    quantity: int = Field(default=1, gt=0)
    unit_price: float = Field(ge=0)
    notes: Optional[str] = None


class SaleOut(CamelModel):
    id: uuid.UUID
    product_id: uuid.UUID
    sold_by: Optional[uuid.UUID] = None
    company_id: uuid.UUID
    client_name: str
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    quantity: int
    unit_price: float
    total_amount: float
    status: str
    sold_at: Optional[datetime] = None
    notes: Optional[str] = None

import uuid
from datetime import date, datetime
from typing import Optional, List, Literal

from .common import CamelModel

Day = date


class DeliveryItem(CamelModel):
    name: str
    picture: Optional[str] = None


class DeliveryCreate(CamelModel):
    delivery_type: Literal["air", "sea"]
    date: Day
    client_name: str
    sender_phone: Optional[str] = None
    items: List[DeliveryItem] = []
    size_kg_volume: Optional[str] = None
    departure: Literal["Dubai", "China"]
    destination: str
    receiver_details: Optional[str] = None
    estimate_arrival_date: Optional[Day] = None
    company_id: Optional[uuid.UUID] = None


class DeliveryUpdate(CamelModel):
    delivery_type: Optional[Literal["air", "sea"]] = None
    date: Optional[Day] = None
    client_name: Optional[str] = None
    sender_phone: Optional[str] = None
    items: Optional[List[DeliveryItem]] = None
    size_kg_volume: Optional[str] = None
    departure: Optional[Literal["Dubai", "China"]] = None
    destination: Optional[str] = None
    receiver_details: Optional[str] = None
    estimate_arrival_date: Optional[Day] = None
    status: Optional[Literal["pending", "in_transit", "delivered", "cancelled"]] = None


class DeliveryOut(CamelModel):
    id: uuid.UUID
    company_id: Optional[uuid.UUID] = None
    created_by: Optional[uuid.UUID] = None
    delivery_type: str
    date: Day
    client_name: str
    sender_phone: Optional[str] = None
    items: List[DeliveryItem] = []
    size_kg_volume: Optional[str] = None
    departure: str
    destination: str
    receiver_details: Optional[str] = None
    estimate_arrival_date: Optional[Day] = None
    status: str
    created_at: datetime

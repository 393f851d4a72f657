import uuid
from datetime import date, datetime
from typing import Optional, List

from .common import CamelModel


class ProjectCreate(CamelModel):
    name: str
    company_id: Optional[uuid.UUID] = None
    client_id: Optional[uuid.UUID] = None
    description: Optional[str] = None
    status: str = "planning"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: Optional[float] = None
    assigned_to: List[uuid.UUID] = []


class ProjectUpdate(CamelModel):
    name: Optional[str] = None
    client_id: Optional[uuid.UUID] = None
    description: Optional[str] = None
    status: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: Optional[float] = None
    assigned_to: Optional[List[uuid.UUID]] = None


class ProjectOut(CamelModel):
    id: uuid.UUID
    company_id: uuid.UUID
    client_id: Optional[uuid.UUID] = None
    name: str
    description: Optional[str] = None
    status: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: Optional[float] = None
    assigned_to: List[uuid.UUID] = []
    created_at: datetime

import uuid
from datetime import date, datetime
from typing import Optional, Literal

from .common import CamelModel

LeaveType = Literal["annual", "sick", "emergency"]


class LeaveRequestCreate(CamelModel):
    type: LeaveType
    start_date: date
    end_date: date
    reason: Optional[str] = None


class LeaveDecision(CamelModel):
    status: Literal["approved", "rejected", "pending"]


class LeaveRequestOut(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    company_id: Optional[uuid.UUID] = None
    type: LeaveType
    start_date: date
    end_date: date
    reason: Optional[str] = None
    status: str
    approved_by: Optional[uuid.UUID] = None
    approved_at: Optional[datetime] = None
    created_at: datetime


class LeaveTypeBalance(CamelModel):
    total: int
    used: int
    remaining: int


class LeaveBalanceOut(CamelModel):
    annual: LeaveTypeBalance
    sick: LeaveTypeBalance
    emergency: LeaveTypeBalance


class LeaveBalanceRow(CamelModel):
    user_id: uuid.UUID
    annual_total: int
    annual_used: int
    sick_total: int
    sick_used: int
    emergency_total: int
    emergency_used: int


class LeaveBalanceUpdate(CamelModel):
    annual_total: Optional[int] = None
    annual_used: Optional[int] = None
    sick_total: Optional[int] = None
    sick_used: Optional[int] = None
    emergency_total: Optional[int] = None
    emergency_used: Optional[int] = None

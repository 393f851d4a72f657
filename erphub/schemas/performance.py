import uuid
from datetime import date, datetime
from typing import Optional, Literal, Dict, Any

from pydantic import Field

from .common import CamelModel

GoalStatus = Literal["not-started", "in-progress", "completed", "cancelled"]
GoalType = Literal["short-term", "long-term"]


class KPICreate(CamelModel):
    category: str
    name: str
    description: Optional[str] = None
    unit: Optional[str] = None
    target: Optional[float] = None


class KPIUpdate(CamelModel):
    category: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    unit: Optional[str] = None
    target: Optional[float] = None


class KPIOut(KPICreate):
    id: uuid.UUID
    created_at: datetime


class GoalCreate(CamelModel):
    user_id: Optional[uuid.UUID] = None
    title: str
    description: Optional[str] = None
    type: GoalType = "short-term"
    target_value: Optional[float] = None
    start_date: date
    end_date: date


class GoalUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[GoalType] = None
    target_value: Optional[float] = None
    current_value: Optional[float] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[GoalStatus] = None


class GoalOut(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: Optional[str] = None
    type: str
    target_value: Optional[float] = None
    current_value: float
    start_date: date
    end_date: date
    status: str
    progress: float = 0.0
    overdue: bool = False
    created_at: datetime


class ReviewCreate(CamelModel):
    user_id: uuid.UUID
    period: str
    cycle: Literal["monthly", "quarterly"] = "quarterly"
    overall_rating: float = Field(ge=1, le=5)
    ratings: Optional[Dict[str, Any]] = None
    feedback: Optional[str] = None
    competencies: Optional[Dict[str, Any]] = None


class ReviewUpdate(CamelModel):
    period: Optional[str] = None
    overall_rating: Optional[float] = Field(default=None, ge=1, le=5)
    ratings: Optional[Dict[str, Any]] = None
    feedback: Optional[str] = None
    competencies: Optional[Dict[str, Any]] = None


class ReviewOut(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    reviewed_by: Optional[uuid.UUID] = None
    cycle: str
    period: str
    ratings: Optional[Dict[str, Any]] = None
    overall_rating: float
    feedback: Optional[str] = None
    competencies: Optional[Dict[str, Any]] = None
    created_at: datetime

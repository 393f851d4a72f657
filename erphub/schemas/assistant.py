import uuid
from datetime import datetime
from typing import Optional, List, Literal, Any, Dict

from pydantic import Field, field_validator

from .common import CamelModel


InsightType = Literal["financial", "performance", "attendance", "risk"]
Severity = Literal["low", "medium", "high"]


class SystemContext(CamelModel):
    """Caller identity and scope passed into every assistant call."""

    user_id: Optional[str] = None
    user_role: Literal["admin", "staff"] = "staff"
    company_id: Optional[str] = None

    @property
    def is_staff(self) -> bool:
        return self.user_role != "admin"


class ChatMessage(CamelModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: Optional[datetime] = None


class ChatRequest(CamelModel):
    message: str = Field(min_length=1)
    history: List[ChatMessage] = []

    @field_validator("message")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message must not be empty")
        return v


class ChatResponse(CamelModel):
    reply: str


class InsightGenerateRequest(CamelModel):
    type: InsightType


class InsightCreate(CamelModel):
    type: InsightType
    title: str
    description: str
    severity: Severity
    recommendations: List[str] = []
    data: Dict[str, Any] = {}


class InsightOut(CamelModel):
    id: uuid.UUID
    type: InsightType
    title: str
    description: str
    severity: Severity
    recommendations: List[str] = []
    data: Dict[str, Any] = {}
    created_at: datetime


class ReportSummaryRequest(CamelModel):
    report_type: str
    data: Dict[str, Any] = {}


class ReportSummaryResponse(CamelModel):
    summary: str


class DecisionRequest(CamelModel):
    context: str
    options: List[str] = []


class DecisionResponse(CamelModel):
    recommendations: List[str]

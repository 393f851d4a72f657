import uuid
from datetime import date, datetime
from typing import Optional, Literal

from pydantic import Field

from .common import CamelModel

Day = date


class TransactionCreate(CamelModel):
    type: Literal["income", "expense"]
    amount: float = Field(gt=0)
    date: Day
    category: Optional[str] = None
    description: Optional[str] = None
    company_id: Optional[uuid.UUID] = None


class TransactionUpdate(CamelModel):
    type: Optional[Literal["income", "expense"]] = None
    amount: Optional[float] = Field(default=None, gt=0)
    date: Optional[Day] = None
    category: Optional[str] = None
    description: Optional[str] = None


class TransactionOut(CamelModel):
    id: uuid.UUID
    company_id: Optional[uuid.UUID] = None
    user_id: Optional[uuid.UUID] = None
    type: str
    category: Optional[str] = None
    amount: float
    description: Optional[str] = None
    date: Day
    created_at: datetime


class FinancialSummaryOut(CamelModel):
    total_income: float
    total_expenses: float
    net_profit: float
    income_count: int
    expense_count: int

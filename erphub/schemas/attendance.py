import uuid
from datetime import datetime
from typing import Optional

from .common import CamelModel


class ClockInRequest(CamelModel):
    notes: Optional[str] = None


class AttendanceOut(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    clock_in: datetime
    clock_out: Optional[datetime] = None
    total_hours: Optional[float] = None
    notes: Optional[str] = None

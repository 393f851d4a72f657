"""
Human-readable document numbers (invoices, proposals) and the insert-retry loop
that keeps them unique under concurrent creation.
"""
import re
import time
from datetime import date
from typing import Callable, Optional, TypeVar

import structlog
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import ConflictError
from ..models.models import Invoice, Proposal
from .time_rules import local_today

logger = structlog.get_logger(__name__)

BACKOFF_S = 0.05
MAX_GENERATION_ATTEMPTS = 10
MAX_INSERT_RETRIES = 5

T = TypeVar("T")


def timestamp_fallback(prefix: str) -> str:
    return f"{prefix}{str(int(time.time() * 1000))[-6:]}"


def generate_invoice_number(db: Session, today: Optional[date] = None) -> str:
    """
    Next free INV-YYYYMMDD-XXXX number for the day.

    Each attempt probes count+1+attempt and backs off 50ms x (attempt+1) after a
    collision; after MAX_GENERATION_ATTEMPTS a timestamp suffix is used instead.
    """
    today = today or local_today()
    prefix = f"INV-{today:%Y%m%d}-"
    for attempt in range(MAX_GENERATION_ATTEMPTS):
        count = db.query(func.count(Invoice.id)).filter(Invoice.invoice_number.like(f"{prefix}%")).scalar() or 0
        candidate = f"{prefix}{count + 1 + attempt:04d}"
        taken = db.query(Invoice.id).filter(Invoice.invoice_number == candidate).first()
        if not taken:
            return candidate
        time.sleep(BACKOFF_S * (attempt + 1))
    logger.warning("invoice_number_fallback", prefix=prefix)
    return timestamp_fallback(prefix)


def generate_proposal_number(db: Session, year: Optional[int] = None) -> str:
    """PROP-YYYY-XXXX, one past the highest sequence used this year."""
    year = year or local_today().year
    prefix = f"PROP-{year}-"
    numbers = db.query(Proposal.proposal_number).filter(Proposal.proposal_number.like(f"{prefix}%")).distinct().all()
    highest = 0
    for (number,) in numbers:
        m = re.match(rf"^{re.escape(prefix)}(\d+)$", number or "")
        if m:
            highest = max(highest, int(m.group(1)))
    return f"{prefix}{highest + 1:04d}"


def _is_unique_violation(exc: IntegrityError, column: str) -> bool:
    return column in str(getattr(exc, "orig", exc))


def insert_with_unique_number(
    db: Session,
    build_row: Callable[[str], T],
    number: str,
    regenerate: Callable[[], str],
    fallback: Callable[[], str],
    column: str,
    max_retries: int = MAX_INSERT_RETRIES,
) -> T:
    """
    Insert the row built for `number`, regenerating the number on a unique
    violation of `column`.

    Retries up to max_retries times with a 50ms x attempt backoff, then makes one
    last attempt with the fallback number. Other integrity errors propagate.
    """
    attempt = 0
    used_fallback = False
    while True:
        row = build_row(number)
        db.add(row)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            if not _is_unique_violation(exc, column):
                raise
            if used_fallback:
                raise ConflictError(f"Unable to generate unique {column} after multiple attempts")
            attempt += 1
            logger.warning("unique_number_collision", column=column, number=number, attempt=attempt)
            if attempt > max_retries:
                number = fallback()
                used_fallback = True
            else:
                time.sleep(BACKOFF_S * attempt)
                number = regenerate()
            continue
        db.refresh(row)
        return row

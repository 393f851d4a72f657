from datetime import date
from typing import Optional, List, Dict

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, get_context, ensure_owner_or_admin
from ..db import get_db
from ..models.models import User
from ..schemas.assistant import SystemContext
from ..schemas.financial import TransactionCreate, TransactionUpdate, TransactionOut, FinancialSummaryOut
from ..services import financial
from ..services.audit import log_action
from ..services.context import optional_uuid, scoped_filters


router = APIRouter(prefix="/financial", tags=["financial"])


def _scope(context: SystemContext, company_id: Optional[str]) -> Dict:
    filters = scoped_filters(context)
    if not filters:
        return {"company_id": company_id, "user_id": None}
    return filters


@router.post("/transactions", response_model=TransactionOut)
def create_transaction(
    payload: TransactionCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    context: SystemContext = Depends(get_context),
):
    data = payload.model_dump()
    if context.is_staff:
        data["company_id"] = optional_uuid(context.company_id, "Company ID")
    txn = financial.create_transaction(db, user_id=user.id, **data)
    log_action(db, user, "CREATE", "transaction", txn.id, payload.model_dump(mode="json"), request)
    return txn


@router.get("/transactions", response_model=List[TransactionOut])
def list_transactions(
    type: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    company_id: Optional[str] = None,
    db: Session = Depends(get_db),
    context: SystemContext = Depends(get_context),
):
    return financial.get_transactions(db, type=type, start_date=start_date, end_date=end_date,
                                      **_scope(context, company_id))


@router.put("/transactions/{transaction_id}", response_model=TransactionOut)
def update_transaction(
    transaction_id: str,
    payload: TransactionUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    ensure_owner_or_admin(user, financial.get_transaction(db, transaction_id).user_id)
    txn = financial.update_transaction(db, transaction_id, **payload.model_dump(exclude_unset=True))
    log_action(db, user, "UPDATE", "transaction", txn.id, payload.model_dump(mode="json", exclude_unset=True), request)
    return txn


@router.delete("/transactions/{transaction_id}")
def delete_transaction(
    transaction_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    ensure_owner_or_admin(user, financial.get_transaction(db, transaction_id).user_id)
    financial.delete_transaction(db, transaction_id)
    log_action(db, user, "DELETE", "transaction", transaction_id, None, request)
    return {"status": "ok"}


@router.get("/summary", response_model=FinancialSummaryOut)
def financial_summary(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    company_id: Optional[str] = None,
    db: Session = Depends(get_db),
    context: SystemContext = Depends(get_context),
):
    return financial.get_financial_summary(db, start_date=start_date, end_date=end_date,
                                           **_scope(context, company_id))


@router.get("/breakdown", response_model=Dict[str, float])
def expense_breakdown(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    company_id: Optional[str] = None,
    db: Session = Depends(get_db),
    context: SystemContext = Depends(get_context),
):
    return financial.get_expense_breakdown(db, start_date=start_date, end_date=end_date,
                                           **_scope(context, company_id))

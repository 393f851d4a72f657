from typing import Optional, List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, get_context, require_roles, ensure_owner_or_admin
from ..db import get_db
from ..models.models import User
from ..schemas.assistant import SystemContext
from ..schemas.invoices import InvoiceCreate, InvoiceUpdate, InvoiceStatusUpdate, InvoiceOut
from ..services import invoices as invoice_service
from ..services.audit import log_action, compute_diff
from ..services.background import detached
from ..services.context import resolve_company_id, scoped_filters
from ..services.email import send_or_raise, invoice_email_html


router = APIRouter(prefix="/invoices", tags=["invoices"])

_AUDITED_FIELDS = ("client_name", "client_email", "client_address", "tax", "currency", "status", "due_date", "notes", "total")


def _snapshot(invoice) -> dict:
    return {f: getattr(invoice, f) for f in _AUDITED_FIELDS}


def _out(invoice) -> InvoiceOut:
    # Open invoices past their due date are reported as overdue
    out = InvoiceOut.model_validate(invoice)
    out.status = invoice_service.effective_status(invoice)
    return out


@router.post("", response_model=InvoiceOut)
def create_invoice(
    payload: InvoiceCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    context: SystemContext = Depends(get_context),
):
    data = payload.model_dump()
    data["company_id"] = resolve_company_id(context, payload.company_id)
    invoice = invoice_service.create_invoice(db, created_by=user.id, **data)
    log_action(db, user, "CREATE", "invoice", invoice.id, payload.model_dump(mode="json"), request)
    return _out(invoice)


@router.get("", response_model=List[InvoiceOut])
def list_invoices(
    status: Optional[str] = None,
    client_id: Optional[str] = None,
    company_id: Optional[str] = None,
    db: Session = Depends(get_db),
    context: SystemContext = Depends(get_context),
):
    filters = scoped_filters(context)
    return [
        _out(inv)
        for inv in invoice_service.get_invoices(
            db,
            company_id=filters.get("company_id") or company_id,
            created_by=filters.get("user_id"),
            status=status,
            client_id=client_id,
        )
    ]


@router.get("/{invoice_id}", response_model=InvoiceOut)
def get_invoice(invoice_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    invoice = invoice_service.get_invoice(db, invoice_id)
    ensure_owner_or_admin(user, invoice.created_by)
    return _out(invoice)


@router.put("/{invoice_id}", response_model=InvoiceOut)
def update_invoice(
    invoice_id: str,
    payload: InvoiceUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    invoice = invoice_service.get_invoice(db, invoice_id)
    ensure_owner_or_admin(user, invoice.created_by)
    before = _snapshot(invoice)
    fields = payload.model_dump(exclude_unset=True)
    invoice = invoice_service.update_invoice(db, invoice_id, **fields)
    diff = compute_diff(
        {k: str(v) if v is not None else None for k, v in before.items()},
        {k: str(v) if v is not None else None for k, v in _snapshot(invoice).items()},
    )
    log_action(db, user, "UPDATE", "invoice", invoice.id, diff, request)
    return _out(invoice)


@router.patch("/{invoice_id}/status", response_model=InvoiceOut)
def update_invoice_status(
    invoice_id: str,
    payload: InvoiceStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("admin")),
):
    before = invoice_service.get_invoice(db, invoice_id).status
    invoice = invoice_service.update_invoice_status(db, invoice_id, payload.status)
    log_action(db, user, "UPDATE", "invoice", invoice.id,
               {"status": {"before": before, "after": invoice.status}}, request)
    return _out(invoice)


@router.post("/{invoice_id}/send", response_model=InvoiceOut)
def send_invoice(
    invoice_id: str,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    invoice = invoice_service.get_invoice(db, invoice_id)
    ensure_owner_or_admin(user, invoice.created_by)
    if not invoice.client_email:
        raise HTTPException(status_code=400, detail="Invoice has no client email")
    html = invoice_email_html(invoice)
    subject = f"Invoice {invoice.invoice_number}"
    invoice = invoice_service.update_invoice_status(db, invoice_id, "sent")
    background_tasks.add_task(detached("invoice_email", send_or_raise), invoice.client_email, subject, html)
    log_action(db, user, "SEND", "invoice", invoice.id, {"to": invoice.client_email}, request)
    return _out(invoice)


@router.delete("/{invoice_id}")
def delete_invoice(
    invoice_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("admin")),
):
    invoice = invoice_service.get_invoice(db, invoice_id)
    number = invoice.invoice_number
    invoice_service.delete_invoice(db, invoice_id)
    log_action(db, user, "DELETE", "invoice", invoice_id, {"invoice_number": number}, request)
    return {"status": "ok"}

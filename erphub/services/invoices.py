"""
Invoices and their line items.

Invoice numbers are allocated per day (INV-YYYYMMDD-XXXX) and retried on
collision; "overdue" is derived from the due date, never stored.
"""
from datetime import date, datetime, timezone
from functools import partial
from typing import Optional, List, Dict, Any

import structlog
from sqlalchemy.orm import Session

from ..errors import InvalidInputError, NotFoundError
from ..models.models import Invoice, InvoiceItem
from . import numbering
from .clients import find_client_by_email
from .context import as_uuid, optional_uuid
from .time_rules import local_today

logger = structlog.get_logger(__name__)

INVOICE_STATUSES = ("draft", "pending", "approved", "sent", "paid", "cancelled")
# Statuses that can become overdue once the due date passes
OPEN_STATUSES = ("pending", "approved", "sent")


def effective_status(invoice: Invoice, today: Optional[date] = None) -> str:
    today = today or local_today()
    if invoice.status in OPEN_STATUSES and invoice.due_date and invoice.due_date < today:
        return "overdue"
    return invoice.status


def _build_items(items: Optional[List[Dict[str, Any]]]) -> List[InvoiceItem]:
    built = []
    for position, item in enumerate(items or []):
        description = (item.get("description") or "").strip()
        if not description:
            raise InvalidInputError("Each invoice item needs a description")
        quantity = float(item.get("quantity") or 0)
        unit_price = float(item.get("unit_price") or 0)
        if quantity < 0 or unit_price < 0:
            raise InvalidInputError("Item quantity and unit price must not be negative")
        built.append(
            InvoiceItem(
                position=position,
                description=description,
                quantity=quantity,
                unit_price=unit_price,
                total=round(quantity * unit_price, 2),
            )
        )
    return built


def create_invoice(
    db: Session,
    company_id,
    created_by,
    client_name: str,
    items: Optional[List[Dict[str, Any]]] = None,
    client_email: Optional[str] = None,
    client_address: Optional[str] = None,
    client_id=None,
    amount: Optional[float] = None,
    tax: float = 0.0,
    currency: str = "USD",
    status: str = "draft",
    due_date: Optional[date] = None,
    notes: Optional[str] = None,
    invoice_number: Optional[str] = None,
) -> Invoice:
    """
    Create an invoice with its items.

    Args:
        db: Database session
        company_id: Owning company (UUID)
        created_by: Creating user (UUID)
        client_name: Billed client name
        items: [{description, quantity, unit_price}]
        invoice_number: Explicit number; generated when omitted

    Returns:
        The persisted Invoice
    """
    company_uuid = as_uuid(company_id, "Company ID")
    creator_uuid = as_uuid(created_by, "Created By")
    if not client_name or not client_name.strip():
        raise InvalidInputError("Client name is required")
    if status not in INVOICE_STATUSES:
        raise InvalidInputError(f"Invalid invoice status '{status}'")
    if tax < 0:
        raise InvalidInputError("Tax must not be negative")

    client_uuid = optional_uuid(client_id, "Client ID")
    if client_uuid is None:
        client = find_client_by_email(db, client_email, company_uuid)
        client_uuid = client.id if client else None

    # Validate items once up front; rows are rebuilt per insert attempt
    _build_items(items)
    subtotal = round(sum(float(i.get("quantity") or 0) * float(i.get("unit_price") or 0) for i in items or []), 2)
    if not items:
        subtotal = float(amount or 0)

    def build(number: str) -> Invoice:
        return Invoice(
            invoice_number=number,
            company_id=company_uuid,
            created_by=creator_uuid,
            client_id=client_uuid,
            client_name=client_name.strip(),
            client_email=client_email,
            client_address=client_address,
            amount=subtotal,
            tax=tax,
            total=round(subtotal + tax, 2),
            currency=currency,
            status=status,
            due_date=due_date,
            notes=notes,
            items=_build_items(items),
        )

    today = local_today()
    invoice = numbering.insert_with_unique_number(
        db,
        build,
        invoice_number or numbering.generate_invoice_number(db, today),
        regenerate=partial(numbering.generate_invoice_number, db, today),
        fallback=partial(numbering.timestamp_fallback, f"INV-{today:%Y%m%d}-"),
        column="invoice_number",
    )
    logger.info("invoice_created", invoice_id=str(invoice.id), invoice_number=invoice.invoice_number)
    return invoice


def get_invoice(db: Session, invoice_id) -> Invoice:
    invoice = db.query(Invoice).filter(Invoice.id == as_uuid(invoice_id, "Invoice ID")).first()
    if invoice is None:
        raise NotFoundError("Invoice not found")
    return invoice


def get_invoices(
    db: Session,
    company_id=None,
    created_by=None,
    status: Optional[str] = None,
    client_id=None,
    client_email: Optional[str] = None,
    limit: int = 500,
) -> List[Invoice]:
    query = db.query(Invoice)
    if company_id:
        query = query.filter(Invoice.company_id == as_uuid(company_id, "Company ID"))
    if created_by:
        query = query.filter(Invoice.created_by == as_uuid(created_by, "Created By"))
    if status == "overdue":
        query = query.filter(Invoice.status.in_(OPEN_STATUSES), Invoice.due_date < local_today())
    elif status:
        query = query.filter(Invoice.status == status)
    if client_id:
        query = query.filter(Invoice.client_id == as_uuid(client_id, "Client ID"))
    if client_email:
        query = query.filter(Invoice.client_email == client_email)
    return query.order_by(Invoice.created_at.desc()).limit(limit).all()


def update_invoice(db: Session, invoice_id, **fields) -> Invoice:
    invoice = get_invoice(db, invoice_id)
    items = fields.pop("items", None)
    if "status" in fields and fields["status"] is not None:
        _apply_status(invoice, fields.pop("status"))
    for key, value in fields.items():
        if value is not None and hasattr(invoice, key):
            setattr(invoice, key, value)
    if items is not None:
        invoice.items = _build_items(items)
        invoice.amount = round(sum(i.total for i in invoice.items), 2)
    invoice.total = round((invoice.amount or 0) + (invoice.tax or 0), 2)
    db.commit()
    db.refresh(invoice)
    return invoice


def _apply_status(invoice: Invoice, status: str) -> None:
    if status not in INVOICE_STATUSES:
        raise InvalidInputError(f"Invalid invoice status '{status}'")
    invoice.status = status
    now = datetime.now(timezone.utc)
    if status == "sent":
        invoice.sent_at = now
    elif status == "paid":
        invoice.paid_at = now


def update_invoice_status(db: Session, invoice_id, status: str) -> Invoice:
    invoice = get_invoice(db, invoice_id)
    _apply_status(invoice, status)
    db.commit()
    db.refresh(invoice)
    return invoice


def delete_invoice(db: Session, invoice_id) -> None:
    invoice = get_invoice(db, invoice_id)
    db.delete(invoice)
    db.commit()


def status_counts(invoices: List[Invoice], today: Optional[date] = None) -> Dict[str, int]:
    """Totals used by the assistant and the risk check."""
    today = today or local_today()
    statuses = [effective_status(inv, today) for inv in invoices]
    return {
        "total": len(statuses),
        "paid": statuses.count("paid"),
        "pending": statuses.count("pending"),
        "overdue": statuses.count("overdue"),
    }

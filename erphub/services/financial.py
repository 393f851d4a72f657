"""
Income/expense transactions and the financial summary the assistant reports on.

Income combines income transactions, sold product sales and approved/paid
invoices; expenses are expense transactions only.
"""
from datetime import date
from typing import Optional, List, Dict

from sqlalchemy.orm import Session

from ..errors import InvalidInputError, NotFoundError
from ..models.models import Transaction, ProductSale, Invoice
from .context import as_uuid, optional_uuid
from .time_rules import utc_day_bounds

TRANSACTION_TYPES = ("income", "expense")
INCOME_INVOICE_STATUSES = ("approved", "paid")


def create_transaction(db: Session, type: str, amount: float, date: date, company_id=None, user_id=None,
                       category: Optional[str] = None, description: Optional[str] = None) -> Transaction:
    if type not in TRANSACTION_TYPES:
        raise InvalidInputError(f"Invalid transaction type '{type}'")
    if amount is None or amount < 0:
        raise InvalidInputError("Amount must be a non-negative number")
    txn = Transaction(
        type=type,
        amount=amount,
        date=date,
        company_id=optional_uuid(company_id, "Company ID"),
        user_id=optional_uuid(user_id, "User ID"),
        category=category,
        description=description,
    )
    db.add(txn)
    db.commit()
    db.refresh(txn)
    return txn


def get_transaction(db: Session, transaction_id) -> Transaction:
    txn = db.query(Transaction).filter(Transaction.id == as_uuid(transaction_id, "Transaction ID")).first()
    if txn is None:
        raise NotFoundError("Transaction not found")
    return txn


def get_transactions(
    db: Session,
    company_id=None,
    user_id=None,
    type: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[Transaction]:
    query = db.query(Transaction)
    if company_id:
        query = query.filter(Transaction.company_id == as_uuid(company_id, "Company ID"))
    if user_id:
        query = query.filter(Transaction.user_id == as_uuid(user_id, "User ID"))
    if type:
        query = query.filter(Transaction.type == type)
    if start_date:
        query = query.filter(Transaction.date >= start_date)
    if end_date:
        query = query.filter(Transaction.date <= end_date)
    return query.order_by(Transaction.date.desc()).all()


def update_transaction(db: Session, transaction_id, **fields) -> Transaction:
    txn = get_transaction(db, transaction_id)
    if fields.get("type") is not None and fields["type"] not in TRANSACTION_TYPES:
        raise InvalidInputError(f"Invalid transaction type '{fields['type']}'")
    for key, value in fields.items():
        if value is not None and hasattr(txn, key):
            setattr(txn, key, value)
    db.commit()
    db.refresh(txn)
    return txn


def delete_transaction(db: Session, transaction_id) -> None:
    db.delete(get_transaction(db, transaction_id))
    db.commit()


def get_financial_summary(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    company_id=None,
    user_id=None,
) -> Dict[str, float]:
    """
    Aggregate income and expenses over an inclusive date range.

    Args:
        db: Database session
        start_date: First day included (open when None)
        end_date: Last day included (open when None)
        company_id: Restrict to one company
        user_id: Restrict to one user's transactions, sales and invoices

    Returns:
        Dict with total_income, total_expenses, net_profit, income_count, expense_count
    """
    transactions = get_transactions(db, company_id=company_id, user_id=user_id,
                                    start_date=start_date, end_date=end_date)
    income = [t.amount for t in transactions if t.type == "income"]
    expenses = [t.amount for t in transactions if t.type == "expense"]

    start_utc, end_utc = utc_day_bounds(start_date, end_date)

    sales = db.query(ProductSale).filter(ProductSale.status == "sold")
    invoices = db.query(Invoice).filter(Invoice.status.in_(INCOME_INVOICE_STATUSES))
    if company_id:
        cid = as_uuid(company_id, "Company ID")
        sales = sales.filter(ProductSale.company_id == cid)
        invoices = invoices.filter(Invoice.company_id == cid)
    if user_id:
        uid = as_uuid(user_id, "User ID")
        sales = sales.filter(ProductSale.sold_by == uid)
        invoices = invoices.filter(Invoice.created_by == uid)
    if start_utc is not None:
        sales = sales.filter(ProductSale.sold_at >= start_utc)
        invoices = invoices.filter(Invoice.created_at >= start_utc)
    if end_utc is not None:
        sales = sales.filter(ProductSale.sold_at < end_utc)
        invoices = invoices.filter(Invoice.created_at < end_utc)

    income.extend(s.total_amount or 0 for s in sales.all())
    income.extend(inv.total or 0 for inv in invoices.all())

    total_income = round(sum(income), 2)
    total_expenses = round(sum(expenses), 2)
    return {
        "total_income": total_income,
        "total_expenses": total_expenses,
        "net_profit": round(total_income - total_expenses, 2),
        "income_count": len(income),
        "expense_count": len(expenses),
    }


def get_expense_breakdown(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    company_id=None,
    user_id=None,
) -> Dict[str, float]:
    """Summed expense amount per category; blank categories count as "Uncategorized"."""
    breakdown: Dict[str, float] = {}
    for txn in get_transactions(db, company_id=company_id, user_id=user_id, type="expense",
                                start_date=start_date, end_date=end_date):
        category = txn.category or "Uncategorized"
        breakdown[category] = round(breakdown.get(category, 0.0) + (txn.amount or 0), 2)
    return breakdown

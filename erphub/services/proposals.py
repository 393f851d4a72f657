"""
Versioned proposals. All versions of a proposal share one PROP-YYYY-XXXX number.
"""
from datetime import date
from functools import partial
from typing import Optional, List, Dict, Any

import structlog
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..errors import InvalidInputError, NotFoundError
from ..models.models import Proposal, ProposalItem
from . import numbering
from .context import as_uuid, optional_uuid
from .time_rules import local_today

logger = structlog.get_logger(__name__)

PROPOSAL_STATUSES = ("draft", "sent", "accepted", "rejected")
_COPY_FIELDS = (
    "company_id", "created_by", "client_id", "client_name", "client_email", "title",
    "description", "amount", "tax", "total", "currency", "valid_until", "notes",
)


def _build_items(items: Optional[List[Dict[str, Any]]]) -> List[ProposalItem]:
    built = []
    for position, item in enumerate(items or []):
        description = (item.get("description") or "").strip()
        if not description:
            raise InvalidInputError("Each proposal item needs a description")
        quantity = float(item.get("quantity") or 0)
        unit_price = float(item.get("unit_price") or 0)
        built.append(
            ProposalItem(
                position=position,
                description=description,
                quantity=quantity,
                unit_price=unit_price,
                total=round(quantity * unit_price, 2),
            )
        )
    return built


def create_proposal(
    db: Session,
    company_id,
    created_by,
    client_name: str,
    title: str,
    items: Optional[List[Dict[str, Any]]] = None,
    client_email: Optional[str] = None,
    client_id=None,
    description: Optional[str] = None,
    amount: Optional[float] = None,
    tax: float = 0.0,
    currency: str = "USD",
    valid_until: Optional[date] = None,
    notes: Optional[str] = None,
) -> Proposal:
    company_uuid = as_uuid(company_id, "Company ID")
    creator_uuid = as_uuid(created_by, "Created By")
    if not title or not title.strip():
        raise InvalidInputError("Proposal title is required")
    if not client_name or not client_name.strip():
        raise InvalidInputError("Client name is required")

    _build_items(items)
    subtotal = round(sum(float(i.get("quantity") or 0) * float(i.get("unit_price") or 0) for i in items or []), 2)
    if not items:
        subtotal = float(amount or 0)

    def build(number: str) -> Proposal:
        return Proposal(
            proposal_number=number,
            version=1,
            company_id=company_uuid,
            created_by=creator_uuid,
            client_id=optional_uuid(client_id, "Client ID"),
            client_name=client_name.strip(),
            client_email=client_email,
            title=title.strip(),
            description=description,
            amount=subtotal,
            tax=tax,
            total=round(subtotal + tax, 2),
            currency=currency,
            status="draft",
            valid_until=valid_until,
            notes=notes,
            items=_build_items(items),
        )

    year = local_today().year
    proposal = numbering.insert_with_unique_number(
        db,
        build,
        numbering.generate_proposal_number(db, year),
        regenerate=partial(numbering.generate_proposal_number, db, year),
        fallback=partial(numbering.timestamp_fallback, f"PROP-{year}-"),
        column="proposal_number",
    )
    logger.info("proposal_created", proposal_id=str(proposal.id), proposal_number=proposal.proposal_number)
    return proposal


def get_proposal(db: Session, proposal_id) -> Proposal:
    proposal = db.query(Proposal).filter(Proposal.id == as_uuid(proposal_id, "Proposal ID")).first()
    if proposal is None:
        raise NotFoundError("Proposal not found")
    return proposal


def get_proposals(
    db: Session,
    company_id=None,
    created_by=None,
    status: Optional[str] = None,
    client_id=None,
) -> List[Proposal]:
    """Latest version of every proposal matching the filters."""
    latest = (
        db.query(Proposal.proposal_number, func.max(Proposal.version).label("version"))
        .group_by(Proposal.proposal_number)
        .subquery()
    )
    query = db.query(Proposal).join(
        latest,
        (Proposal.proposal_number == latest.c.proposal_number) & (Proposal.version == latest.c.version),
    )
    if company_id:
        query = query.filter(Proposal.company_id == as_uuid(company_id, "Company ID"))
    if created_by:
        query = query.filter(Proposal.created_by == as_uuid(created_by, "Created By"))
    if status:
        query = query.filter(Proposal.status == status)
    if client_id:
        query = query.filter(Proposal.client_id == as_uuid(client_id, "Client ID"))
    return query.order_by(Proposal.created_at.desc()).all()


def get_proposal_versions(db: Session, proposal_number: str) -> List[Proposal]:
    return (
        db.query(Proposal)
        .filter(Proposal.proposal_number == proposal_number)
        .order_by(Proposal.version.desc())
        .all()
    )


def update_proposal(db: Session, proposal_id, **fields) -> Proposal:
    proposal = get_proposal(db, proposal_id)
    items = fields.pop("items", None)
    status = fields.pop("status", None)
    if status is not None:
        if status not in PROPOSAL_STATUSES:
            raise InvalidInputError(f"Invalid proposal status '{status}'")
        proposal.status = status
    for key, value in fields.items():
        if value is not None and hasattr(proposal, key):
            setattr(proposal, key, value)
    if items is not None:
        proposal.items = _build_items(items)
        proposal.amount = round(sum(i.total for i in proposal.items), 2)
    proposal.total = round((proposal.amount or 0) + (proposal.tax or 0), 2)
    db.commit()
    db.refresh(proposal)
    return proposal


def create_new_version(db: Session, proposal_id, **changes) -> Proposal:
    """Copy the latest version of the proposal as a new draft version with the same number."""
    source = get_proposal(db, proposal_id)
    latest = get_proposal_versions(db, source.proposal_number)[0]
    items = changes.pop("items", None)
    data = {f: getattr(latest, f) for f in _COPY_FIELDS}
    data.update({k: v for k, v in changes.items() if v is not None and k in _COPY_FIELDS})
    if items is None:
        items = [
            {"description": i.description, "quantity": i.quantity, "unit_price": i.unit_price}
            for i in latest.items
        ]
    new_items = _build_items(items)
    if new_items:
        data["amount"] = round(sum(i.total for i in new_items), 2)
    data["total"] = round((data.get("amount") or 0) + (data.get("tax") or 0), 2)
    proposal = Proposal(
        proposal_number=latest.proposal_number,
        version=latest.version + 1,
        status="draft",
        items=new_items,
        **data,
    )
    db.add(proposal)
    db.commit()
    db.refresh(proposal)
    return proposal


def delete_proposal(db: Session, proposal_id) -> None:
    proposal = get_proposal(db, proposal_id)
    db.delete(proposal)
    db.commit()

"""
Companies and clients: the small lookups invoices, proposals and PDFs depend on.
"""
from typing import Optional, List

from sqlalchemy.orm import Session

from ..errors import InvalidInputError, NotFoundError
from ..models.models import Client, Company
from .context import as_uuid, optional_uuid


def create_company(db: Session, name: str, **fields) -> Company:
    if not name or not name.strip():
        raise InvalidInputError("Company name is required")
    company = Company(name=name.strip(), **fields)
    db.add(company)
    db.commit()
    db.refresh(company)
    return company


def get_company(db: Session, company_id) -> Optional[Company]:
    return db.query(Company).filter(Company.id == as_uuid(company_id, "Company ID")).first()


def list_companies(db: Session) -> List[Company]:
    return db.query(Company).order_by(Company.name).all()


def create_client(db: Session, company_id, created_by, name: str, email: str, **fields) -> Client:
    if not name or not email:
        raise InvalidInputError("Company, name, and email are required")
    normalized = email.strip().lower()
    company_uuid = as_uuid(company_id, "Company ID")
    exists = db.query(Client).filter(Client.company_id == company_uuid, Client.email == normalized).first()
    if exists:
        raise InvalidInputError("A client with this email already exists.")
    client = Client(
        company_id=company_uuid,
        created_by=optional_uuid(created_by, "Created By"),
        name=name.strip(),
        email=normalized,
        **fields,
    )
    db.add(client)
    db.commit()
    db.refresh(client)
    return client


def get_client(db: Session, client_id) -> Client:
    client = db.query(Client).filter(Client.id == as_uuid(client_id, "Client ID")).first()
    if client is None:
        raise NotFoundError("Client not found")
    return client


def find_client_by_email(db: Session, email: Optional[str], company_id=None) -> Optional[Client]:
    if not email:
        return None
    query = db.query(Client).filter(Client.email == email.strip().lower())
    if company_id:
        query = query.filter(Client.company_id == as_uuid(company_id, "Company ID"))
    return query.first()


def get_all_clients(db: Session, company_id=None, is_active: Optional[bool] = None, assigned_to=None) -> List[Client]:
    query = db.query(Client)
    if company_id:
        query = query.filter(Client.company_id == as_uuid(company_id, "Company ID"))
    if is_active is not None:
        query = query.filter(Client.is_active == is_active)
    if assigned_to:
        query = query.filter(Client.assigned_to == as_uuid(assigned_to, "Assigned To"))
    return query.order_by(Client.name).all()

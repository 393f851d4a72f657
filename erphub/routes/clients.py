from typing import Optional, List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, get_context, require_roles
from ..db import get_db
from ..errors import NotFoundError
from ..models.models import User
from ..schemas.assistant import SystemContext
from ..schemas.clients import CompanyCreate, CompanyOut, ClientCreate, ClientOut
from ..services import clients as client_service
from ..services.audit import log_action
from ..services.context import resolve_company_id, scoped_filters


router = APIRouter(tags=["clients"])


@router.get("/companies", response_model=List[CompanyOut])
def list_companies(db: Session = Depends(get_db), _=Depends(require_roles("admin"))):
    return client_service.list_companies(db)


@router.post("/companies", response_model=CompanyOut)
def create_company(payload: CompanyCreate, request: Request, db: Session = Depends(get_db),
                   user: User = Depends(require_roles("admin"))):
    data = payload.model_dump()
    company = client_service.create_company(db, **data)
    log_action(db, user, "CREATE", "company", company.id, payload.model_dump(mode="json", exclude={"logo"}), request)
    return company


@router.get("/companies/{company_id}", response_model=CompanyOut)
def get_company(company_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    company = client_service.get_company(db, company_id)
    if company is None:
        raise NotFoundError("Company not found")
    return company


@router.post("/clients", response_model=ClientOut)
def create_client(
    payload: ClientCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    context: SystemContext = Depends(get_context),
):
    data = payload.model_dump(exclude={"company_id"})
    client = client_service.create_client(
        db, company_id=resolve_company_id(context, payload.company_id), created_by=user.id, **data
    )
    log_action(db, user, "CREATE", "client", client.id, payload.model_dump(mode="json"), request)
    return client


@router.get("/clients", response_model=List[ClientOut])
def list_clients(
    is_active: Optional[bool] = None,
    company_id: Optional[str] = None,
    db: Session = Depends(get_db),
    context: SystemContext = Depends(get_context),
):
    filters = scoped_filters(context)
    return client_service.get_all_clients(db, company_id=filters.get("company_id") or company_id, is_active=is_active)


@router.get("/clients/{client_id}", response_model=ClientOut)
def get_client(client_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    return client_service.get_client(db, client_id)

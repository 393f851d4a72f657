from typing import Optional, List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, get_context, require_roles, ensure_owner_or_admin
from ..db import get_db
from ..models.models import User
from ..schemas.assistant import SystemContext
from ..schemas.proposals import ProposalCreate, ProposalUpdate, ProposalOut
from ..services import proposals as proposal_service
from ..services.audit import log_action
from ..services.context import resolve_company_id, scoped_filters


router = APIRouter(prefix="/proposals", tags=["proposals"])


@router.post("", response_model=ProposalOut)
def create_proposal(
    payload: ProposalCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    context: SystemContext = Depends(get_context),
):
    data = payload.model_dump()
    data["company_id"] = resolve_company_id(context, payload.company_id)
    proposal = proposal_service.create_proposal(db, created_by=user.id, **data)
    log_action(db, user, "CREATE", "proposal", proposal.id, payload.model_dump(mode="json"), request)
    return proposal


@router.get("", response_model=List[ProposalOut])
def list_proposals(
    status: Optional[str] = None,
    client_id: Optional[str] = None,
    company_id: Optional[str] = None,
    db: Session = Depends(get_db),
    context: SystemContext = Depends(get_context),
):
    filters = scoped_filters(context)
    return proposal_service.get_proposals(
        db,
        company_id=filters.get("company_id") or company_id,
        created_by=filters.get("user_id"),
        status=status,
        client_id=client_id,
    )


@router.get("/{proposal_id}", response_model=ProposalOut)
def get_proposal(proposal_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    proposal = proposal_service.get_proposal(db, proposal_id)
    ensure_owner_or_admin(user, proposal.created_by)
    return proposal


@router.get("/{proposal_id}/versions", response_model=List[ProposalOut])
def list_proposal_versions(proposal_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    proposal = proposal_service.get_proposal(db, proposal_id)
    ensure_owner_or_admin(user, proposal.created_by)
    return proposal_service.get_proposal_versions(db, proposal.proposal_number)


@router.post("/{proposal_id}/versions", response_model=ProposalOut)
def create_proposal_version(
    proposal_id: str,
    payload: ProposalUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    source = proposal_service.get_proposal(db, proposal_id)
    ensure_owner_or_admin(user, source.created_by)
    changes = payload.model_dump(exclude_unset=True)
    changes.pop("status", None)
    proposal = proposal_service.create_new_version(db, proposal_id, **changes)
    log_action(db, user, "CREATE", "proposal", proposal.id,
               {"proposal_number": proposal.proposal_number, "version": proposal.version}, request)
    return proposal


@router.put("/{proposal_id}", response_model=ProposalOut)
def update_proposal(
    proposal_id: str,
    payload: ProposalUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    proposal = proposal_service.get_proposal(db, proposal_id)
    ensure_owner_or_admin(user, proposal.created_by)
    proposal = proposal_service.update_proposal(db, proposal_id, **payload.model_dump(exclude_unset=True))
    log_action(db, user, "UPDATE", "proposal", proposal.id, payload.model_dump(mode="json", exclude_unset=True), request)
    return proposal


@router.delete("/{proposal_id}")
def delete_proposal(
    proposal_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("admin")),
):
    proposal_service.delete_proposal(db, proposal_id)
    log_action(db, user, "DELETE", "proposal", proposal_id, None, request)
    return {"status": "ok"}

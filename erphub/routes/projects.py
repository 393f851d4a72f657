from typing import Optional, List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, get_context, require_roles
from ..db import get_db
from ..models.models import User
from ..schemas.assistant import SystemContext
from ..schemas.projects import ProjectCreate, ProjectUpdate, ProjectOut
from ..services import projects as project_service
from ..services.audit import log_action
from ..services.context import resolve_company_id, scoped_filters


router = APIRouter(prefix="/projects", tags=["projects"])


@router.post("", response_model=ProjectOut)
def create_project(
    payload: ProjectCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("admin")),
    context: SystemContext = Depends(get_context),
):
    data = payload.model_dump()
    data["company_id"] = resolve_company_id(context, payload.company_id)
    project = project_service.create_project(db, **data)
    log_action(db, user, "CREATE", "project", project.id, payload.model_dump(mode="json"), request)
    return project


@router.get("", response_model=List[ProjectOut])
def list_projects(
    status: Optional[str] = None,
    client_id: Optional[str] = None,
    company_id: Optional[str] = None,
    db: Session = Depends(get_db),
    context: SystemContext = Depends(get_context),
):
    # Staff see the projects they are assigned to
    filters = scoped_filters(context)
    return project_service.get_projects(
        db,
        company_id=filters.get("company_id") or company_id,
        client_id=client_id,
        status=status,
        user_id=filters.get("user_id"),
    )


@router.get("/{project_id}", response_model=ProjectOut)
def get_project(project_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    return project_service.get_project(db, project_id)


@router.put("/{project_id}", response_model=ProjectOut)
def update_project(
    project_id: str,
    payload: ProjectUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("admin")),
):
    project = project_service.update_project(db, project_id, **payload.model_dump(exclude_unset=True))
    log_action(db, user, "UPDATE", "project", project.id, payload.model_dump(mode="json", exclude_unset=True), request)
    return project


@router.delete("/{project_id}")
def delete_project(project_id: str, request: Request, db: Session = Depends(get_db),
                   user: User = Depends(require_roles("admin"))):
    project_service.delete_project(db, project_id)
    log_action(db, user, "DELETE", "project", project_id, None, request)
    return {"status": "ok"}

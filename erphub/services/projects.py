"""
Projects and their staff assignments.
"""
from datetime import date
from typing import Optional, List

from sqlalchemy.orm import Session

from ..errors import InvalidInputError, NotFoundError
from ..models.models import Project, ProjectAssignment
from .context import as_uuid, optional_uuid

PROJECT_STATUSES = ("planning", "in-progress", "on-hold", "completed", "cancelled")


def _assignments(user_ids: Optional[List]) -> List[ProjectAssignment]:
    seen = []
    for uid in user_ids or []:
        parsed = as_uuid(uid, "User ID")
        if parsed not in seen:
            seen.append(parsed)
    return [ProjectAssignment(user_id=uid) for uid in seen]


def create_project(
    db: Session,
    company_id,
    name: str,
    client_id=None,
    description: Optional[str] = None,
    status: str = "planning",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    budget: Optional[float] = None,
    assigned_to: Optional[List] = None,
) -> Project:
    if not name or not name.strip():
        raise InvalidInputError("Project name is required")
    if status not in PROJECT_STATUSES:
        raise InvalidInputError(f"Invalid project status '{status}'")
    if start_date and end_date and end_date < start_date:
        raise InvalidInputError("Project end date must be on or after start date")
    project = Project(
        company_id=as_uuid(company_id, "Company ID"),
        client_id=optional_uuid(client_id, "Client ID"),
        name=name.strip(),
        description=description,
        status=status,
        start_date=start_date,
        end_date=end_date,
        budget=budget,
        assignments=_assignments(assigned_to),
    )
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


def get_project(db: Session, project_id) -> Project:
    project = db.query(Project).filter(Project.id == as_uuid(project_id, "Project ID")).first()
    if project is None:
        raise NotFoundError("Project not found")
    return project


def get_projects(db: Session, company_id=None, client_id=None, status: Optional[str] = None,
                 user_id=None) -> List[Project]:
    query = db.query(Project)
    if company_id:
        query = query.filter(Project.company_id == as_uuid(company_id, "Company ID"))
    if client_id:
        query = query.filter(Project.client_id == as_uuid(client_id, "Client ID"))
    if status:
        query = query.filter(Project.status == status)
    if user_id:
        query = query.join(ProjectAssignment).filter(ProjectAssignment.user_id == as_uuid(user_id, "User ID"))
    return query.order_by(Project.created_at.desc()).all()


def update_project(db: Session, project_id, **fields) -> Project:
    project = get_project(db, project_id)
    if fields.get("status") is not None and fields["status"] not in PROJECT_STATUSES:
        raise InvalidInputError(f"Invalid project status '{fields['status']}'")
    assigned_to = fields.pop("assigned_to", None)
    if assigned_to is not None:
        project.assignments = _assignments(assigned_to)
    for key, value in fields.items():
        if value is not None and hasattr(project, key):
            setattr(project, key, value)
    db.commit()
    db.refresh(project)
    return project


def delete_project(db: Session, project_id) -> None:
    db.delete(get_project(db, project_id))
    db.commit()

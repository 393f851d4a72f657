from typing import Optional, List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, require_roles, ensure_owner_or_admin
from ..db import get_db
from ..models.models import User, Goal
from ..schemas.performance import (
    KPICreate,
    KPIUpdate,
    KPIOut,
    GoalCreate,
    GoalUpdate,
    GoalOut,
    ReviewCreate,
    ReviewUpdate,
    ReviewOut,
)
from ..services import performance as perf
from ..services.audit import log_action
from ..services.time_rules import local_today


router = APIRouter(prefix="/performance", tags=["performance"])


def _goal_out(goal: Goal) -> GoalOut:
    out = GoalOut.model_validate(goal)
    out.progress = perf.goal_progress(goal)
    out.overdue = perf.is_goal_overdue(goal, local_today())
    return out


# KPIs

@router.get("/kpis", response_model=List[KPIOut])
def list_kpis(category: Optional[str] = None, db: Session = Depends(get_db), _=Depends(get_current_user)):
    return perf.get_kpis(db, category)


@router.post("/kpis", response_model=KPIOut)
def create_kpi(payload: KPICreate, db: Session = Depends(get_db), _=Depends(require_roles("admin"))):
    return perf.create_kpi(db, **payload.model_dump())


@router.put("/kpis/{kpi_id}", response_model=KPIOut)
def update_kpi(kpi_id: str, payload: KPIUpdate, db: Session = Depends(get_db), _=Depends(require_roles("admin"))):
    return perf.update_kpi(db, kpi_id, **payload.model_dump(exclude_unset=True))


@router.delete("/kpis/{kpi_id}")
def delete_kpi(kpi_id: str, db: Session = Depends(get_db), _=Depends(require_roles("admin"))):
    perf.delete_kpi(db, kpi_id)
    return {"status": "ok"}


# Goals

@router.get("/goals", response_model=List[GoalOut])
def list_goals(
    user_id: Optional[str] = None,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if user.role != "admin":
        user_id = user.id
    return [_goal_out(g) for g in perf.get_goals(db, user_id=user_id, status=status)]


@router.post("/goals", response_model=GoalOut)
def create_goal(
    payload: GoalCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    data = payload.model_dump()
    # Only admins set goals for someone else
    if user.role != "admin" or data.get("user_id") is None:
        data["user_id"] = user.id
    goal = perf.create_goal(db, **data)
    log_action(db, user, "CREATE", "goal", goal.id, payload.model_dump(mode="json"), request)
    return _goal_out(goal)


@router.put("/goals/{goal_id}", response_model=GoalOut)
def update_goal(
    goal_id: str,
    payload: GoalUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    ensure_owner_or_admin(user, perf.get_goal(db, goal_id).user_id)
    goal = perf.update_goal(db, goal_id, **payload.model_dump(exclude_unset=True))
    log_action(db, user, "UPDATE", "goal", goal.id, payload.model_dump(mode="json", exclude_unset=True), request)
    return _goal_out(goal)


@router.delete("/goals/{goal_id}")
def delete_goal(goal_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    ensure_owner_or_admin(user, perf.get_goal(db, goal_id).user_id)
    perf.delete_goal(db, goal_id)
    return {"status": "ok"}


# Reviews

@router.get("/reviews", response_model=List[ReviewOut])
def list_reviews(user_id: Optional[str] = None, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if user.role != "admin":
        user_id = user.id
    return perf.get_performance_reviews(db, user_id)


@router.post("/reviews", response_model=ReviewOut)
def create_review(
    payload: ReviewCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("admin")),
):
    review = perf.create_review(db, reviewed_by=user.id, **payload.model_dump())
    log_action(db, user, "CREATE", "performance_review", review.id, payload.model_dump(mode="json"), request)
    return review


@router.put("/reviews/{review_id}", response_model=ReviewOut)
def update_review(
    review_id: str,
    payload: ReviewUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_roles("admin")),
):
    return perf.update_review(db, review_id, **payload.model_dump(exclude_unset=True))


@router.delete("/reviews/{review_id}")
def delete_review(review_id: str, db: Session = Depends(get_db), _=Depends(require_roles("admin"))):
    perf.delete_review(db, review_id)
    return {"status": "ok"}

"""
KPIs, goals and performance reviews.
"""
from datetime import date
from typing import Optional, List

from sqlalchemy.orm import Session

from ..errors import InvalidInputError, NotFoundError
from ..models.models import KPI, Goal, PerformanceReview
from .context import as_uuid, optional_uuid

GOAL_STATUSES = ("not-started", "in-progress", "completed", "cancelled")
GOAL_TYPES = ("short-term", "long-term")
REVIEW_CYCLES = ("monthly", "quarterly")


def _get(db: Session, model, obj_id, label: str):
    obj = db.query(model).filter(model.id == as_uuid(obj_id, f"{label} ID")).first()
    if obj is None:
        raise NotFoundError(f"{label} not found")
    return obj


def _apply(obj, fields: dict) -> None:
    for key, value in fields.items():
        if value is not None and hasattr(obj, key):
            setattr(obj, key, value)


# KPIs

def create_kpi(db: Session, category: str, name: str, description: Optional[str] = None,
               unit: Optional[str] = None, target: Optional[float] = None) -> KPI:
    if not category or not name:
        raise InvalidInputError("KPI category and name are required")
    kpi = KPI(category=category, name=name, description=description, unit=unit, target=target)
    db.add(kpi)
    db.commit()
    db.refresh(kpi)
    return kpi


def get_kpis(db: Session, category: Optional[str] = None) -> List[KPI]:
    query = db.query(KPI)
    if category:
        query = query.filter(KPI.category == category)
    return query.order_by(KPI.category, KPI.name).all()


def update_kpi(db: Session, kpi_id, **fields) -> KPI:
    kpi = _get(db, KPI, kpi_id, "KPI")
    _apply(kpi, fields)
    db.commit()
    db.refresh(kpi)
    return kpi


def delete_kpi(db: Session, kpi_id) -> None:
    db.delete(_get(db, KPI, kpi_id, "KPI"))
    db.commit()


# Goals

def _validate_goal(status: Optional[str], goal_type: Optional[str], start: Optional[date], end: Optional[date]) -> None:
    if status is not None and status not in GOAL_STATUSES:
        raise InvalidInputError(f"Invalid goal status '{status}'")
    if goal_type is not None and goal_type not in GOAL_TYPES:
        raise InvalidInputError(f"Invalid goal type '{goal_type}'")
    if start and end and end < start:
        raise InvalidInputError("Goal end date must be on or after start date")


def create_goal(db: Session, user_id, title: str, start_date: date, end_date: date,
                type: str = "short-term", description: Optional[str] = None,
                target_value: Optional[float] = None, status: str = "not-started") -> Goal:
    if not title or not title.strip():
        raise InvalidInputError("Goal title is required")
    _validate_goal(status, type, start_date, end_date)
    goal = Goal(
        user_id=as_uuid(user_id, "User ID"),
        title=title.strip(),
        description=description,
        type=type,
        target_value=target_value,
        current_value=0.0,
        start_date=start_date,
        end_date=end_date,
        status=status,
    )
    db.add(goal)
    db.commit()
    db.refresh(goal)
    return goal


def get_goals(db: Session, user_id=None, status: Optional[str] = None) -> List[Goal]:
    query = db.query(Goal)
    if user_id:
        query = query.filter(Goal.user_id == as_uuid(user_id, "User ID"))
    if status:
        query = query.filter(Goal.status == status)
    return query.order_by(Goal.end_date).all()


def get_goal(db: Session, goal_id) -> Goal:
    return _get(db, Goal, goal_id, "Goal")


def update_goal(db: Session, goal_id, **fields) -> Goal:
    goal = _get(db, Goal, goal_id, "Goal")
    _validate_goal(fields.get("status"), fields.get("type"),
                   fields.get("start_date") or goal.start_date, fields.get("end_date") or goal.end_date)
    _apply(goal, fields)
    db.commit()
    db.refresh(goal)
    return goal


def delete_goal(db: Session, goal_id) -> None:
    db.delete(_get(db, Goal, goal_id, "Goal"))
    db.commit()


def goal_progress(goal: Goal) -> float:
    """Percent of target reached, capped at 100. Completed goals count as 100."""
    if goal.status == "completed":
        return 100.0
    if not goal.target_value:
        return 0.0
    return round(min(100.0, (goal.current_value or 0) / goal.target_value * 100), 1)


def is_goal_overdue(goal: Goal, today: date) -> bool:
    return goal.status not in ("completed", "cancelled") and goal.end_date < today


# Reviews

def _validate_rating(rating: Optional[float]) -> None:
    if rating is not None and not (1 <= rating <= 5):
        raise InvalidInputError("Overall rating must be between 1 and 5")


def create_review(db: Session, user_id, reviewed_by, period: str, overall_rating: float,
                  cycle: str = "quarterly", ratings: Optional[dict] = None,
                  feedback: Optional[str] = None, competencies: Optional[dict] = None) -> PerformanceReview:
    if cycle not in REVIEW_CYCLES:
        raise InvalidInputError(f"Invalid review cycle '{cycle}'")
    _validate_rating(overall_rating)
    review = PerformanceReview(
        user_id=as_uuid(user_id, "User ID"),
        reviewed_by=optional_uuid(reviewed_by, "Reviewer ID"),
        cycle=cycle,
        period=period,
        ratings=ratings,
        overall_rating=overall_rating,
        feedback=feedback,
        competencies=competencies,
    )
    db.add(review)
    db.commit()
    db.refresh(review)
    return review


def get_performance_reviews(db: Session, user_id=None) -> List[PerformanceReview]:
    query = db.query(PerformanceReview)
    if user_id:
        query = query.filter(PerformanceReview.user_id == as_uuid(user_id, "User ID"))
    return query.order_by(PerformanceReview.created_at.desc()).all()


def update_review(db: Session, review_id, **fields) -> PerformanceReview:
    review = _get(db, PerformanceReview, review_id, "Review")
    _validate_rating(fields.get("overall_rating"))
    _apply(review, fields)
    db.commit()
    db.refresh(review)
    return review


def delete_review(db: Session, review_id) -> None:
    db.delete(_get(db, PerformanceReview, review_id, "Review"))
    db.commit()

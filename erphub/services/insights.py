"""
Insight generation.

Each analysis type aggregates live data from the domain services, picks a
title/severity from a fixed priority chain and persists the result as an
AIInsight. Insights are point-in-time snapshots: they are never updated.
"""
from datetime import date, timedelta
from typing import Optional, List, Dict, Any, NamedTuple

import structlog
from sqlalchemy.orm import Session

from ..errors import InvalidInputError, NotFoundError
from ..models.models import AIInsight
from ..schemas.assistant import SystemContext
from .attendance import get_attendance
from .context import as_uuid, optional_uuid, scoped_filters, personal_user_id
from .financial import get_financial_summary, get_expense_breakdown
from .invoices import get_invoices, status_counts
from .leave import get_leave_requests
from .performance import get_goals, get_performance_reviews, is_goal_overdue
from .time_rules import local_day_bounds, local_today, to_local

logger = structlog.get_logger(__name__)

INSIGHT_TYPES = ("financial", "performance", "attendance", "risk")
SEVERITIES = ("low", "medium", "high")

ATTENDANCE_WINDOW_DAYS = 30
LATE_HOUR = 9

FALLBACK_RECOMMENDATIONS = ["Retry the analysis", "Check data availability", "Contact support if issue persists"]


class Analysis(NamedTuple):
    title: str
    description: str
    severity: str
    recommendations: List[str]
    data: Dict[str, Any]


def _money(value: float) -> str:
    return f"${value:,.2f}"


def _pct_change(current: float, previous: float) -> float:
    if previous > 0:
        return (current - previous) / previous * 100
    return 0.0


# CRUD

def create_insight(
    db: Session,
    type: str,
    title: str,
    description: str,
    severity: str = "low",
    recommendations: Optional[List[str]] = None,
    data: Optional[Dict[str, Any]] = None,
    user_id=None,
    company_id=None,
) -> AIInsight:
    if type not in INSIGHT_TYPES:
        raise InvalidInputError(f"Invalid insight type '{type}'")
    if severity not in SEVERITIES:
        raise InvalidInputError(f"Invalid severity '{severity}'")
    insight = AIInsight(
        type=type,
        title=title,
        description=description,
        severity=severity,
        recommendations=list(recommendations or []),
        data=dict(data or {}),
        user_id=optional_uuid(user_id, "User ID"),
        company_id=optional_uuid(company_id, "Company ID"),
    )
    db.add(insight)
    db.commit()
    db.refresh(insight)
    return insight


def get_all_insights(db: Session, type: Optional[str] = None, severity: Optional[str] = None,
                     user_id=None) -> List[AIInsight]:
    query = db.query(AIInsight)
    if type:
        query = query.filter(AIInsight.type == type)
    if severity:
        query = query.filter(AIInsight.severity == severity)
    if user_id:
        query = query.filter(AIInsight.user_id == as_uuid(user_id, "User ID"))
    return query.order_by(AIInsight.created_at.desc()).all()


def get_insight(db: Session, insight_id) -> AIInsight:
    insight = db.query(AIInsight).filter(AIInsight.id == as_uuid(insight_id, "Insight ID")).first()
    if insight is None:
        raise NotFoundError("Insight not found")
    return insight


def delete_insight(db: Session, insight_id) -> None:
    db.delete(get_insight(db, insight_id))
    db.commit()


# Analysis branches

def _month_windows(today: date):
    this_month = today.replace(day=1)
    last_month_end = this_month - timedelta(days=1)
    last_month = last_month_end.replace(day=1)
    return this_month, last_month, last_month_end


def analyze_financial(db: Session, context: SystemContext, today: date) -> Analysis:
    scope = scoped_filters(context)
    this_month, last_month, last_month_end = _month_windows(today)

    current = get_financial_summary(db, start_date=this_month, end_date=today, **scope)
    previous = get_financial_summary(db, start_date=last_month, end_date=last_month_end, **scope)
    breakdown = get_expense_breakdown(db, start_date=last_month, **scope)

    revenue_change = _pct_change(current["total_income"], previous["total_income"])
    expense_change = _pct_change(current["total_expenses"], previous["total_expenses"])
    profit_change = round(current["net_profit"] - previous["net_profit"], 2)
    top_category = max(breakdown, key=breakdown.get) if breakdown else "N/A"
    top_amount = breakdown.get(top_category, 0.0)

    data = {
        "current_revenue": current["total_income"],
        "previous_revenue": previous["total_income"],
        "revenue_change": revenue_change,
        "current_expenses": current["total_expenses"],
        "previous_expenses": previous["total_expenses"],
        "expense_change": expense_change,
        "current_profit": current["net_profit"],
        "previous_profit": previous["net_profit"],
        "profit_change": profit_change,
        "top_expense_category": top_category,
        "top_expense_amount": top_amount,
        "expense_breakdown": breakdown,
    }

    # Order matters: a mildly negative profit inside the change thresholds reports as stable.
    if revenue_change > 10:
        return Analysis(
            "Strong Revenue Growth Detected",
            f"Revenue has increased by {revenue_change:.1f}% compared to last month. "
            f"Current revenue is {_money(current['total_income'])} with a profit of {_money(current['net_profit'])}.",
            "low",
            [
                "Continue current revenue-generating strategies",
                "Consider reinvesting profits into growth areas",
                "Monitor expense ratios to maintain profitability",
            ],
            data,
        )
    if revenue_change < -10:
        return Analysis(
            "Revenue Decline Alert",
            f"Revenue has decreased by {abs(revenue_change):.1f}% compared to last month. "
            f"Current revenue is {_money(current['total_income'])}.",
            "high",
            [
                "Review sales and marketing strategies",
                "Identify reasons for revenue decline",
                "Consider cost-cutting measures if trend continues",
                "Analyze customer retention rates",
            ],
            data,
        )
    if expense_change > 15:
        return Analysis(
            "Expense Growth Warning",
            f"Expenses have increased by {expense_change:.1f}% compared to last month. "
            f"Top expense category is {top_category} at {_money(top_amount)}.",
            "medium",
            [
                f"Review {top_category} expenses for optimization opportunities",
                "Implement expense approval workflows",
                "Set monthly expense budgets",
                "Monitor expense trends closely",
            ],
            data,
        )
    if current["net_profit"] < 0:
        if current["total_income"] > 0:
            excess = f"Expenses exceed revenue by {(current['total_expenses'] / current['total_income'] - 1) * 100:.1f}%."
        else:
            excess = "No revenue has been recorded this period."
        return Analysis(
            "Negative Profit Alert",
            f"Current period shows a loss of {_money(abs(current['net_profit']))}. {excess}",
            "high",
            [
                "Immediate cost reduction review required",
                "Identify non-essential expenses to cut",
                "Focus on revenue generation strategies",
                "Consider emergency financial planning",
            ],
            data,
        )
    return Analysis(
        "Stable Financial Performance",
        f"Financial performance is stable. Revenue: {_money(current['total_income'])}, "
        f"Expenses: {_money(current['total_expenses'])}, Profit: {_money(current['net_profit'])}.",
        "low",
        [
            "Maintain current financial practices",
            "Look for incremental improvement opportunities",
            "Continue monitoring key financial metrics",
        ],
        data,
    )


def analyze_performance(db: Session, context: SystemContext, today: date) -> Analysis:
    user_id = personal_user_id(context)
    goals = get_goals(db, user_id=user_id)
    reviews = get_performance_reviews(db, user_id=user_id)

    active = [g for g in goals if g.status in ("in-progress", "not-started")]
    completed = [g for g in goals if g.status == "completed"]
    overdue = [g for g in goals if is_goal_overdue(g, today)]
    completion_rate = len(completed) / len(goals) * 100 if goals else 0.0
    average_rating = sum(r.overall_rating or 0 for r in reviews) / len(reviews) if reviews else 0.0

    data = {
        "total_goals": len(goals),
        "active_goals": len(active),
        "completed_goals": len(completed),
        "overdue_goals": len(overdue),
        "completion_rate": completion_rate,
        "total_reviews": len(reviews),
        "average_rating": average_rating,
    }

    if overdue:
        return Analysis(
            "Overdue Goals Detected",
            f"{len(overdue)} goal(s) have passed their end date without completion. "
            f"Overall completion rate is {completion_rate:.1f}%.",
            "medium",
            [
                "Review and update overdue goals",
                "Consider extending deadlines or adjusting targets",
                "Provide additional support for goal achievement",
                "Break down large goals into smaller milestones",
            ],
            data,
        )
    if completion_rate < 50 and goals:
        return Analysis(
            "Low Goal Completion Rate",
            f"Only {completion_rate:.1f}% of goals have been completed. {len(active)} goals are still in progress.",
            "medium",
            [
                "Review goal difficulty and feasibility",
                "Provide additional resources or training",
                "Set up regular check-ins for goal progress",
                "Consider breaking goals into smaller tasks",
            ],
            data,
        )
    if average_rating < 3 and reviews:
        return Analysis(
            "Performance Improvement Needed",
            f"Average performance rating is {average_rating:.2f}/5. {len(reviews)} review(s) completed.",
            "high",
            [
                "Identify specific areas for improvement",
                "Create development plans",
                "Schedule regular feedback sessions",
                "Provide targeted training and support",
            ],
            data,
        )
    return Analysis(
        "Strong Performance Metrics",
        f"Performance is on track with {completion_rate:.1f}% goal completion rate. "
        f"Average rating: {average_rating:.2f}/5 from {len(reviews)} review(s).",
        "low",
        [
            "Continue current performance practices",
            "Set new challenging goals",
            "Recognize achievements",
            "Maintain performance momentum",
        ],
        data,
    )


def _attendance_window(db: Session, user_id, today: date):
    """Records clocked in from local midnight ATTENDANCE_WINDOW_DAYS before `today` until the end of `today`."""
    since, _ = local_day_bounds(today - timedelta(days=ATTENDANCE_WINDOW_DAYS))
    _, until = local_day_bounds(today)
    return since, get_attendance(db, user_id=user_id, since=since, until=until)


def analyze_attendance(db: Session, context: SystemContext, today: date) -> Analysis:
    if not context.user_id:
        raise InvalidInputError("User ID required for attendance analysis")
    user_id = personal_user_id(context)
    since, records = _attendance_window(db, user_id, today)
    since_day = to_local(since).date()
    leaves = [lr for lr in get_leave_requests(db, user_id) if lr.start_date >= since_day]

    days = len(records)
    attendance_rate = days / ATTENDANCE_WINDOW_DAYS * 100
    total_hours = round(sum(r.total_hours or 0 for r in records), 2)
    average_hours = total_hours / days if days else 0.0
    late_arrivals = sum(1 for r in records if r.clock_in and to_local(r.clock_in).hour >= LATE_HOUR)
    approved_leaves = sum(1 for lr in leaves if lr.status == "approved")
    pending_leaves = sum(1 for lr in leaves if lr.status == "pending")

    data = {
        "total_days": ATTENDANCE_WINDOW_DAYS,
        "days_with_attendance": days,
        "attendance_rate": attendance_rate,
        "total_hours": total_hours,
        "average_hours_per_day": average_hours,
        "approved_leaves": approved_leaves,
        "pending_leaves": pending_leaves,
        "late_arrivals": late_arrivals,
    }

    if attendance_rate < 70:
        return Analysis(
            "Low Attendance Rate Alert",
            f"Attendance rate is {attendance_rate:.1f}% over the last {ATTENDANCE_WINDOW_DAYS} days. "
            f"Only {days} days with attendance recorded.",
            "high",
            [
                "Review attendance policies and expectations",
                "Address any barriers to regular attendance",
                "Consider flexible work arrangements if appropriate",
                "Schedule a discussion about attendance patterns",
            ],
            data,
        )
    if late_arrivals > days * 0.3:
        return Analysis(
            "Frequent Late Arrivals Detected",
            f"{late_arrivals} late arrival(s) detected out of {days} attendance days. "
            f"Average hours per day: {average_hours:.2f}.",
            "medium",
            [
                "Discuss punctuality expectations",
                "Identify reasons for late arrivals",
                "Consider flexible start times if appropriate",
                "Set clear attendance guidelines",
            ],
            data,
        )
    if average_hours < 6:
        return Analysis(
            "Low Average Working Hours",
            f"Average working hours per day is {average_hours:.2f} hours. Attendance rate: {attendance_rate:.1f}%.",
            "medium",
            [
                "Review work schedule and expectations",
                "Ensure proper clock-in/clock-out procedures",
                "Monitor work hours for consistency",
                "Address any time tracking issues",
            ],
            data,
        )
    return Analysis(
        "Good Attendance Patterns",
        f"Attendance rate is {attendance_rate:.1f}% with an average of {average_hours:.2f} hours per day. "
        f"{approved_leaves} approved leave(s) in the period.",
        "low",
        [
            "Maintain current attendance standards",
            "Continue monitoring attendance patterns",
            "Recognize consistent attendance",
        ],
        data,
    )


def _financial_risk(db: Session, context: SystemContext, today: date):
    summary = get_financial_summary(db, **scoped_filters(context))
    if summary["net_profit"] < 0:
        return "Negative profit margin", 3
    if summary["total_expenses"] > summary["total_income"] * 0.9:
        return "High expense ratio (>90% of revenue)", 2
    return None


def _performance_risk(db: Session, context: SystemContext, today: date):
    if not context.user_id:
        return None
    goals = get_goals(db, user_id=personal_user_id(context))
    overdue = [g for g in goals if is_goal_overdue(g, today)]
    if goals and len(overdue) > len(goals) * 0.3:
        return "High number of overdue goals", 2
    return None


def _attendance_risk(db: Session, context: SystemContext, today: date):
    if not context.user_id:
        return None
    _, records = _attendance_window(db, personal_user_id(context), today)
    if len(records) / ATTENDANCE_WINDOW_DAYS * 100 < 70:
        return "Low attendance rate", 2
    return None


def _invoice_risk(db: Session, context: SystemContext, today: date):
    scope = scoped_filters(context)
    invoices = get_invoices(db, company_id=scope.get("company_id"), created_by=scope.get("user_id"))
    counts = status_counts(invoices, today)
    overdue_pct = counts["overdue"] / counts["total"] * 100 if counts["total"] else 0.0
    if overdue_pct > 20:
        return "High percentage of overdue invoices", 2
    return None


RISK_CHECKS = (
    ("financial", _financial_risk),
    ("performance", _performance_risk),
    ("attendance", _attendance_risk),
    ("invoices", _invoice_risk),
)


def analyze_risk(db: Session, context: SystemContext, today: date) -> Analysis:
    risks: List[str] = []
    score = 0
    for name, check in RISK_CHECKS:
        try:
            hit = check(db, context, today)
        except Exception as e:
            db.rollback()
            logger.warning("risk_subcheck_failed", check=name, error=str(e))
            continue
        if hit:
            risks.append(hit[0])
            score += hit[1]

    data = {"risk_score": score, "identified_risks": risks}

    if score >= 6:
        return Analysis(
            "High Risk Level Detected",
            f"Multiple risk factors identified with a risk score of {score}/10. "
            f"Identified risks: {', '.join(risks)}.",
            "high",
            [
                "Immediate action required on identified risks",
                "Develop comprehensive risk mitigation plan",
                "Review and address each risk factor systematically",
                "Schedule emergency review meeting",
                "Implement monitoring and early warning systems",
            ],
            data,
        )
    if score >= 3:
        return Analysis(
            "Moderate Risk Level",
            f"Risk score: {score}/10. Identified risks: {', '.join(risks) if risks else 'None significant'}.",
            "medium",
            [
                "Monitor identified risk factors closely",
                "Develop preventive measures",
                "Review risk mitigation strategies",
                "Update risk assessment regularly",
            ],
            data,
        )
    return Analysis(
        "Low Risk Level",
        f"Risk score: {score}/10. System appears to be operating within acceptable risk parameters.",
        "low",
        [
            "Continue current risk management practices",
            "Maintain regular risk assessments",
            "Stay vigilant for emerging risks",
            "Document risk management processes",
        ],
        data,
    )


ANALYZERS = {
    "financial": analyze_financial,
    "performance": analyze_performance,
    "attendance": analyze_attendance,
    "risk": analyze_risk,
}


def generate_insight(db: Session, type: str, context: Optional[SystemContext] = None,
                     today: Optional[date] = None) -> AIInsight:
    """
    Run one analysis and persist its result.

    Args:
        db: Database session
        type: financial|performance|attendance|risk
        context: Caller scope; staff callers only see their own data
        today: Local calendar day the analysis is anchored to (defaults to now)

    Returns:
        The persisted AIInsight. When the analysis fails, a low-severity
        fallback insight describing the error is persisted instead.
    """
    if type not in ANALYZERS:
        raise InvalidInputError(f"Invalid insight type '{type}'")
    context = context or SystemContext()
    today = today or local_today()
    owner = {"user_id": context.user_id, "company_id": context.company_id}

    try:
        result = ANALYZERS[type](db, context, today)
    except Exception as e:
        db.rollback()
        detail = str(e) or "Please try again later."
        logger.warning("insight_failed", insight_type=type, error=detail)
        return create_insight(
            db,
            type=type,
            title=f"{type.capitalize()} Analysis",
            description=f"Unable to complete full analysis. {detail}",
            severity="low",
            recommendations=list(FALLBACK_RECOMMENDATIONS),
            data={"error": detail},
            **owner,
        )

    insight = create_insight(db, type=type, title=result.title, description=result.description,
                             severity=result.severity, recommendations=result.recommendations,
                             data=result.data, **owner)
    logger.info("insight_generated", insight_type=type, severity=insight.severity)
    return insight


def generate_report_summary(report_type: str, data: Optional[Dict[str, Any]] = None) -> str:
    return (
        "AI-generated summary: Based on the provided data, key trends and patterns have been identified. "
        "Recommendations include monitoring key metrics and taking proactive measures."
    )


def suggest_decision(context: str, options: Optional[List[str]] = None) -> List[str]:
    return [
        "Review current metrics and trends",
        "Consider implementing suggested improvements",
        "Schedule follow-up review meetings",
    ]

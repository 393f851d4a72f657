from datetime import date, datetime, timedelta

import pytest
import pytz

from erphub.config import settings
from erphub.errors import InvalidInputError
from erphub.models.models import AIInsight, Attendance
from erphub.schemas.assistant import SystemContext
from erphub.services import insights
from erphub.services.financial import create_transaction
from erphub.services.performance import create_goal, create_review

TODAY = date(2024, 6, 15)


def _txn(db, user, type, amount, day, category=None):
    return create_transaction(db, type=type, amount=amount, date=day, company_id=user.company_id,
                              user_id=user.id, category=category)


def test_negative_profit_within_thresholds(db, staff, ctx):
    # Same income and expenses as last month: no growth or decline branch fires
    _txn(db, staff, "income", 100, date(2024, 5, 10))
    _txn(db, staff, "expense", 200, date(2024, 5, 11), "Rent")
    _txn(db, staff, "income", 100, date(2024, 6, 3))
    _txn(db, staff, "expense", 200, date(2024, 6, 4), "Rent")

    insight = insights.generate_insight(db, "financial", ctx(staff), today=TODAY)

    assert insight.title == "Negative Profit Alert"
    assert insight.severity == "high"
    assert insight.description.startswith("Current period shows a loss of $100.00.")
    assert insight.data["revenue_change"] == 0
    assert insight.data["top_expense_category"] == "Rent"
    assert insight.data["top_expense_amount"] == 400
    assert insight.recommendations[0] == "Immediate cost reduction review required"


def test_revenue_growth(db, staff, ctx):
    _txn(db, staff, "income", 100, date(2024, 5, 10))
    _txn(db, staff, "income", 150, date(2024, 6, 2))

    insight = insights.generate_insight(db, "financial", ctx(staff), today=TODAY)

    assert insight.title == "Strong Revenue Growth Detected"
    assert insight.severity == "low"
    assert insight.data["revenue_change"] == pytest.approx(50.0)


def test_expense_growth_warning(db, staff, ctx):
    _txn(db, staff, "income", 1000, date(2024, 5, 10))
    _txn(db, staff, "expense", 100, date(2024, 5, 12), "Travel")
    _txn(db, staff, "income", 1000, date(2024, 6, 1))
    _txn(db, staff, "expense", 200, date(2024, 6, 2), "Travel")

    insight = insights.generate_insight(db, "financial", ctx(staff), today=TODAY)

    assert insight.title == "Expense Growth Warning"
    assert insight.severity == "medium"
    assert "Review Travel expenses for optimization opportunities" in insight.recommendations


def test_staff_financial_scope_excludes_colleagues(db, company, make_user, ctx):
    me = make_user(company=company)
    colleague = make_user(company=company)
    _txn(db, colleague, "expense", 5000, date(2024, 6, 5))

    insight = insights.generate_insight(db, "financial", ctx(me), today=TODAY)

    assert insight.data["current_expenses"] == 0
    assert insight.title == "Stable Financial Performance"


def test_attendance_with_no_records_is_high_severity(db, staff, ctx):
    insight = insights.generate_insight(db, "attendance", ctx(staff), today=TODAY)

    assert insight.title == "Low Attendance Rate Alert"
    assert insight.severity == "high"
    assert insight.data["attendance_rate"] == 0
    assert insight.data["days_with_attendance"] == 0


def test_attendance_without_user_falls_back(db):
    insight = insights.generate_insight(db, "attendance", SystemContext(user_role="admin"), today=TODAY)

    assert insight.title == "Attendance Analysis"
    assert insight.severity == "low"
    assert insight.description == "Unable to complete full analysis. User ID required for attendance analysis"
    assert insight.data == {"error": "User ID required for attendance analysis"}


def test_performance_overdue_goals(db, staff, ctx):
    create_goal(db, staff.id, "Ship catalogue", TODAY - timedelta(days=30), TODAY - timedelta(days=1),
                status="in-progress")
    create_goal(db, staff.id, "Close Q2", TODAY - timedelta(days=30), TODAY, status="in-progress")

    insight = insights.generate_insight(db, "performance", ctx(staff), today=TODAY)

    assert insight.title == "Overdue Goals Detected"
    # A goal ending today is not overdue yet
    assert insight.data["overdue_goals"] == 1
    assert insight.data["total_goals"] == 2


def test_performance_low_rating(db, staff, admin, ctx):
    create_goal(db, staff.id, "Done", TODAY - timedelta(days=10), TODAY + timedelta(days=10), status="completed")
    create_review(db, staff.id, admin.id, "2024-Q1", 2)

    insight = insights.generate_insight(db, "performance", ctx(staff), today=TODAY)

    assert insight.title == "Performance Improvement Needed"
    assert insight.severity == "high"
    assert insight.data["average_rating"] == 2


def test_risk_subcheck_failure_is_omitted(db, staff, ctx, monkeypatch):
    _txn(db, staff, "expense", 100, date(2024, 6, 1))

    def broken(*args, **kwargs):
        raise RuntimeError("invoice store offline")

    monkeypatch.setattr(insights, "get_invoices", broken)
    insight = insights.generate_insight(db, "risk", ctx(staff), today=TODAY)

    # loss (3) + no attendance (2); the invoice check contributes nothing
    assert insight.data["risk_score"] == 5
    assert insight.data["identified_risks"] == ["Negative profit margin", "Low attendance rate"]
    assert insight.title == "Moderate Risk Level"
    assert insight.severity == "medium"


def test_analysis_failure_persists_fallback(db, staff, ctx, monkeypatch):
    def broken(db, context, today):
        raise RuntimeError("goal table locked")

    monkeypatch.setitem(insights.ANALYZERS, "performance", broken)
    insight = insights.generate_insight(db, "performance", ctx(staff), today=TODAY)

    assert insight.title == "Performance Analysis"
    assert insight.recommendations == insights.FALLBACK_RECOMMENDATIONS
    assert db.query(AIInsight).count() == 1


def test_invalid_type_rejected(db):
    with pytest.raises(InvalidInputError):
        insights.generate_insight(db, "weather")


def test_insight_round_trip(db, staff, ctx):
    created = insights.generate_insight(db, "attendance", ctx(staff), today=TODAY)
    fetched = insights.get_insight(db, created.id)

    assert fetched.title == created.title
    assert fetched.data == created.data
    assert fetched.recommendations == created.recommendations
    assert [i.id for i in insights.get_all_insights(db, user_id=staff.id)] == [created.id]

    insights.delete_insight(db, created.id)
    assert insights.get_all_insights(db) == []


def _shift(db, user, day, start_hour, hours, start_minute=0):
    tz = pytz.timezone(settings.tz_default)
    start = tz.localize(datetime(day.year, day.month, day.day, start_hour, start_minute)).astimezone(pytz.UTC)
    db.add(Attendance(user_id=user.id, clock_in=start, clock_out=start + timedelta(hours=hours), total_hours=hours))
    db.commit()


def _worked_days(count):
    return [TODAY - timedelta(days=n) for n in range(1, count + 1)]


def test_attendance_window_is_anchored_to_today(db, staff, ctx):
    for day in _worked_days(25):
        _shift(db, staff, day, 8, 9)
    # Outside the window on both sides
    _shift(db, staff, TODAY - timedelta(days=45), 8, 9)
    _shift(db, staff, TODAY + timedelta(days=1), 8, 9)

    insight = insights.generate_insight(db, "attendance", ctx(staff), today=TODAY)

    assert insight.title == "Good Attendance Patterns"
    assert insight.severity == "low"
    assert insight.data["days_with_attendance"] == 25
    assert insight.data["average_hours_per_day"] == pytest.approx(9.0)
    assert insight.data["late_arrivals"] == 0


def test_frequent_late_arrivals(db, staff, ctx):
    for n, day in enumerate(_worked_days(25)):
        # 10 of 25 days start at 09:30
        _shift(db, staff, day, 9 if n < 10 else 8, 8, start_minute=30)

    insight = insights.generate_insight(db, "attendance", ctx(staff), today=TODAY)

    assert insight.title == "Frequent Late Arrivals Detected"
    assert insight.severity == "medium"
    assert insight.data["late_arrivals"] == 10


def test_low_average_working_hours(db, staff, ctx):
    for day in _worked_days(25):
        _shift(db, staff, day, 8, 5)

    insight = insights.generate_insight(db, "attendance", ctx(staff), today=TODAY)

    assert insight.title == "Low Average Working Hours"
    assert insight.severity == "medium"
    assert insight.data["average_hours_per_day"] == pytest.approx(5.0)


def test_attendance_insight_is_repeatable_for_the_same_day(db, staff, ctx):
    for day in _worked_days(22):
        _shift(db, staff, day, 8, 8)

    first = insights.generate_insight(db, "attendance", ctx(staff), today=TODAY)
    second = insights.generate_insight(db, "attendance", ctx(staff), today=TODAY)

    assert (first.title, first.severity, first.data) == (second.title, second.severity, second.data)


def test_high_risk_level(db, staff, ctx):
    _txn(db, staff, "expense", 500, date(2024, 6, 1))
    create_goal(db, staff.id, "Missed launch", TODAY - timedelta(days=30), TODAY - timedelta(days=2),
                status="in-progress")

    insight = insights.generate_insight(db, "risk", ctx(staff), today=TODAY)

    # loss (3) + overdue goals (2) + no attendance (2)
    assert insight.data["risk_score"] == 7
    assert insight.data["identified_risks"] == [
        "Negative profit margin",
        "High number of overdue goals",
        "Low attendance rate",
    ]
    assert insight.title == "High Risk Level Detected"
    assert insight.severity == "high"


def test_attendance_risk_uses_the_same_window(db, staff, ctx):
    for day in _worked_days(25):
        _shift(db, staff, day, 8, 9)

    insight = insights.generate_insight(db, "risk", ctx(staff), today=TODAY)

    assert "Low attendance rate" not in insight.data["identified_risks"]

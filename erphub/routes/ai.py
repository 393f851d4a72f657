from typing import Optional, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_context, require_roles
from ..db import get_db
from ..errors import NotFoundError
from ..schemas.assistant import (
    ChatRequest,
    ChatResponse,
    DecisionRequest,
    DecisionResponse,
    InsightGenerateRequest,
    InsightOut,
    ReportSummaryRequest,
    ReportSummaryResponse,
    SystemContext,
)
from ..services import assistant, insights


router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/chat", response_model=ChatResponse)
def chat(req: ChatRequest, db: Session = Depends(get_db), context: SystemContext = Depends(get_context)):
    return ChatResponse(reply=assistant.chat(db, req.message, req.history, context))


@router.get("/insights", response_model=List[InsightOut])
def list_insights(
    type: Optional[str] = None,
    severity: Optional[str] = None,
    db: Session = Depends(get_db),
    context: SystemContext = Depends(get_context),
):
    # Staff only see insights they generated
    user_id = context.user_id if context.is_staff else None
    return insights.get_all_insights(db, type=type, severity=severity, user_id=user_id)


@router.post("/insights", response_model=InsightOut)
def generate_insight(
    req: InsightGenerateRequest,
    db: Session = Depends(get_db),
    context: SystemContext = Depends(get_context),
):
    return insights.generate_insight(db, req.type, context)


@router.get("/insights/{insight_id}", response_model=InsightOut)
def get_insight(insight_id: str, db: Session = Depends(get_db), context: SystemContext = Depends(get_context)):
    insight = insights.get_insight(db, insight_id)
    if context.is_staff and str(insight.user_id) != context.user_id:
        raise NotFoundError("Insight not found")
    return insight


@router.delete("/insights/{insight_id}")
def delete_insight(insight_id: str, db: Session = Depends(get_db), _=Depends(require_roles("admin"))):
    insights.delete_insight(db, insight_id)
    return {"status": "ok"}


@router.post("/report-summary", response_model=ReportSummaryResponse)
def report_summary(req: ReportSummaryRequest, _=Depends(get_context)):
    return ReportSummaryResponse(summary=insights.generate_report_summary(req.report_type, req.data))


@router.post("/suggest-decision", response_model=DecisionResponse)
def suggest_decision(req: DecisionRequest, _=Depends(get_context)):
    return DecisionResponse(recommendations=insights.suggest_decision(req.context, req.options))
